"""Application services - the ingestion pipeline stages."""

from artshelf.application.services.batch_ingestion_service import BatchIngestionService
from artshelf.application.services.entity_resolver_service import EntityResolverService
from artshelf.application.services.library_scanner_service import LibraryScannerService
from artshelf.application.services.meta_source_refill_service import (
    MetaSourceRefillService,
)
from artshelf.application.services.metadata_discovery_service import (
    MetadataDiscoveryService,
)
from artshelf.application.services.scan_context import ScanContext

__all__ = [
    "BatchIngestionService",
    "EntityResolverService",
    "LibraryScannerService",
    "MetaSourceRefillService",
    "MetadataDiscoveryService",
    "ScanContext",
]
