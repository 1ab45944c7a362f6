"""Background workers."""

from artshelf.application.workers.library_scan_worker import LibraryScanWorker

__all__ = ["LibraryScanWorker"]
