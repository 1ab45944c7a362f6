"""Domain exceptions."""

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from artshelf.domain.entities import ScanResult


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, message is stored as an attribute so callers can put it into
    # ScanResult.errors without parsing str(exception). Never raise this directly,
    # always a subclass so callers can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found."""

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationException(DomainException):
    """Raised when caller input violates a domain rule.

    Example: a rescan directory containing ".." segments.
    """

    pass


# =============================================================================
# SCAN LIFECYCLE
# =============================================================================


class ScanCancelledException(DomainException):
    """Raised when a scan run observes the cancellation signal.

    Hey future me - this is NOT a failure! Batches committed before the signal stay
    committed, and the partial counters ride along on `result` so the caller can
    still show "ingested 300 of 1200 before you hit stop".
    """

    def __init__(self, result: "ScanResult | None" = None) -> None:
        super().__init__("Scan cancelled")
        self.result = result


class ScanAlreadyRunningException(DomainException):
    """Raised when a scan is requested while another run holds the guard."""

    def __init__(self, message: str = "A library scan is already running") -> None:
        super().__init__(message)


class ScanRootNotFoundException(DomainException):
    """Raised when the scan root does not exist or is not a directory."""

    def __init__(self, path: Any) -> None:
        super().__init__(f"Scan root does not exist or is not a directory: {path}")
        self.path = path


class RemoteDiscoveryError(DomainException):
    """Raised when the remote discovery delegate fails after all retries."""

    def __init__(self, message: str, attempts: int = 0) -> None:
        super().__init__(message)
        self.attempts = attempts


# =============================================================================
# TARGETED RESCAN
# =============================================================================


class SidecarNotFoundException(DomainException):
    """Raised when a rescan cannot find the artwork's metadata file."""

    def __init__(self, artwork_id: str, directory: Any) -> None:
        super().__init__(
            f"Metadata file {artwork_id}-meta.txt not found in {directory}"
        )
        self.artwork_id = artwork_id
        self.directory = directory


class SidecarParseException(DomainException):
    """Raised when a rescan finds the metadata file but cannot use it."""

    def __init__(self, path: Any, reason: str) -> None:
        super().__init__(f"Failed to parse metadata file {path}: {reason}")
        self.path = path
        self.reason = reason


__all__ = [
    "DomainException",
    "EntityNotFoundException",
    "RemoteDiscoveryError",
    "ScanAlreadyRunningException",
    "ScanCancelledException",
    "ScanRootNotFoundException",
    "SidecarNotFoundException",
    "SidecarParseException",
    "ValidationException",
]
