"""Run-scoped state shared by the ingestion pipeline stages."""

import inspect
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from artshelf.domain.entities import ScanOptions, ScanPhase, ScanProgress, ScanResult
from artshelf.domain.exceptions import ScanCancelledException

logger = logging.getLogger(__name__)


async def maybe_await(value: Any) -> Any:
    """Await value if it is awaitable, otherwise return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


# Hey future me - ONE ScanContext per run, created at the start of scan()/rescan_artwork()
# and dropped at the end. The caches are natural key → generated id and only ever contain
# ids of COMMITTED rows (the resolver merges after its transaction commits). Never make
# this a module-level singleton: two runs sharing a cache after a force reset would hand
# out ids of rows that no longer exist.
@dataclass
class ScanContext:
    """Caches, counters and callbacks of one scan run."""

    options: ScanOptions
    scan_root: Path
    result: ScanResult = field(default_factory=ScanResult)
    artist_cache: dict[str, int] = field(default_factory=dict)
    tag_cache: dict[str, int] = field(default_factory=dict)
    started_at: float = field(default_factory=time.monotonic)

    async def emit(
        self,
        phase: ScanPhase,
        message: str,
        percentage: float,
        current: int | None = None,
        total: int | None = None,
    ) -> None:
        """Send a progress event to the caller's callback, if any.

        A failing callback is logged and ignored, progress is best effort.
        """
        progress = ScanProgress(
            phase=phase,
            message=message,
            percentage=round(percentage, 1),
            current=current,
            total=total,
        )
        logger.debug(f"Scan progress {progress.percentage}%: {message}")
        if self.options.on_progress is None:
            return
        try:
            await maybe_await(self.options.on_progress(progress))
        except Exception as e:
            logger.warning(f"Progress callback failed: {e}")

    async def raise_if_cancelled(self) -> None:
        """Poll the cancellation predicate.

        Raises:
            ScanCancelledException: Carrying the partial result when cancelled
        """
        if self.options.check_cancelled is None:
            return
        if await maybe_await(self.options.check_cancelled()):
            self.finish()
            logger.info("Scan cancellation observed at batch boundary")
            raise ScanCancelledException(self.result)

    def finish(self) -> ScanResult:
        """Stamp processing time onto the result and return it."""
        self.result.processing_time_ms = int((time.monotonic() - self.started_at) * 1000)
        return self.result
