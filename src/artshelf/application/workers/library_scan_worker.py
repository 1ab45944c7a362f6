# Hey future me - this worker is the ONE place that says "only one scan at a time"!
# LibraryScannerService itself doesn't arbitrate: two concurrent runs against the same
# library would race on the same natural keys and interleave progress events. The host
# (web app, CLI, scheduler) calls start_scan()/start_refill() here and gets a
# ScanAlreadyRunningException (→ HTTP 409 in a web layer) while a run is active.
#
# FLOW:
# 1. start_scan() checks the guard, resets cancel flag/progress, spawns an asyncio task
# 2. the task runs LibraryScannerService.scan() with callbacks bound to this worker
# 3. request_cancel() flips a flag the scanner polls at the next batch boundary
# 4. get_status() is cheap and safe to poll from the UI every second
"""Library scan worker: run guard, cancellation and status for scans."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

from artshelf.application.services.library_scanner_service import (
    LibraryScannerService,
)
from artshelf.application.services.meta_source_refill_service import (
    MetaSourceRefillService,
)
from artshelf.domain.entities import ScanOptions, ScanProgress, ScanResult
from artshelf.domain.exceptions import ScanAlreadyRunningException, ScanCancelledException

if TYPE_CHECKING:
    from artshelf.config import Settings
    from artshelf.infrastructure.persistence.database import Database

logger = logging.getLogger(__name__)


class LibraryScanWorker:
    """Background runner for scans with a single-run guard.

    Similar lifecycle to the other workers: construct once at startup, then
    start_scan() per user request and stop() on shutdown.
    """

    def __init__(
        self,
        db: Database,
        settings: Settings,
        scanner: LibraryScannerService | None = None,
    ) -> None:
        """Initialize worker.

        Args:
            db: Database instance for creating sessions
            settings: Application settings
            scanner: Scanner service override (tests inject one)
        """
        self.db = db
        self.settings = settings
        self.scanner = scanner or LibraryScannerService(db, settings)
        self.refill_service = MetaSourceRefillService(db)
        self._task: asyncio.Task[Any] | None = None
        self._cancel_requested = False
        self._current_job: str | None = None
        self._progress: ScanProgress | None = None
        self._last_result: dict[str, Any] | None = None
        self._last_error: str | None = None
        self._last_cancelled = False
        self._started_at: datetime | None = None
        self._finished_at: datetime | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _claim(self, job: str) -> None:
        if self.is_running:
            raise ScanAlreadyRunningException(
                f"Cannot start {job}: {self._current_job} is already running"
            )
        self._current_job = job
        self._cancel_requested = False
        self._progress = None
        self._last_error = None
        self._last_cancelled = False
        self._started_at = datetime.now(UTC)
        self._finished_at = None

    def start_scan(
        self,
        force_update: bool = False,
        scan_path: Path | None = None,
        metadata_relative_paths: list[str] | None = None,
    ) -> asyncio.Task[Any]:
        """Start a scan in the background.

        Raises:
            ScanAlreadyRunningException: If a scan or refill is active
        """
        self._claim("scan")
        options = ScanOptions(
            scan_path=scan_path,
            force_update=force_update,
            on_progress=self._on_progress,
            check_cancelled=self._is_cancel_requested,
            metadata_relative_paths=metadata_relative_paths,
        )
        logger.info(f"Starting background scan (force_update={force_update})")
        self._task = asyncio.create_task(self._run(lambda: self.scanner.scan(options)))
        return self._task

    def start_refill(self) -> asyncio.Task[Any]:
        """Start the meta_source backfill in the background.

        Raises:
            ScanAlreadyRunningException: If a scan or refill is active
        """
        self._claim("meta source refill")

        async def run_refill() -> dict[str, Any]:
            scan_root = await self.scanner.get_scan_root()
            return await self.refill_service.refill(
                scan_root,
                on_progress=self._on_progress,
                check_cancelled=self._is_cancel_requested,
            )

        self._task = asyncio.create_task(self._run(run_refill))
        return self._task

    def request_cancel(self) -> bool:
        """Ask the active run to stop at its next batch boundary.

        Returns:
            True if a run was active and has been signalled
        """
        if not self.is_running:
            return False
        self._cancel_requested = True
        logger.info(f"Cancellation requested for {self._current_job}")
        return True

    async def wait(self) -> Any:
        """Wait for the active run (if any) and return its result."""
        if self._task is None:
            return None
        return await self._task

    async def stop(self) -> None:
        """Cancel cooperatively and wait for the run to wind down (shutdown hook)."""
        if self.request_cancel():
            await asyncio.gather(self._task, return_exceptions=True)  # type: ignore[arg-type]

    def get_status(self) -> dict[str, Any]:
        """Get worker status for monitoring/UI."""
        return {
            "running": self.is_running,
            "job": self._current_job,
            "cancel_requested": self._cancel_requested,
            "progress": self._progress.to_dict() if self._progress else None,
            "last_result": self._last_result,
            "last_error": self._last_error,
            "cancelled": self._last_cancelled,
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "finished_at": self._finished_at.isoformat() if self._finished_at else None,
        }

    # =========================================================================
    # CALLBACKS & RUNNER
    # =========================================================================

    def _on_progress(self, progress: ScanProgress) -> None:
        self._progress = progress

    def _is_cancel_requested(self) -> bool:
        return self._cancel_requested

    async def _run(self, job: Callable[[], Awaitable[Any]]) -> Any:
        try:
            outcome = await job()
            self._last_result = (
                outcome.to_dict() if isinstance(outcome, ScanResult) else outcome
            )
            return outcome
        except ScanCancelledException as e:
            self._last_cancelled = True
            self._last_result = e.result.to_dict() if e.result else None
            logger.info(f"{self._current_job} cancelled")
            return e.result
        except Exception as e:
            self._last_error = str(e)
            logger.error(f"{self._current_job} failed: {e}", exc_info=True)
            raise
        finally:
            self._finished_at = datetime.now(UTC)
