"""Background scan dispatch.

Registry queries block (``adb`` subprocesses, file reads), so scans run on a
small bounded thread pool. Results come back to the event loop, which is
the only place session state is mutated.

Each scan request is tagged with an epoch issued by ``ScanSession.begin()``.
A completion is applied only while its epoch is still the latest one; a scan
that was superseded by a newer request (or by a reset) is discarded.

Lifecycle::

    idle -> scanning -> ready | error -> idle (reset)
"""

import asyncio
import functools
import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from enum import Enum
from typing import Any, TypeVar

from permchecker.errors import PermissionCheckerError
from permchecker.services.engine.models import AppPermissionRecord, FilterConfig, ScanAggregate
from permchecker.services.permission_checker import PermissionCheckerService

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_SCAN_WORKERS = 2


class ScanState(str, Enum):
    """Caller-visible scan lifecycle state."""

    IDLE = "idle"
    SCANNING = "scanning"
    READY = "ready"
    ERROR = "error"


class ScanSession:
    """Holds the latest scan outcome for one caller.

    Not thread-safe; it is only touched from the event loop.
    """

    def __init__(self):
        self.epoch = 0
        self.state = ScanState.IDLE
        self.records: list[AppPermissionRecord] = []
        self.aggregate: ScanAggregate | None = None
        self.error: PermissionCheckerError | None = None
        self.started_at: datetime | None = None
        self.completed_at: datetime | None = None

    def begin(self) -> int:
        """Start a new scan and return its epoch.

        Any scan still in flight is superseded.
        """
        self.epoch += 1
        self.state = ScanState.SCANNING
        self.error = None
        self.started_at = datetime.utcnow()
        self.completed_at = None
        logger.info(f"Scan {self.epoch} started")
        return self.epoch

    def is_current(self, epoch: int) -> bool:
        return epoch == self.epoch and self.state == ScanState.SCANNING

    def complete(
        self,
        epoch: int,
        records: list[AppPermissionRecord],
        aggregate: ScanAggregate,
    ) -> bool:
        """Apply a finished scan. Returns False if the result was stale."""
        if not self.is_current(epoch):
            logger.info(f"Discarding stale scan result (epoch {epoch}, current {self.epoch})")
            return False
        self.records = list(records)
        self.aggregate = aggregate
        self.state = ScanState.READY
        self.completed_at = datetime.utcnow()
        logger.info(f"Scan {epoch} ready: {aggregate.total_apps} apps, {aggregate.total_genuine_risk} risks")
        return True

    def fail(self, epoch: int, error: PermissionCheckerError) -> bool:
        """Record a failed scan. Returns False if the failure was stale."""
        if not self.is_current(epoch):
            logger.info(f"Discarding stale scan failure (epoch {epoch}, current {self.epoch}): {error}")
            return False
        self.error = error
        self.state = ScanState.ERROR
        self.completed_at = datetime.utcnow()
        return True

    def reset(self) -> None:
        """Return to idle, dropping results and any scan in flight."""
        self.epoch += 1
        self.state = ScanState.IDLE
        self.records = []
        self.aggregate = None
        self.error = None
        self.started_at = None
        self.completed_at = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "epoch": self.epoch,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "aggregate": self.aggregate.to_dict() if self.aggregate else None,
            "error": self.error.to_dict() if self.error else None,
        }


class ScanDispatcher:
    """Runs blocking scan work on a bounded worker pool."""

    def __init__(self, max_workers: int = DEFAULT_SCAN_WORKERS):
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="permscan")

    async def run(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """Run ``func`` on the pool and await its result on the current loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(func, *args, **kwargs))

    async def run_scan(
        self,
        session: ScanSession,
        service: PermissionCheckerService,
        epoch: int,
        filter_config: FilterConfig | None = None,
        top_n: int | None = None,
    ) -> bool:
        """Run a full scan for ``epoch`` and apply its outcome to ``session``.

        Returns:
            True if the outcome was applied, False if it was superseded.
        """
        try:
            records, aggregate = await self.run(service.summarize, filter_config, top_n)
        except PermissionCheckerError as e:
            logger.error(f"Scan {epoch} failed: {e}")
            return session.fail(epoch, e)
        except Exception as e:
            logger.error(f"Scan {epoch} failed unexpectedly: {e}")
            return session.fail(epoch, PermissionCheckerError(f"Scan failed: {e}"))
        return session.complete(epoch, records, aggregate)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
