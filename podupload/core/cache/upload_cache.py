"""
In-memory upload cache.

Maps file fingerprints to their ``UploadTask``. The cache lives for the
process lifetime and is not persisted: resumability is session-scoped.
Concurrency relies on the single-threaded event loop; every mutation is a
read-modify-write on one entry with no await in between.
"""
import asyncio
import time
from typing import TYPE_CHECKING, Dict, Iterator, List, Optional

from ..logging import get_logger

if TYPE_CHECKING:
    from ..upload.models import UploadTask

DEFAULT_RETENTION = 24 * 3600.0
DEFAULT_SWEEP_INTERVAL = 3600.0


class UploadCache:
    """
    Fingerprint -> UploadTask map with a periodic sweep.

    Example:
        >>> cache = UploadCache(retention=3600)
        >>> cache.set(task.fingerprint, task)
        >>> cache.get_progress(task.fingerprint)
        0
    """

    def __init__(
        self,
        retention: float = DEFAULT_RETENTION,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL
    ):
        """
        Initialize the cache.

        Args:
            retention: Seconds a terminal task is kept after its last activity
            sweep_interval: Seconds between automatic sweeps
        """
        self._tasks: Dict[str, 'UploadTask'] = {}
        self._retention = retention
        self._sweep_interval = sweep_interval
        self._sweeper: Optional[asyncio.Task] = None
        self._logger = get_logger('podupload.cache')

    def get(self, fingerprint: str) -> Optional['UploadTask']:
        return self._tasks.get(fingerprint)

    def set(self, fingerprint: str, task: 'UploadTask') -> None:
        if task.fingerprint != fingerprint:
            raise ValueError(
                f"Task fingerprint {task.fingerprint!r} does not match key {fingerprint!r}"
            )
        self._tasks[fingerprint] = task

    def delete(self, fingerprint: str) -> bool:
        return self._tasks.pop(fingerprint, None) is not None

    def clear(self) -> None:
        self._tasks.clear()

    def __contains__(self, fingerprint: str) -> bool:
        return fingerprint in self._tasks

    def __len__(self) -> int:
        return len(self._tasks)

    def __iter__(self) -> Iterator['UploadTask']:
        return iter(list(self._tasks.values()))

    def get_progress(self, fingerprint: str) -> int:
        """Progress of a task without blocking; 0 for unknown fingerprints."""
        task = self._tasks.get(fingerprint)
        return task.progress if task else 0

    def is_uploading(self, fingerprint: str) -> bool:
        task = self._tasks.get(fingerprint)
        return task is not None and task.status.is_active

    def is_uploaded(self, fingerprint: str) -> bool:
        task = self._tasks.get(fingerprint)
        return task is not None and task.is_completed

    def get_uploaded_url(self, fingerprint: str) -> Optional[str]:
        task = self._tasks.get(fingerprint)
        if task is not None and task.is_completed:
            return task.url
        return None

    def sweep(self, now: Optional[float] = None) -> List[str]:
        """
        Remove terminal tasks idle for longer than the retention window.

        Args:
            now: Reference timestamp (defaults to the current time)

        Returns:
            Fingerprints that were removed
        """
        now = time.time() if now is None else now
        expired = [
            fingerprint
            for fingerprint, task in self._tasks.items()
            if task.status.is_terminal and now - task.last_activity > self._retention
        ]
        for fingerprint in expired:
            del self._tasks[fingerprint]

        if expired:
            self._logger.info(f"Swept {len(expired)} expired upload task(s), {len(self._tasks)} remain")
        return expired

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    def start_sweeper(self) -> None:
        """Schedule ``sweep()`` every ``sweep_interval`` seconds on the running loop."""
        if self.sweeper_running:
            return
        self._sweeper = asyncio.get_running_loop().create_task(self._sweep_loop())
        self._logger.debug(f"Cache sweeper started (interval {self._sweep_interval:.0f}s)")

    async def stop_sweeper(self) -> None:
        """Cancel the periodic sweep and wait for it to finish."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.sweep()
