"""
Upload handles.

An ``UploadHandle`` is returned by ``UploadCoordinator.submit``: it can be
awaited for the resource URL, iterated for progress, and paused.
"""
import asyncio
from typing import TYPE_CHECKING, AsyncIterator, Callable, Optional

if TYPE_CHECKING:
    from .coordinator import UploadCoordinator


class ProgressRelay:
    """Forwards progress to one caller, dropping values that do not increase."""

    def __init__(self, callback: Optional[Callable[[int], None]] = None):
        self._callback = callback
        self._last = 0

    @property
    def last(self) -> int:
        return self._last

    def __call__(self, percent: int) -> None:
        if percent <= self._last:
            return
        self._last = percent
        if self._callback is not None:
            self._callback(percent)


class ProgressStream:
    """
    Async iterator over the progress values of one upload.

    Example:
        >>> async for percent in handle.progress():
        ...     print(f"{percent}%")
    """

    _CLOSED = object()

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    def push(self, percent: int) -> None:
        if not self._closed:
            self._queue.put_nowait(percent)

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(self._CLOSED)

    def __aiter__(self) -> AsyncIterator[int]:
        return self

    async def __anext__(self) -> int:
        item = await self._queue.get()
        if item is self._CLOSED:
            raise StopAsyncIteration
        return item


class UploadHandle:
    """Awaitable result of a submitted upload."""

    def __init__(
        self,
        fingerprint: str,
        future: 'asyncio.Future[str]',
        stream: ProgressStream,
        coordinator: 'UploadCoordinator'
    ):
        self.fingerprint = fingerprint
        self._future = future
        self._stream = stream
        self._coordinator = coordinator

    def __await__(self):
        return self._future.__await__()

    async def result(self) -> str:
        return await self._future

    def progress(self) -> ProgressStream:
        return self._stream

    def done(self) -> bool:
        return self._future.done()

    @property
    def percent(self) -> int:
        return self._coordinator.get_progress(self.fingerprint)

    def pause(self) -> bool:
        """
        Pause the transfer behind this handle.

        Awaiting the handle then raises ``UploadPausedError``. Returns False
        when this handle is attached to another caller's transfer or the
        transfer has already finished.
        """
        return self._coordinator.pause(self.fingerprint)

    def __repr__(self) -> str:
        state = 'done' if self.done() else 'pending'
        return f"<UploadHandle {self.fingerprint[:12]} {state}>"
