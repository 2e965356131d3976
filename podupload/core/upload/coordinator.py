"""
Upload coordinator.

Orchestrates the upload process using injected dependencies.
Follows Dependency Inversion Principle - depends on abstractions, not concretions.
"""
import asyncio
import time
from typing import Callable, Dict, Iterable, List, Optional, Set

from .handle import ProgressRelay, ProgressStream, UploadHandle
from .models import ChunkInfo, UploadConfig, UploadMethod, UploadSource, UploadStatus, UploadTask
from .protocols import (
    ChunkingStrategy,
    ConnectivityProbeProtocol,
    DirectUploadStrategy,
    StorageBoundary
)
from .services import (
    AsyncFileReader,
    ChunkUploader,
    ConnectivityProbe,
    DirectUploader,
    FileValidator,
    Finalizer
)
from .strategies import (
    FixedSizeChunkingStrategy,
    WholeFileStrategy,
    namespaced_folder,
    new_batch_id,
    object_name_for,
    source_fingerprint,
    target_name_for
)
from ..api.config import RetryConfig
from ..api.events import EventEmitter
from ..api.retry import RetryPolicy
from ..api.retry.retry_strategy import BeforeRetryHook
from ..cache import UploadCache
from ..exceptions import (
    IncompleteBatchError,
    OfflineError,
    UploadError,
    UploadPausedError,
    UploadStalledError
)
from ..logging import get_logger

logger = get_logger('podupload.upload.coordinator')

ProgressCallback = Callable[[int], None]


class UploadCoordinator:
    """
    Coordinates the file upload process.

    Uses dependency injection for all components, making it:
    - Testable (stub boundary, forced connectivity probe)
    - Extensible (swap chunking or direct-upload strategies)
    - Maintainable (single responsibility per service)

    The upload cache is the only state shared between calls. Task claims
    happen before the first await, so a second caller for the same
    fingerprint always attaches to the first caller's transfer.

    Example:
        >>> coordinator = UploadCoordinator(StorageAPIClient(config))
        >>> url = await coordinator.start_upload(source, 'podcasts', print)
    """

    def __init__(
        self,
        boundary: StorageBoundary,
        cache: Optional[UploadCache] = None,
        config: Optional[UploadConfig] = None,
        retry_config: Optional[RetryConfig] = None,
        probe: Optional[ConnectivityProbeProtocol] = None,
        direct_strategy: Optional[DirectUploadStrategy] = None,
        chunking_strategy: Optional[ChunkingStrategy] = None,
        reader_factory: Callable[[], AsyncFileReader] = AsyncFileReader
    ):
        """
        Initialize upload coordinator.

        Args:
            boundary: Remote storage boundary
            cache: Upload cache (a private one, swept while uploads run, is created if omitted)
            config: Upload thresholds, concurrency and polling settings
            retry_config: Backoff settings shared by every outbound call
            probe: Connectivity probe (defaults to pinging the boundary)
            direct_strategy: Strategy for single-request uploads
            chunking_strategy: Strategy for splitting large files
            reader_factory: Creates one file reader per transfer; readers hold
                an open handle and are never shared between uploads
        """
        self._config = config or UploadConfig()
        self._owns_cache = cache is None
        self._cache = cache or UploadCache(
            retention=self._config.cache_retention,
            sweep_interval=self._config.sweep_interval
        )
        self._retry = RetryPolicy(retry_config or RetryConfig())
        self._probe = probe or ConnectivityProbe(boundary)
        self._chunking = chunking_strategy or FixedSizeChunkingStrategy(self._config.chunk_size)
        self._direct = DirectUploader(
            direct_strategy or WholeFileStrategy(boundary),
            self._retry,
            reserve=self._config.progress_reserve
        )
        self._chunk_uploader = ChunkUploader(boundary, self._retry)
        self._finalizer = Finalizer(boundary, self._retry)
        self._reader_factory = reader_factory
        self._validator = FileValidator()
        self._events = EventEmitter()
        self._transfers: Dict[str, asyncio.Task] = {}
        self._pause_requests: Set[str] = set()

    @property
    def cache(self) -> UploadCache:
        return self._cache

    @property
    def config(self) -> UploadConfig:
        return self._config

    # Queries

    def get_task(self, fingerprint: str) -> Optional[UploadTask]:
        return self._cache.get(fingerprint)

    def get_progress(self, fingerprint: str) -> int:
        return self._cache.get_progress(fingerprint)

    def is_uploading(self, fingerprint: str) -> bool:
        return self._cache.is_uploading(fingerprint)

    def is_uploaded(self, fingerprint: str) -> bool:
        return self._cache.is_uploaded(fingerprint)

    def get_uploaded_url(self, fingerprint: str) -> Optional[str]:
        return self._cache.get_uploaded_url(fingerprint)

    def subscribe(self, fingerprint: str, callback: Callable[[UploadTask], None]) -> Callable[[], None]:
        """
        Observe every state change of a task.

        Returns:
            Function that removes the subscription
        """
        self._events.on(fingerprint, callback)
        return lambda: self._events.off(fingerprint, callback)

    # Entry points

    async def start_upload(
        self,
        source: UploadSource,
        destination: str,
        on_progress: Optional[ProgressCallback] = None,
        identity: Optional[str] = None
    ) -> str:
        """
        Upload a file once per fingerprint and return its resource URL.

        Args:
            source: File to upload
            destination: Destination folder or bucket
            on_progress: Called with increasing percentages, 100 only on success
            identity: Optional caller identity namespacing the destination

        Returns:
            Resource URL

        Raises:
            OfflineError: No connectivity before starting or before a retry
            UploadPausedError: The transfer was paused via ``pause``
            UploadStalledError: An attached wait saw no activity for too long
            UploadError: Any other failure from the taxonomy
        """
        if self._owns_cache:
            self._cache.start_sweeper()

        fp = source_fingerprint(source)
        folder = namespaced_folder(destination, identity)
        task = self._cache.get(fp)

        if task is not None:
            if task.is_completed:
                logger.info(f"{source.name} already uploaded; returning cached URL")
                if on_progress:
                    on_progress(100)
                return task.url
            if task.status.is_active:
                logger.info(f"{source.name} is already uploading; attaching to the running transfer")
                return await self._attach(fp, on_progress)

        resume = self._claim(fp, source, folder, task)
        return await self._own(fp, source, folder, resume, on_progress)

    def submit(
        self,
        source: UploadSource,
        destination: str,
        identity: Optional[str] = None
    ) -> UploadHandle:
        """
        Start an upload in the background.

        Returns:
            Handle that can be awaited for the URL and iterated for progress
        """
        stream = ProgressStream()
        future = asyncio.ensure_future(
            self.start_upload(source, destination, stream.push, identity)
        )
        future.add_done_callback(lambda _: stream.close())
        return UploadHandle(source_fingerprint(source), future, stream, self)

    def pause(self, fingerprint: str) -> bool:
        """
        Pause an in-flight transfer.

        Confirmed chunks are kept, so the next ``start_upload`` for the same
        file sends only the rest.

        Returns:
            True if a running transfer was cancelled
        """
        transfer = self._transfers.get(fingerprint)
        if transfer is None or transfer.done():
            return False
        logger.info(f"Pausing upload {fingerprint[:12]}")
        self._pause_requests.add(fingerprint)
        transfer.cancel()
        return True

    async def aclose(self) -> None:
        """Pause every running transfer and wait for them to settle."""
        transfers = [t for t in self._transfers.values() if not t.done()]
        for fp in list(self._transfers):
            self.pause(fp)
        if transfers:
            await asyncio.gather(*transfers, return_exceptions=True)
        if self._owns_cache:
            await self._cache.stop_sweeper()

    # Task ownership

    def _claim(
        self,
        fp: str,
        source: UploadSource,
        folder: str,
        task: Optional[UploadTask]
    ) -> bool:
        """
        Create or re-arm the task for this caller. Must not await.

        Returns:
            True if the existing batch is resumed
        """
        if task is None:
            task = UploadTask(fingerprint=fp, file_size=source.size)
            self._cache.set(fp, task)
            return False

        if (
            task.status in (UploadStatus.PAUSED, UploadStatus.ERROR)
            and task.is_resumable
            and task.destination == folder
            and task.file_size == source.size
        ):
            logger.info(
                f"Resuming {source.name}: {task.uploaded_chunks}/{len(task.chunk_records)} "
                f"chunks already confirmed in {task.batch_id}"
            )
            task.mark_initializing()
            self._notify(task)
            return True

        logger.debug(f"Restarting {source.name} from scratch (was {task.status.value})")
        task.file_size = source.size
        task.reset()
        self._notify(task)
        return False

    async def _own(
        self,
        fp: str,
        source: UploadSource,
        folder: str,
        resume: bool,
        on_progress: Optional[ProgressCallback]
    ) -> str:
        relay = ProgressRelay(on_progress)

        def relay_task(task: UploadTask):
            relay(task.progress)

        self._events.on(fp, relay_task)
        transfer = asyncio.ensure_future(self._run(fp, source, folder, resume))
        self._transfers[fp] = transfer
        try:
            url = await transfer
            relay(100)
            return url
        except asyncio.CancelledError:
            task = self._cache.get(fp)
            if task is not None and task.status.is_active:
                self._pause(task, UploadPausedError(f"Upload of {source.name} was paused"))
            if fp not in self._pause_requests:
                raise
            self._pause_requests.discard(fp)
            logger.info(f"Upload of {source.name} paused with {task.progress}% done")
            raise task.exception from None
        finally:
            self._events.off(fp, relay_task)
            if self._transfers.get(fp) is transfer:
                del self._transfers[fp]

    async def _run(self, fp: str, source: UploadSource, folder: str, resume: bool) -> str:
        task = self._cache.get(fp)
        start = time.time()
        try:
            if not resume:
                self._validator.validate_source(source, self._config.max_file_size)

            if not await self._probe.is_online():
                raise OfflineError("No network connection; upload not started")

            method = task.method if resume else self._config.choose_method(source)
            task.set_method(method)
            task.destination = folder
            task.mark_uploading()
            self._notify(task)

            size_mb = source.size / (1024 * 1024)
            logger.info(f"Uploading {source.name} ({size_mb:.2f} MB) via {method.value} to {folder}")

            if method == UploadMethod.DIRECT:
                url = await self._upload_direct(task, source, folder)
            else:
                url = await self._upload_chunked(task, source, folder)

            task.mark_completed(url)
            self._notify(task)
            logger.info(f"Upload of {source.name} completed in {time.time() - start:.2f}s: {url}")
            return url
        except asyncio.CancelledError:
            self._pause(task, UploadPausedError(f"Upload of {source.name} was paused"))
            raise
        except OfflineError as e:
            if task.status == UploadStatus.UPLOADING or task.is_resumable:
                logger.warning(f"Upload of {source.name} paused: {e}")
                self._pause(task, e)
            else:
                logger.error(f"Upload of {source.name} not started: {e}")
                task.mark_error(e)
                self._notify(task)
            raise
        except Exception as e:
            logger.error(f"Upload of {source.name} failed: {e}")
            task.mark_error(e)
            self._notify(task)
            raise

    def _pause(self, task: UploadTask, error: UploadError) -> None:
        task.mark_paused(error.message)
        task.exception = error
        self._notify(task)

    def _notify(self, task: UploadTask) -> None:
        self._events.emit(task.fingerprint, task)

    def _before_retry(self, task: UploadTask) -> BeforeRetryHook:
        """Retry hook: consume the task's retry budget and re-probe connectivity."""
        budget = self._retry.config.max_task_retries

        async def before_retry(attempt: int, error: BaseException) -> None:
            if task.retries >= budget:
                logger.error(f"Task {task.fingerprint[:12]} used its {budget} retries")
                raise error
            task.retries += 1
            task.touch()
            if not await self._probe.is_online():
                raise OfflineError("Connection lost during upload") from error

        return before_retry

    # Direct path

    async def _upload_direct(self, task: UploadTask, source: UploadSource, folder: str) -> str:
        data = await self._reader_factory().read_all(source)
        task.update_progress(1)
        self._notify(task)

        def on_percent(percent: int):
            if task.update_progress(percent):
                self._notify(task)

        return await self._direct.upload(
            source,
            data,
            folder,
            object_name_for(source.extension),
            on_progress=on_percent,
            before_retry=self._before_retry(task)
        )

    # Chunked path

    async def _upload_chunked(self, task: UploadTask, source: UploadSource, folder: str) -> str:
        chunks = self._chunking.calculate_chunks(source.size)
        total = len(chunks)

        if task.batch_id is None or len(task.chunk_records) != total:
            task.init_chunks(total)
            task.batch_id = new_batch_id()
            task.target_name = target_name_for(source.stem)

        pending = [chunks[record.index] for record in task.pending_chunks]
        avg_chunk_kb = source.size / total / 1024 if total else 0
        logger.info(
            f"Batch {task.batch_id}: {total} chunks (avg {avg_chunk_kb:.1f} KB), "
            f"{len(pending)} to send, max {self._config.max_concurrent_chunks} parallel"
        )

        await self._upload_chunks(task, source, folder, pending, total)

        if not task.all_chunks_uploaded:
            raise UploadError(f"Batch {task.batch_id} has unconfirmed chunks; not finalizing")

        try:
            return await self._finalizer.finalize(
                task.batch_id,
                task.target_name,
                total,
                folder,
                before_retry=self._before_retry(task)
            )
        except IncompleteBatchError as e:
            self._forget_chunks(task, e.missing)
            raise

    async def _upload_chunks(
        self,
        task: UploadTask,
        source: UploadSource,
        folder: str,
        pending: List[ChunkInfo],
        total: int
    ) -> None:
        """
        Upload pending chunks with bounded parallelism.

        Chunks are read sequentially from a file handle owned by this
        transfer; uploads run concurrently up to ``max_concurrent_chunks``.
        The first failure cancels the remaining uploads.
        """
        max_parallel = self._config.max_concurrent_chunks
        before_retry = self._before_retry(task)
        reader = self._reader_factory()
        active: set = set()

        try:
            if source.data is None:
                await reader.open_file(source.path)

            for chunk in pending:
                if len(active) >= max_parallel:
                    done, active = await asyncio.wait(active, return_when=asyncio.FIRST_COMPLETED)
                    self._raise_first_failure(done)

                data = await reader.read_range(source, chunk.start, chunk.end)
                active.add(asyncio.ensure_future(
                    self._upload_chunk(task, chunk, total, data, folder, before_retry)
                ))

            if active:
                done, active = await asyncio.wait(active)
                self._raise_first_failure(done)
        finally:
            for upload in active:
                upload.cancel()
            if active:
                await asyncio.gather(*active, return_exceptions=True)
            await reader.close_file()

    async def _upload_chunk(
        self,
        task: UploadTask,
        chunk: ChunkInfo,
        total: int,
        data: bytes,
        folder: str,
        before_retry: BeforeRetryHook
    ) -> None:
        record = task.chunk_records[chunk.index]
        record.chunk_ref = await self._chunk_uploader.upload(
            task.batch_id,
            chunk,
            total,
            data,
            folder,
            record=record,
            before_retry=before_retry
        )
        record.uploaded = True
        percent = round(task.uploaded_chunks / total * self._config.progress_reserve)
        task.touch()
        if task.update_progress(percent):
            self._notify(task)

    @staticmethod
    def _raise_first_failure(done: Iterable[asyncio.Future]) -> None:
        error = None
        for upload in done:
            if upload.cancelled():
                continue
            exc = upload.exception()
            if exc is not None and error is None:
                error = exc
        if error is not None:
            raise error

    @staticmethod
    def _forget_chunks(task: UploadTask, missing: Iterable[int]) -> None:
        """Mark chunks the boundary could not find as not uploaded."""
        indices = set(missing or ())
        for record in task.chunk_records:
            if not indices or record.index in indices:
                record.uploaded = False
                record.chunk_ref = None
        logger.warning(
            f"Batch {task.batch_id} incomplete; {len(task.pending_chunks)} chunk(s) must be re-sent"
        )

    # Attached callers

    async def _attach(self, fp: str, on_progress: Optional[ProgressCallback]) -> str:
        """
        Wait for another caller's transfer, relaying its progress.

        Wakes on every task event and otherwise polls with capped exponential
        backoff. Consecutive idle wake-ups are bounded by
        ``poll_max_iterations``.
        """
        relay = ProgressRelay(on_progress)
        changed = asyncio.Event()

        def on_change(task: UploadTask):
            changed.set()

        self._events.on(fp, on_change)
        delay = self._config.poll_base_delay
        idle = 0
        try:
            while True:
                task = self._cache.get(fp)
                if task is None:
                    raise UploadError(f"Upload {fp[:12]} disappeared from the cache")
                relay(task.progress)
                if task.is_completed:
                    return task.url
                if task.status == UploadStatus.ERROR:
                    raise task.exception or UploadError(task.error or "Upload failed")
                if task.status == UploadStatus.PAUSED:
                    raise task.exception or UploadPausedError(task.error or "Upload paused")

                changed.clear()
                try:
                    await asyncio.wait_for(changed.wait(), timeout=delay)
                    delay = self._config.poll_base_delay
                    idle = 0
                except asyncio.TimeoutError:
                    idle += 1
                    if idle >= self._config.poll_max_iterations:
                        raise UploadStalledError(
                            f"Upload {fp[:12]} made no progress after {idle} checks"
                        )
                    delay = min(delay * 2, self._config.poll_max_delay)
        finally:
            self._events.off(fp, on_change)
