"""
High-level upload client.

Usage:
    >>> async with UploadClient(APIConfig(base_url='https://app.example/api')) as client:
    ...     url = await client.upload('episode.mp3', 'podcast-audio', on_progress=print)
"""
from pathlib import Path
from typing import Callable, Optional, Union

from .core.api import APIConfig, StorageAPIClient
from .core.cache import UploadCache
from .core.logging import get_logger
from .core.upload import (
    UploadConfig,
    UploadCoordinator,
    UploadHandle,
    UploadProgress,
    UploadSource
)
from .core.upload.protocols import DirectUploadStrategy
from .core.upload.services import ConnectivityProbe
from .core.upload.strategies import (
    FallbackUploadStrategy,
    SignedUploadStrategy,
    WholeFileStrategy,
    source_fingerprint
)

FileLike = Union[str, Path, UploadSource]


class UploadClient:
    """
    Async client owning every piece of the upload subsystem.

    Creates and closes the HTTP session, starts and stops the cache sweeper,
    and exposes the coordinator's operations for file paths.

    Example:
        >>> client = UploadClient(config, signed_uploads=True)
        >>> await client.start()
        >>> handle = client.submit('episode.mp3', 'podcast-audio')
        >>> async for percent in handle.progress():
        ...     print(percent)
        >>> url = await handle
        >>> await client.close()
    """

    def __init__(
        self,
        config: Optional[APIConfig] = None,
        upload_config: Optional[UploadConfig] = None,
        *,
        cache: Optional[UploadCache] = None,
        signed_uploads: bool = False,
        offline_signal: Optional[Callable[[], bool]] = None
    ):
        """
        Initialize the client.

        Args:
            config: Boundary configuration (URL, auth, timeouts, retry)
            upload_config: Thresholds, chunk size, concurrency and cache settings
            cache: Optional shared cache; a private one is created otherwise
            signed_uploads: Send small files through a signed storage target,
                falling back to the boundary's own upload endpoint
            offline_signal: Callable returning True while the host is offline
        """
        self._config = config or APIConfig.default()
        self._upload_config = upload_config or UploadConfig()
        self._cache = cache or UploadCache(
            retention=self._upload_config.cache_retention,
            sweep_interval=self._upload_config.sweep_interval
        )
        self._signed_uploads = signed_uploads
        self._offline_signal = offline_signal
        self._logger = get_logger('podupload.client')

        self._api: Optional[StorageAPIClient] = None
        self._probe: Optional[ConnectivityProbe] = None
        self._coordinator: Optional[UploadCoordinator] = None

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> 'UploadClient':
        """Open the HTTP session and start the cache sweeper."""
        if self._coordinator is not None:
            return self

        self._api = StorageAPIClient(self._config)
        await self._api.__aenter__()
        self._probe = ConnectivityProbe(
            self._api,
            timeout=self._config.timeout.probe,
            offline_signal=self._offline_signal
        )
        self._coordinator = UploadCoordinator(
            self._api,
            cache=self._cache,
            config=self._upload_config,
            retry_config=self._config.retry,
            probe=self._probe,
            direct_strategy=self._direct_strategy(self._api)
        )
        self._cache.start_sweeper()
        self._logger.debug(f"Upload client started for {self._config.base_url}")
        return self

    def _direct_strategy(self, api: StorageAPIClient) -> DirectUploadStrategy:
        if not self._signed_uploads:
            return WholeFileStrategy(api)
        return FallbackUploadStrategy([SignedUploadStrategy(api), WholeFileStrategy(api)])

    async def __aenter__(self) -> 'UploadClient':
        return await self.start()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def close(self):
        """Pause running transfers, stop the sweeper and close the session."""
        if self._coordinator is not None:
            await self._coordinator.aclose()
            self._coordinator = None
        await self._cache.stop_sweeper()
        if self._api is not None:
            await self._api.close()
            self._api = None

    @property
    def coordinator(self) -> UploadCoordinator:
        if self._coordinator is None:
            raise RuntimeError("UploadClient is not started; use 'async with' or await start()")
        return self._coordinator

    @property
    def cache(self) -> UploadCache:
        return self._cache

    # =========================================================================
    # Uploads
    # =========================================================================

    @staticmethod
    def to_source(file: FileLike) -> UploadSource:
        if isinstance(file, UploadSource):
            return file
        return UploadSource.from_path(file)

    async def upload(
        self,
        file: FileLike,
        destination: str,
        on_progress: Optional[Callable[[int], None]] = None,
        identity: Optional[str] = None
    ) -> str:
        """
        Upload a file and return its resource URL.

        Args:
            file: Path or prepared UploadSource
            destination: Destination folder or bucket
            on_progress: Called with increasing percentages
            identity: Optional caller identity namespacing the destination
        """
        return await self.coordinator.start_upload(
            self.to_source(file), destination, on_progress, identity
        )

    def submit(
        self,
        file: FileLike,
        destination: str,
        identity: Optional[str] = None
    ) -> UploadHandle:
        """Start an upload in the background and return its handle."""
        return self.coordinator.submit(self.to_source(file), destination, identity)

    def pause(self, file: FileLike) -> bool:
        return self.coordinator.pause(self.fingerprint(file))

    async def is_online(self) -> bool:
        if self._probe is None:
            raise RuntimeError("UploadClient is not started; use 'async with' or await start()")
        return await self._probe.is_online()

    # =========================================================================
    # Queries
    # =========================================================================

    def fingerprint(self, file: FileLike) -> str:
        return source_fingerprint(self.to_source(file))

    def get_progress(self, file: FileLike) -> int:
        return self._cache.get_progress(self.fingerprint(file))

    def get_status(self, file: FileLike) -> Optional[UploadProgress]:
        """Snapshot of the task for ``file``, or None if it is unknown."""
        task = self._cache.get(self.fingerprint(file))
        return UploadProgress.of(task) if task else None

    def is_uploading(self, file: FileLike) -> bool:
        return self._cache.is_uploading(self.fingerprint(file))

    def is_uploaded(self, file: FileLike) -> bool:
        return self._cache.is_uploaded(self.fingerprint(file))

    def get_uploaded_url(self, file: FileLike) -> Optional[str]:
        return self._cache.get_uploaded_url(self.fingerprint(file))
