"""Direct upload service: one request per file."""
from typing import Callable, Optional

from ..models import UploadSource
from ..protocols import DirectUploadStrategy
from ...api.retry import RetryPolicy
from ...api.retry.retry_strategy import BeforeRetryHook
from ...logging import get_logger


class DirectUploader:
    """
    Sends a whole file through a direct upload strategy.

    Byte progress is mapped to 0..``reserve`` percent; the remainder is
    granted only once the boundary confirms the resource.
    """

    def __init__(
        self,
        strategy: DirectUploadStrategy,
        retry_policy: RetryPolicy,
        reserve: int = 95
    ):
        self._strategy = strategy
        self._retry = retry_policy
        self._reserve = reserve
        self._logger = get_logger('podupload.upload.direct')

    @property
    def strategy(self) -> DirectUploadStrategy:
        return self._strategy

    async def upload(
        self,
        source: UploadSource,
        data: bytes,
        folder: str,
        object_name: str,
        on_progress: Optional[Callable[[int], None]] = None,
        before_retry: Optional[BeforeRetryHook] = None
    ) -> str:
        """
        Upload ``data`` as one object.

        Rejections (4xx) fail immediately; network-class failures are retried
        by the policy before escaping.

        Returns:
            Resource URL reported by the boundary
        """
        total = len(data)

        def on_bytes(sent: int):
            if on_progress and total:
                on_progress(min(round(sent / total * 100), self._reserve))

        size_mb = total / (1024 * 1024)
        self._logger.info(
            f"Direct upload of {source.name} ({size_mb:.2f} MB) as {folder}/{object_name} "
            f"via '{self._strategy.name}'"
        )
        return await self._retry.run(
            lambda: self._strategy.upload(object_name, data, folder, source, on_bytes),
            description=f"direct upload of {source.name}",
            before_retry=before_retry
        )
