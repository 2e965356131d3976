"""
Direct (single-request) upload strategies.

``WholeFileStrategy`` posts the file to the boundary. ``SignedUploadStrategy``
asks the boundary for a signed target and posts straight to storage.
``FallbackUploadStrategy`` chains strategies so an alternative path is an
explicit, configured choice rather than hidden retry logic.
"""
from typing import Optional, Sequence

from ..models import UploadSource
from ..protocols import ByteCallback, DirectUploadStrategy, StorageBoundary, SignedUploadBoundary
from ...exceptions import InvalidResponseError
from ...logging import get_logger


class WholeFileStrategy:
    """Upload through the boundary's whole-file endpoint."""

    name = 'whole'

    def __init__(self, boundary: StorageBoundary):
        self._boundary = boundary

    async def upload(
        self,
        object_name: str,
        data: bytes,
        folder: str,
        source: UploadSource,
        on_bytes: Optional[ByteCallback] = None
    ) -> str:
        return await self._boundary.upload_whole(
            object_name, data, folder, mime_type=source.mime_type, on_bytes=on_bytes
        )


class SignedUploadStrategy:
    """Request a signed target from the boundary, then post to storage directly."""

    name = 'signed'

    def __init__(self, boundary: SignedUploadBoundary):
        self._boundary = boundary

    async def upload(
        self,
        object_name: str,
        data: bytes,
        folder: str,
        source: UploadSource,
        on_bytes: Optional[ByteCallback] = None
    ) -> str:
        signature = await self._boundary.request_signature(
            object_name, folder, len(data), source.mime_type
        )
        return await self._boundary.post_signed(
            signature['upload_url'],
            signature['fields'],
            object_name,
            data,
            mime_type=source.mime_type,
            on_bytes=on_bytes
        )


class FallbackUploadStrategy:
    """
    Try strategies in order, moving on only after a transient failure.

    Rejections (unauthorized, too large) stop the chain immediately: another
    path would be refused for the same reason.
    """

    name = 'fallback'

    def __init__(self, strategies: Sequence[DirectUploadStrategy]):
        if not strategies:
            raise ValueError("FallbackUploadStrategy needs at least one strategy")
        self._strategies = list(strategies)
        self._logger = get_logger('podupload.upload.direct')

    async def upload(
        self,
        object_name: str,
        data: bytes,
        folder: str,
        source: UploadSource,
        on_bytes: Optional[ByteCallback] = None
    ) -> str:
        last_error: Optional[Exception] = None
        for strategy in self._strategies:
            try:
                return await strategy.upload(object_name, data, folder, source, on_bytes)
            except Exception as e:
                if not (getattr(e, 'retryable', False) or isinstance(e, InvalidResponseError)):
                    raise
                self._logger.warning(f"Direct strategy '{strategy.name}' failed: {e}")
                last_error = e
        raise last_error
