"""
Async storage boundary client.

Talks to the remote object store and its assembly endpoint over HTTP.
Every failure is translated into the upload error taxonomy so callers can
decide between retrying and failing fast.
"""
import asyncio
import time
from contextlib import asynccontextmanager
from typing import Dict, Any, Optional, Callable, AsyncIterator

import aiohttp

from .config import APIConfig
from .errors import BoundaryErrorCodes
from ..exceptions import NetworkError, UploadTimeoutError, InvalidResponseError
from ..logging import get_logger

ByteCallback = Callable[[int], None]

# Slice size used when streaming request bodies
STREAM_BLOCK_SIZE = 64 * 1024


async def iter_with_progress(
    data: bytes,
    on_bytes: Optional[ByteCallback] = None,
    block_size: int = STREAM_BLOCK_SIZE
) -> AsyncIterator[bytes]:
    """Yield ``data`` in slices, reporting the running byte count."""
    view = memoryview(data)
    sent = 0
    for offset in range(0, len(data), block_size):
        block = bytes(view[offset:offset + block_size])
        yield block
        sent += len(block)
        if on_bytes:
            on_bytes(sent)


class StorageAPIClient:
    """
    HTTP implementation of the storage boundary.

    Reuses one aiohttp session for all requests (critical for chunk throughput).

    Example:
        >>> async with StorageAPIClient(APIConfig(base_url='https://app/api')) as api:
        ...     ref = await api.upload_chunk('batch', 0, 3, data, 'podcast-audio')
    """

    def __init__(
        self,
        config: Optional[APIConfig] = None,
        session: Optional[aiohttp.ClientSession] = None
    ):
        """
        Initialize the client.

        Args:
            config: Boundary configuration (defaults if not provided)
            session: Optional shared session; the client closes only sessions it created
        """
        self._config = config or APIConfig.default()
        self._session = session
        self._owns_session = False
        self._logger = get_logger('podupload.api')

    @property
    def config(self) -> APIConfig:
        return self._config

    async def __aenter__(self) -> 'StorageAPIClient':
        await self._get_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(**self._config.get_connector_kwargs())
            self._session = aiohttp.ClientSession(
                connector=connector,
                **self._config.get_session_kwargs()
            )
            self._owns_session = True
        return self._session

    async def close(self):
        """Close session if we own it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
        if self._owns_session:
            self._session = None
            self._owns_session = False

    @asynccontextmanager
    async def _request(self, method: str, url: str, auth: bool = True, **kwargs):
        """Issue a request, translating transport failures."""
        session = await self._get_session()
        if auth:
            kwargs['headers'] = {**self._config.get_auth_headers(), **(kwargs.get('headers') or {})}
        if self._config.proxy:
            kwargs.setdefault('proxy', self._config.proxy.to_aiohttp_proxy())
        try:
            async with session.request(method, url, **kwargs) as response:
                yield response
        except asyncio.TimeoutError as e:
            raise UploadTimeoutError(f"{method} {url} timed out") from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"Network error during {method} {url}: {e}") from e

    async def _read_json(
        self,
        response: aiohttp.ClientResponse,
        batch_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Decode a JSON body, raising the mapped error for failed statuses."""
        try:
            payload = await response.json(content_type=None)
        except (aiohttp.ContentTypeError, ValueError):
            payload = None

        if response.status >= 400:
            body = payload if isinstance(payload, dict) else {}
            error = BoundaryErrorCodes.from_status(response.status, body, batch_id)
            self._logger.debug(f"Boundary answered {response.status}: {error}")
            raise error

        if not isinstance(payload, dict):
            raise InvalidResponseError(
                f"Expected JSON object from {response.url}, got {type(payload).__name__}"
            )
        return payload

    @staticmethod
    def _require(payload: Dict[str, Any], *keys: str) -> str:
        """Return the first non-empty string among ``keys``."""
        for key in keys:
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
        raise InvalidResponseError(f"Response missing {' / '.join(keys)}")

    async def upload_chunk(
        self,
        batch_id: str,
        index: int,
        total_chunks: int,
        data: bytes,
        folder: str,
        on_bytes: Optional[ByteCallback] = None
    ) -> str:
        """
        Upload one chunk of a batch.

        Idempotent per (batch_id, index): the boundary stores a repeated
        chunk under the same key.

        Returns:
            Chunk reference assigned by the boundary
        """
        form = aiohttp.FormData()
        form.add_field('batchId', batch_id)
        form.add_field('chunkIndex', str(index))
        form.add_field('totalChunks', str(total_chunks))
        form.add_field('folder', folder)
        form.add_field(
            'chunk',
            iter_with_progress(data, on_bytes),
            filename=f"{batch_id}_chunk_{index}",
            content_type='application/octet-stream'
        )

        start = time.time()
        async with self._request('POST', self._config.url_for('/uploads/chunk'), data=form) as response:
            payload = await self._read_json(response)
        self._logger.debug(
            f"Chunk {index}/{total_chunks} of {batch_id} stored in {time.time() - start:.2f}s"
        )
        return payload.get('chunkRef') or f"{batch_id}:{index}"

    async def upload_whole(
        self,
        object_name: str,
        data: bytes,
        folder: str,
        mime_type: Optional[str] = None,
        on_bytes: Optional[ByteCallback] = None
    ) -> str:
        """
        Upload an entire file in one request.

        Returns:
            URL of the stored resource
        """
        form = aiohttp.FormData()
        form.add_field('objectName', object_name)
        form.add_field('folder', folder)
        form.add_field(
            'file',
            iter_with_progress(data, on_bytes),
            filename=object_name,
            content_type=mime_type or 'application/octet-stream'
        )

        async with self._request('POST', self._config.url_for('/uploads'), data=form) as response:
            payload = await self._read_json(response)
        return self._require(payload, 'resourceUrl', 'url')

    async def finalize_batch(
        self,
        batch_id: str,
        total_chunks: int,
        target_name: str,
        folder: str
    ) -> str:
        """
        Ask the assembly endpoint to combine a batch.

        The boundary verifies that exactly ``total_chunks`` chunks tagged with
        ``batch_id`` exist; otherwise it answers "incomplete".

        Returns:
            URL of the assembled resource
        """
        body = {
            'batchId': batch_id,
            'totalChunks': total_chunks,
            'targetName': target_name,
            'folder': folder,
        }
        async with self._request('POST', self._config.url_for('/upload/finalize'), json=body) as response:
            payload = await self._read_json(response, batch_id)
        return self._require(payload, 'resourceUrl', 'secure_url')

    async def request_signature(
        self,
        object_name: str,
        folder: str,
        file_size: int,
        mime_type: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Obtain a signed upload target for a direct-to-storage post.

        Returns:
            Dict with 'upload_url' and 'fields' (form fields to send with the file)
        """
        body = {
            'objectName': object_name,
            'folder': folder,
            'fileSize': file_size,
            'mimeType': mime_type,
        }
        async with self._request('POST', self._config.url_for('/uploads/signature'), json=body) as response:
            payload = await self._read_json(response)
        fields = payload.get('fields') or {}
        if not isinstance(fields, dict):
            raise InvalidResponseError("Signature response has malformed fields")
        return {
            'upload_url': self._require(payload, 'uploadUrl'),
            'fields': {str(k): str(v) for k, v in fields.items()},
        }

    async def post_signed(
        self,
        upload_url: str,
        fields: Dict[str, str],
        object_name: str,
        data: bytes,
        mime_type: Optional[str] = None,
        on_bytes: Optional[ByteCallback] = None
    ) -> str:
        """
        Post a file straight to the storage provider using a signed target.

        Credentials travel only inside ``fields``; the boundary's
        authorization header is not sent to the third party.

        Returns:
            URL of the stored resource
        """
        form = aiohttp.FormData()
        for key, value in fields.items():
            form.add_field(key, value)
        form.add_field(
            'file',
            iter_with_progress(data, on_bytes),
            filename=object_name,
            content_type=mime_type or 'application/octet-stream'
        )
        async with self._request('POST', upload_url, auth=False, data=form) as response:
            payload = await self._read_json(response)
        return self._require(payload, 'resourceUrl', 'secure_url')

    async def ping(self) -> None:
        """
        Minimal reachability round trip.

        Raises:
            NetworkError: If the boundary cannot be reached in time
        """
        url = self._config.url_for(self._config.probe_path)
        async with self._request('HEAD', url, timeout=self._config.timeout.probe_timeout()) as response:
            if response.status >= 500:
                raise NetworkError(f"Probe answered {response.status}", response.status)
