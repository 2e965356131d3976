"""
Chunk upload service.

Handles uploading individual chunks to the storage boundary.
"""
import time
from typing import Optional

from ..models import ChunkInfo, ChunkRecord
from ..protocols import ByteCallback, StorageBoundary
from ...api.retry import RetryPolicy
from ...api.retry.retry_strategy import BeforeRetryHook
from ...logging import get_logger


class ChunkUploader:
    """
    Uploads one byte range of a batch, retrying transient failures.

    Responsibilities:
    - Send a chunk tagged with its batch identifier and index
    - Retry with exponential backoff up to the configured attempts
    - Count attempts on the chunk's record
    """

    def __init__(self, boundary: StorageBoundary, retry_policy: RetryPolicy):
        """
        Initialize chunk uploader.

        Args:
            boundary: Storage boundary receiving the chunks
            retry_policy: Shared retry policy
        """
        self._boundary = boundary
        self._retry = retry_policy
        self._logger = get_logger('podupload.upload.chunk')

    async def upload(
        self,
        batch_id: str,
        chunk: ChunkInfo,
        total_chunks: int,
        data: bytes,
        folder: str,
        record: Optional[ChunkRecord] = None,
        before_retry: Optional[BeforeRetryHook] = None,
        on_bytes: Optional[ByteCallback] = None
    ) -> str:
        """
        Upload a single chunk.

        Args:
            batch_id: Batch identifier shared by all chunks of this upload
            chunk: Byte range being sent
            total_chunks: Chunk count of the batch
            data: Chunk bytes
            folder: Destination folder
            record: Chunk record whose ``attempts`` counter is updated
            before_retry: Hook awaited before each retry
            on_bytes: Byte-level progress callback

        Returns:
            Chunk reference from the boundary

        Raises:
            ValueError: If chunk is empty
            UploadError: Once retries are exhausted or on a non-retryable failure
        """
        if not data:
            raise ValueError(f"Cannot upload empty chunk {chunk.index}")

        def count_attempt(attempt: int):
            if record is not None:
                record.attempts += 1

        chunk_size_kb = len(data) / 1024
        upload_start = time.time()
        self._logger.debug(
            f"Uploading chunk {chunk.index + 1}/{total_chunks} at {chunk.start} ({chunk_size_kb:.1f} KB)"
        )

        chunk_ref = await self._retry.run(
            lambda: self._boundary.upload_chunk(
                batch_id, chunk.index, total_chunks, data, folder, on_bytes=on_bytes
            ),
            description=f"chunk {chunk.index} of {batch_id}",
            before_retry=before_retry,
            on_attempt=count_attempt
        )

        upload_time = time.time() - upload_start
        speed_kbps = (chunk_size_kb / upload_time) if upload_time > 0 else 0
        self._logger.debug(f"Chunk {chunk.index} uploaded in {upload_time:.2f}s ({speed_kbps:.1f} KB/s)")
        return chunk_ref
