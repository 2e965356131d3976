"""
Finalize service.

Calls the remote assembly boundary to combine previously uploaded chunks.
"""
import time
from typing import Optional

from ..protocols import StorageBoundary
from ...api.retry import RetryPolicy
from ...api.retry.retry_strategy import BeforeRetryHook
from ...exceptions import FinalizeError, IncompleteBatchError, RejectedError
from ...logging import get_logger


class Finalizer:
    """
    Single outbound finalize call with its own, short retry budget.

    Failure modes surfaced to the caller:
    - ``IncompleteBatchError``: chunks missing, re-upload required
    - ``AssemblyFailedError``: retried once, then surfaced
    - ``UnauthorizedError``: never retried
    - anything else: wrapped in ``FinalizeError`` so callers know the chunks
      are stored but the resource is not assembled
    """

    def __init__(self, boundary: StorageBoundary, retry_policy: RetryPolicy):
        self._boundary = boundary
        self._retry = retry_policy
        self._logger = get_logger('podupload.upload.finalize')

    async def finalize(
        self,
        batch_id: str,
        target_name: str,
        total_chunks: int,
        folder: str,
        before_retry: Optional[BeforeRetryHook] = None
    ) -> str:
        """
        Assemble a batch into one resource.

        Args:
            batch_id: Batch identifier shared by the chunks
            target_name: Name of the assembled resource
            total_chunks: Expected chunk count, verified by the boundary
            folder: Destination folder

        Returns:
            Resource URL
        """
        self._logger.info(f"Finalizing {batch_id}: {total_chunks} chunks -> {folder}/{target_name}")
        start = time.time()
        try:
            url = await self._retry.run(
                lambda: self._boundary.finalize_batch(batch_id, total_chunks, target_name, folder),
                description=f"finalize {batch_id}",
                max_attempts=self._retry.config.finalize_attempts,
                before_retry=before_retry
            )
        except (FinalizeError, IncompleteBatchError, RejectedError):
            raise
        except Exception as e:
            if getattr(e, 'retryable', False):
                raise FinalizeError(
                    f"Chunks of {batch_id} are stored but assembly did not complete: {e}"
                ) from e
            raise

        self._logger.info(f"Batch {batch_id} assembled in {time.time() - start:.2f}s")
        return url
