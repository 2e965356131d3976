"""Boundary HTTP status codes and their mapping onto upload errors."""
from typing import Dict, Any, Optional

from ...exceptions import (
    UploadError,
    RejectedError,
    UnauthorizedError,
    PayloadTooLargeError,
    IncompleteBatchError,
    AssemblyFailedError,
    ServerError,
)


class BoundaryErrorCodes:
    """Status codes the storage boundary answers with."""

    ERROR_CODES: Dict[int, str] = {
        400: 'Bad request: the boundary rejected the request parameters.',
        401: 'Unauthorized: missing or expired credentials.',
        403: 'Forbidden: the caller may not write to this destination.',
        404: 'Not found: the batch or destination does not exist.',
        409: 'Conflict: the batch is not complete.',
        413: 'Payload too large: the file exceeds the accepted size.',
        429: 'Too many requests: slow down and retry later.',
        500: 'Internal server error.',
        502: 'Bad gateway.',
        503: 'Service unavailable.',
        504: 'Gateway timeout.',
    }

    @classmethod
    def get_message(cls, status: int) -> str:
        """Gets message for a status code."""
        return cls.ERROR_CODES.get(status, f"Unexpected status: {status}")

    @classmethod
    def from_status(
        cls,
        status: int,
        body: Optional[Dict[str, Any]] = None,
        batch_id: Optional[str] = None
    ) -> UploadError:
        """
        Build the typed error for a failed boundary response.

        Args:
            status: HTTP status code
            body: Decoded JSON error body, if any
            batch_id: Batch identifier for finalize responses; only then does a
                404 or 409 mean the batch is incomplete

        Returns:
            Error instance matching the taxonomy (not raised)
        """
        body = body or {}
        code = body.get('code')
        detail = body.get('error') or body.get('message') or cls.get_message(status)

        if code == 'incomplete' or (batch_id is not None and status in (404, 409)):
            return IncompleteBatchError(
                f"Incomplete batch: {detail}",
                batch_id=batch_id,
                expected=body.get('expected'),
                found=body.get('found'),
                missing=body.get('missing')
            )
        if code == 'assembly_failed':
            return AssemblyFailedError(f"Assembly failed: {detail}", status)
        if status in (401, 403):
            return UnauthorizedError(detail, status)
        if status == 413:
            return PayloadTooLargeError(detail, status)
        if status == 429 or status >= 500:
            return ServerError(f"Server error {status}: {detail}", status)
        return RejectedError(detail, status)
