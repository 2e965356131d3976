"""
Custom exceptions for upload operations.

This module defines the error taxonomy shared by every upload component.
The ``retryable`` flag on each class drives the retry policy: only errors
that describe a transient condition are attempted again.
"""
from typing import Optional, List, Sequence


class UploadError(Exception):
    """Base exception for all upload-related errors."""

    retryable = False

    def __init__(self, message: str, error_code: Optional[int] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            error_code: Numeric error code, usually the HTTP status (if available)
        """
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class OfflineError(UploadError):
    """Raised when the connectivity probe reports no network."""
    pass


class NetworkError(UploadError):
    """Transient I/O failure during a request."""

    retryable = True


class UploadTimeoutError(NetworkError):
    """A single request exceeded its deadline."""
    pass


class ServerError(NetworkError):
    """Generic server-side failure (5xx)."""
    pass


class RejectedError(UploadError):
    """The boundary refused the request (authorization, size, validation)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None
    ) -> None:
        self.status_code = status_code
        super().__init__(message, status_code)


class UnauthorizedError(RejectedError):
    """Raised on 401/403 responses."""
    pass


class PayloadTooLargeError(RejectedError):
    """Raised when the payload exceeds what the boundary accepts."""
    pass


class IncompleteBatchError(UploadError):
    """
    Finalize found fewer chunks than expected for a batch.

    Not retryable as-is: the missing chunks must be uploaded again first.
    """

    def __init__(
        self,
        message: str,
        batch_id: Optional[str] = None,
        expected: Optional[int] = None,
        found: Optional[int] = None,
        missing: Optional[Sequence[int]] = None
    ) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            batch_id: Batch identifier that was being finalized
            expected: Number of chunks the client announced
            found: Number of chunks the boundary located
            missing: Chunk indices the boundary reported as absent (if known)
        """
        self.batch_id = batch_id
        self.expected = expected
        self.found = found
        self.missing: List[int] = list(missing or [])
        super().__init__(message)


class FinalizeError(UploadError):
    """Chunks are uploaded but the resource could not be assembled."""
    pass


class AssemblyFailedError(FinalizeError):
    """Remote assembly failed; may be retried once."""

    retryable = True


class UploadPausedError(UploadError):
    """Raised to the owner of a transfer that was paused externally."""
    pass


class UploadStalledError(UploadError):
    """An attached caller gave up waiting on an in-flight task."""
    pass


class InvalidResponseError(UploadError):
    """The boundary answered successfully but the payload is unusable."""
    pass


def describe_error(error: BaseException) -> str:
    """
    Return a short, user-facing explanation for an upload failure.

    Args:
        error: Any exception raised by the upload subsystem

    Returns:
        Human-readable sentence suitable for a toast or CLI message
    """
    if isinstance(error, OfflineError):
        return 'You appear to be offline. Please check your connection and try again.'
    if isinstance(error, PayloadTooLargeError):
        return 'File too large. Please upload a smaller file.'
    if isinstance(error, UnauthorizedError):
        return 'Unauthorized. Please sign in again.'
    if isinstance(error, UploadTimeoutError):
        return 'Upload timed out. Please try again with a better connection.'
    if isinstance(error, IncompleteBatchError):
        return 'Upload incomplete. Retry to send the missing parts.'
    if isinstance(error, FinalizeError):
        return 'The file was uploaded but could not be processed. Please retry.'
    if isinstance(error, UploadPausedError):
        return 'Upload paused. Start it again to resume.'
    if isinstance(error, NetworkError):
        return 'Upload interrupted, please check your connection.'
    message = getattr(error, 'message', None) or str(error)
    return message or 'Upload failed'
