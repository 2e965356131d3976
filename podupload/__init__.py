"""
podupload - Resilient async uploads of large media files.

Usage:
    >>> from podupload import UploadClient, APIConfig
    >>>
    >>> async with UploadClient(APIConfig(base_url="https://app.example/api")) as client:
    ...     url = await client.upload("episode.mp3", "podcast-audio", on_progress=print)
"""
import logging

from .client import UploadClient

# Configuration
from .core.api import (
    APIConfig,
    ProxyConfig,
    SSLConfig,
    TimeoutConfig,
    RetryConfig,
    StorageAPIClient
)

# Upload subsystem
from .core.cache import UploadCache
from .core.upload import (
    UploadCoordinator,
    UploadHandle,
    UploadConfig,
    UploadSource,
    UploadTask,
    UploadStatus,
    UploadMethod,
    UploadProgress
)

# Errors
from .core.exceptions import (
    UploadError,
    OfflineError,
    NetworkError,
    UploadTimeoutError,
    ServerError,
    RejectedError,
    UnauthorizedError,
    PayloadTooLargeError,
    IncompleteBatchError,
    FinalizeError,
    AssemblyFailedError,
    UploadPausedError,
    UploadStalledError,
    InvalidResponseError,
    describe_error
)

__version__ = '1.0.0'


def setup_logging(level=logging.INFO):
    """
    Configure logging for podupload modules.

    This ensures that all podupload loggers are properly configured
    to show log messages at the specified level.

    Args:
        level: Logging level (default: logging.INFO)
    """
    loggers = [
        'podupload',
        'podupload.client',
        'podupload.api',
        'podupload.retry',
        'podupload.cache',
        'podupload.connectivity',
        'podupload.upload',
        'podupload.upload.coordinator',
        'podupload.upload.chunk',
        'podupload.upload.direct',
        'podupload.upload.finalize',
        'podupload.upload.file',
    ]

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = True


__all__ = [
    'UploadClient',
    'UploadCoordinator',
    'UploadHandle',
    'UploadCache',
    'UploadConfig',
    'UploadSource',
    'UploadTask',
    'UploadStatus',
    'UploadMethod',
    'UploadProgress',
    'StorageAPIClient',
    'APIConfig',
    'ProxyConfig',
    'SSLConfig',
    'TimeoutConfig',
    'RetryConfig',
    'UploadError',
    'OfflineError',
    'NetworkError',
    'UploadTimeoutError',
    'ServerError',
    'RejectedError',
    'UnauthorizedError',
    'PayloadTooLargeError',
    'IncompleteBatchError',
    'FinalizeError',
    'AssemblyFailedError',
    'UploadPausedError',
    'UploadStalledError',
    'InvalidResponseError',
    'describe_error',
    'setup_logging',
]
