"""
Upload module.

Resilient uploads to a remote storage boundary: small files go up in one
request, large files in parallel chunks that are assembled by a finalize call.
Strategies for chunking and direct uploads are pluggable.
"""
from .coordinator import UploadCoordinator
from .handle import UploadHandle, ProgressStream, ProgressRelay
from .models import (
    UploadConfig,
    UploadSource,
    UploadTask,
    UploadStatus,
    UploadMethod,
    UploadProgress,
    ChunkInfo,
    ChunkRecord
)
from .protocols import (
    StorageBoundary,
    SignedUploadBoundary,
    ChunkingStrategy,
    DirectUploadStrategy,
    ConnectivityProbeProtocol
)

__all__ = [
    # Main classes
    'UploadCoordinator',
    'UploadHandle',
    'ProgressStream',
    'ProgressRelay',

    # Models
    'UploadConfig',
    'UploadSource',
    'UploadTask',
    'UploadStatus',
    'UploadMethod',
    'UploadProgress',
    'ChunkInfo',
    'ChunkRecord',

    # Protocols
    'StorageBoundary',
    'SignedUploadBoundary',
    'ChunkingStrategy',
    'DirectUploadStrategy',
    'ConnectivityProbeProtocol',
]
