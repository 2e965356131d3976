"""Upload models."""
from .upload_models import (
    MB,
    UploadStatus,
    UploadMethod,
    ChunkInfo,
    ChunkRecord,
    UploadSource,
    UploadConfig,
    UploadTask,
    UploadProgress,
)

__all__ = [
    'MB',
    'UploadStatus',
    'UploadMethod',
    'ChunkInfo',
    'ChunkRecord',
    'UploadSource',
    'UploadConfig',
    'UploadTask',
    'UploadProgress',
]
