"""Upload services module."""
from .file_service import FileValidator, AsyncFileReader
from .chunk_service import ChunkUploader
from .direct_service import DirectUploader
from .finalize_service import Finalizer
from .connectivity import ConnectivityProbe

__all__ = [
    'FileValidator',
    'AsyncFileReader',
    'ChunkUploader',
    'DirectUploader',
    'Finalizer',
    'ConnectivityProbe',
]
