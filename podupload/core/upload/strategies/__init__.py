"""Upload strategies module."""
from .chunking import BaseChunkingStrategy, FixedSizeChunkingStrategy
from .direct import WholeFileStrategy, SignedUploadStrategy, FallbackUploadStrategy
from .naming import (
    fingerprint,
    source_fingerprint,
    new_batch_id,
    object_name_for,
    target_name_for,
    namespaced_folder,
)

__all__ = [
    'BaseChunkingStrategy',
    'FixedSizeChunkingStrategy',
    'WholeFileStrategy',
    'SignedUploadStrategy',
    'FallbackUploadStrategy',
    'fingerprint',
    'source_fingerprint',
    'new_batch_id',
    'object_name_for',
    'target_name_for',
    'namespaced_folder',
]
