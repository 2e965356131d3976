"""
Chunking strategies for file uploads.

Implements Strategy Pattern for different chunking algorithms.
Open for extension (new strategies), closed for modification.
"""
from abc import ABC, abstractmethod
from typing import List

from ..models import ChunkInfo, MB


class BaseChunkingStrategy(ABC):
    """Abstract base class for chunking strategies."""

    @abstractmethod
    def calculate_chunks(self, file_size: int) -> List[ChunkInfo]:
        """Calculate chunk boundaries."""
        pass


class FixedSizeChunkingStrategy(BaseChunkingStrategy):
    """
    Fixed-size chunking strategy.

    Every chunk is ``chunk_size`` bytes except the last, so a file yields
    ``ceil(file_size / chunk_size)`` chunks.
    """

    DEFAULT_CHUNK_SIZE = 5 * MB

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Initialize with chunk size.

        Args:
            chunk_size: Size of each chunk in bytes
        """
        if chunk_size <= 0:
            raise ValueError("Chunk size must be positive")
        self.chunk_size = chunk_size

    def calculate_chunks(self, file_size: int) -> List[ChunkInfo]:
        """
        Calculate fixed-size chunk boundaries.

        Args:
            file_size: Total file size in bytes

        Returns:
            List of ChunkInfo in index order
        """
        if file_size < 0:
            raise ValueError("File size must not be negative")

        chunks = []
        position = 0
        index = 0

        while position < file_size:
            end = min(position + self.chunk_size, file_size)
            chunks.append(ChunkInfo(index=index, start=position, end=end))
            position = end
            index += 1

        return chunks
