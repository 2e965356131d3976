"""
Protocol definitions for upload module.

Defines interfaces (protocols) for dependency injection and strategy pattern.
The orchestrator depends only on these, so tests can swap in stubs for the
remote boundary and the connectivity check.
"""
from typing import Protocol, Dict, Any, List, Optional, Callable

from .models import ChunkInfo, UploadSource

ByteCallback = Callable[[int], None]


class StorageBoundary(Protocol):
    """Request/response contract of the remote object store."""

    async def upload_chunk(
        self,
        batch_id: str,
        index: int,
        total_chunks: int,
        data: bytes,
        folder: str,
        on_bytes: Optional[ByteCallback] = None
    ) -> str:
        """Store one chunk; idempotent per (batch_id, index). Returns a chunk reference."""
        ...

    async def upload_whole(
        self,
        object_name: str,
        data: bytes,
        folder: str,
        mime_type: Optional[str] = None,
        on_bytes: Optional[ByteCallback] = None
    ) -> str:
        """Store a whole file. Returns the resource URL."""
        ...

    async def finalize_batch(
        self,
        batch_id: str,
        total_chunks: int,
        target_name: str,
        folder: str
    ) -> str:
        """Assemble a complete batch. Returns the resource URL."""
        ...

    async def ping(self) -> None:
        """Minimal round trip; raises when the boundary is unreachable."""
        ...


class SignedUploadBoundary(Protocol):
    """Boundary able to hand out signed direct-to-storage targets."""

    async def request_signature(
        self,
        object_name: str,
        folder: str,
        file_size: int,
        mime_type: Optional[str] = None
    ) -> Dict[str, Any]:
        ...

    async def post_signed(
        self,
        upload_url: str,
        fields: Dict[str, str],
        object_name: str,
        data: bytes,
        mime_type: Optional[str] = None,
        on_bytes: Optional[ByteCallback] = None
    ) -> str:
        ...


class ChunkingStrategy(Protocol):
    """
    Protocol for file chunking strategies.

    Allows different chunking algorithms to be plugged in.
    """

    def calculate_chunks(self, file_size: int) -> List[ChunkInfo]:
        """
        Calculate chunk boundaries for a file.

        Args:
            file_size: Total file size in bytes

        Returns:
            Contiguous chunks covering the whole file, in index order
        """
        ...


class DirectUploadStrategy(Protocol):
    """Protocol for single-request upload strategies."""

    name: str

    async def upload(
        self,
        object_name: str,
        data: bytes,
        folder: str,
        source: UploadSource,
        on_bytes: Optional[ByteCallback] = None
    ) -> str:
        """Send the whole file and return the resource URL."""
        ...


class ConnectivityProbeProtocol(Protocol):
    """Best-effort reachability check; never raises."""

    async def is_online(self) -> bool:
        ...
