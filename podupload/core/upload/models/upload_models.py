"""
Data models for upload module.

Uses dataclasses for type-safe data structures. ``UploadTask`` is the only
mutable record shared between concurrent callers; its transition methods
keep the progress and completion invariants in one place.
"""
import math
import mimetypes
import os
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, List, Union
from urllib.parse import urlparse

from ...exceptions import InvalidResponseError, UploadError

MB = 1024 * 1024

VALID_URL_SCHEMES = ('http', 'https')


class UploadStatus(str, Enum):
    """Lifecycle states of an upload task."""
    INITIALIZING = 'initializing'
    UPLOADING = 'uploading'
    PAUSED = 'paused'
    COMPLETED = 'completed'
    ERROR = 'error'

    @property
    def is_terminal(self) -> bool:
        return self in (UploadStatus.COMPLETED, UploadStatus.ERROR)

    @property
    def is_active(self) -> bool:
        return self in (UploadStatus.INITIALIZING, UploadStatus.UPLOADING)


class UploadMethod(str, Enum):
    """Transfer method chosen for a task."""
    DIRECT = 'direct'
    CHUNKED = 'chunked'


@dataclass(frozen=True)
class ChunkInfo:
    """
    Byte range of a file chunk.

    Attributes:
        index: Chunk index
        start: Start position in bytes
        end: End position in bytes (exclusive)
    """
    index: int
    start: int
    end: int

    @property
    def size(self) -> int:
        """Returns chunk size."""
        return self.end - self.start


@dataclass
class ChunkRecord:
    """Upload state of one chunk of a chunked task."""
    index: int
    uploaded: bool = False
    attempts: int = 0
    chunk_ref: Optional[str] = None


@dataclass
class UploadSource:
    """
    A readable file selected for upload.

    Attributes:
        name: File name as selected by the user
        size: Size in bytes
        last_modified: Modification time as Unix timestamp (seconds)
        mime_type: Content type, guessed from the name when omitted
        path: Location on disk (used unless ``data`` is given)
        data: In-memory content
    """
    name: str
    size: int
    last_modified: float
    mime_type: Optional[str] = None
    path: Optional[Path] = None
    data: Optional[bytes] = None

    def __post_init__(self):
        if isinstance(self.path, str):
            self.path = Path(self.path)
        if self.mime_type is None:
            self.mime_type = mimetypes.guess_type(self.name)[0] or 'application/octet-stream'
        if self.size < 0:
            raise ValueError("File size must not be negative")
        if self.path is None and self.data is None:
            raise ValueError("UploadSource needs a path or in-memory data")

    @classmethod
    def from_path(
        cls,
        file_path: Union[str, Path],
        mime_type: Optional[str] = None
    ) -> 'UploadSource':
        """Build a source from a file on disk, reading size and mtime."""
        path = Path(file_path)
        stat = path.stat()
        return cls(
            name=path.name,
            size=stat.st_size,
            last_modified=stat.st_mtime,
            mime_type=mime_type,
            path=path
        )

    @classmethod
    def from_bytes(
        cls,
        name: str,
        data: bytes,
        last_modified: Optional[float] = None,
        mime_type: Optional[str] = None
    ) -> 'UploadSource':
        """Build a source from in-memory content."""
        return cls(
            name=name,
            size=len(data),
            last_modified=time.time() if last_modified is None else last_modified,
            mime_type=mime_type,
            data=data
        )

    @property
    def is_image(self) -> bool:
        return bool(self.mime_type) and self.mime_type.startswith('image/')

    @property
    def stem(self) -> str:
        return os.path.splitext(self.name)[0]

    @property
    def extension(self) -> str:
        return os.path.splitext(self.name)[1].lower()


@dataclass
class UploadConfig:
    """
    Policy for choosing and running transfers.

    Attributes:
        large_file_threshold: Files at or above this size are chunked (unless images)
        chunk_size: Size of each chunk in bytes
        max_concurrent_chunks: Chunk transfers allowed in flight at once
        max_file_size: Optional hard limit checked before any network call
        progress_reserve: Progress ceiling before finalize (chunked) or confirmation (direct)
        poll_base_delay: First delay when waiting on another caller's task
        poll_max_delay: Cap for that delay
        poll_max_iterations: Idle wake-ups before an attached caller gives up
        cache_retention: Seconds a terminal task stays cached
        sweep_interval: Seconds between cache sweeps
    """
    large_file_threshold: int = 50 * MB
    chunk_size: int = 5 * MB
    max_concurrent_chunks: int = 4
    max_file_size: Optional[int] = None
    progress_reserve: int = 95
    poll_base_delay: float = 0.25
    poll_max_delay: float = 5.0
    poll_max_iterations: int = 120
    cache_retention: float = 24 * 3600.0
    sweep_interval: float = 3600.0

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ValueError("Chunk size must be positive")
        if self.large_file_threshold <= 0:
            raise ValueError("Large file threshold must be positive")
        if not 1 <= self.max_concurrent_chunks <= 16:
            raise ValueError("max_concurrent_chunks must be between 1 and 16")
        if not 0 < self.progress_reserve < 100:
            raise ValueError("progress_reserve must be between 1 and 99")
        if self.poll_max_iterations < 1:
            raise ValueError("poll_max_iterations must be at least 1")

    def choose_method(self, source: UploadSource) -> UploadMethod:
        """Direct for small files and images, chunked otherwise."""
        if source.size < self.large_file_threshold or source.is_image:
            return UploadMethod.DIRECT
        return UploadMethod.CHUNKED

    def total_chunks(self, file_size: int) -> int:
        return math.ceil(file_size / self.chunk_size)


@dataclass
class UploadTask:
    """
    Upload state for one file fingerprint.

    Owned by the upload cache; exactly one exists per fingerprint.
    """
    fingerprint: str
    file_size: int
    status: UploadStatus = UploadStatus.INITIALIZING
    progress: int = 0
    method: Optional[UploadMethod] = None
    url: Optional[str] = None
    error: Optional[str] = None
    exception: Optional[BaseException] = field(default=None, repr=False)
    retries: int = 0
    last_activity: float = field(default_factory=time.time)
    chunk_records: List[ChunkRecord] = field(default_factory=list)
    batch_id: Optional[str] = None
    target_name: Optional[str] = None
    destination: Optional[str] = None

    def touch(self) -> None:
        self.last_activity = time.time()

    def set_method(self, method: UploadMethod) -> None:
        """Fix the transfer method; it cannot change once chosen."""
        if self.method is not None and self.method != method:
            raise UploadError(
                f"Task {self.fingerprint[:12]} already uses {self.method.value} upload"
            )
        self.method = method
        self.touch()

    def mark_initializing(self) -> None:
        """Claim a paused or failed task for another run, keeping its progress."""
        self.status = UploadStatus.INITIALIZING
        self.touch()

    def mark_uploading(self) -> None:
        self.status = UploadStatus.UPLOADING
        self.error = None
        self.exception = None
        self.touch()

    def update_progress(self, percent: int) -> bool:
        """
        Raise progress, ignoring regressions.

        100 is reserved for completion, so values are clamped to 99 here.

        Returns:
            True if the stored value changed
        """
        value = max(0, min(int(percent), 99))
        if value <= self.progress:
            return False
        self.progress = value
        self.touch()
        return True

    def mark_paused(self, reason: Optional[str] = None) -> None:
        self.status = UploadStatus.PAUSED
        self.error = reason
        self.touch()

    def mark_completed(self, url: str) -> None:
        """
        Record success.

        Raises:
            InvalidResponseError: If ``url`` is empty or lacks an http(s) scheme
        """
        if not url or urlparse(url).scheme not in VALID_URL_SCHEMES or not urlparse(url).netloc:
            raise InvalidResponseError(f"Boundary returned an invalid resource URL: {url!r}")
        if self.method == UploadMethod.CHUNKED and not self.all_chunks_uploaded:
            raise UploadError("Cannot complete a chunked task with unconfirmed chunks")
        self.url = url
        self.status = UploadStatus.COMPLETED
        self.progress = 100
        self.error = None
        self.exception = None
        self.touch()

    def mark_error(self, error: BaseException) -> None:
        self.status = UploadStatus.ERROR
        self.error = str(error) or error.__class__.__name__
        self.exception = error
        self.url = None
        self.touch()

    def reset(self) -> None:
        """Prepare a fresh start: progress, method and chunk state are cleared."""
        self.status = UploadStatus.INITIALIZING
        self.progress = 0
        self.method = None
        self.url = None
        self.error = None
        self.exception = None
        self.retries = 0
        self.chunk_records = []
        self.batch_id = None
        self.target_name = None
        self.touch()

    @property
    def is_completed(self) -> bool:
        return self.status == UploadStatus.COMPLETED and bool(self.url)

    def init_chunks(self, total_chunks: int) -> None:
        self.chunk_records = [ChunkRecord(index=i) for i in range(total_chunks)]

    @property
    def uploaded_chunks(self) -> int:
        return sum(1 for record in self.chunk_records if record.uploaded)

    @property
    def pending_chunks(self) -> List[ChunkRecord]:
        return [record for record in self.chunk_records if not record.uploaded]

    @property
    def all_chunks_uploaded(self) -> bool:
        return bool(self.chunk_records) and all(r.uploaded for r in self.chunk_records)

    @property
    def is_resumable(self) -> bool:
        """Chunked task whose batch already holds confirmed chunks."""
        return (
            self.method == UploadMethod.CHUNKED
            and self.batch_id is not None
            and self.uploaded_chunks > 0
        )


@dataclass(frozen=True)
class UploadProgress:
    """
    Progress snapshot delivered to subscribers.

    Attributes:
        fingerprint: Task key
        percent: Overall progress 0-100
        status: Task status at the time of the snapshot
        uploaded_chunks: Confirmed chunks (chunked uploads)
        total_chunks: Chunk count (0 for direct uploads)
    """
    fingerprint: str
    percent: int
    status: UploadStatus
    uploaded_chunks: int = 0
    total_chunks: int = 0

    @property
    def is_complete(self) -> bool:
        return self.status == UploadStatus.COMPLETED

    @classmethod
    def of(cls, task: UploadTask) -> 'UploadProgress':
        return cls(
            fingerprint=task.fingerprint,
            percent=task.progress,
            status=task.status,
            uploaded_chunks=task.uploaded_chunks,
            total_chunks=len(task.chunk_records)
        )
