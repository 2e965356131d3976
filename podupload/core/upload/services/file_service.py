"""
File validation and reading services.

Single Responsibility: Each class handles one specific task.
"""
from pathlib import Path
from typing import Tuple, Optional, Union

import aiofiles

from ..models import UploadSource
from ...exceptions import UploadError, PayloadTooLargeError
from ...logging import get_logger


class FileValidator:
    """
    Validates files before upload.

    Responsibilities:
    - Check file existence
    - Verify file is not a directory
    - Enforce the configured size limit before any network call
    """

    def validate(self, file_path: Union[str, Path]) -> Tuple[Path, int]:
        """
        Validate a file for upload.

        Args:
            file_path: Path to the file

        Returns:
            Tuple of (validated Path, file size in bytes)

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If path is not a regular file
        """
        path = Path(file_path) if isinstance(file_path, str) else file_path

        if not path.exists():
            raise FileNotFoundError(f"File not found: {path}")

        if not path.is_file():
            raise ValueError(f"Path is not a file: {path}")

        return path, path.stat().st_size

    def validate_size(self, file_size: int, max_size: Optional[int] = None) -> None:
        """
        Validate file size.

        Raises:
            PayloadTooLargeError: If the file exceeds ``max_size``
        """
        if max_size and file_size > max_size:
            raise PayloadTooLargeError(
                f"File size {file_size} exceeds maximum {max_size}", 413
            )

    def validate_source(self, source: UploadSource, max_size: Optional[int] = None) -> None:
        """Validate an upload source (on-disk sources must still exist)."""
        if source.data is None:
            self.validate(source.path)
        self.validate_size(source.size, max_size)


class AsyncFileReader:
    """
    Asynchronous file reader for chunk-based reading.

    Uses aiofiles for non-blocking I/O operations.
    Keeps the file handle open during a chunked upload to avoid repeated
    open/close operations. Reads must not overlap: seek and read are two
    separate awaits on the shared handle.
    """

    def __init__(self):
        """Initialize file reader."""
        self._logger = get_logger('podupload.upload.file')
        self._file_handle = None
        self._current_file_path: Optional[Path] = None

    async def open_file(self, file_path: Path) -> None:
        """
        Open file for reading. Call this before reading chunks.

        Args:
            file_path: Path to the file to open
        """
        if self._file_handle is not None and self._current_file_path == file_path:
            return

        if self._file_handle is not None:
            await self.close_file()

        self._file_handle = await aiofiles.open(file_path, 'rb')
        self._current_file_path = file_path

    async def close_file(self) -> None:
        """Close the currently open file."""
        if self._file_handle is not None:
            await self._file_handle.close()
            self._file_handle = None
            self._current_file_path = None

    async def read_chunk(
        self,
        file_path: Path,
        start: int,
        end: int
    ) -> Optional[bytes]:
        """
        Read a chunk from a file.

        Reuses the open handle when there is one, otherwise opens and closes
        the file for this read.

        Args:
            file_path: Path to the file
            start: Start position in bytes
            end: End position in bytes

        Returns:
            Chunk data or None if reading failed
        """
        try:
            chunk_size = end - start

            if self._file_handle is not None and self._current_file_path == file_path:
                await self._file_handle.seek(start)
                data = await self._file_handle.read(chunk_size)
            else:
                async with aiofiles.open(file_path, 'rb') as f:
                    await f.seek(start)
                    data = await f.read(chunk_size)

            if data:
                self._logger.debug(f"Read chunk: {start}-{end} ({len(data)} bytes)")
            return data if data else None
        except OSError as e:
            self._logger.error(f"Failed to read chunk {start}-{end}: {e}")
            return None

    async def read_file(self, file_path: Path) -> Optional[bytes]:
        """
        Read entire file.

        Returns:
            File data or None if reading failed
        """
        try:
            async with aiofiles.open(file_path, 'rb') as f:
                return await f.read()
        except OSError as e:
            self._logger.error(f"Failed to read {file_path}: {e}")
            return None

    async def read_range(self, source: UploadSource, start: int, end: int) -> bytes:
        """
        Read a byte range of an upload source.

        Raises:
            UploadError: If the range cannot be read in full
        """
        if source.data is not None:
            data = source.data[start:end]
        else:
            data = await self.read_chunk(source.path, start, end)
        if not data or len(data) != end - start:
            raise UploadError(f"Failed to read bytes {start}-{end} of {source.name}")
        return data

    async def read_all(self, source: UploadSource) -> bytes:
        """
        Read a whole upload source.

        Raises:
            UploadError: If the file cannot be read
        """
        if source.data is not None:
            return source.data
        data = await self.read_file(source.path)
        if data is None:
            raise UploadError(f"Failed to read {source.name}")
        return data
