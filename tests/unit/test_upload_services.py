"""Tests for upload services."""
import asyncio
import os
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from podupload.core.api.config import RetryConfig
from podupload.core.api.retry import RetryPolicy
from podupload.core.exceptions import (
    AssemblyFailedError,
    FinalizeError,
    IncompleteBatchError,
    NetworkError,
    PayloadTooLargeError,
    ServerError,
    UnauthorizedError,
    UploadError
)
from podupload.core.upload.models import ChunkInfo, ChunkRecord, UploadSource
from podupload.core.upload.services import (
    AsyncFileReader,
    ChunkUploader,
    ConnectivityProbe,
    DirectUploader,
    FileValidator,
    Finalizer
)
from podupload.core.upload.strategies import WholeFileStrategy


@pytest.fixture
def policy():
    """Retry policy without delays."""
    return RetryPolicy(RetryConfig.immediate())


class TestFileValidator:
    """Test suite for FileValidator."""

    @pytest.fixture
    def validator(self):
        """Create validator instance."""
        return FileValidator()

    @pytest.fixture
    def temp_file(self):
        """Create temporary file for testing."""
        fd, path = tempfile.mkstemp()
        os.write(fd, b"test content")
        os.close(fd)
        yield Path(path)
        os.unlink(path)

    def test_validate_existing_file(self, validator, temp_file):
        """Test validating existing file."""
        path, size = validator.validate(temp_file)

        assert path == temp_file
        assert size == 12

    def test_validate_string_path(self, validator, temp_file):
        """Test validating string path."""
        path, _ = validator.validate(str(temp_file))

        assert path == temp_file

    def test_validate_nonexistent_file(self, validator):
        """Test validating non-existent file."""
        with pytest.raises(FileNotFoundError):
            validator.validate(Path("/nonexistent/file.mp3"))

    def test_validate_directory(self, validator):
        """Test validating directory raises error."""
        with pytest.raises(ValueError):
            validator.validate(Path(tempfile.gettempdir()))

    def test_validate_size_ok(self, validator):
        """Test size validation passes."""
        validator.validate_size(1000, max_size=2000)
        validator.validate_size(0)

    def test_validate_size_exceeds_max(self, validator):
        """Test exceeding max size raises a rejection."""
        with pytest.raises(PayloadTooLargeError, match="exceeds"):
            validator.validate_size(2000, max_size=1000)

    def test_validate_source_in_memory(self, validator):
        """Test in-memory sources skip the path check."""
        validator.validate_source(UploadSource.from_bytes('a.mp3', b'xyz', last_modified=0))

    def test_validate_source_deleted_file(self, validator, tmp_path):
        """Test a source whose file vanished is rejected."""
        path = tmp_path / 'gone.mp3'
        path.write_bytes(b'x')
        source = UploadSource.from_path(path)
        path.unlink()

        with pytest.raises(FileNotFoundError):
            validator.validate_source(source)


class TestAsyncFileReader:
    """Test suite for AsyncFileReader."""

    @pytest.fixture
    def reader(self):
        """Create reader instance."""
        return AsyncFileReader()

    @pytest.fixture
    def temp_file(self):
        """Create temporary file with known content."""
        fd, path = tempfile.mkstemp()
        os.write(fd, b"0123456789ABCDEFGHIJ")
        os.close(fd)
        yield Path(path)
        os.unlink(path)

    @pytest.mark.asyncio
    async def test_read_chunk(self, reader, temp_file):
        """Test reading a chunk."""
        assert await reader.read_chunk(temp_file, 0, 10) == b"0123456789"

    @pytest.mark.asyncio
    async def test_read_chunk_with_open_handle(self, reader, temp_file):
        """Test reading chunks through a kept-open handle."""
        await reader.open_file(temp_file)
        try:
            assert await reader.read_chunk(temp_file, 5, 15) == b"56789ABCDE"
            assert await reader.read_chunk(temp_file, 15, 20) == b"FGHIJ"
        finally:
            await reader.close_file()

    @pytest.mark.asyncio
    async def test_read_entire_file(self, reader, temp_file):
        """Test reading entire file."""
        assert await reader.read_file(temp_file) == b"0123456789ABCDEFGHIJ"

    @pytest.mark.asyncio
    async def test_read_nonexistent_file(self, reader):
        """Test reading non-existent file returns None."""
        assert await reader.read_chunk(Path("/nonexistent/file.mp3"), 0, 100) is None

    @pytest.mark.asyncio
    async def test_read_range_of_source(self, reader, temp_file):
        """Test ranges of on-disk and in-memory sources."""
        on_disk = UploadSource.from_path(temp_file)
        in_memory = UploadSource.from_bytes('a.mp3', b"0123456789", last_modified=0)

        assert await reader.read_range(on_disk, 10, 12) == b"AB"
        assert await reader.read_range(in_memory, 2, 5) == b"234"

    @pytest.mark.asyncio
    async def test_short_read_raises(self, reader):
        """Test a range past the end of the data raises."""
        source = UploadSource.from_bytes('a.mp3', b"0123", last_modified=0)

        with pytest.raises(UploadError):
            await reader.read_range(source, 2, 10)

    @pytest.mark.asyncio
    async def test_read_all_missing_file(self, reader, tmp_path):
        """Test reading a vanished file raises."""
        path = tmp_path / 'gone.mp3'
        path.write_bytes(b'x')
        source = UploadSource.from_path(path)
        path.unlink()

        with pytest.raises(UploadError):
            await reader.read_all(source)


class TestChunkUploader:
    """Test suite for ChunkUploader."""

    @pytest.mark.asyncio
    async def test_upload_returns_reference(self, boundary, policy):
        """Test a chunk is tagged with batch and index."""
        uploader = ChunkUploader(boundary, policy)
        record = ChunkRecord(index=3)

        ref = await uploader.upload('upload_1_ab', ChunkInfo(3, 30, 40), 5, b'x' * 10, 'podcasts', record)

        assert ref == 'upload_1_ab:3'
        assert record.attempts == 1
        assert boundary.chunk_calls[0]['batch_id'] == 'upload_1_ab'
        assert boundary.chunk_calls[0]['index'] == 3
        assert boundary.chunk_calls[0]['total_chunks'] == 5

    @pytest.mark.asyncio
    async def test_retries_transient_failures(self, boundary, policy):
        """Test transient failures are retried and counted."""
        boundary.chunk_failures[0] = [NetworkError("reset"), ServerError("busy", 503)]
        uploader = ChunkUploader(boundary, policy)
        record = ChunkRecord(index=0)

        await uploader.upload('b', ChunkInfo(0, 0, 4), 1, b'data', 'podcasts', record)

        assert record.attempts == 3

    @pytest.mark.asyncio
    async def test_rejection_is_final(self, boundary, policy):
        """Test rejections are not retried."""
        boundary.chunk_failures[0] = [UnauthorizedError("expired", 401)]
        uploader = ChunkUploader(boundary, policy)

        with pytest.raises(UnauthorizedError):
            await uploader.upload('b', ChunkInfo(0, 0, 4), 1, b'data', 'podcasts')

        assert len(boundary.chunk_calls) == 1

    @pytest.mark.asyncio
    async def test_empty_chunk(self, boundary, policy):
        """Test uploading empty chunk raises error."""
        uploader = ChunkUploader(boundary, policy)

        with pytest.raises(ValueError, match="empty"):
            await uploader.upload('b', ChunkInfo(0, 0, 0), 1, b'', 'podcasts')


class TestDirectUploader:
    """Test suite for DirectUploader."""

    @pytest.mark.asyncio
    async def test_progress_capped_below_confirmation(self, boundary, policy):
        """Test byte progress never reaches 100."""
        uploader = DirectUploader(WholeFileStrategy(boundary), policy)
        source = UploadSource.from_bytes('a.mp3', b'x' * 100, last_modified=0)
        progress = []

        url = await uploader.upload(source, source.data, 'podcasts', 'abc.mp3', progress.append)

        assert url == boundary.resource_url
        assert progress == [50, 95]
        assert boundary.whole_calls[0]['object_name'] == 'abc.mp3'
        assert boundary.whole_calls[0]['mime_type'] == 'audio/mpeg'

    @pytest.mark.asyncio
    async def test_network_failure_retried(self, boundary, policy):
        """Test a transient failure is retried."""
        boundary.whole_failures = [NetworkError("reset")]
        uploader = DirectUploader(WholeFileStrategy(boundary), policy)
        source = UploadSource.from_bytes('a.mp3', b'x', last_modified=0)

        await uploader.upload(source, source.data, 'podcasts', 'abc.mp3')

        assert len(boundary.whole_calls) == 2


class TestFinalizer:
    """Test suite for Finalizer."""

    @pytest.mark.asyncio
    async def test_finalize(self, boundary, policy):
        """Test finalize passes batch, count and target."""
        url = await Finalizer(boundary, policy).finalize('upload_1_ab', 'episode_1', 24, 'podcasts')

        assert url == boundary.resource_url
        assert boundary.finalize_calls[0]['total_chunks'] == 24
        assert boundary.finalize_calls[0]['target_name'] == 'episode_1'

    @pytest.mark.asyncio
    async def test_incomplete_not_retried(self, boundary, policy):
        """Test an incomplete batch is surfaced at once."""
        boundary.finalize_failures = [IncompleteBatchError("incomplete", 'b', 3, 2, [1])]

        with pytest.raises(IncompleteBatchError) as exc_info:
            await Finalizer(boundary, policy).finalize('b', 't', 3, 'podcasts')

        assert exc_info.value.missing == [1]
        assert len(boundary.finalize_calls) == 1

    @pytest.mark.asyncio
    async def test_assembly_failed_retried_once(self, boundary, policy):
        """Test assembly failures get exactly one more attempt."""
        boundary.finalize_failures = [AssemblyFailedError("failed")] * 3

        with pytest.raises(AssemblyFailedError):
            await Finalizer(boundary, policy).finalize('b', 't', 3, 'podcasts')

        assert len(boundary.finalize_calls) == 2

    @pytest.mark.asyncio
    async def test_network_failure_wrapped(self, boundary, policy):
        """Test exhausted transient failures become FinalizeError."""
        boundary.finalize_failures = [NetworkError("reset")] * 2

        with pytest.raises(FinalizeError) as exc_info:
            await Finalizer(boundary, policy).finalize('b', 't', 3, 'podcasts')

        assert isinstance(exc_info.value.__cause__, NetworkError)


class TestConnectivityProbe:
    """Test suite for ConnectivityProbe."""

    @pytest.mark.asyncio
    async def test_online(self, boundary):
        """Test a successful ping means online."""
        assert await ConnectivityProbe(boundary).is_online()
        assert boundary.ping_calls == 1

    @pytest.mark.asyncio
    async def test_ping_failure_means_offline(self, boundary):
        """Test a failing ping means offline without raising."""
        boundary.ping_error = NetworkError("unreachable")

        assert not await ConnectivityProbe(boundary).is_online()

    @pytest.mark.asyncio
    async def test_timeout_means_offline(self):
        """Test a slow ping counts as offline."""
        boundary = AsyncMock()

        async def slow_ping():
            await asyncio.sleep(1)

        boundary.ping = slow_ping

        assert not await ConnectivityProbe(boundary, timeout=0.01).is_online()

    @pytest.mark.asyncio
    async def test_offline_signal_is_authoritative(self, boundary):
        """Test the local signal skips the network round trip."""
        probe = ConnectivityProbe(boundary, offline_signal=lambda: True)

        assert not await probe.is_online()
        assert boundary.ping_calls == 0

    @pytest.mark.asyncio
    async def test_broken_signal_is_ignored(self, boundary):
        """Test a failing signal falls back to the ping."""
        def broken():
            raise RuntimeError("no network manager")

        assert await ConnectivityProbe(boundary, offline_signal=broken).is_online()
