"""Tests for chunking strategies."""
import pytest

from podupload.core.upload.strategies.chunking import FixedSizeChunkingStrategy

KB = 1024


class TestFixedSizeChunkingStrategy:
    """Test suite for FixedSizeChunkingStrategy."""

    @pytest.fixture
    def strategy(self):
        """Create strategy instance with 1 KB chunks."""
        return FixedSizeChunkingStrategy(chunk_size=KB)

    def test_empty_file(self, strategy):
        """Test chunking empty file."""
        assert strategy.calculate_chunks(0) == []

    def test_small_file(self, strategy):
        """Test file smaller than one chunk."""
        chunks = strategy.calculate_chunks(100)

        assert len(chunks) == 1
        assert (chunks[0].start, chunks[0].end) == (0, 100)

    def test_exact_multiple(self, strategy):
        """Test file that is an exact multiple of the chunk size."""
        chunks = strategy.calculate_chunks(4 * KB)

        assert len(chunks) == 4
        assert all(chunk.size == KB for chunk in chunks)

    def test_remainder_chunk(self, strategy):
        """Test the last chunk holds the remainder."""
        chunks = strategy.calculate_chunks(4 * KB + 10)

        assert len(chunks) == 5
        assert chunks[-1].size == 10

    @pytest.mark.parametrize('size', [1, KB - 1, KB + 1, 37 * KB + 5, 1000 * KB])
    def test_chunks_cover_entire_file(self, strategy, size):
        """Test chunks are contiguous, indexed in order and cover the file."""
        chunks = strategy.calculate_chunks(size)

        assert len(chunks) == -(-size // KB)
        assert chunks[0].start == 0
        assert chunks[-1].end == size
        assert [chunk.index for chunk in chunks] == list(range(len(chunks)))
        for current, following in zip(chunks, chunks[1:]):
            assert current.end == following.start

    def test_canonical_podcast_file(self):
        """Test 120 MB with 5 MB chunks gives 24 chunks."""
        strategy = FixedSizeChunkingStrategy(chunk_size=5 * KB * KB)

        assert len(strategy.calculate_chunks(120 * KB * KB)) == 24

    def test_invalid_chunk_size(self):
        """Test non-positive chunk size raises error."""
        with pytest.raises(ValueError):
            FixedSizeChunkingStrategy(chunk_size=0)

    def test_negative_file_size(self, strategy):
        """Test negative file size raises error."""
        with pytest.raises(ValueError):
            strategy.calculate_chunks(-1)
