"""Pytest fixtures for podupload tests."""
import asyncio
from typing import Dict, List, Optional

import pytest
from Crypto.Random import get_random_bytes

from podupload.core.api.config import RetryConfig
from podupload.core.cache import UploadCache
from podupload.core.upload import UploadConfig, UploadCoordinator, UploadSource

KB = 1024
RESOURCE_URL = 'https://cdn.example.com/podcasts/episode.mp3'


class StubBoundary:
    """
    In-memory storage boundary that records every call.

    Failures are scripted per call site: ``chunk_failures[index]`` and the
    ``whole_failures`` / ``finalize_failures`` lists are consumed in order,
    while ``chunk_error`` / ``whole_error`` fail every call. Chunks with an
    index of at least ``gate_after`` wait for ``gate`` when it is set.
    Setting ``payloads`` to a dict keeps the bytes of every stored chunk.
    """

    def __init__(self, resource_url: str = RESOURCE_URL):
        self.resource_url = resource_url
        self.chunk_calls: List[dict] = []
        self.whole_calls: List[dict] = []
        self.finalize_calls: List[dict] = []
        self.ping_calls = 0
        self.stored: Dict[str, Dict[int, int]] = {}
        self.payloads: Optional[Dict[str, Dict[int, bytes]]] = None

        self.chunk_failures: Dict[int, List[Exception]] = {}
        self.chunk_error: Optional[Exception] = None
        self.whole_failures: List[Exception] = []
        self.whole_error: Optional[Exception] = None
        self.finalize_failures: List[Exception] = []
        self.ping_error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None
        self.gate_after = 0

    @property
    def network_calls(self) -> int:
        return len(self.chunk_calls) + len(self.whole_calls) + len(self.finalize_calls)

    @property
    def batch_ids(self) -> set:
        return {call['batch_id'] for call in self.chunk_calls}

    def attempts_for(self, index: int) -> int:
        return sum(1 for call in self.chunk_calls if call['index'] == index)

    async def upload_chunk(self, batch_id, index, total_chunks, data, folder, on_bytes=None):
        self.chunk_calls.append({
            'batch_id': batch_id,
            'index': index,
            'total_chunks': total_chunks,
            'size': len(data),
            'folder': folder,
        })
        if self.gate is not None and index >= self.gate_after:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if self.chunk_error is not None:
            raise self.chunk_error
        failures = self.chunk_failures.get(index)
        if failures:
            raise failures.pop(0)
        if on_bytes:
            on_bytes(len(data))
        self.stored.setdefault(batch_id, {})[index] = len(data)
        if self.payloads is not None:
            self.payloads.setdefault(batch_id, {})[index] = bytes(data)
        return f"{batch_id}:{index}"

    async def upload_whole(self, object_name, data, folder, mime_type=None, on_bytes=None):
        self.whole_calls.append({
            'object_name': object_name,
            'size': len(data),
            'folder': folder,
            'mime_type': mime_type,
        })
        await asyncio.sleep(0)
        if self.whole_error is not None:
            raise self.whole_error
        if self.whole_failures:
            raise self.whole_failures.pop(0)
        if on_bytes:
            half = len(data) // 2
            on_bytes(half)
            on_bytes(len(data))
        return self.resource_url

    async def finalize_batch(self, batch_id, total_chunks, target_name, folder):
        self.finalize_calls.append({
            'batch_id': batch_id,
            'total_chunks': total_chunks,
            'target_name': target_name,
            'folder': folder,
            'stored': sorted(self.stored.get(batch_id, {})),
        })
        await asyncio.sleep(0)
        if self.finalize_failures:
            raise self.finalize_failures.pop(0)
        return self.resource_url

    async def ping(self):
        self.ping_calls += 1
        if self.ping_error is not None:
            raise self.ping_error


class StaticProbe:
    """Connectivity probe with forced answers (scripted first, then ``online``)."""

    def __init__(self, online: bool = True, answers: Optional[List[bool]] = None):
        self.online = online
        self.answers = list(answers or [])
        self.checks = 0

    async def is_online(self) -> bool:
        self.checks += 1
        if self.answers:
            return self.answers.pop(0)
        return self.online


@pytest.fixture
def boundary():
    """Stub boundary recording every call."""
    return StubBoundary()


@pytest.fixture
def probe():
    """Connectivity probe that reports online."""
    return StaticProbe(online=True)


@pytest.fixture
def retry_config():
    """Retry configuration without delays."""
    return RetryConfig.immediate()


@pytest.fixture
def upload_config():
    """Small thresholds so chunked uploads need only a few KB."""
    return UploadConfig(
        large_file_threshold=8 * KB,
        chunk_size=1 * KB,
        max_concurrent_chunks=3,
        poll_base_delay=0.01,
        poll_max_delay=0.05,
        poll_max_iterations=20
    )


@pytest.fixture
def cache(upload_config):
    """Fresh upload cache per test."""
    return UploadCache(retention=upload_config.cache_retention)


@pytest.fixture
def coordinator(boundary, cache, upload_config, retry_config, probe):
    """Coordinator wired to the stub boundary."""
    return UploadCoordinator(
        boundary,
        cache=cache,
        config=upload_config,
        retry_config=retry_config,
        probe=probe
    )


@pytest.fixture
def audio_source():
    """20 KB audio file: 20 chunks with the test chunk size."""
    return UploadSource.from_bytes(
        'episode.mp3', get_random_bytes(20 * KB), last_modified=1_700_000_000.0
    )


@pytest.fixture
def small_source():
    """2 KB audio file, below the test threshold."""
    return UploadSource.from_bytes(
        'intro.mp3', get_random_bytes(2 * KB), last_modified=1_700_000_000.0
    )


@pytest.fixture
def image_source():
    """Cover image above the chunking threshold."""
    return UploadSource.from_bytes(
        'cover.png', get_random_bytes(16 * KB), last_modified=1_700_000_000.0
    )
