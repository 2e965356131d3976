"""
Identity and naming helpers.

File fingerprints key the upload cache; batch identifiers and object names
must never collide, so they are drawn from a cryptographic random source.
"""
import re
import time
from typing import Optional

from Crypto.Hash import SHA256
from Crypto.Random import get_random_bytes

_UNSAFE = re.compile(r'[^A-Za-z0-9._-]+')


def fingerprint(name: str, size: int, last_modified: float) -> str:
    """
    Derive a stable identity for a file.

    Args:
        name: File name
        size: Size in bytes
        last_modified: Modification time (seconds since epoch)

    Returns:
        64-character hex digest; equal inputs always give the same key
    """
    mtime_ms = int(round(last_modified * 1000))
    material = f"{name}\x00{size}\x00{mtime_ms}".encode('utf-8')
    return SHA256.new(material).hexdigest()


def source_fingerprint(source) -> str:
    """Fingerprint of an ``UploadSource``."""
    return fingerprint(source.name, source.size, source.last_modified)


def random_token(num_bytes: int = 12) -> str:
    return get_random_bytes(num_bytes).hex()


def new_batch_id() -> str:
    """Token shared by every chunk of one chunked upload attempt."""
    return f"upload_{int(time.time() * 1000)}_{random_token(8)}"


def object_name_for(extension: str = '') -> str:
    """Collision-resistant object name; the caller's file name is never reused."""
    return f"{random_token(16)}{extension}"


def target_name_for(stem: str) -> str:
    """Name of the assembled resource: sanitized stem plus a millisecond stamp."""
    safe = _UNSAFE.sub('_', stem).strip('._') or 'upload'
    return f"{safe}_{int(time.time() * 1000)}"


def namespaced_folder(destination: str, identity: Optional[str] = None) -> str:
    """Prefix the destination with the caller identity when one is given."""
    destination = destination.strip('/')
    if not identity:
        return destination
    safe_identity = _UNSAFE.sub('_', identity).strip('._')
    if not safe_identity:
        return destination
    return f"{destination}/{safe_identity}"
