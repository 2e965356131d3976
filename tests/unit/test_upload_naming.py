"""Tests for fingerprints and generated names."""
import re

from podupload.core.upload.models import UploadSource
from podupload.core.upload.strategies import (
    fingerprint,
    namespaced_folder,
    new_batch_id,
    object_name_for,
    source_fingerprint,
    target_name_for
)


class TestFingerprint:
    """Test suite for the fingerprint keyer."""

    def test_stable(self):
        """Test equal inputs give equal keys."""
        assert fingerprint('a.mp3', 10, 1700000000.5) == fingerprint('a.mp3', 10, 1700000000.5)

    def test_hex_digest(self):
        """Test the key is a SHA-256 hex digest."""
        assert re.fullmatch(r'[0-9a-f]{64}', fingerprint('a.mp3', 10, 0))

    def test_sensitive_to_each_field(self):
        """Test name, size and mtime all change the key."""
        base = fingerprint('a.mp3', 10, 100.0)

        assert fingerprint('b.mp3', 10, 100.0) != base
        assert fingerprint('a.mp3', 11, 100.0) != base
        assert fingerprint('a.mp3', 10, 101.0) != base

    def test_no_field_ambiguity(self):
        """Test fields are separated so they cannot run together."""
        assert fingerprint('a1', 0, 0) != fingerprint('a', 10, 0)

    def test_source_fingerprint(self):
        """Test sources with equal metadata share a key regardless of content."""
        first = UploadSource.from_bytes('a.mp3', b'xx', last_modified=5.0)
        second = UploadSource.from_bytes('a.mp3', b'yy', last_modified=5.0)

        assert source_fingerprint(first) == source_fingerprint(second)


class TestNames:
    """Test suite for generated names."""

    def test_batch_ids_are_unique(self):
        """Test batch identifiers never repeat."""
        ids = {new_batch_id() for _ in range(200)}

        assert len(ids) == 200
        assert all(batch_id.startswith('upload_') for batch_id in ids)

    def test_object_name_keeps_extension_only(self):
        """Test object names are random plus the extension."""
        name = object_name_for('.mp3')

        assert name.endswith('.mp3')
        assert object_name_for('.mp3') != name

    def test_target_name_is_sanitized(self):
        """Test unsafe characters are replaced in target names."""
        name = target_name_for('My Episode #1')

        assert re.fullmatch(r'My_Episode_1_\d+', name)

    def test_target_name_fallback(self):
        """Test an empty stem still yields a name."""
        assert target_name_for('...').startswith('upload_')

    def test_namespaced_folder(self):
        """Test identity namespacing of destinations."""
        assert namespaced_folder('podcasts') == 'podcasts'
        assert namespaced_folder('podcasts', 'user-42') == 'podcasts/user-42'
