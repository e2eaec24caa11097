"""Tests for line checksums."""

import hashlib

from findingsync.services.checksum import line_checksum


class TestLineChecksum:
    """Test line fingerprints."""

    def test_whitespace_is_ignored(self):
        """Indentation and spacing do not change the fingerprint."""
        assert line_checksum("    this.x = x") == line_checksum("this.x=x")
        assert line_checksum("this.x = x") == line_checksum("\tthis.x =  x  ")

    def test_value_is_md5_prefix(self):
        """Fingerprint is the first 32 bits of the MD5 hex digest."""
        expected = int(hashlib.md5(b"this.x=x").hexdigest()[:8], 16)

        assert line_checksum("    this.x = x") == expected

    def test_fits_in_32_bits(self):
        """Fingerprints are unsigned 32-bit values."""
        assert 0 <= line_checksum("anything at all") < 2**32

    def test_content_changes_fingerprint(self):
        """Different content gives a different fingerprint."""
        assert line_checksum("this.x = x") != line_checksum("this.y = y")

    def test_identical_lines_collide(self):
        """Unrelated but identical lines share a fingerprint."""
        assert line_checksum("}") == line_checksum("  }")
