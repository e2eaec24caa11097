"""Line fingerprint used to re-identify findings after line drift."""

import hashlib
import re

_WHITESPACE = re.compile(r"\s+")


def line_checksum(line_content: str) -> int:
    """Fingerprint a line's content, ignoring all whitespace.

    Not collision resistant; identical lines share a fingerprint.
    """
    normalized = _WHITESPACE.sub("", line_content)
    digest = hashlib.md5(normalized.encode("utf-8"), usedforsecurity=False).hexdigest()
    return int(digest[:8], 16)
