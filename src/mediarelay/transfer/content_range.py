"""Content-Range and Range header helpers for the resumable upload protocol."""

import re
from dataclasses import dataclass
from typing import Optional

_CONTENT_RANGE_RE = re.compile(r"^bytes (?:(\d+)-(\d+)|\*)/(\d+)$")
_RANGE_RE = re.compile(r"^bytes=(\d+)-(\d+)$")


@dataclass(frozen=True)
class ContentRange:
    """Parsed ``Content-Range`` request header."""

    start: Optional[int]  # None for a probe (bytes */total)
    end: Optional[int]  # Inclusive
    total: int

    @property
    def is_probe(self) -> bool:
        return self.start is None

    @property
    def length(self) -> int:
        if self.start is None or self.end is None:
            return 0
        return self.end - self.start + 1


def format_content_range(start: int, end: int, total: int) -> str:
    """Build ``bytes start-(end-1)/total`` for the half-open range [start, end)."""
    if not 0 <= start < end <= total:
        raise ValueError(f"Invalid byte range [{start}, {end}) for total {total}")
    return f"bytes {start}-{end - 1}/{total}"


def format_probe_range(total: int) -> str:
    """Build the zero-length probe header ``bytes */total``."""
    return f"bytes */{total}"


def parse_content_range(value: str) -> ContentRange:
    """Parse a ``Content-Range`` header value.

    Raises:
        ValueError: If the value is not ``bytes a-b/N`` or ``bytes */N``
    """
    match = _CONTENT_RANGE_RE.match(value.strip())
    if not match:
        raise ValueError(f"Malformed Content-Range: {value!r}")

    start_s, end_s, total_s = match.groups()
    total = int(total_s)
    if start_s is None:
        return ContentRange(start=None, end=None, total=total)

    start, end = int(start_s), int(end_s)
    if start > end or end >= total:
        raise ValueError(f"Content-Range out of bounds: {value!r}")
    return ContentRange(start=start, end=end, total=total)


def parse_range_upper_bound(value: Optional[str]) -> Optional[int]:
    """Return ``k`` from a ``Range: bytes=0-k`` response header.

    Returns None when the header is missing or unusable.
    """
    if not value:
        return None
    match = _RANGE_RE.match(value.strip())
    if not match:
        return None
    return int(match.group(2))
