"""
Header section detection and folded-header parsing.

Two boundary rules:

1. Primary: the first blank line (``\\n\\n``) separates headers from body.
2. Fallback (no ``\\n\\n`` in the block): a small state machine walks the
   lines (``scanning-headers`` -> ``in-continuation`` -> ``body``) and stops at
   the first blank line, the first non-continuation line without a header
   colon, or the end of content.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from mbox_extract.extractors.mbox.config import (
    CONTINUATION_PREFIXES,
    HEADER_BODY_SEPARATOR,
    MAX_HEADER_COLON_POS,
)
from mbox_extract.extractors.mbox.header_decoder import HeaderWordDecoder


class HeaderMap(Mapping[str, str]):
    """Ordered header name -> decoded value mapping.

    Names keep their original case; repeating the exact same name overwrites
    the value (last write wins). Lookups through :meth:`get_ci` and
    :meth:`first` ignore case.
    """

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    def __getitem__(self, name: str) -> str:
        return self._items[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"HeaderMap({self._items!r})"

    def set(self, name: str, value: str) -> None:
        self._items[name] = value

    def get_ci(self, name: str, default: str = "") -> str:
        if name in self._items:
            return self._items[name]
        lowered = name.lower()
        for key, value in self._items.items():
            if key.lower() == lowered:
                return value
        return default

    def first(self, *names: str) -> str:
        """First non-empty value for *names*: exact-case names first, then any case."""
        for name in names:
            value = self._items.get(name)
            if value:
                return value
        lowered = [n.lower() for n in names]
        for target in lowered:
            for key, value in self._items.items():
                if key.lower() == target and value:
                    return value
        return ""

    def to_dict(self) -> Dict[str, str]:
        return dict(self._items)


class BoundaryState(str, Enum):
    SCANNING_HEADERS = "scanning-headers"
    IN_CONTINUATION = "in-continuation"
    BODY = "body"


@dataclass
class BoundaryScan:
    """Result of the fallback scan: where the header section ends and the body begins."""
    header_end: int
    body_start: int
    saw_header: bool
    states: List[BoundaryState] = field(default_factory=list)


def is_continuation(line: str) -> bool:
    return line.startswith(CONTINUATION_PREFIXES)


def is_header_line(line: str) -> bool:
    """Non-indented line with a colon inside the first ``MAX_HEADER_COLON_POS`` characters."""
    if not line or is_continuation(line):
        return False
    colon = line.find(":")
    return 0 < colon < MAX_HEADER_COLON_POS


def is_blank(line: str) -> bool:
    return line.strip() == ""


def next_state(state: BoundaryState, line: str) -> BoundaryState:
    """Transition of the fallback boundary state machine for one line."""
    if state == BoundaryState.BODY:
        return BoundaryState.BODY
    if is_blank(line):
        return BoundaryState.BODY
    if is_continuation(line):
        return BoundaryState.IN_CONTINUATION
    if is_header_line(line):
        return BoundaryState.SCANNING_HEADERS
    return BoundaryState.BODY


def scan_boundary(lines: List[str]) -> BoundaryScan:
    """Run the fallback state machine over *lines*."""
    state = BoundaryState.SCANNING_HEADERS
    saw_header = False
    states: List[BoundaryState] = []

    for i, line in enumerate(lines):
        state = next_state(state, line)
        states.append(state)
        if state == BoundaryState.BODY:
            # A blank line is consumed as the separator; any other line opens the body.
            body_start = i + 1 if is_blank(line) else i
            return BoundaryScan(header_end=i, body_start=body_start, saw_header=saw_header, states=states)
        if state == BoundaryState.SCANNING_HEADERS:
            saw_header = True

    return BoundaryScan(header_end=len(lines), body_start=len(lines), saw_header=saw_header, states=states)


class HeaderParser:
    """Locate the header section of a message and parse it into a :class:`HeaderMap`."""

    @staticmethod
    def split_header_body(content: str) -> Optional[Tuple[str, str]]:
        """Return ``(header_section, raw_body)`` or *None* if no header-like content exists."""
        sep = content.find(HEADER_BODY_SEPARATOR)
        if sep != -1:
            header_section = content[:sep]
            body = content[sep + len(HEADER_BODY_SEPARATOR):]
            if not any(is_header_line(line) for line in header_section.split("\n")):
                return None
            return header_section, body

        lines = content.split("\n")
        scan = scan_boundary(lines)
        if not scan.saw_header:
            return None
        return "\n".join(lines[:scan.header_end]), "\n".join(lines[scan.body_start:])

    @staticmethod
    def parse_headers(header_section: str) -> HeaderMap:
        """Parse folded headers; continuation lines join the current value with one space.

        A line that is neither a header nor a continuation is skipped and the
        current header stays open, so later continuations still join it.
        Continuation lines before the first header are dropped.
        """
        headers = HeaderMap()
        current_name: Optional[str] = None
        parts: List[str] = []

        def _flush() -> None:
            if current_name is not None:
                value = " ".join(p for p in parts if p)
                headers.set(current_name, HeaderWordDecoder.decode(value))

        for line in header_section.split("\n"):
            if is_continuation(line):
                if current_name is not None:
                    parts.append(line.strip())
                continue
            if not is_header_line(line):
                continue

            _flush()
            colon = line.find(":")
            current_name = line[:colon].strip()
            parts = [line[colon + 1:].strip()]

        _flush()
        return headers

    @classmethod
    def parse(cls, content: str) -> Optional[Tuple[HeaderMap, str]]:
        """Split and parse; *None* signals a header boundary failure."""
        split = cls.split_header_body(content)
        if split is None:
            return None
        header_section, body = split
        return cls.parse_headers(header_section), body
