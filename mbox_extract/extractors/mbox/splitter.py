"""
Split a concatenated mbox archive into message blocks.

A block starts at every line beginning with ``From `` (at stream start or
right after ``\\n``) and keeps that delimiter line. Body lines that happen to
start with ``From `` are not escaped, so they also start a new block.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Iterator, Optional, Union

from mbox_extract.extractors.mbox.config import DELIMITER_RE, MBOX_DELIMITER
from mbox_extract.ir import MessageBlock


def _as_text(content: Union[str, bytes]) -> str:
    if isinstance(content, bytes):
        return content.decode("utf-8", errors="replace")
    return content


def split_text(content: Union[str, bytes]) -> Iterator[MessageBlock]:
    """Lazily split in-memory archive content into blocks.

    Concatenating ``block.text`` of every yielded block reproduces *content*.
    Text before the first delimiter, if any, becomes its own block.
    """
    text = _as_text(content)
    if not text:
        return

    index = 0
    start = 0
    for match in DELIMITER_RE.finditer(text):
        if match.start() == start:
            continue
        yield MessageBlock(index=index, text=text[start:match.start()])
        index += 1
        start = match.start()

    yield MessageBlock(index=index, text=text[start:])


def split_lines(lines: Iterable[str]) -> Iterator[MessageBlock]:
    """Streaming variant of :func:`split_text` over lines that keep their ``\\n``."""
    index = 0
    buffer = []
    for line in lines:
        if line.startswith(MBOX_DELIMITER) and buffer:
            yield MessageBlock(index=index, text="".join(buffer))
            index += 1
            buffer = []
        buffer.append(line)

    if buffer:
        text = "".join(buffer)
        if text:
            yield MessageBlock(index=index, text=text)


def _read_lines(path: Path) -> Iterator[str]:
    # Binary iteration splits on b"\n" only, matching the in-memory rule.
    with open(path, "rb") as f:
        for raw in f:
            yield raw.decode("utf-8", errors="replace")


class MessageSplitter:
    """Restartable, lazy sequence of :class:`MessageBlock` over an archive.

    Either in-memory ``content`` or a ``path`` streamed from disk; every
    ``iter()`` re-scans the source from the beginning.
    """

    def __init__(
        self,
        content: Union[str, bytes, None] = None,
        *,
        path: Union[str, Path, None] = None,
    ) -> None:
        if (content is None) == (path is None):
            raise ValueError("MessageSplitter needs exactly one of content or path")
        self._content = content
        self._path: Optional[Path] = Path(path) if path is not None else None

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "MessageSplitter":
        return cls(path=path)

    def __iter__(self) -> Iterator[MessageBlock]:
        if self._path is not None:
            return split_lines(_read_lines(self._path))
        return split_text(self._content)
