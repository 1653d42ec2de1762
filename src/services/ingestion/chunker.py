"""Text chunking strategies for Markdown documents.

Three interchangeable strategies, selected by configuration:

1. **headers** -- split on Markdown heading lines (``#`` to ``######``).
   Each section keeps its heading; a section longer than the size limit is
   re-split by the size strategy and gets `` (part N)`` heading suffixes.
   Heading-like lines inside fenced code blocks are ignored.

2. **size** -- fixed windows of ``chunk_size`` characters, each window
   overlapping the previous one by ``overlap`` characters.  A window's end
   is pulled back to the last ``". "`` or newline when that boundary lies
   past the window's midpoint, so chunks rarely stop mid-sentence.

3. **none** -- the whole document is one chunk, for content that was
   already segmented upstream.

Chunk text is never stripped: with ``overlap=0`` the size strategy's
chunks concatenate back to the exact input, except that windows holding
only whitespace are dropped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Literal

import structlog

logger = structlog.get_logger(logger_name=__name__)

ChunkingStrategy = Literal["headers", "size", "none"]

_HEADER_RE = re.compile(r"^(#{1,6})\s+(.+)$")
_FENCE_RE = re.compile(r"^\s*(```|~~~)")


@dataclass(frozen=True)
class TextSection:
    """One chunk candidate: its text and the heading it sits under."""

    heading: str
    text: str


def chunk_text(text: str, chunk_size: int = 1000, overlap: int = 200) -> list[str]:
    """Split *text* into overlapping windows of at most *chunk_size* characters.

    Parameters
    ----------
    text:
        The text to split.
    chunk_size:
        Maximum characters per chunk.
    overlap:
        Characters shared between consecutive chunks.  Must be smaller
        than *chunk_size*.

    Returns
    -------
    list[str]
        Chunks in document order.  Empty input returns an empty list;
        input no longer than *chunk_size* is returned as a single chunk.
        Whitespace-only windows are dropped, so with ``overlap=0`` the
        chunks rebuild *text* exactly unless it holds a blank run of at
        least *chunk_size* characters.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if not 0 <= overlap < chunk_size:
        raise ValueError("overlap must be >= 0 and smaller than chunk_size")
    if not text:
        return []
    if len(text) <= chunk_size:
        return [text]

    length = len(text)
    chunks: list[str] = []
    start = 0

    while start < length:
        end = min(start + chunk_size, length)
        window = text[start:end]

        if end < length:
            break_point = max(window.rfind(". "), window.rfind("\n"))
            if break_point > chunk_size / 2:
                window = window[: break_point + 1]

        chunks.append(window)
        consumed = start + len(window)
        if consumed >= length:
            break

        next_start = consumed - overlap
        # A pulled-back window can be shorter than the overlap.
        if next_start <= start:
            next_start = consumed
        start = next_start

        # The rest fits in one window.  It always reaches past the last
        # chunk because consumed < length here.
        if start + chunk_size >= length:
            chunks.append(text[start:])
            break

    return [chunk for chunk in chunks if chunk.strip()]


def split_sections(text: str) -> list[TextSection]:
    """Split Markdown *text* at heading lines.

    Text before the first heading becomes a section with an empty heading.
    Sections containing only whitespace are dropped.
    """
    sections: list[TextSection] = []
    heading = ""
    buffer: list[str] = []
    in_fence = False

    for line in text.splitlines(keepends=True):
        bare = line.rstrip("\r\n")
        if _FENCE_RE.match(bare):
            in_fence = not in_fence
        match = None if in_fence else _HEADER_RE.match(bare)
        if match:
            body = "".join(buffer)
            if body.strip():
                sections.append(TextSection(heading=heading, text=body))
            heading = match.group(2).strip()
            buffer = [line]
        else:
            buffer.append(line)

    body = "".join(buffer)
    if body.strip():
        sections.append(TextSection(heading=heading, text=body))
    return sections


def chunk_by_headers(text: str, max_chunk_size: int = 8000, overlap: int = 0) -> list[TextSection]:
    """Split Markdown *text* by headings, re-splitting oversized sections.

    Parameters
    ----------
    text:
        Markdown source.
    max_chunk_size:
        Sections longer than this are cut with :func:`chunk_text`.
    overlap:
        Overlap used when an oversized section is cut.

    Returns
    -------
    list[TextSection]
        Sections in document order.  Parts after the first carry
        ``"<heading> (part N)"`` headings.
    """
    result: list[TextSection] = []
    for section in split_sections(text):
        if len(section.text) <= max_chunk_size:
            result.append(section)
            continue
        parts = chunk_text(section.text, max_chunk_size, overlap)
        for index, part in enumerate(parts):
            suffix = f" (part {index + 1})" if index > 0 else ""
            result.append(TextSection(heading=f"{section.heading}{suffix}", text=part))
    return result


class TextChunker:
    """Applies one configured chunking strategy to document text.

    Parameters
    ----------
    strategy:
        ``"headers"``, ``"size"`` or ``"none"``.
    chunk_size:
        Maximum characters per chunk (the section limit for ``"headers"``).
    overlap:
        Characters shared between consecutive size-based chunks.
    """

    def __init__(
        self,
        strategy: ChunkingStrategy = "headers",
        chunk_size: int = 6000,
        overlap: int = 500,
    ) -> None:
        if strategy not in ("headers", "size", "none"):
            raise ValueError(f"Unknown chunking strategy: {strategy!r}")
        if chunk_size <= 0 or not 0 <= overlap < chunk_size:
            raise ValueError("chunk_size must be positive and overlap smaller than chunk_size")
        self._strategy = strategy
        self._chunk_size = chunk_size
        self._overlap = overlap

    @property
    def strategy(self) -> str:
        return self._strategy

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def split(self, text: str) -> list[TextSection]:
        """Split *text* according to the configured strategy.

        Whitespace-only input yields no sections for every strategy.
        """
        if not text or not text.strip():
            return []

        if self._strategy == "headers":
            sections = chunk_by_headers(text, self._chunk_size, self._overlap)
        elif self._strategy == "size":
            sections = [
                TextSection(heading="", text=part)
                for part in chunk_text(text, self._chunk_size, self._overlap)
            ]
        else:
            first = next((s.heading for s in split_sections(text) if s.heading), "")
            sections = [TextSection(heading=first, text=text)]

        logger.debug(
            "chunking_complete",
            strategy=self._strategy,
            num_chunks=len(sections),
            chars=len(text),
        )
        return sections
