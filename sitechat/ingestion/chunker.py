"""
Fixed-window text chunker
=========================
Splits a body of text into overlapping fixed-size windows.

Window i starts at ``i * (chunk_size - overlap)`` in the whitespace-collapsed
text and is ``chunk_size`` characters long. Windows that are not longer than
``min_chars`` (typically the tail of the text) are dropped.
"""

import re
from typing import Iterator

from sitechat.config import CHUNKING
from sitechat.errors import InvalidConfiguration
from sitechat.ingestion.base import PassageChunk, SourceKind

_WHITESPACE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE.sub(" ", text or "").strip()


class ChunkSequence:
    """Lazy, restartable view over the chunks of one text body."""

    def __init__(
        self,
        text: str,
        chunk_size: int,
        overlap: int,
        source_uri: str,
        source_kind: SourceKind,
        min_chars: int,
    ):
        if chunk_size <= 0:
            raise InvalidConfiguration(f"chunk_size must be positive, got {chunk_size}")
        if overlap < 0:
            raise InvalidConfiguration(f"overlap must not be negative, got {overlap}")
        if overlap >= chunk_size:
            raise InvalidConfiguration(
                f"overlap ({overlap}) must be smaller than chunk_size ({chunk_size})"
            )
        self.text = normalize_whitespace(text)
        self.chunk_size = chunk_size
        self.overlap = overlap
        self.source_uri = source_uri
        self.source_kind = source_kind
        self.min_chars = min_chars

    @property
    def step(self) -> int:
        return self.chunk_size - self.overlap

    def __iter__(self) -> Iterator[PassageChunk]:
        for start in range(0, len(self.text), self.step):
            window = self.text[start:start + self.chunk_size]
            if len(window) <= self.min_chars:
                continue
            yield PassageChunk(
                content=window,
                source_uri=self.source_uri,
                chunk_index=start,
                source_kind=self.source_kind,
            )


def chunk_text(
    text: str,
    chunk_size: int,
    overlap: int,
    *,
    source_uri: str = "",
    source_kind: SourceKind = SourceKind.DOCUMENT,
    min_chars: int = CHUNKING["min_chars"],
) -> ChunkSequence:
    return ChunkSequence(text, chunk_size, overlap, source_uri, source_kind, min_chars)
