"""Sentence-aware text chunking with word-level overlap.

Splits extracted document text into segments of roughly ``chunk_size``
characters (default 2000, about 500 tokens) so each segment can be vectorized
and retrieved on its own.

The chunking strategy has two goals:

1. **Sentence-preserving** -- Chunk boundaries fall between sentences
   (terminal ``.``, ``!`` or ``?`` followed by whitespace), so no chunk
   starts or ends mid-sentence.  A sentence longer than ``chunk_size`` is
   kept whole rather than truncated.

2. **Overlapping windows** -- Each new chunk starts with the trailing whole
   words of the previous chunk (at most ``overlap`` characters) so a passage
   spanning a boundary is retrievable from either side.

The chunker is a pure function of its input: the same text always yields the
same list of segments.
"""

from __future__ import annotations

import re

import structlog

logger = structlog.get_logger(logger_name=__name__)

# Split after terminal punctuation, consuming the whitespace that follows it.
_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


class TextChunker:
    """Splits text into overlapping chunks that respect sentence boundaries.

    Parameters
    ----------
    chunk_size:
        Target maximum number of characters per chunk (default 2000).
    overlap:
        Maximum number of characters carried over from the end of one chunk
        to the start of the next, taken as whole words (default 200).
    """

    def __init__(self, chunk_size: int = 2000, overlap: int = 200) -> None:
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if overlap < 0 or overlap >= chunk_size:
            raise ValueError(f"overlap must be in [0, chunk_size), got {overlap}")
        self._chunk_size = chunk_size
        self._overlap = overlap

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def overlap(self) -> int:
        return self._overlap

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def split(self, text: str) -> list[str]:
        """Split *text* into ordered, non-empty, overlapping segments.

        Sentences are accumulated into a buffer joined by single spaces.  When
        adding the next sentence would push the buffer past ``chunk_size``
        (and the buffer already holds something), the buffer is emitted and
        the next one is seeded with its trailing words plus that sentence.

        Returns
        -------
        list[str]
            One string per chunk.  Empty or whitespace-only input returns an
            empty list.
        """
        if not text or not text.strip():
            return []

        chunks: list[str] = []
        current = ""

        for sentence in self.split_sentences(text):
            candidate = f"{current} {sentence}" if current else sentence
            if current and len(candidate) > self._chunk_size:
                chunks.append(current)
                tail = self._overlap_tail(current)
                current = f"{tail} {sentence}" if tail else sentence
            else:
                current = candidate

        if current.strip():
            chunks.append(current.strip())

        logger.debug(
            "chunking_complete",
            num_chunks=len(chunks),
            text_length=len(text),
            chunk_size=self._chunk_size,
        )
        return chunks

    @staticmethod
    def split_sentences(text: str) -> list[str]:
        """Split *text* after terminal punctuation followed by whitespace.

        Text without any terminal punctuation comes back as a single sentence.
        """
        return [s.strip() for s in _SENTENCE_BOUNDARY.split(text.strip()) if s.strip()]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _overlap_tail(self, chunk: str) -> str:
        """Return the longest run of trailing whole words of *chunk* within ``overlap`` chars."""
        if self._overlap == 0:
            return ""

        tail_words: list[str] = []
        length = 0
        for word in reversed(chunk.split()):
            added = len(word) if not tail_words else len(word) + 1
            if length + added > self._overlap:
                break
            tail_words.append(word)
            length += added

        tail_words.reverse()
        return " ".join(tail_words)
