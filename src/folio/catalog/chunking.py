"""Paragraph-preserving chunk builder for full book text."""

from __future__ import annotations

from dataclasses import dataclass
import re

# Leaves room for the analysis prompt inside an 8k-token context window.
DEFAULT_CHUNK_MAX_CHARS = 26000
PARAGRAPH_SEPARATOR = "\n\n"

# A blank-line run, CRLF or LF; line endings inside a paragraph are untouched.
_BLANK_LINE_RE = re.compile(r"\r?\n\s*\n")


@dataclass(slots=True)
class TextChunk:
    """Ordered slice of a book; ``order`` starts at 1."""

    order: int
    text: str


def split_paragraphs(text: str) -> list[str]:
    """Split on blank-line runs, dropping whitespace-only pieces.

    Paragraphs keep their own indentation and line endings.
    """

    return [piece for piece in _BLANK_LINE_RE.split(text) if piece.strip()]


def build_chunks(text: str, *, max_chars: int = DEFAULT_CHUNK_MAX_CHARS) -> list[TextChunk]:
    """Group paragraphs into chunks of at most *max_chars* characters.

    A paragraph is never split: one that alone exceeds the limit becomes its
    own oversized chunk. Each closed chunk is trimmed at its edges only, so
    inside a chunk the paragraphs read exactly as in ``split_paragraphs``.
    """

    if max_chars <= 0:
        raise ValueError("max_chars must be positive")

    texts: list[str] = []
    current: list[str] = []
    current_len = 0

    for paragraph in split_paragraphs(text):
        addition = len(paragraph) if not current else len(paragraph) + len(PARAGRAPH_SEPARATOR)
        if current and current_len + addition > max_chars:
            texts.append(PARAGRAPH_SEPARATOR.join(current).strip())
            current = []
            current_len = 0
            addition = len(paragraph)

        current.append(paragraph)
        current_len += addition

    if current:
        texts.append(PARAGRAPH_SEPARATOR.join(current).strip())

    return [TextChunk(order=index, text=chunk_text) for index, chunk_text in enumerate(texts, start=1)]
