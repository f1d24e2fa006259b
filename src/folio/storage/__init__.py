"""Book library storage foundations."""

from .repository import BookConflictError, BookRow, ChunkRow, LibraryRepository, SummaryRow

__all__ = ["BookConflictError", "BookRow", "ChunkRow", "LibraryRepository", "SummaryRow"]
