"""Repository primitives for books, their chunks and cached analysis summaries."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import sqlite3
import threading
from typing import Sequence

from folio.storage.schema import apply_runtime_pragmas, ensure_schema


@dataclass(slots=True)
class BookConflictError(Exception):
    """Raised when a book with the same external id already exists."""

    external_id: str

    def __str__(self) -> str:
        return f"Book already exists (external_id={self.external_id})"


@dataclass(slots=True)
class BookRow:
    id: int
    external_id: str
    title: str
    author: str
    language: str
    description: str
    cover_image_url: str | None
    created_at: str

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "external_id": self.external_id,
            "title": self.title,
            "author": self.author,
            "language": self.language,
            "description": self.description,
            "cover_image_url": self.cover_image_url,
            "created_at": self.created_at,
        }


@dataclass(slots=True)
class ChunkRow:
    book_id: int
    order: int
    text: str


@dataclass(slots=True)
class SummaryRow:
    book_id: int
    summary: str


_BOOK_COLUMNS = "id, external_id, title, author, language, description, cover_image_url, created_at"


def _book_from_row(row: sqlite3.Row) -> BookRow:
    return BookRow(
        id=int(row["id"]),
        external_id=row["external_id"],
        title=row["title"],
        author=row["author"],
        language=row["language"],
        description=row["description"],
        cover_image_url=row["cover_image_url"],
        created_at=row["created_at"],
    )


class LibraryRepository:
    """SQLite-backed store shared by ingestion and analysis.

    The connection is used from worker threads (``asyncio.to_thread``), so it
    is opened with ``check_same_thread=False`` and every statement runs under
    one lock.
    """

    def __init__(self, db_path: str | Path) -> None:
        self._db_path = Path(db_path)
        self._lock = threading.Lock()
        self._connection = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._connection.row_factory = sqlite3.Row
        apply_runtime_pragmas(self._connection)
        ensure_schema(self._connection)

    @property
    def connection(self) -> sqlite3.Connection:
        return self._connection

    def close(self) -> None:
        with self._lock:
            self._connection.close()

    def __enter__(self) -> "LibraryRepository":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def create_book(
        self,
        *,
        external_id: str,
        title: str,
        author: str,
        language: str,
        description: str,
        cover_image_url: str | None = None,
    ) -> BookRow:
        with self._lock:
            try:
                with self._connection:
                    cursor = self._connection.execute(
                        """
                        INSERT INTO books(external_id, title, author, language, description, cover_image_url)
                        VALUES(?, ?, ?, ?, ?, ?)
                        """,
                        (external_id, title, author, language, description, cover_image_url),
                    )
            except sqlite3.IntegrityError as exc:
                if "unique" not in str(exc).lower():
                    raise
                raise BookConflictError(external_id) from exc

            row = self._connection.execute(
                f"SELECT {_BOOK_COLUMNS} FROM books WHERE id = ?",
                (cursor.lastrowid,),
            ).fetchone()
        if row is None:
            raise RuntimeError(f"Book row missing after insert: {external_id}")
        return _book_from_row(row)

    def find_book_by_external_id(self, external_id: str) -> BookRow | None:
        with self._lock:
            row = self._connection.execute(
                f"SELECT {_BOOK_COLUMNS} FROM books WHERE external_id = ?",
                (external_id,),
            ).fetchone()
        if row is None:
            return None
        return _book_from_row(row)

    def list_books(self) -> list[BookRow]:
        """Return all books, newest first."""

        with self._lock:
            rows = self._connection.execute(
                f"SELECT {_BOOK_COLUMNS} FROM books ORDER BY created_at DESC, id DESC"
            ).fetchall()
        return [_book_from_row(row) for row in rows]

    def delete_book(self, book_id: int) -> bool:
        """Delete a book; chunks and summary go with it via ON DELETE CASCADE."""

        with self._lock:
            with self._connection:
                cursor = self._connection.execute("DELETE FROM books WHERE id = ?", (book_id,))
        return cursor.rowcount > 0

    def create_chunks(self, book_id: int, chunks: Sequence[ChunkRow]) -> int:
        if any(chunk.book_id != book_id for chunk in chunks):
            raise ValueError(f"All chunks must belong to book {book_id}")

        with self._lock:
            with self._connection:
                self._connection.executemany(
                    "INSERT INTO book_chunks(book_id, chunk_order, text) VALUES(?, ?, ?)",
                    [(book_id, chunk.order, chunk.text) for chunk in chunks],
                )
        return len(chunks)

    def find_chunks_by_book_id(self, book_id: int, order: int | None = None) -> list[ChunkRow]:
        with self._lock:
            if order is None:
                rows = self._connection.execute(
                    """
                    SELECT book_id, chunk_order, text
                    FROM book_chunks
                    WHERE book_id = ?
                    ORDER BY chunk_order ASC
                    """,
                    (book_id,),
                ).fetchall()
            else:
                rows = self._connection.execute(
                    """
                    SELECT book_id, chunk_order, text
                    FROM book_chunks
                    WHERE book_id = ? AND chunk_order = ?
                    """,
                    (book_id, order),
                ).fetchall()

        return [
            ChunkRow(book_id=int(row["book_id"]), order=int(row["chunk_order"]), text=row["text"])
            for row in rows
        ]

    def find_summary_by_book_id(self, book_id: int) -> SummaryRow | None:
        with self._lock:
            row = self._connection.execute(
                "SELECT book_id, summary FROM book_summaries WHERE book_id = ?",
                (book_id,),
            ).fetchone()
        if row is None:
            return None
        return SummaryRow(book_id=int(row["book_id"]), summary=row["summary"])

    def create_summary(self, book_id: int, summary: str) -> bool:
        """Store the summary unless one exists already; returns whether it was written."""

        with self._lock:
            with self._connection:
                cursor = self._connection.execute(
                    """
                    INSERT INTO book_summaries(book_id, summary)
                    VALUES(?, ?)
                    ON CONFLICT(book_id) DO NOTHING
                    """,
                    (book_id, summary),
                )
        return cursor.rowcount > 0
