"""SQLite schema and pragmas for the book library store."""

from __future__ import annotations

import sqlite3


BUSY_TIMEOUT_MS = 5000

# Foreign keys must be on per connection for chunk and summary cascades.
_CONNECTION_PRAGMAS: tuple[tuple[str, str], ...] = (
    ("journal_mode", "WAL"),
    ("busy_timeout", str(BUSY_TIMEOUT_MS)),
    ("synchronous", "NORMAL"),
    ("foreign_keys", "ON"),
)


def apply_runtime_pragmas(connection: sqlite3.Connection) -> None:
    for name, value in _CONNECTION_PRAGMAS:
        connection.execute(f"PRAGMA {name}={value};")


def ensure_schema(connection: sqlite3.Connection) -> None:
    """Create book, chunk and summary tables if missing."""

    connection.executescript(
        """
        CREATE TABLE IF NOT EXISTS books (
            id INTEGER PRIMARY KEY,
            external_id TEXT NOT NULL UNIQUE,
            title TEXT NOT NULL DEFAULT '',
            author TEXT NOT NULL DEFAULT '',
            language TEXT NOT NULL DEFAULT '',
            description TEXT NOT NULL DEFAULT '',
            cover_image_url TEXT,
            created_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
        );

        CREATE TABLE IF NOT EXISTS book_chunks (
            id INTEGER PRIMARY KEY,
            book_id INTEGER NOT NULL,
            chunk_order INTEGER NOT NULL CHECK(chunk_order >= 1),
            text TEXT NOT NULL,
            FOREIGN KEY(book_id) REFERENCES books(id) ON DELETE CASCADE,
            UNIQUE(book_id, chunk_order)
        );

        CREATE TABLE IF NOT EXISTS book_summaries (
            id INTEGER PRIMARY KEY,
            book_id INTEGER NOT NULL UNIQUE,
            summary TEXT NOT NULL,
            created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(book_id) REFERENCES books(id) ON DELETE CASCADE
        );

        CREATE INDEX IF NOT EXISTS idx_books_created_at ON books(created_at);
        CREATE INDEX IF NOT EXISTS idx_book_chunks_book_id ON book_chunks(book_id, chunk_order);
        """
    )
