from __future__ import annotations

from pathlib import Path

import pytest

from folio.storage.repository import BookConflictError, ChunkRow, LibraryRepository
from folio.storage.schema import BUSY_TIMEOUT_MS


def _create(repository: LibraryRepository, external_id: str, title: str = "Title"):
    return repository.create_book(
        external_id=external_id,
        title=title,
        author="Author",
        language="English",
        description="",
    )


def test_create_and_find_book_by_external_id(tmp_path: Path) -> None:
    with LibraryRepository(tmp_path / "library.db") as repository:
        created = repository.create_book(
            external_id="1342",
            title="Pride and Prejudice",
            author="Austen, Jane",
            language="English",
            description="Novel",
            cover_image_url="https://example.test/cover.jpg",
        )

        found = repository.find_book_by_external_id("1342")

    assert found == created
    assert found is not None
    assert found.id >= 1
    assert found.created_at
    assert found.to_dict()["cover_image_url"] == "https://example.test/cover.jpg"


def test_missing_book_returns_none(tmp_path: Path) -> None:
    with LibraryRepository(tmp_path / "library.db") as repository:
        assert repository.find_book_by_external_id("404") is None


def test_duplicate_external_id_raises_conflict(tmp_path: Path) -> None:
    with LibraryRepository(tmp_path / "library.db") as repository:
        _create(repository, "11")

        with pytest.raises(BookConflictError, match="external_id=11"):
            _create(repository, "11")


def test_list_books_is_newest_first(tmp_path: Path) -> None:
    with LibraryRepository(tmp_path / "library.db") as repository:
        for external_id in ("1", "2", "3"):
            _create(repository, external_id)

        listed = [book.external_id for book in repository.list_books()]

    assert listed == ["3", "2", "1"]


def test_chunks_are_returned_in_order_and_filterable(tmp_path: Path) -> None:
    with LibraryRepository(tmp_path / "library.db") as repository:
        book = _create(repository, "5")
        repository.create_chunks(
            book.id,
            [
                ChunkRow(book_id=book.id, order=2, text="second"),
                ChunkRow(book_id=book.id, order=1, text="first"),
                ChunkRow(book_id=book.id, order=3, text="third"),
            ],
        )

        all_chunks = repository.find_chunks_by_book_id(book.id)
        page_two = repository.find_chunks_by_book_id(book.id, order=2)
        page_nine = repository.find_chunks_by_book_id(book.id, order=9)

    assert [chunk.order for chunk in all_chunks] == [1, 2, 3]
    assert [chunk.text for chunk in page_two] == ["second"]
    assert page_nine == []


def test_create_chunks_rejects_rows_of_another_book(tmp_path: Path) -> None:
    with LibraryRepository(tmp_path / "library.db") as repository:
        book = _create(repository, "5")

        with pytest.raises(ValueError, match="belong to book"):
            repository.create_chunks(book.id, [ChunkRow(book_id=book.id + 1, order=1, text="x")])


def test_only_first_summary_is_kept(tmp_path: Path) -> None:
    with LibraryRepository(tmp_path / "library.db") as repository:
        book = _create(repository, "8")

        assert repository.find_summary_by_book_id(book.id) is None
        assert repository.create_summary(book.id, "first summary") is True
        assert repository.create_summary(book.id, "second summary") is False

        stored = repository.find_summary_by_book_id(book.id)

    assert stored is not None
    assert stored.summary == "first summary"


def test_delete_book_cascades_to_chunks_and_summary(tmp_path: Path) -> None:
    with LibraryRepository(tmp_path / "library.db") as repository:
        book = _create(repository, "9")
        repository.create_chunks(book.id, [ChunkRow(book_id=book.id, order=1, text="only")])
        repository.create_summary(book.id, "summary")

        assert repository.delete_book(book.id) is True
        assert repository.delete_book(book.id) is False
        assert repository.find_book_by_external_id("9") is None

        chunk_count = repository.connection.execute("SELECT COUNT(*) FROM book_chunks").fetchone()[0]
        summary_count = repository.connection.execute("SELECT COUNT(*) FROM book_summaries").fetchone()[0]

    assert chunk_count == 0
    assert summary_count == 0


def test_connection_runs_with_wal_busy_timeout_and_foreign_keys(tmp_path: Path) -> None:
    with LibraryRepository(tmp_path / "library.db") as repository:
        connection = repository.connection

        assert connection.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
        assert connection.execute("PRAGMA busy_timeout").fetchone()[0] == BUSY_TIMEOUT_MS
        assert connection.execute("PRAGMA synchronous").fetchone()[0] == 1
        assert connection.execute("PRAGMA foreign_keys").fetchone()[0] == 1
