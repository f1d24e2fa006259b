"""Catalog ingestion: resolve a book by external id, creating it on first sight."""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
import logging
from typing import AsyncIterator

from folio.catalog.chunking import DEFAULT_CHUNK_MAX_CHARS, build_chunks
from folio.catalog.fetcher import CatalogFetcher, CatalogRequestError, validate_catalog_id
from folio.catalog.metadata import extract_metadata
from folio.catalog.models import BookRef, FetchResult
from folio.storage.repository import BookConflictError, BookRow, ChunkRow, LibraryRepository

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BookNotFoundError(LookupError):
    """Raised when a book (or one of its pages) exists neither locally nor upstream."""

    external_id: str
    message: str = "Book not found"

    def __str__(self) -> str:
        return f"{self.message} (external_id={self.external_id})"


@dataclass(slots=True)
class _IdLock:
    """Lock for one external id plus the number of holders and waiters."""

    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    users: int = 0


class BookIngestor:
    """Resolve books from the local store, falling back to catalog ingestion."""

    def __init__(
        self,
        repository: LibraryRepository,
        fetcher: CatalogFetcher,
        *,
        chunk_max_chars: int = DEFAULT_CHUNK_MAX_CHARS,
    ) -> None:
        if chunk_max_chars <= 0:
            raise ValueError("chunk_max_chars must be positive")

        self._repository = repository
        self._fetcher = fetcher
        self._chunk_max_chars = chunk_max_chars
        self._locks: dict[str, _IdLock] = {}

    @property
    def repository(self) -> LibraryRepository:
        return self._repository

    async def list_books(self) -> list[BookRow]:
        return await asyncio.to_thread(self._repository.list_books)

    async def find_book(self, external_id: str) -> BookRow | None:
        return await asyncio.to_thread(self._repository.find_book_by_external_id, external_id)

    async def require_book(self, external_id: str) -> BookRow:
        book = await self.find_book(external_id)
        if book is None:
            raise BookNotFoundError(external_id)
        return book

    async def get_or_ingest(self, external_id: str) -> BookRow:
        """Return the stored book, ingesting it from the catalog when absent.

        The store lookup and the metadata fetch run together; a stored book
        wins even if the catalog request failed.
        """

        external_id = validate_catalog_id(external_id)
        async with self._lock_for(external_id):
            stored, page = await asyncio.gather(
                asyncio.to_thread(self._repository.find_book_by_external_id, external_id),
                self._fetcher.fetch_metadata(external_id),
                return_exceptions=True,
            )
            if isinstance(stored, BaseException):
                raise stored
            if stored is not None:
                return stored
            if isinstance(page, BaseException):
                raise page
            if not page.ok:
                raise BookNotFoundError(external_id, f"Catalog item not found (status={page.status_code})")

            try:
                return await self._ingest_from_page(external_id, page)
            except BookConflictError:
                logger.info("Book %s was created concurrently, re-reading it", external_id)
                existing = await self.find_book(external_id)
                if existing is None:
                    raise
                return existing

    async def ingest(self, external_id: str) -> BookRow:
        """Create a book from the catalog, refusing ids that are already stored."""

        external_id = validate_catalog_id(external_id)
        async with self._lock_for(external_id):
            if await self.find_book(external_id) is not None:
                raise BookConflictError(external_id)

            page = await self._fetcher.fetch_metadata(external_id)
            if not page.ok:
                raise BookNotFoundError(external_id, f"Catalog item not found (status={page.status_code})")
            return await self._ingest_from_page(external_id, page)

    def chunk_book(self, book: BookRef, content: str) -> list[ChunkRow]:
        """Split raw content into store-ready chunk rows owned by *book*."""

        return [
            ChunkRow(book_id=book.id, order=chunk.order, text=chunk.text)
            for chunk in build_chunks(content, max_chars=self._chunk_max_chars)
        ]

    async def get_pages(self, external_id: str, page: int | None = None) -> list[ChunkRow]:
        """Return every chunk of a stored book, or only the chunk numbered *page*."""

        if page is not None and page < 1:
            raise ValueError("page must be >= 1")

        book = await self.require_book(external_id)
        chunks = await asyncio.to_thread(self._repository.find_chunks_by_book_id, book.id, page)
        if page is not None and not chunks:
            raise BookNotFoundError(external_id, f"Page {page} not found")
        return chunks

    async def delete_book(self, external_id: str) -> None:
        book = await self.require_book(external_id)
        await asyncio.to_thread(self._repository.delete_book, book.id)
        logger.info("Deleted book %s", external_id)

    async def _ingest_from_page(self, external_id: str, page: FetchResult) -> BookRow:
        metadata = extract_metadata(page.body, base_url=page.url)
        if not metadata.title:
            logger.warning("Catalog page for %s has no title row", external_id)

        content = await self._fetcher.fetch_content(external_id)
        if not content.ok:
            raise CatalogRequestError(
                url=content.url,
                message=f"Catalog content unavailable (status={content.status_code})",
            )

        book = await asyncio.to_thread(
            self._repository.create_book,
            external_id=external_id,
            title=metadata.title,
            author=metadata.author,
            language=metadata.language,
            description=metadata.description,
            cover_image_url=metadata.cover_image_url,
        )

        chunks = self.chunk_book(BookRef(id=book.id, external_id=book.external_id), content.body)
        if not chunks:
            logger.warning("Catalog content for %s produced no chunks", external_id)

        try:
            await asyncio.to_thread(self._repository.create_chunks, book.id, chunks)
        except Exception:
            logger.exception("Failed to store chunks for %s, removing the book row", external_id)
            await asyncio.to_thread(self._repository.delete_book, book.id)
            raise

        logger.info("Ingested %s: %r by %r (%s chunks)", external_id, book.title, book.author, len(chunks))
        return book

    @asynccontextmanager
    async def _lock_for(self, external_id: str) -> AsyncIterator[None]:
        """Serialize work on one id; the entry is dropped once nobody holds or awaits it."""

        entry = self._locks.setdefault(external_id, _IdLock())
        entry.users += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del self._locks[external_id]
