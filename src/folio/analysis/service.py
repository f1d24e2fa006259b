"""Book analyses over a lazily computed and cached condensed summary."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator

from folio.analysis.client import AnalysisClient, AnalysisKind
from folio.analysis.relay import DEFAULT_MIN_FLUSH_CHARS, relay_segments
from folio.catalog.chunking import PARAGRAPH_SEPARATOR
from folio.catalog.ingestor import BookNotFoundError
from folio.storage.repository import BookRow, LibraryRepository

logger = logging.getLogger(__name__)


class AnalysisService:
    """Run analyses for stored books in buffered or live-relay mode."""

    def __init__(
        self,
        repository: LibraryRepository,
        client: AnalysisClient,
        *,
        min_flush_chars: int = DEFAULT_MIN_FLUSH_CHARS,
    ) -> None:
        self._repository = repository
        self._client = client
        self._min_flush_chars = min_flush_chars
        self._background: set[asyncio.Task[None]] = set()

    async def resolve_source_text(self, external_id: str) -> str:
        """Return the cached summary, computing it from the chunks on first use."""

        book = await asyncio.to_thread(self._repository.find_book_by_external_id, external_id)
        if book is None:
            raise BookNotFoundError(external_id)

        cached = await asyncio.to_thread(self._repository.find_summary_by_book_id, book.id)
        if cached is not None:
            return cached.summary

        return await self._summarize_book(book)

    async def analyze(self, external_id: str, kind: AnalysisKind) -> str:
        source = await self.resolve_source_text(external_id)
        return await self._client.analyze(kind, source)

    async def stream(self, external_id: str, kind: AnalysisKind) -> AsyncIterator[str]:
        """Resolve the source text, then hand back a live segment stream.

        Lookup and summary failures raise here, before any event is sent.
        """

        source = await self.resolve_source_text(external_id)
        return relay_segments(
            self._client.stream_analysis(kind, source),
            min_flush_chars=self._min_flush_chars,
        )

    async def drain(self) -> None:
        """Wait for pending summary writes."""

        if self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    async def _summarize_book(self, book: BookRow) -> str:
        chunks = await asyncio.to_thread(self._repository.find_chunks_by_book_id, book.id)
        if not chunks:
            raise BookNotFoundError(book.external_id, "Book has no content chunks")

        logger.info("Summarizing %s chunk(s) of %s", len(chunks), book.external_id)
        summaries = await asyncio.gather(*(self._client.summarize_chunk(chunk.text) for chunk in chunks))
        summary = PARAGRAPH_SEPARATOR.join(part.strip() for part in summaries if part.strip())

        task = asyncio.create_task(self._persist_summary(book, summary))
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return summary

    async def _persist_summary(self, book: BookRow, summary: str) -> None:
        try:
            written = await asyncio.to_thread(self._repository.create_summary, book.id, summary)
        except Exception:
            logger.exception("Failed to store summary for %s", book.external_id)
            return

        if not written:
            logger.info("Summary for %s was already stored", book.external_id)
