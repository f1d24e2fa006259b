"""CLI command that ingests one catalog book and reports its chunking."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging

from dotenv import load_dotenv

from folio.catalog.chunking import DEFAULT_CHUNK_MAX_CHARS
from folio.catalog.fetcher import DEFAULT_CATALOG_BASE_URL, DEFAULT_TIMEOUT_SECONDS, CatalogFetcher, CatalogRequestError
from folio.catalog.ingestor import BookIngestor, BookNotFoundError
from folio.storage.repository import LibraryRepository


async def _ingest(args: argparse.Namespace) -> dict[str, object]:
    with LibraryRepository(args.db_path) as repository:
        async with CatalogFetcher(args.catalog_base_url, timeout_seconds=args.timeout) as fetcher:
            ingestor = BookIngestor(repository, fetcher, chunk_max_chars=args.chunk_max_chars)
            book = await ingestor.get_or_ingest(args.id)
            chunks = await ingestor.get_pages(book.external_id)

    return {
        "external_id": book.external_id,
        "title": book.title,
        "author": book.author,
        "language": book.language,
        "chunk_count": len(chunks),
    }


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Ingest a catalog book and emit its chunk report")
    parser.add_argument("--id", required=True, help="Catalog id of the book")
    parser.add_argument("--db-path", default=".folio.db", help="Path to the SQLite library")
    parser.add_argument("--catalog-base-url", default=DEFAULT_CATALOG_BASE_URL, help="Catalog host")
    parser.add_argument("--chunk-max-chars", type=int, default=DEFAULT_CHUNK_MAX_CHARS, help="Chunk size budget")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT_SECONDS, help="HTTP timeout in seconds")
    args = parser.parse_args(argv)

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=logging.WARNING,
    )

    try:
        payload = asyncio.run(_ingest(args))
    except (BookNotFoundError, CatalogRequestError, ValueError) as exc:
        print(json.dumps({"external_id": args.id, "error": str(exc)}, ensure_ascii=True, indent=2))
        return 1

    print(json.dumps(payload, ensure_ascii=True, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
