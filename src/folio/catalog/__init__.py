"""Catalog ingestion package interfaces."""

from .chunking import TextChunk, build_chunks, split_paragraphs
from .fetcher import CatalogFetcher, CatalogRequestError
from .ingestor import BookIngestor, BookNotFoundError
from .metadata import MetadataParseError, extract_metadata
from .models import BookRef, CatalogMetadata, FetchResult

__all__ = [
    "BookIngestor",
    "BookNotFoundError",
    "BookRef",
    "CatalogFetcher",
    "CatalogMetadata",
    "CatalogRequestError",
    "FetchResult",
    "MetadataParseError",
    "TextChunk",
    "build_chunks",
    "extract_metadata",
    "split_paragraphs",
]
