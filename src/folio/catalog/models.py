"""Canonical data structures shared by the catalog pipeline."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CatalogMetadata:
    """Best-effort metadata extracted from a catalog item page."""

    title: str = ""
    author: str = ""
    language: str = ""
    description: str = ""
    cover_image_url: str | None = None


@dataclass(frozen=True, slots=True)
class FetchResult:
    """Transport status and decoded body of one catalog request."""

    status_code: int
    body: str
    url: str

    @property
    def ok(self) -> bool:
        return self.status_code == 200


@dataclass(frozen=True, slots=True)
class BookRef:
    """Narrow identity of a stored book handed to the chunking step."""

    id: int
    external_id: str

    def __post_init__(self) -> None:
        if self.id < 1:
            raise ValueError("book id must be positive")
        if not self.external_id.strip():
            raise ValueError("external_id cannot be empty")
