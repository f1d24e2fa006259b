"""Metadata extraction from catalog item pages."""

from __future__ import annotations

import re
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from folio.catalog.models import CatalogMetadata

_WHITESPACE_RE = re.compile(r"\s+")

_COVER_SELECTORS: tuple[tuple[str, str], ...] = (
    ("#cover .cover-art", "src"),
    ('meta[property="og:image"]', "content"),
)


class MetadataParseError(ValueError):
    """Raised when the input cannot be parsed as markup at all."""


def _clean(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def _find_row_cell(soup: BeautifulSoup, label: str) -> Tag | None:
    """Return the value cell of the first bibliographic row labelled *label*."""

    for row in soup.select("table.bibrec tr"):
        header = row.find("th")
        if header is None or _clean(header.get_text(" ", strip=True)).casefold() != label.casefold():
            continue
        cell = row.find("td")
        if isinstance(cell, Tag):
            return cell
    return None


def _cell_text(soup: BeautifulSoup, label: str) -> str:
    cell = _find_row_cell(soup, label)
    if cell is None:
        return ""
    return _clean(cell.get_text(" ", strip=True))


def _first_author(soup: BeautifulSoup) -> str:
    cell = _find_row_cell(soup, "Author")
    if cell is None:
        return ""
    link = cell.find("a")
    if isinstance(link, Tag):
        return _clean(link.get_text(" ", strip=True))
    return _clean(cell.get_text(" ", strip=True))


def _cover_image(soup: BeautifulSoup, base_url: str | None) -> str | None:
    for selector, attribute in _COVER_SELECTORS:
        node = soup.select_one(selector)
        if node is None:
            continue
        value = node.get(attribute)
        if isinstance(value, str) and value.strip():
            return urljoin(base_url, value.strip()) if base_url else value.strip()
    return None


def extract_metadata(markup: str | bytes, *, base_url: str | None = None) -> CatalogMetadata:
    """Parse a catalog item page into metadata; missing fields stay empty."""

    if not isinstance(markup, (str, bytes)):
        raise MetadataParseError(f"Expected markup text, got {type(markup).__name__}")

    try:
        soup = BeautifulSoup(markup, "lxml")
    except Exception as exc:
        raise MetadataParseError(f"Could not parse catalog markup: {exc}") from exc

    return CatalogMetadata(
        title=_cell_text(soup, "Title"),
        author=_first_author(soup),
        language=_cell_text(soup, "Language"),
        description=_cell_text(soup, "Summary"),
        cover_image_url=_cover_image(soup, base_url),
    )
