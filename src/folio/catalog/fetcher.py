"""Async HTTP client for catalog item pages and plain-text book files."""

from __future__ import annotations

from dataclasses import dataclass
import logging

from charset_normalizer import from_bytes
import httpx

from folio.catalog.models import FetchResult

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_BASE_URL = "https://www.gutenberg.org"
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(slots=True)
class CatalogRequestError(RuntimeError):
    """Domain error for catalog transport failures and unusable responses."""

    url: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (url={self.url})"


def validate_catalog_id(catalog_id: str) -> str:
    """Return the stripped catalog id, rejecting anything but digits."""

    cleaned = catalog_id.strip()
    if not cleaned.isdigit():
        raise ValueError(f"Catalog id must be numeric, got {catalog_id!r}")
    return cleaned


def _decode_payload(raw: bytes) -> str:
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        pass

    best = from_bytes(raw).best()
    if best is not None and best.encoding:
        return str(best)
    return raw.decode("latin-1")


def _decode_body(response: httpx.Response) -> str:
    if response.charset_encoding:
        return response.text
    return _decode_payload(response.content)


class CatalogFetcher:
    """Fetch metadata pages and content files without judging their status.

    Non-200 responses are returned as-is for the caller to branch on; only
    transport failures raise ``CatalogRequestError``.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_CATALOG_BASE_URL,
        *,
        client: httpx.AsyncClient | None = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")

        self._base_url = base_url.rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds, follow_redirects=True)

    @property
    def base_url(self) -> str:
        return self._base_url

    def metadata_url(self, catalog_id: str) -> str:
        return f"{self._base_url}/ebooks/{validate_catalog_id(catalog_id)}"

    def content_urls(self, catalog_id: str) -> list[str]:
        """Candidate plain-text locations, most specific first."""

        cleaned = validate_catalog_id(catalog_id)
        return [
            f"{self._base_url}/files/{cleaned}/{cleaned}-0.txt",
            f"{self._base_url}/cache/epub/{cleaned}/pg{cleaned}.txt",
        ]

    async def fetch_metadata(self, catalog_id: str) -> FetchResult:
        return await self._get(self.metadata_url(catalog_id))

    async def fetch_content(self, catalog_id: str) -> FetchResult:
        """Return the first available content file, else the last attempt."""

        primary, *fallbacks = self.content_urls(catalog_id)
        result = await self._get(primary)
        for url in fallbacks:
            if result.ok:
                break
            logger.info("Content not available at %s (status=%s)", result.url, result.status_code)
            result = await self._get(url)
        return result

    async def _get(self, url: str) -> FetchResult:
        try:
            response = await self._client.get(url)
        except httpx.HTTPError as exc:
            raise CatalogRequestError(url=url, message=f"Catalog request failed: {exc}") from exc

        logger.info("GET %s -> %s", url, response.status_code)
        return FetchResult(status_code=response.status_code, body=_decode_body(response), url=url)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "CatalogFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
