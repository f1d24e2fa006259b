"""Runtime configuration for the HTTP service."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import os
from pathlib import Path
from typing import Mapping

from folio.analysis.config import ProviderSettings
from folio.analysis.relay import DEFAULT_MIN_FLUSH_CHARS
from folio.catalog.chunking import DEFAULT_CHUNK_MAX_CHARS
from folio.catalog.fetcher import DEFAULT_CATALOG_BASE_URL, DEFAULT_TIMEOUT_SECONDS


DEFAULT_DB_PATH = ".folio.db"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 5050
MIN_CHUNK_MAX_CHARS = 1000


class DeliveryMode(str, Enum):
    STREAM = "stream"
    BUFFERED = "buffered"


def _parse_positive_int(*, name: str, raw_value: str, minimum: int = 1) -> int:
    value = int(raw_value)
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _parse_positive_float(*, name: str, raw_value: str, minimum: float = 0.001) -> float:
    value = float(raw_value)
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


@dataclass(frozen=True, slots=True)
class AppSettings:
    """Validated HTTP service settings."""

    provider: ProviderSettings
    db_path: Path = Path(DEFAULT_DB_PATH)
    catalog_base_url: str = DEFAULT_CATALOG_BASE_URL
    http_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    chunk_max_chars: int = DEFAULT_CHUNK_MAX_CHARS
    delivery_mode: DeliveryMode = DeliveryMode.STREAM
    min_flush_chars: int = DEFAULT_MIN_FLUSH_CHARS
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AppSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        provider = ProviderSettings.from_env(source)

        db_path_raw = source.get("FOLIO_DB_PATH", DEFAULT_DB_PATH).strip()
        if not db_path_raw:
            raise ValueError("FOLIO_DB_PATH cannot be empty")

        catalog_base_url = source.get("FOLIO_CATALOG_BASE_URL", DEFAULT_CATALOG_BASE_URL).strip()
        if not (catalog_base_url.startswith("http://") or catalog_base_url.startswith("https://")):
            raise ValueError("FOLIO_CATALOG_BASE_URL must start with http:// or https://")

        delivery_raw = source.get("FOLIO_ANALYSIS_DELIVERY", DeliveryMode.STREAM.value).strip().lower()
        try:
            delivery_mode = DeliveryMode(delivery_raw)
        except ValueError:
            allowed = ", ".join(mode.value for mode in DeliveryMode)
            raise ValueError(f"FOLIO_ANALYSIS_DELIVERY must be one of: {allowed}") from None

        host = source.get("FOLIO_HOST", DEFAULT_HOST).strip()
        if not host:
            raise ValueError("FOLIO_HOST cannot be empty")

        return cls(
            provider=provider,
            db_path=Path(db_path_raw),
            catalog_base_url=catalog_base_url.rstrip("/"),
            http_timeout_seconds=_parse_positive_float(
                name="FOLIO_HTTP_TIMEOUT_SECONDS",
                raw_value=source.get("FOLIO_HTTP_TIMEOUT_SECONDS", str(DEFAULT_TIMEOUT_SECONDS)).strip(),
                minimum=0.1,
            ),
            chunk_max_chars=_parse_positive_int(
                name="FOLIO_CHUNK_MAX_CHARS",
                raw_value=source.get("FOLIO_CHUNK_MAX_CHARS", str(DEFAULT_CHUNK_MAX_CHARS)).strip(),
                minimum=MIN_CHUNK_MAX_CHARS,
            ),
            delivery_mode=delivery_mode,
            min_flush_chars=_parse_positive_int(
                name="FOLIO_MIN_FLUSH_CHARS",
                raw_value=source.get("FOLIO_MIN_FLUSH_CHARS", str(DEFAULT_MIN_FLUSH_CHARS)).strip(),
            ),
            host=host,
            port=_parse_positive_int(
                name="FOLIO_PORT",
                raw_value=source.get("FOLIO_PORT", str(DEFAULT_PORT)).strip(),
            ),
        )
