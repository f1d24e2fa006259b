"""Runtime configuration for the chat-completion provider."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import Mapping


DEFAULT_PROVIDER_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_PROVIDER_MODEL = "llama3-8b-8192"
DEFAULT_PROVIDER_TIMEOUT_SECONDS = 120.0


@dataclass(frozen=True, slots=True)
class ProviderSettings:
    """Validated provider settings used by the analysis client."""

    api_key: str
    model: str = DEFAULT_PROVIDER_MODEL
    base_url: str = DEFAULT_PROVIDER_BASE_URL
    timeout_seconds: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "ProviderSettings":
        source: Mapping[str, str] = os.environ if environ is None else environ

        api_key = source.get("GROQ_API_KEY", "").strip()
        if not api_key:
            raise ValueError("Missing required provider environment variable: GROQ_API_KEY")

        model = source.get("GROQ_MODEL", DEFAULT_PROVIDER_MODEL).strip()
        if not model:
            raise ValueError("GROQ_MODEL cannot be empty")

        base_url = source.get("GROQ_BASE_URL", DEFAULT_PROVIDER_BASE_URL).strip()
        if not base_url:
            raise ValueError("GROQ_BASE_URL cannot be empty")
        if not (base_url.startswith("http://") or base_url.startswith("https://")):
            raise ValueError("GROQ_BASE_URL must start with http:// or https://")

        timeout_raw = source.get("GROQ_TIMEOUT_SECONDS", str(DEFAULT_PROVIDER_TIMEOUT_SECONDS)).strip()
        timeout_seconds = float(timeout_raw)
        if timeout_seconds < 1.0:
            raise ValueError("GROQ_TIMEOUT_SECONDS must be >= 1.0")

        return cls(
            api_key=api_key,
            model=model,
            base_url=base_url.rstrip("/"),
            timeout_seconds=timeout_seconds,
        )
