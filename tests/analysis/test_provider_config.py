from __future__ import annotations

import pytest

from folio.analysis.config import (
    DEFAULT_PROVIDER_BASE_URL,
    DEFAULT_PROVIDER_MODEL,
    DEFAULT_PROVIDER_TIMEOUT_SECONDS,
    ProviderSettings,
)


def test_from_env_requires_api_key() -> None:
    with pytest.raises(ValueError, match="Missing required provider environment variable: GROQ_API_KEY"):
        ProviderSettings.from_env({"GROQ_API_KEY": "   "})


def test_from_env_applies_defaults() -> None:
    settings = ProviderSettings.from_env({"GROQ_API_KEY": "gsk-test"})

    assert settings.api_key == "gsk-test"
    assert settings.model == DEFAULT_PROVIDER_MODEL
    assert settings.base_url == DEFAULT_PROVIDER_BASE_URL
    assert settings.timeout_seconds == DEFAULT_PROVIDER_TIMEOUT_SECONDS


def test_from_env_parses_custom_values_and_trims_base_url() -> None:
    settings = ProviderSettings.from_env(
        {
            "GROQ_API_KEY": "gsk-test",
            "GROQ_MODEL": "llama-3.1-8b-instant",
            "GROQ_BASE_URL": "http://localhost:8080/v1/",
            "GROQ_TIMEOUT_SECONDS": "15",
        }
    )

    assert settings.model == "llama-3.1-8b-instant"
    assert settings.base_url == "http://localhost:8080/v1"
    assert settings.timeout_seconds == 15.0


@pytest.mark.parametrize(
    ("key", "value", "message"),
    [
        ("GROQ_BASE_URL", "ftp://example", "must start with http"),
        ("GROQ_MODEL", " ", "GROQ_MODEL cannot be empty"),
        ("GROQ_TIMEOUT_SECONDS", "0.5", "must be >= 1.0"),
    ],
)
def test_from_env_rejects_invalid_values(key: str, value: str, message: str) -> None:
    with pytest.raises(ValueError, match=message):
        ProviderSettings.from_env({"GROQ_API_KEY": "gsk-test", key: value})
