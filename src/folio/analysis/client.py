"""Chat-completion client producing literary analyses of book text."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import logging
from typing import Any, AsyncIterator

from folio.analysis.config import ProviderSettings

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a helpful assistant that only discusses books related topics."

CHUNK_SUMMARY_PROMPT = (
    "Provide a summary of the following part of a book, be very concise and very thorough:\n\n{text}"
)


class AnalysisKind(str, Enum):
    CHARACTERS = "characters"
    LANGUAGE = "language"
    PLOT = "plot"


_ANALYSIS_PROMPTS: dict[AnalysisKind, str] = {
    AnalysisKind.CHARACTERS: (
        "Analyze the following text and identify the key characters. For each character, provide "
        "their name, personality concisely, and a very brief description of their role in the "
        "story:\n\n{text}"
    ),
    AnalysisKind.LANGUAGE: (
        "Analyze the following text and identify the language it's written in. If possible, also "
        "mention any distinct linguistic features or dialects:\n\n{text}"
    ),
    AnalysisKind.PLOT: (
        "Provide a concise summary of the following text, highlighting the main plot points and "
        "key events:\n\n{text}"
    ),
}


@dataclass(slots=True)
class AnalysisRequestError(RuntimeError):
    """Domain error raised for any failed provider call."""

    model: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} (model={self.model})"


def build_prompt(kind: AnalysisKind, text: str) -> str:
    return _ANALYSIS_PROMPTS[AnalysisKind(kind)].format(text=text)


def _build_default_client(settings: ProviderSettings) -> Any:
    from openai import AsyncOpenAI

    return AsyncOpenAI(
        api_key=settings.api_key,
        base_url=settings.base_url,
        timeout=settings.timeout_seconds,
        max_retries=0,
    )


def _extract_text(response: Any, *, model: str) -> str:
    choices = getattr(response, "choices", None)
    if not isinstance(choices, list) or not choices:
        raise AnalysisRequestError(model=model, message="Completion response missing choices")

    first = choices[0]
    message = getattr(first, "message", None)
    content = getattr(message, "content", None) if message is not None else None
    if content is None and isinstance(first, dict):
        message_dict = first.get("message", {})
        if isinstance(message_dict, dict):
            content = message_dict.get("content")

    return str(content or "")


class AnalysisClient:
    """OpenAI-compatible chat-completion wrapper; failures are not retried."""

    def __init__(self, settings: ProviderSettings, *, client: Any | None = None) -> None:
        self._settings = settings
        self._client = client or _build_default_client(settings)

    @property
    def model(self) -> str:
        return self._settings.model

    def _messages(self, prompt: str) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]

    async def complete(self, prompt: str) -> str:
        """Return the full text of the first completion choice."""

        logger.debug("Completion request (model=%s, prompt_chars=%s)", self._settings.model, len(prompt))
        try:
            response = await self._client.chat.completions.create(
                model=self._settings.model,
                messages=self._messages(prompt),
                stream=False,
            )
        except Exception as exc:
            raise AnalysisRequestError(model=self._settings.model, message=f"Provider call failed: {exc}") from exc

        return _extract_text(response, model=self._settings.model)

    async def stream(self, prompt: str) -> AsyncIterator[bytes]:
        """Yield the raw server-sent-event body of a streamed completion."""

        logger.debug("Streaming request (model=%s, prompt_chars=%s)", self._settings.model, len(prompt))
        try:
            async with self._client.chat.completions.with_streaming_response.create(
                model=self._settings.model,
                messages=self._messages(prompt),
                stream=True,
            ) as response:
                async for data in response.iter_bytes():
                    yield data
        except Exception as exc:
            raise AnalysisRequestError(model=self._settings.model, message=f"Provider call failed: {exc}") from exc

    async def analyze(self, kind: AnalysisKind, text: str) -> str:
        return await self.complete(build_prompt(kind, text))

    def stream_analysis(self, kind: AnalysisKind, text: str) -> AsyncIterator[bytes]:
        return self.stream(build_prompt(kind, text))

    async def summarize_chunk(self, text: str) -> str:
        return await self.complete(CHUNK_SUMMARY_PROMPT.format(text=text))

    async def aclose(self) -> None:
        close = getattr(self._client, "close", None)
        if close is not None:
            await close()
