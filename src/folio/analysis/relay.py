"""Relay of streamed completion frames as readable server-sent events.

``SegmentAssembler`` is a pure state machine: raw provider bytes go in,
flush-ready prose segments come out. ``relay_segments`` drives it over an
async byte stream and is pulled by the transport, so the provider body is
only read as fast as the caller drains segments.
"""

from __future__ import annotations

import json
import logging
import re
from typing import AsyncIterable, AsyncIterator

logger = logging.getLogger(__name__)

DATA_PREFIX = "data:"
DONE_SENTINEL = "[DONE]"
DEFAULT_MIN_FLUSH_CHARS = 80

_SENTENCE_END_RE = re.compile(r"[.!?][\"'”’)\]]*\s*$")


class MalformedFrameError(ValueError):
    """Raised for a payload line that is not a completion increment."""


def content_delta(payload: str) -> str | None:
    """Return the content delta of one ``data:`` payload, if it carries one."""

    try:
        frame = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise MalformedFrameError(f"Invalid JSON frame: {exc}") from exc

    if not isinstance(frame, dict):
        raise MalformedFrameError("Frame is not a JSON object")
    if "error" in frame:
        raise MalformedFrameError(f"Provider error frame: {frame['error']}")

    choices = frame.get("choices")
    if not isinstance(choices, list) or not choices:
        return None

    first = choices[0]
    if not isinstance(first, dict):
        raise MalformedFrameError("Choice is not a JSON object")

    delta = first.get("delta")
    if not isinstance(delta, dict):
        return None

    content = delta.get("content")
    return content if isinstance(content, str) else None


class SegmentAssembler:
    """Buffer newline-delimited provider frames and emit prose segments.

    A segment is flushed when the text ends a sentence or grows past
    ``min_flush_chars``. A trailing partial line is kept until more bytes
    arrive or ``finish`` is called.
    """

    def __init__(self, *, min_flush_chars: int = DEFAULT_MIN_FLUSH_CHARS) -> None:
        if min_flush_chars < 1:
            raise ValueError("min_flush_chars must be positive")

        self._min_flush_chars = min_flush_chars
        self._pending = bytearray()
        self._text = ""
        self._done = False
        self._skipped_frames = 0

    @property
    def done(self) -> bool:
        """Whether the terminal sentinel has been seen."""

        return self._done

    @property
    def skipped_frames(self) -> int:
        return self._skipped_frames

    def feed(self, data: bytes) -> list[str]:
        self._pending.extend(data)
        if b"\n" not in data:
            return []

        *lines, tail = self._pending.split(b"\n")
        self._pending = bytearray(tail)

        segments: list[str] = []
        for raw_line in lines:
            segment = self._consume_line(bytes(raw_line))
            if segment is not None:
                segments.append(segment)
        return segments

    def finish(self) -> list[str]:
        """Consume any trailing line and flush what is left of the text buffer."""

        segments: list[str] = []
        if self._pending:
            raw_line = bytes(self._pending)
            self._pending.clear()
            segment = self._consume_line(raw_line)
            if segment is not None:
                segments.append(segment)

        if self._text.strip():
            segments.append(self._text)
        self._text = ""
        return segments

    def _consume_line(self, raw_line: bytes) -> str | None:
        delta = self._parse_line(raw_line)
        if not delta:
            return None

        self._text += delta
        if len(self._text) > self._min_flush_chars or _SENTENCE_END_RE.search(self._text):
            segment, self._text = self._text, ""
            return segment
        return None

    def _parse_line(self, raw_line: bytes) -> str | None:
        try:
            line = raw_line.decode("utf-8").strip()
        except UnicodeDecodeError:
            self._skip("undecodable line")
            return None

        if not line.startswith(DATA_PREFIX):
            return None

        payload = line[len(DATA_PREFIX) :].strip()
        if payload == DONE_SENTINEL:
            self._done = True
            return None

        try:
            return content_delta(payload)
        except MalformedFrameError as exc:
            self._skip(str(exc))
            return None

    def _skip(self, reason: str) -> None:
        self._skipped_frames += 1
        logger.debug("Skipping stream frame: %s", reason)


async def relay_segments(
    chunks: AsyncIterable[bytes],
    *,
    min_flush_chars: int = DEFAULT_MIN_FLUSH_CHARS,
) -> AsyncIterator[str]:
    """Yield prose segments from a provider byte stream.

    Upstream failures are logged and end the relay quietly; segments already
    yielded stand.
    """

    assembler = SegmentAssembler(min_flush_chars=min_flush_chars)
    try:
        async for data in chunks:
            for segment in assembler.feed(data):
                yield segment
    except Exception as exc:
        logger.error("Analysis stream failed, closing relay: %s", exc)
        return
    finally:
        aclose = getattr(chunks, "aclose", None)
        if aclose is not None:
            await aclose()

    for segment in assembler.finish():
        yield segment

    if assembler.skipped_frames:
        logger.info("Relay finished with %s skipped frame(s)", assembler.skipped_frames)


def encode_event(segment: str) -> str:
    """Frame one segment as a server-sent event."""

    return f"data: {json.dumps({'content': segment}, ensure_ascii=False)}\n\n"
