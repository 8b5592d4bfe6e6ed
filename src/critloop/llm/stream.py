"""Chunk-stream types and collection for streamed chat completions.

Turns the server-sent-event body of an OpenAI-compatible streaming
response into StreamChunk values, then folds a chunk sequence into a
single ProcessingOutcome:

- ``ApiSuccess(text, reason)`` when the stream ended with a Stop reason,
- ``Retry(reason)`` for anything the caller should reissue from scratch.

``Done(value)`` is produced later, by the normalizer, never here.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Union

from critloop.llm.errors import LLMResponseError

if TYPE_CHECKING:
    from critloop.progress import ChunkProgress

logger = logging.getLogger(__name__)

DEFAULT_BLANK_CHUNK_THRESHOLD = 300

_SSE_DATA_PREFIX = "data:"
_SSE_DONE = "[DONE]"


@dataclass(frozen=True)
class CompletionReason:
    """Why the model stopped generating.

    Only ``STOP`` is eligible for success. ``LENGTH_EXCEEDED`` and any
    other tag (``content_filter``, provider-specific values) force a retry.
    """

    tag: str

    STOP: ClassVar[CompletionReason]
    LENGTH_EXCEEDED: ClassVar[CompletionReason]

    @property
    def is_stop(self) -> bool:
        return self.tag == "stop"

    @property
    def is_length_exceeded(self) -> bool:
        return self.tag == "length"

    @classmethod
    def from_wire(cls, tag: str | None) -> CompletionReason | None:
        if tag is None:
            return None
        return cls(tag)

    def __str__(self) -> str:
        return self.tag


CompletionReason.STOP = CompletionReason("stop")
CompletionReason.LENGTH_EXCEEDED = CompletionReason("length")


@dataclass(frozen=True)
class StreamChunk:
    """One chunk of a streamed completion."""

    delta: str | None = None
    finish_reason: CompletionReason | None = None

    @property
    def is_blank(self) -> bool:
        """True when the chunk carries no non-whitespace text."""
        return not (self.delta and self.delta.strip())


@dataclass(frozen=True)
class ApiSuccess:
    """The stream finished with Stop; ``text`` is the full response body."""

    text: str
    reason: CompletionReason


@dataclass(frozen=True)
class Retry:
    """The request should be reissued from scratch."""

    reason: str


@dataclass(frozen=True)
class Done:
    """A normalized JSON object, ready for field validation."""

    value: dict[str, Any]


ProcessingOutcome = Union[ApiSuccess, Retry, Done]


class BlankStreakGuard:
    """Counts consecutive all-whitespace chunks.

    Some services emit whitespace until the token budget is exhausted.
    The guard trips once the streak grows past ``threshold``; any chunk
    with real text resets the streak to zero.
    """

    def __init__(self, threshold: int = DEFAULT_BLANK_CHUNK_THRESHOLD) -> None:
        if threshold < 1:
            raise ValueError(f"threshold must be >= 1, got {threshold}")
        self.threshold = threshold
        self.streak = 0

    def observe(self, chunk: StreamChunk) -> bool:
        """Record a chunk. Returns True if the stream should be abandoned."""
        if chunk.is_blank:
            self.streak += 1
        else:
            self.streak = 0
        return self.streak > self.threshold


def parse_chunk_event(event: dict[str, Any]) -> StreamChunk:
    """Convert one decoded ``chat.completion.chunk`` event into a StreamChunk.

    Events without choices (e.g. trailing usage events) become empty chunks.

    Raises:
        LLMResponseError: If the event is an error object or malformed.
    """
    if "error" in event:
        raise LLMResponseError(f"Error event in stream: {event['error']}")
    choices = event.get("choices")
    if not choices:
        return StreamChunk()
    if not isinstance(choices, list) or not isinstance(choices[0], dict):
        raise LLMResponseError(f"Malformed choices in stream event: {event}")
    choice = choices[0]
    delta = choice.get("delta") or {}
    content = delta.get("content") if isinstance(delta, dict) else None
    if content is not None and not isinstance(content, str):
        raise LLMResponseError(f"Non-string delta content: {content!r}")
    return StreamChunk(
        delta=content,
        finish_reason=CompletionReason.from_wire(choice.get("finish_reason")),
    )


def iter_sse_chunks(lines: Iterable[str]) -> Iterator[StreamChunk]:
    """Parse server-sent-event lines into StreamChunks.

    Stops at ``data: [DONE]`` or when the line source is exhausted.
    Comment lines (``:``) and non-data fields are skipped.

    Raises:
        LLMResponseError: If a data line is not a JSON object.
    """
    for raw in lines:
        line = raw.strip()
        if not line or line.startswith(":"):
            continue
        if not line.startswith(_SSE_DATA_PREFIX):
            continue
        data = line[len(_SSE_DATA_PREFIX):].strip()
        if data == _SSE_DONE:
            return
        try:
            event = json.loads(data)
        except json.JSONDecodeError as exc:
            raise LLMResponseError(f"Malformed stream event: {exc}: {data[:200]}") from exc
        if not isinstance(event, dict):
            raise LLMResponseError(f"Stream event is not an object: {data[:200]}")
        yield parse_chunk_event(event)


def collect_stream(
    chunks: Iterable[StreamChunk],
    *,
    blank_chunk_threshold: int = DEFAULT_BLANK_CHUNK_THRESHOLD,
    progress: ChunkProgress | None = None,
) -> ApiSuccess | Retry:
    """Fold a chunk sequence into ApiSuccess or Retry.

    Text deltas are concatenated in arrival order. The stream is
    abandoned as soon as the blank-streak guard trips. At the end, the
    last completion reason seen decides the outcome: Stop succeeds,
    anything else (including none at all) retries.
    """
    guard = BlankStreakGuard(blank_chunk_threshold)
    parts: list[str] = []
    reason: CompletionReason | None = None

    for chunk in chunks:
        if progress is not None:
            progress.inc()
        if guard.observe(chunk):
            logger.warning(
                "Abandoning stream after %d consecutive blank chunks", guard.streak
            )
            return Retry(f"{guard.streak} consecutive blank chunks")
        if chunk.delta:
            parts.append(chunk.delta)
        if chunk.finish_reason is not None:
            reason = chunk.finish_reason

    if reason is None:
        return Retry("stream ended without a completion reason")
    if not reason.is_stop:
        return Retry(f"completion reason {reason}")
    return ApiSuccess("".join(parts), reason)
