"""Streaming OpenAI-compatible chat client with tenacity retry.

Issues exactly one call shape: a single streamed chat completion with
one choice, constrained to a JSON object. Each attempt consumes the
chunk stream and ends in one of three ways:

- Done: the stream stopped cleanly and the text normalized to an object;
- Retry: a per-chunk timeout, a blank-chunk streak, a non-Stop completion
  reason, or an ambiguous payload shape;
- an exception: transient transport errors are retried, schema and auth
  errors propagate immediately.

Retry signals and transient errors share one attempt budget. Running out
of attempts raises MaxRetriesExceededError.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any

import httpx
import tenacity

from critloop.llm.errors import (
    LLMAuthError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
    LLMStatusError,
    MaxRetriesExceededError,
)
from critloop.llm.normalize import DEFAULT_PAYLOAD_FIELD, normalize
from critloop.llm.stream import (
    DEFAULT_BLANK_CHUNK_THRESHOLD,
    ApiSuccess,
    Done,
    Retry,
    collect_stream,
    iter_sse_chunks,
)
from critloop.models import ChatMessage

if TYPE_CHECKING:
    from critloop.progress import ChunkProgress

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-4o"
DEFAULT_BASE_URL = "https://api.openai.com/v1"

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}
_AUTH_ERROR_STATUS_CODES = {401, 403}


@dataclass(frozen=True)
class ClientConfig:
    """Request parameters and retry policy for StreamingChatClient.

    Attributes:
        model: Model identifier sent with every request.
        temperature: Default sampling temperature.
        max_tokens: Default completion token budget.
        chunk_timeout: Seconds to wait for each chunk before the
            request is reissued.
        connect_timeout: Seconds to wait for the connection.
        blank_chunk_threshold: Consecutive blank chunks tolerated
            before the stream is abandoned.
        max_retries: Total attempts per call, counting the first.
    """

    model: str = DEFAULT_MODEL
    temperature: float = 0.1
    max_tokens: int = 2048
    chunk_timeout: float = 30.0
    connect_timeout: float = 10.0
    blank_chunk_threshold: int = DEFAULT_BLANK_CHUNK_THRESHOLD
    max_retries: int = 5

    def __post_init__(self) -> None:
        if self.max_retries < 1:
            raise LLMConfigError(f"max_retries must be >= 1, got {self.max_retries}")
        if self.blank_chunk_threshold < 1:
            raise LLMConfigError(
                f"blank_chunk_threshold must be >= 1, got {self.blank_chunk_threshold}"
            )
        if self.chunk_timeout <= 0:
            raise LLMConfigError(f"chunk_timeout must be > 0, got {self.chunk_timeout}")

    @classmethod
    def from_env(cls, **overrides: Any) -> ClientConfig:
        """Build a config, taking the model from CRITLOOP_MODEL if set."""
        config = cls()
        model = os.environ.get("CRITLOOP_MODEL", "").strip()
        if model:
            config = replace(config, model=model)
        return replace(config, **overrides) if overrides else config


def _is_retryable(exc: BaseException) -> bool:
    """Check if an exception is retryable.

    Retryable: 429, 500, 502, 503, 504, malformed stream events,
    connection and protocol errors.
    Not retryable: 401, 403, 400, other client errors, schema errors.
    """
    if isinstance(exc, LLMAuthError):
        return False
    if isinstance(exc, (LLMRateLimitError, LLMResponseError)):
        return True
    if isinstance(exc, LLMStatusError):
        return exc.status_code in _RETRYABLE_STATUS_CODES
    return isinstance(exc, httpx.TransportError)


def _is_retry_signal(outcome: object) -> bool:
    return isinstance(outcome, Retry)


class StreamingChatClient:
    """Sync httpx client for streamed, JSON-constrained chat completions.

    One instance may be shared by concurrent agent calls; httpx.Client
    is thread-safe.

    Usage::

        with StreamingChatClient(api_key="sk-...") as client:
            obj = client.call("Return JSON.", "Write hello world.")
            print(obj["code"])
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        config: ClientConfig | None = None,
        *,
        transport: httpx.BaseTransport | None = None,
        retry_wait: tenacity.wait.wait_base | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_key: API key. Falls back to CRITLOOP_OPENAI_API_KEY, then
                OPENAI_API_KEY.
            base_url: API base URL. Falls back to CRITLOOP_OPENAI_BASE_URL,
                then to https://api.openai.com/v1.
            config: Request parameters and retry policy.
            transport: Optional httpx transport (tests use MockTransport).
            retry_wait: Tenacity wait strategy between attempts. Defaults
                to exponential backoff with jitter.

        Raises:
            LLMConfigError: If no API key is provided or found in environment.
        """
        self._api_key = (
            api_key
            or os.environ.get("CRITLOOP_OPENAI_API_KEY", "")
            or os.environ.get("OPENAI_API_KEY", "")
        ).strip()
        if not self._api_key:
            raise LLMConfigError(
                "No API key provided. Pass api_key= or set CRITLOOP_OPENAI_API_KEY "
                "(or OPENAI_API_KEY) environment variable."
            )
        self._base_url = (
            base_url
            or os.environ.get("CRITLOOP_OPENAI_BASE_URL", DEFAULT_BASE_URL)
        ).rstrip("/")
        self.config = config or ClientConfig()
        self._wait = retry_wait or (
            tenacity.wait_exponential(multiplier=1, min=1, max=30)
            + tenacity.wait_random(0, 2)
        )
        self._client = httpx.Client(
            transport=transport,
            timeout=httpx.Timeout(
                self.config.chunk_timeout, connect=self.config.connect_timeout
            ),
            headers={
                "Content-Type": "application/json",
                "Accept": "text/event-stream",
                "Authorization": f"Bearer {self._api_key}",
            },
        )

    def call(
        self,
        system_prompt: str,
        user_text: str,
        *,
        payload_field: str | None = DEFAULT_PAYLOAD_FIELD,
        temperature: float | None = None,
        max_tokens: int | None = None,
        progress: ChunkProgress | None = None,
    ) -> dict[str, Any]:
        """Send one system + user exchange and return the response object.

        Args:
            system_prompt: Role instructions.
            user_text: The per-call request.
            payload_field: Field whose shape quirks the normalizer repairs,
                or None for schemas without a free-text payload.
            temperature: Overrides the configured temperature.
            max_tokens: Overrides the configured token budget.
            progress: Optional per-call chunk counter.

        Returns:
            The normalized JSON object.

        Raises:
            MaxRetriesExceededError: When every attempt retried.
            LLMAuthError: On 401/403 (no retry).
            JsonParseError: If a stopped response is not valid JSON.
            UnexpectedJsonStructureError: If it is JSON but not an object.
            LLMStatusError: On other non-retryable HTTP errors.
        """
        messages = [
            ChatMessage("system", system_prompt),
            ChatMessage("user", user_text),
        ]
        payload = self.build_payload(
            messages, temperature=temperature, max_tokens=max_tokens
        )
        retryer = tenacity.Retrying(
            retry=(
                tenacity.retry_if_result(_is_retry_signal)
                | tenacity.retry_if_exception(_is_retryable)
            ),
            wait=self._wait,
            stop=tenacity.stop_after_attempt(self.config.max_retries),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
        )
        try:
            outcome = retryer(
                self._attempt, payload, payload_field=payload_field, progress=progress
            )
        except tenacity.RetryError as exc:
            last = exc.last_attempt
            if last.failed:
                cause = last.exception()
                raise MaxRetriesExceededError(
                    self.config.max_retries, f"{type(cause).__name__}: {cause}"
                ) from cause
            raise MaxRetriesExceededError(
                self.config.max_retries, last.result().reason
            ) from None
        finally:
            if progress is not None:
                progress.finish()
        return outcome.value

    def build_payload(
        self,
        messages: list[ChatMessage],
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> dict[str, Any]:
        """Build the request body for one streamed JSON-object completion."""
        return {
            "model": self.config.model,
            "messages": [m.to_dict() for m in messages],
            "n": 1,
            "response_format": {"type": "json_object"},
            "temperature": self.config.temperature if temperature is None else temperature,
            "max_tokens": self.config.max_tokens if max_tokens is None else max_tokens,
            "stream": True,
        }

    def _attempt(
        self,
        payload: dict[str, Any],
        *,
        payload_field: str | None,
        progress: ChunkProgress | None,
    ) -> Done | Retry:
        """Execute a single streamed request (no retry)."""
        if progress is not None:
            progress.reset_to_zero()
        try:
            collected = self._stream(payload, progress)
        except httpx.ReadTimeout:
            logger.warning(
                "No chunk within %.1fs; reissuing request", self.config.chunk_timeout
            )
            return Retry(f"no chunk within {self.config.chunk_timeout}s")

        if isinstance(collected, Retry):
            logger.info("Retrying request: %s", collected.reason)
            return collected
        outcome = normalize(collected.text, payload_field)
        if isinstance(outcome, Retry):
            logger.info("Retrying request: %s", outcome.reason)
        return outcome

    def _stream(
        self, payload: dict[str, Any], progress: ChunkProgress | None
    ) -> ApiSuccess | Retry:
        with self._client.stream(
            "POST", f"{self._base_url}/chat/completions", json=payload
        ) as response:
            if response.status_code != 200:
                self._raise_for_status(response)
            return collect_stream(
                iter_sse_chunks(response.iter_lines()),
                blank_chunk_threshold=self.config.blank_chunk_threshold,
                progress=progress,
            )

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        response.read()
        if response.status_code in _AUTH_ERROR_STATUS_CODES:
            raise LLMAuthError(
                f"Authentication failed: HTTP {response.status_code} - "
                f"{response.text}"
            )
        if response.status_code == 429:
            retry_after_raw = response.headers.get("Retry-After")
            retry_after: float | None = None
            if retry_after_raw is not None:
                try:
                    retry_after = float(retry_after_raw)
                except (ValueError, TypeError):
                    pass
            raise LLMRateLimitError(
                f"Rate limited: HTTP 429 - {response.text}",
                retry_after=retry_after,
            )
        raise LLMStatusError(response.status_code, response.text)

    def close(self) -> None:
        """Close the underlying httpx client."""
        self._client.close()

    def __enter__(self) -> StreamingChatClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
