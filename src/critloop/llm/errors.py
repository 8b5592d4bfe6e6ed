"""LLM-specific error hierarchy.

All LLM errors inherit from CritloopError for consistent exception handling.

Two families live here:

- transport errors (config, auth, rate limiting, retry exhaustion), and
- schema errors raised while turning model output into typed results.
  Schema errors are never retried by the chat layer.
"""

from __future__ import annotations

from typing import Any

from critloop.exceptions import CritloopError


class LLMClientError(CritloopError):
    """Base for all LLM client errors."""


class LLMConfigError(LLMClientError):
    """Missing or invalid LLM configuration (e.g., no API key)."""


class LLMRateLimitError(LLMClientError):
    """Rate limited by the API (429).

    Attributes:
        retry_after: Seconds to wait before retrying (from Retry-After header),
            or None if not provided.
    """

    def __init__(self, message: str = "Rate limited", retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        if retry_after is not None:
            message = f"{message} (retry after {retry_after}s)"
        super().__init__(message)


class LLMAuthError(LLMClientError):
    """Authentication failed (401/403)."""


class LLMResponseError(LLMClientError):
    """Unexpected response format from LLM API."""


class LLMStatusError(LLMClientError):
    """The API answered with an HTTP error status other than 401, 403, or 429.

    Attributes:
        status_code: The HTTP status of the response.
    """

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        message = f"HTTP {status_code} from the chat API"
        if body:
            message = f"{message}: {body[:200]}"
        super().__init__(message)


class MaxRetriesExceededError(LLMClientError):
    """Every attempt of a chat request ended in a retry signal or transient error.

    Attributes:
        retries: Number of attempts made.
        last_reason: Why the final attempt was retried, if known.
    """

    def __init__(self, retries: int, last_reason: str | None = None) -> None:
        self.retries = retries
        self.last_reason = last_reason
        message = f"Too many retries: {retries}"
        if last_reason:
            message = f"{message} (last: {last_reason})"
        super().__init__(message)


class SchemaError(LLMClientError):
    """Base for structural problems in model output."""


class JsonParseError(SchemaError):
    """The finished response text is not valid JSON."""

    def __init__(self, message: str, text: str = "") -> None:
        self.text = text
        preview = text[:100] + ("..." if len(text) > 100 else "")
        super().__init__(f"Failed to parse JSON: {message}\nText: {preview}")


class UnexpectedJsonStructureError(SchemaError):
    """The response parsed, but its top-level shape is not an object."""

    def __init__(self, value: Any) -> None:
        self.value = value
        super().__init__(f"Unexpected JSON structure in json:\n{value!r}")


class NotJsonObjectError(SchemaError):
    """A value expected to be a JSON object is something else."""

    def __init__(self, value: Any = None) -> None:
        self.value = value
        super().__init__("The returned JSON is not an object")


class MissingFieldsError(SchemaError):
    """The response object lacks one or more required keys."""

    def __init__(self, fields: list[str]) -> None:
        self.fields = sorted(fields)
        super().__init__(f"The returned JSON is missing fields {self.fields}")


class PayloadDeserializationError(SchemaError):
    """Validated fields could not be converted into the role's result type."""
