"""LLM client infrastructure for critloop.

Provides the streaming OpenAI-compatible client, the chunk-stream and
normalization layers it is built from, a pluggable client protocol,
and the LLM error hierarchy.
"""

from critloop.llm.client import ClientConfig, StreamingChatClient
from critloop.llm.errors import (
    JsonParseError,
    LLMAuthError,
    LLMClientError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
    LLMStatusError,
    MaxRetriesExceededError,
    MissingFieldsError,
    NotJsonObjectError,
    PayloadDeserializationError,
    SchemaError,
    UnexpectedJsonStructureError,
)
from critloop.llm.normalize import PayloadShape, classify_payload, normalize
from critloop.llm.protocols import JsonChatClient
from critloop.llm.stream import (
    ApiSuccess,
    BlankStreakGuard,
    CompletionReason,
    Done,
    ProcessingOutcome,
    Retry,
    StreamChunk,
    collect_stream,
    iter_sse_chunks,
)

__all__ = [
    # Client
    "StreamingChatClient",
    "ClientConfig",
    "JsonChatClient",
    # Stream and normalization
    "StreamChunk",
    "CompletionReason",
    "ProcessingOutcome",
    "ApiSuccess",
    "Retry",
    "Done",
    "BlankStreakGuard",
    "collect_stream",
    "iter_sse_chunks",
    "normalize",
    "classify_payload",
    "PayloadShape",
    # Errors
    "LLMClientError",
    "LLMConfigError",
    "LLMRateLimitError",
    "LLMAuthError",
    "LLMResponseError",
    "LLMStatusError",
    "MaxRetriesExceededError",
    "SchemaError",
    "JsonParseError",
    "UnexpectedJsonStructureError",
    "NotJsonObjectError",
    "MissingFieldsError",
    "PayloadDeserializationError",
]
