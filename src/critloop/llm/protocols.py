"""LLM client protocol.

Agents talk to the model through this interface, so tests and alternate
transports can stand in for StreamingChatClient.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from critloop.progress import ChunkProgress


@runtime_checkable
class JsonChatClient(Protocol):
    """Protocol for clients that return one JSON object per chat exchange.

    The built-in StreamingChatClient implements this protocol.
    """

    def call(
        self,
        system_prompt: str,
        user_text: str,
        *,
        payload_field: str | None = ...,
        temperature: float | None = None,
        max_tokens: int | None = None,
        progress: ChunkProgress | None = None,
    ) -> dict[str, Any]:
        """Send one system + user exchange, return the response object."""
        ...

    def close(self) -> None:
        """Release underlying resources."""
        ...
