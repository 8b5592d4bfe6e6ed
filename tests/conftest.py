"""Shared test fixtures and fakes for critloop.

Provides a scripted JsonChatClient that answers by role, SSE body
builders for the streaming client, and environment isolation.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from typing import Any

import pytest

from critloop import prompts
from critloop.models import Candidate
from critloop.verify import VerificationOutcome, VerificationStatus

# ---------------------------------------------------------------------------
# SSE helpers
# ---------------------------------------------------------------------------


def sse_event(content: str | None = None, finish_reason: str | None = None) -> str:
    """One ``data:`` line of a chat.completion.chunk stream."""
    delta = {} if content is None else {"content": content}
    event = {
        "id": "chatcmpl-test",
        "object": "chat.completion.chunk",
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }
    return f"data: {json.dumps(event)}\n\n"


def sse_body(*pieces: str, finish_reason: str | None = "stop", done: bool = True) -> bytes:
    """A full SSE body streaming ``pieces`` then a terminal chunk."""
    lines = [sse_event(p) for p in pieces]
    if finish_reason is not None:
        lines.append(sse_event(finish_reason=finish_reason))
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode()


def sse_json_body(obj: Any, *, chunk_size: int = 8, finish_reason: str | None = "stop") -> bytes:
    """Stream ``json.dumps(obj)`` in fixed-size pieces."""
    text = json.dumps(obj)
    pieces = [text[i : i + chunk_size] for i in range(0, len(text), chunk_size)]
    return sse_body(*pieces, finish_reason=finish_reason)


# ---------------------------------------------------------------------------
# Fake chat client
# ---------------------------------------------------------------------------

Responder = Callable[[str], dict]


class ScriptedChatClient:
    """A JsonChatClient that answers each role from a callable.

    ``generate`` and ``repair`` receive the user text and return a code
    object; ``review`` receives the system prompt and user text and
    returns a review object. Calls are recorded in order (thread-safe).
    """

    def __init__(
        self,
        *,
        generate: Responder | None = None,
        review: Callable[[str, str], dict] | None = None,
        repair: Responder | None = None,
    ) -> None:
        self._generate = generate or (lambda _: {"code": "fn main() {}"})
        self._review = review or (lambda _s, _u: {"passed": True, "issues": []})
        self._repair = repair or (lambda _: {"code": "fn main() { /* fixed */ }"})
        self._lock = threading.Lock()
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def call(
        self,
        system_prompt: str,
        user_text: str,
        *,
        payload_field: str | None = "code",
        temperature: float | None = None,
        max_tokens: int | None = None,
        progress: Any = None,
    ) -> dict:
        role = self.role_of(system_prompt)
        with self._lock:
            self.calls.append({
                "role": role,
                "system": system_prompt,
                "user": user_text,
                "payload_field": payload_field,
                "max_tokens": max_tokens,
            })
        if progress is not None:
            progress.inc()
        if role == "generator":
            return self._generate(user_text)
        if role == "repairer":
            return self._repair(user_text)
        return self._review(system_prompt, user_text)

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> ScriptedChatClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @staticmethod
    def role_of(system_prompt: str) -> str:
        if system_prompt == prompts.GENERATOR_SYSTEM:
            return "generator"
        if system_prompt == prompts.REPAIRER_SYSTEM:
            return "repairer"
        return "reviewer"

    def count(self, role: str) -> int:
        return sum(1 for c in self.calls if c["role"] == role)


class FakeVerifier:
    """Returns queued VerificationOutcomes; passes once the queue is empty."""

    def __init__(self, *outcomes: VerificationOutcome) -> None:
        self._outcomes = list(outcomes)
        self.verified: list[Candidate] = []

    def verify(self, candidate: Candidate) -> VerificationOutcome:
        self.verified.append(candidate)
        if self._outcomes:
            return self._outcomes.pop(0)
        return VerificationOutcome(VerificationStatus.PASSED, output="test result: ok")


def failing_review(issues: list[str]) -> Callable[[str, str], dict]:
    """A review responder where every reviewer fails with ``issues``."""
    return lambda _s, _u: {"passed": False, "issues": list(issues)}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove every environment variable critloop reads."""
    for name in (
        "CRITLOOP_OPENAI_API_KEY",
        "OPENAI_API_KEY",
        "CRITLOOP_OPENAI_BASE_URL",
        "CRITLOOP_MODEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def scripted_client() -> ScriptedChatClient:
    """A client where everything passes on the first try."""
    return ScriptedChatClient()


@pytest.fixture(autouse=True)
def _restore_critloop_logger():
    """Undo logging changes made by CLI invocations."""
    logger = logging.getLogger("critloop")
    handlers, level, propagate = logger.handlers[:], logger.level, logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate
