"""Core value types shared by the agents and the orchestrator.

ChatMessage, Candidate, Verdict, ReviewKind, and ReviewRequest are all
frozen: they are created once and replaced, never mutated.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Literal


@dataclass(frozen=True)
class ChatMessage:
    """A single chat message sent to the model.

    The system message is built once per agent; the user message once
    per call.
    """

    role: Literal["system", "user"]
    text: str

    def to_dict(self) -> dict[str, str]:
        """Return the OpenAI wire format ``{"role": ..., "content": ...}``."""
        return {"role": self.role, "content": self.text}


@dataclass(frozen=True)
class Candidate:
    """A proposed program under review.

    Agents receive a Candidate and return a new one; the orchestrator
    swaps its reference, nothing edits ``source`` in place.
    """

    source: str

    def __str__(self) -> str:
        return self.source


@dataclass(frozen=True)
class Verdict:
    """One reviewer's judgment of a Candidate.

    Attributes:
        reviewer_name: Name of the agent that produced the verdict.
        passed: The reviewer's declared pass flag.
        issues: Problems found, in the order the reviewer listed them.
            A passing verdict may still carry issues; they are
            informational and never drive a fix.
    """

    reviewer_name: str
    passed: bool
    issues: tuple[str, ...] = ()


class ReviewKind(str, enum.Enum):
    """What produced a ReviewRequest, which decides how the Repairer frames it."""

    CODE_REVIEW = "code_review"
    COMPILER_FIX = "compiler_fix"
    TEST_FIX = "test_fix"


@dataclass(frozen=True)
class ReviewRequest:
    """A typed bundle of feedback that drives exactly one Repairer call."""

    kind: ReviewKind
    comments: tuple[str, ...] = field(default_factory=tuple)
