"""Role descriptors.

A role is a data value: instruction text, the fields its response must
carry, the payload field the normalizer should repair, and a parser that
turns the validated object into the role's result type. RoleAgent runs
any of them through the same call machinery.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from critloop import prompts
from critloop.agents.payloads import parse_code, parse_verdict
from critloop.models import Candidate, Verdict

R = TypeVar("R")

CODE_FIELDS: tuple[str, ...] = ("code",)
REVIEW_FIELDS: tuple[str, ...] = ("passed", "issues")


class ReviewerKind(str, enum.Enum):
    """What a reviewer evaluates."""

    DESIGN = "design"
    CORRECTNESS = "correctness"
    SYNTAX = "syntax"
    GENERAL = "general"


SPECIALIZED_KINDS: tuple[ReviewerKind, ...] = (
    ReviewerKind.DESIGN,
    ReviewerKind.CORRECTNESS,
    ReviewerKind.SYNTAX,
)

_REVIEW_CRITERIA: dict[ReviewerKind, str] = {
    ReviewerKind.DESIGN: prompts.DESIGN_CRITERIA,
    ReviewerKind.CORRECTNESS: prompts.CORRECTNESS_CRITERIA,
    ReviewerKind.SYNTAX: prompts.SYNTAX_CRITERIA,
    ReviewerKind.GENERAL: prompts.GENERAL_CRITERIA,
}


@dataclass(frozen=True)
class RoleSpec(Generic[R]):
    """Everything that distinguishes one role from another.

    Attributes:
        title: Human-readable role name; agents are named
            ``"<title> <index>"``.
        instructions: System prompt text.
        required_fields: Keys the response object must contain.
        payload_field: Field the normalizer reconciles, or None.
        parse: Converts a validated response object into the result,
            given the agent's name.
        temperature: Per-role temperature override (None = client default).
        max_tokens: Per-role token budget override (None = client default).
    """

    title: str
    instructions: str
    required_fields: tuple[str, ...]
    payload_field: str | None
    parse: Callable[[dict[str, Any], str], R]
    temperature: float | None = None
    max_tokens: int | None = None


def generator_role() -> RoleSpec[Candidate]:
    return RoleSpec(
        title="Generator",
        instructions=prompts.GENERATOR_SYSTEM,
        required_fields=CODE_FIELDS,
        payload_field="code",
        parse=parse_code,
    )


def repairer_role() -> RoleSpec[Candidate]:
    return RoleSpec(
        title="Repairer",
        instructions=prompts.REPAIRER_SYSTEM,
        required_fields=CODE_FIELDS,
        payload_field="code",
        parse=parse_code,
    )


def reviewer_role(kind: ReviewerKind) -> RoleSpec[Verdict]:
    """Build the reviewer role for one evaluation kind.

    Reviews are short, so the token budget is smaller than for code.
    """
    return RoleSpec(
        title=f"{kind.value.capitalize()} Reviewer",
        instructions=f"{prompts.REVIEW_BASE}\n{_REVIEW_CRITERIA[kind]}",
        required_fields=REVIEW_FIELDS,
        payload_field=None,
        parse=parse_verdict,
        max_tokens=1024,
    )
