"""The role agent engine.

RoleAgent wraps a JsonChatClient with one RoleSpec: it sends the role's
instructions plus a per-call user message, checks the response's keys
against the role's schema, and parses the result.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from critloop import prompts
from critloop.agents.roles import (
    ReviewerKind,
    RoleSpec,
    generator_role,
    repairer_role,
    reviewer_role,
)
from critloop.llm.errors import MissingFieldsError, NotJsonObjectError
from critloop.progress import NullProgressReporter

if TYPE_CHECKING:
    from critloop.llm.protocols import JsonChatClient
    from critloop.models import Candidate, ReviewRequest, Verdict
    from critloop.progress import ProgressReporter

logger = logging.getLogger(__name__)

R = TypeVar("R")


def validate_fields(value: Any, required: list[str] | tuple[str, ...]) -> list[str]:
    """Compare a response object's keys against the required set.

    Args:
        value: Parsed model output.
        required: Keys that must be present.

    Returns:
        Sorted list of keys present but not required (may be empty).

    Raises:
        NotJsonObjectError: If ``value`` is not a dict.
        MissingFieldsError: If any required key is absent; names all of them.
    """
    if not isinstance(value, dict):
        raise NotJsonObjectError(value)
    keys = set(value)
    required_set = set(required)
    missing = required_set - keys
    if missing:
        raise MissingFieldsError(sorted(missing))
    return sorted(keys - required_set)


class RoleAgent(Generic[R]):
    """One named agent running one role.

    Usage::

        agent = RoleAgent(reviewer_role(ReviewerKind.SYNTAX), client, index=1)
        verdict = agent.chat("problem ... ------ code ...")
    """

    def __init__(
        self,
        role: RoleSpec[R],
        client: JsonChatClient,
        *,
        index: int = 1,
        progress: ProgressReporter | None = None,
    ) -> None:
        self.role = role
        self.name = f"{role.title} {index}"
        self._client = client
        self._progress = progress or NullProgressReporter()

    def chat(self, user_text: str) -> R:
        """Run one exchange and return the role's result.

        Raises:
            MaxRetriesExceededError: If the client gave up.
            SchemaError: On missing fields, wrong shapes, or a payload
                that does not deserialize.
        """
        progress = self._progress.start(self.name)
        obj = self._client.call(
            self.role.instructions,
            user_text,
            payload_field=self.role.payload_field,
            temperature=self.role.temperature,
            max_tokens=self.role.max_tokens,
            progress=progress,
        )
        extra = validate_fields(obj, self.role.required_fields)
        if extra:
            logger.warning("%s: extra keys in response ignored: %s", self.name, extra)
        return self.role.parse(obj, self.name)

    def __repr__(self) -> str:
        return f"RoleAgent({self.name!r})"


# ---------------------------------------------------------------------------
# Role-specific entry points
# ---------------------------------------------------------------------------


class Generator:
    """Produces the first Candidate from the problem statement."""

    def __init__(self, client: JsonChatClient, *, progress: ProgressReporter | None = None) -> None:
        self.agent: RoleAgent[Candidate] = RoleAgent(generator_role(), client, progress=progress)

    @property
    def name(self) -> str:
        return self.agent.name

    def generate(self, problem: str) -> Candidate:
        return self.agent.chat(problem)


class Reviewer:
    """Judges a Candidate against one evaluation kind."""

    def __init__(
        self,
        kind: ReviewerKind,
        client: JsonChatClient,
        *,
        index: int = 1,
        progress: ProgressReporter | None = None,
    ) -> None:
        self.kind = kind
        self.agent: RoleAgent[Verdict] = RoleAgent(
            reviewer_role(kind), client, index=index, progress=progress
        )

    @property
    def name(self) -> str:
        return self.agent.name

    def review(self, problem: str, candidate: Candidate) -> Verdict:
        return self.agent.chat(prompts.build_review_message(problem, candidate))


class Repairer:
    """Rewrites a Candidate given one ReviewRequest."""

    def __init__(self, client: JsonChatClient, *, progress: ProgressReporter | None = None) -> None:
        self.agent: RoleAgent[Candidate] = RoleAgent(repairer_role(), client, progress=progress)

    @property
    def name(self) -> str:
        return self.agent.name

    def repair(self, problem: str, candidate: Candidate, request: ReviewRequest) -> Candidate:
        return self.agent.chat(prompts.build_repair_message(problem, candidate, request))
