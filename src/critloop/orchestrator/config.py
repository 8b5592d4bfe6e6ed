"""Orchestrator configuration types.

Provides ReviewMode and OrchestratorConfig for configuring the
critique/repair/verify convergence loop.

Review modes decide which reviewers run in each Reviewing phase:
- SPECIALIZED: ``reviewers_per_kind`` reviewers for each of the design,
  correctness, and syntax kinds
- GENERAL: ``reviewers_per_kind`` general reviewers
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from critloop.agents.roles import SPECIALIZED_KINDS, ReviewerKind
from critloop.exceptions import OrchestratorError

if TYPE_CHECKING:
    from critloop.orchestrator.models import RunEvent

DEFAULT_MAX_PROPOSALS = 20

# Exit codes 1..254 carry the proposal count; 255 is reserved for exhaustion.
MAX_REPORTABLE_PROPOSALS = 254


class ReviewMode(str, enum.Enum):
    """Which reviewer kinds take part in a Reviewing phase."""

    SPECIALIZED = "specialized"
    GENERAL = "general"


@dataclass
class OrchestratorConfig:
    """Configuration for the convergence loop.

    Mutable dataclass -- callers may adjust settings between runs.

    Attributes:
        reviewers_per_kind: Number of reviewers created for each kind
            in the selected mode.
        review_mode: Specialized kinds or a single general kind.
        max_proposals: Upper bound on Generator and Repairer calls in one
            run (1..254).
        max_concurrency: Worker threads for the reviewer fan-out. None
            runs every reviewer at once.
        on_event: Callback invoked on every state transition.
    """

    reviewers_per_kind: int = 1
    review_mode: ReviewMode = ReviewMode.SPECIALIZED
    max_proposals: int = DEFAULT_MAX_PROPOSALS
    max_concurrency: int | None = None
    on_event: Callable[[RunEvent], None] | None = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check the bounds; called on construction and at the start of each run.

        Raises:
            OrchestratorError: If any setting is out of range.
        """
        if self.reviewers_per_kind < 1:
            raise OrchestratorError(
                f"reviewers_per_kind must be at least 1, got {self.reviewers_per_kind}"
            )
        if not 1 <= self.max_proposals <= MAX_REPORTABLE_PROPOSALS:
            raise OrchestratorError(
                f"max_proposals must be in 1..{MAX_REPORTABLE_PROPOSALS}, "
                f"got {self.max_proposals}"
            )
        if self.max_concurrency is not None and self.max_concurrency < 1:
            raise OrchestratorError(
                f"max_concurrency must be at least 1, got {self.max_concurrency}"
            )

    def reviewer_kinds(self) -> list[ReviewerKind]:
        """Return one entry per reviewer to create, grouped by kind."""
        kinds = (
            (ReviewerKind.GENERAL,)
            if self.review_mode is ReviewMode.GENERAL
            else SPECIALIZED_KINDS
        )
        return [kind for kind in kinds for _ in range(self.reviewers_per_kind)]
