"""Orchestrator run models.

Provides RunState, RunEvent, ProposalRecord, RunOutcome, and
OrchestratorResult for the convergence loop.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from critloop.exceptions import MaxProposalsExceededError
from critloop.models import Candidate, ReviewKind, Verdict

EXIT_ERROR = 0
EXIT_EXHAUSTED = 255


class RunState(str, enum.Enum):
    """States a run moves through."""

    INIT = "init"
    GENERATED = "generated"
    REVIEWING = "reviewing"
    FIXING = "fixing"
    VERIFYING = "verifying"
    CONVERGED = "converged"
    EXHAUSTED = "exhausted"


class RunStatus(str, enum.Enum):
    """How a run ended."""

    CONVERGED = "converged"
    EXHAUSTED = "exhausted"
    FAILED = "failed"


@dataclass(frozen=True)
class RunEvent:
    """A state transition, passed to ``OrchestratorConfig.on_event``.

    Attributes:
        state: The state just entered.
        proposals: Proposals made so far.
        detail: Short human-readable note.
    """

    state: RunState
    proposals: int
    detail: str = ""


@dataclass(frozen=True)
class ProposalRecord:
    """One Candidate produced by the Generator or the Repairer.

    Attributes:
        number: 1-based proposal number.
        origin: ``"generator"`` or the ReviewKind that drove the repair.
        candidate: The proposed program.
    """

    number: int
    origin: str
    candidate: Candidate

    @classmethod
    def generated(cls, candidate: Candidate) -> ProposalRecord:
        return cls(1, "generator", candidate)

    @classmethod
    def repaired(cls, number: int, kind: ReviewKind, candidate: Candidate) -> ProposalRecord:
        return cls(number, kind.value, candidate)


@dataclass(frozen=True)
class RunOutcome:
    """Discriminated terminal result of a run.

    The integer exit code is derived here and nowhere else:

    - CONVERGED: the number of proposals used (1..254)
    - EXHAUSTED: 255
    - FAILED: 0
    """

    status: RunStatus
    proposals: int = 0
    error: BaseException | None = None

    @classmethod
    def converged(cls, proposals: int) -> RunOutcome:
        return cls(RunStatus.CONVERGED, proposals)

    @classmethod
    def exhausted(cls, proposals: int) -> RunOutcome:
        return cls(RunStatus.EXHAUSTED, proposals)

    @classmethod
    def failed(cls, error: BaseException) -> RunOutcome:
        return cls(RunStatus.FAILED, error=error)

    @property
    def exit_code(self) -> int:
        if self.status is RunStatus.CONVERGED:
            return self.proposals
        if self.status is RunStatus.EXHAUSTED:
            return EXIT_EXHAUSTED
        return EXIT_ERROR


@dataclass(frozen=True)
class OrchestratorResult:
    """Final result of a run that reached a terminal state.

    Frozen: the result is immutable once the run completes.

    Attributes:
        outcome: CONVERGED or EXHAUSTED.
        candidate: The last Candidate proposed.
        proposals: Every proposal in order.
        review_rounds: Verdicts of each Reviewing phase, in order.
        state: The terminal RunState.
    """

    outcome: RunOutcome
    candidate: Candidate
    proposals: tuple[ProposalRecord, ...] = ()
    review_rounds: tuple[tuple[Verdict, ...], ...] = field(default_factory=tuple)
    state: RunState = RunState.CONVERGED

    @property
    def converged(self) -> bool:
        return self.outcome.status is RunStatus.CONVERGED

    @property
    def proposal_count(self) -> int:
        return len(self.proposals)

    def raise_for_outcome(self) -> None:
        """Raise MaxProposalsExceededError if the run did not converge."""
        if self.outcome.status is RunStatus.EXHAUSTED:
            raise MaxProposalsExceededError(self.outcome.proposals)
