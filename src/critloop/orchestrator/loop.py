"""Core convergence loop.

Provides ConvergenceOrchestrator, which drives one Generator call and
then alternates review, repair, and verification:

1. Reviewing: every configured reviewer judges the current candidate
   concurrently; the phase ends only when all of them have answered.
2. If any reviewer dissents, the merged issues go to the Repairer and
   the new candidate is reviewed again.
3. If all pass, the candidate is compiled and tested. Success ends the
   run; a compile or test failure goes to the Repairer, and the new
   candidate is reviewed again.

Every Generator or Repairer call is one proposal. The run ends as
EXHAUSTED when another repair would exceed ``max_proposals``.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import TYPE_CHECKING

from critloop.agents import Generator, Repairer, Reviewer
from critloop.exceptions import OrchestratorError
from critloop.orchestrator.aggregation import aggregate_verdicts
from critloop.orchestrator.config import OrchestratorConfig
from critloop.orchestrator.models import (
    OrchestratorResult,
    ProposalRecord,
    RunEvent,
    RunOutcome,
    RunState,
)
from critloop.progress import NullProgressReporter
from critloop.verify import VerificationRunner

if TYPE_CHECKING:
    from concurrent.futures import Future

    from critloop.llm.protocols import JsonChatClient
    from critloop.models import Candidate, ReviewRequest, Verdict
    from critloop.progress import ProgressReporter

logger = logging.getLogger(__name__)


class ConvergenceOrchestrator:
    """Runs the critique/repair/verify loop for one problem at a time.

    Usage::

        with StreamingChatClient() as client:
            orch = ConvergenceOrchestrator(client, OrchestratorConfig(reviewers_per_kind=2))
            result = orch.run(problem_text)
        print(result.outcome.exit_code, result.candidate)

    Any agent error (exhausted retries, schema violations) and any fatal
    verification error propagates out of ``run`` unchanged.
    """

    def __init__(
        self,
        client: JsonChatClient,
        config: OrchestratorConfig | None = None,
        *,
        verifier: VerificationRunner | None = None,
        progress: ProgressReporter | None = None,
    ) -> None:
        self._client = client
        self._config = config or OrchestratorConfig()
        self._verifier = verifier or VerificationRunner()
        self._progress = progress or NullProgressReporter()
        self._state = RunState.INIT
        self._proposals = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> RunState:
        """Return the current run state."""
        return self._state

    @property
    def config(self) -> OrchestratorConfig:
        return self._config

    def run(self, problem: str) -> OrchestratorResult:
        """Converge on a verified candidate for ``problem``.

        Returns:
            OrchestratorResult whose outcome is CONVERGED or EXHAUSTED.

        Raises:
            OrchestratorError: If the configuration is invalid, or a failed
                verification cannot be turned into a repair request.
            CritloopError: Any agent or verification error, unchanged.
        """
        self._config.validate()
        self._proposals = 0
        self._transition(RunState.INIT)

        generator = Generator(self._client, progress=self._progress)
        repairer = Repairer(self._client, progress=self._progress)
        reviewers = self._build_reviewers()

        records: list[ProposalRecord] = []
        rounds: list[tuple[Verdict, ...]] = []

        logger.info("%s requesting initial proposal", generator.name)
        candidate = generator.generate(problem)
        records.append(ProposalRecord.generated(candidate))
        self._proposals = 1
        self._transition(RunState.GENERATED, "initial proposal")

        while True:
            self._transition(RunState.REVIEWING, f"{len(reviewers)} reviewers")
            verdicts = self._review(reviewers, problem, candidate)
            rounds.append(verdicts)
            request = aggregate_verdicts(verdicts)

            if request is None:
                logger.info("All reviewers passed proposal #%d", self._proposals)
                self._transition(RunState.VERIFYING)
                outcome = self._verifier.verify(candidate)
                if outcome.passed:
                    logger.info("Converged after %d proposals", self._proposals)
                    self._transition(RunState.CONVERGED)
                    return self._result(RunOutcome.converged(self._proposals), candidate, records, rounds)
                request = outcome.to_review_request()
                if request is None:
                    raise OrchestratorError(
                        f"Verification failed with status {outcome.status!r} "
                        "but produced no repair request"
                    )
                logger.info("Verification failed: %s", request.kind.value)
            else:
                logger.info(
                    "Reviewers raised %d distinct issues on proposal #%d",
                    len(request.comments),
                    self._proposals,
                )

            if self._proposals >= self._config.max_proposals:
                logger.warning(
                    "Proposal budget of %d exhausted without convergence",
                    self._config.max_proposals,
                )
                self._transition(RunState.EXHAUSTED)
                return self._result(
                    RunOutcome.exhausted(self._proposals),
                    candidate,
                    records,
                    rounds,
                    state=RunState.EXHAUSTED,
                )

            candidate = self._repair(repairer, problem, candidate, request)
            records.append(ProposalRecord.repaired(self._proposals, request.kind, candidate))

    # ------------------------------------------------------------------
    # Internal methods
    # ------------------------------------------------------------------

    def _build_reviewers(self) -> list[Reviewer]:
        counters: dict[str, int] = {}
        reviewers = []
        for kind in self._config.reviewer_kinds():
            counters[kind.value] = counters.get(kind.value, 0) + 1
            reviewers.append(
                Reviewer(kind, self._client, index=counters[kind.value], progress=self._progress)
            )
        return reviewers

    def _review(
        self, reviewers: list[Reviewer], problem: str, candidate: Candidate
    ) -> tuple[Verdict, ...]:
        """Fan out one review per reviewer and wait for all of them.

        Siblings of a failing reviewer are not cancelled; their results
        are discarded and the first error (in reviewer order) is raised.
        """
        workers = self._config.max_concurrency or len(reviewers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="critloop-review") as pool:
            futures: list[Future[Verdict]] = [
                pool.submit(reviewer.review, problem, candidate) for reviewer in reviewers
            ]
            wait(futures)

        errors = [
            (reviewer, future.exception())
            for reviewer, future in zip(reviewers, futures)
            if future.exception() is not None
        ]
        if errors:
            for reviewer, exc in errors:
                logger.error("%s failed: %s", reviewer.name, exc)
            raise errors[0][1]  # type: ignore[misc]

        verdicts = tuple(future.result() for future in futures)
        for verdict in verdicts:
            logger.debug(
                "%s: passed=%s issues=%s", verdict.reviewer_name, verdict.passed, list(verdict.issues)
            )
        return verdicts

    def _repair(
        self, repairer: Repairer, problem: str, candidate: Candidate, request: ReviewRequest
    ) -> Candidate:
        self._transition(RunState.FIXING, request.kind.value)
        repaired = repairer.repair(problem, candidate, request)
        self._proposals += 1
        logger.info("%s produced proposal #%d", repairer.name, self._proposals)
        return repaired

    def _transition(self, state: RunState, detail: str = "") -> None:
        self._state = state
        logger.debug("State -> %s (proposals=%d) %s", state.value, self._proposals, detail)
        if self._config.on_event is not None:
            self._config.on_event(RunEvent(state, self._proposals, detail))

    def _result(
        self,
        outcome: RunOutcome,
        candidate: Candidate,
        records: list[ProposalRecord],
        rounds: list[tuple[Verdict, ...]],
        *,
        state: RunState = RunState.CONVERGED,
    ) -> OrchestratorResult:
        return OrchestratorResult(
            outcome=outcome,
            candidate=candidate,
            proposals=tuple(records),
            review_rounds=tuple(rounds),
            state=state,
        )
