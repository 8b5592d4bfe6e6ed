"""Orchestrator package -- the critique/repair/verify convergence loop.

Provides the ConvergenceOrchestrator class, its configuration, verdict
aggregation, and the run/result types.
"""

from critloop.orchestrator.aggregation import aggregate_verdicts, dissenting
from critloop.orchestrator.config import (
    DEFAULT_MAX_PROPOSALS,
    MAX_REPORTABLE_PROPOSALS,
    OrchestratorConfig,
    ReviewMode,
)
from critloop.orchestrator.loop import ConvergenceOrchestrator
from critloop.orchestrator.models import (
    EXIT_ERROR,
    EXIT_EXHAUSTED,
    OrchestratorResult,
    ProposalRecord,
    RunEvent,
    RunOutcome,
    RunState,
    RunStatus,
)

__all__ = [
    # Core
    "ConvergenceOrchestrator",
    "aggregate_verdicts",
    "dissenting",
    # Config
    "DEFAULT_MAX_PROPOSALS",
    "MAX_REPORTABLE_PROPOSALS",
    "OrchestratorConfig",
    "ReviewMode",
    # Models
    "EXIT_ERROR",
    "EXIT_EXHAUSTED",
    "OrchestratorResult",
    "ProposalRecord",
    "RunEvent",
    "RunOutcome",
    "RunState",
    "RunStatus",
]
