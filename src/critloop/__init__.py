"""critloop: drive an LLM through critique, repair, and verification until code converges.

A Generator writes a candidate program, a panel of Reviewers critiques it
concurrently, a Repairer applies their merged feedback, and the candidate
is compiled and tested. The loop repeats until the tests pass or the
proposal budget runs out.
"""

from critloop._version import __version__

# Orchestration
from critloop.orchestrator import (
    ConvergenceOrchestrator,
    OrchestratorConfig,
    OrchestratorResult,
    ProposalRecord,
    ReviewMode,
    RunOutcome,
    RunState,
    RunStatus,
    aggregate_verdicts,
)

# Agents
from critloop.agents import Generator, Repairer, Reviewer, ReviewerKind, RoleAgent, RoleSpec

# LLM client
from critloop.llm import ClientConfig, JsonChatClient, StreamingChatClient, normalize

# Verification
from critloop.verify import (
    VerificationOutcome,
    VerificationRunner,
    VerificationStatus,
    VerifierConfig,
    clean_diagnostic,
)

# Value types
from critloop.models import Candidate, ChatMessage, ReviewKind, ReviewRequest, Verdict

# Progress
from critloop.progress import ChunkProgress, NullProgressReporter, RichProgressReporter

# Exceptions
from critloop.exceptions import (
    CompilerNotFoundError,
    CritloopError,
    MaxProposalsExceededError,
    OrchestratorError,
    ProcessLaunchError,
    ProcessTerminatedError,
    TestExecutionError,
    VerificationError,
)
from critloop.llm.errors import (
    LLMClientError,
    LLMStatusError,
    MaxRetriesExceededError,
    MissingFieldsError,
    SchemaError,
    UnexpectedJsonStructureError,
)

__all__ = [
    "__version__",
    # Orchestration
    "ConvergenceOrchestrator",
    "OrchestratorConfig",
    "OrchestratorResult",
    "ProposalRecord",
    "ReviewMode",
    "RunOutcome",
    "RunState",
    "RunStatus",
    "aggregate_verdicts",
    # Agents
    "Generator",
    "Repairer",
    "Reviewer",
    "ReviewerKind",
    "RoleAgent",
    "RoleSpec",
    # LLM client
    "ClientConfig",
    "JsonChatClient",
    "StreamingChatClient",
    "normalize",
    # Verification
    "VerificationOutcome",
    "VerificationRunner",
    "VerificationStatus",
    "VerifierConfig",
    "clean_diagnostic",
    # Value types
    "Candidate",
    "ChatMessage",
    "ReviewKind",
    "ReviewRequest",
    "Verdict",
    # Progress
    "ChunkProgress",
    "NullProgressReporter",
    "RichProgressReporter",
    # Exceptions
    "CritloopError",
    "OrchestratorError",
    "MaxProposalsExceededError",
    "VerificationError",
    "CompilerNotFoundError",
    "ProcessLaunchError",
    "ProcessTerminatedError",
    "TestExecutionError",
    "LLMClientError",
    "LLMStatusError",
    "MaxRetriesExceededError",
    "SchemaError",
    "MissingFieldsError",
    "UnexpectedJsonStructureError",
]
