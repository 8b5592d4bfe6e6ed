"""Critloop exception hierarchy.

All critloop-specific exceptions inherit from CritloopError.
LLM transport and response-shape errors live in critloop.llm.errors.
"""


class CritloopError(Exception):
    """Base exception for all critloop errors."""


class OrchestratorError(CritloopError):
    """Raised when the orchestrator encounters an unrecoverable error."""


class MaxProposalsExceededError(OrchestratorError):
    """Raised when the proposal budget runs out without a verified candidate.

    The orchestrator reports exhaustion as a RunOutcome; this error is for
    callers that want it raised instead (see OrchestratorResult.raise_for_outcome).
    """

    def __init__(self, proposals: int) -> None:
        self.proposals = proposals
        super().__init__(
            f"No verified candidate after {proposals} proposals"
        )


class VerificationError(CritloopError):
    """Base for unexpected failures while compiling or running tests.

    Compiler diagnostics and failed assertions are NOT errors; they come
    back as VerificationOutcome values. These are the process-level
    failures that end a run.
    """


class CompilerNotFoundError(VerificationError):
    """The configured compiler executable could not be started."""

    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__(f"Compiler not found: {command}")


class ProcessTerminatedError(VerificationError):
    """A compiler or test process was killed by a signal."""

    def __init__(self, stage: str, signal_number: int | None = None) -> None:
        self.stage = stage
        self.signal_number = signal_number
        detail = f" (signal {signal_number})" if signal_number is not None else ""
        super().__init__(f"The {stage} process was terminated by a signal{detail}")


class ProcessLaunchError(VerificationError):
    """A compiler or test process could not be started.

    Covers a test executable the compiler never produced and one the
    operating system refuses to run.
    """

    def __init__(self, stage: str, path: str, reason: str = "") -> None:
        self.stage = stage
        self.path = path
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Could not start the {stage} process {path}{detail}")


class TestExecutionError(VerificationError):
    """The test executable exited with an unexpected status.

    Exit code 101 means a failed assertion and is handled as a normal
    test failure. Anything else lands here with the full output attached.
    """

    __test__ = False

    def __init__(self, code: int, stdout: str = "", stderr: str = "") -> None:
        self.code = code
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            f"The test exited with code {code}\n"
            f"stdout:\n{stdout}\n"
            f"stderr:\n{stderr}"
        )
