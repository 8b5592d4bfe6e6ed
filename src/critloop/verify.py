"""Compile and test a Candidate with an external toolchain.

VerificationRunner writes the candidate to a fresh temporary directory,
runs the compiler, and, only if compilation succeeded, runs the produced
test executable. The directory is removed before ``verify`` returns,
whatever the result.

Outcomes the convergence loop can act on (compile errors, failed
assertions) come back as VerificationOutcome values. Everything else
(a missing compiler, an executable that cannot be started, a process
killed by a signal, an unexpected test exit code) raises a VerificationError.
"""

from __future__ import annotations

import enum
import logging
import re
import subprocess
import tempfile
from dataclasses import dataclass
from pathlib import Path

from critloop.exceptions import (
    CompilerNotFoundError,
    ProcessLaunchError,
    ProcessTerminatedError,
    TestExecutionError,
)
from critloop.models import Candidate, ReviewKind, ReviewRequest

logger = logging.getLogger(__name__)

DEFAULT_DIAGNOSTIC_LIMIT = 4000

# Lines that only tell the reader how to get more output.
_HINT_LINE = re.compile(
    r"^\s*note: (run with `RUST_BACKTRACE=\S+`|Some details are omitted)"
)
_BACKTRACE_START = re.compile(r"^\s*stack backtrace:\s*$")


@dataclass(frozen=True)
class VerifierConfig:
    """How to build and run a candidate.

    Attributes:
        compile_command: Compiler argv. ``{src}``, ``{exe}``, and ``{dir}``
            are replaced with the source path, executable path, and
            working directory.
        source_name: File name the candidate is written to.
        executable_name: File name of the produced test executable.
        assertion_failure_code: Test exit status meaning "an assertion
            failed" (as opposed to a crash).
        diagnostic_limit: Maximum characters of diagnostic text kept.
        timeout: Seconds allowed per process, or None for no limit.
    """

    compile_command: tuple[str, ...] = ("rustc", "--test", "-o", "{exe}", "{src}")
    source_name: str = "code.rs"
    executable_name: str = "test"
    assertion_failure_code: int = 101
    diagnostic_limit: int = DEFAULT_DIAGNOSTIC_LIMIT
    timeout: float | None = None


class VerificationStatus(str, enum.Enum):
    PASSED = "passed"
    COMPILE_FAILED = "compile_failed"
    TEST_FAILED = "test_failed"


@dataclass(frozen=True)
class VerificationOutcome:
    """Result of one verify() call.

    Attributes:
        status: What happened.
        output: Standard output of the last process that ran.
        diagnostic: Cleaned compiler stderr or test stdout for failures,
            empty on success.
    """

    status: VerificationStatus
    output: str = ""
    diagnostic: str = ""

    @property
    def passed(self) -> bool:
        return self.status is VerificationStatus.PASSED

    def to_review_request(self) -> ReviewRequest | None:
        """Package a failure as feedback for the Repairer; None on success."""
        if self.status is VerificationStatus.COMPILE_FAILED:
            return ReviewRequest(ReviewKind.COMPILER_FIX, (self.diagnostic,))
        if self.status is VerificationStatus.TEST_FAILED:
            return ReviewRequest(ReviewKind.TEST_FIX, (self.diagnostic,))
        return None


def clean_diagnostic(text: str, limit: int = DEFAULT_DIAGNOSTIC_LIMIT) -> str:
    """Strip backtraces and hint lines, then truncate to ``limit`` characters.

    A backtrace section runs from a ``stack backtrace:`` line to the next
    blank line.
    """
    kept: list[str] = []
    in_backtrace = False
    for line in text.splitlines():
        if in_backtrace:
            if not line.strip():
                in_backtrace = False
            continue
        if _BACKTRACE_START.match(line):
            in_backtrace = True
            continue
        if _HINT_LINE.match(line):
            continue
        kept.append(line)

    cleaned = "\n".join(kept).strip()
    if len(cleaned) > limit:
        dropped = len(cleaned) - limit
        cleaned = f"{cleaned[:limit]}\n... [truncated {dropped} chars]"
    return cleaned


class VerificationRunner:
    """Compiles a candidate, then runs its tests.

    Usage::

        runner = VerificationRunner()
        outcome = runner.verify(Candidate(source))
        if not outcome.passed:
            request = outcome.to_review_request()
    """

    def __init__(self, config: VerifierConfig | None = None) -> None:
        self.config = config or VerifierConfig()

    def verify(self, candidate: Candidate) -> VerificationOutcome:
        """Compile and test ``candidate`` in a scoped temporary directory.

        Raises:
            CompilerNotFoundError: If the compiler executable does not exist.
            ProcessLaunchError: If the compiler cannot be started for another
                reason, or the test executable is missing or not runnable.
            ProcessTerminatedError: If a process is killed by a signal or
                exceeds the configured timeout.
            TestExecutionError: If the test exits with an unexpected code.
        """
        with tempfile.TemporaryDirectory(prefix="critloop-") as tmp:
            workdir = Path(tmp)
            src = workdir / self.config.source_name
            exe = workdir / self.config.executable_name
            src.write_text(candidate.source, encoding="utf-8")

            compiled = self._compile(src, exe, workdir)
            if compiled is not None:
                return compiled
            return self._test(exe, workdir)

    def _compile(self, src: Path, exe: Path, workdir: Path) -> VerificationOutcome | None:
        argv = [
            part.format(src=src, exe=exe, dir=workdir)
            for part in self.config.compile_command
        ]
        logger.info("Compiling: %s", " ".join(argv))
        result = self._run("compiler", argv, workdir)

        logger.debug("compiler stdout: %s", result.stdout)
        logger.debug("compiler stderr: %s", result.stderr)
        if result.returncode == 0:
            return None
        logger.info("Compilation failed with exit code %d", result.returncode)
        return VerificationOutcome(
            VerificationStatus.COMPILE_FAILED,
            output=result.stdout,
            diagnostic=clean_diagnostic(result.stderr, self.config.diagnostic_limit),
        )

    def _test(self, exe: Path, workdir: Path) -> VerificationOutcome:
        logger.info("Running tests: %s", exe)
        result = self._run("test", [str(exe)], workdir)

        if result.returncode == 0:
            return VerificationOutcome(VerificationStatus.PASSED, output=result.stdout)
        if result.returncode == self.config.assertion_failure_code:
            logger.info("Tests failed")
            return VerificationOutcome(
                VerificationStatus.TEST_FAILED,
                output=result.stdout,
                diagnostic=clean_diagnostic(result.stdout, self.config.diagnostic_limit),
            )
        logger.error(
            "Test exited with unexpected code %d\nstdout: %s\nstderr: %s",
            result.returncode,
            result.stdout,
            result.stderr,
        )
        raise TestExecutionError(result.returncode, result.stdout, result.stderr)

    def _run(self, stage: str, argv: list[str], workdir: Path) -> subprocess.CompletedProcess[str]:
        try:
            result = subprocess.run(
                argv,
                cwd=workdir,
                capture_output=True,
                text=True,
                errors="replace",
                timeout=self.config.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise ProcessTerminatedError(stage) from exc
        except FileNotFoundError as exc:
            if stage == "compiler":
                raise CompilerNotFoundError(argv[0]) from exc
            raise ProcessLaunchError(stage, argv[0], "no such file") from exc
        except OSError as exc:
            raise ProcessLaunchError(stage, argv[0], exc.strerror or str(exc)) from exc
        if result.returncode < 0:
            raise ProcessTerminatedError(stage, -result.returncode)
        return result
