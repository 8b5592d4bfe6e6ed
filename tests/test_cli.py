"""CLI tests for critloop -- run and check via Click's CliRunner.

The chat client and verifier are replaced with in-process fakes, so no
API key, network, or toolchain is needed.
"""

from __future__ import annotations

import importlib

import httpx
import pytest
import tenacity
from click.testing import CliRunner

from critloop.cli import cli
from critloop.llm import MaxRetriesExceededError, StreamingChatClient
from critloop.verify import VerificationOutcome, VerificationStatus
from tests.conftest import FakeVerifier, ScriptedChatClient, failing_review

cli_package = importlib.import_module("critloop.cli")
run_module = importlib.import_module("critloop.cli.commands.run")
check_module = importlib.import_module("critloop.cli.commands.check")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def runner():
    """Create a Click test runner."""
    return CliRunner()


@pytest.fixture
def problem_file(tmp_path):
    path = tmp_path / "problem.txt"
    path.write_text("Write a function that reverses a string, with tests.\n")
    return path


@pytest.fixture
def fake_stack(monkeypatch):
    """Patch the run command's client and verifier; returns the fakes."""
    client = ScriptedChatClient()
    verifier = FakeVerifier()
    created = {}

    def make_client(*, config=None, **kwargs):
        created["config"] = config
        return client

    monkeypatch.setattr(run_module, "StreamingChatClient", make_client)
    monkeypatch.setattr(run_module, "VerificationRunner", lambda: verifier)
    return {"client": client, "verifier": verifier, "created": created}


def _run(runner, problem_file, *args):
    return runner.invoke(
        cli, ["run", "--problem-file", str(problem_file), "--no-progress", *args]
    )


# ---------------------------------------------------------------------------
# run command tests
# ---------------------------------------------------------------------------

class TestRunCommand:
    """Exit codes follow the proposal-count contract."""

    def test_converges_exit_code_is_proposal_count(self, runner, problem_file, fake_stack):
        result = _run(runner, problem_file)
        assert result.exit_code == 1, result.output
        assert "Success after 1 proposals" in result.output
        assert "fn main() {}" in result.output

    def test_exhausted_exit_code_255(self, runner, problem_file, fake_stack):
        fake_stack["client"]._review = failing_review(["bad"])
        result = _run(runner, problem_file, "--max-proposals", "2")
        assert result.exit_code == 255
        assert "No convergence after 2 proposals" in result.output
        assert fake_stack["client"].count("repairer") == 1

    def test_agent_error_exit_code_0(self, runner, problem_file, fake_stack):
        def generate(_user):
            raise MaxRetriesExceededError(5, "completion reason length")

        fake_stack["client"]._generate = generate
        result = _run(runner, problem_file)
        assert result.exit_code == 0
        assert "MaxRetriesExceededError" in result.output

    def test_missing_api_key_exit_code_0(self, runner, problem_file, clean_env, monkeypatch):
        monkeypatch.setattr(cli_package, "load_dotenv", lambda *a, **k: None)
        result = _run(runner, problem_file)
        assert result.exit_code == 0
        assert "API key" in result.output

    def test_general_reviewer_only(self, runner, problem_file, fake_stack):
        result = _run(runner, problem_file, "--general-reviewer-only", "-n", "2")
        assert result.exit_code == 1
        assert fake_stack["client"].count("reviewer") == 2

    def test_reviewers_per_kind(self, runner, problem_file, fake_stack):
        _run(runner, problem_file, "--num-reviewers", "3")
        assert fake_stack["client"].count("reviewer") == 9

    def test_model_option(self, runner, problem_file, fake_stack):
        _run(runner, problem_file, "--model", "gpt-4o-mini")
        assert fake_stack["created"]["config"].model == "gpt-4o-mini"

    def test_history_prints_review_rounds(self, runner, problem_file, fake_stack):
        result = _run(runner, problem_file, "--history")
        assert "Review round 1" in result.output
        assert "Proposal #1 from generator" in result.output

    def test_verification_failure_then_success(self, runner, problem_file, fake_stack):
        fake_stack["verifier"]._outcomes.append(
            VerificationOutcome(VerificationStatus.TEST_FAILED, diagnostic="assertion failed")
        )
        result = _run(runner, problem_file)
        assert result.exit_code == 2

    def test_unexpected_error_exit_code_0(self, runner, problem_file, fake_stack):
        def generate(_user):
            raise RuntimeError("boom")

        fake_stack["client"]._generate = generate
        result = _run(runner, problem_file)
        assert result.exit_code == 0
        assert "RuntimeError: boom" in result.output

    def test_http_error_status_exit_code_0(self, runner, problem_file, monkeypatch):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(400, json={"error": "unsupported parameter"})

        def make_client(*, config=None, **kwargs):
            return StreamingChatClient(
                api_key="test-key",
                base_url="http://test-api",
                config=config,
                transport=httpx.MockTransport(handler),
                retry_wait=tenacity.wait_none(),
            )

        monkeypatch.setattr(run_module, "StreamingChatClient", make_client)
        monkeypatch.setattr(run_module, "VerificationRunner", FakeVerifier)
        result = _run(runner, problem_file)
        assert result.exit_code == 0
        assert "LLMStatusError" in result.output
        assert len(requests) == 1

    def test_max_proposals_out_of_range(self, runner, problem_file, fake_stack):
        result = _run(runner, problem_file, "--max-proposals", "255")
        assert result.exit_code == 0
        assert "255" in result.output

    def test_empty_problem_file(self, runner, tmp_path, fake_stack):
        empty = tmp_path / "empty.txt"
        empty.write_text("  \n")
        result = _run(runner, empty)
        assert result.exit_code == 0
        assert "empty" in result.output

    def test_missing_problem_file(self, runner, tmp_path):
        result = runner.invoke(cli, ["run", "--problem-file", str(tmp_path / "nope.txt")])
        assert result.exit_code == 0
        assert "nope.txt" in result.output

    def test_problem_file_option_required(self, runner):
        result = runner.invoke(cli, ["run"])
        assert result.exit_code == 0
        assert "--problem-file" in result.output

    def test_unknown_option_exit_code_0(self, runner, problem_file, fake_stack):
        result = _run(runner, problem_file, "--bogus")
        assert result.exit_code == 0
        assert fake_stack["client"].count("generator") == 0

    def test_undecodable_problem_file(self, runner, tmp_path, fake_stack):
        binary = tmp_path / "problem.bin"
        binary.write_bytes(b"\xff\xfe\x00bad")
        result = _run(runner, binary)
        assert result.exit_code == 0
        assert "Cannot read problem file" in result.output

    def test_with_progress_reporter(self, runner, problem_file, fake_stack):
        result = runner.invoke(cli, ["run", "--problem-file", str(problem_file)])
        assert result.exit_code == 1


# ---------------------------------------------------------------------------
# check command tests
# ---------------------------------------------------------------------------

class TestCheckCommand:
    """Standalone verification of a source file."""

    @pytest.fixture
    def source(self, tmp_path):
        path = tmp_path / "code.rs"
        path.write_text("fn main() {}\n")
        return path

    def _patch(self, monkeypatch, verifier):
        monkeypatch.setattr(check_module, "VerificationRunner", lambda config: verifier)

    def test_passes(self, runner, source, monkeypatch):
        self._patch(monkeypatch, FakeVerifier())
        result = runner.invoke(cli, ["check", str(source)])
        assert result.exit_code == 0
        assert "all tests passed" in result.output

    def test_compile_failure(self, runner, source, monkeypatch):
        outcome = VerificationOutcome(VerificationStatus.COMPILE_FAILED, diagnostic="error: expected `;`")
        self._patch(monkeypatch, FakeVerifier(outcome))
        result = runner.invoke(cli, ["check", str(source)])
        assert result.exit_code == 1
        assert "Compilation failed" in result.output
        assert "expected `;`" in result.output

    def test_fatal_error(self, runner, source, monkeypatch):
        from critloop.exceptions import CompilerNotFoundError

        class _Missing:
            def verify(self, candidate):
                raise CompilerNotFoundError("rustc")

        self._patch(monkeypatch, _Missing())
        result = runner.invoke(cli, ["check", str(source)])
        assert result.exit_code == 1
        assert "Compiler not found: rustc" in result.output
