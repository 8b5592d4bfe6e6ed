"""Tests for the critloop error hierarchy.

Tests cover:
- Inheritance: every error is a CritloopError; schema and transport families
- Error attributes and messages
"""

from __future__ import annotations

import pytest

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
    JsonParseError,
    LLMAuthError,
    LLMClientError,
    LLMConfigError,
    LLMRateLimitError,
    LLMResponseError,
    LLMStatusError,
    MaxRetriesExceededError,
    MissingFieldsError,
    NotJsonObjectError,
    PayloadDeserializationError,
    SchemaError,
    UnexpectedJsonStructureError,
)


class TestHierarchy:
    """Verify the error hierarchy."""

    @pytest.mark.parametrize(
        "cls",
        [LLMConfigError, LLMAuthError, LLMRateLimitError, LLMResponseError,
         LLMStatusError, MaxRetriesExceededError, SchemaError],
    )
    def test_llm_errors(self, cls):
        assert issubclass(cls, LLMClientError)
        assert issubclass(cls, CritloopError)

    @pytest.mark.parametrize(
        "cls",
        [JsonParseError, UnexpectedJsonStructureError, NotJsonObjectError,
         MissingFieldsError, PayloadDeserializationError],
    )
    def test_schema_errors(self, cls):
        assert issubclass(cls, SchemaError)

    @pytest.mark.parametrize(
        "cls",
        [CompilerNotFoundError, ProcessLaunchError, ProcessTerminatedError, TestExecutionError],
    )
    def test_verification_errors(self, cls):
        assert issubclass(cls, VerificationError)
        assert issubclass(cls, CritloopError)

    def test_max_proposals_is_orchestrator_error(self):
        assert issubclass(MaxProposalsExceededError, OrchestratorError)


class TestAttributes:
    """Error attributes and messages."""

    def test_rate_limit_retry_after(self):
        err = LLMRateLimitError("slow down", retry_after=2.0)
        assert err.retry_after == 2.0
        assert "retry after 2.0s" in str(err)

    def test_max_retries_message(self):
        err = MaxRetriesExceededError(5, "completion reason length")
        assert err.retries == 5
        assert str(err) == "Too many retries: 5 (last: completion reason length)"

    def test_missing_fields_sorted(self):
        assert MissingFieldsError(["passed", "issues"]).fields == ["issues", "passed"]

    def test_json_parse_error_preview(self):
        err = JsonParseError("Expecting value", "x" * 300)
        assert err.text == "x" * 300
        assert "..." in str(err)

    def test_process_terminated(self):
        err = ProcessTerminatedError("test", 9)
        assert err.signal_number == 9
        assert "signal 9" in str(err)
        assert "signal" in str(ProcessTerminatedError("compiler"))

    def test_status_error(self):
        err = LLMStatusError(400, '{"error": "bad"}')
        assert err.status_code == 400
        assert "HTTP 400" in str(err)
        assert "bad" in str(err)

    def test_process_launch_error(self):
        err = ProcessLaunchError("test", "/tmp/critloop-x/test", "Permission denied")
        assert err.stage == "test"
        assert err.path == "/tmp/critloop-x/test"
        assert str(err) == "Could not start the test process /tmp/critloop-x/test: Permission denied"

    def test_test_execution_error(self):
        err = TestExecutionError(3, "out", "err")
        assert err.code == 3
        assert "code 3" in str(err)

    def test_max_proposals(self):
        err = MaxProposalsExceededError(20)
        assert err.proposals == 20
        assert "20 proposals" in str(err)
