"""Pydantic models for role responses.

Field validation (required keys present) happens before these models
see the data; they only convert validated objects into typed results.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ValidationError, field_validator

from critloop.llm.errors import PayloadDeserializationError
from critloop.models import Candidate, Verdict


class CodePayload(BaseModel):
    """Response of the code schema: ``{"code": "..."}``."""

    model_config = {"extra": "ignore"}

    code: str

    @field_validator("code")
    @classmethod
    def _unescape_newlines(cls, v: str) -> str:
        """Turn double-escaped ``\\n`` sequences into real newlines."""
        v = v.replace("\\n", "\n")
        if not v.strip():
            raise ValueError("code payload is empty")
        return v


class ReviewPayload(BaseModel):
    """Response of the review schema: ``{"passed": bool, "issues": [...]}``.

    A missing or null ``issues`` deserializes to an empty list and a
    missing or null ``passed`` to False. Non-string issues are rejected.
    """

    model_config = {"extra": "ignore"}

    passed: bool = False
    issues: list[str] = []

    @field_validator("passed", mode="before")
    @classmethod
    def _null_passed_is_false(cls, v: object) -> object:
        return False if v is None else v

    @field_validator("issues", mode="before")
    @classmethod
    def _null_issues_is_empty(cls, v: object) -> object:
        return [] if v is None else v


def parse_code(obj: dict[str, Any], agent_name: str) -> Candidate:
    """Deserialize a code-schema object into a Candidate.

    Raises:
        PayloadDeserializationError: If ``code`` is not a non-empty string.
    """
    try:
        payload = CodePayload.model_validate(obj)
    except ValidationError as exc:
        raise PayloadDeserializationError(
            f"{agent_name}: cannot deserialize code payload: {exc}"
        ) from exc
    return Candidate(payload.code)


def parse_verdict(obj: dict[str, Any], agent_name: str) -> Verdict:
    """Deserialize a review-schema object into a Verdict named after the agent.

    Raises:
        PayloadDeserializationError: If the fields have the wrong types.
    """
    try:
        payload = ReviewPayload.model_validate(obj)
    except ValidationError as exc:
        raise PayloadDeserializationError(
            f"{agent_name}: cannot deserialize review payload: {exc}"
        ) from exc
    return Verdict(
        reviewer_name=agent_name,
        passed=payload.passed,
        issues=tuple(payload.issues),
    )
