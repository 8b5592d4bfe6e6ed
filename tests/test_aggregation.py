"""Tests for verdict aggregation.

Tests cover:
- All-pass rounds produce no request
- Failing reviewers' issues are merged and deduplicated exactly
- Passing reviewers' issues are ignored
- Near-duplicate wording is kept
"""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from critloop.models import ReviewKind, Verdict
from critloop.orchestrator import aggregate_verdicts, dissenting
from tests.strategies import verdict


def _v(passed: bool, *issues: str, name: str = "Reviewer 1") -> Verdict:
    return Verdict(name, passed, tuple(issues))


class TestAggregateVerdicts:
    """Set-union semantics of the CODE_REVIEW request."""

    def test_union_of_failing_issues(self):
        request = aggregate_verdicts([_v(False, "x", "y"), _v(False, "y", "z"), _v(True)])
        assert request is not None
        assert request.kind is ReviewKind.CODE_REVIEW
        assert set(request.comments) == {"x", "y", "z"}
        assert len(request.comments) == 3

    def test_all_pass_is_none(self):
        assert aggregate_verdicts([_v(True), _v(True)]) is None

    def test_passing_issues_ignored(self):
        request = aggregate_verdicts([_v(True, "nit"), _v(False, "bug")])
        assert request.comments == ("bug",)

    def test_near_duplicates_kept(self):
        request = aggregate_verdicts([_v(False, "Missing test"), _v(False, "missing test")])
        assert set(request.comments) == {"Missing test", "missing test"}

    def test_failing_without_issues_still_requests_fix(self):
        request = aggregate_verdicts([_v(False)])
        assert request is not None
        assert request.comments == ()

    @given(st.lists(verdict, max_size=8))
    def test_comments_are_exact_union(self, verdicts):
        request = aggregate_verdicts(verdicts)
        failing = dissenting(verdicts)
        if not failing:
            assert request is None
            return
        expected = {issue for v in failing for issue in v.issues}
        assert set(request.comments) == expected
        assert len(request.comments) == len(expected)
