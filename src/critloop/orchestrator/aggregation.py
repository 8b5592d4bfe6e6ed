"""Verdict aggregation.

Turns the verdicts of one Reviewing phase into at most one CODE_REVIEW
ReviewRequest.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from critloop.models import ReviewKind, ReviewRequest

if TYPE_CHECKING:
    from collections.abc import Iterable

    from critloop.models import Verdict


def dissenting(verdicts: Iterable[Verdict]) -> list[Verdict]:
    """Return the verdicts whose pass flag is False."""
    return [v for v in verdicts if not v.passed]


def aggregate_verdicts(verdicts: Iterable[Verdict]) -> ReviewRequest | None:
    """Merge the issues of every failing reviewer.

    Issues are deduplicated by exact string equality only; near-duplicate
    wording is kept. The result is a set in meaning: comments keep the
    order they were first seen, but callers must not rely on it.

    Returns:
        None if every reviewer passed, otherwise a CODE_REVIEW request.
        A passing verdict's issues are ignored.
    """
    failing = dissenting(verdicts)
    if not failing:
        return None
    comments = dict.fromkeys(issue for v in failing for issue in v.issues)
    return ReviewRequest(ReviewKind.CODE_REVIEW, tuple(comments))
