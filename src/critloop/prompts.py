"""Role instructions and user message builders.

Every role answers with a JSON object. Two schemas are in use:

- **code** -- ``{"code": "<full program with tests>"}`` for the
  Generator and the Repairer.
- **review** -- ``{"passed": <bool>, "issues": [<str>, ...]}`` for
  the Reviewers.

Sections inside a user message are separated by a line of ``------``.
"""

from __future__ import annotations

from critloop.models import Candidate, ReviewKind, ReviewRequest

SECTION_SEPARATOR = "\n\n------\n\n"

# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------

GENERATOR_SYSTEM: str = (
    "Write the requested program. Add no explanations outside the code. "
    "The code is passed directly to the compiler, so it must compile as-is: "
    "do not wrap it in backticks or markdown fences. Put any clarifying "
    "notes in code comments. Include complete unit tests that demonstrate "
    "the program solves the requested problem.\n\n"
    'Return JSON with a single field: {"code": "<the complete program>"}.'
)

# ---------------------------------------------------------------------------
# Reviewers -- one base prompt plus kind-specific criteria
# ---------------------------------------------------------------------------

REVIEW_BASE: str = (
    "You will be given a coding problem and a proposed solution, separated "
    "by a line containing '------'. Evaluate the code against the criteria "
    "below. Make no other comments.\n\n"
    "Return JSON with exactly two fields:\n"
    '1. "passed": true if the code is correct under the criteria, else false.\n'
    '2. "issues": a list of strings, one per problem found, or an empty list.\n'
)

DESIGN_CRITERIA: str = (
    "Evaluation criteria -- the DESIGN of the solution:\n"
    "1. Is this the right design to solve the problem?\n"
    "2. Does the chosen method meet the constraints of the problem?\n"
    "3. Does it use suitable algorithms and data structures?\n"
)

CORRECTNESS_CRITERIA: str = (
    "Evaluation criteria -- the CORRECTNESS of the solution:\n"
    "1. Does the code correctly implement the intended approach?\n"
    "2. Does it produce the expected output?\n"
    "3. Does the output meet the problem's constraints?\n"
    "4. Are there enough tests to demonstrate correctness?\n"
    "5. Do the tests capture cases that validate or invalidate the solution?\n"
)

SYNTAX_CRITERIA: str = (
    "Evaluation criteria -- the SYNTAX of the solution:\n"
    "1. Are there any syntax errors?\n"
    "2. Will the code and its tests compile and run?\n"
    "3. Are there language-level errors such as ownership, borrowing, or "
    "type violations?\n"
    "4. Are cleanups needed, such as unused variables or imports?\n"
)

GENERAL_CRITERIA: str = (
    "Evaluation criteria -- the solution as a whole:\n"
    "1. Is the design appropriate for the problem and its constraints?\n"
    "2. Is the code correct, and do its tests demonstrate that?\n"
    "3. Will the code and its tests compile and run without errors?\n"
)

# ---------------------------------------------------------------------------
# Repairer
# ---------------------------------------------------------------------------

REPAIRER_SYSTEM: str = (
    "You will be given a coding goal, a program that attempts to solve it, "
    "and one or more suggested corrections, each separated by a line of "
    "'------'. For each suggestion, first decide whether it is legitimate, "
    "then correct the program for the legitimate ones. Add no explanations "
    "outside the code. Keep tests that demonstrate the goal is solved.\n\n"
    'Return JSON with a single field: {"code": "<the corrected program>"}.'
)

COMPILER_FIX_PREFIX = "Fix the following compilation error:"
TEST_FIX_PREFIX = "Fix the following test error:"


def build_review_message(problem: str, candidate: Candidate) -> str:
    """User message for a reviewer: problem, then code."""
    return f"{problem}{SECTION_SEPARATOR}{candidate.source}"


def build_repair_message(problem: str, candidate: Candidate, request: ReviewRequest) -> str:
    """User message for the Repairer, framed by the request kind.

    Code-review comments are listed one per section; compiler and test
    diagnostics are prefixed with an instruction naming what failed.
    """
    if request.kind is ReviewKind.COMPILER_FIX:
        feedback = [f"{COMPILER_FIX_PREFIX}\n{c}" for c in request.comments]
    elif request.kind is ReviewKind.TEST_FIX:
        feedback = [f"{TEST_FIX_PREFIX}\n{c}" for c in request.comments]
    else:
        feedback = list(request.comments)
    return SECTION_SEPARATOR.join([problem, candidate.source, *feedback])
