"""Role agents -- Generator, Reviewer, and Repairer.

All three run on one engine (RoleAgent) parameterized by a RoleSpec.
"""

from critloop.agents.agent import (
    Generator,
    Repairer,
    Reviewer,
    RoleAgent,
    validate_fields,
)
from critloop.agents.payloads import CodePayload, ReviewPayload, parse_code, parse_verdict
from critloop.agents.roles import (
    SPECIALIZED_KINDS,
    ReviewerKind,
    RoleSpec,
    generator_role,
    repairer_role,
    reviewer_role,
)

__all__ = [
    "RoleAgent",
    "RoleSpec",
    "Generator",
    "Reviewer",
    "Repairer",
    "ReviewerKind",
    "SPECIALIZED_KINDS",
    "generator_role",
    "reviewer_role",
    "repairer_role",
    "validate_fields",
    "CodePayload",
    "ReviewPayload",
    "parse_code",
    "parse_verdict",
]
