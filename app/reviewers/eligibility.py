"""
Domain layer - pure, Django-unaware rules for reviewer eligibility and
lead reviewer qualification.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional


class ReviewerAssignmentError(Exception):
    """Raised when a team assignment breaks an eligibility rule."""

    def __init__(self, errors, can_override=False):
        self.errors = list(errors)
        self.can_override = can_override
        super().__init__("; ".join(self.errors))


class ReviewerPermissionError(Exception):
    """Custom exception for permission failures on team/COI actions."""

    pass


MIN_REVIEWS_FOR_LEAD = 3
MIN_CROSS_TEAM_JUSTIFICATION_LENGTH = 10
MIN_OVERRIDE_JUSTIFICATION_LENGTH = 50

# Reviewer profile statuses that make up the assignable pool
POOL_STATUSES = ("CERTIFIED", "LEAD_QUALIFIED")
LEAD_QUALIFIED = "LEAD_QUALIFIED"

# Lead qualifier error codes
NOT_LEAD_QUALIFIED = "NOT_LEAD_QUALIFIED"
INSUFFICIENT_EXPERIENCE = "INSUFFICIENT_EXPERIENCE"
HOST_ORGANIZATION_CONFLICT = "HOST_ORGANIZATION_CONFLICT"
DECLARED_CONFLICT = "DECLARED_CONFLICT"
LEAD_ALREADY_ASSIGNED = "LEAD_ALREADY_ASSIGNED"

# Only these may be waived by a Programme Coordinator
OVERRIDABLE_LEAD_ERRORS = frozenset(
    {NOT_LEAD_QUALIFIED, INSUFFICIENT_EXPERIENCE}
)

SELF_REVIEW_ERROR = "Reviewer cannot review their own organization"
CROSS_TEAM_REASON = "Different team - requires cross-team approval"


# --- 1. Eligibility ---


def is_available_on(
    is_available: bool,
    available_from: Optional[date],
    available_to: Optional[date],
    day: date,
) -> bool:
    """An unset bound imposes no restriction on its side."""
    if not is_available:
        return False
    if available_from is not None and day < available_from:
        return False
    if available_to is not None and day > available_to:
        return False
    return True


def classify_candidate(
    *,
    candidate_org_id,
    candidate_team_id,
    host_org_id,
    host_team_id,
    include_cross_team: bool = False,
) -> dict:
    """
    Applies the no-self-review and same-team rules to one candidate.
    Cross-team candidates are never marked eligible; with
    include_cross_team they are surfaced as needing approval.
    """
    is_same_org = candidate_org_id is not None and (
        candidate_org_id == host_org_id
    )
    is_same_team = host_team_id is not None and (
        candidate_team_id == host_team_id
    )

    is_eligible = True
    requires_cross_team_approval = False
    reason = None

    if is_same_org:
        is_eligible = False
        reason = "Cannot review own organization"
    elif not is_same_team:
        is_eligible = False
        requires_cross_team_approval = True
        reason = CROSS_TEAM_REASON

    return {
        "is_same_org": is_same_org,
        "is_same_team": is_same_team,
        "is_eligible": is_eligible,
        "requires_cross_team_approval": requires_cross_team_approval,
        "ineligibility_reason": reason,
        "is_listed": is_eligible
        or (include_cross_team and requires_cross_team_approval),
    }


def check_assignment(
    *,
    host_org_id,
    host_team_id,
    reviewer_org_id,
    reviewer_team_id,
    cross_team_justification: Optional[str] = None,
    approver_id=None,
) -> dict:
    """Returns {valid, is_cross_team, error} for a plain assignment."""
    if reviewer_org_id == host_org_id:
        return {
            "valid": False,
            "is_cross_team": False,
            "error": SELF_REVIEW_ERROR,
        }

    # A host without a regional team has no same-team pool
    is_cross_team = host_team_id is None or host_team_id != reviewer_team_id
    if is_cross_team:
        justification = (cross_team_justification or "").strip()
        if len(justification) < MIN_CROSS_TEAM_JUSTIFICATION_LENGTH:
            return {
                "valid": False,
                "is_cross_team": True,
                "error": "Cross-team assignment requires justification "
                f"(min {MIN_CROSS_TEAM_JUSTIFICATION_LENGTH} characters)",
            }
        if approver_id is None:
            return {
                "valid": False,
                "is_cross_team": True,
                "error": "Cross-team assignment requires Programme "
                "Coordinator approval",
            }

    return {"valid": True, "is_cross_team": is_cross_team, "error": None}


# --- 2. Lead reviewer qualification ---


@dataclass(frozen=True)
class LeadIssue:
    code: str
    message: str


def is_lead_status(status: str, is_lead_qualified: bool) -> bool:
    return bool(is_lead_qualified) or status == LEAD_QUALIFIED


def check_lead_profile(
    *, status: str, is_lead_qualified: bool, reviews_completed: int
) -> list:
    """Qualification and experience issues (both overridable)."""
    issues = []
    if not is_lead_status(status, is_lead_qualified):
        issues.append(
            LeadIssue(
                NOT_LEAD_QUALIFIED, "Reviewer must have Lead Qualified status"
            )
        )
    if reviews_completed < MIN_REVIEWS_FOR_LEAD:
        issues.append(
            LeadIssue(
                INSUFFICIENT_EXPERIENCE,
                "Lead Reviewer must have completed at least "
                f"{MIN_REVIEWS_FOR_LEAD} reviews (has {reviews_completed})",
            )
        )
    return issues


def can_override(issues) -> bool:
    """True only when every issue is in the overridable set."""
    return bool(issues) and all(
        issue.code in OVERRIDABLE_LEAD_ERRORS for issue in issues
    )


def lead_requirements(
    *,
    status: str,
    is_lead_qualified: bool,
    reviews_completed: int,
    has_lead_certification: bool,
) -> dict:
    """Progress summary of the three lead requirements."""
    has_status = is_lead_status(status, is_lead_qualified)
    has_reviews = reviews_completed >= MIN_REVIEWS_FOR_LEAD
    return {
        "is_qualified": has_status and has_reviews,
        "requirements": [
            {
                "name": "Lead Qualified Status",
                "met": has_status,
                "current": "Yes" if has_status else "No",
                "required": "Yes",
            },
            {
                "name": "Minimum Reviews Completed",
                "met": has_reviews,
                "current": f"{reviews_completed} reviews",
                "required": f"{MIN_REVIEWS_FOR_LEAD} reviews",
            },
            {
                "name": "Lead Reviewer Certification",
                "met": has_lead_certification,
                "current": "Active" if has_lead_certification else "None",
                "required": "Valid certification",
            },
        ],
    }
