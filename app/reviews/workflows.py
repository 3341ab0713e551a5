"""
Domain layer - pure, Django-unaware, a data-driven state machine.
Validates review lifecycle transitions as prescribed by business rules.

The registry maps each legal (from, to) pair to the conditions it checks
and a guard over a ReviewSnapshot; who may invoke a pair is decided by the
central ROLE_PERMISSIONS table, never per entry.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from types import MappingProxyType
from typing import Callable, Optional


class ReviewPermissionError(Exception):
    """Custom exception for permission failures on reviews."""

    pass


# --- 1. Vocabulary ---

REQUESTED = "REQUESTED"
APPROVED = "APPROVED"
PLANNING = "PLANNING"
SCHEDULED = "SCHEDULED"
IN_PROGRESS = "IN_PROGRESS"
REPORT_DRAFTING = "REPORT_DRAFTING"
REPORT_REVIEW = "REPORT_REVIEW"
COMPLETED = "COMPLETED"
CANCELLED = "CANCELLED"

# Lifecycle order, used for the status flow documentation
STATUSES = (
    REQUESTED,
    APPROVED,
    PLANNING,
    SCHEDULED,
    IN_PROGRESS,
    REPORT_DRAFTING,
    REPORT_REVIEW,
    COMPLETED,
    CANCELLED,
)

STATUS_DESCRIPTIONS = MappingProxyType(
    {
        REQUESTED: "Review has been requested by host organization",
        APPROVED: "Request approved, ready for team planning",
        PLANNING: "Team assignment in progress",
        SCHEDULED: "Team assigned, dates confirmed",
        IN_PROGRESS: "On-site review underway",
        REPORT_DRAFTING: "Fieldwork complete, drafting report",
        REPORT_REVIEW: "Draft report under review",
        COMPLETED: "Review finalized and closed",
        CANCELLED: "Review cancelled",
    }
)

STATUS_CHOICES = [
    (code, code.replace("_", " ").title()) for code in STATUSES
]

TERMINAL_STATUSES = frozenset({COMPLETED, CANCELLED})

# Statuses during which the review team may still change
TEAM_EDITABLE_STATUSES = frozenset({APPROVED, PLANNING, SCHEDULED})

# Caller roles (supplied by the authorization layer)
SUPER_ADMIN = "SUPER_ADMIN"
SYSTEM_ADMIN = "SYSTEM_ADMIN"
STEERING_COMMITTEE = "STEERING_COMMITTEE"
PROGRAMME_COORDINATOR = "PROGRAMME_COORDINATOR"
LEAD_REVIEWER_ROLE = "LEAD_REVIEWER"
PEER_REVIEWER_ROLE = "PEER_REVIEWER"
HOST_FOCAL_POINT = "HOST_FOCAL_POINT"

USER_ROLES = (
    SUPER_ADMIN,
    SYSTEM_ADMIN,
    STEERING_COMMITTEE,
    PROGRAMME_COORDINATOR,
    LEAD_REVIEWER_ROLE,
    PEER_REVIEWER_ROLE,
    HOST_FOCAL_POINT,
)

# Roles that may approve exceptions (cross-team, lead overrides, COI)
COORDINATOR_ROLES = frozenset(
    {SUPER_ADMIN, SYSTEM_ADMIN, PROGRAMME_COORDINATOR}
)

# Roles that see every review
OVERSIGHT_ROLES = COORDINATOR_ROLES | {STEERING_COMMITTEE}

# Team member vocabulary
LEAD_REVIEWER = "LEAD_REVIEWER"
INACTIVE_INVITATION_STATUSES = frozenset({"DECLINED", "WITHDRAWN"})

# Findings vocabulary
NON_CONFORMITY = "NON_CONFORMITY"
BLOCKING_SEVERITIES = frozenset({"CRITICAL", "MAJOR"})
DRAFT_CAP_STATUS = "DRAFT"
FINAL_REPORT_STATUSES = frozenset({"FINAL", "PUBLISHED"})

MIN_TEAM_SIZE = 2
RECOMMENDED_TEAM_SIZE = 3
MIN_CONFIRMED_MEMBERS = 2


# --- 2. Central permission table ---

_CANCELLABLE = (APPROVED, PLANNING, SCHEDULED)

_POLICIES = (
    # decision: approve, reject, cancel, sign off
    (
        (SUPER_ADMIN, SYSTEM_ADMIN, STEERING_COMMITTEE, PROGRAMME_COORDINATOR),
        frozenset(
            {
                (REQUESTED, APPROVED),
                (REQUESTED, CANCELLED),
                (REPORT_REVIEW, COMPLETED),
            }
            | {(status, CANCELLED) for status in _CANCELLABLE}
        ),
    ),
    # planning: team building and scheduling
    (
        (SUPER_ADMIN, SYSTEM_ADMIN, PROGRAMME_COORDINATOR),
        frozenset({(APPROVED, PLANNING), (PLANNING, SCHEDULED)}),
    ),
    # fieldwork: on-site work and report drafting
    (
        (SUPER_ADMIN, SYSTEM_ADMIN, PROGRAMME_COORDINATOR, LEAD_REVIEWER_ROLE),
        frozenset(
            {
                (SCHEDULED, IN_PROGRESS),
                (IN_PROGRESS, REPORT_DRAFTING),
                (REPORT_DRAFTING, REPORT_REVIEW),
            }
        ),
    ),
)


def _build_role_permissions(policies) -> MappingProxyType:
    table = {role: set() for role in USER_ROLES}
    for roles, pairs in policies:
        for role in roles:
            table[role] |= pairs
    return MappingProxyType(
        {role: frozenset(pairs) for role, pairs in table.items()}
    )


# role -> frozenset of (from_status, to_status)
ROLE_PERMISSIONS = _build_role_permissions(_POLICIES)


def allowed_roles(from_status: str, to_status: str) -> tuple:
    """Roles permitted to invoke a pair, in USER_ROLES order."""
    return tuple(
        role
        for role in USER_ROLES
        if (from_status, to_status) in ROLE_PERMISSIONS[role]
    )


def is_role_allowed(role_name: str, from_status: str, to_status: str):
    return (from_status, to_status) in ROLE_PERMISSIONS.get(
        role_name, frozenset()
    )


# --- 3. Guard inputs and results ---


@dataclass(frozen=True)
class MemberFacts:
    role: str
    invitation_status: str
    confirmed: bool

    @property
    def is_active(self) -> bool:
        return self.invitation_status not in INACTIVE_INVITATION_STATUSES


@dataclass(frozen=True)
class FindingFacts:
    finding_type: str
    severity: str
    cap_required: bool
    cap_status: Optional[str] = None  # None: no CAP linked

    @property
    def needs_cap(self) -> bool:
        return self.finding_type == NON_CONFORMITY and self.cap_required


@dataclass(frozen=True)
class ReviewSnapshot:
    """Everything the guards read, loaded once by the service layer."""

    status: str
    planned_start_date: Optional[date] = None
    planned_end_date: Optional[date] = None
    actual_start_date: Optional[datetime] = None
    actual_end_date: Optional[datetime] = None
    members: tuple = ()
    findings: tuple = ()
    report_status: Optional[str] = None  # None: no report yet

    @property
    def active_members(self) -> list:
        return [m for m in self.members if m.is_active]


@dataclass(frozen=True)
class Condition:
    id: str
    label: str
    met: bool

    def as_dict(self) -> dict:
        return {"id": self.id, "label": self.label, "met": self.met}


@dataclass
class ValidationResult:
    errors: list = field(default_factory=list)
    warnings: list = field(default_factory=list)
    conditions: list = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors


class _Checklist:
    """Collects guard outcomes; every check runs, none short-circuits."""

    def __init__(self):
        self.errors = []
        self.warnings = []
        self.met = {}

    def require(self, condition_id: str, ok: bool, error: str):
        self.met[condition_id] = self.met.get(condition_id, True) and ok
        if not ok:
            self.errors.append(error)

    def advise(self, condition_id: str, ok: bool):
        """Record an advisory condition that never blocks."""
        self.met[condition_id] = self.met.get(condition_id, True) and ok

    def warn(self, message: str):
        self.warnings.append(message)


# --- 4. Guards ---


def _approval_guard(snapshot, checklist, metadata):
    # Approval is a manual decision; the role check is the gate
    checklist.advise("approval", True)


def _team_assignment_guard(snapshot, checklist, metadata):
    checklist.advise("team_assignment", True)


def _reason_guard(condition_id):
    def guard(snapshot, checklist, metadata):
        checklist.advise(condition_id, bool((metadata or {}).get("reason")))

    return guard


def _scheduling_guard(snapshot, checklist, metadata):
    members = snapshot.active_members
    has_lead = any(m.role == LEAD_REVIEWER for m in members)

    checklist.require(
        "lead_assigned", has_lead, "Lead Reviewer must be assigned"
    )
    checklist.require(
        "min_team_size",
        len(members) >= MIN_TEAM_SIZE,
        f"Minimum {MIN_TEAM_SIZE} team members required",
    )
    checklist.require(
        "planned_start_date",
        snapshot.planned_start_date is not None,
        "Planned start date must be set",
    )
    checklist.require(
        "planned_end_date",
        snapshot.planned_end_date is not None,
        "Planned end date must be set",
    )

    if len(members) < RECOMMENDED_TEAM_SIZE:
        checklist.warn(
            f"Recommended team size is {RECOMMENDED_TEAM_SIZE}+ reviewers"
        )
    unconfirmed = sum(1 for m in members if not m.confirmed)
    if unconfirmed:
        checklist.warn(f"{unconfirmed} team members have not confirmed")


def _start_fieldwork_guard(snapshot, checklist, metadata):
    members = snapshot.active_members

    checklist.require(
        "actual_start_date",
        snapshot.actual_start_date is not None,
        "Actual start date must be set",
    )

    lead = next((m for m in members if m.role == LEAD_REVIEWER), None)
    if lead is None:
        checklist.require(
            "lead_confirmed", False, "Lead Reviewer must be assigned"
        )
    else:
        checklist.require(
            "lead_confirmed",
            lead.confirmed,
            "Lead Reviewer must confirm participation",
        )

    confirmed = sum(1 for m in members if m.confirmed)
    checklist.require(
        "min_confirmed_members",
        confirmed >= MIN_CONFIRMED_MEMBERS,
        f"At least {MIN_CONFIRMED_MEMBERS} team members must confirm "
        "participation",
    )


def _end_fieldwork_guard(snapshot, checklist, metadata):
    checklist.advise("fieldwork_completed", True)
    checklist.require(
        "actual_end_date",
        snapshot.actual_end_date is not None,
        "Actual end date must be set",
    )
    if not snapshot.findings:
        checklist.warn("No findings have been entered yet")


def _submit_report_guard(snapshot, checklist, metadata):
    checklist.require(
        "findings_entered",
        bool(snapshot.findings),
        "At least one finding must be entered",
    )

    missing_caps = sum(
        1 for f in snapshot.findings if f.needs_cap and f.cap_status is None
    )
    if missing_caps:
        checklist.warn(f"{missing_caps} non-conformities are missing CAPs")

    checklist.advise("draft_report", snapshot.report_status is not None)
    if snapshot.report_status is None:
        checklist.warn("Draft report has not been generated")


def _complete_guard(snapshot, checklist, metadata):
    if snapshot.report_status is None:
        checklist.require(
            "report_finalized", False, "Report must be generated"
        )
    elif snapshot.report_status not in FINAL_REPORT_STATUSES:
        # Non-blocking by decision; completion with a non-final report
        # remains possible.
        checklist.advise("report_finalized", False)
        checklist.warn("Report has not been finalized")

    blocking = [
        f
        for f in snapshot.findings
        if f.needs_cap and f.severity in BLOCKING_SEVERITIES
    ]
    missing = sum(1 for f in blocking if f.cap_status is None)
    drafts = sum(1 for f in blocking if f.cap_status == DRAFT_CAP_STATUS)
    checklist.require(
        "critical_caps_submitted",
        missing == 0,
        f"{missing} critical/major findings are missing CAPs",
    )
    checklist.require(
        "critical_caps_submitted",
        drafts == 0,
        f"{drafts} CAPs are still in draft status",
    )


# --- 5. Registry ---


@dataclass(frozen=True)
class TransitionRule:
    from_status: str
    to_status: str
    conditions: tuple  # ((condition_id, label), ...)
    guard: Callable
    action: str
    name: str

    @property
    def pair(self) -> tuple:
        return (self.from_status, self.to_status)

    @property
    def allowed_roles(self) -> tuple:
        return allowed_roles(self.from_status, self.to_status)

    def evaluate(self, snapshot, metadata=None) -> ValidationResult:
        checklist = _Checklist()
        self.guard(snapshot, checklist, metadata)
        return ValidationResult(
            errors=checklist.errors,
            warnings=checklist.warnings,
            conditions=[
                Condition(cid, label, checklist.met.get(cid, True))
                for cid, label in self.conditions
            ],
        )


def _rule(from_status, to_status, conditions, guard, action, name):
    return TransitionRule(
        from_status, to_status, tuple(conditions), guard, action, name
    )


_RULES = [
    _rule(
        REQUESTED,
        APPROVED,
        [("approval", "Steering Committee or Coordinator approval")],
        _approval_guard,
        "approve",
        "Approve Review",
    ),
    _rule(
        REQUESTED,
        CANCELLED,
        [("rejection_reason", "Rejection reason provided")],
        _reason_guard("rejection_reason"),
        "reject",
        "Reject Request",
    ),
    _rule(
        APPROVED,
        PLANNING,
        [("team_assignment", "Team assignment initiated")],
        _team_assignment_guard,
        "start-planning",
        "Start Team Planning",
    ),
    _rule(
        PLANNING,
        SCHEDULED,
        [
            ("lead_assigned", "Lead Reviewer assigned"),
            ("min_team_size", f"Minimum {MIN_TEAM_SIZE} team members"),
            ("planned_start_date", "Planned start date set"),
            ("planned_end_date", "Planned end date set"),
        ],
        _scheduling_guard,
        "schedule",
        "Schedule Review",
    ),
    _rule(
        SCHEDULED,
        IN_PROGRESS,
        [
            ("actual_start_date", "Actual start date set"),
            ("lead_confirmed", "Lead Reviewer confirmed"),
            (
                "min_confirmed_members",
                f"At least {MIN_CONFIRMED_MEMBERS} confirmed team members",
            ),
        ],
        _start_fieldwork_guard,
        "start-fieldwork",
        "Start Fieldwork",
    ),
    _rule(
        IN_PROGRESS,
        REPORT_DRAFTING,
        [
            ("fieldwork_completed", "Fieldwork completed"),
            ("actual_end_date", "Actual end date set"),
        ],
        _end_fieldwork_guard,
        "complete-fieldwork",
        "Complete Fieldwork",
    ),
    _rule(
        REPORT_DRAFTING,
        REPORT_REVIEW,
        [
            ("findings_entered", "At least one finding entered"),
            ("draft_report", "Draft report available"),
        ],
        _submit_report_guard,
        "submit-report",
        "Submit Report for Review",
    ),
    _rule(
        REPORT_REVIEW,
        COMPLETED,
        [
            ("report_finalized", "Report finalized"),
            ("critical_caps_submitted", "All critical CAPs submitted"),
        ],
        _complete_guard,
        "complete",
        "Complete Review",
    ),
] + [
    _rule(
        status,
        CANCELLED,
        [("cancellation_reason", "Cancellation reason provided")],
        _reason_guard("cancellation_reason"),
        "cancel",
        "Cancel Review",
    )
    for status in _CANCELLABLE
]

# (from_status, to_status) -> TransitionRule; built once, read-only
TRANSITIONS = MappingProxyType({rule.pair: rule for rule in _RULES})


# --- 6. Queries ---


def get_valid_transitions_from(status: str) -> list:
    """Legal target statuses from `status` (no role or guard checks)."""
    return [to for (frm, to) in TRANSITIONS if frm == status]


def get_transition(from_status: str, to_status: str):
    return TRANSITIONS.get((from_status, to_status))


def check_transition(
    snapshot: ReviewSnapshot,
    target_status: str,
    role_name: str,
    metadata: Optional[dict] = None,
) -> dict:
    """
    Decides whether `role_name` may move the snapshot's review to
    `target_status` right now. Never raises; failures are data.
    """
    current = snapshot.status
    rule = get_transition(current, target_status)

    if rule is None:
        valid = get_valid_transitions_from(current)
        return _denied(
            [
                f"Invalid transition: {current} → {target_status}",
                f"Valid transitions from {current}: "
                f"{', '.join(valid) or 'none'}",
            ]
        )

    if not is_role_allowed(role_name, current, target_status):
        return _denied(
            [
                f"Your role ({role_name}) cannot perform this transition",
                f"Required roles: {', '.join(rule.allowed_roles)}",
            ]
        )

    result = rule.evaluate(snapshot, metadata)
    return {
        "allowed": result.valid,
        "errors": result.errors,
        "warnings": result.warnings,
        "conditions": [c.as_dict() for c in result.conditions],
    }


def _denied(errors: list) -> dict:
    return {
        "allowed": False,
        "errors": errors,
        "warnings": [],
        "conditions": [],
    }


def get_available_transitions(snapshot: ReviewSnapshot, role_name) -> list:
    """
    Transitions out of the snapshot's status that `role_name` may invoke,
    each with its evaluated conditions.
    """
    transitions = []
    for to_status in get_valid_transitions_from(snapshot.status):
        if not is_role_allowed(role_name, snapshot.status, to_status):
            continue
        rule = TRANSITIONS[(snapshot.status, to_status)]
        result = rule.evaluate(snapshot)
        transitions.append(
            {
                "target_status": to_status,
                "action": rule.action,
                "name": rule.name,
                "conditions": [c.as_dict() for c in result.conditions],
                "can_transition": result.valid,
                "warnings": result.warnings,
            }
        )
    return transitions


def get_status_flow() -> list:
    """Static description of the whole lifecycle graph."""
    return [
        {
            "status": status,
            "next_statuses": get_valid_transitions_from(status),
            "description": STATUS_DESCRIPTIONS[status],
        }
        for status in STATUSES
    ]
