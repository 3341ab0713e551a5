"""
Tests for the pure review workflow registry and guards.
No database access: every guard reads a ReviewSnapshot.
"""

from datetime import date, datetime, timezone

from django.test import SimpleTestCase

from reviews import workflows as wf
from reviews.workflows import (
    FindingFacts,
    MemberFacts,
    ReviewSnapshot,
    check_transition,
)

COORDINATOR = wf.PROGRAMME_COORDINATOR
NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def member(role=wf.PEER_REVIEWER_ROLE, confirmed=False, status="PENDING"):
    if confirmed and status == "PENDING":
        status = "CONFIRMED"
    return MemberFacts(role=role, invitation_status=status, confirmed=confirmed)


def lead(confirmed=False, status="PENDING"):
    return member(wf.LEAD_REVIEWER, confirmed, status)


def finding(
    finding_type="NON_CONFORMITY",
    severity="MAJOR",
    cap_required=True,
    cap_status=None,
):
    return FindingFacts(finding_type, severity, cap_required, cap_status)


def planning_snapshot(members=(), **extra):
    extra.setdefault("planned_start_date", date(2026, 4, 1))
    extra.setdefault("planned_end_date", date(2026, 4, 5))
    return ReviewSnapshot(status=wf.PLANNING, members=tuple(members), **extra)


def conditions(result):
    return {c["id"]: c["met"] for c in result["conditions"]}


class RegistryShapeTests(SimpleTestCase):

    def test_registry_has_all_legal_pairs(self):
        expected = {
            (wf.REQUESTED, wf.APPROVED),
            (wf.REQUESTED, wf.CANCELLED),
            (wf.APPROVED, wf.PLANNING),
            (wf.PLANNING, wf.SCHEDULED),
            (wf.SCHEDULED, wf.IN_PROGRESS),
            (wf.IN_PROGRESS, wf.REPORT_DRAFTING),
            (wf.REPORT_DRAFTING, wf.REPORT_REVIEW),
            (wf.REPORT_REVIEW, wf.COMPLETED),
            (wf.APPROVED, wf.CANCELLED),
            (wf.PLANNING, wf.CANCELLED),
            (wf.SCHEDULED, wf.CANCELLED),
        }
        self.assertEqual(set(wf.TRANSITIONS), expected)

    def test_registry_is_read_only(self):
        with self.assertRaises(TypeError):
            wf.TRANSITIONS[(wf.COMPLETED, wf.REQUESTED)] = None

    def test_terminal_statuses_have_no_outgoing_transitions(self):
        for status in wf.TERMINAL_STATUSES:
            self.assertEqual(wf.get_valid_transitions_from(status), [])

    def test_valid_transitions_from_requested(self):
        self.assertEqual(
            wf.get_valid_transitions_from(wf.REQUESTED),
            [wf.APPROVED, wf.CANCELLED],
        )

    def test_valid_transitions_from_unknown_status(self):
        self.assertEqual(wf.get_valid_transitions_from("ARCHIVED"), [])

    def test_every_registered_pair_has_a_role(self):
        for pair in wf.TRANSITIONS:
            self.assertTrue(wf.allowed_roles(*pair), pair)

    def test_permission_table_only_grants_registered_pairs(self):
        for role, pairs in wf.ROLE_PERMISSIONS.items():
            self.assertTrue(pairs <= set(wf.TRANSITIONS), role)

    def test_policy_membership(self):
        self.assertTrue(
            wf.is_role_allowed(wf.STEERING_COMMITTEE, wf.REQUESTED, wf.APPROVED)
        )
        self.assertFalse(
            wf.is_role_allowed(wf.STEERING_COMMITTEE, wf.APPROVED, wf.PLANNING)
        )
        self.assertTrue(
            wf.is_role_allowed(
                wf.LEAD_REVIEWER_ROLE, wf.SCHEDULED, wf.IN_PROGRESS
            )
        )
        self.assertFalse(
            wf.is_role_allowed(
                wf.LEAD_REVIEWER_ROLE, wf.REPORT_REVIEW, wf.COMPLETED
            )
        )
        for role in (wf.PEER_REVIEWER_ROLE, wf.HOST_FOCAL_POINT):
            self.assertEqual(wf.ROLE_PERMISSIONS[role], frozenset())

    def test_unknown_role_is_never_allowed(self):
        self.assertFalse(wf.is_role_allowed("GUEST", wf.REQUESTED, wf.APPROVED))

    def test_status_flow_lists_all_statuses_in_order(self):
        flow = wf.get_status_flow()
        self.assertEqual([s["status"] for s in flow], list(wf.STATUSES))
        self.assertEqual(flow[-1]["next_statuses"], [])
        self.assertEqual(
            flow[0]["description"],
            "Review has been requested by host organization",
        )


class CheckTransitionTests(SimpleTestCase):

    def test_invalid_pair(self):
        snapshot = ReviewSnapshot(status=wf.REQUESTED)
        result = check_transition(snapshot, wf.COMPLETED, COORDINATOR)
        self.assertFalse(result["allowed"])
        self.assertEqual(
            result["errors"],
            [
                "Invalid transition: REQUESTED → COMPLETED",
                "Valid transitions from REQUESTED: APPROVED, CANCELLED",
            ],
        )

    def test_invalid_pair_from_terminal_status(self):
        snapshot = ReviewSnapshot(status=wf.COMPLETED)
        result = check_transition(snapshot, wf.CANCELLED, wf.SUPER_ADMIN)
        self.assertEqual(
            result["errors"][1], "Valid transitions from COMPLETED: none"
        )

    def test_role_not_permitted(self):
        snapshot = ReviewSnapshot(status=wf.REQUESTED)
        result = check_transition(snapshot, wf.APPROVED, wf.PEER_REVIEWER_ROLE)
        self.assertFalse(result["allowed"])
        self.assertEqual(
            result["errors"][0],
            "Your role (PEER_REVIEWER) cannot perform this transition",
        )
        self.assertEqual(
            result["errors"][1],
            "Required roles: SUPER_ADMIN, SYSTEM_ADMIN, STEERING_COMMITTEE, "
            "PROGRAMME_COORDINATOR",
        )
        self.assertEqual(result["conditions"], [])

    def test_approval_has_no_guard(self):
        snapshot = ReviewSnapshot(status=wf.REQUESTED)
        result = check_transition(snapshot, wf.APPROVED, COORDINATOR)
        self.assertTrue(result["allowed"])
        self.assertEqual(
            result["conditions"],
            [
                {
                    "id": "approval",
                    "label": "Steering Committee or Coordinator approval",
                    "met": True,
                }
            ],
        )

    def test_check_is_idempotent(self):
        snapshot = planning_snapshot([lead()])
        first = check_transition(snapshot, wf.SCHEDULED, COORDINATOR)
        second = check_transition(snapshot, wf.SCHEDULED, COORDINATOR)
        self.assertEqual(first, second)

    def test_reason_condition_is_advisory(self):
        snapshot = ReviewSnapshot(status=wf.PLANNING)
        without = check_transition(snapshot, wf.CANCELLED, COORDINATOR)
        self.assertTrue(without["allowed"])
        self.assertEqual(conditions(without), {"cancellation_reason": False})

        with_reason = check_transition(
            snapshot, wf.CANCELLED, COORDINATOR, {"reason": "Budget cut"}
        )
        self.assertEqual(conditions(with_reason), {"cancellation_reason": True})

    def test_rejection_reason_condition(self):
        snapshot = ReviewSnapshot(status=wf.REQUESTED)
        result = check_transition(
            snapshot, wf.CANCELLED, wf.STEERING_COMMITTEE, {"reason": "Dup"}
        )
        self.assertTrue(result["allowed"])
        self.assertEqual(conditions(result), {"rejection_reason": True})


class SchedulingGuardTests(SimpleTestCase):
    """PLANNING -> SCHEDULED over team size and lead presence."""

    def test_team_size_and_lead_grid(self):
        for size in (0, 1, 2, 3):
            for has_lead in (True, False):
                if has_lead and size == 0:
                    continue
                with self.subTest(size=size, has_lead=has_lead):
                    members = [member() for _ in range(size)]
                    if has_lead:
                        members[0] = lead()
                    result = check_transition(
                        planning_snapshot(members), wf.SCHEDULED, COORDINATOR
                    )

                    self.assertEqual(
                        result["allowed"], has_lead and size >= 2
                    )
                    self.assertEqual(
                        "Lead Reviewer must be assigned" in result["errors"],
                        not has_lead,
                    )
                    self.assertEqual(
                        "Minimum 2 team members required" in result["errors"],
                        size < 2,
                    )
                    self.assertEqual(
                        "Recommended team size is 3+ reviewers"
                        in result["warnings"],
                        size < 3,
                    )
                    met = conditions(result)
                    self.assertEqual(met["lead_assigned"], has_lead)
                    self.assertEqual(met["min_team_size"], size >= 2)

    def test_unconfirmed_members_warning(self):
        members = [lead(confirmed=True), member(), member()]
        result = check_transition(
            planning_snapshot(members), wf.SCHEDULED, COORDINATOR
        )
        self.assertTrue(result["allowed"])
        self.assertEqual(
            result["warnings"], ["2 team members have not confirmed"]
        )

    def test_inactive_members_are_not_counted(self):
        members = [lead(), member(status="DECLINED"), member(status="WITHDRAWN")]
        result = check_transition(
            planning_snapshot(members), wf.SCHEDULED, COORDINATOR
        )
        self.assertFalse(result["allowed"])
        self.assertIn("Minimum 2 team members required", result["errors"])

    def test_withdrawn_lead_does_not_count(self):
        members = [lead(status="WITHDRAWN"), member(), member()]
        result = check_transition(
            planning_snapshot(members), wf.SCHEDULED, COORDINATOR
        )
        self.assertEqual(result["errors"], ["Lead Reviewer must be assigned"])

    def test_planned_dates_required(self):
        snapshot = planning_snapshot(
            [lead(), member(), member()],
            planned_start_date=None,
            planned_end_date=None,
        )
        result = check_transition(snapshot, wf.SCHEDULED, COORDINATOR)
        self.assertEqual(
            result["errors"],
            [
                "Planned start date must be set",
                "Planned end date must be set",
            ],
        )
        met = conditions(result)
        self.assertFalse(met["planned_start_date"])
        self.assertFalse(met["planned_end_date"])
        self.assertTrue(met["lead_assigned"])


class FieldworkGuardTests(SimpleTestCase):

    def test_start_fieldwork_with_nothing_ready(self):
        snapshot = ReviewSnapshot(status=wf.SCHEDULED)
        result = check_transition(snapshot, wf.IN_PROGRESS, COORDINATOR)
        self.assertEqual(
            result["errors"],
            [
                "Actual start date must be set",
                "Lead Reviewer must be assigned",
                "At least 2 team members must confirm participation",
            ],
        )
        self.assertEqual(
            conditions(result),
            {
                "actual_start_date": False,
                "lead_confirmed": False,
                "min_confirmed_members": False,
            },
        )

    def test_start_fieldwork_lead_unconfirmed(self):
        snapshot = ReviewSnapshot(
            status=wf.SCHEDULED,
            actual_start_date=NOW,
            members=(lead(), member(confirmed=True), member(confirmed=True)),
        )
        result = check_transition(snapshot, wf.IN_PROGRESS, wf.LEAD_REVIEWER_ROLE)
        self.assertEqual(
            result["errors"], ["Lead Reviewer must confirm participation"]
        )

    def test_start_fieldwork_ready(self):
        snapshot = ReviewSnapshot(
            status=wf.SCHEDULED,
            actual_start_date=NOW,
            members=(lead(confirmed=True), member(confirmed=True)),
        )
        result = check_transition(snapshot, wf.IN_PROGRESS, wf.LEAD_REVIEWER_ROLE)
        self.assertTrue(result["allowed"])
        self.assertEqual(result["warnings"], [])

    def test_complete_fieldwork_requires_end_date(self):
        snapshot = ReviewSnapshot(status=wf.IN_PROGRESS)
        result = check_transition(snapshot, wf.REPORT_DRAFTING, COORDINATOR)
        self.assertEqual(result["errors"], ["Actual end date must be set"])
        self.assertEqual(
            result["warnings"], ["No findings have been entered yet"]
        )
        self.assertEqual(
            conditions(result),
            {"fieldwork_completed": True, "actual_end_date": False},
        )

    def test_complete_fieldwork_with_findings(self):
        snapshot = ReviewSnapshot(
            status=wf.IN_PROGRESS,
            actual_end_date=NOW,
            findings=(finding(),),
        )
        result = check_transition(snapshot, wf.REPORT_DRAFTING, COORDINATOR)
        self.assertTrue(result["allowed"])
        self.assertEqual(result["warnings"], [])


class ReportGuardTests(SimpleTestCase):

    def test_submit_without_findings(self):
        snapshot = ReviewSnapshot(status=wf.REPORT_DRAFTING)
        result = check_transition(snapshot, wf.REPORT_REVIEW, COORDINATOR)
        self.assertEqual(
            result["errors"], ["At least one finding must be entered"]
        )
        self.assertEqual(
            result["warnings"], ["Draft report has not been generated"]
        )

    def test_submit_counts_missing_caps(self):
        snapshot = ReviewSnapshot(
            status=wf.REPORT_DRAFTING,
            findings=(
                finding(),
                finding(severity="MINOR"),
                finding(cap_status="SUBMITTED"),
                finding(finding_type="OBSERVATION"),
                finding(cap_required=False),
            ),
            report_status="DRAFT",
        )
        result = check_transition(snapshot, wf.REPORT_REVIEW, COORDINATOR)
        self.assertTrue(result["allowed"])
        self.assertEqual(
            result["warnings"], ["2 non-conformities are missing CAPs"]
        )
        self.assertEqual(
            conditions(result), {"findings_entered": True, "draft_report": True}
        )

    def test_complete_without_report(self):
        snapshot = ReviewSnapshot(status=wf.REPORT_REVIEW)
        result = check_transition(snapshot, wf.COMPLETED, COORDINATOR)
        self.assertFalse(result["allowed"])
        self.assertEqual(result["errors"], ["Report must be generated"])

    def test_complete_with_non_final_report_is_a_warning(self):
        snapshot = ReviewSnapshot(
            status=wf.REPORT_REVIEW, report_status="UNDER_REVIEW"
        )
        result = check_transition(snapshot, wf.COMPLETED, COORDINATOR)
        self.assertTrue(result["allowed"])
        self.assertEqual(result["warnings"], ["Report has not been finalized"])
        self.assertFalse(conditions(result)["report_finalized"])

    def test_complete_blocks_on_critical_caps(self):
        snapshot = ReviewSnapshot(
            status=wf.REPORT_REVIEW,
            report_status="FINAL",
            findings=(
                finding(severity="CRITICAL"),
                finding(severity="MAJOR", cap_status="DRAFT"),
                finding(severity="MAJOR", cap_status="DRAFT"),
                finding(severity="MINOR"),
                finding(severity="MAJOR", cap_status="ACCEPTED"),
            ),
        )
        result = check_transition(snapshot, wf.COMPLETED, COORDINATOR)
        self.assertEqual(
            result["errors"],
            [
                "1 critical/major findings are missing CAPs",
                "2 CAPs are still in draft status",
            ],
        )
        self.assertEqual(
            conditions(result),
            {"report_finalized": True, "critical_caps_submitted": False},
        )

    def test_complete_ready(self):
        snapshot = ReviewSnapshot(
            status=wf.REPORT_REVIEW,
            report_status="PUBLISHED",
            findings=(finding(severity="CRITICAL", cap_status="SUBMITTED"),),
        )
        result = check_transition(snapshot, wf.COMPLETED, wf.SUPER_ADMIN)
        self.assertTrue(result["allowed"])
        self.assertEqual(result["warnings"], [])


class AvailableTransitionsTests(SimpleTestCase):

    def test_only_role_permitted_transitions_are_listed(self):
        snapshot = planning_snapshot([lead(), member()])
        coordinator = wf.get_available_transitions(snapshot, COORDINATOR)
        self.assertEqual(
            [t["target_status"] for t in coordinator],
            [wf.SCHEDULED, wf.CANCELLED],
        )
        self.assertTrue(coordinator[0]["can_transition"])
        self.assertEqual(coordinator[0]["action"], "schedule")

        steering = wf.get_available_transitions(
            snapshot, wf.STEERING_COMMITTEE
        )
        self.assertEqual([t["target_status"] for t in steering], [wf.CANCELLED])

        self.assertEqual(
            wf.get_available_transitions(snapshot, wf.HOST_FOCAL_POINT), []
        )

    def test_failing_guard_is_listed_with_conditions(self):
        snapshot = planning_snapshot([])
        transitions = wf.get_available_transitions(snapshot, COORDINATOR)
        schedule = transitions[0]
        self.assertFalse(schedule["can_transition"])
        self.assertEqual(
            {c["id"]: c["met"] for c in schedule["conditions"]},
            {
                "lead_assigned": False,
                "min_team_size": False,
                "planned_start_date": True,
                "planned_end_date": True,
            },
        )
        self.assertIn(
            "Recommended team size is 3+ reviewers", schedule["warnings"]
        )
