"""
Test suite for reviews API.
"""

from datetime import date

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework.test import APIClient
from rest_framework import status

from references.models import Role
from reviews import workflows as wf
from reviews.models import Review, ReviewTeamMember
from reviews.tests.helpers import (
    add_member,
    create_lead_profile,
    create_org,
    create_profile,
    create_review,
    create_team,
    create_user,
)


# Helper functions for URLs
def review_list_url():
    return reverse("reviews:review-list")


def review_detail_url(review_id):
    return reverse("reviews:review-detail", args=[review_id])


def review_action_url(review_id, action):
    return reverse(f"reviews:review-{action}", args=[review_id])


class ReviewTestBase(TestCase):
    """Base test class with common setup for all review API tests."""

    def setUp(self):
        self.client = APIClient()

        self.team = create_team("MID")
        self.other_team = create_team("ESAF")
        self.host = create_org("HOST", self.team)
        self.peer_org = create_org("PEER", self.team)
        self.far_org = create_org("FAR", self.other_team)

        self.coordinator = create_user(
            "coordinator@example.com", wf.PROGRAMME_COORDINATOR
        )
        self.steering = create_user(
            "steering@example.com", wf.STEERING_COMMITTEE
        )
        self.focal_point = create_user(
            "focal@example.com", wf.HOST_FOCAL_POINT, self.host
        )
        self.outsider = create_user(
            "outsider@example.com", wf.HOST_FOCAL_POINT, self.far_org
        )

        self.review = create_review(
            self.host,
            planned_start_date=date(2026, 9, 7),
            planned_end_date=date(2026, 9, 11),
        )


class PublicReviewApiTests(TestCase):

    def test_auth_required(self):
        res = APIClient().get(review_list_url())
        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_schema_is_public(self):
        res = APIClient().get(reverse("api-schema"))
        self.assertEqual(res.status_code, status.HTTP_200_OK)


class ReviewCrudApiTests(ReviewTestBase):

    def test_list_visible_to_coordinator(self):
        create_review(self.far_org)
        self.client.force_authenticate(self.coordinator)
        res = self.client.get(review_list_url())
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["count"], 2)

    def test_list_segregated_for_focal_point(self):
        create_review(self.far_org)
        self.client.force_authenticate(self.focal_point)
        res = self.client.get(review_list_url())
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["id"], self.review.id)

    def test_filter_by_status_and_team(self):
        create_review(self.far_org, wf.APPROVED)
        self.client.force_authenticate(self.coordinator)

        res = self.client.get(review_list_url(), {"status": wf.APPROVED})
        self.assertEqual(res.data["count"], 1)

        res = self.client.get(review_list_url(), {"team": "MID"})
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["id"], self.review.id)

    def test_retrieve_includes_available_transitions(self):
        self.client.force_authenticate(self.coordinator)
        res = self.client.get(review_detail_url(self.review.id))
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["host_team"], "MID")
        self.assertEqual(
            [t["target_status"] for t in res.data["available_transitions"]],
            [wf.APPROVED, wf.CANCELLED],
        )

    def test_retrieve_hidden_review_is_404(self):
        self.client.force_authenticate(self.outsider)
        res = self.client.get(review_detail_url(self.review.id))
        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_focal_point_requests_review(self):
        self.client.force_authenticate(self.focal_point)
        res = self.client.post(
            review_list_url(),
            {"host_organization": self.host.id, "notes": "Annual cycle"},
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["status"], wf.REQUESTED)
        self.assertTrue(res.data["reference_number"].startswith("PR-"))

    def test_focal_point_cannot_request_for_other_org(self):
        self.client.force_authenticate(self.focal_point)
        res = self.client.post(
            review_list_url(), {"host_organization": self.far_org.id}
        )
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.assertIn("error", res.data)

    def test_create_rejects_inverted_dates(self):
        self.client.force_authenticate(self.coordinator)
        res = self.client.post(
            review_list_url(),
            {
                "host_organization": self.host.id,
                "planned_start_date": "2026-10-10",
                "planned_end_date": "2026-10-01",
            },
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_patch_does_not_change_status(self):
        self.client.force_authenticate(self.coordinator)
        res = self.client.patch(
            review_detail_url(self.review.id),
            {"status": wf.COMPLETED, "planned_end_date": "2026-09-12"},
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.review.refresh_from_db()
        self.assertEqual(self.review.status, wf.REQUESTED)
        self.assertEqual(self.review.planned_end_date, date(2026, 9, 12))

    def test_notes_are_append_only(self):
        self.review.notes = "Requested at annual meeting"
        self.review.save()
        self.client.force_authenticate(self.coordinator)

        res = self.client.patch(
            review_detail_url(self.review.id),
            {"notes": "", "note": "Dates confirmed with host"},
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.review.refresh_from_db()
        self.assertTrue(
            self.review.notes.startswith("Requested at annual meeting\n\n[")
        )
        self.assertTrue(
            self.review.notes.endswith(
                "- coordinator@example.com - NOTE]: Dates confirmed with host"
            )
        )

    def test_focal_point_cannot_patch(self):
        self.review.status = wf.IN_PROGRESS
        self.review.save()
        self.client.force_authenticate(self.focal_point)

        res = self.client.patch(
            review_detail_url(self.review.id),
            {"actual_end_date": "2026-09-11T10:00:00Z", "note": ""},
        )

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.review.refresh_from_db()
        self.assertIsNone(self.review.actual_end_date)

    def test_lead_records_fieldwork_dates_only(self):
        self.review.status = wf.IN_PROGRESS
        self.review.save()
        lead = create_lead_profile(self.peer_org)
        add_member(
            self.review, lead, ReviewTeamMember.Role.LEAD_REVIEWER, True
        )
        self.client.force_authenticate(lead.user)
        url = review_detail_url(self.review.id)

        res = self.client.patch(url, {"planned_end_date": "2026-09-30"})
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)

        res = self.client.patch(
            url, {"actual_end_date": "2026-09-11T10:00:00Z"}
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.review.refresh_from_db()
        self.assertIsNotNone(self.review.actual_end_date)

    def test_patch_terminal_review_rejected(self):
        closed = create_review(self.host, wf.CANCELLED)
        self.client.force_authenticate(self.coordinator)
        res = self.client.patch(
            review_detail_url(closed.id), {"note": "Late edit"}
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_not_allowed(self):
        self.client.force_authenticate(self.coordinator)
        res = self.client.delete(review_detail_url(self.review.id))
        self.assertEqual(res.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)
        self.assertTrue(Review.objects.filter(pk=self.review.pk).exists())


class ReviewWorkflowApiTests(ReviewTestBase):

    def test_status_flow(self):
        self.client.force_authenticate(self.focal_point)
        res = self.client.get(reverse("reviews:review-status-flow"))
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(len(res.data), 9)
        self.assertEqual(res.data[0]["status"], wf.REQUESTED)

    def test_transitions_for_focal_point_are_empty(self):
        self.client.force_authenticate(self.focal_point)
        res = self.client.get(
            review_action_url(self.review.id, "transitions")
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data, [])

    def test_can_transition_is_a_dry_run(self):
        self.client.force_authenticate(self.coordinator)
        res = self.client.post(
            review_action_url(self.review.id, "can-transition"),
            {"target_status": wf.APPROVED},
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertTrue(res.data["allowed"])
        self.review.refresh_from_db()
        self.assertEqual(self.review.status, wf.REQUESTED)

    def test_can_transition_rejects_unknown_status(self):
        self.client.force_authenticate(self.coordinator)
        res = self.client.post(
            review_action_url(self.review.id, "can-transition"),
            {"target_status": "ARCHIVED"},
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)

    def test_transition_approve(self):
        self.client.force_authenticate(self.steering)
        res = self.client.post(
            review_action_url(self.review.id, "transition"),
            {"target_status": wf.APPROVED},
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["status"], wf.APPROVED)
        self.assertEqual(res.data["previous_status"], wf.REQUESTED)
        self.assertEqual(res.data["version"], 1)

    def test_transition_by_unpermitted_role(self):
        self.client.force_authenticate(self.focal_point)
        res = self.client.post(
            review_action_url(self.review.id, "transition"),
            {"target_status": wf.APPROVED},
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(
            res.data["errors"][0],
            "Your role (HOST_FOCAL_POINT) cannot perform this transition",
        )

    def test_transition_guard_failure(self):
        self.review.status = wf.PLANNING
        self.review.save()
        self.client.force_authenticate(self.coordinator)
        res = self.client.post(
            review_action_url(self.review.id, "transition"),
            {"target_status": wf.SCHEDULED},
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("Lead Reviewer must be assigned", res.data["errors"])

    def test_cancel_with_reason(self):
        self.review.status = wf.APPROVED
        self.review.save()
        self.client.force_authenticate(self.coordinator)
        res = self.client.post(
            review_action_url(self.review.id, "transition"),
            {"target_status": wf.CANCELLED, "reason": "Host postponed"},
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.review.refresh_from_db()
        self.assertIn("Cancellation reason: Host postponed", self.review.notes)

    def test_record_start_date_then_start_fieldwork(self):
        self.review.status = wf.SCHEDULED
        self.review.save()
        lead = create_lead_profile(self.peer_org)
        lead.user.role, _ = Role.objects.get_or_create(
            name=wf.LEAD_REVIEWER_ROLE
        )
        lead.user.save()
        add_member(
            self.review, lead, ReviewTeamMember.Role.LEAD_REVIEWER, True
        )
        add_member(self.review, create_profile(self.peer_org), confirmed=True)

        self.client.force_authenticate(lead.user)
        res = self.client.post(
            review_action_url(self.review.id, "transition"),
            {"target_status": wf.IN_PROGRESS},
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["errors"], ["Actual start date must be set"])

        self.client.force_authenticate(self.coordinator)
        res = self.client.patch(
            review_detail_url(self.review.id),
            {"actual_start_date": timezone.now().isoformat()},
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)

        self.client.force_authenticate(lead.user)
        res = self.client.post(
            review_action_url(self.review.id, "transition"),
            {"target_status": wf.IN_PROGRESS},
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK, res.data)
        self.assertEqual(res.data["status"], wf.IN_PROGRESS)


class ReviewTeamApiTests(ReviewTestBase):

    def setUp(self):
        super().setUp()
        self.review.status = wf.PLANNING
        self.review.save()

    def test_eligible_reviewers(self):
        create_profile(self.host)
        same_team = create_profile(self.peer_org)
        cross_team = create_profile(self.far_org)
        self.client.force_authenticate(self.coordinator)

        url = review_action_url(self.review.id, "eligible-reviewers")
        res = self.client.get(url)
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [r["id"] for r in res.data["reviewers"]], [same_team.id]
        )
        self.assertEqual(res.data["total_eligible"], 1)
        self.assertEqual(res.data["host_team"]["code"], "MID")

        res = self.client.get(url, {"include_cross_team": "true"})
        ids = {r["id"] for r in res.data["reviewers"]}
        self.assertEqual(ids, {same_team.id, cross_team.id})
        self.assertEqual(res.data["total_eligible"], 1)

    def test_cross_team_listing_is_coordinator_only(self):
        same_team = create_profile(self.peer_org)
        create_profile(self.far_org)
        self.client.force_authenticate(self.focal_point)

        res = self.client.get(
            review_action_url(self.review.id, "eligible-reviewers"),
            {"include_cross_team": "true"},
        )

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [r["id"] for r in res.data["reviewers"]], [same_team.id]
        )

    def test_validate_assignment(self):
        self.client.force_authenticate(self.coordinator)
        res = self.client.post(
            review_action_url(self.review.id, "validate-assignment"),
            {"reviewer_profile_id": create_profile(self.host).id},
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(
            res.data["error"], "Reviewer cannot review their own organization"
        )

    def test_validate_lead(self):
        self.client.force_authenticate(self.coordinator)
        profile = create_profile(self.peer_org, reviews_completed=1)
        res = self.client.post(
            review_action_url(self.review.id, "validate-lead"),
            {"reviewer_profile_id": profile.id},
        )
        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertFalse(res.data["valid"])
        self.assertTrue(res.data["can_override"])
        self.assertEqual(
            res.data["error_codes"],
            ["NOT_LEAD_QUALIFIED", "INSUFFICIENT_EXPERIENCE"],
        )

    def test_assign_team_member(self):
        self.client.force_authenticate(self.coordinator)
        profile = create_lead_profile(self.peer_org)
        res = self.client.post(
            review_action_url(self.review.id, "team"),
            {
                "reviewer_profile_id": profile.id,
                "role": ReviewTeamMember.Role.LEAD_REVIEWER,
            },
        )
        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["role"], "LEAD_REVIEWER")
        self.assertEqual(res.data["invitation_status"], "PENDING")

    def test_assign_rejected_lists_errors(self):
        self.client.force_authenticate(self.coordinator)
        profile = create_profile(self.peer_org)
        res = self.client.post(
            review_action_url(self.review.id, "team"),
            {
                "reviewer_profile_id": profile.id,
                "role": ReviewTeamMember.Role.LEAD_REVIEWER,
            },
        )
        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(res.data["can_override"])
        self.assertEqual(len(res.data["errors"]), 2)

    def test_assign_by_focal_point_forbidden(self):
        self.client.force_authenticate(self.focal_point)
        res = self.client.post(
            review_action_url(self.review.id, "team"),
            {
                "reviewer_profile_id": create_profile(self.peer_org).id,
                "role": ReviewTeamMember.Role.PEER_REVIEWER,
            },
        )
        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
