"""
Data models for the review domain: the review aggregate, its team and
its report. Status values come from the workflow registry.
"""

from django.db import models
from django.conf import settings
from django.db.models import Q

from core.models import TimestampedModel, OwnedModel
from reviews import workflows


class Review(TimestampedModel, OwnedModel):
    """One peer review of a host organization, tracked through a fixed
    lifecycle. Status only changes through services.execute_transition."""

    reference_number = models.CharField(max_length=30, unique=True)
    host_organization = models.ForeignKey(
        "references.Organization",
        on_delete=models.PROTECT,
        related_name="hosted_reviews",
    )
    status = models.CharField(
        max_length=20,
        choices=workflows.STATUS_CHOICES,
        default=workflows.REQUESTED,
    )

    planned_start_date = models.DateField(blank=True, null=True)
    planned_end_date = models.DateField(blank=True, null=True)
    actual_start_date = models.DateTimeField(blank=True, null=True)
    actual_end_date = models.DateTimeField(blank=True, null=True)

    # Free text; cancellation reasons are appended here
    notes = models.TextField(blank=True, default="")

    # Bumped by every committed transition (optimistic concurrency)
    version = models.PositiveIntegerField(default=0)

    def __str__(self):
        return self.reference_number

    @property
    def host_team(self):
        return self.host_organization.regional_team

    @property
    def host_team_id(self):
        return self.host_organization.regional_team_id


class ReviewTeamMember(TimestampedModel):
    """A reviewer's seat on a review team."""

    class Role(models.TextChoices):
        LEAD_REVIEWER = workflows.LEAD_REVIEWER, "Lead Reviewer"
        PEER_REVIEWER = "PEER_REVIEWER", "Peer Reviewer"
        TECHNICAL_EXPERT = "TECHNICAL_EXPERT", "Technical Expert"
        OBSERVER = "OBSERVER", "Observer"
        TRAINEE = "TRAINEE", "Trainee"

    class InvitationStatus(models.TextChoices):
        PENDING = "PENDING", "Pending"
        ACCEPTED = "ACCEPTED", "Accepted"
        CONFIRMED = "CONFIRMED", "Confirmed"
        DECLINED = "DECLINED", "Declined"
        WITHDRAWN = "WITHDRAWN", "Withdrawn"

    review = models.ForeignKey(
        Review, on_delete=models.CASCADE, related_name="team_members"
    )
    reviewer_profile = models.ForeignKey(
        "reviewers.ReviewerProfile",
        on_delete=models.PROTECT,
        related_name="team_assignments",
    )
    role = models.CharField(
        max_length=20, choices=Role.choices, default=Role.PEER_REVIEWER
    )
    invitation_status = models.CharField(
        max_length=20,
        choices=InvitationStatus.choices,
        default=InvitationStatus.PENDING,
    )
    confirmed_at = models.DateTimeField(blank=True, null=True)

    is_cross_team = models.BooleanField(default=False)
    cross_team_justification = models.TextField(blank=True, default="")
    cross_team_approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="approved_cross_team_assignments",
    )

    class Meta:
        verbose_name = "Review Team Member"
        constraints = [
            models.UniqueConstraint(
                fields=["review"],
                condition=Q(role=workflows.LEAD_REVIEWER)
                & ~Q(
                    invitation_status__in=sorted(
                        workflows.INACTIVE_INVITATION_STATUSES
                    )
                ),
                name="unique_active_lead_per_review",
            ),
            models.UniqueConstraint(
                fields=["review", "reviewer_profile"],
                condition=~Q(
                    invitation_status__in=sorted(
                        workflows.INACTIVE_INVITATION_STATUSES
                    )
                ),
                name="unique_active_member_per_review",
            ),
        ]

    def __str__(self):
        return f"{self.review} - {self.reviewer_profile} [{self.role}]"

    @property
    def is_active(self) -> bool:
        return self.invitation_status not in (
            workflows.INACTIVE_INVITATION_STATUSES
        )


class ReviewReport(TimestampedModel):
    """The review's report; its status gates completion."""

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        UNDER_REVIEW = "UNDER_REVIEW", "Under Review"
        FINAL = "FINAL", "Final"
        PUBLISHED = "PUBLISHED", "Published"

    review = models.OneToOneField(
        Review, on_delete=models.CASCADE, related_name="report"
    )
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.DRAFT
    )

    def __str__(self):
        return f"Report {self.review} [{self.status}]"
