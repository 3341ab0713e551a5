"""
Data models for review findings and their corrective action plans.
"""

from django.db import models

from core.models import TimestampedModel


class Finding(TimestampedModel):
    """An observation recorded by the review team against the host."""

    class FindingType(models.TextChoices):
        NON_CONFORMITY = "NON_CONFORMITY", "Non-conformity"
        OBSERVATION = "OBSERVATION", "Observation"
        CONCERN = "CONCERN", "Concern"
        RECOMMENDATION = "RECOMMENDATION", "Recommendation"
        GOOD_PRACTICE = "GOOD_PRACTICE", "Good Practice"

    class Severity(models.TextChoices):
        CRITICAL = "CRITICAL", "Critical"
        MAJOR = "MAJOR", "Major"
        MINOR = "MINOR", "Minor"
        OBSERVATION = "OBSERVATION", "Observation"

    review = models.ForeignKey(
        "reviews.Review", on_delete=models.CASCADE, related_name="findings"
    )
    reference_number = models.CharField(max_length=30, blank=True, default="")
    title = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    finding_type = models.CharField(
        max_length=20,
        choices=FindingType.choices,
        default=FindingType.OBSERVATION,
    )
    severity = models.CharField(
        max_length=20, choices=Severity.choices, default=Severity.MINOR
    )
    cap_required = models.BooleanField(default=False)

    def __str__(self):
        return self.title


class CorrectiveActionPlan(TimestampedModel):
    """Host organization's plan to remediate one finding."""

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        SUBMITTED = "SUBMITTED", "Submitted"
        UNDER_REVIEW = "UNDER_REVIEW", "Under Review"
        ACCEPTED = "ACCEPTED", "Accepted"
        REJECTED = "REJECTED", "Rejected"
        IN_PROGRESS = "IN_PROGRESS", "In Progress"
        COMPLETED = "COMPLETED", "Completed"
        VERIFIED = "VERIFIED", "Verified"
        CLOSED = "CLOSED", "Closed"

    finding = models.OneToOneField(
        Finding,
        on_delete=models.CASCADE,
        related_name="corrective_action_plan",
    )
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.DRAFT
    )
    root_cause = models.TextField(blank=True, default="")
    corrective_action = models.TextField(blank=True, default="")
    due_date = models.DateField(blank=True, null=True)

    class Meta:
        verbose_name = "Corrective Action Plan"

    def __str__(self):
        return f"CAP for {self.finding} [{self.status}]"
