"""
Data models for the reviewers app: reviewer profiles, certifications,
declared conflicts of interest and their per-review overrides.
"""

from django.db import models
from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from core.models import TimestampedModel


class ReviewerProfile(TimestampedModel):
    """Reviewer pool entry; qualification and availability of one user."""

    class Status(models.TextChoices):
        NOMINATED = "NOMINATED", "Nominated"
        UNDER_REVIEW = "UNDER_REVIEW", "Under Review"
        CERTIFIED = "CERTIFIED", "Certified"
        LEAD_QUALIFIED = "LEAD_QUALIFIED", "Lead Qualified"
        INACTIVE = "INACTIVE", "Inactive"
        SUSPENDED = "SUSPENDED", "Suspended"

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="reviewer_profile",
    )
    # Falls back to user.organization when unset
    home_organization = models.ForeignKey(
        "references.Organization",
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="home_reviewers",
    )
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.NOMINATED
    )
    is_lead_qualified = models.BooleanField(default=False)
    reviews_completed = models.PositiveIntegerField(default=0)
    reviews_as_lead = models.PositiveIntegerField(default=0)
    is_available = models.BooleanField(default=True)
    available_from = models.DateField(blank=True, null=True)
    available_to = models.DateField(blank=True, null=True)
    expertise_areas = models.JSONField(default=list, blank=True)

    class Meta:
        verbose_name = "Reviewer Profile"

    def __str__(self):
        return self.user.full_name

    @property
    def effective_organization_id(self):
        if self.home_organization_id:
            return self.home_organization_id
        return self.user.organization_id

    @property
    def effective_organization(self):
        return self.home_organization or self.user.organization


class ReviewerCertification(models.Model):
    """Training certification held by a reviewer."""

    class CertificationType(models.TextChoices):
        PEER_REVIEWER = "PEER_REVIEWER", "Peer Reviewer"
        LEAD_REVIEWER = "LEAD_REVIEWER", "Lead Reviewer"

    reviewer_profile = models.ForeignKey(
        ReviewerProfile,
        on_delete=models.CASCADE,
        related_name="certifications",
    )
    certification_type = models.CharField(
        max_length=20, choices=CertificationType.choices
    )
    issue_date = models.DateField(default=timezone.localdate)
    expiry_date = models.DateField(blank=True, null=True)

    def __str__(self):
        return f"{self.reviewer_profile} [{self.certification_type}]"


class ReviewerCOI(TimestampedModel):
    """Declared (or detected) conflict of interest between a reviewer and
    an organization. Active while is_active and end_date not reached."""

    class COIType(models.TextChoices):
        HOME_ORGANIZATION = "HOME_ORGANIZATION", "Home Organization"
        FAMILY_RELATIONSHIP = "FAMILY_RELATIONSHIP", "Family Relationship"
        FORMER_EMPLOYEE = "FORMER_EMPLOYEE", "Former Employee"
        BUSINESS_INTEREST = "BUSINESS_INTEREST", "Business Interest"
        RECENT_REVIEW = "RECENT_REVIEW", "Recent Review"
        OTHER = "OTHER", "Other Conflict"

    class Severity(models.TextChoices):
        HARD_BLOCK = "HARD_BLOCK", "Hard Block"
        SOFT_WARNING = "SOFT_WARNING", "Soft Warning"

    reviewer_profile = models.ForeignKey(
        ReviewerProfile, on_delete=models.CASCADE, related_name="conflicts"
    )
    organization = models.ForeignKey(
        "references.Organization",
        on_delete=models.CASCADE,
        related_name="reviewer_conflicts",
    )
    coi_type = models.CharField(
        max_length=30, choices=COIType.choices, default=COIType.OTHER
    )
    severity = models.CharField(
        max_length=20, choices=Severity.choices, default=Severity.HARD_BLOCK
    )
    reason = models.TextField(blank=True, default="")
    is_active = models.BooleanField(default=True)
    start_date = models.DateTimeField(default=timezone.now)
    end_date = models.DateTimeField(blank=True, null=True)

    class Meta:
        verbose_name = "Reviewer Conflict of Interest"
        verbose_name_plural = "Reviewer Conflicts of Interest"

    def __str__(self):
        return (
            f"{self.reviewer_profile} / {self.organization} [{self.coi_type}]"
        )

    @staticmethod
    def active_filter(now=None) -> Q:
        """Q for conflicts in force at `now`."""
        now = now or timezone.now()
        return Q(is_active=True) & (
            Q(end_date__isnull=True) | Q(end_date__gt=now)
        )


class COIOverride(models.Model):
    """Coordinator-approved waiver of a declared conflict, scoped to one
    (reviewer, organization, review) triple."""

    reviewer_profile = models.ForeignKey(
        ReviewerProfile, on_delete=models.CASCADE, related_name="overrides"
    )
    organization = models.ForeignKey(
        "references.Organization",
        on_delete=models.CASCADE,
        related_name="coi_overrides",
    )
    review = models.ForeignKey(
        "reviews.Review",
        on_delete=models.CASCADE,
        related_name="coi_overrides",
    )
    justification = models.TextField()
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="approved_coi_overrides",
    )
    approved_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField(blank=True, null=True)
    is_revoked = models.BooleanField(default=False)
    revoked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="revoked_coi_overrides",
    )
    revoked_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        verbose_name = "COI Override"

    def __str__(self):
        return f"Override {self.reviewer_profile} / review {self.review_id}"

    @staticmethod
    def valid_filter(now=None) -> Q:
        """Q for overrides neither revoked nor expired at `now`."""
        now = now or timezone.now()
        return Q(is_revoked=False) & (
            Q(expires_at__isnull=True) | Q(expires_at__gt=now)
        )
