"""
Reference/central taxonomy tables shared by the review apps.
Prevents circular dependencies.
"""

from django.db import models


class Role(models.Model):
    """Programme role of a user; name is one of the UserRole codes
    (PROGRAMME_COORDINATOR, LEAD_REVIEWER, ...)."""

    name = models.CharField(max_length=50, unique=True)
    description = models.TextField(blank=True, null=True)

    def __str__(self):
        return self.name


class RegionalTeam(models.Model):
    """Regional team grouping participating organizations; reviewers are
    normally drawn from the host organization's own team."""

    code = models.CharField(max_length=20, unique=True)
    name_en = models.CharField(max_length=255)

    class Meta:
        verbose_name = "Regional Team"
        verbose_name_plural = "Regional Teams"

    def __str__(self):
        return f"{self.code} - {self.name_en}"


class Organization(models.Model):
    """Participating organization (host of reviews, employer of
    reviewers); optionally a member of one regional team."""

    name_en = models.CharField(max_length=255)
    organization_code = models.CharField(max_length=20, unique=True)
    regional_team = models.ForeignKey(
        RegionalTeam,
        on_delete=models.SET_NULL,
        blank=True,
        null=True,
        related_name="organizations",
    )

    def __str__(self):
        return self.name_en
