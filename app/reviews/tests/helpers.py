"""
Shared object factories for the review and reviewer test suites.
"""

from itertools import count

from django.contrib.auth import get_user_model
from django.utils import timezone

from references.models import Role, RegionalTeam, Organization
from reviewers.models import ReviewerProfile
from reviews import workflows
from reviews.models import Review, ReviewTeamMember

_sequence = count(1)


def create_team(code):
    team, _ = RegionalTeam.objects.get_or_create(
        code=code, defaults={"name_en": f"Team {code}"}
    )
    return team


def create_org(code, team=None):
    return Organization.objects.create(
        name_en=f"Org {code}", organization_code=code, regional_team=team
    )


def create_user(email, role_name=None, organization=None, **extra):
    role = None
    if role_name:
        role, _ = Role.objects.get_or_create(name=role_name)
    return get_user_model().objects.create_user(
        email=email,
        password="testpass123",
        role=role,
        organization=organization,
        **extra,
    )


def create_profile(
    organization,
    status=ReviewerProfile.Status.CERTIFIED,
    email=None,
    **extra,
):
    """Reviewer profile whose user belongs to `organization`."""
    n = next(_sequence)
    user = create_user(
        email or f"reviewer{n}@example.com",
        workflows.PEER_REVIEWER_ROLE,
        organization,
        first_name="Reviewer",
        last_name=f"{n:03d}",
    )
    return ReviewerProfile.objects.create(user=user, status=status, **extra)


def create_lead_profile(organization, **extra):
    extra.setdefault("is_lead_qualified", True)
    extra.setdefault("reviews_completed", 5)
    return create_profile(
        organization, status=ReviewerProfile.Status.LEAD_QUALIFIED, **extra
    )


def create_review(host, status=workflows.REQUESTED, **extra):
    return Review.objects.create(
        reference_number=f"PR-TEST-{next(_sequence):05d}",
        host_organization=host,
        status=status,
        **extra,
    )


def add_member(
    review,
    profile,
    role=ReviewTeamMember.Role.PEER_REVIEWER,
    confirmed=False,
    **extra,
):
    if confirmed:
        extra.setdefault(
            "invitation_status", ReviewTeamMember.InvitationStatus.CONFIRMED
        )
        extra.setdefault("confirmed_at", timezone.now())
    return ReviewTeamMember.objects.create(
        review=review, reviewer_profile=profile, role=role, **extra
    )
