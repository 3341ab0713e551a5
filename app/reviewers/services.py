"""
Application layer - Django-aware orchestrator for reviewer eligibility,
lead reviewer qualification and review team assignment.
"""

import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from reviews import workflows
from reviews.models import Review, ReviewTeamMember
from .models import (
    ReviewerProfile,
    ReviewerCertification,
    ReviewerCOI,
    COIOverride,
)
from .eligibility import (
    ReviewerAssignmentError,
    ReviewerPermissionError,
    LeadIssue,
    POOL_STATUSES,
    MIN_OVERRIDE_JUSTIFICATION_LENGTH,
    HOST_ORGANIZATION_CONFLICT,
    DECLARED_CONFLICT,
    LEAD_ALREADY_ASSIGNED,
    classify_candidate,
    check_assignment,
    check_lead_profile,
    can_override,
    lead_requirements,
)

logger = logging.getLogger(__name__)

User = get_user_model()

REVIEW_NOT_FOUND = "Review not found"
PROFILE_NOT_FOUND = "Reviewer profile not found"
LEAD_TAKEN = "Review already has a Lead Reviewer assigned"
CROSS_TEAM_APPROVER_ROLE = (
    "Cross-team assignment must be approved by a Programme Coordinator"
)


# --- HELPER FUNCTIONS ---


def _get_review(review_id):
    return (
        Review.objects.select_related(
            "host_organization", "host_organization__regional_team"
        )
        .filter(pk=review_id)
        .first()
    )


def _profiles():
    return ReviewerProfile.objects.select_related(
        "user",
        "user__organization",
        "user__organization__regional_team",
        "home_organization",
        "home_organization__regional_team",
    )


def _reviewer_team_id(profile):
    organization = profile.effective_organization
    return organization.regional_team_id if organization else None


def _profile_summary(profile) -> dict:
    return {
        "id": profile.id,
        "full_name": profile.user.full_name,
        "is_lead_qualified": profile.is_lead_qualified,
        "reviews_completed": profile.reviews_completed,
        "reviews_as_lead": profile.reviews_as_lead,
        "status": profile.status,
    }


def _is_coordinator(user) -> bool:
    return bool(user) and user.role_name in workflows.COORDINATOR_ROLES


# --- ELIGIBILITY ---


def get_eligible_reviewers(*, review_id, include_cross_team=False) -> dict:
    """
    Reviewers that may be put on the review team. Same-organization
    reviewers are never listed; cross-team reviewers only when
    include_cross_team is requested, flagged as needing approval.
    """
    review = _get_review(review_id)
    if review is None:
        return {
            "reviewers": [],
            "host_team": None,
            "total_eligible": 0,
            "errors": [REVIEW_NOT_FOUND],
        }

    host_team = review.host_team
    today = timezone.localdate()

    candidates = (
        _profiles()
        .filter(status__in=POOL_STATUSES, is_available=True)
        .filter(Q(available_from__isnull=True) | Q(available_from__lte=today))
        .filter(Q(available_to__isnull=True) | Q(available_to__gte=today))
        .order_by("user__last_name", "user__first_name", "id")
    )

    reviewers = []
    for profile in candidates:
        organization = profile.effective_organization
        flags = classify_candidate(
            candidate_org_id=profile.effective_organization_id,
            candidate_team_id=_reviewer_team_id(profile),
            host_org_id=review.host_organization_id,
            host_team_id=review.host_team_id,
            include_cross_team=include_cross_team,
        )
        if not flags.pop("is_listed"):
            continue

        reviewers.append(
            {
                "id": profile.id,
                "user_id": profile.user_id,
                "full_name": profile.user.full_name,
                "organization": {
                    "id": organization.id if organization else None,
                    "code": (
                        organization.organization_code if organization else ""
                    ),
                    "name_en": organization.name_en if organization else "",
                    "regional_team_id": (
                        organization.regional_team_id if organization else None
                    ),
                },
                "status": profile.status,
                "expertise_areas": profile.expertise_areas,
                "is_available": profile.is_available,
                **flags,
            }
        )

    return {
        "reviewers": reviewers,
        "host_team": (
            {
                "id": host_team.id,
                "code": host_team.code,
                "name_en": host_team.name_en,
            }
            if host_team
            else None
        ),
        "total_eligible": sum(1 for r in reviewers if r["is_eligible"]),
        "errors": [],
    }


def validate_reviewer_assignment(
    *,
    review_id,
    reviewer_profile_id,
    cross_team_justification=None,
    approver_id=None,
) -> dict:
    """Checks the no-self-review and cross-team rules for one reviewer."""
    review = _get_review(review_id)
    if review is None:
        return {
            "valid": False,
            "is_cross_team": False,
            "error": REVIEW_NOT_FOUND,
        }

    profile = _profiles().filter(pk=reviewer_profile_id).first()
    if profile is None:
        return {
            "valid": False,
            "is_cross_team": False,
            "error": PROFILE_NOT_FOUND,
        }

    return check_assignment(
        host_org_id=review.host_organization_id,
        host_team_id=review.host_team_id,
        reviewer_org_id=profile.effective_organization_id,
        reviewer_team_id=_reviewer_team_id(profile),
        cross_team_justification=cross_team_justification,
        approver_id=approver_id,
    )


# --- LEAD REVIEWER ---


def validate_lead_reviewer_assignment(
    *,
    reviewer_profile_id,
    review_id,
    skip_existing_lead_check=False,
    replacing_member_id=None,
) -> dict:
    """
    Evaluates every lead reviewer rule jointly so the caller sees all
    failures at once. Only qualification and experience failures leave
    can_override set; conflicts and an occupied lead seat never do.
    """
    profile = _profiles().filter(pk=reviewer_profile_id).first()
    if profile is None:
        return {
            "valid": False,
            "errors": [PROFILE_NOT_FOUND],
            "error_codes": [],
            "warnings": [],
            "can_override": False,
            "profile": None,
        }

    review = _get_review(review_id)
    if review is None:
        return {
            "valid": False,
            "errors": [REVIEW_NOT_FOUND],
            "error_codes": [],
            "warnings": [],
            "can_override": False,
            "profile": _profile_summary(profile),
        }

    host = review.host_organization
    now = timezone.now()
    warnings = []

    issues = check_lead_profile(
        status=profile.status,
        is_lead_qualified=profile.is_lead_qualified,
        reviews_completed=profile.reviews_completed,
    )

    if profile.effective_organization_id == host.pk:
        issues.append(
            LeadIssue(
                HOST_ORGANIZATION_CONFLICT,
                "Lead Reviewer cannot be from host organization "
                f"({host.name_en})",
            )
        )

    has_declared_conflict = ReviewerCOI.objects.filter(
        ReviewerCOI.active_filter(now),
        reviewer_profile=profile,
        organization=host,
    ).exists()
    if has_declared_conflict:
        has_override = COIOverride.objects.filter(
            COIOverride.valid_filter(now),
            reviewer_profile=profile,
            organization=host,
            review=review,
        ).exists()
        if has_override:
            warnings.append(
                "COI override has been approved for this assignment"
            )
        else:
            issues.append(
                LeadIssue(
                    DECLARED_CONFLICT,
                    "Reviewer has a declared conflict of interest with "
                    f"{host.name_en}",
                )
            )

    if not skip_existing_lead_check:
        other_leads = (
            ReviewTeamMember.objects.filter(
                review=review, role=workflows.LEAD_REVIEWER
            )
            .exclude(
                invitation_status__in=workflows.INACTIVE_INVITATION_STATUSES
            )
            .exclude(reviewer_profile=profile)
        )
        if replacing_member_id:
            other_leads = other_leads.exclude(pk=replacing_member_id)
        if other_leads.exists():
            issues.append(LeadIssue(LEAD_ALREADY_ASSIGNED, LEAD_TAKEN))

    return {
        "valid": not issues,
        "errors": [issue.message for issue in issues],
        "error_codes": [issue.code for issue in issues],
        "warnings": warnings,
        "can_override": can_override(issues),
        "profile": _profile_summary(profile),
    }


def get_lead_qualification_status(*, reviewer_profile_id) -> dict:
    """Read-only progress summary of the lead reviewer requirements."""
    profile = ReviewerProfile.objects.filter(pk=reviewer_profile_id).first()
    if profile is None:
        return {"is_qualified": False, "requirements": []}

    today = timezone.localdate()
    has_certification = (
        ReviewerCertification.objects.filter(
            reviewer_profile=profile,
            certification_type=(
                ReviewerCertification.CertificationType.LEAD_REVIEWER
            ),
        )
        .filter(Q(expiry_date__isnull=True) | Q(expiry_date__gt=today))
        .exists()
    )

    return lead_requirements(
        status=profile.status,
        is_lead_qualified=profile.is_lead_qualified,
        reviews_completed=profile.reviews_completed,
        has_lead_certification=has_certification,
    )


# --- TEAM ASSIGNMENT ---


def assign_team_member(
    *,
    review_id,
    reviewer_profile_id,
    role,
    assigned_by,
    cross_team_justification=None,
    approver_id=None,
    replacing_member_id=None,
    override_lead_rules=False,
) -> ReviewTeamMember:
    """
    Puts a reviewer on the review team. The review row stays locked from
    validation to insert, so two concurrent lead assignments cannot both
    pass the uniqueness check.
    """
    if not _is_coordinator(assigned_by):
        raise ReviewerPermissionError(
            "Only Programme Coordinators can assign review team members."
        )
    if approver_id is None:
        # The assigning coordinator approves cross-team seats by default
        approver_id = assigned_by.pk

    with transaction.atomic():
        review = (
            Review.objects.select_for_update()
            .filter(pk=review_id)
            .first()
        )
        if review is None:
            raise ReviewerAssignmentError([REVIEW_NOT_FOUND])
        if review.status not in workflows.TEAM_EDITABLE_STATUSES:
            raise ReviewerAssignmentError(
                [f"Team cannot be changed while review is {review.status}"]
            )

        check = validate_reviewer_assignment(
            review_id=review.pk,
            reviewer_profile_id=reviewer_profile_id,
            cross_team_justification=cross_team_justification,
            approver_id=approver_id,
        )
        if not check["valid"]:
            raise ReviewerAssignmentError([check["error"]])

        if check["is_cross_team"]:
            approver = (
                User.objects.select_related("role")
                .filter(pk=approver_id)
                .first()
            )
            if approver is None:
                raise ReviewerAssignmentError(["Approver not found"])
            if not _is_coordinator(approver):
                raise ReviewerAssignmentError([CROSS_TEAM_APPROVER_ROLE])

        if role == workflows.LEAD_REVIEWER:
            lead = validate_lead_reviewer_assignment(
                reviewer_profile_id=reviewer_profile_id,
                review_id=review.pk,
                replacing_member_id=replacing_member_id,
            )
            if not lead["valid"]:
                if not (override_lead_rules and lead["can_override"]):
                    raise ReviewerAssignmentError(
                        lead["errors"], can_override=lead["can_override"]
                    )
                logger.warning(
                    "Lead reviewer requirements overridden for profile %s "
                    "on review %s by user %s: %s",
                    reviewer_profile_id,
                    review.pk,
                    assigned_by.pk,
                    "; ".join(lead["errors"]),
                )

        if replacing_member_id:
            replaced = ReviewTeamMember.objects.filter(
                pk=replacing_member_id, review=review
            ).first()
            if replaced is None:
                raise ReviewerAssignmentError(
                    ["Team member to replace not found on this review"]
                )
            replaced.invitation_status = (
                ReviewTeamMember.InvitationStatus.WITHDRAWN
            )
            replaced.save(update_fields=["invitation_status", "updated_at"])

        existing = (
            ReviewTeamMember.objects.filter(
                review=review, reviewer_profile_id=reviewer_profile_id
            )
            .exclude(
                invitation_status__in=workflows.INACTIVE_INVITATION_STATUSES
            )
            .first()
        )
        if existing is not None and existing.role == role:
            raise ReviewerAssignmentError(
                ["Reviewer is already on this review team"]
            )

        try:
            with transaction.atomic():
                if existing is not None:
                    # Role change of a current member (e.g. promotion)
                    existing.role = role
                    existing.save(update_fields=["role", "updated_at"])
                    member = existing
                else:
                    member = ReviewTeamMember.objects.create(
                        review=review,
                        reviewer_profile_id=reviewer_profile_id,
                        role=role,
                        is_cross_team=check["is_cross_team"],
                        cross_team_justification=(
                            (cross_team_justification or "").strip()
                            if check["is_cross_team"]
                            else ""
                        ),
                        cross_team_approved_by_id=(
                            approver_id if check["is_cross_team"] else None
                        ),
                    )
        except IntegrityError:
            raise ReviewerAssignmentError(
                [
                    LEAD_TAKEN
                    if role == workflows.LEAD_REVIEWER
                    else "Reviewer is already on this review team"
                ]
            )

    logger.info(
        "Reviewer profile %s assigned to review %s as %s by user %s",
        reviewer_profile_id,
        review.reference_number,
        role,
        getattr(assigned_by, "pk", None),
    )
    return member


@transaction.atomic
def confirm_team_member(*, member: ReviewTeamMember, user):
    """The invited reviewer confirms participation."""
    if member.reviewer_profile.user_id != user.pk:
        raise ReviewerPermissionError(
            "Only the invited reviewer can confirm participation."
        )
    if not member.is_active:
        raise ReviewerAssignmentError(
            ["A declined or withdrawn invitation cannot be confirmed."]
        )

    # Serializes with transitions that count confirmed members
    review = Review.objects.select_for_update().get(pk=member.review_id)
    if review.status not in workflows.TEAM_EDITABLE_STATUSES:
        raise ReviewerAssignmentError(
            [f"Team cannot be changed while review is {review.status}"]
        )

    member.invitation_status = ReviewTeamMember.InvitationStatus.CONFIRMED
    if member.confirmed_at is None:
        member.confirmed_at = timezone.now()
    member.save(
        update_fields=["invitation_status", "confirmed_at", "updated_at"]
    )
    return member


@transaction.atomic
def withdraw_team_member(*, member: ReviewTeamMember, user, reason: str):
    """
    Removes a member from the active team: the invitee declines, a
    coordinator withdraws. The reason is appended to the review notes.
    """
    is_invitee = member.reviewer_profile.user_id == user.pk
    if not (is_invitee or _is_coordinator(user)):
        raise ReviewerPermissionError(
            "Only the invited reviewer or a Programme Coordinator can "
            "remove a team member."
        )
    if not member.is_active:
        raise ReviewerAssignmentError(["Team member is already inactive."])

    review = Review.objects.select_for_update().get(pk=member.review_id)
    if review.status not in workflows.TEAM_EDITABLE_STATUSES:
        raise ReviewerAssignmentError(
            [f"Team cannot be changed while review is {review.status}"]
        )

    member.invitation_status = (
        ReviewTeamMember.InvitationStatus.DECLINED
        if is_invitee
        else ReviewTeamMember.InvitationStatus.WITHDRAWN
    )
    member.save(update_fields=["invitation_status", "updated_at"])

    timestamp = timezone.now().strftime("%Y-%m-%d %H:%M")
    line = (
        f"[{timestamp} - {user.email} - TEAM CHANGE]: "
        f"{member.reviewer_profile} {member.invitation_status.lower()}: "
        f"{reason}"
    )
    review.notes = f"{review.notes}\n\n{line}" if review.notes else line
    review.save(update_fields=["notes", "updated_at"])
    return member


# --- COI OVERRIDES ---


@transaction.atomic
def approve_coi_override(
    *, reviewer_profile, review, justification, approved_by, expires_at=None
) -> COIOverride:
    """Waives a declared conflict for this one review."""
    if not _is_coordinator(approved_by):
        raise ReviewerPermissionError(
            "Only Programme Coordinators can approve COI overrides."
        )
    justification = (justification or "").strip()
    if len(justification) < MIN_OVERRIDE_JUSTIFICATION_LENGTH:
        raise ReviewerAssignmentError(
            [
                "Override justification must be at least "
                f"{MIN_OVERRIDE_JUSTIFICATION_LENGTH} characters"
            ]
        )
    if reviewer_profile.effective_organization_id == (
        review.host_organization_id
    ):
        # Own organization is a hard block; an override would be inert.
        raise ReviewerAssignmentError(
            ["Home organization conflicts cannot be overridden"]
        )

    override = COIOverride.objects.create(
        reviewer_profile=reviewer_profile,
        organization_id=review.host_organization_id,
        review=review,
        justification=justification,
        approved_by=approved_by,
        expires_at=expires_at,
    )
    logger.info(
        "COI override %s approved for profile %s on review %s by user %s",
        override.pk,
        reviewer_profile.pk,
        review.pk,
        approved_by.pk,
    )
    return override


@transaction.atomic
def revoke_coi_override(*, override: COIOverride, user) -> COIOverride:
    if not _is_coordinator(user):
        raise ReviewerPermissionError(
            "Only Programme Coordinators can revoke COI overrides."
        )
    if override.is_revoked:
        raise ReviewerAssignmentError(["Override is already revoked"])

    override.is_revoked = True
    override.revoked_by = user
    override.revoked_at = timezone.now()
    override.save(update_fields=["is_revoked", "revoked_by", "revoked_at"])
    return override
