"""
Application layer - Django-aware orchestrator service for review objects.
Loads review state, calls the Domain registry for validation, and commits
transitions under a row lock with a compare-and-swap on status/version.
"""

import logging
from uuid import uuid4

from django.core.exceptions import ObjectDoesNotExist
from django.db import transaction
from django.db.models import F, Q
from django.utils import timezone

from .models import Review
from . import workflows
from .signals import review_transitioned

logger = logging.getLogger(__name__)

REVIEW_NOT_FOUND = "Review not found"
CONCURRENT_MODIFICATION = "Review was modified concurrently; please retry"


# --- HELPER FUNCTIONS ---


def _related_or_none(obj, name):
    """Reverse one-to-one accessor that yields None instead of raising."""
    try:
        return getattr(obj, name)
    except ObjectDoesNotExist:
        return None


def _load_review(review_id):
    """Review with everything the guards read, or None."""
    return (
        Review.objects.select_related(
            "host_organization", "host_organization__regional_team", "report"
        )
        .prefetch_related("team_members", "findings__corrective_action_plan")
        .filter(pk=review_id)
        .first()
    )


def build_snapshot(review: Review) -> workflows.ReviewSnapshot:
    """Translates a loaded review into the Domain layer's plain snapshot."""
    members = tuple(
        workflows.MemberFacts(
            role=m.role,
            invitation_status=m.invitation_status,
            confirmed=m.confirmed_at is not None,
        )
        for m in review.team_members.all()
    )

    findings = []
    for finding in review.findings.all():
        cap = _related_or_none(finding, "corrective_action_plan")
        findings.append(
            workflows.FindingFacts(
                finding_type=finding.finding_type,
                severity=finding.severity,
                cap_required=finding.cap_required,
                cap_status=cap.status if cap else None,
            )
        )

    report = _related_or_none(review, "report")
    return workflows.ReviewSnapshot(
        status=review.status,
        planned_start_date=review.planned_start_date,
        planned_end_date=review.planned_end_date,
        actual_start_date=review.actual_start_date,
        actual_end_date=review.actual_end_date,
        members=members,
        findings=tuple(findings),
        report_status=report.status if report else None,
    )


def _append_note(notes: str, line: str) -> str:
    return f"{notes}\n\n{line}" if notes else line


def _failure(errors: list) -> dict:
    return {
        "success": False,
        "review": None,
        "previous_status": None,
        "errors": errors,
    }


# --- VISIBILITY FILTER ---


def get_review_visibility_filter(user) -> Q:
    """
    Returns a Q filter for reviews visible to the given user.
    """
    if not user or not user.role:
        return Q(pk__in=[])

    if user.role.name in workflows.OVERSIGHT_ROLES:
        return Q()

    visible = Q(created_by=user) | Q(team_members__reviewer_profile__user=user)
    if user.organization_id:
        visible |= Q(host_organization_id=user.organization_id)
    return visible


# --- READ-ONLY QUERIES ---


def get_valid_transitions_from(status: str) -> list:
    return workflows.get_valid_transitions_from(status)


def get_status_flow() -> list:
    return workflows.get_status_flow()


def can_transition(
    *, review_id, target_status: str, caller_role: str, metadata=None
) -> dict:
    """
    Checks whether the caller's role may move the review to target_status
    given its current persisted state. Returns
    {allowed, errors, warnings, conditions}; never raises.
    """
    review = _load_review(review_id)
    if review is None:
        return {
            "allowed": False,
            "errors": [REVIEW_NOT_FOUND],
            "warnings": [],
            "conditions": [],
        }

    return workflows.check_transition(
        build_snapshot(review), target_status, caller_role, metadata
    )


def get_available_transitions(*, review_id, caller_role: str) -> list:
    """Transitions the role may invoke now, with their conditions."""
    review = _load_review(review_id)
    if review is None:
        return []
    return workflows.get_available_transitions(
        build_snapshot(review), caller_role
    )


# --- CREATE / UPDATE ---


@transaction.atomic
def request_review(*, user, host_organization, **kwargs) -> Review:
    """Registers a new review request in REQUESTED status."""
    role_name = user.role_name if user else ""
    if role_name not in (
        workflows.COORDINATOR_ROLES | {workflows.HOST_FOCAL_POINT}
    ):
        raise workflows.ReviewPermissionError(
            "Only Programme Coordinators or host focal points can request "
            "reviews."
        )
    if (
        role_name == workflows.HOST_FOCAL_POINT
        and user.organization_id != host_organization.pk
    ):
        raise workflows.ReviewPermissionError(
            "Host focal points can only request reviews of their own "
            "organization."
        )

    kwargs.pop("status", None)
    kwargs.pop("version", None)
    reference_number = kwargs.pop("reference_number", None) or (
        f"PR-{timezone.now():%Y}-{uuid4().hex[:6].upper()}"
    )

    review = Review.objects.create(
        reference_number=reference_number,
        host_organization=host_organization,
        status=workflows.REQUESTED,
        created_by=user,
        **kwargs,
    )
    logger.info(
        "Review %s requested for organization %s by user %s",
        review.reference_number,
        host_organization.pk,
        getattr(user, "pk", None),
    )
    return review


@transaction.atomic
def update_review(*, review: Review, user, note=None, **fields) -> Review:
    """
    Writes planning and fieldwork dates. Notes are append-only: `note` is
    added as a stamped line, e.g. [2026-09-07 09:30 - user@example.com -
    NOTE]: text. Only the given columns are saved so a concurrent
    transition's status and version are never overwritten.
    """
    locked = Review.objects.select_for_update().get(pk=review.pk)

    for name, value in fields.items():
        setattr(locked, name, value)
    update_fields = list(fields)

    if note:
        timestamp = timezone.now().strftime("%Y-%m-%d %H:%M")
        locked.notes = _append_note(
            locked.notes, f"[{timestamp} - {user.email} - NOTE]: {note}"
        )
        update_fields.append("notes")

    if update_fields:
        locked.save(update_fields=update_fields + ["updated_at"])
        logger.info(
            "Review %s updated by user %s: %s",
            locked.reference_number,
            user.pk,
            ", ".join(update_fields),
        )
    return locked


# --- TRANSITION EXECUTOR ---


def execute_transition(
    *,
    review_id,
    target_status: str,
    caller_id,
    caller_role: str,
    metadata=None,
) -> dict:
    """
    The only path by which a review's status changes.

    Re-validates against current state while holding the review row lock,
    applies implied side effects, and commits conditionally on the status
    and version that were validated. Returns
    {success, review, previous_status, errors}.
    """
    metadata = metadata or {}

    with transaction.atomic():
        locked = (
            Review.objects.select_for_update()
            .filter(pk=review_id)
            .values_list("pk", flat=True)
            .first()
        )
        review = _load_review(review_id) if locked is not None else None
        if review is None:
            return _failure([REVIEW_NOT_FOUND])

        check = workflows.check_transition(
            build_snapshot(review), target_status, caller_role, metadata
        )
        if not check["allowed"]:
            logger.info(
                "Transition of review %s from %s to %s rejected for %s: %s",
                review_id,
                review.status,
                target_status,
                caller_role,
                "; ".join(check["errors"]),
            )
            return _failure(check["errors"])

        previous_status = review.status
        now = timezone.now()
        updates = {
            "status": target_status,
            "version": F("version") + 1,
            "updated_at": now,
        }

        if (
            target_status == workflows.IN_PROGRESS
            and review.actual_start_date is None
        ):
            updates["actual_start_date"] = now
        if (
            target_status == workflows.REPORT_DRAFTING
            and review.actual_end_date is None
        ):
            updates["actual_end_date"] = now
        if target_status == workflows.CANCELLED and metadata.get("reason"):
            updates["notes"] = _append_note(
                review.notes, f"Cancellation reason: {metadata['reason']}"
            )

        committed = Review.objects.filter(
            pk=review.pk, status=previous_status, version=review.version
        ).update(**updates)
        if not committed:
            logger.warning(
                "Review %s changed between validation and commit "
                "(%s -> %s); transition abandoned",
                review_id,
                previous_status,
                target_status,
            )
            return _failure([CONCURRENT_MODIFICATION])

        review.refresh_from_db()
        logger.info(
            "Review %s moved from %s to %s by user %s (%s)",
            review.reference_number,
            previous_status,
            target_status,
            caller_id,
            caller_role,
        )

        transaction.on_commit(
            lambda: review_transitioned.send(
                sender=Review,
                review=review,
                previous_status=previous_status,
                new_status=target_status,
                caller_id=caller_id,
                metadata=metadata,
            )
        )

    return {
        "success": True,
        "review": review,
        "previous_status": previous_status,
        "errors": [],
    }
