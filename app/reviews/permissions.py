"""
Object-level permissions.
"""

from rest_framework import permissions

from reviews import workflows

# Fieldwork dates the review's own Lead Reviewer may record
LEAD_EDITABLE_FIELDS = frozenset({"actual_start_date", "actual_end_date"})


class CanUpdateReview(permissions.BasePermission):
    """
    Object-level permission for editing a review. Coordinators may edit
    dates and add notes; the active Lead Reviewer of the review may only
    record the actual fieldwork dates.
    """

    message = (
        "Only Programme Coordinators, or the review's Lead Reviewer for "
        "fieldwork dates, can edit a review."
    )

    def has_object_permission(self, request, view, obj):
        if request.user.role_name in workflows.COORDINATOR_ROLES:
            return True
        if not set(request.data) <= LEAD_EDITABLE_FIELDS:
            return False
        return (
            obj.team_members.filter(
                role=workflows.LEAD_REVIEWER,
                reviewer_profile__user=request.user,
            )
            .exclude(
                invitation_status__in=workflows.INACTIVE_INVITATION_STATUSES
            )
            .exists()
        )
