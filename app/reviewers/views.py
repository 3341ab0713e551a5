"""
Views for the reviewers APIs.
"""

from django.contrib.auth import get_user_model
from rest_framework import mixins, viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.authentication import TokenAuthentication
from rest_framework.permissions import IsAuthenticated
from drf_spectacular.utils import extend_schema

from reviews import workflows
from reviews.models import ReviewTeamMember
from reviews.serializers import ReviewTeamMemberSerializer
from reviews.views import (
    StandardResultsSetPagination,
    assignment_error_response,
)
from .models import ReviewerProfile, COIOverride
from . import serializers
from . import services
from .eligibility import ReviewerAssignmentError, ReviewerPermissionError


def _load_user(request):
    return (
        get_user_model()
        .objects.select_related("role", "organization")
        .get(id=request.user.id)
    )


class ReviewerProfileViewSet(viewsets.ReadOnlyModelViewSet):
    """Read-only reviewer pool."""

    queryset = ReviewerProfile.objects.select_related(
        "user", "user__organization", "home_organization"
    ).prefetch_related("certifications")
    serializer_class = serializers.ReviewerProfileSerializer
    authentication_classes = [TokenAuthentication]
    permission_classes = [IsAuthenticated]
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        return super().get_queryset().order_by("user__last_name", "id")

    @action(detail=True, methods=["get"], url_path="lead-qualification")
    def lead_qualification(self, request, pk=None):
        profile = self.get_object()
        return Response(
            services.get_lead_qualification_status(
                reviewer_profile_id=profile.pk
            )
        )


class TeamMemberViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Review team seats. Coordinators see every seat, other users only
    their own invitations.
    """

    queryset = ReviewTeamMember.objects.select_related(
        "review", "reviewer_profile", "reviewer_profile__user"
    )
    serializer_class = ReviewTeamMemberSerializer
    authentication_classes = [TokenAuthentication]
    permission_classes = [IsAuthenticated]
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        queryset = super().get_queryset().order_by("-id")
        if self.request.user.role_name in workflows.COORDINATOR_ROLES:
            return queryset
        return queryset.filter(reviewer_profile__user=self.request.user)

    def get_serializer_class(self):
        if self.action == "withdraw":
            return serializers.WithdrawalSerializer
        return ReviewTeamMemberSerializer

    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):
        """The invited reviewer confirms participation."""
        member = self.get_object()
        try:
            member = services.confirm_team_member(
                member=member, user=request.user
            )
        except (ReviewerAssignmentError, ReviewerPermissionError) as e:
            return assignment_error_response(e)
        return Response(ReviewTeamMemberSerializer(member).data)

    @extend_schema(
        request=serializers.WithdrawalSerializer,
        responses=ReviewTeamMemberSerializer,
    )
    @action(detail=True, methods=["post"])
    def withdraw(self, request, pk=None):
        """
        Removes the member from the active team.
        Invitee: declines. Coordinator: withdraws. Reason is required.
        """
        member = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            member = services.withdraw_team_member(
                member=member,
                user=_load_user(request),
                **serializer.validated_data,
            )
        except (ReviewerAssignmentError, ReviewerPermissionError) as e:
            return assignment_error_response(e)
        return Response(ReviewTeamMemberSerializer(member).data)


class COIOverrideViewSet(
    mixins.CreateModelMixin,
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """Coordinator-approved waivers of declared conflicts of interest."""

    queryset = COIOverride.objects.select_related(
        "reviewer_profile", "organization", "review", "approved_by"
    )
    authentication_classes = [TokenAuthentication]
    permission_classes = [IsAuthenticated]
    pagination_class = StandardResultsSetPagination

    def get_queryset(self):
        return super().get_queryset().order_by("-id")

    def get_serializer_class(self):
        if self.action == "create":
            return serializers.COIOverrideCreateSerializer
        return serializers.COIOverrideSerializer

    @extend_schema(
        request=serializers.COIOverrideCreateSerializer,
        responses={201: serializers.COIOverrideSerializer},
    )
    def create(self, request, *args, **kwargs):
        """
        Approve an override.
        Permission: Programme Coordinators (enforced in services).
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            override = services.approve_coi_override(
                approved_by=_load_user(request), **serializer.validated_data
            )
        except (ReviewerAssignmentError, ReviewerPermissionError) as e:
            return assignment_error_response(e)
        return Response(
            serializers.COIOverrideSerializer(override).data,
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["post"])
    def revoke(self, request, pk=None):
        override = self.get_object()
        try:
            override = services.revoke_coi_override(
                override=override, user=_load_user(request)
            )
        except (ReviewerAssignmentError, ReviewerPermissionError) as e:
            return assignment_error_response(e)
        return Response(serializers.COIOverrideSerializer(override).data)
