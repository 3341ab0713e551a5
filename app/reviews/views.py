"""
Views for the reviews APIs.
"""

from django.contrib.auth import get_user_model
from rest_framework import viewsets, status
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.authentication import TokenAuthentication
from rest_framework.permissions import IsAuthenticated
from rest_framework.pagination import PageNumberPagination
from drf_spectacular.utils import extend_schema

from reviewers import services as reviewer_services
from reviewers.eligibility import (
    ReviewerAssignmentError,
    ReviewerPermissionError,
)
from .models import Review
from . import serializers
from . import services
from . import workflows
from .permissions import CanUpdateReview
from .workflows import ReviewPermissionError
from .filters import ReviewFilter


class StandardResultsSetPagination(PageNumberPagination):
    """Provides pagination for output."""

    page_size = 50
    page_size_query_param = "page_size"
    max_page_size = 100


def assignment_error_response(e):
    """Maps team/COI service exceptions to a 400/403 response."""
    if isinstance(e, ReviewerPermissionError):
        return Response({"error": str(e)}, status=status.HTTP_403_FORBIDDEN)
    return Response(
        {
            "error": str(e),
            "errors": e.errors,
            "can_override": e.can_override,
        },
        status=status.HTTP_400_BAD_REQUEST,
    )


class ReviewViewSet(viewsets.ModelViewSet):
    """View for managing reviews and driving their lifecycle."""

    queryset = Review.objects.all()
    authentication_classes = [TokenAuthentication]
    permission_classes = [IsAuthenticated]
    pagination_class = StandardResultsSetPagination
    filterset_class = ReviewFilter
    # Status only moves through the transition action; no deletes
    http_method_names = ["get", "post", "patch", "head", "options"]

    def _get_fully_loaded_user(self):
        """
        Helper method to get the fully-loaded user object with related data.
        Returns None if user is not authenticated or doesn't exist.
        """
        if not self.request.user.is_authenticated:
            return None

        try:
            return (
                get_user_model()
                .objects.select_related("role", "organization")
                .get(id=self.request.user.id)
            )
        except get_user_model().DoesNotExist:
            return None

    def _caller_role(self) -> str:
        return self.request.user.role_name

    def get_queryset(self):
        """
        Implement data segregation based on user role.
        """
        user = self._get_fully_loaded_user()
        if not user or not user.role:
            return super().get_queryset().none()

        queryset = (
            super()
            .get_queryset()
            .select_related(
                "host_organization",
                "host_organization__regional_team",
                "created_by",
            )
            .prefetch_related("team_members__reviewer_profile__user")
        )

        visibility_filter = services.get_review_visibility_filter(user)
        return queryset.filter(visibility_filter).distinct().order_by("-id")

    def get_permissions(self):
        if self.action == "partial_update":
            return [IsAuthenticated(), CanUpdateReview()]
        return super().get_permissions()

    def get_serializer_class(self):
        """Return the serializer class for request based on action."""
        if self.action == "list":
            return serializers.ReviewListSerializer
        if self.action == "create":
            return serializers.ReviewCreateSerializer
        if self.action == "partial_update":
            return serializers.ReviewUpdateSerializer
        if self.action in ["can_transition", "transition"]:
            return serializers.TransitionRequestSerializer
        if self.action == "validate_assignment":
            return serializers.AssignmentCheckSerializer
        if self.action == "validate_lead":
            return serializers.LeadCheckSerializer
        if self.action == "team":
            return serializers.TeamAssignmentSerializer

        return serializers.ReviewDetailSerializer

    def _detail_data(self, review):
        context = self.get_serializer_context()
        context["available_transitions"] = (
            services.get_available_transitions(
                review_id=review.pk, caller_role=self._caller_role()
            )
        )
        return serializers.ReviewDetailSerializer(review, context=context).data

    def retrieve(self, request, *args, **kwargs):
        """
        Retrieve a single review with the transitions the caller may invoke.
        """
        return Response(self._detail_data(self.get_object()))

    # --- Core CRUD Actions ---

    def create(self, request, *args, **kwargs):
        """
        Request a new review.
        Permission: coordinators, or a host focal point for their own
        organization (enforced in services).
        """
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            review = services.request_review(
                user=self._get_fully_loaded_user(),
                **serializer.validated_data,
            )
        except ReviewPermissionError as e:
            return Response(
                {"error": str(e)}, status=status.HTTP_403_FORBIDDEN
            )
        return Response(
            self._detail_data(review), status=status.HTTP_201_CREATED
        )

    def partial_update(self, request, *args, **kwargs):
        """
        Record dates or append a note.
        Permission: coordinators; the review's Lead Reviewer for the
        actual fieldwork dates only (CanUpdateReview).
        """
        review = self.get_object()
        serializer = self.get_serializer(
            review, data=request.data, partial=True
        )
        serializer.is_valid(raise_exception=True)
        review = services.update_review(
            review=review,
            user=self._get_fully_loaded_user(),
            **serializer.validated_data,
        )
        return Response(self._detail_data(review))

    # --- Workflow Actions ---

    @action(detail=False, methods=["get"], url_path="status-flow")
    def status_flow(self, request):
        """The whole lifecycle graph with status descriptions."""
        return Response(services.get_status_flow())

    @action(detail=True, methods=["get"])
    def transitions(self, request, pk=None):
        """Transitions out of the current status the caller may invoke."""
        review = self.get_object()
        return Response(
            services.get_available_transitions(
                review_id=review.pk, caller_role=self._caller_role()
            )
        )

    @action(detail=True, methods=["post"], url_path="can-transition")
    def can_transition(self, request, pk=None):
        """Dry run of a transition; never changes the review."""
        review = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return Response(
            services.can_transition(
                review_id=review.pk,
                target_status=serializer.validated_data["target_status"],
                caller_role=self._caller_role(),
                metadata=serializer.to_metadata(),
            )
        )

    # Response is the review detail, not the request payload
    @extend_schema(
        request=serializers.TransitionRequestSerializer,
        responses=serializers.ReviewDetailSerializer,
    )
    @action(detail=True, methods=["post"])
    def transition(self, request, pk=None):
        """
        Executes a transition.

        Returns:
        200 OK: review moved, body carries previous_status
        400 Bad Request: transition invalid or guard failed
        409 Conflict: review changed while the transition was validated
        """
        review = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = services.execute_transition(
            review_id=review.pk,
            target_status=serializer.validated_data["target_status"],
            caller_id=request.user.id,
            caller_role=self._caller_role(),
            metadata=serializer.to_metadata(),
        )
        if not result["success"]:
            err_status = (
                status.HTTP_409_CONFLICT
                if services.CONCURRENT_MODIFICATION in result["errors"]
                else status.HTTP_400_BAD_REQUEST
            )
            return Response(
                {
                    "error": "; ".join(result["errors"]),
                    "errors": result["errors"],
                },
                status=err_status,
            )

        data = self._detail_data(result["review"])
        data["previous_status"] = result["previous_status"]
        return Response(data, status=status.HTTP_200_OK)

    # --- Team Building Actions ---

    @action(detail=True, methods=["get"], url_path="eligible-reviewers")
    def eligible_reviewers(self, request, pk=None):
        review = self.get_object()
        # Cross-team candidates are surfaced to coordinators only
        requested = request.query_params.get(
            "include_cross_team", ""
        ).lower() in ("1", "true", "yes")
        include_cross_team = requested and (
            self._caller_role() in workflows.COORDINATOR_ROLES
        )
        return Response(
            reviewer_services.get_eligible_reviewers(
                review_id=review.pk, include_cross_team=include_cross_team
            )
        )

    @action(detail=True, methods=["post"], url_path="validate-assignment")
    def validate_assignment(self, request, pk=None):
        review = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return Response(
            reviewer_services.validate_reviewer_assignment(
                review_id=review.pk, **serializer.validated_data
            )
        )

    @action(detail=True, methods=["post"], url_path="validate-lead")
    def validate_lead(self, request, pk=None):
        review = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return Response(
            reviewer_services.validate_lead_reviewer_assignment(
                review_id=review.pk, **serializer.validated_data
            )
        )

    @extend_schema(
        request=serializers.TeamAssignmentSerializer,
        responses={201: serializers.ReviewTeamMemberSerializer},
    )
    @action(detail=True, methods=["post"])
    def team(self, request, pk=None):
        """
        Assigns a reviewer to the review team.
        Permission: Programme Coordinators (enforced in services).
        """
        review = self.get_object()
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            member = reviewer_services.assign_team_member(
                review_id=review.pk,
                assigned_by=self._get_fully_loaded_user(),
                **serializer.validated_data,
            )
        except (ReviewerAssignmentError, ReviewerPermissionError) as e:
            return assignment_error_response(e)
        return Response(
            serializers.ReviewTeamMemberSerializer(member).data,
            status=status.HTTP_201_CREATED,
        )
