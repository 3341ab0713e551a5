"""
Serializers for the reviews API.
"""

from rest_framework import serializers

from references.models import Organization
from references.serializers import OrganizationSerializer
from users.serializers import UserNestedSerializer
from reviews import workflows
from .models import Review, ReviewTeamMember

# --- Re-usable Action Payload Serializers ---


class TransitionRequestSerializer(serializers.Serializer):
    """Payload of can-transition / transition."""

    target_status = serializers.ChoiceField(choices=workflows.STATUSES)
    reason = serializers.CharField(
        max_length=2000, required=False, allow_blank=True
    )

    def to_metadata(self) -> dict:
        reason = self.validated_data.get("reason")
        return {"reason": reason} if reason else {}


class ReviewerRefSerializer(serializers.Serializer):
    reviewer_profile_id = serializers.IntegerField()


class AssignmentCheckSerializer(ReviewerRefSerializer):
    cross_team_justification = serializers.CharField(
        max_length=2000, required=False, allow_blank=True
    )
    approver_id = serializers.IntegerField(required=False, allow_null=True)


class LeadCheckSerializer(ReviewerRefSerializer):
    skip_existing_lead_check = serializers.BooleanField(default=False)
    replacing_member_id = serializers.IntegerField(
        required=False, allow_null=True
    )


class TeamAssignmentSerializer(AssignmentCheckSerializer):
    role = serializers.ChoiceField(choices=ReviewTeamMember.Role.choices)
    replacing_member_id = serializers.IntegerField(
        required=False, allow_null=True
    )
    override_lead_rules = serializers.BooleanField(default=False)


# --- Core Serializers ---


class ReviewTeamMemberSerializer(serializers.ModelSerializer):
    """Read-only team member with the reviewer's display name."""

    full_name = serializers.CharField(
        source="reviewer_profile.user.full_name", read_only=True
    )
    is_active = serializers.BooleanField(read_only=True)

    class Meta:
        model = ReviewTeamMember
        fields = [
            "id",
            "reviewer_profile",
            "full_name",
            "role",
            "invitation_status",
            "confirmed_at",
            "is_cross_team",
            "cross_team_justification",
            "cross_team_approved_by",
            "is_active",
        ]
        read_only_fields = fields


class ReviewListSerializer(serializers.ModelSerializer):
    """Serializer for list view, with minimal nested data."""

    host_organization = OrganizationSerializer(read_only=True)

    class Meta:
        model = Review
        fields = [
            "id",
            "reference_number",
            "host_organization",
            "status",
            "planned_start_date",
            "planned_end_date",
            "created_at",
        ]


class ReviewDetailSerializer(serializers.ModelSerializer):
    """Full detail serializer with team and contextual transitions."""

    host_organization = OrganizationSerializer(read_only=True)
    created_by = UserNestedSerializer(read_only=True)
    team_members = ReviewTeamMemberSerializer(many=True, read_only=True)
    host_team = serializers.SerializerMethodField()

    # --- Contextual Fields ---
    available_transitions = serializers.SerializerMethodField()

    class Meta:
        model = Review
        fields = [
            "id",
            "reference_number",
            "host_organization",
            "host_team",
            "status",
            "planned_start_date",
            "planned_end_date",
            "actual_start_date",
            "actual_end_date",
            "notes",
            "version",
            "created_by",
            "created_at",
            "updated_at",
            "team_members",
            "available_transitions",
        ]

    def get_host_team(self, obj):
        team = obj.host_team
        return team.code if team else None

    def get_available_transitions(self, obj):
        # Read from context (populated by ViewSet)
        return self.context.get("available_transitions", [])


class ReviewCreateSerializer(serializers.ModelSerializer):
    """Serializer for requesting a new review."""

    host_organization = serializers.PrimaryKeyRelatedField(
        queryset=Organization.objects.all()
    )
    reference_number = serializers.CharField(
        max_length=30, required=False, allow_blank=True
    )

    class Meta:
        model = Review
        fields = [
            "reference_number",
            "host_organization",
            "planned_start_date",
            "planned_end_date",
            "notes",
        ]

    def validate(self, attrs):
        start = attrs.get("planned_start_date")
        end = attrs.get("planned_end_date")
        if start and end and end < start:
            raise serializers.ValidationError(
                "Planned end date cannot precede planned start date."
            )
        return attrs


class ReviewUpdateSerializer(serializers.ModelSerializer):
    """
    PATCH of planning and fieldwork dates; status is never writable and
    notes only grow through `note`.
    """

    note = serializers.CharField(
        max_length=2000, required=False, allow_blank=True, write_only=True
    )

    class Meta:
        model = Review
        fields = [
            "planned_start_date",
            "planned_end_date",
            "actual_start_date",
            "actual_end_date",
            "note",
        ]

    def validate(self, attrs):
        instance = self.instance
        start = attrs.get(
            "planned_start_date", getattr(instance, "planned_start_date", None)
        )
        end = attrs.get(
            "planned_end_date", getattr(instance, "planned_end_date", None)
        )
        if start and end and end < start:
            raise serializers.ValidationError(
                "Planned end date cannot precede planned start date."
            )
        if instance and instance.status in workflows.TERMINAL_STATUSES:
            raise serializers.ValidationError(
                f"Review is {instance.status} and can no longer be edited."
            )
        return attrs
