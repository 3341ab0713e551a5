"""
Serializers for the reviewers API.
"""

from rest_framework import serializers

from reviews.models import Review
from .eligibility import MIN_OVERRIDE_JUSTIFICATION_LENGTH
from .models import ReviewerProfile, ReviewerCertification, COIOverride


class ReviewerCertificationSerializer(serializers.ModelSerializer):
    class Meta:
        model = ReviewerCertification
        fields = ["certification_type", "issue_date", "expiry_date"]


class ReviewerProfileSerializer(serializers.ModelSerializer):
    """Read-only reviewer profile with its certifications."""

    full_name = serializers.CharField(source="user.full_name", read_only=True)
    email = serializers.EmailField(source="user.email", read_only=True)
    organization = serializers.SerializerMethodField()
    certifications = ReviewerCertificationSerializer(many=True, read_only=True)

    class Meta:
        model = ReviewerProfile
        fields = [
            "id",
            "user",
            "full_name",
            "email",
            "organization",
            "status",
            "is_lead_qualified",
            "reviews_completed",
            "reviews_as_lead",
            "is_available",
            "available_from",
            "available_to",
            "expertise_areas",
            "certifications",
        ]
        read_only_fields = fields

    def get_organization(self, obj):
        return obj.effective_organization_id


class COIOverrideSerializer(serializers.ModelSerializer):
    """Read representation of an override."""

    class Meta:
        model = COIOverride
        fields = [
            "id",
            "reviewer_profile",
            "organization",
            "review",
            "justification",
            "approved_by",
            "approved_at",
            "expires_at",
            "is_revoked",
            "revoked_by",
            "revoked_at",
        ]
        read_only_fields = fields


class COIOverrideCreateSerializer(serializers.Serializer):
    """Payload for approving an override."""

    reviewer_profile = serializers.PrimaryKeyRelatedField(
        queryset=ReviewerProfile.objects.all()
    )
    review = serializers.PrimaryKeyRelatedField(queryset=Review.objects.all())
    justification = serializers.CharField(
        min_length=MIN_OVERRIDE_JUSTIFICATION_LENGTH, max_length=2000
    )
    expires_at = serializers.DateTimeField(required=False, allow_null=True)


class WithdrawalSerializer(serializers.Serializer):
    reason = serializers.CharField(min_length=10, max_length=1000)
