"""
Django admin customization for the reviewers app.
"""

from django.contrib import admin

from reviewers.models import (
    ReviewerProfile,
    ReviewerCertification,
    ReviewerCOI,
    COIOverride,
)


class ReviewerCertificationInline(admin.TabularInline):
    model = ReviewerCertification
    extra = 0


@admin.register(ReviewerProfile)
class ReviewerProfileAdmin(admin.ModelAdmin):
    # search_fields required by autocomplete_fields in ReviewTeamMemberInline
    search_fields = ("user__email", "user__first_name", "user__last_name")
    list_display = (
        "user",
        "home_organization",
        "status",
        "is_lead_qualified",
        "reviews_completed",
        "is_available",
    )
    list_filter = ("status", "is_lead_qualified", "is_available")
    inlines = [ReviewerCertificationInline]


@admin.register(ReviewerCOI)
class ReviewerCOIAdmin(admin.ModelAdmin):
    list_display = (
        "reviewer_profile",
        "organization",
        "coi_type",
        "severity",
        "is_active",
    )
    list_filter = ("coi_type", "severity", "is_active")
    search_fields = ("reviewer_profile__user__email", "organization__name_en")


@admin.register(COIOverride)
class COIOverrideAdmin(admin.ModelAdmin):
    list_display = (
        "reviewer_profile",
        "organization",
        "review",
        "approved_by",
        "approved_at",
        "is_revoked",
    )
    list_filter = ("is_revoked",)
    readonly_fields = ("approved_at", "revoked_by", "revoked_at")
