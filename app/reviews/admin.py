"""
Django admin customization for the reviews app.
"""

from django.contrib import admin

from reviews.models import Review, ReviewTeamMember, ReviewReport


class ReviewTeamMemberInline(admin.TabularInline):
    model = ReviewTeamMember
    extra = 0
    fk_name = "review"
    autocomplete_fields = ("reviewer_profile",)
    readonly_fields = ("confirmed_at",)


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = (
        "reference_number",
        "host_organization",
        "status",
        "planned_start_date",
        "planned_end_date",
    )
    list_filter = ("status", "host_organization__regional_team")
    search_fields = ("reference_number", "host_organization__name_en")
    autocomplete_fields = ("host_organization",)
    # Status changes only through the transition executor
    readonly_fields = (
        "status",
        "version",
        "actual_start_date",
        "actual_end_date",
    )
    inlines = [ReviewTeamMemberInline]


@admin.register(ReviewTeamMember)
class ReviewTeamMemberAdmin(admin.ModelAdmin):
    list_display = (
        "review",
        "reviewer_profile",
        "role",
        "invitation_status",
        "is_cross_team",
    )
    list_filter = ("role", "invitation_status", "is_cross_team")
    search_fields = (
        "review__reference_number",
        "reviewer_profile__user__email",
    )


@admin.register(ReviewReport)
class ReviewReportAdmin(admin.ModelAdmin):
    list_display = ("review", "status", "updated_at")
    list_filter = ("status",)
