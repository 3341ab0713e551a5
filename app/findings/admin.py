"""
Django admin customization for findings and corrective action plans.
"""

from django.contrib import admin

from findings.models import Finding, CorrectiveActionPlan


class CorrectiveActionPlanInline(admin.StackedInline):
    model = CorrectiveActionPlan
    extra = 0


@admin.register(Finding)
class FindingAdmin(admin.ModelAdmin):
    list_display = (
        "title",
        "review",
        "finding_type",
        "severity",
        "cap_required",
    )
    list_filter = ("finding_type", "severity", "cap_required")
    search_fields = ("title", "reference_number", "review__reference_number")
    inlines = [CorrectiveActionPlanInline]


@admin.register(CorrectiveActionPlan)
class CorrectiveActionPlanAdmin(admin.ModelAdmin):
    list_display = ("finding", "status", "due_date")
    list_filter = ("status",)
