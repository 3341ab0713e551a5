"""
Filters for the reviews API.
"""

import django_filters

from reviews import workflows
from .models import Review


class ReviewFilter(django_filters.FilterSet):
    status = django_filters.MultipleChoiceFilter(
        choices=workflows.STATUS_CHOICES
    )
    host_organization = django_filters.NumberFilter(
        field_name="host_organization_id"
    )
    team = django_filters.CharFilter(
        field_name="host_organization__regional_team__code"
    )
    created_by = django_filters.CharFilter(method="filter_by_created_by")

    planned_after = django_filters.DateFilter(
        field_name="planned_start_date", lookup_expr="gte"
    )
    planned_before = django_filters.DateFilter(
        field_name="planned_start_date", lookup_expr="lte"
    )

    search = django_filters.CharFilter(
        field_name="reference_number", lookup_expr="icontains"
    )

    ordering = django_filters.OrderingFilter(
        fields=(
            ("planned_start_date", "planned_start_date"),
            ("created_at", "created_at"),
        )
    )

    class Meta:
        model = Review
        fields = [
            "status",
            "host_organization",
            "team",
            "created_by",
            "planned_after",
            "planned_before",
            "search",
        ]

    def filter_by_created_by(self, queryset, name, value):
        if value == "me":
            return queryset.filter(created_by=self.request.user)
        return queryset.filter(created_by_id=value)
