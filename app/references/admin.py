"""
Django admin customization for reference/central taxonomy tables.
"""

from django.contrib import admin

from references import models

admin.site.register(models.Role)


@admin.register(models.RegionalTeam)
class RegionalTeamAdmin(admin.ModelAdmin):
    search_fields = ("code", "name_en")
    list_display = ("code", "name_en")


@admin.register(models.Organization)
class OrganizationAdmin(admin.ModelAdmin):
    # Required to support autocomplete_fields in ReviewAdmin
    search_fields = ("name_en", "organization_code")
    list_display = ("name_en", "organization_code", "regional_team")
    list_filter = ("regional_team",)
