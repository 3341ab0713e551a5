"""
Serializers for references app.
"""

from rest_framework import serializers

from .models import Organization, RegionalTeam


class RegionalTeamSerializer(serializers.ModelSerializer):
    """Serializer for Regional Team objects."""

    class Meta:
        model = RegionalTeam
        fields = ["id", "code", "name_en"]
        read_only_fields = ["id"]


class OrganizationSerializer(serializers.ModelSerializer):
    """Serializer for Organization objects."""

    class Meta:
        model = Organization
        fields = ["id", "name_en", "organization_code", "regional_team"]
        read_only_fields = ["id"]
