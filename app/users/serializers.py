"""
Serializers for the user objects embedded in other APIs.
"""

from django.contrib.auth import get_user_model
from rest_framework import serializers


class UserNestedSerializer(serializers.ModelSerializer):
    """Compact read-only representation of a user."""

    full_name = serializers.CharField(read_only=True)

    class Meta:
        model = get_user_model()
        fields = ["id", "email", "full_name"]
        read_only_fields = fields
