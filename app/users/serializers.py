"""
Serializers for the users app.
"""

from django.contrib.auth import get_user_model
from rest_framework import serializers


class UserNestedSerializer(serializers.ModelSerializer):
    """Lightweight user representation, nested in other payloads."""

    class Meta:
        model = get_user_model()
        fields = ["id", "email", "full_name"]
        read_only_fields = fields
