"""
Serializers for references app.
"""

from rest_framework import serializers

from .models import ProductionUnit, Equipment, FailureMode


class ProductionUnitSerializer(serializers.ModelSerializer):
    """Serializer for Production Unit objects."""

    class Meta:
        model = ProductionUnit
        fields = ["id", "code", "name"]
        read_only_fields = ["id"]


class EquipmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Equipment
        fields = ["id", "code", "name"]
        read_only_fields = ["id"]


class FailureModeSerializer(serializers.ModelSerializer):
    class Meta:
        model = FailureMode
        fields = ["id", "code", "name"]
        read_only_fields = ["id"]
