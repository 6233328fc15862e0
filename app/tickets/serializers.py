"""
Serializers for the tickets API.
"""

from dataclasses import fields

from rest_framework import serializers

from references.models import Equipment, ProductionUnit
from references.serializers import (
    EquipmentSerializer,
    FailureModeSerializer,
    ProductionUnitSerializer,
)
from users.serializers import UserNestedSerializer

from .actions import (
    AcceptPayload,
    Action,
    ApproveClosePayload,
    ApproveReviewPayload,
    CriticalLevel,
    DeletePayload,
    EscalatePayload,
    FinishPayload,
    PlanPayload,
    ReassignPayload,
    RejectPayload,
    ReopenPayload,
    StartPayload,
)
from .models import Ticket, TicketComment, TicketImage, TicketStatusHistory


# --- Action Payload Serializers ---
# Wire-level types only. Required fields and business rules are checked
# by the lifecycle engine so every violation is reported in one response.


def _optional_text():
    return serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=1000
    )


def _optional_datetime():
    return serializers.DateTimeField(required=False, allow_null=True)


def _optional_id():
    return serializers.IntegerField(required=False, allow_null=True)


class ActionPayloadSerializer(serializers.Serializer):
    """Base class: maps validated data onto the action's payload type."""

    payload_class = None

    expected_version = serializers.IntegerField(
        required=False, min_value=1, write_only=True
    )

    def to_payload(self):
        return self.payload_class(
            **{
                field.name: self.validated_data.get(field.name)
                for field in fields(self.payload_class)
            }
        )


class AcceptSerializer(ActionPayloadSerializer):
    payload_class = AcceptPayload

    note = _optional_text()
    production_unit_id = _optional_id()
    equipment_id = _optional_id()
    critical_level = serializers.CharField(required=False, allow_null=True)


class PlanSerializer(ActionPayloadSerializer):
    payload_class = PlanPayload

    schedule_start = _optional_datetime()
    schedule_finish = _optional_datetime()
    assigned_to_id = _optional_id()
    note = _optional_text()


class ReassignSerializer(PlanSerializer):
    payload_class = ReassignPayload


class StartSerializer(ActionPayloadSerializer):
    payload_class = StartPayload

    actual_start_at = _optional_datetime()
    note = _optional_text()


class RejectSerializer(ActionPayloadSerializer):
    payload_class = RejectPayload

    reason = _optional_text()


class ReopenSerializer(RejectSerializer):
    payload_class = ReopenPayload


class DeleteSerializer(RejectSerializer):
    payload_class = DeletePayload


class FinishSerializer(ActionPayloadSerializer):
    payload_class = FinishPayload

    downtime_avoidance_hours = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, allow_null=True
    )
    cost_avoidance = serializers.DecimalField(
        max_digits=18, decimal_places=2, required=False, allow_null=True
    )
    failure_mode_id = _optional_id()
    actual_finish_at = _optional_datetime()
    note = _optional_text()


class EscalateSerializer(ActionPayloadSerializer):
    payload_class = EscalatePayload

    reason = _optional_text()
    escalate_to_id = _optional_id()


class ApproveReviewSerializer(ActionPayloadSerializer):
    payload_class = ApproveReviewPayload

    satisfaction_rating = serializers.IntegerField(
        required=False, allow_null=True
    )
    note = _optional_text()


class ApproveCloseSerializer(ActionPayloadSerializer):
    payload_class = ApproveClosePayload

    note = _optional_text()


ACTION_SERIALIZERS = {
    Action.ACCEPT: AcceptSerializer,
    Action.PLAN: PlanSerializer,
    Action.START: StartSerializer,
    Action.REJECT: RejectSerializer,
    Action.FINISH: FinishSerializer,
    Action.ESCALATE: EscalateSerializer,
    Action.APPROVE_REVIEW: ApproveReviewSerializer,
    Action.REOPEN: ReopenSerializer,
    Action.APPROVE_CLOSE: ApproveCloseSerializer,
    Action.REASSIGN: ReassignSerializer,
    Action.DELETE: DeleteSerializer,
}


class TicketCommentCreateSerializer(serializers.Serializer):
    comment = serializers.CharField(
        allow_blank=True, trim_whitespace=False, max_length=2000
    )


class TicketEvidenceCreateSerializer(serializers.Serializer):
    image_type = serializers.CharField(max_length=20)
    image_url = serializers.CharField(max_length=500)
    image_name = serializers.CharField(
        max_length=255, required=False, allow_blank=True, default=""
    )


# --- Core Serializers ---


class TicketListSerializer(serializers.ModelSerializer):
    """Serializer for the ticket LIST view (lightweight)."""

    production_unit = ProductionUnitSerializer(read_only=True)
    assigned_to = UserNestedSerializer(read_only=True)

    class Meta:
        model = Ticket
        fields = [
            "id",
            "ticket_number",
            "title",
            "status",
            "critical_level",
            "production_unit",
            "assigned_to",
            "created_at",
        ]
        read_only_fields = fields


class TicketImageSerializer(serializers.ModelSerializer):
    uploaded_by = UserNestedSerializer(read_only=True)

    class Meta:
        model = TicketImage
        fields = [
            "id",
            "image_type",
            "image_url",
            "image_name",
            "uploaded_by",
            "uploaded_at",
        ]
        read_only_fields = fields


class TicketDetailSerializer(TicketListSerializer):
    """Full detail serializer with workflow tracking and context."""

    created_by = UserNestedSerializer(read_only=True)
    equipment = EquipmentSerializer(read_only=True)
    failure_mode = FailureModeSerializer(read_only=True)
    images = TicketImageSerializer(many=True, read_only=True)

    # --- Contextual Fields (populated by the ViewSet) ---
    available_transitions = serializers.SerializerMethodField()
    standing = serializers.SerializerMethodField()

    class Meta(TicketListSerializer.Meta):
        fields = TicketListSerializer.Meta.fields + [
            "description",
            "version",
            "created_by",
            "equipment",
            "schedule_start",
            "schedule_finish",
            "actual_start_at",
            "actual_finish_at",
            "downtime_avoidance_hours",
            "cost_avoidance",
            "failure_mode",
            "satisfaction_rating",
            "accepted_at",
            "rejected_at",
            "rejection_reason",
            "escalated_at",
            "escalation_reason",
            "finished_at",
            "reviewed_at",
            "closed_at",
            "updated_at",
            "images",
            "available_transitions",
            "standing",
        ]
        read_only_fields = fields

    def get_available_transitions(self, obj):
        # Read from context (populated by ViewSet)
        return self.context.get("available_transitions", [])

    def get_standing(self, obj):
        return self.context.get("standing", {})


class TicketCreateSerializer(serializers.ModelSerializer):
    """Serializer for CREATE action (writable fields)."""

    production_unit = serializers.PrimaryKeyRelatedField(
        queryset=ProductionUnit.objects.filter(is_active=True)
    )
    equipment = serializers.PrimaryKeyRelatedField(
        queryset=Equipment.objects.filter(is_active=True),
        required=False,
        allow_null=True,
    )
    critical_level = serializers.ChoiceField(
        choices=[level.value for level in CriticalLevel],
        default=CriticalLevel.MEDIUM.value,
    )

    class Meta:
        model = Ticket
        fields = [
            "title",
            "description",
            "production_unit",
            "equipment",
            "critical_level",
        ]


class TicketStatusHistorySerializer(serializers.ModelSerializer):
    changed_by = UserNestedSerializer(read_only=True)
    to_user = UserNestedSerializer(read_only=True)

    class Meta:
        model = TicketStatusHistory
        fields = [
            "id",
            "from_status",
            "to_status",
            "changed_by",
            "to_user",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class TicketCommentSerializer(serializers.ModelSerializer):
    user = UserNestedSerializer(read_only=True)

    class Meta:
        model = TicketComment
        fields = ["id", "user", "comment", "kind", "created_at"]
        read_only_fields = fields
