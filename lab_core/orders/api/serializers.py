# lab_core/orders/api/serializers.py
from __future__ import annotations

from rest_framework import serializers

from lab_core.orders.models import LabItemStatus, LabOrder, LabOrderItem, LabOrderNote, LabOrderStatus
from lab_core.orders.rules import ItemStatusCounts


# ---------------------------------------------------------------------------
# Input
# ---------------------------------------------------------------------------
class LabOrderCreateSerializer(serializers.Serializer):
    patient_id = serializers.UUIDField()
    test_types = serializers.ListField(
        child=serializers.CharField(max_length=128, allow_blank=True),
        allow_empty=False,
    )
    remarks = serializers.CharField(required=False, allow_blank=True, default="")


class OrderStatusUpdateSerializer(serializers.Serializer):
    overall_status = serializers.ChoiceField(choices=LabOrderStatus.choices, required=False)
    auto_update = serializers.BooleanField(required=False, default=False)
    remarks = serializers.CharField(required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if not attrs.get("overall_status") and not attrs.get("auto_update"):
            raise serializers.ValidationError(
                {"overall_status": "This field is required unless auto_update is set."}
            )
        return attrs


class OrderCancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True, default="")


class ItemStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=LabItemStatus.choices)
    remarks = serializers.CharField(required=False, allow_blank=True, allow_null=True, default=None)


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------
class LabOrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = LabOrderItem
        fields = [
            "id",
            "test_type",
            "status",
            "started_at",
            "completed_at",
            "waiting_time",
            "turnaround_time",
            "result_ref",
            "remarks",
            "updated_at",
        ]


class LabOrderNoteSerializer(serializers.ModelSerializer):
    author_id = serializers.SerializerMethodField()

    class Meta:
        model = LabOrderNote
        fields = ["id", "author_id", "body", "created_at"]

    def get_author_id(self, obj) -> int:
        # 0 => system
        return obj.author_id or 0


class LabOrderSerializer(serializers.ModelSerializer):
    overall_status = serializers.CharField(read_only=True)
    ordered_by_id = serializers.IntegerField(read_only=True, allow_null=True)
    remarks = serializers.CharField(source="remarks_display", read_only=True)
    notes = LabOrderNoteSerializer(many=True, read_only=True)
    items = LabOrderItemSerializer(many=True, read_only=True)
    status_summary = serializers.SerializerMethodField()

    class Meta:
        model = LabOrder
        fields = [
            "id",
            "patient_id",
            "ordered_by_id",
            "order_date",
            "status",
            "overall_status",
            "average_tat",
            "remarks",
            "notes",
            "status_summary",
            "items",
            "created_at",
            "updated_at",
        ]

    def get_status_summary(self, obj) -> dict:
        counts = ItemStatusCounts.from_statuses(item.status for item in obj.items.all())
        return counts.as_dict()
