# lab_core/audit/api/serializers.py
from rest_framework import serializers

from lab_core.audit.models import AuditEvent


class AuditEventSerializer(serializers.ModelSerializer):
    # Keep API field name "timestamp", but map it to real model field "occurred_at"
    timestamp = serializers.DateTimeField(source="occurred_at", read_only=True)

    # 0 for the system actor
    actor_id = serializers.IntegerField(read_only=True)
    action = serializers.CharField(source="event_code", read_only=True)

    class Meta:
        model = AuditEvent
        fields = [
            "id",
            "entity_type",
            "entity_id",
            "action",
            "actor_id",
            "detail",
            "timestamp",
            "metadata",
        ]
        read_only_fields = fields
