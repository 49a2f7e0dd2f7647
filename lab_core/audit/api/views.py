# lab_core/audit/api/views.py
from __future__ import annotations

from uuid import UUID

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.exceptions import ValidationError
from rest_framework.response import Response

from lab_core.audit.api.serializers import AuditEventSerializer
from lab_core.audit.models import AuditEvent
from lab_core.audit.selectors import list_audit_events
from lab_core.common.permissions import CAP_VIEW_ORDERS, CapabilityPermission


class AuditPermission(CapabilityPermission):
    required_capability_per_action = {
        "list": CAP_VIEW_ORDERS,
    }


class AuditEventViewSet(viewsets.GenericViewSet):
    """
    List lab order log entries.
    """
    permission_classes = [AuditPermission]

    serializer_class = AuditEventSerializer
    queryset = AuditEvent.objects.none()

    @extend_schema(
        tags=["Audit"],
        responses={200: AuditEventSerializer(many=True)},
        parameters=[
            OpenApiParameter(
                name="entity_type",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Filter by entity type (e.g. LabOrder).",
            ),
            OpenApiParameter(
                name="entity_id",
                type=OpenApiTypes.UUID,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Filter by entity UUID.",
            ),
            OpenApiParameter(
                name="event_code",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Filter by action (e.g. cancelled, auto_cancelled).",
            ),
            OpenApiParameter(
                name="actor_user_id",
                type=OpenApiTypes.INT,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Filter by actor user id (0 = system).",
            ),
            OpenApiParameter(
                name="limit",
                type=OpenApiTypes.INT,
                location=OpenApiParameter.QUERY,
                required=False,
                description="Max records to return (default 200, max 500).",
            ),
        ],
    )
    def list(self, request):
        entity_type = request.query_params.get("entity_type") or None
        entity_id_raw = request.query_params.get("entity_id") or None
        event_code = request.query_params.get("event_code") or None
        actor_user_raw = request.query_params.get("actor_user_id")

        entity_id = None
        if entity_id_raw:
            try:
                entity_id = UUID(str(entity_id_raw))
            except ValueError:
                raise ValidationError({"detail": "Invalid entity_id (UUID expected)"})

        actor_user_id = None
        if actor_user_raw is not None and actor_user_raw != "":
            try:
                actor_user_id = int(actor_user_raw)
            except ValueError:
                raise ValidationError({"detail": "Invalid actor_user_id (int expected)"})

        qs = list_audit_events(
            entity_type=entity_type,
            entity_id=entity_id,
            event_code=event_code,
            actor_user_id=actor_user_id,
        )

        limit = request.query_params.get("limit")
        try:
            limit_n = int(limit) if limit else 200
        except ValueError:
            limit_n = 200
        limit_n = max(1, min(limit_n, 500))

        return Response(AuditEventSerializer(qs[:limit_n], many=True).data, status=status.HTTP_200_OK)
