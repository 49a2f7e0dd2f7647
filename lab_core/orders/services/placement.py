# lab_core/orders/services/placement.py
from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone
from loguru import logger
from rest_framework.exceptions import PermissionDenied, ValidationError

from lab_core.audit.services import AuditService
from lab_core.common.permissions import CAP_PLACE_ORDERS, Actor
from lab_core.orders.models import LabItemStatus, LabOrder, LabOrderItem, LabOrderStatus
from lab_core.orders.services.notes import append_note


class OrderService:
    """
    Order placement. A new order starts pending with one pending item per test.
    """

    @staticmethod
    def _clean_test_types(test_types: Iterable[str]) -> list[str]:
        cleaned = []
        for raw in test_types or []:
            value = str(raw or "").strip()
            if value:
                cleaned.append(value)
        return cleaned

    @staticmethod
    @transaction.atomic
    def create_order(
        *,
        patient_id: UUID,
        test_types: Iterable[str],
        actor: Actor,
        remarks: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> LabOrder:
        if not actor.can(CAP_PLACE_ORDERS):
            raise PermissionDenied("You do not have permission to place lab orders.")

        tests = OrderService._clean_test_types(test_types)
        if not tests:
            raise ValidationError({"test_types": "At least one test type is required."})

        now = now or timezone.now()

        order = LabOrder.objects.create(
            patient_id=patient_id,
            ordered_by_id=actor.user_id,
            order_date=now,
            status=LabOrderStatus.PENDING,
        )
        for test_type in tests:
            LabOrderItem.objects.create(order=order, test_type=test_type, status=LabItemStatus.PENDING)

        remarks = (remarks or "").strip()
        if remarks:
            append_note(order_id=order.id, body=remarks, author_id=actor.user_id, at=now)

        AuditService.log(
            event_code="created",
            entity_type="LabOrder",
            entity_id=order.id,
            actor_user_id=actor.user_id,
            detail=f"Lab order placed with {len(tests)} test(s)",
            metadata={"patient_id": str(patient_id), "test_types": tests},
        )
        logger.info("Lab order {} placed by user {} ({} items)", order.id, actor.display_id, len(tests))
        return order
