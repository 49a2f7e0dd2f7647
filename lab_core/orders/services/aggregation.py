# lab_core/orders/services/aggregation.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone
from loguru import logger
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from lab_core.audit.services import AuditService
from lab_core.common.api.exceptions import ConflictError
from lab_core.common.permissions import CAP_UPDATE_ORDER_STATUS, Actor
from lab_core.orders.models import LabOrder, LabOrderItem, LabOrderStatus
from lab_core.orders.rules import compute_order_status, settle_order_status
from lab_core.orders.selectors import OrderSelector, item_status_counts, orders_missing_completion
from lab_core.orders.services.notes import append_note

# Explicit targets that force every item into the same state
CASCADING_STATUSES = (LabOrderStatus.COMPLETED, LabOrderStatus.CANCELLED)


@dataclass(frozen=True)
class AggregationResult:
    order_id: UUID
    old_status: str
    new_status: str
    total_items: int
    completed_items: int
    auto_update: bool

    def as_dict(self) -> dict:
        return {
            "order_id": str(self.order_id),
            "old_status": self.old_status,
            "new_status": self.new_status,
            "total_items": self.total_items,
            "completed_items": self.completed_items,
            "auto_update": self.auto_update,
        }


class OrderStatusService:
    """
    Order-level status writes.

    Two entry points:
    - update_status: API/override path (explicit target or auto recompute, logged)
    - recompute: internal path used after item transitions (auto, not logged)
    """

    @staticmethod
    def _validate(*, status: Optional[str], auto_update: bool) -> None:
        if status and status not in LabOrderStatus.values:
            raise ValidationError({"overall_status": f"Invalid status value: {status}."})
        if not status and not auto_update:
            raise ValidationError({"overall_status": "Provide a status or set auto_update."})

    @staticmethod
    @transaction.atomic
    def update_status(
        *,
        order_id: UUID,
        status: Optional[str] = None,
        auto_update: bool = False,
        remarks: Optional[str] = None,
        actor: Optional[Actor] = None,
        now: Optional[datetime] = None,
    ) -> AggregationResult:
        if actor is not None and not actor.can(CAP_UPDATE_ORDER_STATUS):
            raise PermissionDenied("You do not have permission to update lab order status.")

        OrderStatusService._validate(status=status, auto_update=auto_update)

        try:
            order = OrderSelector.get_order(order_id=order_id, for_update=True)
        except OrderSelector.NotFound:
            raise NotFound("Lab order not found.")

        now = now or timezone.now()
        old_status = order.status

        counts = item_status_counts(order_id=order.id)
        if auto_update:
            new_status = settle_order_status(old_status, compute_order_status(counts))
        else:
            new_status = status

        if new_status in CASCADING_STATUSES:
            LabOrderItem.objects.filter(order_id=order.id).exclude(status=new_status).update(
                status=new_status,
                updated_at=now,
            )
            counts = item_status_counts(order_id=order.id)

        updated = LabOrder.objects.filter(id=order.id).update(status=new_status, updated_at=now)
        if updated == 0:
            raise ConflictError("Lab order not found or no changes made.")

        remarks = (remarks or "").strip()
        if remarks:
            append_note(
                order_id=order.id,
                body=remarks,
                author_id=actor.user_id if actor else None,
                at=now,
            )

        result = AggregationResult(
            order_id=order.id,
            old_status=old_status,
            new_status=str(new_status),
            total_items=counts.total,
            completed_items=counts.completed,
            auto_update=auto_update,
        )

        if actor is not None:
            AuditService.log(
                event_code="status_updated",
                entity_type="LabOrder",
                entity_id=order.id,
                actor_user_id=actor.user_id,
                detail=f"Overall status changed from {old_status} to {new_status}",
                metadata={**result.as_dict(), **counts.as_dict()},
            )

        logger.debug(
            "Lab order {} status {} -> {} (auto={}, items={}/{})",
            order.id,
            old_status,
            new_status,
            auto_update,
            counts.completed,
            counts.total,
        )
        return result

    @staticmethod
    def recompute(*, order_id: UUID, now: Optional[datetime] = None) -> AggregationResult:
        return OrderStatusService.update_status(order_id=order_id, auto_update=True, now=now)

    @staticmethod
    def reconcile_completed(*, now: Optional[datetime] = None) -> list[AggregationResult]:
        """
        Repair orders whose items are all completed but whose status lags behind.

        Each order is recomputed in its own transaction.
        """
        results = []
        for order_id in list(orders_missing_completion().values_list("id", flat=True)):
            results.append(OrderStatusService.recompute(order_id=order_id, now=now))
        if results:
            logger.info("Reconciled {} lab order(s) to completed", len(results))
        return results
