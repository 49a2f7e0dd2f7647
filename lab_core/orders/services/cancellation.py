# lab_core/orders/services/cancellation.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone
from loguru import logger
from rest_framework.exceptions import NotFound, PermissionDenied

from lab_core.audit.services import AuditService
from lab_core.common.api.exceptions import ConflictError
from lab_core.common.permissions import CAP_CANCEL_ORDERS, Actor
from lab_core.orders.models import LabItemStatus, LabOrder, LabOrderItem, LabOrderStatus
from lab_core.orders.selectors import OrderSelector
from lab_core.orders.services.notes import append_note

DEFAULT_REASON = "Manual cancellation"


@dataclass(frozen=True)
class CancellationResult:
    order_id: UUID
    cancelled_by: int
    cancelled_at: datetime
    items_cancelled: int


def cancel_order_rows(*, order_id: UUID, now: datetime) -> int:
    """
    Mark the order cancelled and cancel every item that is not completed.

    Caller owns the transaction. Returns the number of items cancelled.
    """
    items_cancelled = (
        LabOrderItem.objects.filter(order_id=order_id)
        .exclude(status__in=[LabItemStatus.COMPLETED, LabItemStatus.CANCELLED])
        .update(status=LabItemStatus.CANCELLED, updated_at=now)
    )
    updated = LabOrder.objects.filter(id=order_id).update(status=LabOrderStatus.CANCELLED, updated_at=now)
    if updated == 0:
        raise ConflictError("Lab order not found or no changes made.")
    return items_cancelled


class CancellationService:
    @staticmethod
    @transaction.atomic
    def cancel_order(
        *,
        order_id: UUID,
        actor: Actor,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> CancellationResult:
        if not actor.can(CAP_CANCEL_ORDERS):
            raise PermissionDenied("You do not have permission to cancel lab orders.")

        try:
            order = OrderSelector.get_order(order_id=order_id, for_update=True)
        except OrderSelector.NotFound:
            raise NotFound("Lab order not found.")

        if order.status == LabOrderStatus.COMPLETED:
            raise ConflictError("Cannot cancel a completed lab order.", code="order_completed")
        if order.status == LabOrderStatus.CANCELLED:
            raise ConflictError("Lab order is already cancelled.", code="order_already_cancelled")

        now = now or timezone.now()
        reason = (reason or "").strip() or DEFAULT_REASON

        items_cancelled = cancel_order_rows(order_id=order.id, now=now)
        append_note(
            order_id=order.id,
            body=f"Cancelled by employee ID: {actor.display_id} - Reason: {reason}",
            author_id=actor.user_id,
            at=now,
        )
        AuditService.log(
            event_code="cancelled",
            entity_type="LabOrder",
            entity_id=order.id,
            actor_user_id=actor.user_id,
            detail=f"Lab order manually cancelled by employee ID: {actor.display_id}. Reason: {reason}",
            metadata={
                "previous_status": order.status,
                "reason": reason,
                "items_cancelled": items_cancelled,
            },
        )
        logger.info("Lab order {} cancelled by user {} ({} items)", order.id, actor.display_id, items_cancelled)

        return CancellationResult(
            order_id=order.id,
            cancelled_by=actor.display_id,
            cancelled_at=now,
            items_cancelled=items_cancelled,
        )
