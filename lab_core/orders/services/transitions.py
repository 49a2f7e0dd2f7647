# lab_core/orders/services/transitions.py
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from lab_core.audit.services import AuditService
from lab_core.common.api.exceptions import ConflictError
from lab_core.common.permissions import CAP_MANAGE_RESULTS, Actor
from lab_core.orders.models import LabItemStatus, LabOrderItem
from lab_core.orders.rules import ITEM_TRANSITION_POLICY, ItemTransitionPolicy
from lab_core.orders.selectors import ItemSelector
from lab_core.orders.services.aggregation import OrderStatusService
from lab_core.orders.services.turnaround import TurnaroundService


@dataclass(frozen=True)
class TransitionResult:
    item_id: UUID
    order_id: UUID
    old_status: str
    new_status: str
    order_status: str
    average_tat: Optional[float] = None

    def as_dict(self) -> dict:
        return {
            "item_id": str(self.item_id),
            "order_id": str(self.order_id),
            "old_status": self.old_status,
            "new_status": self.new_status,
            "order_status": self.order_status,
        }


class ItemTransitionService:
    """
    Moves a single item between statuses, then refreshes the owning order.

    The item write, the order recompute, the average TAT refresh and the log entry
    share one transaction.
    """

    policy: ItemTransitionPolicy = ITEM_TRANSITION_POLICY

    @staticmethod
    def transition_item(
        *,
        item_id: UUID,
        status: str,
        actor: Actor,
        remarks: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> TransitionResult:
        if not actor.can(CAP_MANAGE_RESULTS):
            raise PermissionDenied("You do not have permission to update lab results.")

        if status not in LabItemStatus.values:
            raise ValidationError({"status": f"Invalid status value: {status}."})

        return ItemTransitionService._apply(
            item_id=item_id,
            status=status,
            actor=actor,
            remarks=remarks,
            now=now or timezone.now(),
        )

    @staticmethod
    @transaction.atomic
    def _apply(
        *,
        item_id: UUID,
        status: str,
        actor: Actor,
        remarks: Optional[str],
        now: datetime,
    ) -> TransitionResult:
        try:
            item = ItemSelector.get_item(item_id=item_id)
        except ItemSelector.NotFound:
            raise NotFound("Lab order item not found.")

        order = item.order
        old_status = item.status

        if order.is_terminal:
            raise ConflictError(
                f"Lab order is already {order.status}; its items can no longer change.",
                code="order_terminal",
            )

        updates = ItemTransitionService.policy.resolve(
            item=item,
            order=order,
            target=status,
            capabilities=actor.capabilities,
            now=now,
        )
        if remarks is not None:
            updates["remarks"] = remarks

        rows = LabOrderItem.objects.filter(id=item.id).update(**updates, updated_at=now)
        if rows == 0:
            raise ConflictError("Lab order item not found or no changes made.")

        aggregation = OrderStatusService.recompute(order_id=order.id, now=now)
        average_tat = TurnaroundService.recalculate(order_id=order.id)

        AuditService.log(
            event_code="item_status_changed",
            entity_type="LabOrder",
            entity_id=order.id,
            actor_user_id=actor.user_id,
            detail=f"{item.test_type}: {old_status} -> {status}",
            metadata={
                "item_id": str(item.id),
                "old_status": old_status,
                "new_status": status,
                "order_status": aggregation.new_status,
            },
        )

        return TransitionResult(
            item_id=item.id,
            order_id=order.id,
            old_status=old_status,
            new_status=status,
            order_status=aggregation.new_status,
            average_tat=average_tat,
        )
