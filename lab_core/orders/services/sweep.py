# lab_core/orders/services/sweep.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, time
from typing import List, Optional
from uuid import UUID

from django.db import transaction
from django.utils import timezone
from loguru import logger

from lab_core.audit.services import AuditService
from lab_core.orders.conf import lab_orders_settings
from lab_core.orders.models import LabItemStatus, LabOrder, LabOrderStatus
from lab_core.orders.selectors import sweep_candidates
from lab_core.orders.services.cancellation import cancel_order_rows
from lab_core.orders.services.notes import append_note

SWEEPABLE_STATUSES = (LabOrderStatus.PENDING, LabOrderStatus.IN_PROGRESS)


@dataclass(frozen=True)
class SweepResult:
    cancelled_count: int
    cancelled_orders: List[UUID]
    check_time: datetime
    skipped: List[UUID] = field(default_factory=list)
    ran: bool = True

    @property
    def message(self) -> str:
        if not self.ran:
            return "Auto-cancel cutoff not reached yet."
        return f"Auto-cancelled {self.cancelled_count} lab order(s)."


class AutoCancelService:
    """
    End-of-day sweep: today's orders with no completed item are cancelled once the
    configured cutoff has passed.

    Each candidate runs in its own transaction; a failing candidate is logged and
    skipped so the rest of the batch still goes through. Re-running the sweep picks
    up anything that was skipped.
    """

    @staticmethod
    def sweep(*, now: Optional[datetime] = None) -> SweepResult:
        conf = lab_orders_settings()
        now = now or timezone.now()
        if timezone.is_naive(now):
            now = timezone.make_aware(now, conf.time_zone)

        local_now = timezone.localtime(now, conf.time_zone)
        if local_now.time() < conf.auto_cancel_cutoff:
            logger.debug("Auto-cancel skipped: {} is before cutoff {}", local_now, conf.auto_cancel_cutoff)
            return SweepResult(cancelled_count=0, cancelled_orders=[], check_time=now, ran=False)

        candidate_ids = list(
            sweep_candidates(day=local_now.date(), tz=conf.time_zone).values_list("id", flat=True)
        )

        cancelled: List[UUID] = []
        skipped: List[UUID] = []
        for order_id in candidate_ids:
            try:
                done = AutoCancelService._cancel_one(
                    order_id=order_id,
                    now=now,
                    local_now=local_now,
                    cutoff=conf.auto_cancel_cutoff,
                )
            except Exception:
                logger.exception("Error auto-cancelling lab order {}", order_id)
                skipped.append(order_id)
                continue
            if done:
                cancelled.append(order_id)

        logger.info(
            "Auto-cancel sweep at {}: {} cancelled, {} skipped",
            local_now.isoformat(),
            len(cancelled),
            len(skipped),
        )
        return SweepResult(
            cancelled_count=len(cancelled),
            cancelled_orders=cancelled,
            check_time=now,
            skipped=skipped,
        )

    @staticmethod
    @transaction.atomic
    def _cancel_one(*, order_id: UUID, now: datetime, local_now: datetime, cutoff: time) -> bool:
        order = LabOrder.objects.select_for_update().get(id=order_id)

        # state may have moved since selection
        if order.status not in SWEEPABLE_STATUSES:
            return False
        if order.items.filter(status=LabItemStatus.COMPLETED).exists():
            return False

        items_cancelled = cancel_order_rows(order_id=order.id, now=now)
        append_note(
            order_id=order.id,
            body=(
                f"Automatically cancelled at {local_now:%Y-%m-%d %H:%M:%S} - "
                f"not fulfilled by {cutoff:%H:%M} cutoff deadline"
            ),
            author_id=None,
            at=now,
        )
        AuditService.log(
            event_code="auto_cancelled",
            entity_type="LabOrder",
            entity_id=order.id,
            actor_user_id=None,
            detail=f"Lab order automatically cancelled - not fulfilled by {cutoff:%H:%M} cutoff",
            metadata={
                "previous_status": order.status,
                "items_cancelled": items_cancelled,
                "check_time": now.isoformat(),
            },
        )
        return True
