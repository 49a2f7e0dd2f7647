# lab_core/orders/services/turnaround.py
from __future__ import annotations

from typing import Optional
from uuid import UUID

from django.core.exceptions import FieldDoesNotExist
from django.db import transaction
from django.db.models import Avg
from rest_framework.exceptions import NotFound

from lab_core.orders.conf import lab_orders_settings
from lab_core.orders.models import LabOrder, LabOrderItem


def _tracks_average_tat() -> bool:
    if not lab_orders_settings().track_average_tat:
        return False
    try:
        LabOrder._meta.get_field("average_tat")
    except FieldDoesNotExist:
        return False
    return True


class TurnaroundService:
    @staticmethod
    @transaction.atomic
    def recalculate(*, order_id: UUID) -> Optional[float]:
        """
        Store the mean turnaround of the order's timed items on `average_tat`.

        Returns the stored mean, or None when nothing was written (no timed items,
        or the deployment does not track the average).
        """
        if not LabOrder.objects.filter(id=order_id).exists():
            raise NotFound("Lab order not found.")

        if not _tracks_average_tat():
            return None

        avg = (
            LabOrderItem.objects.filter(order_id=order_id, turnaround_time__isnull=False)
            .aggregate(avg=Avg("turnaround_time"))["avg"]
        )
        # no timed items yet: keep whatever is stored
        if avg is None:
            return None

        avg = float(avg)
        LabOrder.objects.filter(id=order_id).update(average_tat=avg)
        return avg
