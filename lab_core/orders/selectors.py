# lab_core/orders/selectors.py
from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo
from uuid import UUID

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db.models import Count, F, Q, QuerySet

from lab_core.orders.models import LabItemStatus, LabOrder, LabOrderItem, LabOrderStatus
from lab_core.orders.rules import ItemStatusCounts


class OrderSelector:
    class NotFound(Exception):
        pass

    @staticmethod
    def get_order(*, order_id: UUID, for_update: bool = False) -> LabOrder:
        qs = LabOrder.objects.all()
        if for_update:
            qs = qs.select_for_update()
        else:
            qs = qs.select_related("ordered_by").prefetch_related("items", "notes")
        try:
            return qs.get(id=order_id)
        except (LabOrder.DoesNotExist, DjangoValidationError, ValueError):
            raise OrderSelector.NotFound()

    @staticmethod
    def list_orders(
        *,
        status: str | None = None,
        order_date: date | None = None,
        patient_id: UUID | None = None,
    ) -> QuerySet[LabOrder]:
        qs = (
            LabOrder.objects.all()
            .select_related("ordered_by")
            .prefetch_related("items", "notes")
            .order_by("-order_date")
        )
        if status:
            qs = qs.filter(status=status)
        if order_date:
            qs = qs.filter(order_date__date=order_date)
        if patient_id:
            qs = qs.filter(patient_id=patient_id)
        return qs


class ItemSelector:
    class NotFound(Exception):
        pass

    @staticmethod
    def get_item(*, item_id: UUID) -> LabOrderItem:
        try:
            return LabOrderItem.objects.select_related("order").get(id=item_id)
        except (LabOrderItem.DoesNotExist, DjangoValidationError, ValueError):
            raise ItemSelector.NotFound()


def item_status_counts(*, order_id: UUID) -> ItemStatusCounts:
    """
    Current item-status tallies for one order, read straight from the DB.
    """
    agg = LabOrderItem.objects.filter(order_id=order_id).aggregate(
        total=Count("id"),
        pending=Count("id", filter=Q(status=LabItemStatus.PENDING)),
        in_progress=Count("id", filter=Q(status=LabItemStatus.IN_PROGRESS)),
        completed=Count("id", filter=Q(status=LabItemStatus.COMPLETED)),
        cancelled=Count("id", filter=Q(status=LabItemStatus.CANCELLED)),
    )
    return ItemStatusCounts(**{k: int(v or 0) for k, v in agg.items()})


def local_day_bounds(day: date, tz: tzinfo) -> tuple[datetime, datetime]:
    """[start, end) of a local calendar day as aware datetimes."""
    start = datetime.combine(day, time.min, tzinfo=tz)
    return start, start + timedelta(days=1)


def sweep_candidates(*, day: date, tz: tzinfo) -> QuerySet[LabOrder]:
    """
    Orders placed on `day` (local), still pending/in_progress, with no completed item.
    """
    start, end = local_day_bounds(day, tz)
    return (
        LabOrder.objects.filter(
            order_date__gte=start,
            order_date__lt=end,
            status__in=[LabOrderStatus.PENDING, LabOrderStatus.IN_PROGRESS],
        )
        .annotate(n_completed=Count("items", filter=Q(items__status=LabItemStatus.COMPLETED)))
        .filter(n_completed=0)
        .order_by("order_date")
    )


def orders_missing_completion() -> QuerySet[LabOrder]:
    """
    Orders whose items are all completed but whose stored status says otherwise.
    """
    return (
        LabOrder.objects.annotate(
            n_items=Count("items"),
            n_completed=Count("items", filter=Q(items__status=LabItemStatus.COMPLETED)),
        )
        .filter(n_items__gt=0, n_completed=F("n_items"))
        .exclude(status=LabOrderStatus.COMPLETED)
        .order_by("order_date")
    )
