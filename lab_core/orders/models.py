# lab_core/orders/models.py
from django.conf import settings
from django.db import models
from django.utils import timezone

from lab_core.common.models import UUIDModel
from lab_core.orders.conf import lab_orders_settings


class LabOrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"
    PARTIAL = "partial", "Partial"


class LabItemStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    IN_PROGRESS = "in_progress", "In Progress"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


TERMINAL_ORDER_STATUSES = frozenset({LabOrderStatus.COMPLETED.value, LabOrderStatus.CANCELLED.value})


class LabOrder(UUIDModel):
    """
    A lab test request for one patient, grouping one or more items.

    `status` is the single canonical aggregate status; `overall_status` is a
    read-only alias kept for legacy consumers.
    """
    # external patient directory reference
    patient_id = models.UUIDField(db_index=True)
    ordered_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="lab_orders",
        null=True,
        blank=True,
    )
    order_date = models.DateTimeField(default=timezone.now, db_index=True)

    status = models.CharField(
        max_length=16,
        choices=LabOrderStatus.choices,
        default=LabOrderStatus.PENDING,
        db_index=True,
    )

    # minutes; mean turnaround of completed items
    average_tat = models.FloatField(null=True, blank=True)

    class Meta:
        db_table = "orders_lab_order"
        indexes = [
            models.Index(fields=["status", "order_date"], name="lab_order_status_date_idx"),
        ]

    def __str__(self) -> str:
        return f"LabOrder {self.id} ({self.status})"

    @property
    def overall_status(self) -> str:
        return self.status

    @property
    def is_terminal(self) -> bool:
        return str(self.status) in TERMINAL_ORDER_STATUSES

    @property
    def remarks_display(self) -> str:
        return "; ".join(note.render() for note in self.notes.all())


class LabOrderNote(models.Model):
    """
    One append-only remarks entry. Never edited; rendered at the API boundary.
    """
    order = models.ForeignKey(LabOrder, on_delete=models.CASCADE, related_name="notes")
    # NULL author => system
    author = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="lab_order_notes",
        null=True,
        blank=True,
    )
    body = models.TextField()
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        db_table = "orders_lab_order_note"
        ordering = ["created_at", "id"]

    def render(self) -> str:
        ts = timezone.localtime(self.created_at, lab_orders_settings().time_zone).strftime("%Y-%m-%d %H:%M:%S")
        return f"[{ts}] {self.body}"


class LabOrderItem(UUIDModel):
    """
    One diagnostic test within an order, tracked independently to completion.
    """
    order = models.ForeignKey(LabOrder, on_delete=models.CASCADE, related_name="items")
    test_type = models.CharField(max_length=128)

    status = models.CharField(
        max_length=16,
        choices=LabItemStatus.choices,
        default=LabItemStatus.PENDING,
        db_index=True,
    )

    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    # minutes
    waiting_time = models.IntegerField(null=True, blank=True)
    turnaround_time = models.IntegerField(null=True, blank=True)

    # opaque reference into the result-artifact store
    result_ref = models.CharField(max_length=255, blank=True, default="")
    remarks = models.TextField(blank=True, default="")

    class Meta:
        db_table = "orders_lab_order_item"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["order", "status"], name="lab_item_order_status_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.test_type} ({self.status})"
