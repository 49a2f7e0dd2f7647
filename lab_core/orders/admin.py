# lab_core/orders/admin.py
from __future__ import annotations

from django.contrib import admin

from lab_core.orders.models import LabOrder, LabOrderItem, LabOrderNote


class LabOrderItemInline(admin.TabularInline):
    model = LabOrderItem
    extra = 0
    fields = (
        "id",
        "test_type",
        "status",
        "started_at",
        "completed_at",
        "waiting_time",
        "turnaround_time",
    )
    readonly_fields = ("id", "started_at", "completed_at", "waiting_time", "turnaround_time")


class LabOrderNoteInline(admin.TabularInline):
    model = LabOrderNote
    extra = 0
    fields = ("created_at", "author", "body")
    readonly_fields = ("created_at", "author", "body")

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(LabOrder)
class LabOrderAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "patient_id",
        "ordered_by",
        "order_date",
        "status",
        "average_tat",
        "updated_at",
    )
    list_filter = ("status",)
    search_fields = ("id", "patient_id")
    ordering = ("-order_date",)
    readonly_fields = ("created_at", "updated_at", "average_tat")
    list_select_related = ("ordered_by",)
    inlines = [LabOrderItemInline, LabOrderNoteInline]


@admin.register(LabOrderItem)
class LabOrderItemAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "order",
        "test_type",
        "status",
        "waiting_time",
        "turnaround_time",
        "updated_at",
    )
    list_filter = ("status", "test_type")
    search_fields = ("id", "order__id", "test_type")
    ordering = ("-created_at",)
    readonly_fields = ("created_at", "updated_at")
    list_select_related = ("order",)
