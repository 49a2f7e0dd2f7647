# lab_core/orders/filters.py
from __future__ import annotations

import django_filters

from lab_core.orders.models import LabOrder, LabOrderStatus


class LabOrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=LabOrderStatus.choices)
    patient_id = django_filters.UUIDFilter(field_name="patient_id")
    order_date = django_filters.DateFilter(field_name="order_date", lookup_expr="date")
    ordered_from = django_filters.IsoDateTimeFilter(field_name="order_date", lookup_expr="gte")
    ordered_to = django_filters.IsoDateTimeFilter(field_name="order_date", lookup_expr="lt")

    class Meta:
        model = LabOrder
        fields = ["status", "patient_id", "order_date"]
