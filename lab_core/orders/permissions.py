# lab_core/orders/permissions.py

from __future__ import annotations

from lab_core.common.permissions import (
    CAP_CANCEL_ORDERS,
    CAP_MANAGE_RESULTS,
    CAP_PLACE_ORDERS,
    CAP_RUN_AUTO_CANCEL,
    CAP_UPDATE_ORDER_STATUS,
    CAP_VIEW_ORDERS,
    CapabilityPermission,
)


class LabOrderPermission(CapabilityPermission):
    """
    Action -> capability for LabOrderViewSet.

    Services re-check the same capability, so non-HTTP callers stay covered.
    """
    required_capability_per_action = {
        "list": CAP_VIEW_ORDERS,
        "retrieve": CAP_VIEW_ORDERS,
        "create": CAP_PLACE_ORDERS,
        "update_status": CAP_UPDATE_ORDER_STATUS,
        "cancel": CAP_CANCEL_ORDERS,
        "auto_cancel": CAP_RUN_AUTO_CANCEL,
    }


class LabOrderItemPermission(CapabilityPermission):
    required_capability_per_action = {
        "update_status": CAP_MANAGE_RESULTS,
    }
