# lab_core/common/permissions.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Set

from rest_framework.permissions import BasePermission

# Group/role names (Django auth Group names)
ROLE_ADMIN = "ADMIN"
ROLE_DOCTOR = "DOCTOR"
ROLE_NURSE = "NURSE"
ROLE_LAB = "LAB"
ROLE_READONLY = "READONLY"

# Capabilities checked by services and API permissions
CAP_VIEW_ORDERS = "view_lab_orders"
CAP_PLACE_ORDERS = "place_lab_orders"
CAP_UPDATE_ORDER_STATUS = "update_lab_order_status"
CAP_MANAGE_RESULTS = "manage_lab_results"
CAP_CANCEL_ORDERS = "cancel_lab_orders"
CAP_LAB_TECHNICIAN = "lab_technician"
CAP_RUN_AUTO_CANCEL = "run_auto_cancel"

ROLE_CAPABILITIES: dict[str, Set[str]] = {
    ROLE_ADMIN: {
        CAP_VIEW_ORDERS,
        CAP_PLACE_ORDERS,
        CAP_UPDATE_ORDER_STATUS,
        CAP_MANAGE_RESULTS,
        CAP_CANCEL_ORDERS,
    },
    ROLE_DOCTOR: {CAP_VIEW_ORDERS, CAP_PLACE_ORDERS, CAP_UPDATE_ORDER_STATUS},
    ROLE_NURSE: {CAP_VIEW_ORDERS, CAP_PLACE_ORDERS, CAP_UPDATE_ORDER_STATUS},
    # Timing capture is a technician concern only; admins manage results without it.
    ROLE_LAB: {
        CAP_VIEW_ORDERS,
        CAP_PLACE_ORDERS,
        CAP_UPDATE_ORDER_STATUS,
        CAP_MANAGE_RESULTS,
        CAP_CANCEL_ORDERS,
        CAP_LAB_TECHNICIAN,
    },
    ROLE_READONLY: {CAP_VIEW_ORDERS},
}

# Reported actor id for system-authored events (sweep, maintenance jobs)
SYSTEM_ACTOR_ID = 0


def _user_roles(user) -> Set[str]:
    """
    Roles are the names of the user's Django auth Groups. Superusers act as ADMIN;
    authenticated users in no group are READONLY.
    """
    roles: Set[str] = set()

    if not user or not getattr(user, "is_authenticated", False):
        return roles

    if getattr(user, "is_superuser", False):
        roles.add(ROLE_ADMIN)
        return roles

    roles.update(user.groups.values_list("name", flat=True))

    if not roles:
        roles.add(ROLE_READONLY)

    return roles


def capabilities_for(user) -> FrozenSet[str]:
    if not user or not getattr(user, "is_authenticated", False):
        return frozenset()

    caps: Set[str] = {CAP_RUN_AUTO_CANCEL}
    for role in _user_roles(user):
        caps.update(ROLE_CAPABILITIES.get(role, set()))
    return frozenset(caps)


@dataclass(frozen=True)
class Actor:
    """
    Acting identity handed to services.

    user_id is None for the reserved system actor.
    """
    user_id: int | None
    capabilities: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def from_user(cls, user) -> "Actor":
        return cls(user_id=getattr(user, "id", None), capabilities=capabilities_for(user))

    @classmethod
    def system(cls) -> "Actor":
        return cls(user_id=None, capabilities=frozenset())

    @property
    def is_system(self) -> bool:
        return self.user_id is None

    @property
    def display_id(self) -> int:
        return SYSTEM_ACTOR_ID if self.user_id is None else self.user_id

    def can(self, capability: str) -> bool:
        return capability in self.capabilities


class CapabilityPermission(BasePermission):
    """
    Maps viewset actions to a required capability.

    Override `required_capability_per_action` in subclasses.
    Unknown actions are denied.
    """
    message = "You do not have permission to perform this action."

    required_capability_per_action: dict[str, str] = {}

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not user or not getattr(user, "is_authenticated", False):
            return False

        action = getattr(view, "action", None)
        required = self.required_capability_per_action.get(action)
        if required is None:
            return False

        return required in capabilities_for(user)

    def has_object_permission(self, request, view, obj) -> bool:
        return self.has_permission(request, view)
