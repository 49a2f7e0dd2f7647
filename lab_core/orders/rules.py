# lab_core/orders/rules.py
"""
Pure lab-order rules: aggregate status and the item transition policy.

Nothing here touches the database; services feed in current state and persist
whatever these functions return.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, FrozenSet, Iterable, Mapping

from lab_core.common.api.exceptions import ConflictError
from lab_core.common.permissions import CAP_LAB_TECHNICIAN
from lab_core.orders.models import TERMINAL_ORDER_STATUSES, LabItemStatus, LabOrderStatus


# ---------------------------------------------------------------------------
# Aggregate status
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ItemStatusCounts:
    total: int = 0
    pending: int = 0
    in_progress: int = 0
    completed: int = 0
    cancelled: int = 0

    @classmethod
    def from_statuses(cls, statuses: Iterable[str]) -> "ItemStatusCounts":
        tally = {s: 0 for s in LabItemStatus.values}
        total = 0
        for s in statuses:
            total += 1
            if s in tally:
                tally[s] += 1
        return cls(
            total=total,
            pending=tally[LabItemStatus.PENDING.value],
            in_progress=tally[LabItemStatus.IN_PROGRESS.value],
            completed=tally[LabItemStatus.COMPLETED.value],
            cancelled=tally[LabItemStatus.CANCELLED.value],
        )

    def as_dict(self) -> Dict[str, int]:
        return {
            "total_items": self.total,
            "pending_items": self.pending,
            "in_progress_items": self.in_progress,
            "completed_items": self.completed,
            "cancelled_items": self.cancelled,
        }


def compute_order_status(counts: ItemStatusCounts) -> str:
    """
    Order status derived from item counts. First matching rule wins:

    1. no items               -> pending
    2. all completed          -> completed
    3. any completed/started  -> in_progress
    4. all cancelled          -> cancelled
    5. otherwise              -> pending
    """
    if counts.total == 0:
        return LabOrderStatus.PENDING
    if counts.completed == counts.total:
        return LabOrderStatus.COMPLETED
    if counts.completed > 0 or counts.in_progress > 0:
        return LabOrderStatus.IN_PROGRESS
    if counts.cancelled == counts.total:
        return LabOrderStatus.CANCELLED
    return LabOrderStatus.PENDING


def settle_order_status(stored: str, computed: str) -> str:
    """
    Status to persist after an automatic recompute.

    A completed or cancelled order keeps its status unless the items settle it
    into a terminal status as well.
    """
    stored, computed = str(stored), str(computed)
    if stored in TERMINAL_ORDER_STATUSES and computed not in TERMINAL_ORDER_STATUSES:
        return stored
    return computed


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, truncated toward zero."""
    return int((end - start).total_seconds() / 60)


# ---------------------------------------------------------------------------
# Item transition policy
# ---------------------------------------------------------------------------
# effect(item, order, now) -> field updates for the item row
Effect = Callable[[Any, Any, datetime], Dict[str, Any]]


def stamp_started(item, order, now: datetime) -> Dict[str, Any]:
    return {
        "started_at": now,
        "waiting_time": minutes_between(order.order_date, now),
    }


def stamp_completed(item, order, now: datetime) -> Dict[str, Any]:
    # turnaround needs a start; items that skipped in_progress get none
    if item.started_at is None:
        return {}
    return {
        "completed_at": now,
        "turnaround_time": minutes_between(item.started_at, now),
    }


@dataclass(frozen=True)
class TransitionRule:
    source: str
    target: str
    capability: str
    effect: Effect


@dataclass(frozen=True)
class ItemTransitionPolicy:
    """
    (source state, actor capability) -> allowed targets + side effects.

    `allowed_targets` is the reachability table; `rules` attach effects that fire
    only when the actor holds the rule's capability.
    """
    allowed_targets: Mapping[str, FrozenSet[str]]
    rules: tuple = field(default_factory=tuple)

    def is_allowed(self, source: str, target: str) -> bool:
        return target in self.allowed_targets.get(source, frozenset())

    def effects_for(self, source: str, target: str, capabilities: Iterable[str]) -> list[Effect]:
        caps = set(capabilities)
        return [
            r.effect
            for r in self.rules
            if r.source == source and r.target == target and r.capability in caps
        ]

    def resolve(self, *, item, order, target: str, capabilities: Iterable[str], now: datetime) -> Dict[str, Any]:
        """
        Field updates for moving `item` to `target`, side effects included.
        """
        source = item.status
        if not self.is_allowed(source, target):
            raise ConflictError(f"Transition {source} -> {target} is not allowed.")

        updates: Dict[str, Any] = {"status": target}
        for effect in self.effects_for(source, target, capabilities):
            updates.update(effect(item, order, now))
        return updates


_ANY_ITEM_STATUS = frozenset(LabItemStatus.values)

# Lenient by product decision: any state may move to any state (skips included,
# without timing capture). Timing is captured only for technicians on the two
# regular steps.
ITEM_TRANSITION_POLICY = ItemTransitionPolicy(
    allowed_targets={source: _ANY_ITEM_STATUS for source in LabItemStatus.values},
    rules=(
        TransitionRule(
            source=LabItemStatus.PENDING,
            target=LabItemStatus.IN_PROGRESS,
            capability=CAP_LAB_TECHNICIAN,
            effect=stamp_started,
        ),
        TransitionRule(
            source=LabItemStatus.IN_PROGRESS,
            target=LabItemStatus.COMPLETED,
            capability=CAP_LAB_TECHNICIAN,
            effect=stamp_completed,
        ),
    ),
)
