# lab_core/orders/tests/test_rules.py
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from lab_core.common.permissions import CAP_LAB_TECHNICIAN, CAP_MANAGE_RESULTS
from lab_core.orders.rules import (
    ITEM_TRANSITION_POLICY,
    ItemStatusCounts,
    compute_order_status,
    minutes_between,
    settle_order_status,
)

T0 = datetime(2025, 3, 14, 9, 0, tzinfo=timezone.utc)
TECH = {CAP_MANAGE_RESULTS, CAP_LAB_TECHNICIAN}
ADMIN = {CAP_MANAGE_RESULTS}


@pytest.mark.parametrize(
    "statuses, expected",
    [
        ([], "pending"),
        (["completed"], "completed"),
        (["completed", "completed"], "completed"),
        (["pending", "in_progress", "completed"], "in_progress"),
        (["pending", "completed"], "in_progress"),
        (["in_progress", "cancelled"], "in_progress"),
        (["cancelled", "cancelled"], "cancelled"),
        (["pending", "cancelled"], "pending"),
        (["pending"], "pending"),
        (["completed", "cancelled"], "in_progress"),
    ],
)
def test_compute_order_status_rules(statuses, expected):
    assert compute_order_status(ItemStatusCounts.from_statuses(statuses)) == expected


def test_aggregate_depends_only_on_the_status_multiset():
    a = ItemStatusCounts.from_statuses(["pending", "completed", "in_progress", "pending"])
    b = ItemStatusCounts.from_statuses(["in_progress", "pending", "pending", "completed"])
    assert a == b
    assert compute_order_status(a) == compute_order_status(b) == "in_progress"


def test_counts_as_dict():
    counts = ItemStatusCounts.from_statuses(["pending", "completed", "completed"])
    assert counts.as_dict() == {
        "total_items": 3,
        "pending_items": 1,
        "in_progress_items": 0,
        "completed_items": 2,
        "cancelled_items": 0,
    }


@pytest.mark.parametrize(
    "delta, expected",
    [
        (timedelta(minutes=30), 30),
        (timedelta(minutes=30, seconds=59), 30),
        (timedelta(seconds=59), 0),
        (timedelta(hours=2, minutes=5), 125),
    ],
)
def test_minutes_between_truncates(delta, expected):
    assert minutes_between(T0, T0 + delta) == expected


def _item(status, started_at=None):
    return SimpleNamespace(status=status, started_at=started_at)


def _order(order_date=T0):
    return SimpleNamespace(order_date=order_date)


def test_technician_start_captures_waiting_time():
    now = T0 + timedelta(minutes=42)
    updates = ITEM_TRANSITION_POLICY.resolve(
        item=_item("pending"), order=_order(), target="in_progress", capabilities=TECH, now=now
    )
    assert updates == {"status": "in_progress", "started_at": now, "waiting_time": 42}


def test_technician_completion_captures_turnaround():
    started = T0 + timedelta(minutes=10)
    now = started + timedelta(minutes=75)
    updates = ITEM_TRANSITION_POLICY.resolve(
        item=_item("in_progress", started_at=started),
        order=_order(),
        target="completed",
        capabilities=TECH,
        now=now,
    )
    assert updates == {"status": "completed", "completed_at": now, "turnaround_time": 75}


def test_completion_without_start_has_no_timing():
    updates = ITEM_TRANSITION_POLICY.resolve(
        item=_item("in_progress"), order=_order(), target="completed", capabilities=TECH, now=T0
    )
    assert updates == {"status": "completed"}


def test_non_technician_gets_status_only():
    updates = ITEM_TRANSITION_POLICY.resolve(
        item=_item("pending"), order=_order(), target="in_progress", capabilities=ADMIN, now=T0
    )
    assert updates == {"status": "in_progress"}


@pytest.mark.parametrize(
    "source, target",
    [
        ("pending", "completed"),
        ("completed", "pending"),
        ("cancelled", "in_progress"),
        ("in_progress", "pending"),
    ],
)
def test_policy_is_lenient_and_skips_carry_no_timing(source, target):
    assert ITEM_TRANSITION_POLICY.is_allowed(source, target)
    updates = ITEM_TRANSITION_POLICY.resolve(
        item=_item(source), order=_order(), target=target, capabilities=TECH, now=T0
    )
    assert updates == {"status": target}


@pytest.mark.parametrize(
    "stored, computed, expected",
    [
        ("pending", "in_progress", "in_progress"),
        ("in_progress", "completed", "completed"),
        ("cancelled", "in_progress", "cancelled"),
        ("cancelled", "pending", "cancelled"),
        ("completed", "in_progress", "completed"),
        ("cancelled", "completed", "completed"),
        ("completed", "cancelled", "cancelled"),
    ],
)
def test_settled_status_keeps_terminal_orders_closed(stored, computed, expected):
    assert settle_order_status(stored, computed) == expected
