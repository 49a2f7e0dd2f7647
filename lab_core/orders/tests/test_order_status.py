# lab_core/orders/tests/test_order_status.py
from uuid import uuid4

import pytest
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from lab_core.audit.models import AuditEvent
from lab_core.common.permissions import Actor
from lab_core.orders.models import LabOrder, LabOrderItem
from lab_core.orders.services import CancellationService, OrderStatusService

pytestmark = pytest.mark.django_db


def _set_item_statuses(order, *statuses):
    for item, status in zip(order.items.order_by("test_type"), statuses):
        LabOrderItem.objects.filter(id=item.id).update(status=status)


def test_auto_update_computes_from_items(place_order, doctor_actor):
    order = place_order(["A", "B", "C"])
    _set_item_statuses(order, "pending", "in_progress", "completed")

    result = OrderStatusService.update_status(order_id=order.id, auto_update=True, actor=doctor_actor)

    assert result.old_status == "pending"
    assert result.new_status == "in_progress"
    assert result.total_items == 3
    assert result.completed_items == 1
    assert result.auto_update is True


def test_auto_update_overrides_supplied_status(place_order, doctor_actor):
    order = place_order(["A", "B"])
    _set_item_statuses(order, "completed", "completed")

    result = OrderStatusService.update_status(
        order_id=order.id, status="pending", auto_update=True, actor=doctor_actor
    )

    order.refresh_from_db()
    assert result.new_status == "completed"
    assert order.status == "completed"


def test_recompute_is_idempotent(place_order):
    order = place_order(["A", "B"])
    _set_item_statuses(order, "in_progress", "pending")

    first = OrderStatusService.recompute(order_id=order.id)
    second = OrderStatusService.recompute(order_id=order.id)

    order.refresh_from_db()
    assert first.new_status == second.new_status == order.status == "in_progress"
    assert second.old_status == "in_progress"


def test_completed_iff_every_item_completed(place_order):
    order = place_order(["A", "B"])

    _set_item_statuses(order, "completed", "cancelled")
    assert OrderStatusService.recompute(order_id=order.id).new_status != "completed"

    _set_item_statuses(order, "completed", "completed")
    assert OrderStatusService.recompute(order_id=order.id).new_status == "completed"


def test_order_without_items_is_pending(place_order):
    order = place_order(["A"])
    LabOrderItem.objects.filter(order=order).delete()
    LabOrder.objects.filter(id=order.id).update(status="in_progress")

    result = OrderStatusService.recompute(order_id=order.id)
    assert result.new_status == "pending"
    assert result.total_items == 0


@pytest.mark.parametrize("target", ["completed", "cancelled"])
def test_explicit_terminal_status_cascades_to_items(place_order, doctor_actor, target):
    order = place_order(["A", "B", "C"])
    _set_item_statuses(order, "pending", "in_progress", "completed")

    result = OrderStatusService.update_status(order_id=order.id, status=target, actor=doctor_actor)

    assert result.new_status == target
    assert set(order.items.values_list("status", flat=True)) == {target}


def test_explicit_non_terminal_status_leaves_items(place_order, doctor_actor):
    order = place_order(["A", "B"])
    _set_item_statuses(order, "completed", "pending")

    OrderStatusService.update_status(order_id=order.id, status="partial", actor=doctor_actor)

    order.refresh_from_db()
    assert order.status == "partial"
    assert sorted(order.items.values_list("status", flat=True)) == ["completed", "pending"]


def test_override_logs_and_appends_remarks(place_order, doctor_actor, doctor_user):
    order = place_order(["A"], remarks="fasting sample")

    OrderStatusService.update_status(
        order_id=order.id, status="partial", remarks="awaiting second draw", actor=doctor_actor
    )

    order = LabOrder.objects.get(id=order.id)
    bodies = list(order.notes.values_list("body", flat=True))
    assert bodies == ["fasting sample", "awaiting second draw"]
    assert "fasting sample" in order.remarks_display
    assert "; " in order.remarks_display

    ev = AuditEvent.objects.get(entity_id=order.id, event_code="status_updated")
    assert ev.actor_user_id == doctor_user.id
    assert ev.metadata["new_status"] == "partial"


def test_requires_status_or_auto_update(place_order, doctor_actor):
    order = place_order(["A"])
    with pytest.raises(ValidationError):
        OrderStatusService.update_status(order_id=order.id, actor=doctor_actor)


def test_rejects_unknown_status(place_order, doctor_actor):
    order = place_order(["A"])
    with pytest.raises(ValidationError):
        OrderStatusService.update_status(order_id=order.id, status="archived", actor=doctor_actor)


def test_missing_order_not_found(doctor_actor):
    with pytest.raises(NotFound):
        OrderStatusService.update_status(order_id=uuid4(), auto_update=True, actor=doctor_actor)


def test_readonly_actor_forbidden(place_order, readonly_user):
    order = place_order(["A"])
    with pytest.raises(PermissionDenied):
        OrderStatusService.update_status(
            order_id=order.id, status="completed", actor=Actor.from_user(readonly_user)
        )


def test_reconcile_completed_repairs_lagging_orders(place_order):
    lagging = place_order(["A", "B"])
    _set_item_statuses(lagging, "completed", "completed")

    in_flight = place_order(["A", "B"])
    _set_item_statuses(in_flight, "completed", "pending")

    results = OrderStatusService.reconcile_completed()

    assert [r.order_id for r in results] == [lagging.id]
    lagging.refresh_from_db()
    in_flight.refresh_from_db()
    assert lagging.status == "completed"
    assert in_flight.status == "pending"

    assert OrderStatusService.reconcile_completed() == []


def test_recompute_keeps_cancelled_order_with_completed_item(place_order, lab_actor):
    order = place_order(["A", "B"])
    _set_item_statuses(order, "completed", "pending")
    CancellationService.cancel_order(order_id=order.id, actor=lab_actor)

    result = OrderStatusService.recompute(order_id=order.id)

    order.refresh_from_db()
    assert result.old_status == result.new_status == "cancelled"
    assert order.status == "cancelled"
    assert sorted(order.items.values_list("status", flat=True)) == ["cancelled", "completed"]


def test_auto_update_on_completed_order_is_stable(place_order, doctor_actor):
    order = place_order(["A", "B"])
    OrderStatusService.update_status(order_id=order.id, status="completed", actor=doctor_actor)

    result = OrderStatusService.update_status(order_id=order.id, auto_update=True, actor=doctor_actor)

    assert result.new_status == "completed"
    assert LabOrder.objects.get(id=order.id).status == "completed"


def test_terminal_order_follows_items_into_another_terminal_status(place_order):
    order = place_order(["A", "B"])
    LabOrder.objects.filter(id=order.id).update(status="cancelled")
    _set_item_statuses(order, "completed", "completed")

    assert OrderStatusService.recompute(order_id=order.id).new_status == "completed"
