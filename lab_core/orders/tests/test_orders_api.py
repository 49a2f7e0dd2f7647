# lab_core/orders/tests/test_orders_api.py
from uuid import uuid4

import pytest
from django.utils import timezone
from rest_framework.test import APIClient

from lab_core.orders.models import LabOrderItem

pytestmark = pytest.mark.django_db


def test_create_and_retrieve_order(doctor_client):
    patient_id = str(uuid4())
    res = doctor_client.post(
        "/api/v1/orders/",
        {"patient_id": patient_id, "test_types": ["CBC", "Lipid"], "remarks": "fasting"},
        format="json",
    )
    assert res.status_code == 201, res.data
    body = res.json()
    assert body["patient_id"] == patient_id
    assert body["status"] == "pending"
    assert body["overall_status"] == "pending"
    assert len(body["items"]) == 2
    assert body["status_summary"]["total_items"] == 2
    assert body["status_summary"]["pending_items"] == 2
    assert body["remarks"].endswith("fasting")

    got = doctor_client.get(f"/api/v1/orders/{body['id']}/")
    assert got.status_code == 200
    assert got.json()["id"] == body["id"]


def test_create_validation_error_envelope(doctor_client):
    res = doctor_client.post("/api/v1/orders/", {"patient_id": str(uuid4()), "test_types": []}, format="json")
    assert res.status_code == 400
    body = res.json()
    assert body["success"] is False
    assert body["error"]["code"] == "validation_error"


def test_list_filters_by_status(readonly_client, place_order):
    pending = place_order(["A"])
    done = place_order(["A"])
    LabOrderItem.objects.filter(order=done).update(status="completed")
    done.status = "completed"
    done.save(update_fields=["status"])

    res = readonly_client.get("/api/v1/orders/?status=pending")
    assert res.status_code == 200
    ids = [row["id"] for row in res.json()["results"]]
    assert ids == [str(pending.id)]


def test_list_is_paginated(readonly_client, place_order):
    for _ in range(3):
        place_order(["A"])

    body = readonly_client.get("/api/v1/orders/?page_size=2").json()
    assert body["count"] == 3
    assert len(body["results"]) == 2
    assert body["next"] is not None
    assert body["previous"] is None

    rest = readonly_client.get("/api/v1/orders/?page_size=2&page=2").json()
    assert len(rest["results"]) == 1
    assert rest["next"] is None


def test_list_default_page_fits_a_busy_day(readonly_client, place_order):
    for _ in range(30):
        place_order(["A"])

    body = readonly_client.get("/api/v1/orders/").json()
    assert body["count"] == 30
    assert len(body["results"]) == 30


def test_readonly_cannot_create(readonly_client):
    res = readonly_client.post("/api/v1/orders/", {"patient_id": str(uuid4()), "test_types": ["CBC"]}, format="json")
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "permission_denied"


def test_unauthenticated_is_rejected():
    res = APIClient().get("/api/v1/orders/")
    assert res.status_code == 401
    assert res.json()["success"] is False


def test_retrieve_missing_order_is_404(readonly_client):
    res = readonly_client.get(f"/api/v1/orders/{uuid4()}/")
    assert res.status_code == 404
    assert res.json()["error"]["code"] == "not_found"


def test_item_status_endpoint(lab_client, place_order):
    order = place_order(["CBC", "Lipid"])
    item = order.items.first()

    res = lab_client.post(
        f"/api/v1/order-items/{item.id}/status/",
        {"status": "in_progress", "remarks": "drawn"},
        format="json",
    )
    assert res.status_code == 200, res.data
    body = res.json()
    assert body["success"] is True
    assert body["data"]["item_id"] == str(item.id)
    assert body["data"]["old_status"] == "pending"
    assert body["data"]["new_status"] == "in_progress"
    assert body["data"]["order_status"] == "in_progress"

    item.refresh_from_db()
    assert item.started_at is not None
    assert item.waiting_time is not None


def test_item_status_forbidden_for_doctor(doctor_client, place_order):
    item = place_order(["CBC"]).items.get()
    res = doctor_client.post(f"/api/v1/order-items/{item.id}/status/", {"status": "completed"}, format="json")
    assert res.status_code == 403


def test_item_status_invalid_value(lab_client, place_order):
    item = place_order(["CBC"]).items.get()
    res = lab_client.post(f"/api/v1/order-items/{item.id}/status/", {"status": "finished"}, format="json")
    assert res.status_code == 400


def test_item_status_missing_item(lab_client):
    res = lab_client.post(f"/api/v1/order-items/{uuid4()}/status/", {"status": "completed"}, format="json")
    assert res.status_code == 404


def test_order_status_endpoint_auto_update(doctor_client, place_order):
    order = place_order(["A", "B"])
    LabOrderItem.objects.filter(order=order).update(status="completed")

    res = doctor_client.post(
        f"/api/v1/orders/{order.id}/status/",
        {"overall_status": "pending", "auto_update": True},
        format="json",
    )
    assert res.status_code == 200, res.data
    data = res.json()["data"]
    assert data == {
        "order_id": str(order.id),
        "old_status": "pending",
        "new_status": "completed",
        "total_items": 2,
        "completed_items": 2,
        "auto_update": True,
    }


def test_order_status_endpoint_requires_status(doctor_client, place_order):
    order = place_order(["A"])
    res = doctor_client.post(f"/api/v1/orders/{order.id}/status/", {}, format="json")
    assert res.status_code == 400


def test_cancel_endpoint(lab_client, lab_user, place_order):
    order = place_order(["A"])

    res = lab_client.post(f"/api/v1/orders/{order.id}/cancel/", {"reason": "duplicate"}, format="json")
    assert res.status_code == 200, res.data
    body = res.json()
    assert body["success"] is True
    assert body["order_id"] == str(order.id)
    assert body["cancelled_by"] == lab_user.id
    assert body["cancelled_at"]

    again = lab_client.post(f"/api/v1/orders/{order.id}/cancel/", {}, format="json")
    assert again.status_code == 409
    assert again.json()["error"]["code"] == "order_already_cancelled"
    assert again.json()["message"] == "Lab order is already cancelled."


def test_cancel_completed_order_conflict(lab_client, place_order):
    order = place_order(["A"])
    LabOrderItem.objects.filter(order=order).update(status="completed")
    order.status = "completed"
    order.save(update_fields=["status"])

    res = lab_client.post(f"/api/v1/orders/{order.id}/cancel/", {}, format="json")
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "order_completed"


def test_cancel_forbidden_for_nurse(nurse_user, place_order):
    c = APIClient()
    c.force_authenticate(user=nurse_user)
    order = place_order(["A"])

    res = c.post(f"/api/v1/orders/{order.id}/cancel/", {}, format="json")
    assert res.status_code == 403


def test_auto_cancel_endpoint(readonly_client, place_order, settings):
    settings.LAB_ORDERS = {**settings.LAB_ORDERS, "AUTO_CANCEL_CUTOFF": "00:00"}
    order = place_order(["A"], at=timezone.now())

    res = readonly_client.post("/api/v1/orders/auto-cancel/", {}, format="json")
    assert res.status_code == 200, res.data
    body = res.json()
    assert body["success"] is True
    assert body["cancelled_count"] == 1
    assert body["cancelled_orders"] == [str(order.id)]
    assert body["check_time"]


def test_legacy_api_prefix(readonly_client, place_order):
    order = place_order(["A"])
    res = readonly_client.get(f"/api/orders/{order.id}/")
    assert res.status_code == 200
