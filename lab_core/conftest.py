# lab_core/conftest.py
from datetime import datetime
from uuid import uuid4

import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from rest_framework.test import APIClient

from lab_core.common.permissions import (
    ROLE_ADMIN,
    ROLE_DOCTOR,
    ROLE_LAB,
    ROLE_NURSE,
    ROLE_READONLY,
    Actor,
)
from lab_core.orders.conf import lab_orders_settings
from lab_core.orders.services import OrderService


def make_user(username, *roles):
    User = get_user_model()
    user = User.objects.create_user(username=username, password="testpass", is_active=True)
    for role in roles:
        group, _ = Group.objects.get_or_create(name=role)
        user.groups.add(group)
    return user


def client_for(user):
    c = APIClient()
    c.force_authenticate(user=user)
    return c


@pytest.fixture
def lab_user(db):
    return make_user("lab.tech", ROLE_LAB)


@pytest.fixture
def admin_user(db):
    return make_user("lab.admin", ROLE_ADMIN)


@pytest.fixture
def doctor_user(db):
    return make_user("doctor", ROLE_DOCTOR)


@pytest.fixture
def nurse_user(db):
    return make_user("nurse", ROLE_NURSE)


@pytest.fixture
def readonly_user(db):
    return make_user("viewer", ROLE_READONLY)


@pytest.fixture
def lab_actor(lab_user):
    return Actor.from_user(lab_user)


@pytest.fixture
def admin_actor(admin_user):
    return Actor.from_user(admin_user)


@pytest.fixture
def doctor_actor(doctor_user):
    return Actor.from_user(doctor_user)


@pytest.fixture
def lab_client(lab_user):
    return client_for(lab_user)


@pytest.fixture
def doctor_client(doctor_user):
    return client_for(doctor_user)


@pytest.fixture
def readonly_client(readonly_user):
    return client_for(readonly_user)


@pytest.fixture
def local_dt():
    """
    Aware datetime in the configured lab time zone.
    """
    def _make(year, month, day, hour=0, minute=0, second=0):
        return datetime(year, month, day, hour, minute, second, tzinfo=lab_orders_settings().time_zone)

    return _make


@pytest.fixture
def place_order(doctor_actor):
    """
    Factory: place an order through the real service.

    place_order(["CBC", "Urinalysis"], at=local_dt(...))
    """
    def _place(test_types=("CBC",), *, at=None, actor=None, remarks=None, patient_id=None):
        return OrderService.create_order(
            patient_id=patient_id or uuid4(),
            test_types=list(test_types),
            actor=actor or doctor_actor,
            remarks=remarks,
            now=at,
        )

    return _place
