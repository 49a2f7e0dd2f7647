# lab_core/api/urls.py
from __future__ import annotations

from django.urls import include, path
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from lab_core.audit.api.views import AuditEventViewSet
from lab_core.common.api.me import MeView
from lab_core.orders.api.views import LabOrderItemViewSet, LabOrderViewSet

router = DefaultRouter()

router.register(r"orders", LabOrderViewSet, basename="lab-orders")
router.register(r"order-items", LabOrderItemViewSet, basename="lab-order-items")
router.register(r"audit/events", AuditEventViewSet, basename="audit-events")

urlpatterns = [
    # Auth + /me
    path("auth/token/", TokenObtainPairView.as_view(), name="token-obtain"),
    path("auth/token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("me/", MeView.as_view(), name="me"),

    path("", include(router.urls)),
]
