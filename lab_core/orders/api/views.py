# lab_core/orders/api/views.py
from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, extend_schema
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import NotFound, ValidationError as DRFValidationError
from rest_framework.response import Response

from lab_core.common.api.pagination import paginate
from lab_core.common.permissions import Actor
from lab_core.orders.api.serializers import (
    ItemStatusUpdateSerializer,
    LabOrderCreateSerializer,
    LabOrderSerializer,
    OrderCancelSerializer,
    OrderStatusUpdateSerializer,
)
from lab_core.orders.filters import LabOrderFilter
from lab_core.orders.models import LabOrder, LabOrderItem
from lab_core.orders.permissions import LabOrderItemPermission, LabOrderPermission
from lab_core.orders.selectors import OrderSelector
from lab_core.orders.services import (
    AutoCancelService,
    CancellationService,
    ItemTransitionService,
    OrderService,
    OrderStatusService,
)


class LabOrderViewSet(viewsets.ViewSet):
    """
    Thin API layer:
    - serializer validation
    - reads via OrderSelector
    - writes via the order services (which re-check capabilities)
    """

    permission_classes = [LabOrderPermission]

    serializer_class = LabOrderSerializer
    queryset = LabOrder.objects.none()

    def _get_order(self, pk):
        try:
            return OrderSelector.get_order(order_id=pk)
        except OrderSelector.NotFound:
            raise NotFound("Lab order not found.")

    # ----------------------------
    # Reads
    # ----------------------------
    @extend_schema(
        tags=["Lab Orders"],
        responses={200: LabOrderSerializer(many=True)},
        parameters=[
            OpenApiParameter(name="status", type=OpenApiTypes.STR, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="patient_id", type=OpenApiTypes.UUID, location=OpenApiParameter.QUERY, required=False),
            OpenApiParameter(name="order_date", type=OpenApiTypes.DATE, location=OpenApiParameter.QUERY, required=False),
        ],
        operation_id="v1_lab_orders_list",
    )
    def list(self, request):
        f = LabOrderFilter(request.query_params, queryset=OrderSelector.list_orders())
        if not f.is_valid():
            raise DRFValidationError(f.errors)
        return paginate(request, f.qs, LabOrderSerializer)

    @extend_schema(
        tags=["Lab Orders"],
        responses={200: LabOrderSerializer},
        operation_id="v1_lab_orders_retrieve",
    )
    def retrieve(self, request, pk=None):
        return Response(LabOrderSerializer(self._get_order(pk)).data, status=status.HTTP_200_OK)

    # ----------------------------
    # Writes
    # ----------------------------
    @extend_schema(
        tags=["Lab Orders"],
        request=LabOrderCreateSerializer,
        responses={201: LabOrderSerializer},
        operation_id="v1_lab_orders_create",
    )
    def create(self, request):
        ser = LabOrderCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        order = OrderService.create_order(
            patient_id=data["patient_id"],
            test_types=data["test_types"],
            remarks=data.get("remarks"),
            actor=Actor.from_user(request.user),
        )
        return Response(LabOrderSerializer(self._get_order(order.id)).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        tags=["Lab Orders"],
        request=OrderStatusUpdateSerializer,
        responses={200: OpenApiTypes.OBJECT},
        operation_id="v1_lab_orders_status",
    )
    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request, pk=None):
        ser = OrderStatusUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        result = OrderStatusService.update_status(
            order_id=pk,
            status=data.get("overall_status"),
            auto_update=data["auto_update"],
            remarks=data.get("remarks"),
            actor=Actor.from_user(request.user),
        )
        return Response(
            {
                "success": True,
                "message": "Lab order status updated successfully",
                "data": result.as_dict(),
            },
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        tags=["Lab Orders"],
        request=OrderCancelSerializer,
        responses={200: OpenApiTypes.OBJECT},
        operation_id="v1_lab_orders_cancel",
    )
    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):
        ser = OrderCancelSerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        result = CancellationService.cancel_order(
            order_id=pk,
            reason=ser.validated_data.get("reason"),
            actor=Actor.from_user(request.user),
        )
        return Response(
            {
                "success": True,
                "message": "Lab order cancelled successfully",
                "order_id": str(result.order_id),
                "cancelled_by": result.cancelled_by,
                "cancelled_at": result.cancelled_at.isoformat(),
            },
            status=status.HTTP_200_OK,
        )

    @extend_schema(
        tags=["Lab Orders"],
        request=None,
        responses={200: OpenApiTypes.OBJECT},
        operation_id="v1_lab_orders_auto_cancel",
    )
    @action(detail=False, methods=["post"], url_path="auto-cancel")
    def auto_cancel(self, request):
        result = AutoCancelService.sweep()
        return Response(
            {
                "success": True,
                "message": result.message,
                "cancelled_count": result.cancelled_count,
                "cancelled_orders": [str(order_id) for order_id in result.cancelled_orders],
                "check_time": result.check_time.isoformat(),
            },
            status=status.HTTP_200_OK,
        )


class LabOrderItemViewSet(viewsets.ViewSet):
    permission_classes = [LabOrderItemPermission]

    queryset = LabOrderItem.objects.none()

    @extend_schema(
        tags=["Lab Orders"],
        request=ItemStatusUpdateSerializer,
        responses={200: OpenApiTypes.OBJECT},
        operation_id="v1_lab_order_items_status",
    )
    @action(detail=True, methods=["post"], url_path="status")
    def update_status(self, request, pk=None):
        ser = ItemStatusUpdateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data

        result = ItemTransitionService.transition_item(
            item_id=pk,
            status=data["status"],
            remarks=data.get("remarks"),
            actor=Actor.from_user(request.user),
        )
        return Response(
            {
                "success": True,
                "message": "Lab test status updated successfully",
                "data": result.as_dict(),
            },
            status=status.HTTP_200_OK,
        )
