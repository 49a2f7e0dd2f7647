# lab_core/orders/services/__init__.py
from lab_core.orders.services.aggregation import AggregationResult, OrderStatusService
from lab_core.orders.services.cancellation import CancellationResult, CancellationService
from lab_core.orders.services.placement import OrderService
from lab_core.orders.services.sweep import AutoCancelService, SweepResult
from lab_core.orders.services.transitions import ItemTransitionService, TransitionResult
from lab_core.orders.services.turnaround import TurnaroundService

__all__ = [
    "AggregationResult",
    "AutoCancelService",
    "CancellationResult",
    "CancellationService",
    "ItemTransitionService",
    "OrderService",
    "OrderStatusService",
    "SweepResult",
    "TransitionResult",
    "TurnaroundService",
]
