from __future__ import annotations

from datetime import datetime, timezone

from prometheus_client import Counter, Gauge, Histogram

from barback.domain.inventory.entities import AlertType, InventoryAlert, InventoryTransaction
from barback.domain.order.entities import Order, OrderStatus

ORDERS_TOTAL = Counter(
    "barback_orders_total",
    "Total number of orders observed by status.",
    ["organization_id", "status"],
)

ORDER_TRANSITION_TOTAL = Counter(
    "barback_order_transition_total",
    "Total number of order lifecycle transitions.",
    ["from", "to"],
)

ORDER_TIME_TO_READY_SECONDS = Histogram(
    "barback_order_time_to_ready_seconds",
    "Time between order creation and readiness.",
)

ORDER_TIME_TO_CLOSE_SECONDS = Histogram(
    "barback_order_time_to_close_seconds",
    "Time between order creation and settlement.",
)

KITCHEN_QUEUE_SIZE = Gauge(
    "barback_kitchen_queue_size",
    "Current number of active kitchen tickets returned by queue queries.",
    ["organization_id", "station"],
)

PAYMENTS_TOTAL = Counter(
    "barback_payments_total",
    "Total number of payment attempts by method and outcome.",
    ["method", "outcome"],
)

PAYMENT_PROCESSING_SECONDS = Histogram(
    "barback_payment_processing_seconds",
    "Simulated gateway processing time per payment attempt.",
    ["method"],
)

SETTLEMENT_COMPENSATIONS_TOTAL = Counter(
    "barback_settlement_compensations_total",
    "Total number of captured payments refunded after a failed settlement.",
    ["outcome"],
)

INVENTORY_MOVEMENTS_TOTAL = Counter(
    "barback_inventory_movements_total",
    "Total number of inventory ledger transactions by type.",
    ["organization_id", "type"],
)

INVENTORY_ACTIVE_ALERTS = Gauge(
    "barback_inventory_active_alerts",
    "Current number of inventory alerts by type.",
    ["organization_id", "type"],
)


def record_order_status(order: Order) -> None:
    ORDERS_TOTAL.labels(
        organization_id=str(order.organization_id),
        status=order.status.value,
    ).inc()


def record_transition(from_status: OrderStatus, to_status: OrderStatus) -> None:
    ORDER_TRANSITION_TOTAL.labels(**{"from": from_status.value, "to": to_status.value}).inc()


def record_time_to_ready(order: Order, now: datetime | None = None) -> None:
    current = now or datetime.now(timezone.utc)
    ORDER_TIME_TO_READY_SECONDS.observe(max((current - order.created_at).total_seconds(), 0.0))


def record_time_to_close(order: Order, now: datetime | None = None) -> None:
    current = now or datetime.now(timezone.utc)
    ORDER_TIME_TO_CLOSE_SECONDS.observe(max((current - order.created_at).total_seconds(), 0.0))


def record_kitchen_queue_size(organization_id: str, station: str, size: int) -> None:
    KITCHEN_QUEUE_SIZE.labels(organization_id=organization_id, station=station).set(size)


def record_payment(method: str, success: bool, processing_time_ms: int) -> None:
    PAYMENTS_TOTAL.labels(method=method, outcome="success" if success else "failure").inc()
    PAYMENT_PROCESSING_SECONDS.labels(method=method).observe(processing_time_ms / 1000)


def record_compensation(success: bool) -> None:
    SETTLEMENT_COMPENSATIONS_TOTAL.labels(outcome="refunded" if success else "failed").inc()


def record_inventory_transactions(
    organization_id: str,
    transactions: list[InventoryTransaction],
) -> None:
    for transaction in transactions:
        INVENTORY_MOVEMENTS_TOTAL.labels(
            organization_id=organization_id,
            type=transaction.transaction_type.value,
        ).inc()


def record_active_alerts(organization_id: str, alerts: list[InventoryAlert]) -> None:
    for alert_type in AlertType:
        count = sum(1 for alert in alerts if alert.alert_type == alert_type)
        INVENTORY_ACTIVE_ALERTS.labels(organization_id=organization_id, type=alert_type.value).set(
            count
        )
