from __future__ import annotations

import json
from datetime import datetime
from typing import Any
from uuid import uuid4

from barback.application.mappers.common import to_money_response
from barback.domain.inventory.entities import InventoryAlert
from barback.domain.kitchen.entities import KitchenTicket
from barback.domain.order.entities import Order
from barback.domain.payment.entities import PaymentRecord


def event_channel(organization_id: str) -> str:
    return f"events:{organization_id}"


def _serialize_event(
    *,
    event_type: str,
    occurred_at: datetime,
    organization_id: str,
    payload: dict[str, Any],
    trace_id: str | None,
    request_id: str | None,
) -> str:
    envelope = {
        "event_id": str(uuid4()),
        "event_type": event_type,
        "occurred_at": occurred_at.isoformat(),
        "request_id": request_id,
        "trace_id": trace_id,
        "organization_id": organization_id,
        "payload": payload,
    }
    return json.dumps(envelope, separators=(",", ":"), ensure_ascii=False)


def serialize_order_event(
    *,
    event_type: str,
    occurred_at: datetime,
    order: Order,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    return _serialize_event(
        event_type=event_type,
        occurred_at=occurred_at,
        organization_id=str(order.organization_id),
        trace_id=trace_id,
        request_id=request_id,
        payload={
            "orderId": str(order.order_id),
            "orderNumber": order.order_number,
            "locationId": str(order.location_id),
            "tableId": str(order.table_id) if order.table_id else None,
            "status": order.status.value,
            "paymentStatus": order.payment_status.value,
            "totalMoney": to_money_response(order.total).model_dump(),
            "createdAt": order.created_at.isoformat(),
            "estimatedReadyAt": order.estimated_ready_at.isoformat(),
            "lines": [
                {
                    "lineId": str(line.line_id),
                    "itemId": str(line.item_id),
                    "name": line.name,
                    "quantity": line.quantity,
                    "lineTotal": to_money_response(line.line_total).model_dump(),
                    "notes": line.notes,
                }
                for line in order.lines
            ],
        },
    )


def serialize_ticket_event(
    *,
    event_type: str,
    occurred_at: datetime,
    ticket: KitchenTicket,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    return _serialize_event(
        event_type=event_type,
        occurred_at=occurred_at,
        organization_id=str(ticket.organization_id),
        trace_id=trace_id,
        request_id=request_id,
        payload={
            "ticketId": str(ticket.ticket_id),
            "ticketNumber": ticket.label,
            "orderId": str(ticket.order_id),
            "orderNumber": ticket.order_number,
            "station": ticket.station.value,
            "status": ticket.status.value,
            "items": [
                {"name": item.name, "quantity": item.quantity, "modifications": list(item.modifications)}
                for item in ticket.items
            ],
        },
    )


def serialize_payment_event(
    *,
    event_type: str,
    occurred_at: datetime,
    payment: PaymentRecord,
    trace_id: str | None,
    request_id: str | None,
) -> str:
    return _serialize_event(
        event_type=event_type,
        occurred_at=occurred_at,
        organization_id=str(payment.organization_id),
        trace_id=trace_id,
        request_id=request_id,
        payload={
            "paymentId": str(payment.payment_id),
            "orderId": str(payment.order_id),
            "method": payment.method.value,
            "status": payment.status.value,
            "amount": to_money_response(payment.amount).model_dump(),
            "transactionId": payment.transaction_id,
            "errorMessage": payment.error_message,
        },
    )


def serialize_alerts_event(
    *,
    occurred_at: datetime,
    organization_id: str,
    alerts: list[InventoryAlert],
    trace_id: str | None,
    request_id: str | None,
) -> str:
    return _serialize_event(
        event_type="inventory.alerts_changed",
        occurred_at=occurred_at,
        organization_id=organization_id,
        trace_id=trace_id,
        request_id=request_id,
        payload={
            "alerts": [
                {
                    "alertId": alert.alert_id,
                    "sku": str(alert.sku),
                    "type": alert.alert_type.value,
                    "severity": alert.severity.value,
                    "message": alert.message,
                }
                for alert in alerts
            ],
        },
    )
