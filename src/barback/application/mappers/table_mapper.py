from __future__ import annotations

from barback.application.dto.responses import (
    ActiveOrderSummaryResponse,
    LocationResponse,
    TableResponse,
)
from barback.application.mappers.common import to_money_response
from barback.domain.order.entities import Order
from barback.domain.table.entities import Location, Table


def to_location_response(location: Location) -> LocationResponse:
    return LocationResponse(
        locationId=str(location.location_id),
        organizationId=str(location.organization_id),
        name=location.name,
    )


def to_table_response(table: Table, active_orders: list[Order]) -> TableResponse:
    return TableResponse(
        tableId=str(table.table_id),
        organizationId=str(table.organization_id),
        locationId=str(table.location_id),
        number=table.number,
        capacity=table.capacity,
        createdAt=table.created_at,
        activeOrders=[
            ActiveOrderSummaryResponse(
                orderId=str(order.order_id),
                orderNumber=order.order_number,
                status=order.status.value,
                total=to_money_response(order.total),
            )
            for order in active_orders
        ],
    )
