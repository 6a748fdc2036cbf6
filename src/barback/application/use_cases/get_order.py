from __future__ import annotations

from datetime import datetime

from barback.application.dto.responses import OrderListResponse, OrderResponse
from barback.application.mappers.order_mapper import to_order_response
from barback.application.ports.repositories import InvalidCursorError as RepoInvalidCursorError
from barback.application.ports.repositories import OrderFilter, OrderRepository
from barback.application.use_cases.errors import (
    InvalidCursorError,
    OrderNotFoundError,
    ValidationError,
)
from barback.domain.common.ids import LocationId, OrderId, OrganizationId
from barback.domain.order.entities import OrderStatus, OrderType


class GetOrder:
    def __init__(self, order_repository: OrderRepository) -> None:
        self._order_repository = order_repository

    def execute(self, organization_id: OrganizationId, order_id: OrderId) -> OrderResponse:
        order = self._order_repository.get(order_id, organization_id)
        if order is None:
            raise OrderNotFoundError(f"order {order_id} not found")
        return to_order_response(order)


def _parse_status(status: str | None) -> OrderStatus | None:
    if status is None or status.upper() == "ALL":
        return None
    try:
        return OrderStatus(status.upper())
    except ValueError as exc:
        raise ValidationError(f"invalid order status: {status}") from exc


def _parse_order_type(order_type: str | None) -> OrderType | None:
    if order_type is None:
        return None
    try:
        return OrderType(order_type.upper())
    except ValueError as exc:
        raise ValidationError(f"invalid order type: {order_type}") from exc


class ListOrders:
    def __init__(self, order_repository: OrderRepository) -> None:
        self._order_repository = order_repository

    def execute(
        self,
        organization_id: OrganizationId,
        location_id: str | None = None,
        status: str | None = None,
        order_type: str | None = None,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
        limit: int = 50,
        cursor: str | None = None,
    ) -> OrderListResponse:
        if limit < 1 or limit > 200:
            raise ValidationError("limit must be between 1 and 200")

        filters = OrderFilter(
            location_id=LocationId(location_id) if location_id else None,
            status=_parse_status(status),
            order_type=_parse_order_type(order_type),
            created_from=created_from,
            created_to=created_to,
        )
        try:
            orders, next_cursor = self._order_repository.list_orders(
                organization_id=organization_id,
                filters=filters,
                limit=limit,
                cursor=cursor,
            )
        except RepoInvalidCursorError as exc:
            raise InvalidCursorError("invalid cursor") from exc

        return OrderListResponse(
            orders=[to_order_response(order) for order in orders],
            nextCursor=next_cursor,
        )
