from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from barback.application.dto.requests import AddOrderItemRequest
from barback.application.dto.responses import OrderResponse
from barback.application.mappers.event_envelope import serialize_order_event
from barback.application.mappers.order_mapper import to_order_response
from barback.application.ports.publisher import EventPublisher
from barback.application.ports.repositories import (
    MenuRepository,
    OptimisticConcurrencyError,
    OrderRepository,
    TicketRepository,
)
from barback.application.use_cases.context import TraceContext, publish_event
from barback.application.use_cases.errors import (
    InvalidOrderTransitionError,
    MenuItemNotFoundError,
    MenuItemUnavailableError,
    OrderConflictError,
    OrderNotFoundError,
)
from barback.domain.common.ids import MenuItemId, OrderId, OrderLineId, OrganizationId
from barback.domain.common.money import Money
from barback.domain.order.entities import OrderTransitionError, line_from_menu_item


class AddOrderItem:
    def __init__(
        self,
        order_repository: OrderRepository,
        menu_repository: MenuRepository,
        ticket_repository: TicketRepository,
        publisher: EventPublisher,
    ) -> None:
        self._order_repository = order_repository
        self._menu_repository = menu_repository
        self._ticket_repository = ticket_repository
        self._publisher = publisher

    def execute(
        self,
        organization_id: OrganizationId,
        order_id: OrderId,
        request_dto: AddOrderItemRequest,
        trace_ctx: TraceContext,
    ) -> OrderResponse:
        order = self._order_repository.get(order_id, organization_id)
        if order is None:
            raise OrderNotFoundError(f"order {order_id} not found")

        menu_item = self._menu_repository.get_item(
            MenuItemId(request_dto.menu_item_id),
            organization_id,
        )
        if menu_item is None:
            raise MenuItemNotFoundError(f"menu item {request_dto.menu_item_id} does not exist")
        if not menu_item.available:
            raise MenuItemUnavailableError(f"menu item {request_dto.menu_item_id} is unavailable")

        line = line_from_menu_item(
            line_id=OrderLineId(f"orl_{uuid4().hex[:12]}"),
            menu_item=menu_item,
            quantity=request_dto.quantity,
            unit_price=Money.from_decimal(request_dto.unit_price, order.currency),
            notes=request_dto.notes,
            modifications=request_dto.modifications,
            customizations=request_dto.customizations,
        )
        try:
            updated = order.add_line(line)
        except OrderTransitionError as exc:
            raise InvalidOrderTransitionError(str(exc)) from exc

        try:
            persisted = self._order_repository.update_with_version(updated, expected_version=order.version)
        except OptimisticConcurrencyError as exc:
            raise OrderConflictError(f"order {order_id} was modified concurrently") from exc

        ticket = self._ticket_repository.get_for_order(order_id)
        if ticket is not None and ticket.is_active:
            self._ticket_repository.update(ticket.sync_with(persisted))

        publish_event(
            self._publisher,
            str(organization_id),
            serialize_order_event(
                event_type="order.item_added",
                occurred_at=datetime.now(timezone.utc),
                order=persisted,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            ),
        )
        return to_order_response(persisted)
