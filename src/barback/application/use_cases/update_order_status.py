from __future__ import annotations

import logging
from datetime import datetime, timezone

from barback.application.dto.responses import OrderResponse
from barback.application.mappers.event_envelope import serialize_order_event
from barback.application.mappers.order_mapper import to_order_response
from barback.application.metrics.pos_metrics import (
    record_order_status,
    record_time_to_ready,
    record_transition,
)
from barback.application.ports.publisher import EventPublisher
from barback.application.ports.repositories import (
    OptimisticConcurrencyError,
    OrderRepository,
    TicketRepository,
)
from barback.application.use_cases.context import TraceContext, publish_event
from barback.application.use_cases.errors import (
    InvalidOrderTransitionError,
    OrderConflictError,
    OrderNotFoundError,
)
from barback.domain.common.ids import OrderId, OrganizationId
from barback.domain.kitchen.entities import TicketStatus, TicketTransitionError
from barback.domain.order.entities import Order, OrderStatus, OrderTransitionError
from barback.domain.order.events import OrderStatusChanged

logger = logging.getLogger(__name__)

_TICKET_STATUS_FOR_ORDER: dict[OrderStatus, TicketStatus] = {
    OrderStatus.PREPARING: TicketStatus.PREPARING,
    OrderStatus.READY: TicketStatus.READY,
    OrderStatus.SERVED: TicketStatus.SERVED,
    OrderStatus.CANCELLED: TicketStatus.CANCELLED,
}


class UpdateOrderStatus:
    def __init__(
        self,
        order_repository: OrderRepository,
        ticket_repository: TicketRepository,
        publisher: EventPublisher,
    ) -> None:
        self._order_repository = order_repository
        self._ticket_repository = ticket_repository
        self._publisher = publisher

    def execute(
        self,
        organization_id: OrganizationId,
        order_id: OrderId,
        status: OrderStatus,
        trace_ctx: TraceContext,
    ) -> OrderResponse:
        order = self._order_repository.get(order_id, organization_id)
        if order is None:
            raise OrderNotFoundError(f"order {order_id} not found")

        try:
            updated = order.transition_to(status)
        except OrderTransitionError as exc:
            raise InvalidOrderTransitionError(str(exc)) from exc
        if updated.status == order.status:
            return to_order_response(order)

        try:
            persisted = self._order_repository.update_with_version(updated, expected_version=order.version)
        except OptimisticConcurrencyError as exc:
            current = self._order_repository.get(order_id, organization_id)
            if current is not None and current.status == status:
                return to_order_response(current)
            raise OrderConflictError(f"order {order_id} status update conflict") from exc

        self._sync_ticket(persisted)

        event = OrderStatusChanged(
            order_id=persisted.order_id,
            organization_id=persisted.organization_id,
            from_status=order.status,
            to_status=persisted.status,
            occurred_at=datetime.now(timezone.utc),
        )
        record_transition(from_status=event.from_status, to_status=event.to_status)
        record_order_status(persisted)
        if persisted.status == OrderStatus.READY:
            record_time_to_ready(persisted, now=event.occurred_at)
        logger.info(
            "order_status_changed",
            extra={"order_id": str(order_id), "status": persisted.status.value},
        )
        event_type = "order.cancelled" if status == OrderStatus.CANCELLED else "order.status_changed"
        publish_event(
            self._publisher,
            str(organization_id),
            serialize_order_event(
                event_type=event_type,
                occurred_at=event.occurred_at,
                order=persisted,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            ),
        )
        return to_order_response(persisted)

    def _sync_ticket(self, order: Order) -> None:
        target = _TICKET_STATUS_FOR_ORDER.get(order.status)
        ticket = self._ticket_repository.get_for_order(order.order_id)
        if target is None or ticket is None or not ticket.is_active:
            return
        try:
            self._ticket_repository.update(ticket.advance(target))
        except TicketTransitionError:
            # the kitchen is already ahead of the order; keep the ticket where it is
            logger.info("ticket_sync_skipped", extra={"order_id": str(order.order_id)})
