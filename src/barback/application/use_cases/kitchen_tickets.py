from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from uuid import uuid4

from barback.application.dto.responses import (
    TicketPrintResponse,
    TicketQueueResponse,
    TicketResponse,
)
from barback.application.mappers.event_envelope import (
    serialize_order_event,
    serialize_ticket_event,
)
from barback.application.mappers.order_mapper import to_ticket_response
from barback.application.mappers.printing import render_ticket
from barback.application.metrics.pos_metrics import (
    record_kitchen_queue_size,
    record_order_status,
    record_time_to_ready,
    record_transition,
)
from barback.application.ports.publisher import EventPublisher
from barback.application.ports.repositories import (
    TICKET_NUMBER_SEQUENCE,
    OptimisticConcurrencyError,
    OrderRepository,
    SequenceRepository,
    TicketRepository,
)
from barback.application.use_cases.context import TraceContext, publish_event
from barback.application.use_cases.errors import (
    InvalidTicketTransitionError,
    OrderConflictError,
    TicketNotFoundError,
    ValidationError,
)
from barback.domain.common.ids import OrganizationId, TicketId
from barback.domain.kitchen.entities import (
    ORDER_STATUS_FOR_TICKET,
    KitchenTicket,
    RoutingPolicy,
    TicketStation,
    TicketStatus,
    TicketTransitionError,
    create_ticket,
    resolve_station,
)
from barback.domain.order.entities import FULFILMENT_SEQUENCE, Order, OrderStatus

logger = logging.getLogger(__name__)


def default_routing_policy() -> RoutingPolicy:
    raw = os.getenv("TICKET_ROUTING", RoutingPolicy.AUTO.value).upper()
    try:
        return RoutingPolicy(raw)
    except ValueError:
        logger.warning("unknown_ticket_routing", extra={"value": raw})
        return RoutingPolicy.AUTO


class TicketDispatcher:
    def __init__(
        self,
        ticket_repository: TicketRepository,
        sequence_repository: SequenceRepository,
        default_policy: RoutingPolicy | None = None,
    ) -> None:
        self._ticket_repository = ticket_repository
        self._sequence_repository = sequence_repository
        self._default_policy = default_policy or default_routing_policy()

    def dispatch(self, order: Order, policy: RoutingPolicy | None = None) -> KitchenTicket | None:
        routing = policy or self._default_policy
        station = resolve_station(order, routing)
        if station is None:
            logger.info("ticket_skipped", extra={"order_id": str(order.order_id)})
            return None

        ticket = create_ticket(
            ticket_id=TicketId(f"tkt_{uuid4().hex[:12]}"),
            ticket_number=self._sequence_repository.next_value(TICKET_NUMBER_SEQUENCE),
            order=order,
            station=station,
            routing=routing,
        )
        self._ticket_repository.add(ticket)
        logger.info(
            "ticket_created",
            extra={"order_id": str(order.order_id), "ticket": ticket.label, "station": station.value},
        )
        return ticket


def _parse_station(station: str | None) -> TicketStation | None:
    if station is None or station.upper() == "ALL":
        return None
    try:
        return TicketStation(station.upper())
    except ValueError as exc:
        raise ValidationError(f"invalid station: {station}") from exc


class ListActiveTickets:
    def __init__(self, ticket_repository: TicketRepository) -> None:
        self._ticket_repository = ticket_repository

    def execute(
        self,
        organization_id: OrganizationId,
        station: str | None = None,
    ) -> TicketQueueResponse:
        parsed = _parse_station(station)
        tickets = self._ticket_repository.list_active(organization_id, parsed)
        record_kitchen_queue_size(
            organization_id=str(organization_id),
            station=parsed.value if parsed else "ALL",
            size=len(tickets),
        )
        return TicketQueueResponse(tickets=[to_ticket_response(ticket) for ticket in tickets])


class UpdateTicketStatus:
    def __init__(
        self,
        ticket_repository: TicketRepository,
        order_repository: OrderRepository,
        publisher: EventPublisher,
    ) -> None:
        self._ticket_repository = ticket_repository
        self._order_repository = order_repository
        self._publisher = publisher

    def execute(
        self,
        organization_id: OrganizationId,
        ticket_id: TicketId,
        status: TicketStatus,
        trace_ctx: TraceContext,
    ) -> TicketResponse:
        ticket = self._ticket_repository.get(ticket_id, organization_id)
        if ticket is None:
            raise TicketNotFoundError(f"ticket {ticket_id} not found")
        if status == TicketStatus.CANCELLED:
            raise InvalidTicketTransitionError("tickets are cancelled through their order")

        try:
            advanced = ticket.advance(status)
        except TicketTransitionError as exc:
            raise InvalidTicketTransitionError(str(exc)) from exc
        if advanced.status == ticket.status:
            return to_ticket_response(ticket)

        now = datetime.now(timezone.utc)
        self._advance_order(organization_id, advanced, now, trace_ctx)
        self._ticket_repository.update(advanced)

        publish_event(
            self._publisher,
            str(organization_id),
            serialize_ticket_event(
                event_type="kitchen.ticket_updated",
                occurred_at=now,
                ticket=advanced,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            ),
        )
        return to_ticket_response(advanced)

    def _advance_order(
        self,
        organization_id: OrganizationId,
        ticket: KitchenTicket,
        now: datetime,
        trace_ctx: TraceContext,
    ) -> None:
        target = ORDER_STATUS_FOR_TICKET.get(ticket.status)
        if target is None:
            return
        order = self._order_repository.get(ticket.order_id, organization_id)
        if order is None or not _lags_behind(order, target):
            # closed or cancelled orders and orders already past this step stay untouched
            return

        try:
            persisted = self._order_repository.update_with_version(
                order.transition_to(target),
                expected_version=order.version,
            )
        except OptimisticConcurrencyError as exc:
            current = self._order_repository.get(ticket.order_id, organization_id)
            if current is not None and not _lags_behind(current, target):
                return
            raise OrderConflictError(f"order {order.order_id} status update conflict") from exc

        record_transition(from_status=order.status, to_status=target)
        record_order_status(persisted)
        if target == OrderStatus.READY:
            record_time_to_ready(persisted, now=now)
        logger.info(
            "order_status_changed",
            extra={"order_id": str(order.order_id), "status": target.value},
        )
        publish_event(
            self._publisher,
            str(organization_id),
            serialize_order_event(
                event_type="order.status_changed",
                occurred_at=now,
                order=persisted,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            ),
        )


def _lags_behind(order: Order, target: OrderStatus) -> bool:
    if order.status not in FULFILMENT_SEQUENCE:
        return False
    return FULFILMENT_SEQUENCE.index(order.status) < FULFILMENT_SEQUENCE.index(target)


class PrintTicket:
    def __init__(self, ticket_repository: TicketRepository) -> None:
        self._ticket_repository = ticket_repository

    def execute(self, organization_id: OrganizationId, ticket_id: TicketId) -> TicketPrintResponse:
        ticket = self._ticket_repository.get(ticket_id, organization_id)
        if ticket is None:
            raise TicketNotFoundError(f"ticket {ticket_id} not found")
        return TicketPrintResponse(
            ticketId=str(ticket.ticket_id),
            label=ticket.label,
            text=render_ticket(ticket),
        )
