from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from barback.application.dto.requests import OpenOrderRequest
from barback.application.dto.responses import OrderWithTicketResponse
from barback.application.mappers.event_envelope import serialize_order_event
from barback.application.mappers.order_mapper import to_order_response, to_ticket_response
from barback.application.metrics.pos_metrics import record_order_status
from barback.application.ports.publisher import EventPublisher
from barback.application.ports.repositories import (
    ORDER_NUMBER_SEQUENCE,
    LocationRepository,
    OrderRepository,
    OrganizationRepository,
    SequenceRepository,
    TableRepository,
)
from barback.application.use_cases.context import TraceContext, publish_event
from barback.application.use_cases.errors import LocationNotFoundError, TableNotFoundError
from barback.application.use_cases.kitchen_tickets import TicketDispatcher
from barback.application.use_cases.organization import load_organization
from barback.domain.common.ids import LocationId, OrderId, OrganizationId, TableId
from barback.domain.common.money import Money
from barback.domain.kitchen.entities import KitchenTicket, RoutingPolicy
from barback.domain.order.entities import (
    Order,
    OrderLine,
    OrderPriority,
    OrderType,
    create_open_order,
)
from barback.domain.order.events import OrderOpened
from barback.domain.payment.entities import PaymentMethod
from barback.domain.table.entities import Organization, Table

logger = logging.getLogger(__name__)


class OrderOpener:
    def __init__(
        self,
        order_repository: OrderRepository,
        organization_repository: OrganizationRepository,
        location_repository: LocationRepository,
        table_repository: TableRepository,
        sequence_repository: SequenceRepository,
        dispatcher: TicketDispatcher,
        publisher: EventPublisher,
    ) -> None:
        self._order_repository = order_repository
        self._organization_repository = organization_repository
        self._location_repository = location_repository
        self._table_repository = table_repository
        self._sequence_repository = sequence_repository
        self._dispatcher = dispatcher
        self._publisher = publisher

    def _organization(self, organization_id: OrganizationId) -> Organization:
        return load_organization(self._organization_repository, organization_id)

    def _check_location(self, organization_id: OrganizationId, location_id: str) -> LocationId:
        location = self._location_repository.get(LocationId(location_id), organization_id)
        if location is None:
            raise LocationNotFoundError(
                f"location not found for organization_id={organization_id}, location_id={location_id}"
            )
        return location.location_id

    def _resolve_table(
        self,
        organization_id: OrganizationId,
        location_id: LocationId,
        table_id: str | None,
    ) -> Table | None:
        if table_id is None:
            return None
        table = self._table_repository.get(TableId(table_id), organization_id)
        if table is None or table.location_id != location_id:
            raise TableNotFoundError(
                f"table not found for location_id={location_id}, table_id={table_id}"
            )
        return table

    def _open(
        self,
        organization: Organization,
        location_id: LocationId,
        table: Table | None,
        lines: list[OrderLine],
        tip: Decimal,
        routing: RoutingPolicy | None,
        trace_ctx: TraceContext,
        order_type: OrderType,
        priority: OrderPriority,
        table_number: int | None = None,
        customer_id: str | None = None,
        customer_name: str | None = None,
        payment_method: PaymentMethod | None = None,
        employee_id: str | None = None,
        notes: str | None = None,
        kitchen_notes: str | None = None,
        allergy_notes: str | None = None,
    ) -> tuple[Order, KitchenTicket | None]:
        now = datetime.now(timezone.utc)
        order = create_open_order(
            order_id=OrderId(f"ord_{uuid4().hex[:12]}"),
            organization_id=organization.organization_id,
            location_id=location_id,
            order_number=self._sequence_repository.next_value(ORDER_NUMBER_SEQUENCE),
            lines=lines,
            tax_rate=organization.tax_rate,
            tip=Money.from_decimal(tip, organization.currency),
            now=now,
            table_id=table.table_id if table else None,
            order_type=order_type,
            priority=priority,
            table_number=table.number if table else table_number,
            customer_id=customer_id,
            customer_name=customer_name,
            payment_method=payment_method,
            employee_id=employee_id,
            notes=notes,
            kitchen_notes=kitchen_notes,
            allergy_notes=allergy_notes,
        )
        self._order_repository.add(order)
        ticket = self._dispatcher.dispatch(order, routing)

        event = OrderOpened(
            order_id=order.order_id,
            organization_id=order.organization_id,
            order_number=order.order_number,
            total=order.total,
            created_at=order.created_at,
        )
        record_order_status(order)
        logger.info(
            "order_opened",
            extra={
                "organization_id": str(order.organization_id),
                "order_id": str(order.order_id),
                "order_number": order.order_number,
            },
        )
        publish_event(
            self._publisher,
            str(order.organization_id),
            serialize_order_event(
                event_type="order.opened",
                occurred_at=event.created_at,
                order=order,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            ),
        )
        return order, ticket


def order_with_ticket(order: Order, ticket: KitchenTicket | None) -> OrderWithTicketResponse:
    return OrderWithTicketResponse(
        order=to_order_response(order),
        ticket=to_ticket_response(ticket) if ticket else None,
    )


class OpenOrder(OrderOpener):
    def execute(
        self,
        organization_id: OrganizationId,
        request_dto: OpenOrderRequest,
        trace_ctx: TraceContext,
    ) -> OrderWithTicketResponse:
        location_id = self._check_location(organization_id, request_dto.location_id)
        table = self._resolve_table(organization_id, location_id, request_dto.table_id)
        order, ticket = self._open(
            organization=self._organization(organization_id),
            location_id=location_id,
            table=table,
            lines=[],
            tip=Decimal("0"),
            routing=request_dto.routing,
            trace_ctx=trace_ctx,
            order_type=request_dto.order_type,
            priority=request_dto.priority,
            customer_id=request_dto.customer_id,
            customer_name=request_dto.customer_name,
            employee_id=request_dto.employee_id,
            notes=request_dto.notes,
            kitchen_notes=request_dto.kitchen_notes,
            allergy_notes=request_dto.allergy_notes,
        )
        return order_with_ticket(order, ticket)
