from __future__ import annotations

from uuid import uuid4

from barback.application.dto.requests import CheckoutRequest
from barback.application.dto.responses import OrderWithTicketResponse
from barback.application.ports.publisher import EventPublisher
from barback.application.ports.repositories import (
    CartRepository,
    LocationRepository,
    OrderRepository,
    OrganizationRepository,
    SequenceRepository,
    TableRepository,
)
from barback.application.use_cases.context import TraceContext
from barback.application.use_cases.errors import CartNotFoundError
from barback.application.use_cases.kitchen_tickets import TicketDispatcher
from barback.application.use_cases.open_order import OrderOpener, order_with_ticket
from barback.domain.cart.entities import EmptyCartError
from barback.domain.common.ids import CartId, OrderLineId, OrganizationId
from barback.domain.order.entities import line_from_cart


class FinalizeOrder(OrderOpener):
    """Turn a checkout cart into an OPEN order and its kitchen ticket."""

    def __init__(
        self,
        cart_repository: CartRepository,
        order_repository: OrderRepository,
        organization_repository: OrganizationRepository,
        location_repository: LocationRepository,
        table_repository: TableRepository,
        sequence_repository: SequenceRepository,
        dispatcher: TicketDispatcher,
        publisher: EventPublisher,
    ) -> None:
        super().__init__(
            order_repository=order_repository,
            organization_repository=organization_repository,
            location_repository=location_repository,
            table_repository=table_repository,
            sequence_repository=sequence_repository,
            dispatcher=dispatcher,
            publisher=publisher,
        )
        self._cart_repository = cart_repository

    def execute(
        self,
        organization_id: OrganizationId,
        cart_id: CartId,
        request_dto: CheckoutRequest,
        trace_ctx: TraceContext,
    ) -> OrderWithTicketResponse:
        cart = self._cart_repository.get(cart_id, organization_id)
        if cart is None:
            raise CartNotFoundError(f"cart {cart_id} not found")
        if cart.is_empty:
            raise EmptyCartError(f"cart {cart_id} has no items")

        location_id = self._check_location(organization_id, request_dto.location_id)
        table = self._resolve_table(organization_id, location_id, request_dto.table_id)
        lines = [
            line_from_cart(OrderLineId(f"orl_{uuid4().hex[:12]}"), line)
            for line in cart.snapshot()
        ]
        order, ticket = self._open(
            organization=self._organization(organization_id),
            location_id=location_id,
            table=table,
            lines=lines,
            tip=request_dto.tip,
            routing=request_dto.routing,
            trace_ctx=trace_ctx,
            order_type=request_dto.order_type,
            priority=request_dto.priority,
            table_number=request_dto.table_number,
            customer_id=request_dto.customer_id,
            customer_name=request_dto.customer_name,
            payment_method=request_dto.payment_method,
            employee_id=request_dto.employee_id,
            notes=request_dto.notes,
            kitchen_notes=request_dto.kitchen_notes,
            allergy_notes=request_dto.allergy_notes,
        )

        cart.clear()
        self._cart_repository.save(cart)
        return order_with_ticket(order, ticket)
