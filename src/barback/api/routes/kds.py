from __future__ import annotations

from fastapi import APIRouter

from barback.api.deps import ContainerDep, OrganizationDep, TraceDep
from barback.application.dto.requests import UpdateTicketStatusRequest
from barback.application.dto.responses import (
    Envelope,
    TicketPrintResponse,
    TicketQueueResponse,
    TicketResponse,
)
from barback.application.use_cases.kitchen_tickets import (
    ListActiveTickets,
    PrintTicket,
    UpdateTicketStatus,
)
from barback.domain.common.ids import TicketId

router = APIRouter(prefix="/v1/kds", tags=["kds"])


@router.get("/tickets", response_model=Envelope[TicketQueueResponse])
def list_active_tickets(
    container: ContainerDep,
    organization_id: OrganizationDep,
    station: str | None = None,
) -> Envelope[TicketQueueResponse]:
    queue = ListActiveTickets(ticket_repository=container.tickets).execute(organization_id, station)
    return Envelope(data=queue)


@router.patch("/tickets/{ticket_id}/status", response_model=Envelope[TicketResponse])
def update_ticket_status(
    ticket_id: str,
    request_dto: UpdateTicketStatusRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
    trace_ctx: TraceDep,
) -> Envelope[TicketResponse]:
    use_case = UpdateTicketStatus(
        ticket_repository=container.tickets,
        order_repository=container.orders,
        publisher=container.publisher,
    )
    ticket = use_case.execute(organization_id, TicketId(ticket_id), request_dto.status, trace_ctx)
    return Envelope(data=ticket)


@router.get("/tickets/{ticket_id}/print", response_model=Envelope[TicketPrintResponse])
def print_ticket(
    ticket_id: str,
    container: ContainerDep,
    organization_id: OrganizationDep,
) -> Envelope[TicketPrintResponse]:
    printed = PrintTicket(ticket_repository=container.tickets).execute(organization_id, TicketId(ticket_id))
    return Envelope(data=printed)
