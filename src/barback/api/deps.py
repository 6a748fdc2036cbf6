from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, Request

from barback.api.container import Container
from barback.api.middleware.request_id import get_request_id
from barback.application.use_cases.context import TraceContext
from barback.application.use_cases.inventory_ledger import RecomputeAlerts
from barback.application.use_cases.kitchen_tickets import TicketDispatcher
from barback.domain.common.ids import OrganizationId
from barback.infrastructure.observability.otel import current_trace_id

ORGANIZATION_HEADER = "X-Organization-Id"


def get_container(request: Request) -> Container:
    return request.app.state.container


def organization_id(
    x_organization_id: Annotated[
        str,
        Header(alias=ORGANIZATION_HEADER, min_length=1, max_length=64),
    ],
) -> OrganizationId:
    return OrganizationId(x_organization_id.strip())


def trace_context() -> TraceContext:
    return TraceContext(trace_id=current_trace_id(), request_id=get_request_id())


def ticket_dispatcher(container: Container) -> TicketDispatcher:
    return TicketDispatcher(
        ticket_repository=container.tickets,
        sequence_repository=container.sequences,
    )


def recompute_alerts(container: Container) -> RecomputeAlerts:
    return RecomputeAlerts(
        inventory_repository=container.inventory,
        alert_repository=container.alerts,
        publisher=container.publisher,
    )


ContainerDep = Annotated[Container, Depends(get_container)]
OrganizationDep = Annotated[OrganizationId, Depends(organization_id)]
TraceDep = Annotated[TraceContext, Depends(trace_context)]
