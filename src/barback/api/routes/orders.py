from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Query, status

from barback.api.deps import (
    ContainerDep,
    OrganizationDep,
    TraceDep,
    recompute_alerts,
    ticket_dispatcher,
)
from barback.application.dto.requests import (
    AddOrderItemRequest,
    CloseOrderRequest,
    OpenOrderRequest,
    UpdateOrderStatusRequest,
)
from barback.application.dto.responses import (
    CloseOrderResponse,
    Envelope,
    OrderListResponse,
    OrderResponse,
    OrderWithTicketResponse,
)
from barback.application.use_cases.add_order_item import AddOrderItem
from barback.application.use_cases.close_order import CloseOrder
from barback.application.use_cases.get_order import GetOrder, ListOrders
from barback.application.use_cases.open_order import OpenOrder
from barback.application.use_cases.process_payment import ProcessPayment
from barback.application.use_cases.update_order_status import UpdateOrderStatus
from barback.domain.common.ids import OrderId

router = APIRouter(prefix="/v1/orders", tags=["orders"])


@router.post(
    "",
    response_model=Envelope[OrderWithTicketResponse],
    status_code=status.HTTP_201_CREATED,
)
def open_order(
    request_dto: OpenOrderRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
    trace_ctx: TraceDep,
) -> Envelope[OrderWithTicketResponse]:
    use_case = OpenOrder(
        order_repository=container.orders,
        organization_repository=container.organizations,
        location_repository=container.locations,
        table_repository=container.tables,
        sequence_repository=container.sequences,
        dispatcher=ticket_dispatcher(container),
        publisher=container.publisher,
    )
    return Envelope(data=use_case.execute(organization_id, request_dto, trace_ctx), message="Order opened")


@router.get("", response_model=Envelope[OrderListResponse])
def list_orders(
    container: ContainerDep,
    organization_id: OrganizationDep,
    location_id: Annotated[str | None, Query(alias="locationId")] = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    order_type: Annotated[str | None, Query(alias="orderType")] = None,
    created_from: Annotated[datetime | None, Query(alias="from")] = None,
    created_to: Annotated[datetime | None, Query(alias="to")] = None,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
    cursor: str | None = None,
) -> Envelope[OrderListResponse]:
    result = ListOrders(order_repository=container.orders).execute(
        organization_id=organization_id,
        location_id=location_id,
        status=status_filter,
        order_type=order_type,
        created_from=created_from,
        created_to=created_to,
        limit=limit,
        cursor=cursor,
    )
    return Envelope(data=result)


@router.get("/{order_id}", response_model=Envelope[OrderResponse])
def get_order(
    order_id: str,
    container: ContainerDep,
    organization_id: OrganizationDep,
) -> Envelope[OrderResponse]:
    order = GetOrder(order_repository=container.orders).execute(organization_id, OrderId(order_id))
    return Envelope(data=order)


@router.post("/{order_id}/items", response_model=Envelope[OrderResponse])
def add_order_item(
    order_id: str,
    request_dto: AddOrderItemRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
    trace_ctx: TraceDep,
) -> Envelope[OrderResponse]:
    use_case = AddOrderItem(
        order_repository=container.orders,
        menu_repository=container.menu,
        ticket_repository=container.tickets,
        publisher=container.publisher,
    )
    order = use_case.execute(organization_id, OrderId(order_id), request_dto, trace_ctx)
    return Envelope(data=order, message="Item added")


@router.patch("/{order_id}/status", response_model=Envelope[OrderResponse])
def update_order_status(
    order_id: str,
    request_dto: UpdateOrderStatusRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
    trace_ctx: TraceDep,
) -> Envelope[OrderResponse]:
    use_case = UpdateOrderStatus(
        order_repository=container.orders,
        ticket_repository=container.tickets,
        publisher=container.publisher,
    )
    order = use_case.execute(organization_id, OrderId(order_id), request_dto.status, trace_ctx)
    return Envelope(data=order)


@router.post("/{order_id}/close", response_model=Envelope[CloseOrderResponse])
async def close_order(
    order_id: str,
    request_dto: CloseOrderRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
    trace_ctx: TraceDep,
) -> Envelope[CloseOrderResponse]:
    use_case = CloseOrder(
        order_repository=container.orders,
        payment_repository=container.payments,
        ticket_repository=container.tickets,
        sequence_repository=container.sequences,
        settlement_repository=container.settlement,
        processor=ProcessPayment(container.gateway),
        recompute_alerts=recompute_alerts(container),
        publisher=container.publisher,
    )
    result = await use_case.execute(organization_id, OrderId(order_id), request_dto, trace_ctx)
    return Envelope(data=result, message="Order closed")
