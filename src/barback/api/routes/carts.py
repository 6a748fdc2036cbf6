from __future__ import annotations

from fastapi import APIRouter, status

from barback.api.deps import ContainerDep, OrganizationDep, TraceDep, ticket_dispatcher
from barback.application.dto.requests import (
    AddCartItemRequest,
    CheckoutRequest,
    UpdateCartItemRequest,
)
from barback.application.dto.responses import (
    CartMutationResponse,
    CartResponse,
    Envelope,
    OrderWithTicketResponse,
)
from barback.application.use_cases.cart import (
    AddCartItem,
    CreateCart,
    DiscardCart,
    GetCart,
    RemoveCartItem,
    UpdateCartItem,
)
from barback.application.use_cases.finalize_order import FinalizeOrder
from barback.domain.common.ids import CartId

router = APIRouter(prefix="/v1/carts", tags=["carts"])


@router.post("", response_model=Envelope[CartResponse], status_code=status.HTTP_201_CREATED)
def create_cart(container: ContainerDep, organization_id: OrganizationDep) -> Envelope[CartResponse]:
    cart = CreateCart(container.carts, container.organizations).execute(organization_id)
    return Envelope(data=cart)


@router.get("/{cart_id}", response_model=Envelope[CartResponse])
def get_cart(
    cart_id: str,
    container: ContainerDep,
    organization_id: OrganizationDep,
) -> Envelope[CartResponse]:
    cart = GetCart(container.carts, container.organizations).execute(organization_id, CartId(cart_id))
    return Envelope(data=cart)


@router.post("/{cart_id}/items", response_model=Envelope[CartMutationResponse])
def add_cart_item(
    cart_id: str,
    request_dto: AddCartItemRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
) -> Envelope[CartMutationResponse]:
    use_case = AddCartItem(container.carts, container.organizations, container.menu)
    result = use_case.execute(organization_id, CartId(cart_id), request_dto)
    return Envelope(data=result, message=None if result.applied else "Item not added")


@router.patch("/{cart_id}/items/{index}", response_model=Envelope[CartMutationResponse])
def update_cart_item(
    cart_id: str,
    index: int,
    request_dto: UpdateCartItemRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
) -> Envelope[CartMutationResponse]:
    use_case = UpdateCartItem(container.carts, container.organizations)
    result = use_case.execute(organization_id, CartId(cart_id), index, request_dto)
    return Envelope(data=result, message=None if result.applied else "Cart line not updated")


@router.delete("/{cart_id}/items/{index}", response_model=Envelope[CartMutationResponse])
def remove_cart_item(
    cart_id: str,
    index: int,
    container: ContainerDep,
    organization_id: OrganizationDep,
) -> Envelope[CartMutationResponse]:
    use_case = RemoveCartItem(container.carts, container.organizations)
    result = use_case.execute(organization_id, CartId(cart_id), index)
    return Envelope(data=result, message=None if result.applied else "Cart line not found")


@router.delete("/{cart_id}", response_model=Envelope[None])
def discard_cart(
    cart_id: str,
    container: ContainerDep,
    organization_id: OrganizationDep,
) -> Envelope[None]:
    DiscardCart(container.carts, container.organizations).execute(organization_id, CartId(cart_id))
    return Envelope(message="Cart cleared")


@router.post(
    "/{cart_id}/checkout",
    response_model=Envelope[OrderWithTicketResponse],
    status_code=status.HTTP_201_CREATED,
)
def checkout_cart(
    cart_id: str,
    request_dto: CheckoutRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
    trace_ctx: TraceDep,
) -> Envelope[OrderWithTicketResponse]:
    use_case = FinalizeOrder(
        cart_repository=container.carts,
        order_repository=container.orders,
        organization_repository=container.organizations,
        location_repository=container.locations,
        table_repository=container.tables,
        sequence_repository=container.sequences,
        dispatcher=ticket_dispatcher(container),
        publisher=container.publisher,
    )
    result = use_case.execute(organization_id, CartId(cart_id), request_dto, trace_ctx)
    return Envelope(data=result, message="Order created")
