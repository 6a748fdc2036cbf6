from __future__ import annotations

from uuid import uuid4

from barback.application.dto.requests import AddCartItemRequest, UpdateCartItemRequest
from barback.application.dto.responses import CartMutationResponse, CartResponse
from barback.application.mappers.cart_mapper import to_cart_response
from barback.application.ports.repositories import (
    CartRepository,
    MenuRepository,
    OrganizationRepository,
)
from barback.application.use_cases.errors import CartNotFoundError
from barback.application.use_cases.organization import load_organization
from barback.domain.cart.entities import Cart
from barback.domain.common.ids import CartId, MenuItemId, OrganizationId


class _CartUseCase:
    def __init__(
        self,
        cart_repository: CartRepository,
        organization_repository: OrganizationRepository,
    ) -> None:
        self._cart_repository = cart_repository
        self._organization_repository = organization_repository

    def _load(self, organization_id: OrganizationId, cart_id: CartId) -> Cart:
        cart = self._cart_repository.get(cart_id, organization_id)
        if cart is None:
            raise CartNotFoundError(f"cart {cart_id} not found")
        return cart

    def _to_response(self, cart: Cart) -> CartResponse:
        organization = load_organization(self._organization_repository, cart.organization_id)
        return to_cart_response(cart, organization.tax_rate, organization.currency)

    def _mutation(self, cart: Cart, applied: bool) -> CartMutationResponse:
        if applied:
            self._cart_repository.save(cart)
        return CartMutationResponse(applied=applied, cart=self._to_response(cart))


class CreateCart(_CartUseCase):
    def execute(self, organization_id: OrganizationId) -> CartResponse:
        cart = Cart(cart_id=CartId(f"crt_{uuid4().hex[:12]}"), organization_id=organization_id)
        self._cart_repository.save(cart)
        return self._to_response(cart)


class GetCart(_CartUseCase):
    def execute(self, organization_id: OrganizationId, cart_id: CartId) -> CartResponse:
        return self._to_response(self._load(organization_id, cart_id))


class AddCartItem(_CartUseCase):
    def __init__(
        self,
        cart_repository: CartRepository,
        organization_repository: OrganizationRepository,
        menu_repository: MenuRepository,
    ) -> None:
        super().__init__(cart_repository, organization_repository)
        self._menu_repository = menu_repository

    def execute(
        self,
        organization_id: OrganizationId,
        cart_id: CartId,
        request_dto: AddCartItemRequest,
    ) -> CartMutationResponse:
        cart = self._load(organization_id, cart_id)
        menu_item = self._menu_repository.get_item(
            MenuItemId(request_dto.menu_item_id),
            organization_id,
        )
        applied = cart.add_item(
            menu_item,
            quantity=request_dto.quantity,
            modifications=request_dto.modifications,
            customizations=request_dto.customizations,
            note=request_dto.note,
        )
        return self._mutation(cart, applied)


class UpdateCartItem(_CartUseCase):
    def execute(
        self,
        organization_id: OrganizationId,
        cart_id: CartId,
        index: int,
        request_dto: UpdateCartItemRequest,
    ) -> CartMutationResponse:
        cart = self._load(organization_id, cart_id)
        changes = request_dto.model_dump(exclude_unset=True)
        applied = 0 <= index < len(cart.lines)
        if applied and "note" in changes:
            applied = cart.update_note(index, request_dto.note)
        if applied and request_dto.quantity is not None:
            applied = cart.update_quantity(index, request_dto.quantity)
        return self._mutation(cart, applied)


class RemoveCartItem(_CartUseCase):
    def execute(
        self,
        organization_id: OrganizationId,
        cart_id: CartId,
        index: int,
    ) -> CartMutationResponse:
        cart = self._load(organization_id, cart_id)
        return self._mutation(cart, cart.remove_item(index))


class DiscardCart(_CartUseCase):
    def execute(self, organization_id: OrganizationId, cart_id: CartId) -> None:
        cart = self._load(organization_id, cart_id)
        cart.clear()
        self._cart_repository.delete(cart.cart_id, organization_id)
