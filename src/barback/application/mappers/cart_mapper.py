from __future__ import annotations

from decimal import Decimal

from barback.application.dto.responses import CartLineResponse, CartResponse
from barback.application.mappers.common import to_money_response
from barback.domain.cart.entities import Cart


def to_cart_response(cart: Cart, tax_rate: Decimal, currency: str) -> CartResponse:
    totals = cart.totals(tax_rate, currency)
    return CartResponse(
        cartId=str(cart.cart_id),
        organizationId=str(cart.organization_id),
        lines=[
            CartLineResponse(
                index=index,
                menuItemId=str(line.menu_item.item_id),
                name=line.menu_item.name,
                quantity=line.quantity,
                unitPrice=to_money_response(line.menu_item.price),
                subtotal=to_money_response(line.subtotal),
                modifications=list(line.modifications),
                customizations=dict(line.customizations),
                note=line.note,
            )
            for index, line in enumerate(cart.lines)
        ],
        itemCount=sum(line.quantity for line in cart.lines),
        taxRate=tax_rate,
        subtotal=to_money_response(totals.subtotal),
        tax=to_money_response(totals.tax),
        total=to_money_response(totals.total),
        createdAt=cart.created_at,
        updatedAt=cart.updated_at,
    )
