from __future__ import annotations

import json
import os
from datetime import datetime
from decimal import Decimal
from typing import Any

from barback.application.ports.repositories import CartRepository
from barback.domain.cart.entities import Cart, CartLine
from barback.domain.common.ids import CartId, MenuItemId, OrganizationId, Sku
from barback.domain.common.money import Money
from barback.domain.menu.entities import MenuItem, PosCategory, RecipeComponent
from barback.infrastructure.cache.redis_client import get_redis_client


def cart_key(organization_id: OrganizationId, cart_id: CartId) -> str:
    return f"cart:{organization_id}:{cart_id}"


def _cart_ttl_seconds() -> int:
    return int(os.getenv("CART_TTL_SECONDS", "86400"))


class RedisCartRepository(CartRepository):
    """Carts live in Redis as JSON; each line carries the menu item as it was when added."""

    def __init__(self, timeout_seconds: float = 1.0, ttl_seconds: int | None = None) -> None:
        self._timeout_seconds = timeout_seconds
        self._ttl_seconds = ttl_seconds or _cart_ttl_seconds()

    def get(self, cart_id: CartId, organization_id: OrganizationId) -> Cart | None:
        raw = get_redis_client(timeout_seconds=self._timeout_seconds).get(
            cart_key(organization_id, cart_id)
        )
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return cart_from_json(json.loads(raw))

    def save(self, cart: Cart) -> None:
        get_redis_client(timeout_seconds=self._timeout_seconds).set(
            name=cart_key(cart.organization_id, cart.cart_id),
            value=json.dumps(cart_to_json(cart)),
            ex=self._ttl_seconds,
        )

    def delete(self, cart_id: CartId, organization_id: OrganizationId) -> None:
        get_redis_client(timeout_seconds=self._timeout_seconds).delete(
            cart_key(organization_id, cart_id)
        )


def _menu_item_to_json(item: MenuItem) -> dict[str, Any]:
    return {
        "itemId": str(item.item_id),
        "organizationId": str(item.organization_id),
        "name": item.name,
        "category": item.category,
        "posCategory": item.pos_category.value,
        "priceCents": item.price.amount_cents,
        "costCents": item.cost.amount_cents,
        "currency": item.price.currency,
        "preparationTime": item.preparation_time,
        "description": item.description,
        "allergens": list(item.allergens),
        "isVegetarian": item.is_vegetarian,
        "isVegan": item.is_vegan,
        "isGlutenFree": item.is_gluten_free,
        "alcoholContent": str(item.alcohol_content) if item.alcohol_content is not None else None,
        "available": item.available,
        "recipe": [
            {"sku": str(component.sku), "quantity": str(component.quantity)}
            for component in item.recipe
        ],
    }


def _menu_item_from_json(raw: dict[str, Any]) -> MenuItem:
    currency = raw["currency"]
    alcohol = raw.get("alcoholContent")
    return MenuItem(
        item_id=MenuItemId(raw["itemId"]),
        organization_id=OrganizationId(raw["organizationId"]),
        name=raw["name"],
        category=raw["category"],
        pos_category=PosCategory(raw["posCategory"]),
        price=Money(amount_cents=int(raw["priceCents"]), currency=currency),
        cost=Money(amount_cents=int(raw["costCents"]), currency=currency),
        preparation_time=int(raw["preparationTime"]),
        description=raw.get("description"),
        allergens=tuple(raw.get("allergens") or ()),
        is_vegetarian=bool(raw.get("isVegetarian")),
        is_vegan=bool(raw.get("isVegan")),
        is_gluten_free=bool(raw.get("isGlutenFree")),
        alcohol_content=Decimal(alcohol) if alcohol is not None else None,
        available=bool(raw.get("available", True)),
        recipe=tuple(
            RecipeComponent(sku=Sku(entry["sku"]), quantity=Decimal(entry["quantity"]))
            for entry in raw.get("recipe") or ()
        ),
    )


def cart_to_json(cart: Cart) -> dict[str, Any]:
    return {
        "cartId": str(cart.cart_id),
        "organizationId": str(cart.organization_id),
        "createdAt": cart.created_at.isoformat(),
        "updatedAt": cart.updated_at.isoformat(),
        "lines": [
            {
                "menuItem": _menu_item_to_json(line.menu_item),
                "quantity": line.quantity,
                "modifications": list(line.modifications),
                "customizations": dict(line.customizations),
                "note": line.note,
            }
            for line in cart.lines
        ],
    }


def cart_from_json(raw: dict[str, Any]) -> Cart:
    return Cart(
        cart_id=CartId(raw["cartId"]),
        organization_id=OrganizationId(raw["organizationId"]),
        created_at=datetime.fromisoformat(raw["createdAt"]),
        updated_at=datetime.fromisoformat(raw["updatedAt"]),
        lines=[
            CartLine(
                menu_item=_menu_item_from_json(line["menuItem"]),
                quantity=int(line["quantity"]),
                modifications=tuple(line.get("modifications") or ()),
                customizations=dict(line.get("customizations") or {}),
                note=line.get("note"),
            )
            for line in raw.get("lines") or ()
        ],
    )
