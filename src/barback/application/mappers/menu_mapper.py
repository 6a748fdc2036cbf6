from __future__ import annotations

from barback.application.dto.responses import (
    MenuItemResponse,
    MenuResponse,
    RecipeComponentResponse,
)
from barback.application.mappers.common import to_money_response
from barback.domain.menu.entities import MenuCatalog, MenuItem, PosCategory


def to_menu_item_response(item: MenuItem) -> MenuItemResponse:
    return MenuItemResponse(
        itemId=str(item.item_id),
        name=item.name,
        category=item.category,
        posCategory=item.pos_category.value,
        description=item.description,
        price=to_money_response(item.price),
        cost=to_money_response(item.cost),
        preparationTime=item.preparation_time,
        allergens=list(item.allergens),
        isVegetarian=item.is_vegetarian,
        isVegan=item.is_vegan,
        isGlutenFree=item.is_gluten_free,
        alcoholContent=item.alcohol_content,
        available=item.available,
        recipe=[
            RecipeComponentResponse(sku=str(component.sku), quantity=component.quantity)
            for component in item.recipe
        ],
    )


def to_menu_response(
    catalog: MenuCatalog,
    pos_category: PosCategory | None = None,
    include_unavailable: bool = False,
) -> MenuResponse:
    items = catalog.visible_items(pos_category=pos_category, include_unavailable=include_unavailable)
    categories: dict[str, None] = {}
    for item in items:
        categories.setdefault(item.category, None)
    return MenuResponse(
        organizationId=str(catalog.organization_id),
        menuVersion=catalog.version,
        categories=list(categories),
        items=[to_menu_item_response(item) for item in items],
        updatedAt=catalog.updated_at,
    )
