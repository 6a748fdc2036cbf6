from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from barback.domain.common.ids import MenuItemId, OrganizationId, Sku
from barback.domain.common.money import Money


class PosCategory(str, Enum):
    DRINKS = "DRINKS"
    FOOD = "FOOD"
    APPETIZERS = "APPETIZERS"
    DESSERTS = "DESSERTS"


_POS_CATEGORY_BY_MENU_CATEGORY: dict[str, PosCategory] = {
    "signature cocktails": PosCategory.DRINKS,
    "classic cocktails": PosCategory.DRINKS,
    "craft beer": PosCategory.DRINKS,
    "wine": PosCategory.DRINKS,
    "non-alcoholic": PosCategory.DRINKS,
    "bar": PosCategory.DRINKS,
    "drinks": PosCategory.DRINKS,
    "main courses": PosCategory.FOOD,
    "appetizers": PosCategory.APPETIZERS,
    "desserts": PosCategory.DESSERTS,
}


def pos_category_for(category: str) -> PosCategory:
    return _POS_CATEGORY_BY_MENU_CATEGORY.get(category.strip().lower(), PosCategory.FOOD)


@dataclass(frozen=True)
class RecipeComponent:
    """Inventory consumed by selling one unit of a menu item."""

    sku: Sku
    quantity: Decimal

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError("recipe quantity must be > 0")


@dataclass(frozen=True)
class MenuItem:
    item_id: MenuItemId
    organization_id: OrganizationId
    name: str
    category: str
    pos_category: PosCategory
    price: Money
    cost: Money
    preparation_time: int
    description: str | None = None
    allergens: tuple[str, ...] = ()
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_gluten_free: bool = False
    alcohol_content: Decimal | None = None
    available: bool = True
    recipe: tuple[RecipeComponent, ...] = ()

    def __post_init__(self) -> None:
        if not self.name.strip():
            raise ValueError("name must be non-empty")
        if self.price.amount_cents <= 0:
            raise ValueError("price must be > 0")
        if self.cost.currency != self.price.currency:
            raise ValueError("cost currency must match price currency")
        if self.preparation_time < 0:
            raise ValueError("preparation_time must be >= 0")

    @property
    def is_drink(self) -> bool:
        return self.pos_category == PosCategory.DRINKS

    def with_price(self, price: Money) -> MenuItem:
        return replace(self, price=price)

    def with_availability(self, available: bool) -> MenuItem:
        return replace(self, available=available)

    def matches(self, query: str) -> bool:
        needle = query.strip().lower()
        haystack = (self.name, self.category, self.description or "")
        return any(needle in value.lower() for value in haystack)


@dataclass(frozen=True)
class MenuCatalog:
    organization_id: OrganizationId
    version: int
    items: list[MenuItem] = field(default_factory=list)
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if self.version < 1:
            raise ValueError("version must be >= 1")

    @property
    def categories(self) -> list[str]:
        seen: dict[str, None] = {}
        for item in self.items:
            seen.setdefault(item.category, None)
        return list(seen)

    def find(self, item_id: MenuItemId) -> MenuItem | None:
        for item in self.items:
            if item.item_id == item_id:
                return item
        return None

    def visible_items(
        self,
        pos_category: PosCategory | None = None,
        include_unavailable: bool = False,
    ) -> list[MenuItem]:
        return [
            item
            for item in self.items
            if (include_unavailable or item.available)
            and (pos_category is None or item.pos_category == pos_category)
        ]
