from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import inspect

from barback.api.container import Container, build_sql_container
from barback.domain.common.ids import (
    InventoryItemId,
    LocationId,
    MenuItemId,
    OrganizationId,
    Sku,
    TableId,
)
from barback.domain.common.money import Money
from barback.domain.inventory.entities import InventoryItem
from barback.domain.menu.entities import MenuItem, RecipeComponent, pos_category_for
from barback.domain.table.entities import Location, Organization, Table
from barback.infrastructure.db.session import get_engine

logger = logging.getLogger(__name__)

DEMO_ORGANIZATION_ID = OrganizationId("org_demo")
DEMO_LOCATION_ID = LocationId("loc_main")
DEMO_TABLE_COUNT = 8
CURRENCY = "USD"

_REQUIRED_TABLES = {"organizations", "locations", "menu_items", "inventory_items"}

# sku, name, category, stock, min, max, unit, cost, supplier, storage, expires in days
_INVENTORY = [
    ("VOD001", "Premium Vodka", "Spirits", "12", "3", "20", "bottles", "35.00", "Premium Spirits Co.", "Bar Storage A", None),
    ("GIN001", "Premium Gin", "Spirits", "8", "2", "15", "bottles", "42.00", "Premium Spirits Co.", "Bar Storage A", None),
    ("MIX001", "House Ginger Beer", "Mixers", "50", "12", "100", "bottles", "3.50", "Local Brewery", "Bar Storage B", 30),
    ("PRO001", "Fresh Limes", "Produce", "25", "10", "50", "pieces", "0.75", "Fresh Produce Inc.", "Refrigerator", 7),
    ("WHI001", "Bourbon Whiskey", "Spirits", "15", "5", "25", "bottles", "45.00", "Kentucky Distillers", "Bar Storage A", None),
    ("TEQ001", "Silver Tequila", "Spirits", "10", "3", "18", "bottles", "38.00", "Mexican Spirits Co.", "Bar Storage A", None),
]

# id, name, category, price, cost, prep minutes, abv, recipe
_MENU = [
    (
        "itm_moscow_mule",
        "Barrel Aged Moscow Mule",
        "Signature Cocktails",
        "16.00",
        "4.50",
        3,
        "12",
        [("VOD001", "0.08"), ("MIX001", "1"), ("PRO001", "0.5")],
    ),
    (
        "itm_old_fashioned",
        "Smoke & Mirrors Old Fashioned",
        "Signature Cocktails",
        "18.00",
        "5.25",
        5,
        "32",
        [("WHI001", "0.08")],
    ),
    (
        "itm_garden_gimlet",
        "Secret Garden Gimlet",
        "Signature Cocktails",
        "15.00",
        "4.00",
        4,
        "18",
        [("GIN001", "0.08"), ("PRO001", "0.5")],
    ),
    (
        "itm_margarita",
        "Classic Margarita",
        "Classic Cocktails",
        "13.00",
        "3.25",
        3,
        "20",
        [("TEQ001", "0.08"), ("PRO001", "1")],
    ),
    ("itm_wings", "Smoked Wings", "Appetizers", "14.00", "4.75", 15, None, []),
    ("itm_burger", "Barback Burger", "Main Courses", "19.00", "6.50", 18, None, []),
    ("itm_brownie", "Dark Chocolate Brownie", "Desserts", "9.00", "2.25", 8, None, []),
]


def _money(value: str) -> Money:
    return Money.from_decimal(Decimal(value), CURRENCY)


def seed_demo_data(container: Container, now: datetime | None = None) -> dict[str, int]:
    """Load the demo organization into ``container``; existing rows are left alone."""
    current = now or datetime.now(timezone.utc)
    created = {"locations": 0, "tables": 0, "menu_items": 0, "inventory_items": 0}

    container.organizations.upsert(
        Organization(
            organization_id=DEMO_ORGANIZATION_ID,
            name="Barback Pro Demo",
            tax_rate=Decimal("0.08875"),
            currency=CURRENCY,
        )
    )

    if container.locations.get(DEMO_LOCATION_ID, DEMO_ORGANIZATION_ID) is None:
        container.locations.add(
            Location(
                location_id=DEMO_LOCATION_ID,
                organization_id=DEMO_ORGANIZATION_ID,
                name="Main Bar",
            )
        )
        created["locations"] += 1

    for number in range(1, DEMO_TABLE_COUNT + 1):
        table_id = TableId(f"tbl_main_{number}")
        if container.tables.get(table_id, DEMO_ORGANIZATION_ID) is not None:
            continue
        container.tables.add(
            Table(
                table_id=table_id,
                organization_id=DEMO_ORGANIZATION_ID,
                location_id=DEMO_LOCATION_ID,
                number=number,
                created_at=current,
                capacity=2 if number <= 4 else 4,
            )
        )
        created["tables"] += 1

    for sku, name, category, stock, minimum, maximum, unit, cost, supplier, storage, expires in _INVENTORY:
        if container.inventory.get(Sku(sku), DEMO_ORGANIZATION_ID) is not None:
            continue
        container.inventory.add(
            InventoryItem(
                item_id=InventoryItemId(f"inv_{sku.lower()}"),
                organization_id=DEMO_ORGANIZATION_ID,
                sku=Sku(sku),
                name=name,
                category=category,
                unit=unit,
                current_stock=Decimal(stock),
                min_stock=Decimal(minimum),
                max_stock=Decimal(maximum),
                cost_per_unit=_money(cost),
                updated_at=current,
                supplier=supplier,
                storage_location=storage,
                expiration_date=current + timedelta(days=expires) if expires is not None else None,
            )
        )
        created["inventory_items"] += 1

    for item_id, name, category, price, cost, prep_minutes, abv, recipe in _MENU:
        if container.menu.get_item(MenuItemId(item_id), DEMO_ORGANIZATION_ID) is not None:
            continue
        container.menu.save_item(
            MenuItem(
                item_id=MenuItemId(item_id),
                organization_id=DEMO_ORGANIZATION_ID,
                name=name,
                category=category,
                pos_category=pos_category_for(category),
                price=_money(price),
                cost=_money(cost),
                preparation_time=prep_minutes,
                alcohol_content=Decimal(abv) if abv is not None else None,
                recipe=tuple(
                    RecipeComponent(sku=Sku(sku), quantity=Decimal(quantity))
                    for sku, quantity in recipe
                ),
            )
        )
        created["menu_items"] += 1

    return created


def main() -> None:
    engine = get_engine(timeout_seconds=2.0)
    if not _REQUIRED_TABLES.issubset(set(inspect(engine).get_table_names())):
        print("no schema yet")
        return

    created = seed_demo_data(build_sql_container())
    print(f"seed complete: {created}")


if __name__ == "__main__":
    main()
