from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from barback.domain.common.ids import InventoryItemId, OrganizationId, Sku
from barback.domain.common.money import Money
from barback.domain.inventory.entities import (
    AlertSeverity,
    AlertType,
    InventoryItem,
    StockMovement,
    TransactionType,
    apply_movement,
    derive_alerts,
    summarize_inventory,
)

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def _item(
    sku: str = "VOD001",
    current: str = "12",
    minimum: str = "3",
    maximum: str = "20",
    expires_in_days: float | None = None,
) -> InventoryItem:
    return InventoryItem(
        item_id=InventoryItemId(f"inv_{sku.lower()}"),
        organization_id=OrganizationId("org_001"),
        sku=Sku(sku),
        name=f"Item {sku}",
        category="Spirits",
        unit="bottles",
        current_stock=Decimal(current),
        min_stock=Decimal(minimum),
        max_stock=Decimal(maximum),
        cost_per_unit=Money.from_decimal("35.00", "USD"),
        updated_at=NOW,
        expiration_date=NOW + timedelta(days=expires_in_days) if expires_in_days is not None else None,
    )


def test_sale_never_drives_stock_negative() -> None:
    movement = StockMovement(sku=Sku("VOD001"), movement_type=TransactionType.SALE, quantity=Decimal("50"))

    updated, transaction = apply_movement(_item(current="12"), movement, "ivt_001", NOW)

    assert updated.current_stock == Decimal("0")
    assert transaction.previous_stock == Decimal("12")
    assert transaction.new_stock == Decimal("0")
    assert transaction.quantity == Decimal("-12")


def test_restock_adds_stock_and_updates_unit_cost() -> None:
    movement = StockMovement(
        sku=Sku("VOD001"),
        movement_type=TransactionType.RESTOCK,
        quantity=Decimal("4"),
        unit_cost=Money.from_decimal("30.00", "USD"),
    )

    updated, transaction = apply_movement(_item(current="12"), movement, "ivt_001", NOW)

    assert updated.current_stock == Decimal("16")
    assert updated.cost_per_unit == Money(amount_cents=3000, currency="USD")
    assert transaction.cost == Money(amount_cents=12000, currency="USD")


def test_adjustment_sets_absolute_stock() -> None:
    movement = StockMovement(sku=Sku("VOD001"), movement_type=TransactionType.ADJUSTMENT, quantity=Decimal("7"))

    updated, transaction = apply_movement(_item(current="12"), movement, "ivt_001", NOW)

    assert updated.current_stock == Decimal("7")
    assert transaction.quantity == Decimal("-5")


def test_movement_quantity_must_be_positive() -> None:
    with pytest.raises(ValueError):
        StockMovement(sku=Sku("VOD001"), movement_type=TransactionType.WASTE, quantity=Decimal("0"))


def test_low_stock_produces_exactly_one_medium_alert() -> None:
    alerts = derive_alerts([_item(current="3", minimum="5")], NOW)

    assert len(alerts) == 1
    assert alerts[0].alert_type == AlertType.LOW_STOCK
    assert alerts[0].severity == AlertSeverity.MEDIUM
    assert alerts[0].sku == "VOD001"


def test_empty_stock_is_high_severity() -> None:
    alerts = derive_alerts([_item(current="0", minimum="5")], NOW)

    assert [alert.severity for alert in alerts] == [AlertSeverity.HIGH]


def test_expiry_and_overstock_alerts() -> None:
    alerts = derive_alerts(
        [
            _item("PRO001", expires_in_days=0.5),
            _item("MIX001", expires_in_days=3),
            _item("GIN001", expires_in_days=-1),
            _item("WHI001", current="30", maximum="25"),
        ],
        NOW,
    )
    by_sku = {(alert.sku, alert.alert_type): alert.severity for alert in alerts}

    assert by_sku == {
        ("PRO001", AlertType.EXPIRING): AlertSeverity.HIGH,
        ("MIX001", AlertType.EXPIRING): AlertSeverity.MEDIUM,
        ("GIN001", AlertType.EXPIRED): AlertSeverity.HIGH,
        ("WHI001", AlertType.OVERSTOCK): AlertSeverity.LOW,
    }


def test_summary_counts_value_and_expiring_items() -> None:
    analytics = summarize_inventory(
        [_item("VOD001", current="2"), _item("PRO001", current="10", expires_in_days=5)],
        NOW,
        "USD",
    )

    assert analytics.total_items == 2
    assert analytics.low_stock_items == 1
    assert analytics.expiring_items == 1
    assert analytics.total_value == Money(amount_cents=42000, currency="USD")
    assert analytics.average_value == Money(amount_cents=21000, currency="USD")
    assert analytics.categories == 1
