from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

from barback.domain.common.ids import InventoryItemId, OrganizationId, Sku
from barback.domain.common.money import Money, round_half_up

_ZERO = Decimal("0")
EXPIRING_SOON_DAYS = 3
ANALYTICS_EXPIRY_WINDOW_DAYS = 7


class TransactionType(str, Enum):
    RESTOCK = "RESTOCK"
    SALE = "SALE"
    WASTE = "WASTE"
    ADJUSTMENT = "ADJUSTMENT"


class AlertType(str, Enum):
    LOW_STOCK = "LOW_STOCK"
    EXPIRING = "EXPIRING"
    EXPIRED = "EXPIRED"
    OVERSTOCK = "OVERSTOCK"


class AlertSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass(frozen=True)
class InventoryItem:
    item_id: InventoryItemId
    organization_id: OrganizationId
    sku: Sku
    name: str
    category: str
    unit: str
    current_stock: Decimal
    min_stock: Decimal
    max_stock: Decimal
    cost_per_unit: Money
    updated_at: datetime
    supplier: str | None = None
    storage_location: str | None = None
    barcode: str | None = None
    expiration_date: datetime | None = None

    def __post_init__(self) -> None:
        if not self.sku.strip():
            raise ValueError("sku must be non-empty")
        if not self.name.strip():
            raise ValueError("name must be non-empty")
        if self.current_stock < 0:
            raise ValueError("current_stock must be >= 0")
        if self.min_stock < 0 or self.max_stock < 0:
            raise ValueError("stock thresholds must be >= 0")

    @property
    def stock_value(self) -> Money:
        return _cost_of(self.cost_per_unit, self.current_stock)

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.min_stock

    def days_until_expiry(self, now: datetime) -> int | None:
        if self.expiration_date is None:
            return None
        return math.ceil((self.expiration_date - now) / timedelta(days=1))

    def matches(self, query: str) -> bool:
        needle = query.strip().lower()
        haystack = (self.name, self.sku, self.category, self.supplier or "")
        return any(needle in value.lower() for value in haystack)


@dataclass(frozen=True)
class StockMovement:
    """A requested change to one SKU's stock level.

    SALE and WASTE remove ``quantity`` (clamped at zero stock), RESTOCK adds it
    and ADJUSTMENT sets the stock to ``quantity`` outright.
    """

    sku: Sku
    movement_type: TransactionType
    quantity: Decimal
    unit_cost: Money | None = None
    notes: str | None = None
    employee_id: str | None = None
    reference: str | None = None

    def __post_init__(self) -> None:
        if self.movement_type == TransactionType.ADJUSTMENT:
            if self.quantity < 0:
                raise ValueError("adjusted stock must be >= 0")
        elif self.quantity <= 0:
            raise ValueError("movement quantity must be > 0")


@dataclass(frozen=True)
class InventoryTransaction:
    transaction_id: str
    organization_id: OrganizationId
    sku: Sku
    transaction_type: TransactionType
    quantity: Decimal
    previous_stock: Decimal
    new_stock: Decimal
    cost: Money
    created_at: datetime
    notes: str | None = None
    employee_id: str | None = None
    reference: str | None = None


def _cost_of(unit_cost: Money, quantity: Decimal) -> Money:
    return Money(
        amount_cents=round_half_up(Decimal(unit_cost.amount_cents) * abs(quantity)),
        currency=unit_cost.currency,
    )


def apply_movement(
    item: InventoryItem,
    movement: StockMovement,
    transaction_id: str,
    now: datetime,
) -> tuple[InventoryItem, InventoryTransaction]:
    previous = item.current_stock
    cost_per_unit = item.cost_per_unit
    cost = Money.zero(cost_per_unit.currency)

    if movement.movement_type == TransactionType.RESTOCK:
        new_stock = previous + movement.quantity
        if movement.unit_cost is not None:
            cost_per_unit = movement.unit_cost
        cost = _cost_of(cost_per_unit, movement.quantity)
    elif movement.movement_type == TransactionType.ADJUSTMENT:
        new_stock = movement.quantity
    else:
        # stock never goes negative; the shortfall is not carried anywhere
        new_stock = max(previous - movement.quantity, _ZERO)
        cost = _cost_of(cost_per_unit, movement.quantity)

    updated = replace(
        item,
        current_stock=new_stock,
        cost_per_unit=cost_per_unit,
        updated_at=now,
    )
    transaction = InventoryTransaction(
        transaction_id=transaction_id,
        organization_id=item.organization_id,
        sku=item.sku,
        transaction_type=movement.movement_type,
        quantity=new_stock - previous,
        previous_stock=previous,
        new_stock=new_stock,
        cost=cost,
        created_at=now,
        notes=movement.notes,
        employee_id=movement.employee_id,
        reference=movement.reference,
    )
    return updated, transaction


@dataclass(frozen=True)
class InventoryAlert:
    alert_id: str
    organization_id: OrganizationId
    sku: Sku
    item_name: str
    alert_type: AlertType
    severity: AlertSeverity
    message: str
    created_at: datetime


def _alert(
    item: InventoryItem,
    alert_type: AlertType,
    severity: AlertSeverity,
    message: str,
    now: datetime,
) -> InventoryAlert:
    return InventoryAlert(
        alert_id=f"alr_{alert_type.value.lower()}_{item.sku}",
        organization_id=item.organization_id,
        sku=item.sku,
        item_name=item.name,
        alert_type=alert_type,
        severity=severity,
        message=message,
        created_at=now,
    )


def derive_alerts(items: Iterable[InventoryItem], now: datetime) -> list[InventoryAlert]:
    alerts: list[InventoryAlert] = []
    for item in items:
        if item.current_stock <= item.min_stock:
            alerts.append(
                _alert(
                    item,
                    AlertType.LOW_STOCK,
                    AlertSeverity.HIGH if item.current_stock == 0 else AlertSeverity.MEDIUM,
                    f"{item.name} is running low ({item.current_stock} {item.unit} remaining)",
                    now,
                )
            )

        days = item.days_until_expiry(now)
        if days is not None:
            if 0 < days <= EXPIRING_SOON_DAYS:
                alerts.append(
                    _alert(
                        item,
                        AlertType.EXPIRING,
                        AlertSeverity.HIGH if days == 1 else AlertSeverity.MEDIUM,
                        f"{item.name} expires in {days} day(s)",
                        now,
                    )
                )
            elif days <= 0:
                alerts.append(
                    _alert(item, AlertType.EXPIRED, AlertSeverity.HIGH, f"{item.name} has expired", now)
                )

        if item.current_stock > item.max_stock:
            alerts.append(
                _alert(
                    item,
                    AlertType.OVERSTOCK,
                    AlertSeverity.LOW,
                    f"{item.name} is overstocked ({item.current_stock} {item.unit})",
                    now,
                )
            )
    return alerts


@dataclass(frozen=True)
class InventoryAnalytics:
    total_items: int
    low_stock_items: int
    expiring_items: int
    total_value: Money
    average_value: Money
    categories: int


def summarize_inventory(
    items: list[InventoryItem],
    now: datetime,
    currency: str,
) -> InventoryAnalytics:
    horizon = now + timedelta(days=ANALYTICS_EXPIRY_WINDOW_DAYS)
    total_value = Money.zero(currency)
    for item in items:
        total_value = total_value + item.stock_value

    average_cents = round_half_up(Decimal(total_value.amount_cents) / len(items)) if items else 0
    return InventoryAnalytics(
        total_items=len(items),
        low_stock_items=sum(1 for item in items if item.is_low_stock),
        expiring_items=sum(
            1
            for item in items
            if item.expiration_date is not None and item.expiration_date <= horizon
        ),
        total_value=total_value,
        average_value=Money(amount_cents=average_cents, currency=currency),
        categories=len({item.category for item in items}),
    )
