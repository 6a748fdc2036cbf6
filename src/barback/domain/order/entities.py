from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum

from barback.domain.cart.entities import CartLine
from barback.domain.common.ids import (
    LocationId,
    MenuItemId,
    OrderId,
    OrderLineId,
    OrganizationId,
    TableId,
)
from barback.domain.common.money import Money
from barback.domain.menu.entities import MenuItem, PosCategory, RecipeComponent
from barback.domain.payment.entities import PaymentMethod


class OrderStatus(str, Enum):
    OPEN = "OPEN"
    PREPARING = "PREPARING"
    READY = "READY"
    SERVED = "SERVED"
    CLOSED = "CLOSED"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


class OrderType(str, Enum):
    DINE_IN = "DINE_IN"
    TAKEOUT = "TAKEOUT"
    DELIVERY = "DELIVERY"


class OrderPriority(str, Enum):
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


FULFILMENT_SEQUENCE: tuple[OrderStatus, ...] = (
    OrderStatus.OPEN,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.SERVED,
)
TERMINAL_STATUSES = frozenset({OrderStatus.CLOSED, OrderStatus.CANCELLED})
ACTIVE_STATUSES = frozenset(
    {OrderStatus.OPEN, OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.SERVED}
)
_EDITABLE_STATUSES = frozenset({OrderStatus.OPEN, OrderStatus.PREPARING})


class OrderTransitionError(Exception):
    pass


@dataclass(frozen=True)
class OrderLine:
    line_id: OrderLineId
    item_id: MenuItemId
    name: str
    quantity: int
    unit_price: Money
    line_total: Money
    notes: str | None = None
    modifications: tuple[str, ...] = ()
    customizations: dict[str, str] = field(default_factory=dict)
    preparation_time: int = 0
    allergens: tuple[str, ...] = ()
    pos_category: PosCategory = PosCategory.FOOD
    recipe: tuple[RecipeComponent, ...] = ()

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("quantity must be >= 1")
        if self.unit_price.currency != self.line_total.currency:
            raise ValueError("line_total currency must match unit_price currency")
        expected_total = self.unit_price.amount_cents * self.quantity
        if self.line_total.amount_cents != expected_total:
            raise ValueError("line_total must equal unit_price * quantity")

    @property
    def prep_minutes(self) -> int:
        return self.preparation_time * self.quantity


def line_from_menu_item(
    line_id: OrderLineId,
    menu_item: MenuItem,
    quantity: int,
    unit_price: Money | None = None,
    notes: str | None = None,
    modifications: Iterable[str] = (),
    customizations: dict[str, str] | None = None,
) -> OrderLine:
    price = unit_price or menu_item.price
    return OrderLine(
        line_id=line_id,
        item_id=menu_item.item_id,
        name=menu_item.name,
        quantity=quantity,
        unit_price=price,
        line_total=price.times(quantity),
        notes=notes,
        modifications=tuple(modifications),
        customizations=dict(customizations or {}),
        preparation_time=menu_item.preparation_time,
        allergens=menu_item.allergens,
        pos_category=menu_item.pos_category,
        recipe=menu_item.recipe,
    )


def line_from_cart(line_id: OrderLineId, cart_line: CartLine) -> OrderLine:
    return line_from_menu_item(
        line_id=line_id,
        menu_item=cart_line.menu_item,
        quantity=cart_line.quantity,
        notes=cart_line.note,
        modifications=cart_line.modifications,
        customizations=cart_line.customizations,
    )


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Money
    tax: Money
    tip: Money
    total: Money


def compute_totals(
    lines: Iterable[OrderLine],
    tax_rate: Decimal,
    tip: Money,
) -> OrderTotals:
    subtotal = Money.zero(tip.currency)
    for line in lines:
        subtotal = subtotal + line.line_total
    tax = subtotal.apply_rate(tax_rate)
    return OrderTotals(subtotal=subtotal, tax=tax, tip=tip, total=subtotal + tax + tip)


def estimate_ready_at(lines: Iterable[OrderLine], start: datetime) -> datetime:
    # prep times add up across lines, parallel stations are not modelled
    return start + timedelta(minutes=sum(line.prep_minutes for line in lines))


@dataclass(frozen=True)
class Order:
    order_id: OrderId
    organization_id: OrganizationId
    location_id: LocationId
    order_number: int
    order_type: OrderType
    priority: OrderPriority
    status: OrderStatus
    payment_status: PaymentStatus
    lines: list[OrderLine]
    tax_rate: Decimal
    subtotal: Money
    tax: Money
    tip: Money
    total: Money
    created_at: datetime
    estimated_ready_at: datetime
    table_id: TableId | None = None
    table_number: int | None = None
    customer_id: str | None = None
    customer_name: str | None = None
    payment_method: PaymentMethod | None = None
    employee_id: str | None = None
    notes: str | None = None
    kitchen_notes: str | None = None
    allergy_notes: str | None = None
    closed_at: datetime | None = None
    version: int = 1

    def __post_init__(self) -> None:
        if self.order_number < 1:
            raise ValueError("order_number must be >= 1")
        if self.tax_rate < 0 or self.tax_rate > 1:
            raise ValueError("tax_rate must be between 0 and 1")
        expected = compute_totals(self.lines, self.tax_rate, self.tip)
        if self.subtotal != expected.subtotal:
            raise ValueError("order subtotal must equal sum of line totals")
        if self.tax != expected.tax:
            raise ValueError("order tax must equal subtotal * tax_rate")
        if self.total != expected.total:
            raise ValueError("order total must equal subtotal + tax + tip")

    @property
    def currency(self) -> str:
        return self.total.currency

    @property
    def prep_time_total(self) -> int:
        return sum(line.prep_minutes for line in self.lines)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def add_line(self, line: OrderLine) -> Order:
        if self.status not in _EDITABLE_STATUSES:
            raise OrderTransitionError(f"cannot add items to order with status={self.status.value}")
        lines = [*self.lines, line]
        return self._with_lines(lines)

    def transition_to(self, target: OrderStatus) -> Order:
        if target == self.status:
            return self
        if self.is_terminal:
            raise OrderTransitionError(f"order is already {self.status.value}")
        if target == OrderStatus.CLOSED:
            raise OrderTransitionError("orders can only be closed through settlement")
        if target == OrderStatus.CANCELLED:
            return replace(self, status=OrderStatus.CANCELLED)
        if FULFILMENT_SEQUENCE.index(target) < FULFILMENT_SEQUENCE.index(self.status):
            raise OrderTransitionError(
                f"cannot move order from status={self.status.value} to {target.value}"
            )
        return replace(self, status=target)

    def with_final_totals(self, tax_rate: Decimal, tip: Money) -> Order:
        totals = compute_totals(self.lines, tax_rate, tip)
        return replace(
            self,
            tax_rate=tax_rate,
            subtotal=totals.subtotal,
            tax=totals.tax,
            tip=totals.tip,
            total=totals.total,
        )

    def with_payment_status(self, payment_status: PaymentStatus) -> Order:
        return replace(self, payment_status=payment_status)

    def close(self, now: datetime, payment_method: PaymentMethod) -> Order:
        if self.is_terminal:
            raise OrderTransitionError(f"cannot close order with status={self.status.value}")
        return replace(
            self,
            status=OrderStatus.CLOSED,
            payment_status=PaymentStatus.COMPLETED,
            payment_method=payment_method,
            closed_at=now,
        )

    def _with_lines(self, lines: list[OrderLine]) -> Order:
        totals = compute_totals(lines, self.tax_rate, self.tip)
        return replace(
            self,
            lines=lines,
            subtotal=totals.subtotal,
            tax=totals.tax,
            total=totals.total,
            estimated_ready_at=estimate_ready_at(lines, self.created_at),
        )


def create_open_order(
    order_id: OrderId,
    organization_id: OrganizationId,
    location_id: LocationId,
    order_number: int,
    lines: list[OrderLine],
    tax_rate: Decimal,
    tip: Money,
    now: datetime,
    order_type: OrderType = OrderType.DINE_IN,
    priority: OrderPriority = OrderPriority.NORMAL,
    table_id: TableId | None = None,
    table_number: int | None = None,
    customer_id: str | None = None,
    customer_name: str | None = None,
    payment_method: PaymentMethod | None = None,
    employee_id: str | None = None,
    notes: str | None = None,
    kitchen_notes: str | None = None,
    allergy_notes: str | None = None,
) -> Order:
    totals = compute_totals(lines, tax_rate, tip)
    return Order(
        order_id=order_id,
        organization_id=organization_id,
        location_id=location_id,
        order_number=order_number,
        order_type=order_type,
        priority=priority,
        status=OrderStatus.OPEN,
        payment_status=PaymentStatus.PENDING,
        lines=lines,
        tax_rate=tax_rate,
        subtotal=totals.subtotal,
        tax=totals.tax,
        tip=totals.tip,
        total=totals.total,
        created_at=now,
        estimated_ready_at=estimate_ready_at(lines, now),
        table_id=table_id,
        table_number=table_number,
        customer_id=customer_id,
        customer_name=customer_name,
        payment_method=payment_method,
        employee_id=employee_id,
        notes=notes,
        kitchen_notes=kitchen_notes,
        allergy_notes=allergy_notes,
    )
