from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal

from barback.domain.common.ids import CartId, MenuItemId, OrganizationId
from barback.domain.common.money import Money
from barback.domain.menu.entities import MenuItem


class EmptyCartError(Exception):
    pass


@dataclass(frozen=True)
class CartLine:
    menu_item: MenuItem
    quantity: int
    modifications: tuple[str, ...] = ()
    customizations: dict[str, str] = field(default_factory=dict)
    note: str | None = None

    def __post_init__(self) -> None:
        if self.quantity < 1:
            raise ValueError("quantity must be >= 1")

    @property
    def subtotal(self) -> Money:
        return self.menu_item.price.times(self.quantity)

    def merge_key(self) -> tuple[MenuItemId, tuple[str, ...], tuple[tuple[str, str], ...], str | None]:
        # modifications keep their order, customizations compare as a mapping
        return (
            self.menu_item.item_id,
            self.modifications,
            tuple(sorted(self.customizations.items())),
            self.note,
        )

    def copy(self) -> CartLine:
        return replace(self, customizations=dict(self.customizations))


@dataclass(frozen=True)
class CartTotals:
    subtotal: Money
    tax: Money
    total: Money


@dataclass
class Cart:
    """Line items accumulated by a single checkout session."""

    cart_id: CartId
    organization_id: OrganizationId
    lines: list[CartLine] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def add_item(
        self,
        menu_item: MenuItem | None,
        quantity: int = 1,
        modifications: Iterable[str] = (),
        customizations: Mapping[str, str] | None = None,
        note: str | None = None,
    ) -> bool:
        if menu_item is None or not menu_item.available or quantity < 1:
            return False

        candidate = CartLine(
            menu_item=menu_item,
            quantity=quantity,
            modifications=tuple(modifications),
            customizations=dict(customizations or {}),
            note=note,
        )
        key = candidate.merge_key()
        for index, line in enumerate(self.lines):
            if line.merge_key() == key:
                self.lines[index] = replace(line, quantity=line.quantity + quantity)
                self._touch()
                return True

        self.lines.append(candidate)
        self._touch()
        return True

    def update_quantity(self, index: int, quantity: int) -> bool:
        if not self._valid_index(index):
            return False
        if quantity <= 0:
            return self.remove_item(index)
        self.lines[index] = replace(self.lines[index], quantity=quantity)
        self._touch()
        return True

    def update_note(self, index: int, note: str | None) -> bool:
        if not self._valid_index(index):
            return False
        self.lines[index] = replace(self.lines[index], note=note)
        self._touch()
        return True

    def remove_item(self, index: int) -> bool:
        if not self._valid_index(index):
            return False
        del self.lines[index]
        self._touch()
        return True

    def clear(self) -> None:
        self.lines = []
        self._touch()

    def totals(self, tax_rate: Decimal, currency: str) -> CartTotals:
        subtotal = Money.zero(currency)
        for line in self.lines:
            subtotal = subtotal + line.subtotal
        tax = subtotal.apply_rate(tax_rate)
        return CartTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)

    def snapshot(self) -> list[CartLine]:
        return [line.copy() for line in self.lines]

    def _valid_index(self, index: int) -> bool:
        return 0 <= index < len(self.lines)

    def _touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)
