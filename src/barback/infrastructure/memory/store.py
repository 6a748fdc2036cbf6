from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime

from barback.domain.cart.entities import Cart
from barback.domain.inventory.entities import InventoryAlert, InventoryItem, InventoryTransaction
from barback.domain.kitchen.entities import KitchenTicket
from barback.domain.menu.entities import MenuItem
from barback.domain.order.entities import Order
from barback.domain.payment.entities import PaymentRecord
from barback.domain.table.entities import Location, Organization, Table


@dataclass
class InMemoryStore:
    """Process-local state shared by the in-memory repositories.

    Every repository takes ``lock`` for the whole of each call, so multi-step
    writes such as settlement are atomic with respect to one another.
    """

    lock: threading.RLock = field(default_factory=threading.RLock)
    organizations: dict[str, Organization] = field(default_factory=dict)
    locations: dict[str, Location] = field(default_factory=dict)
    tables: dict[str, Table] = field(default_factory=dict)
    menu_items: dict[str, MenuItem] = field(default_factory=dict)
    menu_versions: dict[str, tuple[int, datetime]] = field(default_factory=dict)
    carts: dict[str, Cart] = field(default_factory=dict)
    orders: dict[str, Order] = field(default_factory=dict)
    tickets: dict[str, KitchenTicket] = field(default_factory=dict)
    inventory: dict[tuple[str, str], InventoryItem] = field(default_factory=dict)
    transactions: list[InventoryTransaction] = field(default_factory=list)
    alerts: dict[str, list[InventoryAlert]] = field(default_factory=dict)
    payments: dict[str, PaymentRecord] = field(default_factory=dict)
    sequences: dict[str, int] = field(default_factory=dict)
