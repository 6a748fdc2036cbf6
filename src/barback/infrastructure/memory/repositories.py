from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from uuid import uuid4

from barback.application.ports.repositories import (
    SEQUENCE_STARTS,
    AlertRepository,
    CartRepository,
    DuplicateKeyError,
    InventoryRepository,
    LocationRepository,
    MenuRepository,
    OptimisticConcurrencyError,
    OrderFilter,
    OrderRepository,
    OrganizationRepository,
    PaymentRepository,
    SequenceRepository,
    SettlementRepository,
    SettlementResult,
    TableRepository,
    TicketRepository,
)
from barback.domain.cart.entities import Cart
from barback.domain.common.ids import (
    CartId,
    LocationId,
    MenuItemId,
    OrderId,
    OrganizationId,
    PaymentId,
    Sku,
    TableId,
    TicketId,
)
from barback.domain.inventory.entities import (
    InventoryAlert,
    InventoryItem,
    InventoryTransaction,
    StockMovement,
    apply_movement,
)
from barback.domain.kitchen.entities import KitchenTicket, TicketStation
from barback.domain.menu.entities import MenuCatalog, MenuItem
from barback.domain.order.entities import ACTIVE_STATUSES, Order, OrderStatus
from barback.domain.payment.entities import PaymentRecord, PaymentRecordStatus
from barback.domain.table.entities import Location, Organization, Table
from barback.infrastructure.memory.store import InMemoryStore
from barback.infrastructure.pagination import decode_cursor, encode_cursor


def _copy_cart(cart: Cart) -> Cart:
    return Cart(
        cart_id=cart.cart_id,
        organization_id=cart.organization_id,
        lines=[line.copy() for line in cart.lines],
        created_at=cart.created_at,
        updated_at=cart.updated_at,
    )


class InMemoryOrganizationRepository(OrganizationRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def get(self, organization_id: OrganizationId) -> Organization | None:
        with self._store.lock:
            return self._store.organizations.get(str(organization_id))

    def upsert(self, organization: Organization) -> None:
        with self._store.lock:
            self._store.organizations[str(organization.organization_id)] = organization


class InMemoryLocationRepository(LocationRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def get(self, location_id: LocationId, organization_id: OrganizationId) -> Location | None:
        with self._store.lock:
            location = self._store.locations.get(str(location_id))
        if location is None or location.organization_id != organization_id:
            return None
        return location

    def add(self, location: Location) -> None:
        with self._store.lock:
            self._store.locations[str(location.location_id)] = location

    def list_for_organization(self, organization_id: OrganizationId) -> list[Location]:
        with self._store.lock:
            locations = [
                location
                for location in self._store.locations.values()
                if location.organization_id == organization_id
            ]
        return sorted(locations, key=lambda location: (location.name, str(location.location_id)))


class InMemoryTableRepository(TableRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def get(self, table_id: TableId, organization_id: OrganizationId) -> Table | None:
        with self._store.lock:
            table = self._store.tables.get(str(table_id))
        if table is None or table.organization_id != organization_id:
            return None
        return table

    def add(self, table: Table) -> None:
        with self._store.lock:
            for existing in self._store.tables.values():
                if (
                    existing.organization_id == table.organization_id
                    and existing.location_id == table.location_id
                    and existing.number == table.number
                ):
                    raise DuplicateKeyError(
                        f"table {table.number} already exists at location {table.location_id}"
                    )
            self._store.tables[str(table.table_id)] = table

    def list_for_organization(
        self,
        organization_id: OrganizationId,
        location_id: LocationId | None,
    ) -> list[Table]:
        with self._store.lock:
            tables = [
                table
                for table in self._store.tables.values()
                if table.organization_id == organization_id
                and (location_id is None or table.location_id == location_id)
            ]
        return sorted(tables, key=lambda table: (str(table.location_id), table.number))


class InMemoryMenuRepository(MenuRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def get_catalog(self, organization_id: OrganizationId) -> MenuCatalog:
        with self._store.lock:
            version, updated_at = self._store.menu_versions.get(
                str(organization_id),
                (1, datetime.now(timezone.utc)),
            )
            items = [
                item
                for item in self._store.menu_items.values()
                if item.organization_id == organization_id
            ]
        return MenuCatalog(
            organization_id=organization_id,
            version=version,
            items=items,
            updated_at=updated_at,
        )

    def get_item(self, item_id: MenuItemId, organization_id: OrganizationId) -> MenuItem | None:
        with self._store.lock:
            item = self._store.menu_items.get(str(item_id))
        if item is None or item.organization_id != organization_id:
            return None
        return item

    def save_item(self, item: MenuItem) -> int:
        key = str(item.organization_id)
        with self._store.lock:
            self._store.menu_items[str(item.item_id)] = item
            current = self._store.menu_versions.get(key)
            version = current[0] + 1 if current is not None else 1
            self._store.menu_versions[key] = (version, datetime.now(timezone.utc))
        return version


class InMemoryCartRepository(CartRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def get(self, cart_id: CartId, organization_id: OrganizationId) -> Cart | None:
        with self._store.lock:
            cart = self._store.carts.get(str(cart_id))
            if cart is None or cart.organization_id != organization_id:
                return None
            return _copy_cart(cart)

    def save(self, cart: Cart) -> None:
        with self._store.lock:
            self._store.carts[str(cart.cart_id)] = _copy_cart(cart)

    def delete(self, cart_id: CartId, organization_id: OrganizationId) -> None:
        with self._store.lock:
            cart = self._store.carts.get(str(cart_id))
            if cart is not None and cart.organization_id == organization_id:
                del self._store.carts[str(cart_id)]


class InMemoryOrderRepository(OrderRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def add(self, order: Order) -> None:
        with self._store.lock:
            if str(order.order_id) in self._store.orders:
                raise DuplicateKeyError(f"order {order.order_id} already exists")
            self._store.orders[str(order.order_id)] = order

    def get(self, order_id: OrderId, organization_id: OrganizationId) -> Order | None:
        with self._store.lock:
            order = self._store.orders.get(str(order_id))
        if order is None or order.organization_id != organization_id:
            return None
        return order

    def update_with_version(self, order: Order, expected_version: int) -> Order:
        with self._store.lock:
            return self._write(order, expected_version)

    def _write(self, order: Order, expected_version: int) -> Order:
        current = self._store.orders.get(str(order.order_id))
        if current is None or current.version != expected_version:
            raise OptimisticConcurrencyError(f"order {order.order_id} version conflict")
        updated = replace(order, version=expected_version + 1)
        self._store.orders[str(order.order_id)] = updated
        return updated

    def list_orders(
        self,
        organization_id: OrganizationId,
        filters: OrderFilter,
        limit: int,
        cursor: str | None,
    ) -> tuple[list[Order], str | None]:
        cursor_parts = decode_cursor(cursor) if cursor else None
        with self._store.lock:
            candidates = [
                order
                for order in self._store.orders.values()
                if order.organization_id == organization_id and _matches(order, filters)
            ]
        candidates.sort(key=lambda order: (order.created_at, str(order.order_id)), reverse=True)
        if cursor_parts is not None:
            candidates = [
                order
                for order in candidates
                if (order.created_at, str(order.order_id)) < cursor_parts
            ]

        page = candidates[:limit]
        next_cursor: str | None = None
        if len(candidates) > limit and page:
            last = page[-1]
            next_cursor = encode_cursor(last.created_at, str(last.order_id))
        return page, next_cursor

    def list_active(
        self,
        organization_id: OrganizationId,
        location_id: LocationId | None,
    ) -> list[Order]:
        with self._store.lock:
            orders = [
                order
                for order in self._store.orders.values()
                if order.organization_id == organization_id
                and order.status in ACTIVE_STATUSES
                and (location_id is None or order.location_id == location_id)
            ]
        return sorted(orders, key=lambda order: (order.created_at, str(order.order_id)))

    def list_closed_between(
        self,
        organization_id: OrganizationId,
        start: datetime,
        end: datetime,
    ) -> list[Order]:
        with self._store.lock:
            orders = [
                order
                for order in self._store.orders.values()
                if order.organization_id == organization_id
                and order.status == OrderStatus.CLOSED
                and order.closed_at is not None
                and start <= order.closed_at < end
            ]
        return sorted(orders, key=lambda order: (order.closed_at, str(order.order_id)))


def _matches(order: Order, filters: OrderFilter) -> bool:
    if filters.location_id is not None and order.location_id != filters.location_id:
        return False
    if filters.status is not None and order.status != filters.status:
        return False
    if filters.order_type is not None and order.order_type != filters.order_type:
        return False
    if filters.created_from is not None and order.created_at < filters.created_from:
        return False
    if filters.created_to is not None and order.created_at >= filters.created_to:
        return False
    return True


class InMemoryTicketRepository(TicketRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def add(self, ticket: KitchenTicket) -> None:
        with self._store.lock:
            self._store.tickets[str(ticket.ticket_id)] = ticket

    def get(self, ticket_id: TicketId, organization_id: OrganizationId) -> KitchenTicket | None:
        with self._store.lock:
            ticket = self._store.tickets.get(str(ticket_id))
        if ticket is None or ticket.organization_id != organization_id:
            return None
        return ticket

    def get_for_order(self, order_id: OrderId) -> KitchenTicket | None:
        with self._store.lock:
            for ticket in self._store.tickets.values():
                if ticket.order_id == order_id:
                    return ticket
        return None

    def update(self, ticket: KitchenTicket) -> None:
        with self._store.lock:
            self._store.tickets[str(ticket.ticket_id)] = ticket

    def list_active(
        self,
        organization_id: OrganizationId,
        station: TicketStation | None,
    ) -> list[KitchenTicket]:
        with self._store.lock:
            tickets = [
                ticket
                for ticket in self._store.tickets.values()
                if ticket.organization_id == organization_id
                and ticket.is_active
                and (station is None or ticket.station == station)
            ]
        return sorted(tickets, key=lambda ticket: (ticket.created_at, ticket.ticket_number))


class InMemoryInventoryRepository(InventoryRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def get(self, sku: Sku, organization_id: OrganizationId) -> InventoryItem | None:
        with self._store.lock:
            return self._store.inventory.get((str(organization_id), str(sku)))

    def add(self, item: InventoryItem) -> None:
        key = (str(item.organization_id), str(item.sku))
        with self._store.lock:
            if key in self._store.inventory:
                raise DuplicateKeyError(f"sku {item.sku} already exists")
            self._store.inventory[key] = item

    def update(self, item: InventoryItem) -> None:
        key = (str(item.organization_id), str(item.sku))
        with self._store.lock:
            if key in self._store.inventory:
                self._store.inventory[key] = item

    def list_items(self, organization_id: OrganizationId) -> list[InventoryItem]:
        with self._store.lock:
            items = [
                item
                for (org, _), item in self._store.inventory.items()
                if org == str(organization_id)
            ]
        return sorted(items, key=lambda item: (item.category, item.name))

    def apply_movements(
        self,
        organization_id: OrganizationId,
        movements: list[StockMovement],
        now: datetime,
    ) -> list[InventoryTransaction]:
        with self._store.lock:
            transactions, _ = apply_movements_locked(self._store, organization_id, movements, now)
        return transactions

    def list_transactions(
        self,
        organization_id: OrganizationId,
        sku: Sku | None,
        limit: int,
    ) -> list[InventoryTransaction]:
        with self._store.lock:
            transactions = [
                txn
                for txn in self._store.transactions
                if txn.organization_id == organization_id and (sku is None or txn.sku == sku)
            ]
        # appended in commit order, so reversing gives newest first
        return list(reversed(transactions))[:limit]


def apply_movements_locked(
    store: InMemoryStore,
    organization_id: OrganizationId,
    movements: list[StockMovement],
    now: datetime,
) -> tuple[list[InventoryTransaction], list[Sku]]:
    """Apply movements while the caller holds ``store.lock``."""
    transactions: list[InventoryTransaction] = []
    missing: list[Sku] = []
    for movement in movements:
        key = (str(organization_id), str(movement.sku))
        item = store.inventory.get(key)
        if item is None:
            missing.append(movement.sku)
            continue
        updated, transaction = apply_movement(
            item,
            movement,
            transaction_id=f"ivt_{uuid4().hex[:12]}",
            now=now,
        )
        store.inventory[key] = updated
        store.transactions.append(transaction)
        transactions.append(transaction)
    return transactions, missing


class InMemoryAlertRepository(AlertRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def replace_all(self, organization_id: OrganizationId, alerts: list[InventoryAlert]) -> None:
        with self._store.lock:
            self._store.alerts[str(organization_id)] = list(alerts)

    def list_alerts(self, organization_id: OrganizationId) -> list[InventoryAlert]:
        with self._store.lock:
            alerts = list(self._store.alerts.get(str(organization_id), []))
        return sorted(alerts, key=lambda alert: (str(alert.sku), alert.alert_type.value))


class InMemoryPaymentRepository(PaymentRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def add(self, payment: PaymentRecord) -> None:
        with self._store.lock:
            self._store.payments[str(payment.payment_id)] = payment

    def get(self, payment_id: PaymentId, organization_id: OrganizationId) -> PaymentRecord | None:
        with self._store.lock:
            payment = self._store.payments.get(str(payment_id))
        if payment is None or payment.organization_id != organization_id:
            return None
        return payment

    def update(self, payment: PaymentRecord) -> None:
        with self._store.lock:
            self._store.payments[str(payment.payment_id)] = payment

    def update_if_status(self, payment: PaymentRecord, expected_status: PaymentRecordStatus) -> None:
        with self._store.lock:
            current = self._store.payments.get(str(payment.payment_id))
            if current is None or current.status != expected_status:
                raise OptimisticConcurrencyError(f"payment {payment.payment_id} status conflict")
            self._store.payments[str(payment.payment_id)] = payment

    def list_payments(
        self,
        organization_id: OrganizationId,
        order_id: OrderId | None,
        status: PaymentRecordStatus | None,
    ) -> list[PaymentRecord]:
        with self._store.lock:
            payments = [
                payment
                for payment in self._store.payments.values()
                if payment.organization_id == organization_id
                and (order_id is None or payment.order_id == order_id)
                and (status is None or payment.status == status)
            ]
        return sorted(
            payments,
            key=lambda payment: (payment.created_at, str(payment.payment_id)),
            reverse=True,
        )


class InMemorySequenceRepository(SequenceRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def next_value(self, name: str) -> int:
        with self._store.lock:
            current = self._store.sequences.get(name)
            value = current + 1 if current is not None else SEQUENCE_STARTS.get(name, 1)
            self._store.sequences[name] = value
        return value


class InMemorySettlementRepository(SettlementRepository):
    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def settle(
        self,
        order: Order,
        expected_version: int,
        payment: PaymentRecord,
        movements: list[StockMovement],
        now: datetime,
    ) -> SettlementResult:
        with self._store.lock:
            current = self._store.orders.get(str(order.order_id))
            if current is None or current.version != expected_version:
                raise OptimisticConcurrencyError(f"order {order.order_id} version conflict")
            closed = replace(order, version=expected_version + 1)
            self._store.orders[str(order.order_id)] = closed
            self._store.payments[str(payment.payment_id)] = payment
            transactions, missing = apply_movements_locked(
                self._store,
                order.organization_id,
                movements,
                now,
            )
        return SettlementResult(
            order=closed,
            payment=payment,
            transactions=transactions,
            missing_skus=missing,
        )
