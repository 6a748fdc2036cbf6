from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

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
)
from barback.domain.kitchen.entities import KitchenTicket, TicketStation
from barback.domain.menu.entities import MenuCatalog, MenuItem
from barback.domain.order.entities import Order, OrderStatus, OrderType
from barback.domain.payment.entities import PaymentRecord, PaymentRecordStatus
from barback.domain.table.entities import Location, Organization, Table

ORDER_NUMBER_SEQUENCE = "order_number"
TICKET_NUMBER_SEQUENCE = "ticket_number"
RECEIPT_NUMBER_SEQUENCE = "receipt_number"

SEQUENCE_STARTS: dict[str, int] = {
    ORDER_NUMBER_SEQUENCE: 1001,
    TICKET_NUMBER_SEQUENCE: 5001,
    RECEIPT_NUMBER_SEQUENCE: 10001,
}


class OrganizationRepository(Protocol):
    def get(self, organization_id: OrganizationId) -> Organization | None: ...

    def upsert(self, organization: Organization) -> None: ...


class LocationRepository(Protocol):
    def get(self, location_id: LocationId, organization_id: OrganizationId) -> Location | None: ...

    def add(self, location: Location) -> None: ...

    def list_for_organization(self, organization_id: OrganizationId) -> list[Location]: ...


class TableRepository(Protocol):
    def get(self, table_id: TableId, organization_id: OrganizationId) -> Table | None: ...

    def add(self, table: Table) -> None: ...

    def list_for_organization(
        self,
        organization_id: OrganizationId,
        location_id: LocationId | None,
    ) -> list[Table]: ...


class MenuRepository(Protocol):
    def get_catalog(self, organization_id: OrganizationId) -> MenuCatalog: ...

    def get_item(self, item_id: MenuItemId, organization_id: OrganizationId) -> MenuItem | None: ...

    def save_item(self, item: MenuItem) -> int: ...


class CartRepository(Protocol):
    def get(self, cart_id: CartId, organization_id: OrganizationId) -> Cart | None: ...

    def save(self, cart: Cart) -> None: ...

    def delete(self, cart_id: CartId, organization_id: OrganizationId) -> None: ...


@dataclass(frozen=True)
class OrderFilter:
    location_id: LocationId | None = None
    status: OrderStatus | None = None
    order_type: OrderType | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None


class OrderRepository(Protocol):
    def add(self, order: Order) -> None: ...

    def get(self, order_id: OrderId, organization_id: OrganizationId) -> Order | None: ...

    def update_with_version(self, order: Order, expected_version: int) -> Order: ...

    def list_orders(
        self,
        organization_id: OrganizationId,
        filters: OrderFilter,
        limit: int,
        cursor: str | None,
    ) -> tuple[list[Order], str | None]: ...

    def list_active(
        self,
        organization_id: OrganizationId,
        location_id: LocationId | None,
    ) -> list[Order]: ...

    def list_closed_between(
        self,
        organization_id: OrganizationId,
        start: datetime,
        end: datetime,
    ) -> list[Order]: ...


class TicketRepository(Protocol):
    def add(self, ticket: KitchenTicket) -> None: ...

    def get(self, ticket_id: TicketId, organization_id: OrganizationId) -> KitchenTicket | None: ...

    def get_for_order(self, order_id: OrderId) -> KitchenTicket | None: ...

    def update(self, ticket: KitchenTicket) -> None: ...

    def list_active(
        self,
        organization_id: OrganizationId,
        station: TicketStation | None,
    ) -> list[KitchenTicket]: ...


class InventoryRepository(Protocol):
    def get(self, sku: Sku, organization_id: OrganizationId) -> InventoryItem | None: ...

    def add(self, item: InventoryItem) -> None: ...

    def update(self, item: InventoryItem) -> None: ...

    def list_items(self, organization_id: OrganizationId) -> list[InventoryItem]: ...

    def apply_movements(
        self,
        organization_id: OrganizationId,
        movements: list[StockMovement],
        now: datetime,
    ) -> list[InventoryTransaction]: ...

    def list_transactions(
        self,
        organization_id: OrganizationId,
        sku: Sku | None,
        limit: int,
    ) -> list[InventoryTransaction]: ...


class AlertRepository(Protocol):
    def replace_all(self, organization_id: OrganizationId, alerts: list[InventoryAlert]) -> None: ...

    def list_alerts(self, organization_id: OrganizationId) -> list[InventoryAlert]: ...


class PaymentRepository(Protocol):
    def add(self, payment: PaymentRecord) -> None: ...

    def get(self, payment_id: PaymentId, organization_id: OrganizationId) -> PaymentRecord | None: ...

    def update(self, payment: PaymentRecord) -> None: ...

    def update_if_status(self, payment: PaymentRecord, expected_status: PaymentRecordStatus) -> None: ...

    def list_payments(
        self,
        organization_id: OrganizationId,
        order_id: OrderId | None,
        status: PaymentRecordStatus | None,
    ) -> list[PaymentRecord]: ...


class SequenceRepository(Protocol):
    def next_value(self, name: str) -> int: ...


@dataclass(frozen=True)
class SettlementResult:
    order: Order
    payment: PaymentRecord
    transactions: list[InventoryTransaction]
    missing_skus: list[Sku]


class SettlementRepository(Protocol):
    def settle(
        self,
        order: Order,
        expected_version: int,
        payment: PaymentRecord,
        movements: list[StockMovement],
        now: datetime,
    ) -> SettlementResult: ...


class DuplicateKeyError(Exception):
    pass


class OptimisticConcurrencyError(Exception):
    pass


class InvalidCursorError(Exception):
    pass
