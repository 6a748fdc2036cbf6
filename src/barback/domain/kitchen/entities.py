from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

from barback.domain.common.ids import OrderId, OrganizationId, TicketId
from barback.domain.menu.entities import PosCategory
from barback.domain.order.entities import Order, OrderLine, OrderStatus, OrderType


class TicketStatus(str, Enum):
    NEW = "NEW"
    PREPARING = "PREPARING"
    READY = "READY"
    SERVED = "SERVED"
    CANCELLED = "CANCELLED"


class TicketStation(str, Enum):
    KITCHEN = "KITCHEN"
    BAR = "BAR"


class RoutingPolicy(str, Enum):
    AUTO = "AUTO"
    KITCHEN = "KITCHEN"
    BAR = "BAR"
    SKIP = "SKIP"


ACTIVE_TICKET_STATUSES = frozenset({TicketStatus.NEW, TicketStatus.PREPARING, TicketStatus.READY})

_TICKET_SEQUENCE: tuple[TicketStatus, ...] = (
    TicketStatus.NEW,
    TicketStatus.PREPARING,
    TicketStatus.READY,
    TicketStatus.SERVED,
)

# ticket progress drives the parent order; NEW leaves the order OPEN
ORDER_STATUS_FOR_TICKET: dict[TicketStatus, OrderStatus] = {
    TicketStatus.PREPARING: OrderStatus.PREPARING,
    TicketStatus.READY: OrderStatus.READY,
    TicketStatus.SERVED: OrderStatus.SERVED,
}


class TicketTransitionError(Exception):
    pass


def resolve_station(order: Order, policy: RoutingPolicy) -> TicketStation | None:
    if policy == RoutingPolicy.SKIP:
        return None
    if policy == RoutingPolicy.KITCHEN:
        return TicketStation.KITCHEN
    if policy == RoutingPolicy.BAR:
        return TicketStation.BAR
    if order.order_type == OrderType.TAKEOUT:
        return None
    if order.lines and all(line.pos_category == PosCategory.DRINKS for line in order.lines):
        return TicketStation.BAR
    return TicketStation.KITCHEN


@dataclass(frozen=True)
class TicketItem:
    name: str
    quantity: int
    modifications: tuple[str, ...] = ()
    notes: str | None = None
    allergens: tuple[str, ...] = ()
    preparation_time: int = 0
    priority: str = "NORMAL"


def _ticket_items(order: Order, lines: list[OrderLine]) -> list[TicketItem]:
    return [
        TicketItem(
            name=line.name,
            quantity=line.quantity,
            modifications=line.modifications,
            notes=line.notes,
            allergens=line.allergens,
            preparation_time=line.preparation_time,
            priority=order.priority.value,
        )
        for line in lines
    ]


@dataclass(frozen=True)
class KitchenTicket:
    ticket_id: TicketId
    organization_id: OrganizationId
    order_id: OrderId
    ticket_number: int
    order_number: int
    station: TicketStation
    status: TicketStatus
    order_type: OrderType
    created_at: datetime
    estimated_ready_at: datetime
    items: list[TicketItem] = field(default_factory=list)
    table_number: int | None = None
    customer_name: str | None = None
    notes: str | None = None
    kitchen_notes: str | None = None
    allergy_notes: str | None = None
    prep_time_total: int = 0
    routing: RoutingPolicy = RoutingPolicy.AUTO

    @property
    def label(self) -> str:
        return f"K{self.ticket_number}"

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_TICKET_STATUSES

    def advance(self, target: TicketStatus) -> KitchenTicket:
        if target == self.status:
            return self
        if self.status in (TicketStatus.SERVED, TicketStatus.CANCELLED):
            raise TicketTransitionError(f"ticket is already {self.status.value}")
        if target == TicketStatus.CANCELLED:
            return replace(self, status=TicketStatus.CANCELLED)
        if _TICKET_SEQUENCE.index(target) < _TICKET_SEQUENCE.index(self.status):
            raise TicketTransitionError(
                f"cannot move ticket from status={self.status.value} to {target.value}"
            )
        return replace(self, status=target)

    def sync_with(self, order: Order) -> KitchenTicket:
        station = self.station
        if self.routing == RoutingPolicy.AUTO and self.status == TicketStatus.NEW:
            # auto-routed tickets follow the order contents until work starts
            station = resolve_station(order, RoutingPolicy.AUTO) or self.station
        return replace(
            self,
            station=station,
            items=_ticket_items(order, order.lines),
            estimated_ready_at=order.estimated_ready_at,
            prep_time_total=order.prep_time_total,
        )


def create_ticket(
    ticket_id: TicketId,
    ticket_number: int,
    order: Order,
    station: TicketStation,
    routing: RoutingPolicy = RoutingPolicy.AUTO,
) -> KitchenTicket:
    return KitchenTicket(
        ticket_id=ticket_id,
        organization_id=order.organization_id,
        order_id=order.order_id,
        ticket_number=ticket_number,
        order_number=order.order_number,
        station=station,
        status=TicketStatus.NEW,
        order_type=order.order_type,
        created_at=order.created_at,
        estimated_ready_at=order.estimated_ready_at,
        items=_ticket_items(order, order.lines),
        table_number=order.table_number,
        customer_name=order.customer_name,
        notes=order.notes,
        kitchen_notes=order.kitchen_notes,
        allergy_notes=order.allergy_notes,
        prep_time_total=order.prep_time_total,
        routing=routing,
    )
