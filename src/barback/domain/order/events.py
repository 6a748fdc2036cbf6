from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from barback.domain.common.ids import OrderId, OrganizationId
from barback.domain.common.money import Money
from barback.domain.order.entities import OrderStatus


@dataclass(frozen=True)
class OrderOpened:
    order_id: OrderId
    organization_id: OrganizationId
    order_number: int
    total: Money
    created_at: datetime


@dataclass(frozen=True)
class OrderStatusChanged:
    order_id: OrderId
    organization_id: OrganizationId
    from_status: OrderStatus
    to_status: OrderStatus
    occurred_at: datetime


@dataclass(frozen=True)
class OrderClosed:
    order_id: OrderId
    organization_id: OrganizationId
    total: Money
    receipt_number: int
    occurred_at: datetime
