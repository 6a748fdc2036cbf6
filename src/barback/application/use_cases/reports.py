from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from barback.application.dto.responses import (
    DailySalesResponse,
    PaymentMethodBreakdownResponse,
    PopularItemResponse,
    PopularItemsResponse,
)
from barback.application.mappers.common import to_money_response
from barback.application.ports.repositories import OrderRepository, OrganizationRepository
from barback.application.use_cases.errors import ValidationError
from barback.application.use_cases.organization import load_organization
from barback.domain.common.ids import MenuItemId, OrganizationId
from barback.domain.common.money import Money, round_half_up

MAX_POPULAR_LIMIT = 100
MAX_POPULAR_DAYS = 366


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


class DailySales:
    """Totals for orders closed on one UTC calendar day."""

    def __init__(
        self,
        order_repository: OrderRepository,
        organization_repository: OrganizationRepository,
    ) -> None:
        self._order_repository = order_repository
        self._organization_repository = organization_repository

    def execute(self, organization_id: OrganizationId, day: date | None = None) -> DailySalesResponse:
        target = day or datetime.now(timezone.utc).date()
        currency = load_organization(self._organization_repository, organization_id).currency
        start, end = _day_bounds(target)
        orders = self._order_repository.list_closed_between(organization_id, start, end)

        subtotal = Money.zero(currency)
        tax = Money.zero(currency)
        tips = Money.zero(currency)
        total = Money.zero(currency)
        by_method: dict[str, list[Money]] = defaultdict(list)
        for order in orders:
            subtotal = subtotal + order.subtotal
            tax = tax + order.tax
            tips = tips + order.tip
            total = total + order.total
            method = order.payment_method.value if order.payment_method else "UNKNOWN"
            by_method[method].append(order.total)

        average_cents = round_half_up(Decimal(total.amount_cents) / len(orders)) if orders else 0
        breakdown = []
        for method in sorted(by_method):
            method_total = Money.zero(currency)
            for amount in by_method[method]:
                method_total = method_total + amount
            breakdown.append(
                PaymentMethodBreakdownResponse(
                    method=method,
                    count=len(by_method[method]),
                    total=to_money_response(method_total),
                )
            )
        return DailySalesResponse(
            date=target.isoformat(),
            orderCount=len(orders),
            subtotal=to_money_response(subtotal),
            tax=to_money_response(tax),
            tips=to_money_response(tips),
            total=to_money_response(total),
            averageOrderValue=to_money_response(Money(amount_cents=average_cents, currency=currency)),
            byPaymentMethod=breakdown,
        )


class PopularItems:
    def __init__(
        self,
        order_repository: OrderRepository,
        organization_repository: OrganizationRepository,
    ) -> None:
        self._order_repository = order_repository
        self._organization_repository = organization_repository

    def execute(
        self,
        organization_id: OrganizationId,
        limit: int = 10,
        days: int = 30,
    ) -> PopularItemsResponse:
        if limit < 1 or limit > MAX_POPULAR_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_POPULAR_LIMIT}")
        if days < 1 or days > MAX_POPULAR_DAYS:
            raise ValidationError(f"days must be between 1 and {MAX_POPULAR_DAYS}")

        currency = load_organization(self._organization_repository, organization_id).currency
        end = datetime.now(timezone.utc)
        orders = self._order_repository.list_closed_between(organization_id, end - timedelta(days=days), end)

        names: dict[MenuItemId, str] = {}
        quantities: dict[MenuItemId, int] = defaultdict(int)
        revenue: dict[MenuItemId, int] = defaultdict(int)
        for order in orders:
            for line in order.lines:
                names[line.item_id] = line.name
                quantities[line.item_id] += line.quantity
                revenue[line.item_id] += line.line_total.amount_cents

        ranked = sorted(quantities, key=lambda item_id: (-quantities[item_id], names[item_id]))
        return PopularItemsResponse(
            items=[
                PopularItemResponse(
                    itemId=str(item_id),
                    name=names[item_id],
                    quantity=quantities[item_id],
                    revenue=to_money_response(Money(amount_cents=revenue[item_id], currency=currency)),
                )
                for item_id in ranked[:limit]
            ]
        )
