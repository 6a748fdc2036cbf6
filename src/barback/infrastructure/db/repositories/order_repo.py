from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import Engine, and_, delete, or_, select, update
from sqlalchemy.orm import Session, joinedload

from barback.application.ports.repositories import (
    OptimisticConcurrencyError,
    OrderFilter,
    OrderRepository,
)
from barback.domain.common.ids import (
    LocationId,
    MenuItemId,
    OrderId,
    OrderLineId,
    OrganizationId,
    TableId,
)
from barback.domain.common.money import Money
from barback.domain.menu.entities import PosCategory
from barback.domain.order.entities import (
    ACTIVE_STATUSES,
    Order,
    OrderLine,
    OrderPriority,
    OrderStatus,
    OrderType,
    PaymentStatus,
)
from barback.domain.payment.entities import PaymentMethod
from barback.infrastructure.db.models.order import OrderLineModel, OrderModel
from barback.infrastructure.db.repositories.conversions import aware, aware_or_none
from barback.infrastructure.db.repositories.menu_repo import recipe_from_json
from barback.infrastructure.db.session import get_engine
from barback.infrastructure.pagination import decode_cursor, encode_cursor


class SqlAlchemyOrderRepository(OrderRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def add(self, order: Order) -> None:
        order_model = order_to_model(order)
        with Session(self._engine) as session:
            session.add(order_model)
            session.commit()

    def get(self, order_id: OrderId, organization_id: OrganizationId) -> Order | None:
        statement = (
            select(OrderModel)
            .options(joinedload(OrderModel.lines))
            .where(
                OrderModel.id == str(order_id),
                OrderModel.organization_id == str(organization_id),
            )
            .limit(1)
        )
        with Session(self._engine) as session:
            model = session.execute(statement).unique().scalar_one_or_none()

        if model is None:
            return None
        return order_to_domain(model)

    def update_with_version(self, order: Order, expected_version: int) -> Order:
        with Session(self._engine) as session:
            write_order_with_version(session, order, expected_version)
            session.commit()

        updated = self.get(order.order_id, order.organization_id)
        if updated is None:
            raise RuntimeError(f"order {order.order_id} not found after update")
        return updated

    def list_orders(
        self,
        organization_id: OrganizationId,
        filters: OrderFilter,
        limit: int,
        cursor: str | None,
    ) -> tuple[list[Order], str | None]:
        statement = (
            select(OrderModel)
            .options(joinedload(OrderModel.lines))
            .where(OrderModel.organization_id == str(organization_id))
        )
        if filters.location_id is not None:
            statement = statement.where(OrderModel.location_id == str(filters.location_id))
        if filters.status is not None:
            statement = statement.where(OrderModel.status == filters.status.value)
        if filters.order_type is not None:
            statement = statement.where(OrderModel.order_type == filters.order_type.value)
        if filters.created_from is not None:
            statement = statement.where(OrderModel.created_at >= filters.created_from)
        if filters.created_to is not None:
            statement = statement.where(OrderModel.created_at < filters.created_to)

        cursor_parts = decode_cursor(cursor) if cursor else None
        if cursor_parts is not None:
            cursor_created_at, cursor_order_id = cursor_parts
            statement = statement.where(
                or_(
                    OrderModel.created_at < cursor_created_at,
                    and_(
                        OrderModel.created_at == cursor_created_at,
                        OrderModel.id < cursor_order_id,
                    ),
                )
            )

        statement = statement.order_by(OrderModel.created_at.desc(), OrderModel.id.desc()).limit(
            limit + 1
        )

        with Session(self._engine) as session:
            models = list(session.execute(statement).unique().scalars().all())

        has_more = len(models) > limit
        page_models = models[:limit]
        orders = [order_to_domain(model) for model in page_models]
        next_cursor: str | None = None
        if has_more and page_models:
            last = page_models[-1]
            next_cursor = encode_cursor(aware(last.created_at), last.id)
        return orders, next_cursor

    def list_active(
        self,
        organization_id: OrganizationId,
        location_id: LocationId | None,
    ) -> list[Order]:
        statement = (
            select(OrderModel)
            .options(joinedload(OrderModel.lines))
            .where(
                OrderModel.organization_id == str(organization_id),
                OrderModel.status.in_([status.value for status in ACTIVE_STATUSES]),
            )
        )
        if location_id is not None:
            statement = statement.where(OrderModel.location_id == str(location_id))
        statement = statement.order_by(OrderModel.created_at.asc(), OrderModel.id.asc())
        with Session(self._engine) as session:
            models = list(session.execute(statement).unique().scalars().all())
        return [order_to_domain(model) for model in models]

    def list_closed_between(
        self,
        organization_id: OrganizationId,
        start: datetime,
        end: datetime,
    ) -> list[Order]:
        statement = (
            select(OrderModel)
            .options(joinedload(OrderModel.lines))
            .where(
                OrderModel.organization_id == str(organization_id),
                OrderModel.status == OrderStatus.CLOSED.value,
                OrderModel.closed_at >= start,
                OrderModel.closed_at < end,
            )
            .order_by(OrderModel.closed_at.asc(), OrderModel.id.asc())
        )
        with Session(self._engine) as session:
            models = list(session.execute(statement).unique().scalars().all())
        return [order_to_domain(model) for model in models]


def _scalar_values(order: Order) -> dict[str, Any]:
    return {
        "status": order.status.value,
        "payment_status": order.payment_status.value,
        "priority": order.priority.value,
        "tax_rate": order.tax_rate,
        "subtotal_cents": order.subtotal.amount_cents,
        "tax_cents": order.tax.amount_cents,
        "tip_cents": order.tip.amount_cents,
        "total_cents": order.total.amount_cents,
        "estimated_ready_at": order.estimated_ready_at,
        "payment_method": order.payment_method.value if order.payment_method else None,
        "employee_id": order.employee_id,
        "notes": order.notes,
        "kitchen_notes": order.kitchen_notes,
        "allergy_notes": order.allergy_notes,
        "closed_at": order.closed_at,
    }


def _line_models(order: Order) -> list[OrderLineModel]:
    return [
        OrderLineModel(
            id=str(line.line_id),
            order_id=str(order.order_id),
            position=position,
            item_id=str(line.item_id),
            name=line.name,
            quantity=line.quantity,
            unit_price_cents=line.unit_price.amount_cents,
            currency=line.unit_price.currency,
            line_total_cents=line.line_total.amount_cents,
            notes=line.notes,
            modifications=list(line.modifications),
            customizations=dict(line.customizations),
            preparation_time=line.preparation_time,
            allergens=list(line.allergens),
            pos_category=line.pos_category.value,
            recipe=[
                {"sku": str(component.sku), "quantity": str(component.quantity)}
                for component in line.recipe
            ],
        )
        for position, line in enumerate(order.lines)
    ]


def write_order_with_version(session: Session, order: Order, expected_version: int) -> None:
    """Stage a versioned update of ``order`` and its lines inside ``session``."""
    statement = (
        update(OrderModel)
        .where(
            OrderModel.id == str(order.order_id),
            OrderModel.organization_id == str(order.organization_id),
            OrderModel.version == expected_version,
        )
        .values(**_scalar_values(order), version=OrderModel.version + 1)
    )
    result = session.execute(statement)
    if result.rowcount != 1:
        session.rollback()
        raise OptimisticConcurrencyError(f"order {order.order_id} version conflict")

    session.execute(delete(OrderLineModel).where(OrderLineModel.order_id == str(order.order_id)))
    session.add_all(_line_models(order))


def order_to_model(order: Order) -> OrderModel:
    order_model = OrderModel(
        id=str(order.order_id),
        organization_id=str(order.organization_id),
        location_id=str(order.location_id),
        order_number=order.order_number,
        order_type=order.order_type.value,
        created_at=order.created_at,
        currency=order.currency,
        table_id=str(order.table_id) if order.table_id else None,
        table_number=order.table_number,
        customer_id=order.customer_id,
        customer_name=order.customer_name,
        version=order.version,
        **_scalar_values(order),
    )
    order_model.lines = _line_models(order)
    return order_model


def order_to_domain(model: OrderModel) -> Order:
    currency = model.currency
    lines = [
        OrderLine(
            line_id=OrderLineId(line.id),
            item_id=MenuItemId(line.item_id),
            name=line.name,
            quantity=line.quantity,
            unit_price=Money(amount_cents=line.unit_price_cents, currency=line.currency),
            line_total=Money(amount_cents=line.line_total_cents, currency=line.currency),
            notes=line.notes,
            modifications=tuple(line.modifications or ()),
            customizations=dict(line.customizations or {}),
            preparation_time=line.preparation_time,
            allergens=tuple(line.allergens or ()),
            pos_category=PosCategory(line.pos_category),
            recipe=recipe_from_json(line.recipe),
        )
        for line in model.lines
    ]
    return Order(
        order_id=OrderId(model.id),
        organization_id=OrganizationId(model.organization_id),
        location_id=LocationId(model.location_id),
        order_number=model.order_number,
        order_type=OrderType(model.order_type),
        priority=OrderPriority(model.priority),
        status=OrderStatus(model.status),
        payment_status=PaymentStatus(model.payment_status),
        lines=lines,
        tax_rate=Decimal(model.tax_rate),
        subtotal=Money(amount_cents=model.subtotal_cents, currency=currency),
        tax=Money(amount_cents=model.tax_cents, currency=currency),
        tip=Money(amount_cents=model.tip_cents, currency=currency),
        total=Money(amount_cents=model.total_cents, currency=currency),
        created_at=aware(model.created_at),
        estimated_ready_at=aware(model.estimated_ready_at),
        table_id=TableId(model.table_id) if model.table_id else None,
        table_number=model.table_number,
        customer_id=model.customer_id,
        customer_name=model.customer_name,
        payment_method=PaymentMethod(model.payment_method) if model.payment_method else None,
        employee_id=model.employee_id,
        notes=model.notes,
        kitchen_notes=model.kitchen_notes,
        allergy_notes=model.allergy_notes,
        closed_at=aware_or_none(model.closed_at),
        version=model.version,
    )

