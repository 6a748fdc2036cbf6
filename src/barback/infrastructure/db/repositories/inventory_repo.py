from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import Engine, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from barback.application.ports.repositories import (
    AlertRepository,
    DuplicateKeyError,
    InventoryRepository,
)
from barback.domain.common.ids import InventoryItemId, OrganizationId, Sku
from barback.domain.common.money import Money
from barback.domain.inventory.entities import (
    AlertSeverity,
    AlertType,
    InventoryAlert,
    InventoryItem,
    InventoryTransaction,
    StockMovement,
    TransactionType,
    apply_movement,
)
from barback.infrastructure.db.models.inventory import (
    InventoryAlertModel,
    InventoryItemModel,
    InventoryTransactionModel,
)
from barback.infrastructure.db.repositories.conversions import aware, aware_or_none
from barback.infrastructure.db.session import get_engine


class SqlAlchemyInventoryRepository(InventoryRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def get(self, sku: Sku, organization_id: OrganizationId) -> InventoryItem | None:
        with Session(self._engine) as session:
            model = _find_item(session, organization_id, sku)
            return item_to_domain(model) if model is not None else None

    def add(self, item: InventoryItem) -> None:
        model = InventoryItemModel(id=str(item.item_id), organization_id=str(item.organization_id))
        _copy_item_onto(model, item)
        with Session(self._engine) as session:
            session.add(model)
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateKeyError(f"sku {item.sku} already exists") from exc

    def update(self, item: InventoryItem) -> None:
        with Session(self._engine) as session:
            model = _find_item(session, item.organization_id, item.sku)
            if model is None:
                return
            _copy_item_onto(model, item)
            session.commit()

    def list_items(self, organization_id: OrganizationId) -> list[InventoryItem]:
        statement = (
            select(InventoryItemModel)
            .where(InventoryItemModel.organization_id == str(organization_id))
            .order_by(InventoryItemModel.category.asc(), InventoryItemModel.name.asc())
        )
        with Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
        return [item_to_domain(model) for model in models]

    def apply_movements(
        self,
        organization_id: OrganizationId,
        movements: list[StockMovement],
        now: datetime,
    ) -> list[InventoryTransaction]:
        with Session(self._engine) as session:
            transactions, _ = apply_movements_in_session(session, organization_id, movements, now)
            session.commit()
        return transactions

    def list_transactions(
        self,
        organization_id: OrganizationId,
        sku: Sku | None,
        limit: int,
    ) -> list[InventoryTransaction]:
        statement = select(InventoryTransactionModel).where(
            InventoryTransactionModel.organization_id == str(organization_id)
        )
        if sku is not None:
            statement = statement.where(InventoryTransactionModel.sku == str(sku))
        statement = statement.order_by(
            InventoryTransactionModel.created_at.desc(),
            InventoryTransactionModel.id.desc(),
        ).limit(limit)
        with Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
        return [_transaction_to_domain(model) for model in models]


class SqlAlchemyAlertRepository(AlertRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def replace_all(self, organization_id: OrganizationId, alerts: list[InventoryAlert]) -> None:
        with Session(self._engine) as session:
            session.execute(
                delete(InventoryAlertModel).where(
                    InventoryAlertModel.organization_id == str(organization_id)
                )
            )
            session.add_all(
                InventoryAlertModel(
                    organization_id=str(organization_id),
                    id=alert.alert_id,
                    sku=str(alert.sku),
                    item_name=alert.item_name,
                    alert_type=alert.alert_type.value,
                    severity=alert.severity.value,
                    message=alert.message,
                    created_at=alert.created_at,
                )
                for alert in alerts
            )
            session.commit()

    def list_alerts(self, organization_id: OrganizationId) -> list[InventoryAlert]:
        statement = (
            select(InventoryAlertModel)
            .where(InventoryAlertModel.organization_id == str(organization_id))
            .order_by(InventoryAlertModel.sku.asc(), InventoryAlertModel.alert_type.asc())
        )
        with Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
        return [
            InventoryAlert(
                alert_id=model.id,
                organization_id=OrganizationId(model.organization_id),
                sku=Sku(model.sku),
                item_name=model.item_name,
                alert_type=AlertType(model.alert_type),
                severity=AlertSeverity(model.severity),
                message=model.message,
                created_at=aware(model.created_at),
            )
            for model in models
        ]


def apply_movements_in_session(
    session: Session,
    organization_id: OrganizationId,
    movements: list[StockMovement],
    now: datetime,
) -> tuple[list[InventoryTransaction], list[Sku]]:
    """Stage stock changes inside ``session``; SKUs with no stored item are returned, not applied."""
    transactions: list[InventoryTransaction] = []
    missing: list[Sku] = []
    for movement in movements:
        model = _find_item(session, organization_id, movement.sku, for_update=True)
        if model is None:
            missing.append(movement.sku)
            continue
        updated, transaction = apply_movement(
            item_to_domain(model),
            movement,
            transaction_id=f"ivt_{uuid4().hex[:12]}",
            now=now,
        )
        _copy_item_onto(model, updated)
        session.add(
            InventoryTransactionModel(
                id=transaction.transaction_id,
                organization_id=str(organization_id),
                sku=str(transaction.sku),
                transaction_type=transaction.transaction_type.value,
                quantity=transaction.quantity,
                previous_stock=transaction.previous_stock,
                new_stock=transaction.new_stock,
                cost_cents=transaction.cost.amount_cents,
                currency=transaction.cost.currency,
                created_at=transaction.created_at,
                notes=transaction.notes,
                employee_id=transaction.employee_id,
                reference=transaction.reference,
            )
        )
        transactions.append(transaction)
    return transactions, missing


def _find_item(
    session: Session,
    organization_id: OrganizationId,
    sku: Sku,
    for_update: bool = False,
) -> InventoryItemModel | None:
    statement = select(InventoryItemModel).where(
        InventoryItemModel.organization_id == str(organization_id),
        InventoryItemModel.sku == str(sku),
    )
    if for_update:
        statement = statement.with_for_update()
    return session.execute(statement).scalar_one_or_none()


def _copy_item_onto(model: InventoryItemModel, item: InventoryItem) -> None:
    model.sku = str(item.sku)
    model.name = item.name
    model.category = item.category
    model.unit = item.unit
    model.current_stock = item.current_stock
    model.min_stock = item.min_stock
    model.max_stock = item.max_stock
    model.cost_per_unit_cents = item.cost_per_unit.amount_cents
    model.currency = item.cost_per_unit.currency
    model.supplier = item.supplier
    model.storage_location = item.storage_location
    model.barcode = item.barcode
    model.expiration_date = item.expiration_date
    model.updated_at = item.updated_at


def item_to_domain(model: InventoryItemModel) -> InventoryItem:
    return InventoryItem(
        item_id=InventoryItemId(model.id),
        organization_id=OrganizationId(model.organization_id),
        sku=Sku(model.sku),
        name=model.name,
        category=model.category,
        unit=model.unit,
        current_stock=model.current_stock,
        min_stock=model.min_stock,
        max_stock=model.max_stock,
        cost_per_unit=Money(amount_cents=model.cost_per_unit_cents, currency=model.currency),
        updated_at=aware(model.updated_at),
        supplier=model.supplier,
        storage_location=model.storage_location,
        barcode=model.barcode,
        expiration_date=aware_or_none(model.expiration_date),
    )


def _transaction_to_domain(model: InventoryTransactionModel) -> InventoryTransaction:
    return InventoryTransaction(
        transaction_id=model.id,
        organization_id=OrganizationId(model.organization_id),
        sku=Sku(model.sku),
        transaction_type=TransactionType(model.transaction_type),
        quantity=model.quantity,
        previous_stock=model.previous_stock,
        new_stock=model.new_stock,
        cost=Money(amount_cents=model.cost_cents, currency=model.currency),
        created_at=aware(model.created_at),
        notes=model.notes,
        employee_id=model.employee_id,
        reference=model.reference,
    )
