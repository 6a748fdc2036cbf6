from __future__ import annotations

from datetime import datetime

from sqlalchemy import Engine
from sqlalchemy.orm import Session

from barback.application.ports.repositories import (
    SettlementRepository,
    SettlementResult,
)
from barback.domain.inventory.entities import StockMovement
from barback.domain.order.entities import Order
from barback.domain.payment.entities import PaymentRecord
from barback.infrastructure.db.repositories.inventory_repo import apply_movements_in_session
from barback.infrastructure.db.repositories.order_repo import (
    SqlAlchemyOrderRepository,
    write_order_with_version,
)
from barback.infrastructure.db.repositories.payment_repo import payment_to_model
from barback.infrastructure.db.session import get_engine


class SqlAlchemySettlementRepository(SettlementRepository):
    """Closes an order, records its payment and deducts stock in one transaction."""

    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()
        self._orders = SqlAlchemyOrderRepository(self._engine)

    def settle(
        self,
        order: Order,
        expected_version: int,
        payment: PaymentRecord,
        movements: list[StockMovement],
        now: datetime,
    ) -> SettlementResult:
        with Session(self._engine) as session:
            write_order_with_version(session, order, expected_version)
            session.add(payment_to_model(payment))
            transactions, missing = apply_movements_in_session(
                session,
                order.organization_id,
                movements,
                now,
            )
            session.commit()

        closed = self._orders.get(order.order_id, order.organization_id)
        if closed is None:
            raise RuntimeError(f"order {order.order_id} not found after settlement")
        return SettlementResult(
            order=closed,
            payment=payment,
            transactions=transactions,
            missing_skus=missing,
        )
