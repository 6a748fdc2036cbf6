from __future__ import annotations

from sqlalchemy import Engine, select, update
from sqlalchemy.orm import Session

from barback.application.ports.repositories import OptimisticConcurrencyError, PaymentRepository
from barback.domain.common.ids import OrderId, OrganizationId, PaymentId
from barback.domain.common.money import Money
from barback.domain.payment.entities import (
    CapturedCharge,
    PaymentMethod,
    PaymentRecord,
    PaymentRecordStatus,
    RefundInfo,
)
from barback.infrastructure.db.models.payment import PaymentModel
from barback.infrastructure.db.repositories.conversions import aware, money_or_none
from barback.infrastructure.db.session import get_engine


class SqlAlchemyPaymentRepository(PaymentRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def add(self, payment: PaymentRecord) -> None:
        with Session(self._engine) as session:
            session.add(payment_to_model(payment))
            session.commit()

    def get(self, payment_id: PaymentId, organization_id: OrganizationId) -> PaymentRecord | None:
        statement = select(PaymentModel).where(
            PaymentModel.id == str(payment_id),
            PaymentModel.organization_id == str(organization_id),
        )
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        return payment_to_domain(model) if model is not None else None

    def update(self, payment: PaymentRecord) -> None:
        with Session(self._engine) as session:
            session.merge(payment_to_model(payment))
            session.commit()

    def update_if_status(self, payment: PaymentRecord, expected_status: PaymentRecordStatus) -> None:
        model = payment_to_model(payment)
        values = {
            getattr(PaymentModel, column.key): getattr(model, column.key)
            for column in PaymentModel.__mapper__.column_attrs
            if column.key != "id"
        }
        statement = (
            update(PaymentModel)
            .where(
                PaymentModel.id == str(payment.payment_id),
                PaymentModel.organization_id == str(payment.organization_id),
                PaymentModel.status == expected_status.value,
            )
            .values(values)
        )
        with Session(self._engine) as session:
            result = session.execute(statement)
            if result.rowcount != 1:
                session.rollback()
                raise OptimisticConcurrencyError(f"payment {payment.payment_id} status conflict")
            session.commit()

    def list_payments(
        self,
        organization_id: OrganizationId,
        order_id: OrderId | None,
        status: PaymentRecordStatus | None,
    ) -> list[PaymentRecord]:
        statement = select(PaymentModel).where(PaymentModel.organization_id == str(organization_id))
        if order_id is not None:
            statement = statement.where(PaymentModel.order_id == str(order_id))
        if status is not None:
            statement = statement.where(PaymentModel.status == status.value)
        statement = statement.order_by(PaymentModel.created_at.desc(), PaymentModel.id.desc())
        with Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
        return [payment_to_domain(model) for model in models]


def payment_to_model(payment: PaymentRecord) -> PaymentModel:
    refund = payment.refund
    return PaymentModel(
        id=str(payment.payment_id),
        organization_id=str(payment.organization_id),
        order_id=str(payment.order_id),
        method=payment.method.value,
        status=payment.status.value,
        amount_cents=payment.amount.amount_cents,
        currency=payment.amount.currency,
        tendered_cents=payment.tendered.amount_cents if payment.tendered else None,
        change_due_cents=payment.change_due.amount_cents if payment.change_due else None,
        transaction_id=payment.transaction_id,
        receipt_number=payment.receipt_number,
        processing_time_ms=payment.processing_time_ms,
        error_message=payment.error_message,
        payment_metadata=dict(payment.metadata),
        captures=[
            {"transactionId": charge.transaction_id, "amountCents": charge.amount.amount_cents}
            for charge in payment.captures
        ],
        created_at=payment.created_at,
        refund_amount_cents=refund.amount.amount_cents if refund else None,
        refund_reason=refund.reason if refund else None,
        refund_processed_at=refund.processed_at if refund else None,
        refund_transaction_id=refund.transaction_id if refund else None,
    )


def payment_to_domain(model: PaymentModel) -> PaymentRecord:
    currency = model.currency
    refund = None
    if model.refund_amount_cents is not None and model.refund_processed_at is not None:
        refund = RefundInfo(
            amount=Money(amount_cents=model.refund_amount_cents, currency=currency),
            reason=model.refund_reason,
            processed_at=aware(model.refund_processed_at),
            transaction_id=model.refund_transaction_id,
        )
    return PaymentRecord(
        payment_id=PaymentId(model.id),
        organization_id=OrganizationId(model.organization_id),
        order_id=OrderId(model.order_id),
        method=PaymentMethod(model.method),
        status=PaymentRecordStatus(model.status),
        amount=Money(amount_cents=model.amount_cents, currency=currency),
        created_at=aware(model.created_at),
        tendered=money_or_none(model.tendered_cents, currency),
        change_due=money_or_none(model.change_due_cents, currency),
        transaction_id=model.transaction_id,
        receipt_number=model.receipt_number,
        processing_time_ms=model.processing_time_ms,
        error_message=model.error_message,
        metadata=dict(model.payment_metadata or {}),
        refund=refund,
        captures=tuple(
            CapturedCharge(
                transaction_id=str(charge["transactionId"]),
                amount=Money(amount_cents=int(charge["amountCents"]), currency=currency),
            )
            for charge in model.captures or []
        ),
    )
