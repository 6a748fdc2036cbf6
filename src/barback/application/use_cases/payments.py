from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone

from barback.application.dto.requests import RefundRequest
from barback.application.dto.responses import (
    PaymentListResponse,
    PaymentResponse,
    ReceiptResponse,
)
from barback.application.mappers.event_envelope import serialize_payment_event
from barback.application.mappers.payment_mapper import to_payment_response, to_receipt_response
from barback.application.ports.payment_gateway import PaymentGateway
from barback.application.ports.publisher import EventPublisher
from barback.application.ports.repositories import (
    OptimisticConcurrencyError,
    OrderRepository,
    PaymentRepository,
)
from barback.application.use_cases.context import TraceContext, publish_event
from barback.application.use_cases.errors import (
    OrderNotFoundError,
    PaymentFailedError,
    PaymentNotFoundError,
    ValidationError,
)
from barback.domain.common.ids import OrderId, OrganizationId, PaymentId
from barback.domain.common.money import Money
from barback.domain.order.entities import Order, PaymentStatus
from barback.domain.order.receipts import build_receipt
from barback.domain.payment.entities import (
    CapturedCharge,
    PaymentMethod,
    PaymentNotRefundableError,
    PaymentRecord,
    PaymentRecordStatus,
    RefundInfo,
)

logger = logging.getLogger(__name__)

EMPLOYEE_NAME_KEY = "employeeName"


@dataclass(frozen=True)
class BusinessProfile:
    name: str
    address: str


def business_profile() -> BusinessProfile:
    return BusinessProfile(
        name=os.getenv("BUSINESS_NAME", "Barback Pro Demo"),
        address=os.getenv("BUSINESS_ADDRESS", "123 Main Street, City, State 12345"),
    )


def receipt_response(
    order: Order,
    payment: PaymentRecord,
    profile: BusinessProfile,
) -> ReceiptResponse:
    employee_name = str(payment.metadata.get(EMPLOYEE_NAME_KEY) or order.employee_id or "Staff")
    receipt = build_receipt(
        order=order,
        payment=payment,
        business_name=profile.name,
        business_address=profile.address,
        employee_name=employee_name,
    )
    return to_receipt_response(receipt)


def _parse_status(status: str | None) -> PaymentRecordStatus | None:
    if status is None:
        return None
    try:
        return PaymentRecordStatus(status.upper())
    except ValueError as exc:
        raise ValidationError(f"invalid payment status: {status}") from exc


class ListPayments:
    def __init__(self, payment_repository: PaymentRepository) -> None:
        self._payment_repository = payment_repository

    def execute(
        self,
        organization_id: OrganizationId,
        order_id: str | None = None,
        status: str | None = None,
    ) -> PaymentListResponse:
        payments = self._payment_repository.list_payments(
            organization_id,
            OrderId(order_id) if order_id else None,
            _parse_status(status),
        )
        return PaymentListResponse(payments=[to_payment_response(payment) for payment in payments])


class GetReceipt:
    def __init__(
        self,
        payment_repository: PaymentRepository,
        order_repository: OrderRepository,
        profile: BusinessProfile | None = None,
    ) -> None:
        self._payment_repository = payment_repository
        self._order_repository = order_repository
        self._profile = profile or business_profile()

    def execute(self, organization_id: OrganizationId, payment_id: PaymentId) -> ReceiptResponse:
        payment = self._payment_repository.get(payment_id, organization_id)
        if payment is None:
            raise PaymentNotFoundError(f"payment {payment_id} not found")
        order = self._order_repository.get(payment.order_id, organization_id)
        if order is None:
            raise OrderNotFoundError(f"order {payment.order_id} not found")
        return receipt_response(order, payment, self._profile)


class RefundPayment:
    def __init__(
        self,
        payment_repository: PaymentRepository,
        order_repository: OrderRepository,
        gateway: PaymentGateway,
        publisher: EventPublisher,
    ) -> None:
        self._payment_repository = payment_repository
        self._order_repository = order_repository
        self._gateway = gateway
        self._publisher = publisher

    async def execute(
        self,
        organization_id: OrganizationId,
        payment_id: PaymentId,
        request_dto: RefundRequest,
        trace_ctx: TraceContext,
    ) -> PaymentResponse:
        payment = self._payment_repository.get(payment_id, organization_id)
        if payment is None:
            raise PaymentNotFoundError(f"payment {payment_id} not found")

        amount = payment.amount
        if request_dto.amount is not None:
            amount = Money.from_decimal(request_dto.amount, payment.amount.currency)
        claimed = payment.claim_refund(amount)
        try:
            self._payment_repository.update_if_status(claimed, expected_status=PaymentRecordStatus.COMPLETED)
        except OptimisticConcurrencyError as exc:
            raise PaymentNotRefundableError(f"payment {payment_id} is already being refunded") from exc

        try:
            refund_transaction_ids, processed_at = await self._refund_charges(claimed, amount, request_dto.reason)
        except BaseException:
            self._payment_repository.update_if_status(
                claimed.release_refund(),
                expected_status=PaymentRecordStatus.REFUNDING,
            )
            raise

        refunded = claimed.mark_refunded(
            RefundInfo(
                amount=amount,
                reason=request_dto.reason,
                processed_at=processed_at,
                transaction_id=",".join(refund_transaction_ids) or None,
            )
        )
        self._payment_repository.update_if_status(refunded, expected_status=PaymentRecordStatus.REFUNDING)
        self._mark_order_refunded(organization_id, payment.order_id)

        logger.info(
            "payment_refunded",
            extra={"payment_id": str(payment_id), "amount_cents": amount.amount_cents},
        )
        publish_event(
            self._publisher,
            str(organization_id),
            serialize_payment_event(
                event_type="payment.refunded",
                occurred_at=processed_at,
                payment=refunded,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            ),
        )
        return to_payment_response(refunded)

    def _mark_order_refunded(self, organization_id: OrganizationId, order_id: OrderId) -> None:
        for _ in range(2):
            order = self._order_repository.get(order_id, organization_id)
            if order is None or order.payment_status == PaymentStatus.REFUNDED:
                return
            try:
                self._order_repository.update_with_version(
                    order.with_payment_status(PaymentStatus.REFUNDED),
                    expected_version=order.version,
                )
                return
            except OptimisticConcurrencyError:
                logger.info("order_refund_status_retry", extra={"order_id": str(order_id)})
        logger.warning("order_refund_status_not_recorded", extra={"order_id": str(order_id)})

    async def _refund_charges(
        self,
        payment: PaymentRecord,
        amount: Money,
        reason: str | None,
    ) -> tuple[list[str], datetime]:
        plan = payment.refund_plan(amount)
        if not plan and payment.method != PaymentMethod.CASH and payment.transaction_id:
            plan = [CapturedCharge(transaction_id=payment.transaction_id, amount=amount)]

        refund_ids: list[str] = []
        processed_at = datetime.now(timezone.utc)
        for charge in plan:
            result = await self._gateway.refund(charge.transaction_id, charge.amount, reason)
            if not result.success:
                if refund_ids:
                    logger.error(
                        "refund_partially_applied",
                        extra={"payment_id": str(payment.payment_id), "refunds": refund_ids},
                    )
                raise PaymentFailedError(
                    result.error_message or "Refund processing failed",
                    payment_id=str(payment.payment_id),
                )
            if result.transaction_id:
                refund_ids.append(result.transaction_id)
            processed_at = result.timestamp
        return refund_ids, processed_at
