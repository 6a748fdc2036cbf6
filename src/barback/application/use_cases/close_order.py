from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from barback.application.dto.requests import CloseOrderRequest
from barback.application.dto.responses import CloseOrderResponse
from barback.application.mappers.event_envelope import (
    serialize_order_event,
    serialize_payment_event,
)
from barback.application.mappers.order_mapper import to_order_response
from barback.application.mappers.payment_mapper import to_payment_response
from barback.application.metrics.pos_metrics import (
    record_compensation,
    record_inventory_transactions,
    record_order_status,
    record_time_to_close,
    record_transition,
)
from barback.application.ports.publisher import EventPublisher
from barback.application.ports.repositories import (
    RECEIPT_NUMBER_SEQUENCE,
    OptimisticConcurrencyError,
    OrderRepository,
    PaymentRepository,
    SequenceRepository,
    SettlementRepository,
    SettlementResult,
    TicketRepository,
)
from barback.application.use_cases.context import TraceContext, publish_event
from barback.application.use_cases.errors import (
    EmptyOrderError,
    InvalidOrderTransitionError,
    OrderConflictError,
    OrderNotFoundError,
    PaymentFailedError,
)
from barback.application.use_cases.inventory_ledger import RecomputeAlerts
from barback.application.use_cases.payments import (
    EMPLOYEE_NAME_KEY,
    BusinessProfile,
    business_profile,
    receipt_response,
)
from barback.application.use_cases.process_payment import (
    CaptureOutcome,
    ProcessPayment,
    instruction_from_request,
)
from barback.domain.common.ids import OrderId, OrganizationId, PaymentId, Sku
from barback.domain.common.money import Money
from barback.domain.inventory.entities import StockMovement, TransactionType
from barback.domain.kitchen.entities import TicketStatus, TicketTransitionError
from barback.domain.order.entities import Order, OrderStatus, PaymentStatus
from barback.domain.order.events import OrderClosed
from barback.domain.payment.entities import PaymentMethod, PaymentRecord, PaymentRecordStatus

logger = logging.getLogger(__name__)

SETTLE_ATTEMPTS = 3


def recipe_movements(order: Order) -> list[StockMovement]:
    """Aggregate the SALE deductions for every recipe component on ``order``."""
    totals: dict[Sku, Decimal] = defaultdict(Decimal)
    for line in order.lines:
        for component in line.recipe:
            totals[component.sku] += component.quantity * line.quantity
    return [
        StockMovement(
            sku=sku,
            movement_type=TransactionType.SALE,
            quantity=quantity,
            notes=f"Order #{order.order_number}",
            employee_id=order.employee_id,
            reference=str(order.order_id),
        )
        for sku, quantity in totals.items()
        if quantity > 0
    ]


class CloseOrder:
    """Settles an order: price, capture payment, then close and deduct stock.

    The capture happens outside the database. Closing the order, recording
    the payment and applying recipe deductions commit together in
    ``SettlementRepository.settle``; if that commit fails after money was
    captured, the capture is refunded before the error propagates.
    """

    def __init__(
        self,
        order_repository: OrderRepository,
        payment_repository: PaymentRepository,
        ticket_repository: TicketRepository,
        sequence_repository: SequenceRepository,
        settlement_repository: SettlementRepository,
        processor: ProcessPayment,
        recompute_alerts: RecomputeAlerts,
        publisher: EventPublisher,
        profile: BusinessProfile | None = None,
    ) -> None:
        self._order_repository = order_repository
        self._payment_repository = payment_repository
        self._ticket_repository = ticket_repository
        self._sequence_repository = sequence_repository
        self._settlement_repository = settlement_repository
        self._processor = processor
        self._recompute_alerts = recompute_alerts
        self._publisher = publisher
        self._profile = profile or business_profile()

    async def execute(
        self,
        organization_id: OrganizationId,
        order_id: OrderId,
        request_dto: CloseOrderRequest,
        trace_ctx: TraceContext,
    ) -> CloseOrderResponse:
        order = self._order_repository.get(order_id, organization_id)
        if order is None:
            raise OrderNotFoundError(f"order {order_id} not found")
        if order.is_terminal:
            raise InvalidOrderTransitionError(f"order is already {order.status.value}")
        if not order.lines:
            raise EmptyOrderError(f"order {order_id} has no items")

        tax_rate = request_dto.tax_rate if request_dto.tax_rate is not None else order.tax_rate
        tip = Money.from_decimal(request_dto.tip, order.currency) if request_dto.tip is not None else order.tip
        priced = order.with_final_totals(tax_rate, tip)
        instruction = instruction_from_request(request_dto.payment, order.currency)
        self._processor.prepare(instruction, priced.total)

        try:
            processing = self._order_repository.update_with_version(
                priced.with_payment_status(PaymentStatus.PROCESSING),
                expected_version=order.version,
            )
        except OptimisticConcurrencyError as exc:
            raise OrderConflictError(f"order {order_id} changed while closing") from exc

        outcome = await self._processor.capture(instruction, processing.total)
        metadata = dict(instruction.metadata)
        if request_dto.employee_name:
            metadata[EMPLOYEE_NAME_KEY] = request_dto.employee_name

        if not outcome.success:
            raise self._record_failure(processing, instruction.method, outcome, metadata, trace_ctx)

        now = datetime.now(timezone.utc)
        payment = PaymentRecord(
            payment_id=PaymentId(f"pay_{uuid4().hex[:12]}"),
            organization_id=organization_id,
            order_id=order_id,
            method=instruction.method,
            status=PaymentRecordStatus.COMPLETED,
            amount=processing.total,
            created_at=now,
            tendered=outcome.tendered,
            change_due=outcome.change_due,
            transaction_id=outcome.result.transaction_id or instruction.reference,
            receipt_number=self._sequence_repository.next_value(RECEIPT_NUMBER_SEQUENCE),
            processing_time_ms=outcome.result.processing_time_ms,
            metadata=metadata,
            captures=outcome.captures,
        )
        movements = recipe_movements(processing)

        try:
            result = self._settle(processing, instruction.method, payment, movements, now)
        except Exception as exc:
            refunded = await self._processor.compensate(outcome, reason="settlement failed")
            record_compensation(refunded)
            self._release(processing, refunded)
            logger.error(
                "settlement_failed",
                extra={"order_id": str(order_id), "compensated": refunded},
                exc_info=True,
            )
            if isinstance(exc, OptimisticConcurrencyError):
                raise OrderConflictError(f"order {order_id} changed while closing") from exc
            raise

        closed = result.order
        if result.missing_skus:
            logger.warning(
                "recipe_sku_missing",
                extra={
                    "order_id": str(order_id),
                    "skus": [str(sku) for sku in result.missing_skus],
                },
            )
        self._finish_ticket(closed)
        if result.transactions:
            record_inventory_transactions(str(organization_id), result.transactions)
            self._recompute_alerts.execute(organization_id, trace_ctx, now=now)

        event = OrderClosed(
            order_id=closed.order_id,
            organization_id=closed.organization_id,
            total=closed.total,
            receipt_number=payment.receipt_number or 0,
            occurred_at=now,
        )
        record_transition(from_status=order.status, to_status=OrderStatus.CLOSED)
        record_order_status(closed)
        record_time_to_close(closed, now=event.occurred_at)
        logger.info(
            "order_closed",
            extra={
                "order_id": str(order_id),
                "payment_id": str(payment.payment_id),
                "total_cents": closed.total.amount_cents,
            },
        )
        publish_event(
            self._publisher,
            str(organization_id),
            serialize_order_event(
                event_type="order.closed",
                occurred_at=event.occurred_at,
                order=closed,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            ),
        )
        publish_event(
            self._publisher,
            str(organization_id),
            serialize_payment_event(
                event_type="payment.completed",
                occurred_at=event.occurred_at,
                payment=result.payment,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            ),
        )
        return CloseOrderResponse(
            order=to_order_response(closed),
            payment=to_payment_response(result.payment),
            receipt=receipt_response(closed, result.payment, self._profile),
        )

    def _record_failure(
        self,
        order: Order,
        method: PaymentMethod,
        outcome: CaptureOutcome,
        metadata: dict[str, object],
        trace_ctx: TraceContext,
    ) -> PaymentFailedError:
        now = datetime.now(timezone.utc)
        failed = PaymentRecord(
            payment_id=PaymentId(f"pay_{uuid4().hex[:12]}"),
            organization_id=order.organization_id,
            order_id=order.order_id,
            method=method,
            status=PaymentRecordStatus.FAILED,
            amount=order.total,
            created_at=now,
            processing_time_ms=outcome.result.processing_time_ms,
            error_message=outcome.result.error_message,
            metadata=dict(metadata),
        )
        self._payment_repository.add(failed)
        if not self._set_payment_status(order, PaymentStatus.FAILED):
            logger.warning("order_payment_failure_not_recorded", extra={"order_id": str(order.order_id)})

        logger.warning(
            "payment_failed",
            extra={
                "order_id": str(order.order_id),
                "payment_id": str(failed.payment_id),
                "reason": outcome.result.error_message,
            },
        )
        publish_event(
            self._publisher,
            str(order.organization_id),
            serialize_payment_event(
                event_type="payment.failed",
                occurred_at=now,
                payment=failed,
                trace_id=trace_ctx.trace_id,
                request_id=trace_ctx.request_id,
            ),
        )
        return PaymentFailedError(
            outcome.result.error_message or "Payment processing failed",
            payment_id=str(failed.payment_id),
        )

    def _settle(
        self,
        order: Order,
        method: PaymentMethod,
        payment: PaymentRecord,
        movements: list[StockMovement],
        now: datetime,
    ) -> SettlementResult:
        current = order
        for attempt in range(1, SETTLE_ATTEMPTS + 1):
            try:
                return self._settlement_repository.settle(
                    current.close(now, method),
                    expected_version=current.version,
                    payment=payment,
                    movements=movements,
                    now=now,
                )
            except OptimisticConcurrencyError:
                fresh = self._order_repository.get(order.order_id, order.organization_id)
                if attempt == SETTLE_ATTEMPTS or fresh is None or not _only_fulfilment_changed(order, fresh):
                    raise
                # the kitchen moved the ticket on while the payment was in flight
                logger.info(
                    "settlement_retry",
                    extra={"order_id": str(order.order_id), "status": fresh.status.value},
                )
                current = fresh
        raise OptimisticConcurrencyError(f"order {order.order_id} version conflict")

    def _set_payment_status(self, order: Order, status: PaymentStatus) -> bool:
        for _ in range(SETTLE_ATTEMPTS):
            current = self._order_repository.get(order.order_id, order.organization_id)
            if current is None or current.payment_status != PaymentStatus.PROCESSING:
                return False
            try:
                self._order_repository.update_with_version(
                    current.with_payment_status(status),
                    expected_version=current.version,
                )
                return True
            except OptimisticConcurrencyError:
                continue
        return False

    def _release(self, order: Order, refunded: bool) -> None:
        status = PaymentStatus.PENDING if refunded else PaymentStatus.FAILED
        if not self._set_payment_status(order, status):
            logger.warning("order_payment_release_not_recorded", extra={"order_id": str(order.order_id)})

    def _finish_ticket(self, order: Order) -> None:
        ticket = self._ticket_repository.get_for_order(order.order_id)
        if ticket is None or not ticket.is_active:
            return
        try:
            self._ticket_repository.update(ticket.advance(TicketStatus.SERVED))
        except TicketTransitionError:
            logger.info("ticket_sync_skipped", extra={"order_id": str(order.order_id)})


def _only_fulfilment_changed(expected: Order, current: Order) -> bool:
    return (
        not current.is_terminal
        and current.payment_status == PaymentStatus.PROCESSING
        and current.total == expected.total
        and current.tip == expected.tip
        and current.tax_rate == expected.tax_rate
        and [(line.line_id, line.quantity, line.unit_price) for line in current.lines]
        == [(line.line_id, line.quantity, line.unit_price) for line in expected.lines]
    )
