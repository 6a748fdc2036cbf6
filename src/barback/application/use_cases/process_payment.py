from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from barback.application.dto.requests import PaymentCardRequest, PaymentRequest
from barback.application.metrics.pos_metrics import record_payment
from barback.application.ports.payment_gateway import PaymentGateway
from barback.application.use_cases.errors import (
    InvalidPaymentRequestError,
    PaymentAmountMismatchError,
)
from barback.domain.common.money import Money
from barback.domain.payment.entities import (
    CapturedCharge,
    MobileWallet,
    PaymentCard,
    PaymentMethod,
    PaymentResult,
    SplitLeg,
    settle_cash,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PaymentInstruction:
    method: PaymentMethod
    amount: Money
    tendered: Money | None = None
    card: PaymentCard | None = None
    wallet: MobileWallet | None = None
    legs: tuple[SplitLeg, ...] = ()
    reference: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CaptureOutcome:
    result: PaymentResult
    charged: Money
    tendered: Money | None = None
    change_due: Money | None = None
    captures: tuple[CapturedCharge, ...] = ()

    @property
    def success(self) -> bool:
        return self.result.success


def _card(request_card: PaymentCardRequest | None) -> PaymentCard | None:
    if request_card is None:
        return None
    return PaymentCard(
        number=request_card.number,
        expiry_month=request_card.expiry_month,
        expiry_year=request_card.expiry_year,
        cvv=request_card.cvv,
        holder_name=request_card.holder_name,
    )


def instruction_from_request(request_dto: PaymentRequest, currency: str) -> PaymentInstruction:
    try:
        legs = tuple(
            SplitLeg(
                method=leg.method,
                amount=Money.from_decimal(leg.amount, currency),
                card=_card(leg.card),
            )
            for leg in request_dto.legs
        )
    except ValueError as exc:
        raise InvalidPaymentRequestError(str(exc)) from exc
    return PaymentInstruction(
        method=request_dto.method,
        amount=Money.from_decimal(request_dto.amount, currency),
        tendered=(
            Money.from_decimal(request_dto.tendered, currency)
            if request_dto.tendered is not None
            else None
        ),
        card=_card(request_dto.card),
        wallet=request_dto.wallet,
        legs=legs,
        reference=request_dto.transaction_id,
        metadata=dict(request_dto.metadata),
    )


class ProcessPayment:
    """Captures one payment instruction against an amount due.

    ``prepare`` raises for requests that must be rejected before any money
    moves; ``capture`` talks to the gateway and reports failures as results.
    Split payments are all-or-nothing: a failed leg voids the legs already
    captured.
    """

    def __init__(self, gateway: PaymentGateway) -> None:
        self._gateway = gateway

    def prepare(self, instruction: PaymentInstruction, amount_due: Money) -> None:
        method = instruction.method
        if method == PaymentMethod.CASH:
            settle_cash(amount_due, instruction.tendered or instruction.amount)
            return
        if method == PaymentMethod.SPLIT:
            _check_split_legs(instruction.legs, amount_due)
            return
        if instruction.amount != amount_due:
            raise PaymentAmountMismatchError(
                "payment amount does not match the order total",
                details={
                    "amountDueCents": amount_due.amount_cents,
                    "amountCents": instruction.amount.amount_cents,
                },
            )
        if method == PaymentMethod.CARD and instruction.card is None:
            raise InvalidPaymentRequestError("card payments need card details")
        if method == PaymentMethod.MOBILE and instruction.wallet is None:
            raise InvalidPaymentRequestError("mobile payments need a wallet")

    async def capture(self, instruction: PaymentInstruction, amount_due: Money) -> CaptureOutcome:
        self.prepare(instruction, amount_due)
        method = instruction.method

        if method == PaymentMethod.CASH:
            outcome = self._capture_cash(instruction, amount_due)
        elif method == PaymentMethod.SPLIT:
            outcome = await self._capture_split(instruction, amount_due)
        else:
            if method == PaymentMethod.CARD and instruction.card is not None:
                result = await self._gateway.charge_card(amount_due, instruction.card)
            elif method == PaymentMethod.MOBILE and instruction.wallet is not None:
                result = await self._gateway.charge_mobile(amount_due, instruction.wallet)
            else:
                result = await self._gateway.charge_contactless(amount_due)
            outcome = CaptureOutcome(
                result=result,
                charged=amount_due,
                captures=_captures_of(result, amount_due),
            )

        record_payment(method.value, outcome.success, outcome.result.processing_time_ms)
        return outcome

    def _capture_cash(self, instruction: PaymentInstruction, amount_due: Money) -> CaptureOutcome:
        settlement = settle_cash(amount_due, instruction.tendered or instruction.amount)
        return CaptureOutcome(
            result=PaymentResult(
                success=True,
                payment_method=PaymentMethod.CASH.value,
                timestamp=datetime.now(timezone.utc),
                processing_time_ms=0,
            ),
            charged=amount_due,
            tendered=settlement.tendered,
            change_due=settlement.change_due,
        )

    async def _capture_split(self, instruction: PaymentInstruction, amount_due: Money) -> CaptureOutcome:
        offered = Money.zero(amount_due.currency)
        for leg in instruction.legs:
            offered = offered + leg.amount
        if offered.amount_cents < amount_due.amount_cents:
            return CaptureOutcome(
                result=PaymentResult(
                    success=False,
                    payment_method=PaymentMethod.SPLIT.value,
                    timestamp=datetime.now(timezone.utc),
                    processing_time_ms=0,
                    error_message="Split payment total insufficient",
                ),
                charged=amount_due,
            )

        captured: list[CapturedCharge] = []
        processing_ms = 0
        for leg in instruction.legs:
            if leg.method == PaymentMethod.CASH:
                continue
            result = await self._gateway.charge_split_leg(leg.amount, leg.card)
            processing_ms += result.processing_time_ms
            if not result.success:
                await self._void(captured)
                return CaptureOutcome(
                    result=PaymentResult(
                        success=False,
                        payment_method=PaymentMethod.SPLIT.value,
                        timestamp=datetime.now(timezone.utc),
                        processing_time_ms=processing_ms,
                        error_message=f"Split payment leg failed: {result.error_message}",
                    ),
                    charged=amount_due,
                )
            captured.extend(_captures_of(result, leg.amount))

        transactions = [charge.transaction_id for charge in captured]
        return CaptureOutcome(
            result=PaymentResult(
                success=True,
                payment_method=PaymentMethod.SPLIT.value,
                timestamp=datetime.now(timezone.utc),
                processing_time_ms=processing_ms,
                transaction_id=",".join(transactions) or None,
            ),
            charged=amount_due,
            tendered=offered,
            change_due=offered - amount_due,
            captures=tuple(captured),
        )

    async def _void(self, captured: list[CapturedCharge]) -> None:
        for charge in captured:
            voided = await self._gateway.refund(
                charge.transaction_id,
                charge.amount,
                reason="split payment voided",
            )
            if not voided.success:
                logger.error("split_leg_void_failed", extra={"transaction_id": charge.transaction_id})

    async def compensate(self, outcome: CaptureOutcome, reason: str) -> bool:
        """Refund everything ``outcome`` captured; returns False if any refund failed."""
        refunded = True
        for charge in outcome.captures:
            result = await self._gateway.refund(charge.transaction_id, charge.amount, reason=reason)
            if not result.success:
                refunded = False
                logger.error(
                    "payment_compensation_failed",
                    extra={"transaction_id": charge.transaction_id},
                )
        return refunded


def _check_split_legs(legs: tuple[SplitLeg, ...], amount_due: Money) -> None:
    if not legs:
        raise InvalidPaymentRequestError("split payments need at least one leg")
    non_cash = Money.zero(amount_due.currency)
    for leg in legs:
        if leg.method == PaymentMethod.CARD and leg.card is None:
            raise InvalidPaymentRequestError("card legs need card details")
        if leg.method != PaymentMethod.CASH:
            non_cash = non_cash + leg.amount
    # only cash legs can return change
    if non_cash.amount_cents > amount_due.amount_cents:
        raise PaymentAmountMismatchError(
            "non-cash split legs exceed the amount due",
            details={
                "amountDueCents": amount_due.amount_cents,
                "nonCashCents": non_cash.amount_cents,
            },
        )


def _captures_of(result: PaymentResult, amount: Money) -> tuple[CapturedCharge, ...]:
    if not result.success or result.transaction_id is None:
        return ()
    return (CapturedCharge(transaction_id=result.transaction_id, amount=amount),)
