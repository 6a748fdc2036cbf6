from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from barback.application.use_cases.errors import (
    InvalidPaymentRequestError,
    PaymentAmountMismatchError,
)
from barback.application.use_cases.process_payment import PaymentInstruction, ProcessPayment
from barback.domain.common.money import Money
from barback.domain.payment.entities import (
    InsufficientTenderError,
    MobileWallet,
    PaymentCard,
    PaymentMethod,
    PaymentResult,
    SplitLeg,
)
from barback.infrastructure.payments.simulated_gateway import SimulatedPaymentGateway

DUE = Money.from_decimal("20.00", "USD")
CARD = PaymentCard(
    number="4111111111111111",
    expiry_month=12,
    expiry_year=datetime.now(timezone.utc).year + 1,
    cvv="123",
    holder_name="Alex Doe",
)


class ScriptedGateway:
    """Approves split legs until ``fail_on`` legs have been charged."""

    def __init__(self, fail_on: int | None = None) -> None:
        self._fail_on = fail_on
        self.charged = 0
        self.refunded: list[str] = []

    def _result(self, success: bool, transaction_id: str | None = None) -> PaymentResult:
        return PaymentResult(
            success=success,
            payment_method="split",
            timestamp=datetime.now(timezone.utc),
            processing_time_ms=10,
            transaction_id=transaction_id,
            error_message=None if success else "Declined",
        )

    async def charge_card(self, amount: Money, card: PaymentCard) -> PaymentResult:
        return self._result(True, "TXN_card")

    async def charge_contactless(self, amount: Money) -> PaymentResult:
        return self._result(True, "TXN_tap")

    async def charge_mobile(self, amount: Money, wallet: MobileWallet) -> PaymentResult:
        return self._result(True, "TXN_mobile")

    async def charge_split_leg(self, amount: Money, card: PaymentCard | None) -> PaymentResult:
        self.charged += 1
        if self._fail_on is not None and self.charged >= self._fail_on:
            return self._result(False)
        return self._result(True, f"TXN_leg{self.charged}")

    async def refund(self, transaction_id: str, amount: Money, reason: str | None) -> PaymentResult:
        self.refunded.append(transaction_id)
        return self._result(True, f"REF_{transaction_id}")


def test_cash_capture_reports_change() -> None:
    processor = ProcessPayment(SimulatedPaymentGateway(scale=0))
    instruction = PaymentInstruction(
        method=PaymentMethod.CASH,
        amount=DUE,
        tendered=Money.from_decimal("25.00", "USD"),
    )

    outcome = asyncio.run(processor.capture(instruction, DUE))

    assert outcome.success
    assert outcome.change_due == Money(amount_cents=500, currency="USD")
    assert outcome.captures == ()


def test_cash_below_due_is_rejected_before_capture() -> None:
    processor = ProcessPayment(SimulatedPaymentGateway(scale=0))
    instruction = PaymentInstruction(
        method=PaymentMethod.CASH,
        amount=DUE,
        tendered=Money.from_decimal("15.00", "USD"),
    )

    with pytest.raises(InsufficientTenderError):
        processor.prepare(instruction, DUE)


def test_card_amount_must_match_due() -> None:
    processor = ProcessPayment(SimulatedPaymentGateway(scale=0))
    instruction = PaymentInstruction(method=PaymentMethod.CARD, amount=Money.from_decimal("5.00", "USD"), card=CARD)

    with pytest.raises(PaymentAmountMismatchError):
        processor.prepare(instruction, DUE)


def test_card_payment_needs_card_details() -> None:
    processor = ProcessPayment(SimulatedPaymentGateway(scale=0))

    with pytest.raises(InvalidPaymentRequestError):
        processor.prepare(PaymentInstruction(method=PaymentMethod.CARD, amount=DUE), DUE)


def test_simulated_gateway_declines_invalid_card() -> None:
    processor = ProcessPayment(SimulatedPaymentGateway(scale=0))
    bad_card = PaymentCard(number="12345", expiry_month=1, expiry_year=2030, cvv="123", holder_name="A")

    outcome = asyncio.run(
        processor.capture(PaymentInstruction(method=PaymentMethod.CARD, amount=DUE, card=bad_card), DUE)
    )

    assert not outcome.success
    assert outcome.result.error_message == "Invalid card details"
    assert outcome.result.transaction_id is None


def test_simulated_gateway_issues_transaction_ids() -> None:
    processor = ProcessPayment(SimulatedPaymentGateway(scale=0))

    outcome = asyncio.run(
        processor.capture(PaymentInstruction(method=PaymentMethod.CONTACTLESS, amount=DUE), DUE)
    )

    assert outcome.success
    assert outcome.result.transaction_id is not None
    assert outcome.result.transaction_id.startswith("TXN_")
    assert outcome.captures[0].amount == DUE


def test_split_with_insufficient_legs_fails_without_charging() -> None:
    gateway = ScriptedGateway()
    instruction = PaymentInstruction(
        method=PaymentMethod.SPLIT,
        amount=DUE,
        legs=(SplitLeg(method=PaymentMethod.CARD, amount=Money.from_decimal("5.00", "USD"), card=CARD),),
    )

    outcome = asyncio.run(ProcessPayment(gateway).capture(instruction, DUE))

    assert not outcome.success
    assert outcome.result.error_message == "Split payment total insufficient"
    assert gateway.charged == 0


def test_split_leg_failure_voids_captured_legs() -> None:
    gateway = ScriptedGateway(fail_on=2)
    instruction = PaymentInstruction(
        method=PaymentMethod.SPLIT,
        amount=DUE,
        legs=(
            SplitLeg(method=PaymentMethod.CARD, amount=Money.from_decimal("10.00", "USD"), card=CARD),
            SplitLeg(method=PaymentMethod.CARD, amount=Money.from_decimal("10.00", "USD"), card=CARD),
        ),
    )

    outcome = asyncio.run(ProcessPayment(gateway).capture(instruction, DUE))

    assert not outcome.success
    assert gateway.refunded == ["TXN_leg1"]


def test_split_with_cash_leg_charges_only_card_legs() -> None:
    gateway = ScriptedGateway()
    instruction = PaymentInstruction(
        method=PaymentMethod.SPLIT,
        amount=DUE,
        legs=(
            SplitLeg(method=PaymentMethod.CASH, amount=Money.from_decimal("8.00", "USD")),
            SplitLeg(method=PaymentMethod.CARD, amount=Money.from_decimal("12.00", "USD"), card=CARD),
        ),
    )

    outcome = asyncio.run(ProcessPayment(gateway).capture(instruction, DUE))

    assert outcome.success
    assert gateway.charged == 1
    assert outcome.result.transaction_id == "TXN_leg1"
    assert outcome.change_due == Money.zero("USD")


def test_split_card_legs_over_the_due_are_rejected() -> None:
    gateway = ScriptedGateway()
    instruction = PaymentInstruction(
        method=PaymentMethod.SPLIT,
        amount=DUE,
        legs=(
            SplitLeg(method=PaymentMethod.CARD, amount=Money.from_decimal("15.00", "USD"), card=CARD),
            SplitLeg(method=PaymentMethod.CONTACTLESS, amount=Money.from_decimal("10.00", "USD")),
        ),
    )

    with pytest.raises(PaymentAmountMismatchError) as exc_info:
        asyncio.run(ProcessPayment(gateway).capture(instruction, DUE))

    assert exc_info.value.details == {"amountDueCents": 2000, "nonCashCents": 2500}
    assert gateway.charged == 0


def test_split_change_comes_only_from_cash_legs() -> None:
    gateway = ScriptedGateway()
    instruction = PaymentInstruction(
        method=PaymentMethod.SPLIT,
        amount=DUE,
        legs=(
            SplitLeg(method=PaymentMethod.CARD, amount=Money.from_decimal("12.00", "USD"), card=CARD),
            SplitLeg(method=PaymentMethod.CASH, amount=Money.from_decimal("10.00", "USD")),
        ),
    )

    outcome = asyncio.run(ProcessPayment(gateway).capture(instruction, DUE))

    assert outcome.success
    assert outcome.change_due == Money(amount_cents=200, currency="USD")
    assert [charge.amount for charge in outcome.captures] == [Money.from_decimal("12.00", "USD")]


def test_split_card_leg_needs_card_details() -> None:
    gateway = ScriptedGateway()
    instruction = PaymentInstruction(
        method=PaymentMethod.SPLIT,
        amount=DUE,
        legs=(
            SplitLeg(method=PaymentMethod.CARD, amount=Money.from_decimal("10.00", "USD")),
            SplitLeg(method=PaymentMethod.CASH, amount=Money.from_decimal("10.00", "USD")),
        ),
    )

    with pytest.raises(InvalidPaymentRequestError):
        ProcessPayment(gateway).prepare(instruction, DUE)
    assert gateway.charged == 0
