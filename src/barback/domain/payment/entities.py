from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from barback.domain.common.ids import OrderId, OrganizationId, PaymentId
from barback.domain.common.money import Money


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    CONTACTLESS = "CONTACTLESS"
    MOBILE = "MOBILE"
    SPLIT = "SPLIT"


class MobileWallet(str, Enum):
    APPLE_PAY = "apple_pay"
    GOOGLE_PAY = "google_pay"
    SAMSUNG_PAY = "samsung_pay"


class PaymentRecordStatus(str, Enum):
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REFUNDING = "REFUNDING"
    REFUNDED = "REFUNDED"


class InvalidCardError(Exception):
    def __init__(self, reason: str) -> None:
        super().__init__(f"invalid card: {reason}")
        self.reason = reason
        self.details = {"reason": reason}


class InsufficientTenderError(Exception):
    def __init__(self, amount_due: Money, tendered: Money) -> None:
        super().__init__(
            f"insufficient cash tendered: due {amount_due.to_decimal()}, "
            f"tendered {tendered.to_decimal()}"
        )
        self.amount_due = amount_due
        self.tendered = tendered
        self.details = {
            "amountDueCents": amount_due.amount_cents,
            "tenderedCents": tendered.amount_cents,
        }


@dataclass(frozen=True)
class PaymentCard:
    number: str
    expiry_month: int
    expiry_year: int
    cvv: str
    holder_name: str


def validate_card(card: PaymentCard, current_year: int) -> None:
    if not card.number or len(card.number) < 13 or len(card.number) > 19:
        raise InvalidCardError("card number must be 13-19 digits")
    if not card.cvv or len(card.cvv) < 3 or len(card.cvv) > 4:
        raise InvalidCardError("cvv must be 3-4 digits")
    if not card.holder_name or not card.holder_name.strip():
        raise InvalidCardError("holder name is required")
    if card.expiry_year < current_year or card.expiry_year > current_year + 10:
        raise InvalidCardError("card is expired or expiry year is out of range")
    if card.expiry_month < 1 or card.expiry_month > 12:
        raise InvalidCardError("expiry month must be between 1 and 12")


@dataclass(frozen=True)
class PaymentResult:
    """Outcome of one simulated capture, refund or void."""

    success: bool
    payment_method: str
    timestamp: datetime
    processing_time_ms: int
    transaction_id: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class CashSettlement:
    amount_due: Money
    tendered: Money
    change_due: Money


def settle_cash(amount_due: Money, tendered: Money) -> CashSettlement:
    if tendered.amount_cents < amount_due.amount_cents:
        raise InsufficientTenderError(amount_due=amount_due, tendered=tendered)
    return CashSettlement(
        amount_due=amount_due,
        tendered=tendered,
        change_due=tendered - amount_due,
    )


@dataclass(frozen=True)
class SplitLeg:
    method: PaymentMethod
    amount: Money
    card: PaymentCard | None = None

    def __post_init__(self) -> None:
        if self.method == PaymentMethod.SPLIT:
            raise ValueError("split legs cannot themselves be split")
        if self.amount.amount_cents <= 0:
            raise ValueError("split leg amount must be > 0")


@dataclass(frozen=True)
class CapturedCharge:
    transaction_id: str
    amount: Money


@dataclass(frozen=True)
class RefundInfo:
    amount: Money
    reason: str | None
    processed_at: datetime
    transaction_id: str | None


@dataclass(frozen=True)
class PaymentRecord:
    payment_id: PaymentId
    organization_id: OrganizationId
    order_id: OrderId
    method: PaymentMethod
    status: PaymentRecordStatus
    amount: Money
    created_at: datetime
    tendered: Money | None = None
    change_due: Money | None = None
    transaction_id: str | None = None
    receipt_number: int | None = None
    processing_time_ms: int = 0
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    refund: RefundInfo | None = None
    captures: tuple[CapturedCharge, ...] = ()

    def claim_refund(self, amount: Money) -> PaymentRecord:
        if self.status != PaymentRecordStatus.COMPLETED:
            raise PaymentNotRefundableError(
                f"payment {self.payment_id} cannot be refunded from status={self.status.value}"
            )
        if amount.amount_cents > self.amount.amount_cents:
            raise PaymentNotRefundableError("refund amount exceeds captured amount")
        return replace(self, status=PaymentRecordStatus.REFUNDING)

    def release_refund(self) -> PaymentRecord:
        return replace(self, status=PaymentRecordStatus.COMPLETED)

    def refund_plan(self, amount: Money) -> list[CapturedCharge]:
        """Split ``amount`` across the captured charges, oldest first.

        Whatever the charges do not cover was taken in cash and is paid back
        over the counter.
        """
        plan: list[CapturedCharge] = []
        remaining = amount.amount_cents
        for charge in self.captures:
            if remaining <= 0:
                break
            part = min(remaining, charge.amount.amount_cents)
            plan.append(
                CapturedCharge(
                    transaction_id=charge.transaction_id,
                    amount=Money(amount_cents=part, currency=charge.amount.currency),
                )
            )
            remaining -= part
        return plan

    def mark_refunded(self, refund: RefundInfo) -> PaymentRecord:
        if self.status not in (PaymentRecordStatus.COMPLETED, PaymentRecordStatus.REFUNDING):
            raise PaymentNotRefundableError(
                f"payment {self.payment_id} cannot be refunded from status={self.status.value}"
            )
        if refund.amount.amount_cents > self.amount.amount_cents:
            raise PaymentNotRefundableError("refund amount exceeds captured amount")
        return replace(self, status=PaymentRecordStatus.REFUNDED, refund=refund)


class PaymentNotRefundableError(Exception):
    pass


@dataclass(frozen=True)
class ReceiptLine:
    name: str
    quantity: int
    price: Money
    total: Money


@dataclass(frozen=True)
class Receipt:
    receipt_number: int
    business_name: str
    business_address: str
    order_number: int
    items: list[ReceiptLine]
    subtotal: Money
    tax: Money
    tip: Money
    total: Money
    payment_method: str
    transaction_id: str | None
    timestamp: datetime
    employee_name: str
    tax_rate: Decimal = Decimal("0")

    @property
    def label(self) -> str:
        return f"R{self.receipt_number}"
