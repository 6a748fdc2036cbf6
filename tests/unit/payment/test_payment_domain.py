from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from barback.domain.common.money import Money
from barback.domain.payment.entities import (
    InsufficientTenderError,
    InvalidCardError,
    PaymentCard,
    settle_cash,
    validate_card,
)

CURRENT_YEAR = 2026
VALID_CARD = PaymentCard(
    number="4111111111111111",
    expiry_month=12,
    expiry_year=CURRENT_YEAR + 2,
    cvv="123",
    holder_name="Alex Doe",
)


def test_valid_card_passes() -> None:
    validate_card(VALID_CARD, current_year=CURRENT_YEAR)


@pytest.mark.parametrize(
    "card",
    [
        replace(VALID_CARD, number="12345"),
        replace(VALID_CARD, cvv="12"),
        replace(VALID_CARD, expiry_year=CURRENT_YEAR - 1),
        replace(VALID_CARD, expiry_month=13),
        replace(VALID_CARD, holder_name="  "),
        replace(VALID_CARD, expiry_year=CURRENT_YEAR + 11),
    ],
)
def test_invalid_cards_are_rejected(card: PaymentCard) -> None:
    with pytest.raises(InvalidCardError):
        validate_card(card, current_year=CURRENT_YEAR)


def test_cash_below_due_is_rejected() -> None:
    with pytest.raises(InsufficientTenderError) as exc_info:
        settle_cash(Money.from_decimal("20.00", "USD"), Money.from_decimal("15.00", "USD"))

    assert exc_info.value.details == {"amountDueCents": 2000, "tenderedCents": 1500}


def test_cash_returns_change() -> None:
    settlement = settle_cash(Money.from_decimal("20.00", "USD"), Money.from_decimal("25.00", "USD"))

    assert settlement.change_due == Money(amount_cents=500, currency="USD")
