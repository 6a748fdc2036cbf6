from __future__ import annotations

from barback.application.dto.responses import MoneyResponse
from barback.domain.common.money import Money


def to_money_response(money: Money) -> MoneyResponse:
    return MoneyResponse(amountCents=money.amount_cents, currency=money.currency)


def optional_money(money: Money | None) -> MoneyResponse | None:
    if money is None:
        return None
    return to_money_response(money)
