from __future__ import annotations

from datetime import datetime, timezone

from barback.domain.common.money import Money


def aware(value: datetime) -> datetime:
    # sqlite drops tzinfo on the way back out
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def aware_or_none(value: datetime | None) -> datetime | None:
    return aware(value) if value is not None else None


def money_or_none(amount_cents: int | None, currency: str) -> Money | None:
    if amount_cents is None:
        return None
    return Money(amount_cents=amount_cents, currency=currency)
