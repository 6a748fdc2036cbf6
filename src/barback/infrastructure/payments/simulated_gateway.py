from __future__ import annotations

import asyncio
import logging
import os
import secrets
import string
import time
from datetime import datetime, timezone

from barback.application.ports.payment_gateway import PaymentGateway
from barback.domain.common.money import Money
from barback.domain.payment.entities import (
    InvalidCardError,
    MobileWallet,
    PaymentCard,
    PaymentResult,
    validate_card,
)

logger = logging.getLogger(__name__)

CARD_LATENCY_SECONDS = 2.0
CONTACTLESS_LATENCY_SECONDS = 1.5
MOBILE_LATENCY_SECONDS = 1.8
SPLIT_LEG_LATENCY_SECONDS = 1.0
REFUND_LATENCY_SECONDS = 3.0

_BASE36 = string.digits + string.ascii_lowercase


def latency_scale() -> float:
    raw = os.getenv("PAYMENT_LATENCY_SCALE", "1.0")
    try:
        return max(0.0, float(raw))
    except ValueError:
        logger.warning("invalid_payment_latency_scale", extra={"value": raw})
        return 1.0


def new_transaction_id() -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"TXN_{int(time.time() * 1000)}_{suffix}"


class SimulatedPaymentGateway(PaymentGateway):
    """Stands in for a card processor: waits a fixed latency and approves.

    Card details are checked before the wait; invalid cards fail without
    a transaction id. ``scale`` multiplies every wait and is 0 in tests.
    """

    def __init__(self, scale: float | None = None) -> None:
        self._scale = latency_scale() if scale is None else scale

    async def charge_card(self, amount: Money, card: PaymentCard) -> PaymentResult:
        return await self._charge("card", amount, CARD_LATENCY_SECONDS, card)

    async def charge_contactless(self, amount: Money) -> PaymentResult:
        return await self._charge("contactless", amount, CONTACTLESS_LATENCY_SECONDS)

    async def charge_mobile(self, amount: Money, wallet: MobileWallet) -> PaymentResult:
        return await self._charge(f"mobile:{wallet.value}", amount, MOBILE_LATENCY_SECONDS)

    async def charge_split_leg(self, amount: Money, card: PaymentCard | None) -> PaymentResult:
        return await self._charge("split", amount, SPLIT_LEG_LATENCY_SECONDS, card)

    async def refund(self, transaction_id: str, amount: Money, reason: str | None) -> PaymentResult:
        await self._wait(REFUND_LATENCY_SECONDS)
        logger.info(
            "gateway_refund",
            extra={"transaction_id": transaction_id, "amount_cents": amount.amount_cents},
        )
        return PaymentResult(
            success=True,
            payment_method="refund",
            timestamp=datetime.now(timezone.utc),
            processing_time_ms=int(REFUND_LATENCY_SECONDS * 1000),
            transaction_id=f"REF_{transaction_id}",
        )

    async def _charge(
        self,
        method: str,
        amount: Money,
        latency_seconds: float,
        card: PaymentCard | None = None,
    ) -> PaymentResult:
        if card is not None:
            try:
                validate_card(card, current_year=datetime.now(timezone.utc).year)
            except InvalidCardError as exc:
                logger.info("gateway_card_declined", extra={"reason": str(exc)})
                return PaymentResult(
                    success=False,
                    payment_method=method,
                    timestamp=datetime.now(timezone.utc),
                    processing_time_ms=0,
                    error_message="Invalid card details",
                )

        await self._wait(latency_seconds)
        return PaymentResult(
            success=True,
            payment_method=method,
            timestamp=datetime.now(timezone.utc),
            processing_time_ms=int(latency_seconds * 1000),
            transaction_id=new_transaction_id(),
        )

    async def _wait(self, seconds: float) -> None:
        if self._scale > 0:
            await asyncio.sleep(seconds * self._scale)
