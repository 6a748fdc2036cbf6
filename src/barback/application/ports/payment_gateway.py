from __future__ import annotations

from typing import Protocol

from barback.domain.common.money import Money
from barback.domain.payment.entities import MobileWallet, PaymentCard, PaymentResult


class PaymentGateway(Protocol):
    async def charge_card(self, amount: Money, card: PaymentCard) -> PaymentResult: ...

    async def charge_contactless(self, amount: Money) -> PaymentResult: ...

    async def charge_mobile(self, amount: Money, wallet: MobileWallet) -> PaymentResult: ...

    async def charge_split_leg(self, amount: Money, card: PaymentCard | None) -> PaymentResult: ...

    async def refund(self, transaction_id: str, amount: Money, reason: str | None) -> PaymentResult: ...
