from __future__ import annotations

from typing import Any


class ValidationError(Exception):
    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = details or {}


class NotFoundError(Exception):
    pass


class ConflictError(Exception):
    pass


class PaymentFailedError(Exception):
    def __init__(self, message: str, payment_id: str | None = None) -> None:
        super().__init__(message)
        self.details = {"paymentId": payment_id} if payment_id else {}


class OrganizationNotFoundError(NotFoundError):
    pass


class LocationNotFoundError(NotFoundError):
    pass


class TableNotFoundError(NotFoundError):
    pass


class MenuItemNotFoundError(NotFoundError):
    pass


class CartNotFoundError(NotFoundError):
    pass


class OrderNotFoundError(NotFoundError):
    pass


class TicketNotFoundError(NotFoundError):
    pass


class PaymentNotFoundError(NotFoundError):
    pass


class InventoryItemNotFoundError(NotFoundError):
    pass


class MenuItemUnavailableError(ValidationError):
    pass


class InvalidCursorError(ValidationError):
    pass


class PaymentAmountMismatchError(ValidationError):
    pass


class InvalidPaymentRequestError(ValidationError):
    pass


class InvalidOrderTransitionError(ConflictError):
    pass


class InvalidTicketTransitionError(ConflictError):
    pass


class OrderConflictError(ConflictError):
    pass


class EmptyOrderError(ConflictError):
    pass


class DuplicateTableError(ConflictError):
    pass


class DuplicateSkuError(ConflictError):
    pass
