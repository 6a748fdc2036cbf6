from __future__ import annotations

import logging
from typing import Any, cast

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from barback.api.middleware.request_id import get_request_id
from barback.application.use_cases.errors import (
    CartNotFoundError,
    ConflictError,
    DuplicateSkuError,
    DuplicateTableError,
    EmptyOrderError,
    InvalidCursorError,
    InvalidOrderTransitionError,
    InvalidPaymentRequestError,
    InvalidTicketTransitionError,
    InventoryItemNotFoundError,
    LocationNotFoundError,
    MenuItemNotFoundError,
    MenuItemUnavailableError,
    NotFoundError,
    OrderConflictError,
    OrderNotFoundError,
    OrganizationNotFoundError,
    PaymentAmountMismatchError,
    PaymentFailedError,
    PaymentNotFoundError,
    TableNotFoundError,
    TicketNotFoundError,
    ValidationError,
)
from barback.domain.cart.entities import EmptyCartError
from barback.domain.order.receipts import ReceiptUnavailableError
from barback.domain.payment.entities import (
    InsufficientTenderError,
    InvalidCardError,
    PaymentNotRefundableError,
)

logger = logging.getLogger(__name__)


def _error_response(
    *,
    status_code: int,
    code: str,
    message: str,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "message": message,
            "error": {
                "code": code,
                "message": message,
                "details": jsonable_encoder(details or {}),
            },
            "requestId": get_request_id(),
        },
    )


def _exception_handler(status_code: int, code: str):
    async def handler(_: Request, exc: Exception) -> JSONResponse:
        details = getattr(exc, "details", None)
        return _error_response(
            status_code=status_code,
            code=code,
            message=str(exc),
            details=details if isinstance(details, dict) else None,
        )

    return handler


async def _http_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    http_exc = cast(StarletteHTTPException, exc)
    message = str(http_exc.detail) if http_exc.detail else "request failed"
    code = "HTTP_ERROR"
    if http_exc.status_code == 404:
        code = "NOT_FOUND"
    elif http_exc.status_code == 400:
        code = "BAD_REQUEST"
    elif http_exc.status_code == 405:
        code = "METHOD_NOT_ALLOWED"
    elif http_exc.status_code == 409:
        code = "CONFLICT"
    return _error_response(
        status_code=http_exc.status_code,
        code=code,
        message=message,
    )


async def _validation_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    validation_exc = cast(RequestValidationError, exc)
    return _error_response(
        status_code=400,
        code="INVALID_REQUEST",
        message="request validation failed",
        details={"errors": validation_exc.errors()},
    )


async def _unhandled_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", exc_info=exc)
    return _error_response(
        status_code=500,
        code="INTERNAL_ERROR",
        message="internal server error",
    )


def register_exception_handlers(app: FastAPI) -> None:
    # starlette resolves handlers along the MRO, so the base classes act as fallbacks
    mappings: list[tuple[type[Exception], int, str]] = [
        (OrganizationNotFoundError, 404, "ORGANIZATION_NOT_FOUND"),
        (LocationNotFoundError, 404, "LOCATION_NOT_FOUND"),
        (TableNotFoundError, 404, "TABLE_NOT_FOUND"),
        (MenuItemNotFoundError, 404, "MENU_ITEM_NOT_FOUND"),
        (CartNotFoundError, 404, "CART_NOT_FOUND"),
        (OrderNotFoundError, 404, "ORDER_NOT_FOUND"),
        (TicketNotFoundError, 404, "TICKET_NOT_FOUND"),
        (PaymentNotFoundError, 404, "PAYMENT_NOT_FOUND"),
        (InventoryItemNotFoundError, 404, "INVENTORY_ITEM_NOT_FOUND"),
        (NotFoundError, 404, "NOT_FOUND"),
        (MenuItemUnavailableError, 400, "MENU_ITEM_UNAVAILABLE"),
        (InvalidCursorError, 400, "INVALID_CURSOR"),
        (PaymentAmountMismatchError, 400, "PAYMENT_AMOUNT_MISMATCH"),
        (InvalidPaymentRequestError, 400, "INVALID_PAYMENT_REQUEST"),
        (ValidationError, 400, "VALIDATION_ERROR"),
        (EmptyCartError, 400, "EMPTY_CART"),
        (InsufficientTenderError, 400, "INSUFFICIENT_TENDER"),
        (InvalidCardError, 400, "INVALID_CARD"),
        (InvalidOrderTransitionError, 409, "INVALID_ORDER_TRANSITION"),
        (InvalidTicketTransitionError, 409, "INVALID_TICKET_TRANSITION"),
        (OrderConflictError, 409, "CONFLICT"),
        (EmptyOrderError, 409, "EMPTY_ORDER"),
        (DuplicateTableError, 409, "DUPLICATE_TABLE"),
        (DuplicateSkuError, 409, "DUPLICATE_SKU"),
        (PaymentNotRefundableError, 409, "PAYMENT_NOT_REFUNDABLE"),
        (ReceiptUnavailableError, 409, "RECEIPT_UNAVAILABLE"),
        (ConflictError, 409, "CONFLICT"),
        (PaymentFailedError, 402, "PAYMENT_FAILED"),
    ]

    for exc_cls, status_code, code in mappings:
        app.add_exception_handler(exc_cls, _exception_handler(status_code, code))

    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
