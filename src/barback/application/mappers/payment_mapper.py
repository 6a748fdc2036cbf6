from __future__ import annotations

from barback.application.dto.responses import (
    CapturedChargeResponse,
    PaymentResponse,
    ReceiptLineResponse,
    ReceiptResponse,
    RefundResponse,
)
from barback.application.mappers.common import optional_money, to_money_response
from barback.application.mappers.printing import render_receipt
from barback.domain.payment.entities import PaymentRecord, Receipt


def to_payment_response(payment: PaymentRecord) -> PaymentResponse:
    refund = None
    if payment.refund is not None:
        refund = RefundResponse(
            amount=to_money_response(payment.refund.amount),
            reason=payment.refund.reason,
            processedAt=payment.refund.processed_at,
            transactionId=payment.refund.transaction_id,
        )
    return PaymentResponse(
        paymentId=str(payment.payment_id),
        orderId=str(payment.order_id),
        method=payment.method.value,
        status=payment.status.value,
        amount=to_money_response(payment.amount),
        tendered=optional_money(payment.tendered),
        changeDue=optional_money(payment.change_due),
        transactionId=payment.transaction_id,
        receiptNumber=f"R{payment.receipt_number}" if payment.receipt_number else None,
        processingTimeMs=payment.processing_time_ms,
        errorMessage=payment.error_message,
        metadata=dict(payment.metadata),
        refund=refund,
        captures=[
            CapturedChargeResponse(transactionId=charge.transaction_id, amount=to_money_response(charge.amount))
            for charge in payment.captures
        ],
        createdAt=payment.created_at,
    )


def to_receipt_response(receipt: Receipt) -> ReceiptResponse:
    return ReceiptResponse(
        receiptNumber=receipt.label,
        businessName=receipt.business_name,
        businessAddress=receipt.business_address,
        orderNumber=receipt.order_number,
        items=[
            ReceiptLineResponse(
                name=item.name,
                quantity=item.quantity,
                price=to_money_response(item.price),
                total=to_money_response(item.total),
            )
            for item in receipt.items
        ],
        subtotal=to_money_response(receipt.subtotal),
        tax=to_money_response(receipt.tax),
        tip=to_money_response(receipt.tip),
        total=to_money_response(receipt.total),
        paymentMethod=receipt.payment_method,
        transactionId=receipt.transaction_id,
        timestamp=receipt.timestamp,
        employeeName=receipt.employee_name,
        text=render_receipt(receipt),
    )
