from __future__ import annotations

from barback.domain.order.entities import Order
from barback.domain.payment.entities import PaymentRecord, Receipt, ReceiptLine


class ReceiptUnavailableError(Exception):
    pass


def build_receipt(
    order: Order,
    payment: PaymentRecord,
    business_name: str,
    business_address: str,
    employee_name: str,
) -> Receipt:
    if payment.receipt_number is None:
        raise ReceiptUnavailableError(f"payment {payment.payment_id} has no receipt number")
    return Receipt(
        receipt_number=payment.receipt_number,
        business_name=business_name,
        business_address=business_address,
        order_number=order.order_number,
        items=[
            ReceiptLine(
                name=line.name,
                quantity=line.quantity,
                price=line.unit_price,
                total=line.line_total,
            )
            for line in order.lines
        ],
        subtotal=order.subtotal,
        tax=order.tax,
        tip=order.tip,
        total=order.total,
        payment_method=payment.method.value,
        transaction_id=payment.transaction_id,
        timestamp=payment.created_at,
        employee_name=employee_name,
        tax_rate=order.tax_rate,
    )
