from __future__ import annotations

from barback.domain.common.money import Money
from barback.domain.kitchen.entities import KitchenTicket
from barback.domain.payment.entities import Receipt

RECEIPT_WIDTH = 40
_RULE = "=" * RECEIPT_WIDTH
_THIN_RULE = "-" * RECEIPT_WIDTH


def _amount(money: Money) -> str:
    return f"${money.to_decimal():.2f}"


def _pair(label: str, value: str) -> str:
    gap = max(1, RECEIPT_WIDTH - len(label) - len(value))
    return f"{label}{' ' * gap}{value}"


def render_receipt(receipt: Receipt) -> str:
    lines = [
        _RULE,
        receipt.business_name.center(RECEIPT_WIDTH).rstrip(),
        receipt.business_address.center(RECEIPT_WIDTH).rstrip(),
        _RULE,
        f"Receipt: {receipt.label}",
        f"Order: #{receipt.order_number}",
        f"Date: {receipt.timestamp:%Y-%m-%d}",
        f"Time: {receipt.timestamp:%H:%M:%S}",
        f"Server: {receipt.employee_name}",
        _THIN_RULE,
        "ITEMS:",
    ]
    for item in receipt.items:
        lines.append(_pair(f"{item.quantity}x {item.name}"[: RECEIPT_WIDTH - 10], _amount(item.total)))
    lines.append(_THIN_RULE)
    lines.append(_pair("Subtotal:", _amount(receipt.subtotal)))
    lines.append(_pair("Tax:", _amount(receipt.tax)))
    if receipt.tip.amount_cents > 0:
        lines.append(_pair("Tip:", _amount(receipt.tip)))
    lines.append(_pair("TOTAL:", _amount(receipt.total)))
    lines.append(_THIN_RULE)
    lines.append(f"Payment: {receipt.payment_method}")
    if receipt.transaction_id:
        lines.append(f"Transaction: {receipt.transaction_id}")
    lines.append("")
    lines.append("Thank you for your visit!".center(RECEIPT_WIDTH).rstrip())
    lines.append("Please come again!".center(RECEIPT_WIDTH).rstrip())
    lines.append(_RULE)
    return "\n".join(lines)


def render_ticket(ticket: KitchenTicket) -> str:
    lines = [
        _RULE,
        f"{ticket.station.value} TICKET {ticket.label}".center(RECEIPT_WIDTH).rstrip(),
        _RULE,
        f"Order: #{ticket.order_number}",
        f"Type: {ticket.order_type.value}",
    ]
    if ticket.table_number is not None:
        lines.append(f"Table: {ticket.table_number}")
    if ticket.customer_name:
        lines.append(f"Customer: {ticket.customer_name}")
    lines.append(f"Time: {ticket.created_at:%H:%M}")
    lines.append(f"Ready by: {ticket.estimated_ready_at:%H:%M}")
    lines.append(_THIN_RULE)
    for item in ticket.items:
        lines.append(f"{item.quantity}x {item.name}")
        for modification in item.modifications:
            lines.append(f"   - {modification}")
        if item.notes:
            lines.append(f"   * {item.notes}")
        if item.allergens:
            lines.append(f"   ! ALLERGENS: {', '.join(item.allergens)}")
    lines.append(_THIN_RULE)
    if ticket.kitchen_notes:
        lines.append(f"Kitchen notes: {ticket.kitchen_notes}")
    if ticket.allergy_notes:
        lines.append(f"ALLERGY: {ticket.allergy_notes}")
    lines.append(f"Prep time: {ticket.prep_time_total} min")
    lines.append(_RULE)
    return "\n".join(lines)
