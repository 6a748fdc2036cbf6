from __future__ import annotations

from barback.application.dto.responses import (
    OrderLineResponse,
    OrderResponse,
    TicketItemResponse,
    TicketResponse,
)
from barback.application.mappers.common import to_money_response
from barback.domain.kitchen.entities import KitchenTicket
from barback.domain.order.entities import Order


def to_order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        orderId=str(order.order_id),
        organizationId=str(order.organization_id),
        locationId=str(order.location_id),
        orderNumber=order.order_number,
        tableId=str(order.table_id) if order.table_id else None,
        tableNumber=order.table_number,
        customerId=order.customer_id,
        customerName=order.customer_name,
        orderType=order.order_type.value,
        priority=order.priority.value,
        status=order.status.value,
        paymentStatus=order.payment_status.value,
        paymentMethod=order.payment_method.value if order.payment_method else None,
        lines=[
            OrderLineResponse(
                lineId=str(line.line_id),
                itemId=str(line.item_id),
                name=line.name,
                quantity=line.quantity,
                unitPrice=to_money_response(line.unit_price),
                lineTotal=to_money_response(line.line_total),
                notes=line.notes,
                modifications=list(line.modifications),
                customizations=dict(line.customizations),
                preparationTime=line.preparation_time,
                allergens=list(line.allergens),
            )
            for line in order.lines
        ],
        subtotal=to_money_response(order.subtotal),
        taxRate=order.tax_rate,
        tax=to_money_response(order.tax),
        tip=to_money_response(order.tip),
        total=to_money_response(order.total),
        notes=order.notes,
        kitchenNotes=order.kitchen_notes,
        allergyNotes=order.allergy_notes,
        employeeId=order.employee_id,
        createdAt=order.created_at,
        estimatedReadyAt=order.estimated_ready_at,
        closedAt=order.closed_at,
        version=order.version,
    )


def to_ticket_response(ticket: KitchenTicket) -> TicketResponse:
    return TicketResponse(
        ticketId=str(ticket.ticket_id),
        ticketNumber=ticket.ticket_number,
        label=ticket.label,
        orderId=str(ticket.order_id),
        orderNumber=ticket.order_number,
        station=ticket.station.value,
        status=ticket.status.value,
        orderType=ticket.order_type.value,
        tableNumber=ticket.table_number,
        customerName=ticket.customer_name,
        items=[
            TicketItemResponse(
                name=item.name,
                quantity=item.quantity,
                modifications=list(item.modifications),
                notes=item.notes,
                allergens=list(item.allergens),
                preparationTime=item.preparation_time,
                priority=item.priority,
            )
            for item in ticket.items
        ],
        notes=ticket.notes,
        kitchenNotes=ticket.kitchen_notes,
        allergyNotes=ticket.allergy_notes,
        prepTimeTotal=ticket.prep_time_total,
        createdAt=ticket.created_at,
        estimatedReadyAt=ticket.estimated_ready_at,
    )
