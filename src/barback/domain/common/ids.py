from __future__ import annotations

from typing import NewType

OrganizationId = NewType("OrganizationId", str)
LocationId = NewType("LocationId", str)
TableId = NewType("TableId", str)
MenuItemId = NewType("MenuItemId", str)
CartId = NewType("CartId", str)
OrderId = NewType("OrderId", str)
OrderLineId = NewType("OrderLineId", str)
TicketId = NewType("TicketId", str)
InventoryItemId = NewType("InventoryItemId", str)
Sku = NewType("Sku", str)
PaymentId = NewType("PaymentId", str)
