from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

DataT = TypeVar("DataT")


class Envelope(BaseModel, Generic[DataT]):
    success: bool = True
    data: DataT | None = None
    message: str | None = None


class MoneyResponse(BaseModel):
    amountCents: int
    currency: str


class RecipeComponentResponse(BaseModel):
    sku: str
    quantity: Decimal


class MenuItemResponse(BaseModel):
    itemId: str
    name: str
    category: str
    posCategory: str
    description: str | None = None
    price: MoneyResponse
    cost: MoneyResponse
    preparationTime: int
    allergens: list[str] = Field(default_factory=list)
    isVegetarian: bool
    isVegan: bool
    isGlutenFree: bool
    alcoholContent: Decimal | None = None
    available: bool
    recipe: list[RecipeComponentResponse] = Field(default_factory=list)


class MenuResponse(BaseModel):
    organizationId: str
    menuVersion: int
    categories: list[str] = Field(default_factory=list)
    items: list[MenuItemResponse] = Field(default_factory=list)
    updatedAt: datetime


class CartLineResponse(BaseModel):
    index: int
    menuItemId: str
    name: str
    quantity: int
    unitPrice: MoneyResponse
    subtotal: MoneyResponse
    modifications: list[str] = Field(default_factory=list)
    customizations: dict[str, str] = Field(default_factory=dict)
    note: str | None = None


class CartResponse(BaseModel):
    cartId: str
    organizationId: str
    lines: list[CartLineResponse] = Field(default_factory=list)
    itemCount: int
    taxRate: Decimal
    subtotal: MoneyResponse
    tax: MoneyResponse
    total: MoneyResponse
    createdAt: datetime
    updatedAt: datetime


class CartMutationResponse(BaseModel):
    applied: bool
    cart: CartResponse


class OrderLineResponse(BaseModel):
    lineId: str
    itemId: str
    name: str
    quantity: int
    unitPrice: MoneyResponse
    lineTotal: MoneyResponse
    notes: str | None = None
    modifications: list[str] = Field(default_factory=list)
    customizations: dict[str, str] = Field(default_factory=dict)
    preparationTime: int
    allergens: list[str] = Field(default_factory=list)


class OrderResponse(BaseModel):
    orderId: str
    organizationId: str
    locationId: str
    orderNumber: int
    tableId: str | None = None
    tableNumber: int | None = None
    customerId: str | None = None
    customerName: str | None = None
    orderType: str
    priority: str
    status: str
    paymentStatus: str
    paymentMethod: str | None = None
    lines: list[OrderLineResponse] = Field(default_factory=list)
    subtotal: MoneyResponse
    taxRate: Decimal
    tax: MoneyResponse
    tip: MoneyResponse
    total: MoneyResponse
    notes: str | None = None
    kitchenNotes: str | None = None
    allergyNotes: str | None = None
    employeeId: str | None = None
    createdAt: datetime
    estimatedReadyAt: datetime
    closedAt: datetime | None = None
    version: int


class OrderListResponse(BaseModel):
    orders: list[OrderResponse] = Field(default_factory=list)
    nextCursor: str | None = None


class TicketItemResponse(BaseModel):
    name: str
    quantity: int
    modifications: list[str] = Field(default_factory=list)
    notes: str | None = None
    allergens: list[str] = Field(default_factory=list)
    preparationTime: int
    priority: str


class TicketResponse(BaseModel):
    ticketId: str
    ticketNumber: int
    label: str
    orderId: str
    orderNumber: int
    station: str
    status: str
    orderType: str
    tableNumber: int | None = None
    customerName: str | None = None
    items: list[TicketItemResponse] = Field(default_factory=list)
    notes: str | None = None
    kitchenNotes: str | None = None
    allergyNotes: str | None = None
    prepTimeTotal: int
    createdAt: datetime
    estimatedReadyAt: datetime


class OrderWithTicketResponse(BaseModel):
    order: OrderResponse
    ticket: TicketResponse | None = None


class TicketQueueResponse(BaseModel):
    tickets: list[TicketResponse] = Field(default_factory=list)


class TicketPrintResponse(BaseModel):
    ticketId: str
    label: str
    text: str


class RefundResponse(BaseModel):
    amount: MoneyResponse
    reason: str | None = None
    processedAt: datetime
    transactionId: str | None = None


class CapturedChargeResponse(BaseModel):
    transactionId: str
    amount: MoneyResponse


class PaymentResponse(BaseModel):
    paymentId: str
    orderId: str
    method: str
    status: str
    amount: MoneyResponse
    tendered: MoneyResponse | None = None
    changeDue: MoneyResponse | None = None
    transactionId: str | None = None
    receiptNumber: str | None = None
    processingTimeMs: int
    errorMessage: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    refund: RefundResponse | None = None
    captures: list[CapturedChargeResponse] = Field(default_factory=list)
    createdAt: datetime


class PaymentListResponse(BaseModel):
    payments: list[PaymentResponse] = Field(default_factory=list)


class ReceiptLineResponse(BaseModel):
    name: str
    quantity: int
    price: MoneyResponse
    total: MoneyResponse


class ReceiptResponse(BaseModel):
    receiptNumber: str
    businessName: str
    businessAddress: str
    orderNumber: int
    items: list[ReceiptLineResponse] = Field(default_factory=list)
    subtotal: MoneyResponse
    tax: MoneyResponse
    tip: MoneyResponse
    total: MoneyResponse
    paymentMethod: str
    transactionId: str | None = None
    timestamp: datetime
    employeeName: str
    text: str


class CloseOrderResponse(BaseModel):
    order: OrderResponse
    payment: PaymentResponse
    receipt: ReceiptResponse


class LocationResponse(BaseModel):
    locationId: str
    organizationId: str
    name: str


class ActiveOrderSummaryResponse(BaseModel):
    orderId: str
    orderNumber: int
    status: str
    total: MoneyResponse


class TableResponse(BaseModel):
    tableId: str
    organizationId: str
    locationId: str
    number: int
    capacity: int
    createdAt: datetime
    activeOrders: list[ActiveOrderSummaryResponse] = Field(default_factory=list)


class TableListResponse(BaseModel):
    tables: list[TableResponse] = Field(default_factory=list)


class InventoryItemResponse(BaseModel):
    itemId: str
    sku: str
    name: str
    category: str
    unit: str
    currentStock: Decimal
    minStock: Decimal
    maxStock: Decimal
    costPerUnit: MoneyResponse
    stockValue: MoneyResponse
    supplier: str | None = None
    storageLocation: str | None = None
    barcode: str | None = None
    expirationDate: datetime | None = None
    updatedAt: datetime


class InventoryTransactionResponse(BaseModel):
    transactionId: str
    sku: str
    type: str
    quantity: Decimal
    previousStock: Decimal
    newStock: Decimal
    cost: MoneyResponse
    notes: str | None = None
    employeeId: str | None = None
    reference: str | None = None
    createdAt: datetime


class InventoryMovementResponse(BaseModel):
    item: InventoryItemResponse
    transaction: InventoryTransactionResponse


class InventoryAlertResponse(BaseModel):
    alertId: str
    sku: str
    itemName: str
    type: str
    severity: str
    message: str
    createdAt: datetime


class InventoryItemListResponse(BaseModel):
    items: list[InventoryItemResponse] = Field(default_factory=list)


class InventoryAlertListResponse(BaseModel):
    alerts: list[InventoryAlertResponse] = Field(default_factory=list)


class InventoryTransactionListResponse(BaseModel):
    transactions: list[InventoryTransactionResponse] = Field(default_factory=list)


class InventoryAnalyticsResponse(BaseModel):
    totalItems: int
    lowStockItems: int
    expiringItems: int
    totalValue: MoneyResponse
    averageValue: MoneyResponse
    categories: int


class PaymentMethodBreakdownResponse(BaseModel):
    method: str
    count: int
    total: MoneyResponse


class DailySalesResponse(BaseModel):
    date: str
    orderCount: int
    subtotal: MoneyResponse
    tax: MoneyResponse
    tips: MoneyResponse
    total: MoneyResponse
    averageOrderValue: MoneyResponse
    byPaymentMethod: list[PaymentMethodBreakdownResponse] = Field(default_factory=list)


class PopularItemResponse(BaseModel):
    itemId: str
    name: str
    quantity: int
    revenue: MoneyResponse


class PopularItemsResponse(BaseModel):
    items: list[PopularItemResponse] = Field(default_factory=list)
