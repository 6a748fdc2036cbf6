from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from barback.domain.kitchen.entities import RoutingPolicy, TicketStatus
from barback.domain.order.entities import OrderPriority, OrderStatus, OrderType
from barback.domain.payment.entities import MobileWallet, PaymentMethod


def _to_camel(value: str) -> str:
    parts = value.split("_")
    return parts[0] + "".join(part.capitalize() for part in parts[1:])


class CamelBaseModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=_to_camel,
        populate_by_name=True,
    )


class RecipeComponentRequest(CamelBaseModel):
    sku: str = Field(min_length=1)
    quantity: Decimal = Field(gt=0)


class CreateMenuItemRequest(CamelBaseModel):
    name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    price: Decimal = Field(gt=0)
    cost: Decimal = Field(default=Decimal("0"), ge=0)
    preparation_time: int = Field(default=0, ge=0)
    description: str | None = None
    pos_category: str | None = None
    allergens: list[str] = Field(default_factory=list)
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_gluten_free: bool = False
    alcohol_content: Decimal | None = Field(default=None, ge=0)
    available: bool = True
    recipe: list[RecipeComponentRequest] = Field(default_factory=list)


class UpdateMenuItemRequest(CamelBaseModel):
    name: str | None = Field(default=None, min_length=1)
    category: str | None = Field(default=None, min_length=1)
    price: Decimal | None = Field(default=None, gt=0)
    cost: Decimal | None = Field(default=None, ge=0)
    preparation_time: int | None = Field(default=None, ge=0)
    description: str | None = None
    allergens: list[str] | None = None
    is_vegetarian: bool | None = None
    is_vegan: bool | None = None
    is_gluten_free: bool | None = None
    alcohol_content: Decimal | None = Field(default=None, ge=0)
    recipe: list[RecipeComponentRequest] | None = None


class UpdatePriceRequest(CamelBaseModel):
    price: Decimal = Field(gt=0)


class SetAvailabilityRequest(CamelBaseModel):
    available: bool | None = None


class AddCartItemRequest(CamelBaseModel):
    menu_item_id: str
    quantity: int = 1
    modifications: list[str] = Field(default_factory=list)
    customizations: dict[str, str] = Field(default_factory=dict)
    note: str | None = None


class UpdateCartItemRequest(CamelBaseModel):
    quantity: int | None = None
    note: str | None = None


class CheckoutRequest(CamelBaseModel):
    location_id: str
    order_type: OrderType = OrderType.DINE_IN
    priority: OrderPriority = OrderPriority.NORMAL
    payment_method: PaymentMethod | None = None
    tip: Decimal = Field(default=Decimal("0"), ge=0)
    table_id: str | None = None
    table_number: int | None = Field(default=None, ge=1)
    customer_id: str | None = None
    customer_name: str | None = None
    employee_id: str | None = None
    notes: str | None = None
    kitchen_notes: str | None = None
    allergy_notes: str | None = None
    routing: RoutingPolicy | None = None


class OpenOrderRequest(CamelBaseModel):
    location_id: str
    order_type: OrderType = OrderType.DINE_IN
    priority: OrderPriority = OrderPriority.NORMAL
    table_id: str | None = None
    customer_id: str | None = None
    customer_name: str | None = None
    employee_id: str | None = None
    notes: str | None = None
    kitchen_notes: str | None = None
    allergy_notes: str | None = None
    routing: RoutingPolicy | None = None


class AddOrderItemRequest(CamelBaseModel):
    menu_item_id: str
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(gt=0)
    notes: str | None = None
    modifications: list[str] = Field(default_factory=list)
    customizations: dict[str, str] = Field(default_factory=dict)


class UpdateOrderStatusRequest(CamelBaseModel):
    status: OrderStatus


class PaymentCardRequest(CamelBaseModel):
    number: str
    expiry_month: int
    expiry_year: int
    cvv: str
    holder_name: str


class SplitLegRequest(CamelBaseModel):
    method: PaymentMethod
    amount: Decimal = Field(gt=0)
    card: PaymentCardRequest | None = None


class PaymentRequest(CamelBaseModel):
    method: PaymentMethod
    amount: Decimal = Field(gt=0)
    tendered: Decimal | None = Field(default=None, gt=0)
    card: PaymentCardRequest | None = None
    wallet: MobileWallet | None = None
    legs: list[SplitLegRequest] = Field(default_factory=list)
    transaction_id: str | None = None
    metadata: dict[str, str] = Field(default_factory=dict)


class CloseOrderRequest(CamelBaseModel):
    tax_rate: Decimal | None = Field(default=None, ge=0, le=1)
    tip: Decimal | None = Field(default=None, ge=0)
    payment: PaymentRequest
    employee_name: str | None = None


class UpdateTicketStatusRequest(CamelBaseModel):
    status: TicketStatus


class RefundRequest(CamelBaseModel):
    amount: Decimal | None = Field(default=None, gt=0)
    reason: str | None = None


class CreateLocationRequest(CamelBaseModel):
    name: str = Field(min_length=1)


class CreateTableRequest(CamelBaseModel):
    location_id: str
    number: int = Field(ge=1)
    capacity: int = Field(default=4, ge=1)


class CreateInventoryItemRequest(CamelBaseModel):
    sku: str = Field(min_length=1)
    name: str = Field(min_length=1)
    category: str = Field(min_length=1)
    unit: str = Field(min_length=1)
    current_stock: Decimal = Field(default=Decimal("0"), ge=0)
    min_stock: Decimal = Field(default=Decimal("0"), ge=0)
    max_stock: Decimal = Field(ge=0)
    cost_per_unit: Decimal = Field(default=Decimal("0"), ge=0)
    supplier: str | None = None
    storage_location: str | None = None
    barcode: str | None = None
    expiration_date: datetime | None = None


class UpdateInventoryItemRequest(CamelBaseModel):
    name: str | None = Field(default=None, min_length=1)
    category: str | None = Field(default=None, min_length=1)
    unit: str | None = Field(default=None, min_length=1)
    min_stock: Decimal | None = Field(default=None, ge=0)
    max_stock: Decimal | None = Field(default=None, ge=0)
    cost_per_unit: Decimal | None = Field(default=None, ge=0)
    supplier: str | None = None
    storage_location: str | None = None
    barcode: str | None = None
    expiration_date: datetime | None = None


class StockMovementRequest(CamelBaseModel):
    quantity: Decimal = Field(gt=0)
    notes: str | None = None
    employee_id: str | None = None
    reference: str | None = None


class RestockRequest(StockMovementRequest):
    unit_cost: Decimal | None = Field(default=None, ge=0)


class AdjustStockRequest(CamelBaseModel):
    new_stock: Decimal = Field(ge=0)
    notes: str | None = None
    employee_id: str | None = None
