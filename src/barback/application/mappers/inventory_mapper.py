from __future__ import annotations

from barback.application.dto.responses import (
    InventoryAlertResponse,
    InventoryAnalyticsResponse,
    InventoryItemResponse,
    InventoryTransactionResponse,
)
from barback.application.mappers.common import to_money_response
from barback.domain.inventory.entities import (
    InventoryAlert,
    InventoryAnalytics,
    InventoryItem,
    InventoryTransaction,
)


def to_inventory_item_response(item: InventoryItem) -> InventoryItemResponse:
    return InventoryItemResponse(
        itemId=str(item.item_id),
        sku=str(item.sku),
        name=item.name,
        category=item.category,
        unit=item.unit,
        currentStock=item.current_stock,
        minStock=item.min_stock,
        maxStock=item.max_stock,
        costPerUnit=to_money_response(item.cost_per_unit),
        stockValue=to_money_response(item.stock_value),
        supplier=item.supplier,
        storageLocation=item.storage_location,
        barcode=item.barcode,
        expirationDate=item.expiration_date,
        updatedAt=item.updated_at,
    )


def to_transaction_response(transaction: InventoryTransaction) -> InventoryTransactionResponse:
    return InventoryTransactionResponse(
        transactionId=transaction.transaction_id,
        sku=str(transaction.sku),
        type=transaction.transaction_type.value,
        quantity=transaction.quantity,
        previousStock=transaction.previous_stock,
        newStock=transaction.new_stock,
        cost=to_money_response(transaction.cost),
        notes=transaction.notes,
        employeeId=transaction.employee_id,
        reference=transaction.reference,
        createdAt=transaction.created_at,
    )


def to_alert_response(alert: InventoryAlert) -> InventoryAlertResponse:
    return InventoryAlertResponse(
        alertId=alert.alert_id,
        sku=str(alert.sku),
        itemName=alert.item_name,
        type=alert.alert_type.value,
        severity=alert.severity.value,
        message=alert.message,
        createdAt=alert.created_at,
    )


def to_analytics_response(analytics: InventoryAnalytics) -> InventoryAnalyticsResponse:
    return InventoryAnalyticsResponse(
        totalItems=analytics.total_items,
        lowStockItems=analytics.low_stock_items,
        expiringItems=analytics.expiring_items,
        totalValue=to_money_response(analytics.total_value),
        averageValue=to_money_response(analytics.average_value),
        categories=analytics.categories,
    )
