from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status

from barback.api.container import Container
from barback.api.deps import ContainerDep, OrganizationDep, TraceDep, recompute_alerts
from barback.application.dto.requests import (
    AdjustStockRequest,
    CreateInventoryItemRequest,
    RestockRequest,
    StockMovementRequest,
    UpdateInventoryItemRequest,
)
from barback.application.dto.responses import (
    Envelope,
    InventoryAlertListResponse,
    InventoryAnalyticsResponse,
    InventoryItemListResponse,
    InventoryItemResponse,
    InventoryMovementResponse,
    InventoryTransactionListResponse,
)
from barback.application.use_cases.inventory_ledger import (
    MAX_TRANSACTION_LIMIT,
    AddInventoryItem,
    GetInventoryItem,
    InventoryAnalyticsReport,
    ListInventoryAlerts,
    ListInventoryItems,
    ListInventoryTransactions,
    RecordStockMovement,
    UpdateInventoryItem,
)

router = APIRouter(prefix="/v1/inventory", tags=["inventory"])


def _movements(container: Container) -> RecordStockMovement:
    return RecordStockMovement(
        inventory_repository=container.inventory,
        organization_repository=container.organizations,
        recompute_alerts=recompute_alerts(container),
    )


@router.get("/items", response_model=Envelope[InventoryItemListResponse])
def list_inventory_items(
    container: ContainerDep,
    organization_id: OrganizationDep,
    category: str | None = None,
    q: str | None = None,
    low_stock: Annotated[bool, Query(alias="lowStock")] = False,
) -> Envelope[InventoryItemListResponse]:
    items = ListInventoryItems(inventory_repository=container.inventory).execute(
        organization_id,
        category=category,
        query=q,
        low_stock_only=low_stock,
    )
    return Envelope(data=items)


@router.post(
    "/items",
    response_model=Envelope[InventoryItemResponse],
    status_code=status.HTTP_201_CREATED,
)
def add_inventory_item(
    request_dto: CreateInventoryItemRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
    trace_ctx: TraceDep,
) -> Envelope[InventoryItemResponse]:
    use_case = AddInventoryItem(
        inventory_repository=container.inventory,
        organization_repository=container.organizations,
        recompute_alerts=recompute_alerts(container),
    )
    return Envelope(data=use_case.execute(organization_id, request_dto, trace_ctx), message="Item added")


@router.get("/items/{sku}", response_model=Envelope[InventoryItemResponse])
def get_inventory_item(
    sku: str,
    container: ContainerDep,
    organization_id: OrganizationDep,
) -> Envelope[InventoryItemResponse]:
    item = GetInventoryItem(inventory_repository=container.inventory).execute(organization_id, sku)
    return Envelope(data=item)


@router.patch("/items/{sku}", response_model=Envelope[InventoryItemResponse])
def update_inventory_item(
    sku: str,
    request_dto: UpdateInventoryItemRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
    trace_ctx: TraceDep,
) -> Envelope[InventoryItemResponse]:
    use_case = UpdateInventoryItem(
        inventory_repository=container.inventory,
        recompute_alerts=recompute_alerts(container),
    )
    return Envelope(data=use_case.execute(organization_id, sku, request_dto, trace_ctx))


@router.post("/items/{sku}/restock", response_model=Envelope[InventoryMovementResponse])
def restock_item(
    sku: str,
    request_dto: RestockRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
    trace_ctx: TraceDep,
) -> Envelope[InventoryMovementResponse]:
    movement = _movements(container).restock(organization_id, sku, request_dto, trace_ctx)
    return Envelope(data=movement, message="Stock received")


@router.post("/items/{sku}/deduct", response_model=Envelope[InventoryMovementResponse])
def deduct_item(
    sku: str,
    request_dto: StockMovementRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
    trace_ctx: TraceDep,
) -> Envelope[InventoryMovementResponse]:
    movement = _movements(container).deduct(organization_id, sku, request_dto, trace_ctx)
    return Envelope(data=movement)


@router.post("/items/{sku}/waste", response_model=Envelope[InventoryMovementResponse])
def record_waste(
    sku: str,
    request_dto: StockMovementRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
    trace_ctx: TraceDep,
) -> Envelope[InventoryMovementResponse]:
    movement = _movements(container).waste(organization_id, sku, request_dto, trace_ctx)
    return Envelope(data=movement, message="Waste recorded")


@router.post("/items/{sku}/adjust", response_model=Envelope[InventoryMovementResponse])
def adjust_item(
    sku: str,
    request_dto: AdjustStockRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
    trace_ctx: TraceDep,
) -> Envelope[InventoryMovementResponse]:
    movement = _movements(container).adjust(organization_id, sku, request_dto, trace_ctx)
    return Envelope(data=movement, message="Stock adjusted")


@router.get("/transactions", response_model=Envelope[InventoryTransactionListResponse])
def list_inventory_transactions(
    container: ContainerDep,
    organization_id: OrganizationDep,
    sku: str | None = None,
    limit: Annotated[int, Query(ge=1, le=MAX_TRANSACTION_LIMIT)] = 100,
) -> Envelope[InventoryTransactionListResponse]:
    transactions = ListInventoryTransactions(inventory_repository=container.inventory).execute(
        organization_id,
        sku=sku,
        limit=limit,
    )
    return Envelope(data=transactions)


@router.get("/alerts", response_model=Envelope[InventoryAlertListResponse])
def list_inventory_alerts(
    container: ContainerDep,
    organization_id: OrganizationDep,
    refresh: bool = False,
) -> Envelope[InventoryAlertListResponse]:
    if refresh:
        recompute_alerts(container).execute(organization_id)
    alerts = ListInventoryAlerts(alert_repository=container.alerts).execute(organization_id)
    return Envelope(data=alerts)


@router.get("/analytics", response_model=Envelope[InventoryAnalyticsResponse])
def inventory_analytics(
    container: ContainerDep,
    organization_id: OrganizationDep,
) -> Envelope[InventoryAnalyticsResponse]:
    report = InventoryAnalyticsReport(
        inventory_repository=container.inventory,
        organization_repository=container.organizations,
    )
    return Envelope(data=report.execute(organization_id))
