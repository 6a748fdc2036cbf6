from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from barback.application.dto.requests import (
    AdjustStockRequest,
    CreateInventoryItemRequest,
    RestockRequest,
    StockMovementRequest,
    UpdateInventoryItemRequest,
)
from barback.application.dto.responses import (
    InventoryAlertListResponse,
    InventoryAnalyticsResponse,
    InventoryItemListResponse,
    InventoryItemResponse,
    InventoryMovementResponse,
    InventoryTransactionListResponse,
)
from barback.application.mappers.event_envelope import serialize_alerts_event
from barback.application.mappers.inventory_mapper import (
    to_alert_response,
    to_analytics_response,
    to_inventory_item_response,
    to_transaction_response,
)
from barback.application.metrics.pos_metrics import (
    record_active_alerts,
    record_inventory_transactions,
)
from barback.application.ports.publisher import EventPublisher
from barback.application.ports.repositories import (
    AlertRepository,
    DuplicateKeyError,
    InventoryRepository,
    OrganizationRepository,
)
from barback.application.use_cases.context import NO_TRACE, TraceContext, publish_event
from barback.application.use_cases.errors import (
    DuplicateSkuError,
    InventoryItemNotFoundError,
    ValidationError,
)
from barback.application.use_cases.organization import load_organization
from barback.domain.common.ids import InventoryItemId, OrganizationId, Sku
from barback.domain.common.money import Money
from barback.domain.inventory.entities import (
    AlertType,
    InventoryAlert,
    InventoryItem,
    StockMovement,
    TransactionType,
    derive_alerts,
    summarize_inventory,
)

logger = logging.getLogger(__name__)

MAX_TRANSACTION_LIMIT = 500
_NULLABLE_FIELDS = frozenset({"supplier", "storage_location", "barcode", "expiration_date"})


class RecomputeAlerts:
    """Rebuilds an organization's alert set from its current stock levels.

    Alerts are derived state: every stock change is followed by a full
    recompute, so the stored set never carries stale entries.
    """

    def __init__(
        self,
        inventory_repository: InventoryRepository,
        alert_repository: AlertRepository,
        publisher: EventPublisher,
    ) -> None:
        self._inventory_repository = inventory_repository
        self._alert_repository = alert_repository
        self._publisher = publisher

    def execute(
        self,
        organization_id: OrganizationId,
        trace_ctx: TraceContext = NO_TRACE,
        now: datetime | None = None,
    ) -> list[InventoryAlert]:
        current = now or datetime.now(timezone.utc)
        previous = {alert.alert_id for alert in self._alert_repository.list_alerts(organization_id)}
        alerts = derive_alerts(self._inventory_repository.list_items(organization_id), current)
        self._alert_repository.replace_all(organization_id, alerts)
        record_active_alerts(str(organization_id), alerts)

        for alert in alerts:
            if alert.alert_type == AlertType.LOW_STOCK and alert.alert_id not in previous:
                logger.warning(
                    "low_stock_alert",
                    extra={"organization_id": str(organization_id), "sku": str(alert.sku)},
                )

        if previous != {alert.alert_id for alert in alerts}:
            publish_event(
                self._publisher,
                str(organization_id),
                serialize_alerts_event(
                    occurred_at=current,
                    organization_id=str(organization_id),
                    alerts=alerts,
                    trace_id=trace_ctx.trace_id,
                    request_id=trace_ctx.request_id,
                ),
            )
        return alerts


class RecordStockMovement:
    def __init__(
        self,
        inventory_repository: InventoryRepository,
        organization_repository: OrganizationRepository,
        recompute_alerts: RecomputeAlerts,
    ) -> None:
        self._inventory_repository = inventory_repository
        self._organization_repository = organization_repository
        self._recompute_alerts = recompute_alerts

    def restock(
        self,
        organization_id: OrganizationId,
        sku: str,
        request_dto: RestockRequest,
        trace_ctx: TraceContext = NO_TRACE,
    ) -> InventoryMovementResponse:
        unit_cost = None
        if request_dto.unit_cost is not None:
            currency = load_organization(self._organization_repository, organization_id).currency
            unit_cost = Money.from_decimal(request_dto.unit_cost, currency)
        return self._apply(
            organization_id,
            Sku(sku),
            TransactionType.RESTOCK,
            request_dto.quantity,
            request_dto,
            trace_ctx,
            unit_cost=unit_cost,
        )

    def deduct(
        self,
        organization_id: OrganizationId,
        sku: str,
        request_dto: StockMovementRequest,
        trace_ctx: TraceContext = NO_TRACE,
    ) -> InventoryMovementResponse:
        return self._apply(
            organization_id, Sku(sku), TransactionType.SALE, request_dto.quantity, request_dto, trace_ctx
        )

    def waste(
        self,
        organization_id: OrganizationId,
        sku: str,
        request_dto: StockMovementRequest,
        trace_ctx: TraceContext = NO_TRACE,
    ) -> InventoryMovementResponse:
        return self._apply(
            organization_id, Sku(sku), TransactionType.WASTE, request_dto.quantity, request_dto, trace_ctx
        )

    def adjust(
        self,
        organization_id: OrganizationId,
        sku: str,
        request_dto: AdjustStockRequest,
        trace_ctx: TraceContext = NO_TRACE,
    ) -> InventoryMovementResponse:
        return self._apply(
            organization_id,
            Sku(sku),
            TransactionType.ADJUSTMENT,
            request_dto.new_stock,
            request_dto,
            trace_ctx,
        )

    def _apply(
        self,
        organization_id: OrganizationId,
        sku: Sku,
        movement_type: TransactionType,
        quantity: Decimal,
        request_dto: StockMovementRequest | AdjustStockRequest,
        trace_ctx: TraceContext,
        unit_cost: Money | None = None,
    ) -> InventoryMovementResponse:
        if self._inventory_repository.get(sku, organization_id) is None:
            raise InventoryItemNotFoundError(f"inventory item {sku} not found")
        try:
            movement = StockMovement(
                sku=sku,
                movement_type=movement_type,
                quantity=quantity,
                unit_cost=unit_cost,
                notes=request_dto.notes,
                employee_id=request_dto.employee_id,
                reference=getattr(request_dto, "reference", None),
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        now = datetime.now(timezone.utc)
        transactions = self._inventory_repository.apply_movements(organization_id, [movement], now)
        if not transactions:
            raise InventoryItemNotFoundError(f"inventory item {sku} not found")
        transaction = transactions[0]
        record_inventory_transactions(str(organization_id), transactions)
        logger.info(
            "inventory_movement_recorded",
            extra={
                "organization_id": str(organization_id),
                "sku": str(sku),
                "movement_type": movement_type.value,
                "new_stock": str(transaction.new_stock),
            },
        )
        self._recompute_alerts.execute(organization_id, trace_ctx, now=now)

        item = self._inventory_repository.get(sku, organization_id)
        if item is None:
            raise InventoryItemNotFoundError(f"inventory item {sku} not found")
        return InventoryMovementResponse(
            item=to_inventory_item_response(item),
            transaction=to_transaction_response(transaction),
        )


class AddInventoryItem:
    def __init__(
        self,
        inventory_repository: InventoryRepository,
        organization_repository: OrganizationRepository,
        recompute_alerts: RecomputeAlerts,
    ) -> None:
        self._inventory_repository = inventory_repository
        self._organization_repository = organization_repository
        self._recompute_alerts = recompute_alerts

    def execute(
        self,
        organization_id: OrganizationId,
        request_dto: CreateInventoryItemRequest,
        trace_ctx: TraceContext = NO_TRACE,
    ) -> InventoryItemResponse:
        currency = load_organization(self._organization_repository, organization_id).currency
        now = datetime.now(timezone.utc)
        if request_dto.min_stock > request_dto.max_stock:
            raise ValidationError("minStock cannot exceed maxStock")
        try:
            item = InventoryItem(
                item_id=InventoryItemId(f"inv_{uuid4().hex[:12]}"),
                organization_id=organization_id,
                sku=Sku(request_dto.sku.strip()),
                name=request_dto.name.strip(),
                category=request_dto.category.strip(),
                unit=request_dto.unit.strip(),
                current_stock=request_dto.current_stock,
                min_stock=request_dto.min_stock,
                max_stock=request_dto.max_stock,
                cost_per_unit=Money.from_decimal(request_dto.cost_per_unit, currency),
                updated_at=now,
                supplier=request_dto.supplier,
                storage_location=request_dto.storage_location,
                barcode=request_dto.barcode,
                expiration_date=request_dto.expiration_date,
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc

        try:
            self._inventory_repository.add(item)
        except DuplicateKeyError as exc:
            raise DuplicateSkuError(f"sku {item.sku} already exists") from exc

        logger.info(
            "inventory_item_added",
            extra={"organization_id": str(organization_id), "sku": str(item.sku)},
        )
        self._recompute_alerts.execute(organization_id, trace_ctx, now=now)
        return to_inventory_item_response(item)


class UpdateInventoryItem:
    def __init__(
        self,
        inventory_repository: InventoryRepository,
        recompute_alerts: RecomputeAlerts,
    ) -> None:
        self._inventory_repository = inventory_repository
        self._recompute_alerts = recompute_alerts

    def execute(
        self,
        organization_id: OrganizationId,
        sku: str,
        request_dto: UpdateInventoryItemRequest,
        trace_ctx: TraceContext = NO_TRACE,
    ) -> InventoryItemResponse:
        item = self._inventory_repository.get(Sku(sku), organization_id)
        if item is None:
            raise InventoryItemNotFoundError(f"inventory item {sku} not found")

        changes = request_dto.model_dump(exclude_unset=True)
        if "cost_per_unit" in changes:
            cost = changes.pop("cost_per_unit")
            if cost is not None:
                changes["cost_per_unit"] = Money.from_decimal(cost, item.cost_per_unit.currency)
        now = datetime.now(timezone.utc)
        # optional descriptors may be cleared with null; required fields may not
        changes = {
            key: value
            for key, value in changes.items()
            if value is not None or key in _NULLABLE_FIELDS
        }
        try:
            updated = replace(item, **changes, updated_at=now)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        if updated.min_stock > updated.max_stock:
            raise ValidationError("minStock cannot exceed maxStock")

        self._inventory_repository.update(updated)
        self._recompute_alerts.execute(organization_id, trace_ctx, now=now)
        return to_inventory_item_response(updated)


class GetInventoryItem:
    def __init__(self, inventory_repository: InventoryRepository) -> None:
        self._inventory_repository = inventory_repository

    def execute(self, organization_id: OrganizationId, sku: str) -> InventoryItemResponse:
        item = self._inventory_repository.get(Sku(sku), organization_id)
        if item is None:
            raise InventoryItemNotFoundError(f"inventory item {sku} not found")
        return to_inventory_item_response(item)


class ListInventoryItems:
    def __init__(self, inventory_repository: InventoryRepository) -> None:
        self._inventory_repository = inventory_repository

    def execute(
        self,
        organization_id: OrganizationId,
        category: str | None = None,
        query: str | None = None,
        low_stock_only: bool = False,
    ) -> InventoryItemListResponse:
        items = self._inventory_repository.list_items(organization_id)
        if category:
            items = [item for item in items if item.category.lower() == category.lower()]
        if query:
            items = [item for item in items if item.matches(query)]
        if low_stock_only:
            items = [item for item in items if item.is_low_stock]
        return InventoryItemListResponse(items=[to_inventory_item_response(item) for item in items])


class ListInventoryTransactions:
    def __init__(self, inventory_repository: InventoryRepository) -> None:
        self._inventory_repository = inventory_repository

    def execute(
        self,
        organization_id: OrganizationId,
        sku: str | None = None,
        limit: int = 100,
    ) -> InventoryTransactionListResponse:
        if limit < 1 or limit > MAX_TRANSACTION_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_TRANSACTION_LIMIT}")
        transactions = self._inventory_repository.list_transactions(
            organization_id,
            Sku(sku) if sku else None,
            limit,
        )
        return InventoryTransactionListResponse(
            transactions=[to_transaction_response(txn) for txn in transactions]
        )


class ListInventoryAlerts:
    def __init__(self, alert_repository: AlertRepository) -> None:
        self._alert_repository = alert_repository

    def execute(self, organization_id: OrganizationId) -> InventoryAlertListResponse:
        alerts = self._alert_repository.list_alerts(organization_id)
        return InventoryAlertListResponse(alerts=[to_alert_response(alert) for alert in alerts])


class InventoryAnalyticsReport:
    def __init__(
        self,
        inventory_repository: InventoryRepository,
        organization_repository: OrganizationRepository,
    ) -> None:
        self._inventory_repository = inventory_repository
        self._organization_repository = organization_repository

    def execute(self, organization_id: OrganizationId) -> InventoryAnalyticsResponse:
        currency = load_organization(self._organization_repository, organization_id).currency
        analytics = summarize_inventory(
            self._inventory_repository.list_items(organization_id),
            datetime.now(timezone.utc),
            currency,
        )
        return to_analytics_response(analytics)
