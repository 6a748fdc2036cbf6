from __future__ import annotations

import logging
from collections import defaultdict
from datetime import datetime, timezone
from uuid import uuid4

from barback.application.dto.requests import CreateLocationRequest, CreateTableRequest
from barback.application.dto.responses import (
    LocationResponse,
    TableListResponse,
    TableResponse,
)
from barback.application.mappers.table_mapper import to_location_response, to_table_response
from barback.application.ports.repositories import (
    DuplicateKeyError,
    LocationRepository,
    OrderRepository,
    TableRepository,
)
from barback.application.use_cases.errors import (
    DuplicateTableError,
    LocationNotFoundError,
    ValidationError,
)
from barback.domain.common.ids import LocationId, OrganizationId, TableId
from barback.domain.order.entities import Order
from barback.domain.table.entities import Location, Table

logger = logging.getLogger(__name__)


class ListLocations:
    def __init__(self, location_repository: LocationRepository) -> None:
        self._location_repository = location_repository

    def execute(self, organization_id: OrganizationId) -> list[LocationResponse]:
        locations = self._location_repository.list_for_organization(organization_id)
        return [to_location_response(location) for location in locations]


class CreateLocation:
    def __init__(self, location_repository: LocationRepository) -> None:
        self._location_repository = location_repository

    def execute(self, organization_id: OrganizationId, request_dto: CreateLocationRequest) -> LocationResponse:
        location = Location(
            location_id=LocationId(f"loc_{uuid4().hex[:12]}"),
            organization_id=organization_id,
            name=request_dto.name.strip(),
        )
        self._location_repository.add(location)
        logger.info(
            "location_created",
            extra={"organization_id": str(organization_id), "location_id": str(location.location_id)},
        )
        return to_location_response(location)


class ListTables:
    """Tables for an organization, each with the orders still open against it."""

    def __init__(
        self,
        table_repository: TableRepository,
        order_repository: OrderRepository,
    ) -> None:
        self._table_repository = table_repository
        self._order_repository = order_repository

    def execute(
        self,
        organization_id: OrganizationId,
        location_id: str | None = None,
    ) -> TableListResponse:
        location = LocationId(location_id) if location_id else None
        tables = self._table_repository.list_for_organization(organization_id, location)
        by_table: dict[TableId, list[Order]] = defaultdict(list)
        for order in self._order_repository.list_active(organization_id, location):
            if order.table_id is not None:
                by_table[order.table_id].append(order)
        return TableListResponse(
            tables=[to_table_response(table, by_table.get(table.table_id, [])) for table in tables]
        )


class CreateTable:
    def __init__(
        self,
        table_repository: TableRepository,
        location_repository: LocationRepository,
    ) -> None:
        self._table_repository = table_repository
        self._location_repository = location_repository

    def execute(self, organization_id: OrganizationId, request_dto: CreateTableRequest) -> TableResponse:
        location_id = LocationId(request_dto.location_id)
        if self._location_repository.get(location_id, organization_id) is None:
            raise LocationNotFoundError(f"location {location_id} not found")
        try:
            table = Table(
                table_id=TableId(f"tbl_{uuid4().hex[:12]}"),
                organization_id=organization_id,
                location_id=location_id,
                number=request_dto.number,
                capacity=request_dto.capacity,
                created_at=datetime.now(timezone.utc),
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        try:
            self._table_repository.add(table)
        except DuplicateKeyError as exc:
            raise DuplicateTableError(
                f"table {table.number} already exists at location {location_id}"
            ) from exc
        logger.info(
            "table_created",
            extra={"organization_id": str(organization_id), "table_id": str(table.table_id)},
        )
        return to_table_response(table, [])
