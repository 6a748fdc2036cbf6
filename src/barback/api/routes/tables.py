from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status

from barback.api.deps import ContainerDep, OrganizationDep
from barback.application.dto.requests import CreateLocationRequest, CreateTableRequest
from barback.application.dto.responses import (
    Envelope,
    LocationResponse,
    TableListResponse,
    TableResponse,
)
from barback.application.use_cases.tables import (
    CreateLocation,
    CreateTable,
    ListLocations,
    ListTables,
)

router = APIRouter(prefix="/v1", tags=["tables"])


@router.get("/locations", response_model=Envelope[list[LocationResponse]])
def list_locations(
    container: ContainerDep,
    organization_id: OrganizationDep,
) -> Envelope[list[LocationResponse]]:
    return Envelope(data=ListLocations(location_repository=container.locations).execute(organization_id))


@router.post(
    "/locations",
    response_model=Envelope[LocationResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_location(
    request_dto: CreateLocationRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
) -> Envelope[LocationResponse]:
    location = CreateLocation(location_repository=container.locations).execute(organization_id, request_dto)
    return Envelope(data=location, message="Location created")


@router.get("/tables", response_model=Envelope[TableListResponse])
def list_tables(
    container: ContainerDep,
    organization_id: OrganizationDep,
    location_id: Annotated[str | None, Query(alias="locationId")] = None,
) -> Envelope[TableListResponse]:
    use_case = ListTables(table_repository=container.tables, order_repository=container.orders)
    return Envelope(data=use_case.execute(organization_id, location_id=location_id))


@router.post(
    "/tables",
    response_model=Envelope[TableResponse],
    status_code=status.HTTP_201_CREATED,
)
def create_table(
    request_dto: CreateTableRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
) -> Envelope[TableResponse]:
    use_case = CreateTable(table_repository=container.tables, location_repository=container.locations)
    return Envelope(data=use_case.execute(organization_id, request_dto), message="Table created")
