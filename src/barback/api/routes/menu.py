from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status

from barback.api.container import Container
from barback.api.deps import ContainerDep, OrganizationDep
from barback.application.dto.requests import (
    CreateMenuItemRequest,
    SetAvailabilityRequest,
    UpdateMenuItemRequest,
    UpdatePriceRequest,
)
from barback.application.dto.responses import Envelope, MenuItemResponse, MenuResponse
from barback.application.use_cases.get_menu import GetMenu, GetMenuItem, SearchMenu
from barback.application.use_cases.manage_menu import (
    AddMenuItem,
    RemoveMenuItem,
    SetMenuItemAvailability,
    UpdateMenuItem,
    UpdateMenuItemPrice,
)
from barback.domain.common.ids import MenuItemId

router = APIRouter(prefix="/v1/menu", tags=["menu"])


def _writer_args(container: Container) -> dict[str, object]:
    return {
        "repository": container.menu,
        "organization_repository": container.organizations,
        "cache": container.cache,
        "ttl_seconds": container.menu_cache_ttl_seconds,
    }


@router.get("", response_model=Envelope[MenuResponse])
def get_menu(
    container: ContainerDep,
    organization_id: OrganizationDep,
    category: str | None = None,
    include_unavailable: Annotated[bool, Query(alias="includeUnavailable")] = False,
) -> Envelope[MenuResponse]:
    use_case = GetMenu(
        repository=container.menu,
        cache=container.cache,
        ttl_seconds=container.menu_cache_ttl_seconds,
    )
    return Envelope(
        data=use_case.execute(
            organization_id=organization_id,
            category=category,
            include_unavailable=include_unavailable,
        )
    )


@router.get("/search", response_model=Envelope[list[MenuItemResponse]])
def search_menu(
    container: ContainerDep,
    organization_id: OrganizationDep,
    q: Annotated[str, Query(min_length=1)],
) -> Envelope[list[MenuItemResponse]]:
    items = SearchMenu(repository=container.menu).execute(organization_id, q)
    return Envelope(data=items)


@router.get("/items/{item_id}", response_model=Envelope[MenuItemResponse])
def get_menu_item(
    item_id: str,
    container: ContainerDep,
    organization_id: OrganizationDep,
) -> Envelope[MenuItemResponse]:
    item = GetMenuItem(repository=container.menu).execute(organization_id, MenuItemId(item_id))
    return Envelope(data=item)


@router.post(
    "/items",
    response_model=Envelope[MenuItemResponse],
    status_code=status.HTTP_201_CREATED,
)
def add_menu_item(
    request_dto: CreateMenuItemRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
) -> Envelope[MenuItemResponse]:
    item = AddMenuItem(**_writer_args(container)).execute(organization_id, request_dto)
    return Envelope(data=item, message="Menu item created")


@router.patch("/items/{item_id}", response_model=Envelope[MenuItemResponse])
def update_menu_item(
    item_id: str,
    request_dto: UpdateMenuItemRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
) -> Envelope[MenuItemResponse]:
    item = UpdateMenuItem(**_writer_args(container)).execute(
        organization_id,
        MenuItemId(item_id),
        request_dto,
    )
    return Envelope(data=item, message="Menu item updated")


@router.put("/items/{item_id}/price", response_model=Envelope[MenuItemResponse])
def update_menu_item_price(
    item_id: str,
    request_dto: UpdatePriceRequest,
    container: ContainerDep,
    organization_id: OrganizationDep,
) -> Envelope[MenuItemResponse]:
    item = UpdateMenuItemPrice(**_writer_args(container)).execute(
        organization_id,
        MenuItemId(item_id),
        request_dto.price,
    )
    return Envelope(data=item, message="Price updated")


@router.post("/items/{item_id}/availability", response_model=Envelope[MenuItemResponse])
def set_menu_item_availability(
    item_id: str,
    container: ContainerDep,
    organization_id: OrganizationDep,
    request_dto: SetAvailabilityRequest | None = None,
) -> Envelope[MenuItemResponse]:
    item = SetMenuItemAvailability(**_writer_args(container)).execute(
        organization_id,
        MenuItemId(item_id),
        request_dto.available if request_dto is not None else None,
    )
    return Envelope(data=item)


@router.delete("/items/{item_id}", response_model=Envelope[MenuItemResponse])
def remove_menu_item(
    item_id: str,
    container: ContainerDep,
    organization_id: OrganizationDep,
) -> Envelope[MenuItemResponse]:
    item = RemoveMenuItem(**_writer_args(container)).execute(organization_id, MenuItemId(item_id))
    return Envelope(data=item, message="Menu item removed")
