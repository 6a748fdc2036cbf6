from __future__ import annotations

import logging

from pydantic import ValidationError

from barback.application.dto.responses import MenuItemResponse, MenuResponse
from barback.application.mappers.menu_mapper import to_menu_item_response, to_menu_response
from barback.application.ports.cache import CacheStore
from barback.application.ports.repositories import MenuRepository
from barback.application.use_cases.errors import MenuItemNotFoundError
from barback.domain.common.ids import MenuItemId, OrganizationId
from barback.domain.menu.entities import PosCategory

logger = logging.getLogger(__name__)


def menu_version_cache_key(organization_id: OrganizationId) -> str:
    return f"menu:{organization_id}:version"


def menu_payload_cache_key(organization_id: OrganizationId, version: int) -> str:
    return f"menu:{organization_id}:v{version}"


def _filter_menu(
    menu: MenuResponse,
    category: str | None,
    include_unavailable: bool,
) -> MenuResponse:
    items = [item for item in menu.items if include_unavailable or item.available]
    if category:
        wanted = category.strip()
        if wanted.upper() in PosCategory.__members__:
            items = [item for item in items if item.posCategory == wanted.upper()]
        else:
            items = [item for item in items if item.category.lower() == wanted.lower()]

    categories: dict[str, None] = {}
    for item in items:
        categories.setdefault(item.category, None)
    return menu.model_copy(update={"items": items, "categories": list(categories)})


class GetMenu:
    def __init__(
        self,
        repository: MenuRepository,
        cache: CacheStore,
        ttl_seconds: int = 300,
    ) -> None:
        self._repository = repository
        self._cache = cache
        self._ttl_seconds = ttl_seconds

    def _cache_get(self, key: str) -> str | None:
        try:
            return self._cache.get(key)
        except Exception:
            logger.warning("menu_cache_read_failed", exc_info=True)
            return None

    def _cache_set(self, key: str, value: str) -> None:
        try:
            self._cache.set(key, value, ttl_seconds=self._ttl_seconds)
        except Exception:
            logger.warning("menu_cache_write_failed", exc_info=True)

    def _cached_menu(self, organization_id: OrganizationId) -> MenuResponse | None:
        cached_version = self._cache_get(menu_version_cache_key(organization_id))
        if cached_version is None:
            return None
        try:
            version = int(cached_version)
        except ValueError:
            return None

        payload = self._cache_get(menu_payload_cache_key(organization_id, version))
        if not payload:
            return None
        try:
            return MenuResponse.model_validate_json(payload)
        except ValidationError:
            return None

    def execute(
        self,
        organization_id: OrganizationId,
        category: str | None = None,
        include_unavailable: bool = False,
    ) -> MenuResponse:
        menu = self._cached_menu(organization_id)
        if menu is None:
            catalog = self._repository.get_catalog(organization_id)
            menu = to_menu_response(catalog, include_unavailable=True)
            self._cache_set(menu_version_cache_key(organization_id), str(menu.menuVersion))
            self._cache_set(
                menu_payload_cache_key(organization_id, menu.menuVersion),
                menu.model_dump_json(),
            )
        return _filter_menu(menu, category=category, include_unavailable=include_unavailable)


class GetMenuItem:
    def __init__(self, repository: MenuRepository) -> None:
        self._repository = repository

    def execute(self, organization_id: OrganizationId, item_id: MenuItemId) -> MenuItemResponse:
        item = self._repository.get_item(item_id, organization_id)
        if item is None:
            raise MenuItemNotFoundError(f"menu item {item_id} not found")
        return to_menu_item_response(item)


class SearchMenu:
    def __init__(self, repository: MenuRepository) -> None:
        self._repository = repository

    def execute(self, organization_id: OrganizationId, query: str) -> list[MenuItemResponse]:
        catalog = self._repository.get_catalog(organization_id)
        return [
            to_menu_item_response(item)
            for item in catalog.visible_items()
            if item.matches(query)
        ]
