from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from uuid import uuid4

from barback.application.dto.requests import (
    CreateMenuItemRequest,
    RecipeComponentRequest,
    UpdateMenuItemRequest,
)
from barback.application.dto.responses import MenuItemResponse
from barback.application.mappers.menu_mapper import to_menu_item_response
from barback.application.ports.cache import CacheStore
from barback.application.ports.repositories import MenuRepository, OrganizationRepository
from barback.application.use_cases.errors import MenuItemNotFoundError, ValidationError
from barback.application.use_cases.get_menu import menu_version_cache_key
from barback.application.use_cases.organization import load_organization
from barback.domain.common.ids import MenuItemId, OrganizationId, Sku
from barback.domain.common.money import Money
from barback.domain.menu.entities import MenuItem, PosCategory, RecipeComponent, pos_category_for

logger = logging.getLogger(__name__)


def _recipe(components: list[RecipeComponentRequest]) -> tuple[RecipeComponent, ...]:
    return tuple(
        RecipeComponent(sku=Sku(component.sku), quantity=component.quantity)
        for component in components
    )


def _pos_category(raw: str | None, category: str) -> PosCategory:
    if raw is None:
        return pos_category_for(category)
    try:
        return PosCategory(raw.upper())
    except ValueError as exc:
        raise ValidationError(
            f"unknown pos category: {raw}",
            details={"allowed": [member.value for member in PosCategory]},
        ) from exc


class _MenuWriter:
    def __init__(
        self,
        repository: MenuRepository,
        organization_repository: OrganizationRepository,
        cache: CacheStore,
        ttl_seconds: int = 300,
    ) -> None:
        self._repository = repository
        self._organization_repository = organization_repository
        self._cache = cache
        self._ttl_seconds = ttl_seconds

    def _load(self, organization_id: OrganizationId, item_id: MenuItemId) -> MenuItem:
        item = self._repository.get_item(item_id, organization_id)
        if item is None:
            raise MenuItemNotFoundError(f"menu item {item_id} not found")
        return item

    def _save(self, item: MenuItem) -> MenuItemResponse:
        version = self._repository.save_item(item)
        try:
            self._cache.set(
                menu_version_cache_key(item.organization_id),
                str(version),
                ttl_seconds=self._ttl_seconds,
            )
        except Exception:
            # readers fall back to the repository once the cached version expires
            logger.warning("menu_cache_version_bump_failed", exc_info=True)
        logger.info(
            "menu_item_saved",
            extra={"organization_id": str(item.organization_id), "item_id": str(item.item_id)},
        )
        return to_menu_item_response(item)


class AddMenuItem(_MenuWriter):
    def execute(
        self,
        organization_id: OrganizationId,
        request_dto: CreateMenuItemRequest,
    ) -> MenuItemResponse:
        currency = load_organization(self._organization_repository, organization_id).currency
        try:
            item = MenuItem(
                item_id=MenuItemId(f"itm_{uuid4().hex[:12]}"),
                organization_id=organization_id,
                name=request_dto.name,
                category=request_dto.category,
                pos_category=_pos_category(request_dto.pos_category, request_dto.category),
                price=Money.from_decimal(request_dto.price, currency),
                cost=Money.from_decimal(request_dto.cost, currency),
                preparation_time=request_dto.preparation_time,
                description=request_dto.description,
                allergens=tuple(request_dto.allergens),
                is_vegetarian=request_dto.is_vegetarian,
                is_vegan=request_dto.is_vegan,
                is_gluten_free=request_dto.is_gluten_free,
                alcohol_content=request_dto.alcohol_content,
                available=request_dto.available,
                recipe=_recipe(request_dto.recipe),
            )
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        return self._save(item)


class UpdateMenuItem(_MenuWriter):
    def execute(
        self,
        organization_id: OrganizationId,
        item_id: MenuItemId,
        request_dto: UpdateMenuItemRequest,
    ) -> MenuItemResponse:
        item = self._load(organization_id, item_id)
        changes = request_dto.model_dump(exclude_unset=True)
        updates: dict[str, object] = {}
        for field_name in (
            "name",
            "category",
            "preparation_time",
            "description",
            "is_vegetarian",
            "is_vegan",
            "is_gluten_free",
            "alcohol_content",
        ):
            if field_name in changes and changes[field_name] is not None:
                updates[field_name] = changes[field_name]
        if request_dto.price is not None:
            updates["price"] = Money.from_decimal(request_dto.price, item.price.currency)
        if request_dto.cost is not None:
            updates["cost"] = Money.from_decimal(request_dto.cost, item.price.currency)
        if request_dto.allergens is not None:
            updates["allergens"] = tuple(request_dto.allergens)
        if request_dto.recipe is not None:
            updates["recipe"] = _recipe(request_dto.recipe)

        try:
            updated = replace(item, **updates)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        return self._save(updated)


class UpdateMenuItemPrice(_MenuWriter):
    def execute(
        self,
        organization_id: OrganizationId,
        item_id: MenuItemId,
        price: Decimal,
    ) -> MenuItemResponse:
        item = self._load(organization_id, item_id)
        try:
            updated = item.with_price(Money.from_decimal(price, item.price.currency))
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        return self._save(updated)


class SetMenuItemAvailability(_MenuWriter):
    def execute(
        self,
        organization_id: OrganizationId,
        item_id: MenuItemId,
        available: bool | None = None,
    ) -> MenuItemResponse:
        item = self._load(organization_id, item_id)
        target = (not item.available) if available is None else available
        return self._save(item.with_availability(target))


class RemoveMenuItem(_MenuWriter):
    """Soft delete: historical orders keep referencing the item."""

    def execute(self, organization_id: OrganizationId, item_id: MenuItemId) -> MenuItemResponse:
        item = self._load(organization_id, item_id)
        return self._save(item.with_availability(False))
