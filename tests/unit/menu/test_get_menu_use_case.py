from __future__ import annotations

import sys
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[3] / "src"))

from barback.application.dto.requests import CreateMenuItemRequest
from barback.application.use_cases.errors import MenuItemNotFoundError
from barback.application.use_cases.get_menu import (
    GetMenu,
    GetMenuItem,
    menu_payload_cache_key,
    menu_version_cache_key,
)
from barback.application.use_cases.manage_menu import AddMenuItem, SetMenuItemAvailability
from barback.domain.common.ids import MenuItemId, OrganizationId
from barback.domain.common.money import Money
from barback.domain.menu.entities import MenuCatalog, MenuItem, PosCategory
from barback.domain.table.entities import Organization

ORG = OrganizationId("org_001")


class FakeMenuRepository:
    def __init__(self, items: list[MenuItem]) -> None:
        self._items = {str(item.item_id): item for item in items}
        self.version = 1
        self.calls = 0

    def get_catalog(self, organization_id: OrganizationId) -> MenuCatalog:
        self.calls += 1
        return MenuCatalog(
            organization_id=organization_id,
            version=self.version,
            items=list(self._items.values()),
            updated_at=datetime.now(timezone.utc),
        )

    def get_item(self, item_id: MenuItemId, organization_id: OrganizationId) -> MenuItem | None:
        return self._items.get(str(item_id))

    def save_item(self, item: MenuItem) -> int:
        self._items[str(item.item_id)] = item
        self.version += 1
        return self.version


class FakeOrganizationRepository:
    def get(self, organization_id: OrganizationId) -> Organization | None:
        return Organization(
            organization_id=organization_id,
            name="Test Bar",
            tax_rate=Decimal("0.08875"),
            currency="USD",
        )


class FakeCacheStore:
    def __init__(self) -> None:
        self.values: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self.values.get(key)

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        self.values[key] = value


class BrokenCacheStore:
    def get(self, key: str) -> str | None:
        raise ConnectionError("cache down")

    def set(self, key: str, value: str, ttl_seconds: int) -> None:
        raise ConnectionError("cache down")


def _item(item_id: str, name: str, category: str, available: bool = True) -> MenuItem:
    return MenuItem(
        item_id=MenuItemId(item_id),
        organization_id=ORG,
        name=name,
        category=category,
        pos_category=PosCategory.DRINKS if "Cocktails" in category else PosCategory.FOOD,
        price=Money(amount_cents=1400, currency="USD"),
        cost=Money(amount_cents=300, currency="USD"),
        preparation_time=5,
        available=available,
    )


def _repository() -> FakeMenuRepository:
    return FakeMenuRepository(
        [
            _item("itm_001", "Classic Margarita", "Classic Cocktails"),
            _item("itm_002", "Smoked Wings", "Appetizers"),
            _item("itm_003", "Seasonal Pie", "Desserts", available=False),
        ]
    )


def test_get_menu_populates_cache_on_miss() -> None:
    repo = _repository()
    cache = FakeCacheStore()

    response = GetMenu(repository=repo, cache=cache).execute(ORG)

    assert repo.calls == 1
    assert cache.values[menu_version_cache_key(ORG)] == "1"
    assert menu_payload_cache_key(ORG, 1) in cache.values
    assert response.organizationId == "org_001"
    assert [item.itemId for item in response.items] == ["itm_001", "itm_002"]


def test_get_menu_uses_cache_when_warm() -> None:
    repo = _repository()
    cache = FakeCacheStore()
    GetMenu(repository=repo, cache=cache).execute(ORG)
    repo.calls = 0

    response = GetMenu(repository=repo, cache=cache).execute(ORG, include_unavailable=True)

    assert repo.calls == 0
    assert len(response.items) == 3


def test_get_menu_filters_by_pos_category_or_menu_category() -> None:
    use_case = GetMenu(repository=_repository(), cache=FakeCacheStore())

    drinks = use_case.execute(ORG, category="drinks")
    appetizers = use_case.execute(ORG, category="Appetizers")

    assert [item.itemId for item in drinks.items] == ["itm_001"]
    assert [item.itemId for item in appetizers.items] == ["itm_002"]
    assert appetizers.categories == ["Appetizers"]


def test_saving_an_item_bumps_the_cached_version() -> None:
    repo = _repository()
    cache = FakeCacheStore()
    GetMenu(repository=repo, cache=cache).execute(ORG)

    created = AddMenuItem(
        repository=repo,
        organization_repository=FakeOrganizationRepository(),
        cache=cache,
    ).execute(
        ORG,
        CreateMenuItemRequest(name="Espresso Martini", category="Signature Cocktails", price=Decimal("17")),
    )

    assert cache.values[menu_version_cache_key(ORG)] == "2"
    response = GetMenu(repository=repo, cache=cache).execute(ORG)
    assert created.itemId in [item.itemId for item in response.items]
    assert response.menuVersion == 2


def test_availability_toggles_when_no_value_given() -> None:
    repo = _repository()
    use_case = SetMenuItemAvailability(
        repository=repo,
        organization_repository=FakeOrganizationRepository(),
        cache=FakeCacheStore(),
    )

    toggled = use_case.execute(ORG, MenuItemId("itm_003"), None)
    forced = use_case.execute(ORG, MenuItemId("itm_003"), True)

    assert toggled.available is True
    assert forced.available is True


def test_get_menu_reads_repository_when_cache_is_down() -> None:
    repo = _repository()

    response = GetMenu(repository=repo, cache=BrokenCacheStore()).execute(ORG)

    assert repo.calls == 1
    assert len(response.items) == 2


def test_get_menu_item_raises_when_not_found() -> None:
    with pytest.raises(MenuItemNotFoundError):
        GetMenuItem(repository=_repository()).execute(ORG, MenuItemId("itm_404"))
