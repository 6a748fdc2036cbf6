from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Engine, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from barback.application.ports.repositories import MenuRepository
from barback.domain.common.ids import MenuItemId, OrganizationId, Sku
from barback.domain.common.money import Money
from barback.domain.menu.entities import MenuCatalog, MenuItem, PosCategory, RecipeComponent
from barback.infrastructure.db.models.menu import MenuItemModel, MenuModel
from barback.infrastructure.db.repositories.conversions import aware
from barback.infrastructure.db.session import get_engine


class SqlAlchemyMenuRepository(MenuRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def get_catalog(self, organization_id: OrganizationId) -> MenuCatalog:
        items_statement = (
            select(MenuItemModel)
            .where(MenuItemModel.organization_id == str(organization_id))
            .order_by(MenuItemModel.created_at.asc(), MenuItemModel.id.asc())
        )
        with Session(self._engine) as session:
            menu_model = session.get(MenuModel, str(organization_id))
            item_models = list(session.execute(items_statement).scalars().all())

        if menu_model is None:
            return MenuCatalog(organization_id=organization_id, version=1, items=[])
        return MenuCatalog(
            organization_id=organization_id,
            version=menu_model.version,
            items=[self._to_domain(model) for model in item_models],
            updated_at=aware(menu_model.updated_at),
        )

    def get_item(self, item_id: MenuItemId, organization_id: OrganizationId) -> MenuItem | None:
        statement = select(MenuItemModel).where(
            MenuItemModel.id == str(item_id),
            MenuItemModel.organization_id == str(organization_id),
        )
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        return self._to_domain(model) if model is not None else None

    def save_item(self, item: MenuItem) -> int:
        now = datetime.now(timezone.utc)
        organization_id = str(item.organization_id)
        with Session(self._engine) as session:
            existing = session.get(MenuItemModel, str(item.item_id))
            if existing is None:
                session.add(self._to_model(item, now))
            else:
                self._copy_onto(existing, item)

            bumped = session.execute(
                update(MenuModel)
                .where(MenuModel.organization_id == organization_id)
                .values(version=MenuModel.version + 1, updated_at=now)
            )
            if bumped.rowcount == 0:
                session.add(MenuModel(organization_id=organization_id, version=1, updated_at=now))
            try:
                session.commit()
            except IntegrityError:
                # another writer created the menu row first
                session.rollback()
                return self.save_item(item)

            version = session.execute(
                select(MenuModel.version).where(MenuModel.organization_id == organization_id)
            ).scalar_one()
        return int(version)

    def _to_model(self, item: MenuItem, now: datetime) -> MenuItemModel:
        model = MenuItemModel(id=str(item.item_id), organization_id=str(item.organization_id), created_at=now)
        self._copy_onto(model, item)
        return model

    def _copy_onto(self, model: MenuItemModel, item: MenuItem) -> None:
        model.name = item.name
        model.category = item.category
        model.pos_category = item.pos_category.value
        model.description = item.description
        model.price_cents = item.price.amount_cents
        model.cost_cents = item.cost.amount_cents
        model.currency = item.price.currency
        model.preparation_time = item.preparation_time
        model.allergens = list(item.allergens)
        model.is_vegetarian = item.is_vegetarian
        model.is_vegan = item.is_vegan
        model.is_gluten_free = item.is_gluten_free
        model.alcohol_content = item.alcohol_content
        model.is_available = item.available
        model.recipe = [
            {"sku": str(component.sku), "quantity": str(component.quantity)}
            for component in item.recipe
        ]

    def _to_domain(self, model: MenuItemModel) -> MenuItem:
        return MenuItem(
            item_id=MenuItemId(model.id),
            organization_id=OrganizationId(model.organization_id),
            name=model.name,
            category=model.category,
            pos_category=PosCategory(model.pos_category),
            price=Money(amount_cents=model.price_cents, currency=model.currency),
            cost=Money(amount_cents=model.cost_cents, currency=model.currency),
            preparation_time=model.preparation_time,
            description=model.description,
            allergens=tuple(model.allergens or ()),
            is_vegetarian=model.is_vegetarian,
            is_vegan=model.is_vegan,
            is_gluten_free=model.is_gluten_free,
            alcohol_content=model.alcohol_content,
            available=model.is_available,
            recipe=recipe_from_json(model.recipe),
        )


def recipe_from_json(raw: list[dict[str, str]] | None) -> tuple[RecipeComponent, ...]:
    return tuple(
        RecipeComponent(sku=Sku(entry["sku"]), quantity=Decimal(str(entry["quantity"])))
        for entry in raw or ()
    )
