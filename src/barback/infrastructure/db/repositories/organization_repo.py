from __future__ import annotations

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from barback.application.ports.repositories import (
    DuplicateKeyError,
    LocationRepository,
    OrganizationRepository,
    TableRepository,
)
from barback.domain.common.ids import LocationId, OrganizationId, TableId
from barback.domain.table.entities import Location, Organization, Table
from barback.infrastructure.db.models.organization import (
    LocationModel,
    OrganizationModel,
    TableModel,
)
from barback.infrastructure.db.repositories.conversions import aware
from barback.infrastructure.db.session import get_engine


class SqlAlchemyOrganizationRepository(OrganizationRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def get(self, organization_id: OrganizationId) -> Organization | None:
        with Session(self._engine) as session:
            model = session.get(OrganizationModel, str(organization_id))
        if model is None:
            return None
        return Organization(
            organization_id=OrganizationId(model.id),
            name=model.name,
            tax_rate=model.tax_rate,
            currency=model.currency,
        )

    def upsert(self, organization: Organization) -> None:
        with Session(self._engine) as session:
            session.merge(
                OrganizationModel(
                    id=str(organization.organization_id),
                    name=organization.name,
                    tax_rate=organization.tax_rate,
                    currency=organization.currency,
                )
            )
            session.commit()


class SqlAlchemyLocationRepository(LocationRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def get(self, location_id: LocationId, organization_id: OrganizationId) -> Location | None:
        statement = select(LocationModel).where(
            LocationModel.id == str(location_id),
            LocationModel.organization_id == str(organization_id),
        )
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        return self._to_domain(model) if model is not None else None

    def add(self, location: Location) -> None:
        with Session(self._engine) as session:
            session.add(
                LocationModel(
                    id=str(location.location_id),
                    organization_id=str(location.organization_id),
                    name=location.name,
                )
            )
            session.commit()

    def list_for_organization(self, organization_id: OrganizationId) -> list[Location]:
        statement = (
            select(LocationModel)
            .where(LocationModel.organization_id == str(organization_id))
            .order_by(LocationModel.name.asc(), LocationModel.id.asc())
        )
        with Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
        return [self._to_domain(model) for model in models]

    def _to_domain(self, model: LocationModel) -> Location:
        return Location(
            location_id=LocationId(model.id),
            organization_id=OrganizationId(model.organization_id),
            name=model.name,
        )


class SqlAlchemyTableRepository(TableRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def get(self, table_id: TableId, organization_id: OrganizationId) -> Table | None:
        statement = select(TableModel).where(
            TableModel.id == str(table_id),
            TableModel.organization_id == str(organization_id),
        )
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        return self._to_domain(model) if model is not None else None

    def add(self, table: Table) -> None:
        with Session(self._engine) as session:
            session.add(
                TableModel(
                    id=str(table.table_id),
                    organization_id=str(table.organization_id),
                    location_id=str(table.location_id),
                    number=table.number,
                    capacity=table.capacity,
                    created_at=table.created_at,
                )
            )
            try:
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise DuplicateKeyError(
                    f"table {table.number} already exists at location {table.location_id}"
                ) from exc

    def list_for_organization(
        self,
        organization_id: OrganizationId,
        location_id: LocationId | None,
    ) -> list[Table]:
        statement = select(TableModel).where(TableModel.organization_id == str(organization_id))
        if location_id is not None:
            statement = statement.where(TableModel.location_id == str(location_id))
        statement = statement.order_by(TableModel.location_id.asc(), TableModel.number.asc())
        with Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
        return [self._to_domain(model) for model in models]

    def _to_domain(self, model: TableModel) -> Table:
        return Table(
            table_id=TableId(model.id),
            organization_id=OrganizationId(model.organization_id),
            location_id=LocationId(model.location_id),
            number=model.number,
            capacity=model.capacity,
            created_at=aware(model.created_at),
        )
