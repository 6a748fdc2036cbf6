from __future__ import annotations

from sqlalchemy import Engine, select, update
from sqlalchemy.orm import Session

from barback.application.ports.repositories import TicketRepository
from barback.domain.common.ids import OrderId, OrganizationId, TicketId
from barback.domain.kitchen.entities import (
    ACTIVE_TICKET_STATUSES,
    KitchenTicket,
    RoutingPolicy,
    TicketItem,
    TicketStation,
    TicketStatus,
)
from barback.domain.order.entities import OrderType
from barback.infrastructure.db.models.order import KitchenTicketModel
from barback.infrastructure.db.repositories.conversions import aware
from barback.infrastructure.db.session import get_engine


class SqlAlchemyTicketRepository(TicketRepository):
    def __init__(self, engine: Engine | None = None) -> None:
        self._engine = engine or get_engine()

    def add(self, ticket: KitchenTicket) -> None:
        with Session(self._engine) as session:
            session.add(
                KitchenTicketModel(
                    id=str(ticket.ticket_id),
                    organization_id=str(ticket.organization_id),
                    order_id=str(ticket.order_id),
                    ticket_number=ticket.ticket_number,
                    order_number=ticket.order_number,
                    order_type=ticket.order_type.value,
                    routing=ticket.routing.value,
                    created_at=ticket.created_at,
                    table_number=ticket.table_number,
                    customer_name=ticket.customer_name,
                    **self._mutable_values(ticket),
                )
            )
            session.commit()

    def get(self, ticket_id: TicketId, organization_id: OrganizationId) -> KitchenTicket | None:
        statement = select(KitchenTicketModel).where(
            KitchenTicketModel.id == str(ticket_id),
            KitchenTicketModel.organization_id == str(organization_id),
        )
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        return self._to_domain(model) if model is not None else None

    def get_for_order(self, order_id: OrderId) -> KitchenTicket | None:
        statement = select(KitchenTicketModel).where(KitchenTicketModel.order_id == str(order_id))
        with Session(self._engine) as session:
            model = session.execute(statement).scalar_one_or_none()
        return self._to_domain(model) if model is not None else None

    def update(self, ticket: KitchenTicket) -> None:
        statement = (
            update(KitchenTicketModel)
            .where(KitchenTicketModel.id == str(ticket.ticket_id))
            .values(**self._mutable_values(ticket))
        )
        with Session(self._engine) as session:
            session.execute(statement)
            session.commit()

    def list_active(
        self,
        organization_id: OrganizationId,
        station: TicketStation | None,
    ) -> list[KitchenTicket]:
        statement = select(KitchenTicketModel).where(
            KitchenTicketModel.organization_id == str(organization_id),
            KitchenTicketModel.status.in_([status.value for status in ACTIVE_TICKET_STATUSES]),
        )
        if station is not None:
            statement = statement.where(KitchenTicketModel.station == station.value)
        statement = statement.order_by(
            KitchenTicketModel.created_at.asc(),
            KitchenTicketModel.ticket_number.asc(),
        )
        with Session(self._engine) as session:
            models = list(session.execute(statement).scalars().all())
        return [self._to_domain(model) for model in models]

    def _mutable_values(self, ticket: KitchenTicket) -> dict[str, object]:
        return {
            "station": ticket.station.value,
            "status": ticket.status.value,
            "estimated_ready_at": ticket.estimated_ready_at,
            "items": [
                {
                    "name": item.name,
                    "quantity": item.quantity,
                    "modifications": list(item.modifications),
                    "notes": item.notes,
                    "allergens": list(item.allergens),
                    "preparationTime": item.preparation_time,
                    "priority": item.priority,
                }
                for item in ticket.items
            ],
            "notes": ticket.notes,
            "kitchen_notes": ticket.kitchen_notes,
            "allergy_notes": ticket.allergy_notes,
            "prep_time_total": ticket.prep_time_total,
        }

    def _to_domain(self, model: KitchenTicketModel) -> KitchenTicket:
        return KitchenTicket(
            ticket_id=TicketId(model.id),
            organization_id=OrganizationId(model.organization_id),
            order_id=OrderId(model.order_id),
            ticket_number=model.ticket_number,
            order_number=model.order_number,
            station=TicketStation(model.station),
            status=TicketStatus(model.status),
            order_type=OrderType(model.order_type),
            created_at=aware(model.created_at),
            estimated_ready_at=aware(model.estimated_ready_at),
            items=[
                TicketItem(
                    name=item["name"],
                    quantity=int(item["quantity"]),
                    modifications=tuple(item.get("modifications") or ()),
                    notes=item.get("notes"),
                    allergens=tuple(item.get("allergens") or ()),
                    preparation_time=int(item.get("preparationTime") or 0),
                    priority=item.get("priority") or "NORMAL",
                )
                for item in model.items or ()
            ],
            table_number=model.table_number,
            customer_name=model.customer_name,
            notes=model.notes,
            kitchen_notes=model.kitchen_notes,
            allergy_notes=model.allergy_notes,
            prep_time_total=model.prep_time_total,
            routing=RoutingPolicy(model.routing),
        )
