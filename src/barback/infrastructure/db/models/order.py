from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from barback.infrastructure.db.models.base import Base


class OrderModel(Base):
    __tablename__ = "orders"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    organization_id: Mapped[str] = mapped_column(String(50), nullable=False)
    location_id: Mapped[str] = mapped_column(String(50), nullable=False)
    order_number: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    order_type: Mapped[str] = mapped_column(String(20), nullable=False)
    priority: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    payment_status: Mapped[str] = mapped_column(String(20), nullable=False)
    tax_rate: Mapped[Decimal] = mapped_column(Numeric(6, 5), nullable=False)
    subtotal_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    tax_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    tip_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    estimated_ready_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    table_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    table_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    customer_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(20), nullable=True)
    employee_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    kitchen_notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    allergy_notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")

    lines: Mapped[list["OrderLineModel"]] = relationship(
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderLineModel.position",
    )

    __table_args__ = (
        Index("ix_orders_organization_created_at", "organization_id", "created_at"),
        Index("ix_orders_organization_status", "organization_id", "status"),
        Index("ix_orders_organization_closed_at", "organization_id", "closed_at"),
    )


class OrderLineModel(Base):
    __tablename__ = "order_lines"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    order_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    item_id: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    line_total_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    modifications: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    customizations: Mapped[dict[str, str]] = mapped_column(JSON, nullable=False, default=dict)
    preparation_time: Mapped[int] = mapped_column(Integer, nullable=False)
    allergens: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    pos_category: Mapped[str] = mapped_column(String(20), nullable=False)
    recipe: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    order: Mapped[OrderModel] = relationship(back_populates="lines")


class KitchenTicketModel(Base):
    __tablename__ = "kitchen_tickets"

    id: Mapped[str] = mapped_column(String(50), primary_key=True)
    organization_id: Mapped[str] = mapped_column(String(50), nullable=False)
    order_id: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    ticket_number: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    order_number: Mapped[int] = mapped_column(Integer, nullable=False)
    station: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False)
    order_type: Mapped[str] = mapped_column(String(20), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    estimated_ready_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    items: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    table_number: Mapped[int | None] = mapped_column(Integer, nullable=True)
    customer_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    kitchen_notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    allergy_notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    prep_time_total: Mapped[int] = mapped_column(Integer, nullable=False)
    routing: Mapped[str] = mapped_column(String(20), nullable=False, default="AUTO")

    __table_args__ = (
        Index("ix_kitchen_tickets_organization_status", "organization_id", "status", "created_at"),
    )


class SequenceModel(Base):
    __tablename__ = "sequences"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False)
