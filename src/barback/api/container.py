from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from barback.application.ports.cache import CacheStore
from barback.application.ports.payment_gateway import PaymentGateway
from barback.application.ports.publisher import EventPublisher
from barback.application.ports.repositories import (
    AlertRepository,
    CartRepository,
    InventoryRepository,
    LocationRepository,
    MenuRepository,
    OrderRepository,
    OrganizationRepository,
    PaymentRepository,
    SequenceRepository,
    SettlementRepository,
    TableRepository,
    TicketRepository,
)
from barback.infrastructure.cache.cache_store import InMemoryCacheStore, RedisCacheStore
from barback.infrastructure.cache.cart_store import RedisCartRepository
from barback.infrastructure.db.repositories.inventory_repo import (
    SqlAlchemyAlertRepository,
    SqlAlchemyInventoryRepository,
)
from barback.infrastructure.db.repositories.menu_repo import SqlAlchemyMenuRepository
from barback.infrastructure.db.repositories.order_repo import SqlAlchemyOrderRepository
from barback.infrastructure.db.repositories.organization_repo import (
    SqlAlchemyLocationRepository,
    SqlAlchemyOrganizationRepository,
    SqlAlchemyTableRepository,
)
from barback.infrastructure.db.repositories.payment_repo import SqlAlchemyPaymentRepository
from barback.infrastructure.db.repositories.sequence_repo import SqlAlchemySequenceRepository
from barback.infrastructure.db.repositories.settlement_repo import SqlAlchemySettlementRepository
from barback.infrastructure.db.repositories.ticket_repo import SqlAlchemyTicketRepository
from barback.infrastructure.db.session import get_engine
from barback.infrastructure.memory import repositories as memory
from barback.infrastructure.memory.store import InMemoryStore
from barback.infrastructure.messaging.redis_publisher import LoggingEventPublisher, RedisEventPublisher
from barback.infrastructure.payments.simulated_gateway import SimulatedPaymentGateway

logger = logging.getLogger(__name__)

MEMORY_BACKEND = "memory"
SQL_BACKEND = "sql"


@dataclass
class Container:
    """Adapters shared by every request; use cases are built per request from these."""

    backend: str
    organizations: OrganizationRepository
    locations: LocationRepository
    tables: TableRepository
    menu: MenuRepository
    carts: CartRepository
    orders: OrderRepository
    tickets: TicketRepository
    inventory: InventoryRepository
    alerts: AlertRepository
    payments: PaymentRepository
    sequences: SequenceRepository
    settlement: SettlementRepository
    cache: CacheStore
    publisher: EventPublisher
    gateway: PaymentGateway
    menu_cache_ttl_seconds: int = 300


def storage_backend() -> str:
    return os.getenv("STORAGE_BACKEND", MEMORY_BACKEND).lower()


def menu_cache_ttl_seconds() -> int:
    return int(os.getenv("MENU_CACHE_TTL_SECONDS", "300"))


def build_memory_container(gateway: PaymentGateway | None = None) -> Container:
    store = InMemoryStore()
    return Container(
        backend=MEMORY_BACKEND,
        organizations=memory.InMemoryOrganizationRepository(store),
        locations=memory.InMemoryLocationRepository(store),
        tables=memory.InMemoryTableRepository(store),
        menu=memory.InMemoryMenuRepository(store),
        carts=memory.InMemoryCartRepository(store),
        orders=memory.InMemoryOrderRepository(store),
        tickets=memory.InMemoryTicketRepository(store),
        inventory=memory.InMemoryInventoryRepository(store),
        alerts=memory.InMemoryAlertRepository(store),
        payments=memory.InMemoryPaymentRepository(store),
        sequences=memory.InMemorySequenceRepository(store),
        settlement=memory.InMemorySettlementRepository(store),
        cache=InMemoryCacheStore(),
        publisher=LoggingEventPublisher(),
        gateway=gateway or SimulatedPaymentGateway(),
        menu_cache_ttl_seconds=menu_cache_ttl_seconds(),
    )


def build_sql_container(gateway: PaymentGateway | None = None) -> Container:
    engine = get_engine()
    return Container(
        backend=SQL_BACKEND,
        organizations=SqlAlchemyOrganizationRepository(engine),
        locations=SqlAlchemyLocationRepository(engine),
        tables=SqlAlchemyTableRepository(engine),
        menu=SqlAlchemyMenuRepository(engine),
        carts=RedisCartRepository(),
        orders=SqlAlchemyOrderRepository(engine),
        tickets=SqlAlchemyTicketRepository(engine),
        inventory=SqlAlchemyInventoryRepository(engine),
        alerts=SqlAlchemyAlertRepository(engine),
        payments=SqlAlchemyPaymentRepository(engine),
        sequences=SqlAlchemySequenceRepository(engine),
        settlement=SqlAlchemySettlementRepository(engine),
        cache=RedisCacheStore(),
        publisher=RedisEventPublisher(),
        gateway=gateway or SimulatedPaymentGateway(),
        menu_cache_ttl_seconds=menu_cache_ttl_seconds(),
    )


def build_container() -> Container:
    backend = storage_backend()
    if backend == SQL_BACKEND:
        container = build_sql_container()
    elif backend == MEMORY_BACKEND:
        container = build_memory_container()
    else:
        raise RuntimeError(f"unknown STORAGE_BACKEND: {backend}")
    logger.info("container_built", extra={"value": backend})
    return container
