from __future__ import annotations

from fastapi import APIRouter, Response, status

from barback.api.container import SQL_BACKEND
from barback.api.deps import ContainerDep
from barback.infrastructure.cache.redis_client import ping_redis
from barback.infrastructure.db.session import ping_database

router = APIRouter(tags=["ops"])


@router.get("/health/live")
def live() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/ready")
def ready(response: Response, container: ContainerDep) -> dict[str, object]:
    if container.backend != SQL_BACKEND:
        return {"status": "ok", "backend": container.backend}

    database_ready = ping_database(timeout_seconds=1.0)
    redis_ready = ping_redis(timeout_seconds=1.0)

    if database_ready and redis_ready:
        return {"status": "ok", "backend": container.backend}

    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return {
        "status": "unavailable",
        "backend": container.backend,
        "checks": {"database": database_ready, "redis": redis_ready},
    }
