from __future__ import annotations

import logging
import os
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from barback.api.container import Container, build_container
from barback.api.deps import ORGANIZATION_HEADER
from barback.api.error_handling import register_exception_handlers
from barback.api.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware
from barback.api.routes.carts import router as carts_router
from barback.api.routes.health import router as health_router
from barback.api.routes.inventory import router as inventory_router
from barback.api.routes.kds import router as kds_router
from barback.api.routes.menu import router as menu_router
from barback.api.routes.metrics import router as metrics_router
from barback.api.routes.orders import router as orders_router
from barback.api.routes.payments import router as payments_router
from barback.api.routes.reports import router as reports_router
from barback.api.routes.tables import router as tables_router
from barback.infrastructure.observability.logging_config import configure_logging
from barback.infrastructure.observability.otel import configure_otel

logger = logging.getLogger("barback.api.access")

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "path", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)


def _cors_allow_origins() -> list[str]:
    env = os.getenv("APP_ENV", "dev").lower()
    if env in {"dev", "test"}:
        return ["*"]

    raw_value = os.getenv("CORS_ALLOW_ORIGINS", "")
    return [origin.strip() for origin in raw_value.split(",") if origin.strip()]


def _route_path(request: Request) -> str:
    # label by route template so ids in the url do not explode metric cardinality
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class AccessLogMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        method = request.method
        try:
            response = await call_next(request)
        except Exception:
            duration_ms = (time.perf_counter() - started) * 1000
            path = _route_path(request)
            REQUEST_COUNT.labels(method=method, path=path, status_code="500").inc()
            REQUEST_LATENCY.labels(method=method, path=path).observe(duration_ms / 1000)
            logger.exception(
                "request_error",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": 500,
                    "duration_ms": round(duration_ms, 2),
                },
            )
            raise

        duration_ms = (time.perf_counter() - started) * 1000
        path = _route_path(request)
        REQUEST_COUNT.labels(method=method, path=path, status_code=str(response.status_code)).inc()
        REQUEST_LATENCY.labels(method=method, path=path).observe(duration_ms / 1000)
        logger.info(
            "request_complete",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
                "organization_id": request.headers.get(ORGANIZATION_HEADER),
            },
        )
        return response


def create_app(container: Container | None = None) -> FastAPI:
    configure_logging()

    app = FastAPI(title="Barback POS", version="0.1.0")
    app.state.container = container or build_container()
    register_exception_handlers(app)
    app.include_router(health_router)
    app.include_router(metrics_router)
    app.include_router(menu_router)
    app.include_router(carts_router)
    app.include_router(orders_router)
    app.include_router(kds_router)
    app.include_router(payments_router)
    app.include_router(tables_router)
    app.include_router(inventory_router)
    app.include_router(reports_router)

    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_allow_origins(),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER],
    )

    configure_otel(app)
    return app


app = create_app()
