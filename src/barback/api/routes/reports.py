from __future__ import annotations

from datetime import date
from typing import Annotated

from fastapi import APIRouter, Query

from barback.api.deps import ContainerDep, OrganizationDep
from barback.application.dto.responses import DailySalesResponse, Envelope, PopularItemsResponse
from barback.application.use_cases.reports import DailySales, PopularItems

router = APIRouter(prefix="/v1/reports", tags=["reports"])


@router.get("/daily-sales", response_model=Envelope[DailySalesResponse])
def daily_sales(
    container: ContainerDep,
    organization_id: OrganizationDep,
    day: Annotated[date | None, Query(alias="date")] = None,
) -> Envelope[DailySalesResponse]:
    report = DailySales(
        order_repository=container.orders,
        organization_repository=container.organizations,
    )
    return Envelope(data=report.execute(organization_id, day))


@router.get("/popular-items", response_model=Envelope[PopularItemsResponse])
def popular_items(
    container: ContainerDep,
    organization_id: OrganizationDep,
    limit: int = 10,
    days: int = 30,
) -> Envelope[PopularItemsResponse]:
    report = PopularItems(
        order_repository=container.orders,
        organization_repository=container.organizations,
    )
    return Envelope(data=report.execute(organization_id, limit=limit, days=days))
