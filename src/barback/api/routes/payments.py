from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query

from barback.api.deps import ContainerDep, OrganizationDep, TraceDep
from barback.application.dto.requests import RefundRequest
from barback.application.dto.responses import (
    Envelope,
    PaymentListResponse,
    PaymentResponse,
    ReceiptResponse,
)
from barback.application.use_cases.payments import GetReceipt, ListPayments, RefundPayment
from barback.domain.common.ids import PaymentId

router = APIRouter(prefix="/v1/payments", tags=["payments"])


@router.get("", response_model=Envelope[PaymentListResponse])
def list_payments(
    container: ContainerDep,
    organization_id: OrganizationDep,
    order_id: Annotated[str | None, Query(alias="orderId")] = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
) -> Envelope[PaymentListResponse]:
    payments = ListPayments(payment_repository=container.payments).execute(
        organization_id,
        order_id=order_id,
        status=status_filter,
    )
    return Envelope(data=payments)


@router.get("/{payment_id}/receipt", response_model=Envelope[ReceiptResponse])
def get_receipt(
    payment_id: str,
    container: ContainerDep,
    organization_id: OrganizationDep,
) -> Envelope[ReceiptResponse]:
    use_case = GetReceipt(
        payment_repository=container.payments,
        order_repository=container.orders,
    )
    return Envelope(data=use_case.execute(organization_id, PaymentId(payment_id)))


@router.post("/{payment_id}/refund", response_model=Envelope[PaymentResponse])
async def refund_payment(
    payment_id: str,
    container: ContainerDep,
    organization_id: OrganizationDep,
    trace_ctx: TraceDep,
    request_dto: RefundRequest | None = None,
) -> Envelope[PaymentResponse]:
    use_case = RefundPayment(
        payment_repository=container.payments,
        order_repository=container.orders,
        gateway=container.gateway,
        publisher=container.publisher,
    )
    payment = await use_case.execute(
        organization_id,
        PaymentId(payment_id),
        request_dto or RefundRequest(),
        trace_ctx,
    )
    return Envelope(data=payment, message="Payment refunded")
