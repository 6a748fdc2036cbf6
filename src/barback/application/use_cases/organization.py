from __future__ import annotations

import os
from decimal import Decimal

from barback.application.ports.repositories import OrganizationRepository
from barback.domain.common.ids import OrganizationId
from barback.domain.table.entities import Organization


def default_tax_rate() -> Decimal:
    return Decimal(os.getenv("DEFAULT_TAX_RATE", "0.08875"))


def default_currency() -> str:
    return os.getenv("DEFAULT_CURRENCY", "USD").upper()


def load_organization(
    repository: OrganizationRepository,
    organization_id: OrganizationId,
) -> Organization:
    """Return the stored organization, or one built from the deployment defaults.

    Organization ids are passed through from the caller; an id with no stored
    settings still trades, using ``DEFAULT_TAX_RATE`` and ``DEFAULT_CURRENCY``.
    """
    organization = repository.get(organization_id)
    if organization is not None:
        return organization
    return Organization(
        organization_id=organization_id,
        name=str(organization_id),
        tax_rate=default_tax_rate(),
        currency=default_currency(),
    )
