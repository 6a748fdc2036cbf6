from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from barback.domain.common.ids import LocationId, OrganizationId, TableId

DEFAULT_TABLE_CAPACITY = 4


@dataclass(frozen=True)
class Organization:
    organization_id: OrganizationId
    name: str
    tax_rate: Decimal
    currency: str

    def __post_init__(self) -> None:
        if self.tax_rate < 0 or self.tax_rate > 1:
            raise ValueError("tax_rate must be between 0 and 1")
        if len(self.currency) != 3 or not self.currency.isupper():
            raise ValueError("currency must be a 3-letter uppercase code")


@dataclass(frozen=True)
class Location:
    location_id: LocationId
    organization_id: OrganizationId
    name: str


@dataclass(frozen=True)
class Table:
    table_id: TableId
    organization_id: OrganizationId
    location_id: LocationId
    number: int
    created_at: datetime
    capacity: int = DEFAULT_TABLE_CAPACITY

    def __post_init__(self) -> None:
        if self.number < 1:
            raise ValueError("table number must be >= 1")
        if self.capacity < 1:
            raise ValueError("capacity must be >= 1")
