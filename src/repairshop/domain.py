from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal, Optional

ServiceStatus = Literal["in_progress", "completed", "cancelled"]

SERVICE_STATUSES: tuple[str, ...] = ("in_progress", "completed", "cancelled")

# allowed moves out of each status; staying on the same status is always allowed
STATUS_TRANSITIONS: dict[str, frozenset[str]] = {
    "in_progress": frozenset({"completed", "cancelled"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
}

_CENT = Decimal("0.01")


def to_decimal(value: float | int | str | Decimal) -> Decimal:
    """Convert an incoming money value to the 2-place fixed-point form stored in NUMERIC(10,2)."""
    if isinstance(value, float):
        value = repr(value)
    return Decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def to_number(value: Decimal | float | int) -> float:
    """Convert a stored NUMERIC value to the plain number returned to callers."""
    return float(to_decimal(value))


def can_transition(current: str, requested: str) -> bool:
    return current == requested or requested in STATUS_TRANSITIONS.get(current, frozenset())


@dataclass(frozen=True)
class Customer:
    id: int
    name: str
    email: str
    phone: str
    address: Optional[str]
    created_at: datetime

    @classmethod
    def from_row(cls, row: dict) -> "Customer":
        return cls(
            id=int(row["id"]),
            name=row["name"],
            email=row["email"],
            phone=row["phone"],
            address=row["address"],
            created_at=row["created_at"],
        )


@dataclass(frozen=True)
class Service:
    id: int
    customer_id: int
    start_date: datetime
    completion_date: Optional[datetime]
    problem_description: str
    repair_description: Optional[str]
    service_cost: float
    status: ServiceStatus
    created_at: datetime

    @classmethod
    def from_row(cls, row: dict) -> "Service":
        return cls(
            id=int(row["id"]),
            customer_id=int(row["customer_id"]),
            start_date=row["start_date"],
            completion_date=row["completion_date"],
            problem_description=row["problem_description"],
            repair_description=row["repair_description"],
            service_cost=to_number(row["service_cost"]),
            status=row["status"],
            created_at=row["created_at"],
        )


@dataclass(frozen=True)
class SparePart:
    id: int
    name: str
    description: Optional[str]
    part_number: str
    stock_quantity: int
    unit_price: float
    supplier: Optional[str]
    created_at: datetime

    @classmethod
    def from_row(cls, row: dict) -> "SparePart":
        return cls(
            id=int(row["id"]),
            name=row["name"],
            description=row["description"],
            part_number=row["part_number"],
            stock_quantity=int(row["stock_quantity"]),
            unit_price=to_number(row["unit_price"]),
            supplier=row["supplier"],
            created_at=row["created_at"],
        )

    @property
    def in_stock(self) -> bool:
        return self.stock_quantity > 0


@dataclass(frozen=True)
class ServiceSparePartUsage:
    id: int
    service_id: int
    spare_part_id: int
    quantity_used: int
    created_at: datetime

    @classmethod
    def from_row(cls, row: dict) -> "ServiceSparePartUsage":
        return cls(
            id=int(row["id"]),
            service_id=int(row["service_id"]),
            spare_part_id=int(row["spare_part_id"]),
            quantity_used=int(row["quantity_used"]),
            created_at=row["created_at"],
        )
