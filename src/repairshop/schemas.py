"""
Pydantic models for the RPC contract.

``*Input`` models validate what callers send before any domain operation
runs; ``*Read`` models shape what goes back.  Update inputs keep track of
which fields the caller actually sent (``model_fields_set``), so
``changes()`` can tell an omitted field apart from one explicitly set to
null.

Ids, quantities and money are strict: ``true`` or ``"3"`` is not a number.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .domain import ServiceStatus, to_decimal

MAX_MONEY = Decimal("99999999.99")  # NUMERIC(10, 2)


def _coerce_datetime(value: Any) -> Any:
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.min)
    return value


def _reject_null(value: Any) -> Any:
    if value is None:
        raise ValueError("field cannot be null")
    return value


def _check_money(value: Optional[float]) -> Optional[float]:
    # checked after rounding, which is what gets stored
    if value is not None and to_decimal(value) > MAX_MONEY:
        raise ValueError(f"must be at most {MAX_MONEY} after rounding to cents")
    return value


def _check_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(f"value is not a valid email address: {e}") from e
    return value


class InputModel(BaseModel):
    model_config = ConfigDict(extra="forbid")


class UpdateInput(InputModel):
    id: int = Field(..., strict=True)

    def changes(self) -> dict[str, Any]:
        """Only the fields the caller sent, explicit nulls included."""
        return self.model_dump(exclude_unset=True, exclude={"id"})


class CreateCustomerInput(InputModel):
    name: str = Field(..., min_length=1, examples=["John Doe"])
    email: str = Field(..., examples=["john@example.com"])
    phone: str = Field(..., min_length=1, examples=["555-0100"])
    address: Optional[str] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, value: str) -> str:
        return _check_email(value)


class UpdateCustomerInput(UpdateInput):
    name: Optional[str] = Field(None, min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = Field(None, min_length=1)
    address: Optional[str] = None

    @field_validator("name", "email", "phone", mode="before")
    @classmethod
    def reject_null(cls, value: Any) -> Any:
        return _reject_null(value)

    @field_validator("email")
    @classmethod
    def check_email(cls, value: Optional[str]) -> Optional[str]:
        return _check_email(value)


class CreateServiceInput(InputModel):
    customer_id: int = Field(..., strict=True)
    start_date: datetime
    problem_description: str = Field(..., min_length=1, examples=["Laptop does not boot"])
    service_cost: float = Field(..., ge=0, strict=True)

    @field_validator("start_date", mode="before")
    @classmethod
    def coerce_date(cls, value: Any) -> Any:
        return _coerce_datetime(value)

    @field_validator("service_cost")
    @classmethod
    def check_money(cls, value: float) -> float:
        return _check_money(value)


class UpdateServiceInput(UpdateInput):
    completion_date: Optional[datetime] = None
    repair_description: Optional[str] = None
    service_cost: Optional[float] = Field(None, ge=0, strict=True)
    status: Optional[ServiceStatus] = None

    @field_validator("completion_date", mode="before")
    @classmethod
    def coerce_date(cls, value: Any) -> Any:
        return _coerce_datetime(value)

    @field_validator("service_cost", "status", mode="before")
    @classmethod
    def reject_null(cls, value: Any) -> Any:
        return _reject_null(value)

    @field_validator("service_cost")
    @classmethod
    def check_money(cls, value: Optional[float]) -> Optional[float]:
        return _check_money(value)


class ServiceHistoryInput(InputModel):
    customer_id: int = Field(..., strict=True)


class ServicePartUsageInput(InputModel):
    service_id: int = Field(..., strict=True)


class CreateSparePartInput(InputModel):
    name: str = Field(..., min_length=1, examples=["Filter"])
    description: Optional[str] = None
    part_number: str = Field(..., min_length=1, examples=["F-1"])
    stock_quantity: int = Field(..., ge=0, strict=True)
    unit_price: float = Field(..., ge=0, strict=True)
    supplier: Optional[str] = None

    @field_validator("unit_price")
    @classmethod
    def check_money(cls, value: float) -> float:
        return _check_money(value)


class UpdateSparePartInput(UpdateInput):
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    part_number: Optional[str] = Field(None, min_length=1)
    stock_quantity: Optional[int] = Field(None, ge=0, strict=True)
    unit_price: Optional[float] = Field(None, ge=0, strict=True)
    supplier: Optional[str] = None

    @field_validator("name", "part_number", "stock_quantity", "unit_price", mode="before")
    @classmethod
    def reject_null(cls, value: Any) -> Any:
        return _reject_null(value)

    @field_validator("unit_price")
    @classmethod
    def check_money(cls, value: Optional[float]) -> Optional[float]:
        return _check_money(value)


class UseSparePartInput(InputModel):
    service_id: int = Field(..., strict=True)
    spare_part_id: int = Field(..., strict=True)
    quantity_used: int = Field(..., gt=0, strict=True)


class ReadModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class CustomerRead(ReadModel):
    id: int
    name: str
    email: str
    phone: str
    address: Optional[str]
    created_at: datetime


class ServiceRead(ReadModel):
    id: int
    customer_id: int
    start_date: datetime
    completion_date: Optional[datetime]
    problem_description: str
    repair_description: Optional[str]
    service_cost: float
    status: ServiceStatus
    created_at: datetime


class SparePartRead(ReadModel):
    id: int
    name: str
    description: Optional[str]
    part_number: str
    stock_quantity: int
    unit_price: float
    supplier: Optional[str]
    created_at: datetime


class ServiceSparePartUsageRead(ReadModel):
    id: int
    service_id: int
    spare_part_id: int
    quantity_used: int
    created_at: datetime


class HealthcheckRead(BaseModel):
    status: str
    timestamp: datetime
