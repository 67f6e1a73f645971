"""
Named remote procedures for the repair shop API.

Every procedure is either a ``query`` (read only, runs on a plain session)
or a ``mutation`` (runs inside ``Db.transaction()``).  Input is validated
against the procedure's pydantic model before a connection is even opened,
so invalid input never reaches the domain layer.  Output is converted to
JSON-ready data through the matching ``*Read`` model.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Literal, Optional

import pydantic
from psycopg import Connection

from .db import Db
from .errors import RepairShopError, ValidationError
from .repositories.customer_repo import CustomerRepository
from .repositories.service_repo import ServiceRepository
from .repositories.spare_part_repo import SparePartRepository
from .repositories.usage_repo import UsageRepository
from .schemas import (
    CreateCustomerInput,
    CreateServiceInput,
    CreateSparePartInput,
    CustomerRead,
    HealthcheckRead,
    ServiceHistoryInput,
    ServicePartUsageInput,
    ServiceRead,
    ServiceSparePartUsageRead,
    SparePartRead,
    UpdateCustomerInput,
    UpdateServiceInput,
    UpdateSparePartInput,
    UseSparePartInput,
)
from .services.customer_service import CustomerService
from .services.inventory_service import InventoryService
from .services.repair_service import RepairService

logger = logging.getLogger(__name__)

ProcedureKind = Literal["query", "mutation"]


class ProcedureNotFoundError(RepairShopError):
    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"No procedure named '{name}'")


class MethodNotSupportedError(RepairShopError):
    def __init__(self, name: str, kind: str) -> None:
        self.name = name
        self.kind = kind
        super().__init__(f"'{name}' is a {kind}")


@dataclass(frozen=True)
class Procedure:
    name: str
    kind: ProcedureKind
    handler: Callable[..., Any]
    output_model: type[pydantic.BaseModel]
    input_model: Optional[type[pydantic.BaseModel]] = None
    uses_db: bool = True

    def parse_input(self, raw: Any) -> Optional[pydantic.BaseModel]:
        if self.input_model is None:
            if raw not in (None, {}):
                raise ValidationError(f"'{self.name}' takes no input")
            return None
        try:
            return self.input_model.model_validate(raw if raw is not None else {})
        except pydantic.ValidationError as e:
            issues = e.errors(include_url=False, include_context=False, include_input=False)
            raise ValidationError(f"Invalid input for '{self.name}'", issues) from e

    def dump_output(self, result: Any) -> Any:
        if isinstance(result, list):
            return [self.output_model.model_validate(r).model_dump(mode="json") for r in result]
        return self.output_model.model_validate(result).model_dump(mode="json")


def healthcheck() -> dict:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc)}


class ShopApi:
    def __init__(
        self,
        db: Db,
        *,
        customer_service: CustomerService,
        repair_service: RepairService,
        inventory_service: InventoryService,
    ) -> None:
        self.db = db
        self.customer_service = customer_service
        self.repair_service = repair_service
        self.inventory_service = inventory_service
        self.procedures: dict[str, Procedure] = {p.name: p for p in self._procedures()}

    def _procedures(self) -> list[Procedure]:
        customers = self.customer_service
        repairs = self.repair_service
        inventory = self.inventory_service
        return [
            Procedure("healthcheck", "query", healthcheck, HealthcheckRead, uses_db=False),
            # customers
            Procedure("createCustomer", "mutation", customers.create_customer, CustomerRead, CreateCustomerInput),
            Procedure("getCustomers", "query", customers.get_customers, CustomerRead),
            Procedure("updateCustomer", "mutation", customers.update_customer, CustomerRead, UpdateCustomerInput),
            # services
            Procedure("createService", "mutation", repairs.create_service, ServiceRead, CreateServiceInput),
            Procedure("getServices", "query", repairs.get_services, ServiceRead),
            Procedure("updateService", "mutation", repairs.update_service, ServiceRead, UpdateServiceInput),
            Procedure(
                "getServiceHistory",
                "query",
                lambda conn, p: repairs.get_service_history(conn, p.customer_id),
                ServiceRead,
                ServiceHistoryInput,
            ),
            # spare parts
            Procedure("createSparePart", "mutation", inventory.create_spare_part, SparePartRead, CreateSparePartInput),
            Procedure("getSpareParts", "query", inventory.get_spare_parts, SparePartRead),
            Procedure("updateSparePart", "mutation", inventory.update_spare_part, SparePartRead, UpdateSparePartInput),
            Procedure("getOutOfStockParts", "query", inventory.get_out_of_stock_parts, SparePartRead),
            Procedure(
                "useSparePartInService",
                "mutation",
                inventory.use_spare_part_in_service,
                ServiceSparePartUsageRead,
                UseSparePartInput,
            ),
            Procedure(
                "getServicePartUsage",
                "query",
                lambda conn, p: inventory.get_service_part_usage(conn, p.service_id),
                ServiceSparePartUsageRead,
                ServicePartUsageInput,
            ),
        ]

    def get(self, name: str, kind: ProcedureKind | None = None) -> Procedure:
        proc = self.procedures.get(name)
        if proc is None:
            raise ProcedureNotFoundError(name)
        if kind is not None and proc.kind != kind:
            raise MethodNotSupportedError(name, proc.kind)
        return proc

    def call(self, name: str, raw_input: Any = None, *, kind: ProcedureKind | None = None) -> Any:
        proc = self.get(name, kind)
        logger.debug("Calling %s %s", proc.kind, name)
        payload = proc.parse_input(raw_input)

        if not proc.uses_db:
            return proc.dump_output(proc.handler())

        with self._connection(proc.kind) as conn:
            result = self._invoke(proc, conn, payload)
        return proc.dump_output(result)

    def _connection(self, kind: ProcedureKind):
        return self.db.transaction() if kind == "mutation" else self.db.session()

    @staticmethod
    def _invoke(proc: Procedure, conn: Connection, payload: Optional[pydantic.BaseModel]) -> Any:
        if payload is None:
            return proc.handler(conn)
        return proc.handler(conn, payload)


def build_api(db: Db) -> ShopApi:
    customer_repo = CustomerRepository()
    service_repo = ServiceRepository()
    spare_part_repo = SparePartRepository()
    usage_repo = UsageRepository()

    return ShopApi(
        db,
        customer_service=CustomerService(customer_repo=customer_repo),
        repair_service=RepairService(customer_repo=customer_repo, service_repo=service_repo),
        inventory_service=InventoryService(
            spare_part_repo=spare_part_repo,
            service_repo=service_repo,
            usage_repo=usage_repo,
        ),
    )
