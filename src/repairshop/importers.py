from __future__ import annotations

import csv
import json
import logging
from pathlib import Path

import pydantic
from psycopg import Connection

from .errors import RepairShopError
from .schemas import CreateCustomerInput, CreateSparePartInput
from .services.customer_service import CustomerService
from .services.inventory_service import InventoryService

logger = logging.getLogger(__name__)


class ImportFileError(RepairShopError):
    pass


def _nullable(value: str | None) -> str | None:
    value = (value or "").strip()
    return value or None


def import_customers_csv(conn: Connection, path: str | Path, customer_service: CustomerService) -> int:
    p = Path(path)
    if not p.exists():
        raise ImportFileError(f"File not found: {p}")

    count = 0
    try:
        with p.open("r", encoding="utf-8", newline="") as f:
            reader = csv.DictReader(f)
            required = {"name", "email", "phone"}
            if not required.issubset(set(reader.fieldnames or [])):
                raise ImportFileError(f"CSV must contain columns: {sorted(required)}")

            for line_no, row in enumerate(reader, start=2):
                try:
                    payload = CreateCustomerInput(
                        name=(row.get("name") or "").strip(),
                        email=(row.get("email") or "").strip(),
                        phone=(row.get("phone") or "").strip(),
                        address=_nullable(row.get("address")),
                    )
                except pydantic.ValidationError as e:
                    raise ImportFileError(f"{p.name} line {line_no}: {e.error_count()} invalid field(s)") from e

                customer_service.create_customer(conn, payload)
                count += 1
    except UnicodeDecodeError as e:
        raise ImportFileError(f"{p.name} is not valid UTF-8: {e}") from e

    logger.info("Imported %d customers from %s", count, p)
    return count


def import_parts_json(conn: Connection, path: str | Path, inventory_service: InventoryService) -> int:
    p = Path(path)
    if not p.exists():
        raise ImportFileError(f"File not found: {p}")

    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except Exception as e:
        raise ImportFileError(f"Invalid JSON: {e}") from e

    if not isinstance(data, list):
        raise ImportFileError("JSON must be a list of objects")

    count = 0
    for index, obj in enumerate(data):
        if not isinstance(obj, dict):
            raise ImportFileError(f"Item {index} is not an object")
        try:
            payload = CreateSparePartInput.model_validate(obj)
        except pydantic.ValidationError as e:
            raise ImportFileError(f"Item {index}: {e.error_count()} invalid field(s)") from e

        inventory_service.create_spare_part(conn, payload)
        count += 1

    logger.info("Imported %d spare parts from %s", count, p)
    return count
