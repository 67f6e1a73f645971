from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Mapping

from psycopg import Connection

from ..db import row_as_dict, rows_as_dicts
from ..domain import Service
from .base import update_row

COLUMNS = (
    "id",
    "customer_id",
    "start_date",
    "completion_date",
    "problem_description",
    "repair_description",
    "service_cost",
    "status",
    "created_at",
)
UPDATABLE = frozenset({"completion_date", "repair_description", "service_cost", "status"})

_SELECT = """
    SELECT id, customer_id, start_date, completion_date, problem_description,
           repair_description, service_cost, status::text AS status, created_at
    FROM services
"""


class ServiceRepository:
    def create(
        self,
        conn: Connection,
        *,
        customer_id: int,
        start_date: datetime,
        problem_description: str,
        service_cost: Decimal,
    ) -> Service:
        # completion_date, repair_description and status always start from their defaults
        cur = conn.execute(
            """
            INSERT INTO services(customer_id, start_date, problem_description, service_cost,
                                 status, completion_date, repair_description)
            VALUES (%s, %s, %s, %s, 'in_progress', NULL, NULL)
            RETURNING id, customer_id, start_date, completion_date, problem_description,
                      repair_description, service_cost, status::text AS status, created_at;
            """,
            (customer_id, start_date, problem_description, service_cost),
        )
        return Service.from_row(row_as_dict(cur))

    def list(self, conn: Connection) -> list[Service]:
        cur = conn.execute(_SELECT + " ORDER BY id;")
        return [Service.from_row(r) for r in rows_as_dicts(cur)]

    def list_by_customer(self, conn: Connection, customer_id: int) -> list[Service]:
        cur = conn.execute(_SELECT + " WHERE customer_id = %s ORDER BY id;", (customer_id,))
        return [Service.from_row(r) for r in rows_as_dicts(cur)]

    def get(self, conn: Connection, service_id: int) -> Service | None:
        cur = conn.execute(_SELECT + " WHERE id = %s;", (service_id,))
        row = row_as_dict(cur)
        return Service.from_row(row) if row else None

    def update(self, conn: Connection, service_id: int, changes: Mapping[str, object]) -> Service | None:
        row = update_row(
            conn,
            table="services",
            row_id=service_id,
            changes=changes,
            columns=COLUMNS,
            allowed=UPDATABLE,
        )
        return Service.from_row(row) if row else None
