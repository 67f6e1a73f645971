from __future__ import annotations

from typing import Mapping

from psycopg import Connection

from ..db import row_as_dict, rows_as_dicts
from ..domain import Customer
from .base import update_row

COLUMNS = ("id", "name", "email", "phone", "address", "created_at")
UPDATABLE = frozenset({"name", "email", "phone", "address"})


class CustomerRepository:
    def create(self, conn: Connection, *, name: str, email: str, phone: str, address: str | None) -> Customer:
        cur = conn.execute(
            """
            INSERT INTO customers(name, email, phone, address)
            VALUES (%s, %s, %s, %s)
            RETURNING id, name, email, phone, address, created_at;
            """,
            (name, email, phone, address),
        )
        return Customer.from_row(row_as_dict(cur))

    def list(self, conn: Connection) -> list[Customer]:
        cur = conn.execute(
            """
            SELECT id, name, email, phone, address, created_at
            FROM customers
            ORDER BY id;
            """
        )
        return [Customer.from_row(r) for r in rows_as_dicts(cur)]

    def get(self, conn: Connection, customer_id: int) -> Customer | None:
        cur = conn.execute(
            """
            SELECT id, name, email, phone, address, created_at
            FROM customers WHERE id = %s;
            """,
            (customer_id,),
        )
        row = row_as_dict(cur)
        return Customer.from_row(row) if row else None

    def update(self, conn: Connection, customer_id: int, changes: Mapping[str, object]) -> Customer | None:
        row = update_row(
            conn,
            table="customers",
            row_id=customer_id,
            changes=changes,
            columns=COLUMNS,
            allowed=UPDATABLE,
        )
        return Customer.from_row(row) if row else None
