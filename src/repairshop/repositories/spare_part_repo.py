from __future__ import annotations

from decimal import Decimal
from typing import Mapping

from psycopg import Connection

from ..db import row_as_dict, rows_as_dicts
from ..domain import SparePart
from .base import update_row

COLUMNS = ("id", "name", "description", "part_number", "stock_quantity", "unit_price", "supplier", "created_at")
UPDATABLE = frozenset({"name", "description", "part_number", "stock_quantity", "unit_price", "supplier"})

_SELECT = """
    SELECT id, name, description, part_number, stock_quantity, unit_price, supplier, created_at
    FROM spare_parts
"""


class SparePartRepository:
    def create(
        self,
        conn: Connection,
        *,
        name: str,
        description: str | None,
        part_number: str,
        stock_quantity: int,
        unit_price: Decimal,
        supplier: str | None,
    ) -> SparePart:
        cur = conn.execute(
            """
            INSERT INTO spare_parts(name, description, part_number, stock_quantity, unit_price, supplier)
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING id, name, description, part_number, stock_quantity, unit_price, supplier, created_at;
            """,
            (name, description, part_number, stock_quantity, unit_price, supplier),
        )
        return SparePart.from_row(row_as_dict(cur))

    def list(self, conn: Connection) -> list[SparePart]:
        cur = conn.execute(_SELECT + " ORDER BY id;")
        return [SparePart.from_row(r) for r in rows_as_dicts(cur)]

    def list_out_of_stock(self, conn: Connection) -> list[SparePart]:
        cur = conn.execute(_SELECT + " WHERE stock_quantity = 0 ORDER BY id;")
        return [SparePart.from_row(r) for r in rows_as_dicts(cur)]

    def get(self, conn: Connection, part_id: int) -> SparePart | None:
        cur = conn.execute(_SELECT + " WHERE id = %s;", (part_id,))
        row = row_as_dict(cur)
        return SparePart.from_row(row) if row else None

    def get_for_update(self, conn: Connection, part_id: int) -> SparePart | None:
        """Like get(), but locks the row until the surrounding transaction ends."""
        cur = conn.execute(_SELECT + " WHERE id = %s FOR UPDATE;", (part_id,))
        row = row_as_dict(cur)
        return SparePart.from_row(row) if row else None

    def update(self, conn: Connection, part_id: int, changes: Mapping[str, object]) -> SparePart | None:
        row = update_row(
            conn,
            table="spare_parts",
            row_id=part_id,
            changes=changes,
            columns=COLUMNS,
            allowed=UPDATABLE,
        )
        return SparePart.from_row(row) if row else None

    def decrease_stock(self, conn: Connection, *, part_id: int, qty: int) -> bool:
        """Relative decrement; False when the row is missing or holds less than ``qty``."""
        cur = conn.execute(
            """
            UPDATE spare_parts
            SET stock_quantity = stock_quantity - %s
            WHERE id = %s AND stock_quantity >= %s;
            """,
            (qty, part_id, qty),
        )
        return cur.rowcount == 1
