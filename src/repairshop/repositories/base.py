from __future__ import annotations

from typing import Mapping

from psycopg import Connection, sql

from ..db import row_as_dict


def update_row(
    conn: Connection,
    *,
    table: str,
    row_id: int,
    changes: Mapping[str, object],
    columns: tuple[str, ...],
    allowed: frozenset[str],
) -> dict | None:
    """Apply only the keys present in ``changes``; None when no row has ``row_id``."""
    unknown = set(changes) - allowed
    if unknown:
        raise ValueError(f"Cannot update columns on {table}: {sorted(unknown)}")

    returning = sql.SQL(", ").join(sql.Identifier(c) for c in columns)
    if not changes:
        query = sql.SQL("SELECT {cols} FROM {table} WHERE id = %s;").format(
            cols=returning, table=sql.Identifier(table)
        )
        return row_as_dict(conn.execute(query, (row_id,)))

    assignments = sql.SQL(", ").join(
        sql.SQL("{} = %s").format(sql.Identifier(col)) for col in changes
    )
    query = sql.SQL("UPDATE {table} SET {assignments} WHERE id = %s RETURNING {cols};").format(
        table=sql.Identifier(table), assignments=assignments, cols=returning
    )
    return row_as_dict(conn.execute(query, (*changes.values(), row_id)))
