from __future__ import annotations

from psycopg import Connection

from ..db import row_as_dict, rows_as_dicts
from ..domain import ServiceSparePartUsage


class UsageRepository:
    def create(self, conn: Connection, *, service_id: int, spare_part_id: int, quantity_used: int) -> ServiceSparePartUsage:
        cur = conn.execute(
            """
            INSERT INTO service_spare_parts(service_id, spare_part_id, quantity_used)
            VALUES (%s, %s, %s)
            RETURNING id, service_id, spare_part_id, quantity_used, created_at;
            """,
            (service_id, spare_part_id, quantity_used),
        )
        return ServiceSparePartUsage.from_row(row_as_dict(cur))

    def list_for_service(self, conn: Connection, service_id: int) -> list[ServiceSparePartUsage]:
        cur = conn.execute(
            """
            SELECT id, service_id, spare_part_id, quantity_used, created_at
            FROM service_spare_parts
            WHERE service_id = %s
            ORDER BY id;
            """,
            (service_id,),
        )
        return [ServiceSparePartUsage.from_row(r) for r in rows_as_dicts(cur)]
