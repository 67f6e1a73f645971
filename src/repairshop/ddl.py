from __future__ import annotations

import logging

from psycopg import Connection

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    DO $$
    BEGIN
      IF NOT EXISTS (SELECT 1 FROM pg_type WHERE typname = 'service_status') THEN
        CREATE TYPE service_status AS ENUM ('in_progress', 'completed', 'cancelled');
      END IF;
    END
    $$;
    """,
    """
    CREATE TABLE IF NOT EXISTS customers (
      id          SERIAL PRIMARY KEY,
      name        TEXT NOT NULL CHECK (name <> ''),
      email       TEXT NOT NULL,
      phone       TEXT NOT NULL CHECK (phone <> ''),
      address     TEXT,
      created_at  TIMESTAMP NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS services (
      id                  SERIAL PRIMARY KEY,
      customer_id         INTEGER NOT NULL REFERENCES customers(id),
      start_date          TIMESTAMP NOT NULL,
      completion_date     TIMESTAMP,
      problem_description TEXT NOT NULL CHECK (problem_description <> ''),
      repair_description  TEXT,
      service_cost        NUMERIC(10, 2) NOT NULL CHECK (service_cost >= 0),
      status              service_status NOT NULL DEFAULT 'in_progress',
      created_at          TIMESTAMP NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS spare_parts (
      id              SERIAL PRIMARY KEY,
      name            TEXT NOT NULL CHECK (name <> ''),
      description     TEXT,
      part_number     TEXT NOT NULL CHECK (part_number <> ''),
      stock_quantity  INTEGER NOT NULL CHECK (stock_quantity >= 0),
      unit_price      NUMERIC(10, 2) NOT NULL CHECK (unit_price >= 0),
      supplier        TEXT,
      created_at      TIMESTAMP NOT NULL DEFAULT now()
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS service_spare_parts (
      id             SERIAL PRIMARY KEY,
      service_id     INTEGER NOT NULL REFERENCES services(id),
      spare_part_id  INTEGER NOT NULL REFERENCES spare_parts(id),
      quantity_used  INTEGER NOT NULL CHECK (quantity_used > 0),
      created_at     TIMESTAMP NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS ix_services_customer_id ON services(customer_id);",
    "CREATE INDEX IF NOT EXISTS ix_service_spare_parts_service_id ON service_spare_parts(service_id);",
    "CREATE INDEX IF NOT EXISTS ix_service_spare_parts_spare_part_id ON service_spare_parts(spare_part_id);",
)

TABLES: tuple[str, ...] = ("service_spare_parts", "spare_parts", "services", "customers")


def create_schema(conn: Connection) -> None:
    for statement in SCHEMA_STATEMENTS:
        conn.execute(statement)
    logger.info("Schema ready (%d statements)", len(SCHEMA_STATEMENTS))


def truncate_all(conn: Connection) -> None:
    conn.execute(f"TRUNCATE {', '.join(TABLES)} RESTART IDENTITY CASCADE;")
