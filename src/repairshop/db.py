from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

import psycopg
from psycopg import Connection, Cursor

from .config import DbConfig
from .errors import DbError

logger = logging.getLogger(__name__)


def rows_as_dicts(cur: Cursor) -> list[dict]:
    cols = [d.name for d in cur.description]
    return [dict(zip(cols, row)) for row in cur.fetchall()]


def row_as_dict(cur: Cursor) -> dict | None:
    row = cur.fetchone()
    if not row:
        return None
    cols = [d.name for d in cur.description]
    return dict(zip(cols, row))


@dataclass(frozen=True)
class Db:
    cfg: DbConfig

    def connect(self) -> Connection:
        # autocommit: plain sessions commit per statement, transaction() issues BEGIN itself
        try:
            if self.cfg.dsn:
                return psycopg.connect(self.cfg.dsn, autocommit=True, connect_timeout=self.cfg.connect_timeout)
            return psycopg.connect(
                host=self.cfg.host,
                port=self.cfg.port,
                dbname=self.cfg.name,
                user=self.cfg.user,
                password=self.cfg.password,
                sslmode=self.cfg.sslmode,
                connect_timeout=self.cfg.connect_timeout,
                autocommit=True,
            )
        except Exception as e:
            logger.error("Database connection failed: %s", e)
            raise DbError(
                "Cannot connect to database. Check config.toml [db] and that PostgreSQL is running."
            ) from e

    @contextmanager
    def session(self) -> Iterator[Connection]:
        conn = self.connect()
        try:
            yield conn
        except psycopg.Error as e:
            logger.exception("Database statement failed")
            raise DbError(f"Database error: {e}") from e
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[Connection]:
        conn = self.connect()
        try:
            conn.execute("BEGIN;")
            yield conn
            conn.execute("COMMIT;")
        except Exception as e:
            if not conn.closed:
                conn.execute("ROLLBACK;")
            if isinstance(e, psycopg.Error):
                logger.exception("Transaction failed and was rolled back")
                raise DbError(f"Database error: {e}") from e
            raise
        finally:
            conn.close()
