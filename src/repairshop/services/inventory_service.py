from __future__ import annotations

import logging

from psycopg import Connection

from ..domain import ServiceSparePartUsage, SparePart, to_decimal
from ..errors import InsufficientStockError, NotFoundError
from ..repositories.service_repo import ServiceRepository
from ..repositories.spare_part_repo import SparePartRepository
from ..repositories.usage_repo import UsageRepository
from ..schemas import CreateSparePartInput, UpdateSparePartInput, UseSparePartInput

logger = logging.getLogger(__name__)


class InventoryService:
    def __init__(
        self,
        *,
        spare_part_repo: SparePartRepository,
        service_repo: ServiceRepository,
        usage_repo: UsageRepository,
    ) -> None:
        self.spare_part_repo = spare_part_repo
        self.service_repo = service_repo
        self.usage_repo = usage_repo

    def create_spare_part(self, conn: Connection, payload: CreateSparePartInput) -> SparePart:
        part = self.spare_part_repo.create(
            conn,
            name=payload.name,
            description=payload.description,
            part_number=payload.part_number,
            stock_quantity=payload.stock_quantity,
            unit_price=to_decimal(payload.unit_price),
            supplier=payload.supplier,
        )
        logger.info("Created spare part id=%s part_number=%s stock=%s", part.id, part.part_number, part.stock_quantity)
        return part

    def get_spare_parts(self, conn: Connection) -> list[SparePart]:
        return self.spare_part_repo.list(conn)

    def get_out_of_stock_parts(self, conn: Connection) -> list[SparePart]:
        return self.spare_part_repo.list_out_of_stock(conn)

    def update_spare_part(self, conn: Connection, payload: UpdateSparePartInput) -> SparePart:
        if self.spare_part_repo.get(conn, payload.id) is None:
            logger.warning("Spare part id=%s not found for update", payload.id)
            raise NotFoundError("spare part", payload.id)

        changes = payload.changes()
        if "unit_price" in changes:
            changes["unit_price"] = to_decimal(changes["unit_price"])

        part = self.spare_part_repo.update(conn, payload.id, changes)
        if part is None:
            raise NotFoundError("spare part", payload.id)
        logger.info("Updated spare part id=%s fields=%s", part.id, sorted(changes))
        return part

    def get_service_part_usage(self, conn: Connection, service_id: int) -> list[ServiceSparePartUsage]:
        if self.service_repo.get(conn, service_id) is None:
            raise NotFoundError("service", service_id)
        return self.usage_repo.list_for_service(conn, service_id)

    def use_spare_part_in_service(self, conn: Connection, payload: UseSparePartInput) -> ServiceSparePartUsage:
        """Record that a part went into a service and take it out of stock.

        Must run on a connection from ``Db.transaction()``: the usage insert and
        the stock decrement either both commit or, when any check or statement
        here raises, both roll back.  The part row is locked while checking
        stock and the decrement is relative, so two requests racing for the
        same part can never push stock below zero.
        """
        if self.service_repo.get(conn, payload.service_id) is None:
            logger.warning("Part usage rejected: service id=%s not found", payload.service_id)
            raise NotFoundError("service", payload.service_id)

        part = self.spare_part_repo.get_for_update(conn, payload.spare_part_id)
        if part is None:
            logger.warning("Part usage rejected: spare part id=%s not found", payload.spare_part_id)
            raise NotFoundError("spare part", payload.spare_part_id)

        if part.stock_quantity < payload.quantity_used:
            logger.warning(
                "Part usage rejected: spare part id=%s has %s, requested %s",
                part.id,
                part.stock_quantity,
                payload.quantity_used,
            )
            raise InsufficientStockError(part.id, part.stock_quantity, payload.quantity_used)

        usage = self.usage_repo.create(
            conn,
            service_id=payload.service_id,
            spare_part_id=payload.spare_part_id,
            quantity_used=payload.quantity_used,
        )

        if not self.spare_part_repo.decrease_stock(conn, part_id=part.id, qty=payload.quantity_used):
            raise InsufficientStockError(part.id, part.stock_quantity, payload.quantity_used)

        logger.info(
            "Used %s x spare part id=%s in service id=%s (usage id=%s)",
            usage.quantity_used,
            usage.spare_part_id,
            usage.service_id,
            usage.id,
        )
        return usage
