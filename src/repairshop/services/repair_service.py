from __future__ import annotations

import logging

from psycopg import Connection

from ..domain import Service, can_transition, to_decimal
from ..errors import InvalidStatusTransitionError, NotFoundError
from ..repositories.customer_repo import CustomerRepository
from ..repositories.service_repo import ServiceRepository
from ..schemas import CreateServiceInput, UpdateServiceInput

logger = logging.getLogger(__name__)


class RepairService:
    """Service tickets: intake, status/cost/repair updates and per-customer history."""

    def __init__(self, *, customer_repo: CustomerRepository, service_repo: ServiceRepository) -> None:
        self.customer_repo = customer_repo
        self.service_repo = service_repo

    def create_service(self, conn: Connection, payload: CreateServiceInput) -> Service:
        if self.customer_repo.get(conn, payload.customer_id) is None:
            logger.warning("Cannot open service: customer id=%s not found", payload.customer_id)
            raise NotFoundError("customer", payload.customer_id)

        service = self.service_repo.create(
            conn,
            customer_id=payload.customer_id,
            start_date=payload.start_date,
            problem_description=payload.problem_description,
            service_cost=to_decimal(payload.service_cost),
        )
        logger.info("Created service id=%s for customer id=%s", service.id, service.customer_id)
        return service

    def get_services(self, conn: Connection) -> list[Service]:
        return self.service_repo.list(conn)

    def get_service_history(self, conn: Connection, customer_id: int) -> list[Service]:
        return self.service_repo.list_by_customer(conn, customer_id)

    def update_service(self, conn: Connection, payload: UpdateServiceInput) -> Service:
        current = self.service_repo.get(conn, payload.id)
        if current is None:
            logger.warning("Service id=%s not found for update", payload.id)
            raise NotFoundError("service", payload.id)

        changes = payload.changes()
        status = changes.get("status")
        if status is not None and not can_transition(current.status, status):
            logger.warning("Rejected status change %s -> %s on service id=%s", current.status, status, current.id)
            raise InvalidStatusTransitionError(current.id, current.status, status)
        if "service_cost" in changes:
            changes["service_cost"] = to_decimal(changes["service_cost"])

        service = self.service_repo.update(conn, payload.id, changes)
        if service is None:
            raise NotFoundError("service", payload.id)
        logger.info("Updated service id=%s fields=%s", service.id, sorted(changes))
        return service
