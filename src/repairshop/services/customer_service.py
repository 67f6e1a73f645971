from __future__ import annotations

import logging

from psycopg import Connection

from ..domain import Customer
from ..errors import NotFoundError
from ..repositories.customer_repo import CustomerRepository
from ..schemas import CreateCustomerInput, UpdateCustomerInput

logger = logging.getLogger(__name__)


class CustomerService:
    def __init__(self, *, customer_repo: CustomerRepository) -> None:
        self.customer_repo = customer_repo

    def create_customer(self, conn: Connection, payload: CreateCustomerInput) -> Customer:
        customer = self.customer_repo.create(
            conn,
            name=payload.name,
            email=str(payload.email),
            phone=payload.phone,
            address=payload.address,
        )
        logger.info("Created customer id=%s", customer.id)
        return customer

    def get_customers(self, conn: Connection) -> list[Customer]:
        return self.customer_repo.list(conn)

    def update_customer(self, conn: Connection, payload: UpdateCustomerInput) -> Customer:
        if self.customer_repo.get(conn, payload.id) is None:
            logger.warning("Customer id=%s not found for update", payload.id)
            raise NotFoundError("customer", payload.id)

        changes = payload.changes()
        if "email" in changes:
            changes["email"] = str(changes["email"])

        customer = self.customer_repo.update(conn, payload.id, changes)
        if customer is None:
            raise NotFoundError("customer", payload.id)
        logger.info("Updated customer id=%s fields=%s", customer.id, sorted(changes))
        return customer
