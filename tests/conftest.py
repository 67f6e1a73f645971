from __future__ import annotations

import copy
import os
from contextlib import contextmanager
from datetime import datetime
from typing import Mapping

import pytest

from repairshop.config import parse_config
from repairshop.domain import Customer, Service, ServiceSparePartUsage, SparePart
from repairshop.rpc import ShopApi
from repairshop.services.customer_service import CustomerService
from repairshop.services.inventory_service import InventoryService
from repairshop.services.repair_service import RepairService
from repairshop.web_app import create_app

TEST_DSN_ENV = "REPAIRSHOP_TEST_DSN"


class FakeStore:
    """In-memory stand-in for the four tables; fake repositories receive it as ``conn``."""

    TABLES = ("customers", "services", "spare_parts", "service_spare_parts")

    def __init__(self) -> None:
        self.tables: dict[str, dict[int, dict]] = {t: {} for t in self.TABLES}
        self.next_id: dict[str, int] = {t: 1 for t in self.TABLES}

    def insert(self, table: str, values: dict) -> dict:
        row_id = self.next_id[table]
        self.next_id[table] += 1
        row = {"id": row_id, **values, "created_at": datetime.now()}
        self.tables[table][row_id] = row
        return dict(row)

    def rows(self, table: str) -> list[dict]:
        return [dict(r) for _, r in sorted(self.tables[table].items())]

    def get(self, table: str, row_id: int) -> dict | None:
        row = self.tables[table].get(row_id)
        return dict(row) if row else None

    def update(self, table: str, row_id: int, changes: Mapping[str, object]) -> dict | None:
        row = self.tables[table].get(row_id)
        if row is None:
            return None
        row.update(changes)
        return dict(row)

    def snapshot(self):
        return copy.deepcopy((self.tables, self.next_id))

    def restore(self, snap) -> None:
        self.tables, self.next_id = snap


class FakeDb:
    def __init__(self, store: FakeStore) -> None:
        self.store = store
        self.commits = 0
        self.rollbacks = 0

    @contextmanager
    def session(self):
        yield self.store

    @contextmanager
    def transaction(self):
        snap = self.store.snapshot()
        try:
            yield self.store
        except Exception:
            self.store.restore(snap)
            self.rollbacks += 1
            raise
        self.commits += 1


class FakeCustomerRepository:
    def create(self, conn, *, name, email, phone, address):
        return Customer.from_row(conn.insert("customers", dict(name=name, email=email, phone=phone, address=address)))

    def list(self, conn):
        return [Customer.from_row(r) for r in conn.rows("customers")]

    def get(self, conn, customer_id):
        row = conn.get("customers", customer_id)
        return Customer.from_row(row) if row else None

    def update(self, conn, customer_id, changes):
        row = conn.update("customers", customer_id, changes)
        return Customer.from_row(row) if row else None


class FakeServiceRepository:
    def create(self, conn, *, customer_id, start_date, problem_description, service_cost):
        row = conn.insert(
            "services",
            dict(
                customer_id=customer_id,
                start_date=start_date,
                completion_date=None,
                problem_description=problem_description,
                repair_description=None,
                service_cost=service_cost,
                status="in_progress",
            ),
        )
        return Service.from_row(row)

    def list(self, conn):
        return [Service.from_row(r) for r in conn.rows("services")]

    def list_by_customer(self, conn, customer_id):
        return [Service.from_row(r) for r in conn.rows("services") if r["customer_id"] == customer_id]

    def get(self, conn, service_id):
        row = conn.get("services", service_id)
        return Service.from_row(row) if row else None

    def update(self, conn, service_id, changes):
        row = conn.update("services", service_id, changes)
        return Service.from_row(row) if row else None


class FakeSparePartRepository:
    def create(self, conn, *, name, description, part_number, stock_quantity, unit_price, supplier):
        row = conn.insert(
            "spare_parts",
            dict(
                name=name,
                description=description,
                part_number=part_number,
                stock_quantity=stock_quantity,
                unit_price=unit_price,
                supplier=supplier,
            ),
        )
        return SparePart.from_row(row)

    def list(self, conn):
        return [SparePart.from_row(r) for r in conn.rows("spare_parts")]

    def list_out_of_stock(self, conn):
        return [SparePart.from_row(r) for r in conn.rows("spare_parts") if r["stock_quantity"] == 0]

    def get(self, conn, part_id):
        row = conn.get("spare_parts", part_id)
        return SparePart.from_row(row) if row else None

    def get_for_update(self, conn, part_id):
        return self.get(conn, part_id)

    def update(self, conn, part_id, changes):
        row = conn.update("spare_parts", part_id, changes)
        return SparePart.from_row(row) if row else None

    def decrease_stock(self, conn, *, part_id, qty):
        row = conn.tables["spare_parts"].get(part_id)
        if row is None or row["stock_quantity"] < qty:
            return False
        row["stock_quantity"] -= qty
        return True


class FakeUsageRepository:
    def create(self, conn, *, service_id, spare_part_id, quantity_used):
        row = conn.insert(
            "service_spare_parts",
            dict(service_id=service_id, spare_part_id=spare_part_id, quantity_used=quantity_used),
        )
        return ServiceSparePartUsage.from_row(row)

    def list_for_service(self, conn, service_id):
        return [ServiceSparePartUsage.from_row(r) for r in conn.rows("service_spare_parts") if r["service_id"] == service_id]


def build_fake_api(db, *, spare_part_repo=None) -> ShopApi:
    customer_repo = FakeCustomerRepository()
    service_repo = FakeServiceRepository()
    return ShopApi(
        db,
        customer_service=CustomerService(customer_repo=customer_repo),
        repair_service=RepairService(customer_repo=customer_repo, service_repo=service_repo),
        inventory_service=InventoryService(
            spare_part_repo=spare_part_repo or FakeSparePartRepository(),
            service_repo=service_repo,
            usage_repo=FakeUsageRepository(),
        ),
    )


@pytest.fixture()
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture()
def fake_db(store) -> FakeDb:
    return FakeDb(store)


@pytest.fixture()
def api(fake_db) -> ShopApi:
    return build_fake_api(fake_db)


@pytest.fixture()
def app_config():
    return parse_config(
        {
            "app": {"name": "RepairShopTest", "log_level": "DEBUG"},
            "db": {"name": "repairshop_test", "user": "tester"},
            "server": {"cors_origin": "http://localhost:5173"},
        }
    )


@pytest.fixture()
def client(app_config, api):
    app = create_app(app_config, api=api)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture()
def shop(api, fake_db):
    """John Doe with one open service and a 'Filter' part holding 10 in stock."""
    customer = api.call("createCustomer", {"name": "John Doe", "email": "john@x.com", "phone": "555", "address": None})
    part = api.call(
        "createSparePart",
        {"name": "Filter", "part_number": "F-1", "stock_quantity": 10, "unit_price": 9.999, "supplier": None},
    )
    service = api.call(
        "createService",
        {
            "customer_id": customer["id"],
            "start_date": "2024-03-01",
            "problem_description": "Fan is noisy",
            "service_cost": 0,
        },
    )
    return {"customer": customer, "part": part, "service": service}


@pytest.fixture()
def pg_dsn() -> str:
    dsn = os.environ.get(TEST_DSN_ENV)
    if not dsn:
        pytest.skip(f"{TEST_DSN_ENV} not set; PostgreSQL integration tests skipped")
    return dsn
