import pytest

from repairshop.errors import InsufficientStockError, InvalidStatusTransitionError, NotFoundError
from repairshop.schemas import (
    CreateServiceInput,
    CreateSparePartInput,
    UpdateCustomerInput,
    UpdateServiceInput,
    UpdateSparePartInput,
    UseSparePartInput,
)

from conftest import FakeSparePartRepository, build_fake_api


def _stock(store, part_id):
    return store.tables["spare_parts"][part_id]["stock_quantity"]


def test_create_spare_part_round_trips_through_listing(api):
    created = api.call(
        "createSparePart",
        {"name": "SSD 512GB", "part_number": "SSD-512", "stock_quantity": 4, "unit_price": 49.555},
    )
    listed = api.call("getSpareParts")

    assert created in listed
    assert created["description"] is None
    assert created["supplier"] is None
    assert created["unit_price"] == 49.56


def test_out_of_stock_is_exact_subset(api):
    for i, qty in enumerate([0, 3, 0, 1]):
        api.call("createSparePart", {"name": f"P{i}", "part_number": f"P-{i}", "stock_quantity": qty, "unit_price": 1})

    everything = api.call("getSpareParts")
    empty = api.call("getOutOfStockParts")

    assert empty == [p for p in everything if p["stock_quantity"] == 0]
    assert {p["name"] for p in empty} == {"P0", "P2"}


def test_create_service_starts_in_progress(api, shop):
    service = shop["service"]
    assert service["status"] == "in_progress"
    assert service["completion_date"] is None
    assert service["repair_description"] is None
    assert service["service_cost"] == 0.0


def test_create_service_for_unknown_customer(api, store):
    payload = CreateServiceInput(customer_id=999999, start_date="2024-01-01", problem_description="x", service_cost=5)
    with pytest.raises(NotFoundError, match="999999") as exc:
        api.repair_service.create_service(store, payload)

    assert exc.value.entity == "customer"
    assert store.tables["services"] == {}


def test_completing_service_changes_only_status(api, shop, store):
    before = shop["service"]
    after = api.call("updateService", {"id": before["id"], "status": "completed"})

    assert after["status"] == "completed"
    assert {k: v for k, v in after.items() if k != "status"} == {k: v for k, v in before.items() if k != "status"}


def test_update_service_clears_and_rounds(api, shop):
    service_id = shop["service"]["id"]
    api.call(
        "updateService",
        {"id": service_id, "repair_description": "Replaced fan", "completion_date": "2024-03-02", "service_cost": 80.126},
    )
    updated = api.call("updateService", {"id": service_id, "repair_description": None, "completion_date": None})

    assert updated["repair_description"] is None
    assert updated["completion_date"] is None
    assert updated["service_cost"] == 80.13


def test_terminal_status_cannot_reopen(api, shop, store):
    service_id = shop["service"]["id"]
    api.call("updateService", {"id": service_id, "status": "cancelled"})

    with pytest.raises(InvalidStatusTransitionError):
        api.repair_service.update_service(store, UpdateServiceInput(id=service_id, status="in_progress"))

    # same status again is a no-op
    again = api.repair_service.update_service(store, UpdateServiceInput(id=service_id, status="cancelled"))
    assert again.status == "cancelled"


def test_service_history_filters_by_customer(api, shop):
    other = api.call("createCustomer", {"name": "Jane", "email": "jane@x.com", "phone": "556"})
    api.call(
        "createService",
        {"customer_id": other["id"], "start_date": "2024-03-05", "problem_description": "Screen", "service_cost": 120},
    )

    history = api.call("getServiceHistory", {"customer_id": shop["customer"]["id"]})
    assert [s["id"] for s in history] == [shop["service"]["id"]]
    assert len(api.call("getServices")) == 2
    assert api.call("getServiceHistory", {"customer_id": 424242}) == []


def test_update_customer_partial(api, shop, store):
    customer_id = shop["customer"]["id"]
    updated = api.customer_service.update_customer(store, UpdateCustomerInput(id=customer_id, address="1 Main St"))
    assert updated.address == "1 Main St"
    assert updated.name == "John Doe"

    cleared = api.customer_service.update_customer(
        store, UpdateCustomerInput.model_validate({"id": customer_id, "address": None})
    )
    assert cleared.address is None
    assert cleared.email == "john@x.com"


@pytest.mark.parametrize(
    "call",
    [
        lambda api, conn: api.customer_service.update_customer(conn, UpdateCustomerInput(id=99999, name="X")),
        lambda api, conn: api.repair_service.update_service(conn, UpdateServiceInput(id=99999, status="completed")),
        lambda api, conn: api.inventory_service.update_spare_part(conn, UpdateSparePartInput(id=99999, name="X")),
    ],
)
def test_updates_on_missing_ids_are_not_found(api, store, call):
    with pytest.raises(NotFoundError, match="99999"):
        call(api, store)


def test_update_spare_part_rounds_price(api, shop, store):
    part = api.inventory_service.update_spare_part(
        store, UpdateSparePartInput(id=shop["part"]["id"], unit_price=3.333, supplier="Acme")
    )
    assert part.unit_price == 3.33
    assert part.supplier == "Acme"
    assert part.stock_quantity == 10


def test_filter_price_is_rounded(shop):
    assert shop["part"]["unit_price"] == 10.0


def test_use_part_decrements_stock(api, shop, store):
    usage = api.call(
        "useSparePartInService",
        {"service_id": shop["service"]["id"], "spare_part_id": shop["part"]["id"], "quantity_used": 3},
    )

    assert usage["quantity_used"] == 3
    assert _stock(store, shop["part"]["id"]) == 7
    assert len(store.tables["service_spare_parts"]) == 1


def test_use_part_more_than_stock_changes_nothing(api, shop, store, fake_db):
    with pytest.raises(InsufficientStockError, match="(?i)insufficient stock") as exc:
        api.call(
            "useSparePartInService",
            {"service_id": shop["service"]["id"], "spare_part_id": shop["part"]["id"], "quantity_used": 20},
        )

    assert (exc.value.available, exc.value.requested) == (10, 20)
    assert _stock(store, shop["part"]["id"]) == 10
    assert store.tables["service_spare_parts"] == {}
    assert fake_db.rollbacks == 1


def test_second_use_beyond_remaining_stock_fails(api, shop, store):
    ids = {"service_id": shop["service"]["id"], "spare_part_id": shop["part"]["id"]}
    api.call("useSparePartInService", {**ids, "quantity_used": 6})

    with pytest.raises(InsufficientStockError):
        api.call("useSparePartInService", {**ids, "quantity_used": 5})

    assert _stock(store, shop["part"]["id"]) == 4
    assert len(store.tables["service_spare_parts"]) == 1


def test_use_part_unknown_service_or_part(api, shop, store):
    with pytest.raises(NotFoundError, match="Service with id 777"):
        api.inventory_service.use_spare_part_in_service(
            store, UseSparePartInput(service_id=777, spare_part_id=shop["part"]["id"], quantity_used=1)
        )
    with pytest.raises(NotFoundError, match="Spare part with id 888"):
        api.inventory_service.use_spare_part_in_service(
            store, UseSparePartInput(service_id=shop["service"]["id"], spare_part_id=888, quantity_used=1)
        )
    assert store.tables["service_spare_parts"] == {}


class StaleReadRepository(FakeSparePartRepository):
    """Reports the stock another request saw before it was consumed underneath us."""

    def get_for_update(self, conn, part_id):
        part = super().get_for_update(conn, part_id)
        conn.tables["spare_parts"][part_id]["stock_quantity"] = 1
        return part


def test_failed_decrement_rolls_back_usage_insert(fake_db, store):
    api = build_fake_api(fake_db, spare_part_repo=StaleReadRepository())
    customer = api.call("createCustomer", {"name": "A", "email": "a@x.com", "phone": "1"})
    service = api.call(
        "createService",
        {"customer_id": customer["id"], "start_date": "2024-01-01", "problem_description": "x", "service_cost": 0},
    )
    part = api.inventory_service.create_spare_part(
        store, CreateSparePartInput(name="RAM", part_number="R-8", stock_quantity=5, unit_price=30)
    )

    with pytest.raises(InsufficientStockError):
        api.call("useSparePartInService", {"service_id": service["id"], "spare_part_id": part.id, "quantity_used": 4})

    assert store.tables["service_spare_parts"] == {}
    assert _stock(store, part.id) == 5


def test_service_part_usage_lists_usage(api, shop):
    ids = {"service_id": shop["service"]["id"], "spare_part_id": shop["part"]["id"]}
    api.call("useSparePartInService", {**ids, "quantity_used": 1})
    api.call("useSparePartInService", {**ids, "quantity_used": 2})

    usage = api.call("getServicePartUsage", {"service_id": shop["service"]["id"]})
    assert [u["quantity_used"] for u in usage] == [1, 2]

    with pytest.raises(NotFoundError):
        api.call("getServicePartUsage", {"service_id": 31337})
