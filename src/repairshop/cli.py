from __future__ import annotations

from datetime import datetime

from .errors import InsufficientStockError, NotFoundError, RepairShopError, ValidationError
from .importers import import_customers_csv, import_parts_json
from .rpc import ShopApi


def _prompt(msg: str) -> str:
    return input(msg).strip()


def _print_services(rows: list[dict]) -> None:
    for r in rows:
        print(
            f'#{r["id"]} customer={r["customer_id"]} status={r["status"]} '
            f'cost={r["service_cost"]:.2f} problem={r["problem_description"]!r}'
        )


def run_shell(api: ShopApi) -> None:
    while True:
        print("\n=== Repair Shop ===")
        print("1) List customers")
        print("2) List spare parts (stock)")
        print("3) Out-of-stock parts")
        print("4) Service history for a customer")
        print("5) Use spare part in service (transaction)")
        print("6) Change service status")
        print("7) Import customers CSV")
        print("8) Import spare parts JSON")
        print("0) Exit")

        choice = _prompt("> ")
        try:
            if choice == "0":
                return

            elif choice == "1":
                for r in api.call("getCustomers"):
                    print(f'#{r["id"]} {r["name"]} email={r["email"]} phone={r["phone"]}')

            elif choice == "2":
                for r in api.call("getSpareParts"):
                    print(
                        f'#{r["id"]} {r["part_number"]} {r["name"]} '
                        f'price={r["unit_price"]:.2f} stock={r["stock_quantity"]}'
                    )

            elif choice == "3":
                rows = api.call("getOutOfStockParts")
                if not rows:
                    print("Everything is in stock.")
                for r in rows:
                    print(f'#{r["id"]} {r["part_number"]} {r["name"]} supplier={r["supplier"]}')

            elif choice == "4":
                customer_id = int(_prompt("customer_id: "))
                _print_services(api.call("getServiceHistory", {"customer_id": customer_id}))

            elif choice == "5":
                payload = {
                    "service_id": int(_prompt("service_id: ")),
                    "spare_part_id": int(_prompt("spare_part_id: ")),
                    "quantity_used": int(_prompt("quantity: ")),
                }
                usage = api.call("useSparePartInService", payload)
                print(f'Recorded usage #{usage["id"]}: {usage["quantity_used"]} x part #{usage["spare_part_id"]}')

            elif choice == "6":
                service_id = int(_prompt("service_id: "))
                status = _prompt("new status (in_progress/completed/cancelled): ")
                payload: dict = {"id": service_id, "status": status}
                if status == "completed":
                    payload["completion_date"] = datetime.now().isoformat()
                    repair = _prompt("repair description (optional): ")
                    if repair:
                        payload["repair_description"] = repair
                _print_services([api.call("updateService", payload)])

            elif choice == "7":
                path = _prompt("path to customers.csv: ")
                with api.db.transaction() as conn:
                    n = import_customers_csv(conn, path, api.customer_service)
                print(f"Imported customers: {n}")

            elif choice == "8":
                path = _prompt("path to parts.json: ")
                with api.db.transaction() as conn:
                    n = import_parts_json(conn, path, api.inventory_service)
                print(f"Imported spare parts: {n}")

            else:
                print("Unknown choice.")

        except ValidationError as e:
            print(f"[INPUT ERROR] {e}")
            for issue in e.issues:
                print(f'  {".".join(str(x) for x in issue["loc"])}: {issue["msg"]}')
        except NotFoundError as e:
            print(f"[NOT FOUND] {e}")
        except InsufficientStockError as e:
            print(f"[STOCK] {e}")
        except ValueError as e:
            print(f"[VALUE ERROR] {e}")
        except RepairShopError as e:
            print(f"[ERROR] {type(e).__name__}: {e}")
