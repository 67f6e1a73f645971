from __future__ import annotations

import argparse

from .cli import run_shell
from .config import load_config
from .db import Db
from .ddl import create_schema
from .errors import ConfigError, DbError
from .importers import ImportFileError, import_customers_csv, import_parts_json
from .logging_config import setup_logging
from .rpc import build_api
from .web_app import run_server


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="repairshop", description="Repair shop customers, services and spare parts")
    parser.add_argument("--config", default=None, help="path to config.toml (default: $REPAIRSHOP_CONFIG or ./config.toml)")
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="run the RPC server")
    serve.add_argument("--host", default=None)
    serve.add_argument("--port", type=int, default=None)

    sub.add_parser("init-db", help="create tables if they do not exist")
    sub.add_parser("shell", help="interactive menu")

    parts = sub.add_parser("import-parts", help="bulk-create spare parts from a JSON list")
    parts.add_argument("path")

    customers = sub.add_parser("import-customers", help="bulk-create customers from CSV")
    customers.add_argument("path")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        cfg = load_config(args.config)
        setup_logging(cfg.log_level, cfg.log_file)
        db = Db(cfg.db)

        if args.command == "serve":
            run_server(cfg, host=args.host, port=args.port)
        elif args.command == "init-db":
            with db.transaction() as conn:
                create_schema(conn)
            print("Schema created.")
        elif args.command == "shell":
            run_shell(build_api(db))
        elif args.command == "import-parts":
            api = build_api(db)
            with db.transaction() as conn:
                n = import_parts_json(conn, args.path, api.inventory_service)
            print(f"Imported spare parts: {n}")
        elif args.command == "import-customers":
            api = build_api(db)
            with db.transaction() as conn:
                n = import_customers_csv(conn, args.path, api.customer_service)
            print(f"Imported customers: {n}")
        return 0
    except ConfigError as e:
        print(f"[CONFIG ERROR] {e}")
        return 2
    except DbError as e:
        print(f"[DB ERROR] {e}")
        return 3
    except ImportFileError as e:
        print(f"[IMPORT ERROR] {e}")
        return 4
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
