from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigError

CONFIG_ENV_VAR = "REPAIRSHOP_CONFIG"
DEFAULT_CONFIG_PATH = "config.toml"


@dataclass(frozen=True)
class DbConfig:
    host: str = "localhost"
    port: int = 5432
    name: str = "repairshop"
    user: str = "repairshop"
    password: str = ""
    sslmode: str = "disable"
    connect_timeout: int = 10
    dsn: Optional[str] = None


@dataclass(frozen=True)
class ServerConfig:
    host: str = "127.0.0.1"
    port: int = 2022
    cors_origin: str = "*"


@dataclass(frozen=True)
class AppConfig:
    name: str
    log_level: str
    log_file: Optional[str]
    db: DbConfig
    server: ServerConfig


def resolve_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)
    return Path(path)


def load_config(path: str | Path | None = None) -> AppConfig:
    p = resolve_config_path(path)
    if not p.exists():
        raise ConfigError(f"Config file not found: {p.resolve()}")

    try:
        data = tomllib.loads(p.read_text(encoding="utf-8"))
    except Exception as e:
        raise ConfigError(f"Failed to read config TOML: {e}") from e

    return parse_config(data)


def parse_config(data: dict) -> AppConfig:
    try:
        app = data.get("app", {})
        db = data["db"]
        server = data.get("server", {})
        return AppConfig(
            name=str(app.get("name", "RepairShop")),
            log_level=str(app.get("log_level", "INFO")),
            log_file=(str(app["log_file"]) if app.get("log_file") else None),
            db=DbConfig(
                host=str(db.get("host", "localhost")),
                port=int(db.get("port", 5432)),
                name=str(db["name"]),
                user=str(db["user"]),
                password=str(db.get("password", "")),
                sslmode=str(db.get("sslmode", "disable")),
                connect_timeout=int(db.get("connect_timeout", 10)),
                dsn=(str(db["dsn"]) if db.get("dsn") else None),
            ),
            server=ServerConfig(
                host=str(server.get("host", "127.0.0.1")),
                port=int(server.get("port", 2022)),
                cors_origin=str(server.get("cors_origin", "*")),
            ),
        )
    except KeyError as e:
        raise ConfigError(f"Missing config key: {e}") from e
    except Exception as e:
        raise ConfigError(f"Invalid config values: {e}") from e
