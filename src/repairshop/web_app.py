from __future__ import annotations

import json
import logging

from flask import Flask, jsonify, request

from .config import AppConfig, load_config
from .db import Db
from .errors import (
    DbError,
    InsufficientStockError,
    InvalidStatusTransitionError,
    NotFoundError,
    RepairShopError,
    ValidationError,
)
from .logging_config import setup_logging
from .rpc import MethodNotSupportedError, ProcedureNotFoundError, ShopApi, build_api

logger = logging.getLogger(__name__)

# error class -> (HTTP status, RPC error code)
ERROR_CODES: list[tuple[type[Exception], int, str]] = [
    (ValidationError, 400, "BAD_REQUEST"),
    (NotFoundError, 404, "NOT_FOUND"),
    (ProcedureNotFoundError, 404, "NOT_FOUND"),
    (MethodNotSupportedError, 405, "METHOD_NOT_SUPPORTED"),
    (InsufficientStockError, 409, "CONFLICT"),
    (InvalidStatusTransitionError, 409, "CONFLICT"),
    (DbError, 500, "INTERNAL_SERVER_ERROR"),
]


def error_data(e: Exception) -> dict:
    if isinstance(e, ValidationError):
        return {"issues": e.issues}
    if isinstance(e, NotFoundError):
        return {"entity": e.entity, "id": e.entity_id}
    if isinstance(e, InsufficientStockError):
        return {"spare_part_id": e.spare_part_id, "available": e.available, "requested": e.requested}
    if isinstance(e, InvalidStatusTransitionError):
        return {"service_id": e.service_id, "current": e.current, "requested": e.requested}
    return {}


def error_response(e: RepairShopError):
    for cls, status, code in ERROR_CODES:
        if isinstance(e, cls):
            break
    else:
        status, code = 500, "INTERNAL_SERVER_ERROR"
    body = {"error": {"code": code, "message": str(e), "data": error_data(e)}}
    return jsonify(body), status


def _query_input():
    raw = request.args.get("input")
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Query input is not valid JSON: {e}") from e


def _mutation_input():
    if not request.data:
        return None
    payload = request.get_json(silent=True)
    if payload is None:
        raise ValidationError("Request body must be a JSON document")
    return payload


def create_app(cfg: AppConfig | None = None, api: ShopApi | None = None) -> Flask:
    if cfg is None:
        cfg = load_config()
    setup_logging(cfg.log_level, cfg.log_file)

    if api is None:
        api = build_api(Db(cfg.db))

    app = Flask(__name__)
    app.config["CORS_ORIGIN"] = cfg.server.cors_origin
    app.extensions["shop_api"] = api

    @app.get("/rpc/<name>")
    def rpc_query(name: str):
        data = api.call(name, _query_input(), kind="query")
        return jsonify({"result": {"data": data}})

    @app.post("/rpc/<name>")
    def rpc_mutation(name: str):
        data = api.call(name, _mutation_input(), kind="mutation")
        return jsonify({"result": {"data": data}})

    @app.errorhandler(RepairShopError)
    def handle_shop_error(e: RepairShopError):
        if isinstance(e, DbError):
            logger.error("RPC %s failed: %s", request.path, e)
        return error_response(e)

    @app.after_request
    def add_cors_headers(response):
        response.headers["Access-Control-Allow-Origin"] = app.config["CORS_ORIGIN"]
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        response.headers["Access-Control-Allow-Methods"] = "GET, POST, OPTIONS"
        return response

    return app


def run_server(cfg: AppConfig, host: str | None = None, port: int | None = None) -> None:
    app = create_app(cfg)
    host = host or cfg.server.host
    port = port or cfg.server.port
    logger.info("%s RPC server listening on %s:%s", cfg.name, host, port)
    app.run(host=host, port=port)
