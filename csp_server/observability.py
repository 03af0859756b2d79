# csp_server/observability.py
# Cross-cutting concerns: JSON logging, request IDs, latency logging, error JSON for /api/*

import sys
import time
import logging
from uuid import uuid4
from typing import Any, Dict

from flask import g, request, jsonify
from werkzeug.exceptions import HTTPException
from pydantic import ValidationError
from pythonjsonlogger import jsonlogger

from .csp.errors import CspError


def _json_formatter() -> logging.Formatter:
    return jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s "
        "%(request_id)s %(method)s %(path)s %(status)s %(latency_ms)s "
        "%(remote_ip)s %(user_agent)s %(event)s %(header)s %(domain)s "
        "%(violated_directive)s %(blocked_uri)s %(document_uri)s"
    )


def init_logging(app) -> None:
    if app.config.get("_OBS_LOGGING_INIT", False):
        return
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_json_formatter())
    app.logger.handlers.clear()
    app.logger.addHandler(handler)
    app.logger.setLevel(logging.INFO)
    app.logger.propagate = False

    # The CSP core logs through module loggers; route them to the same handler.
    core_logger = logging.getLogger("csp_server.csp")
    core_logger.handlers.clear()
    core_logger.addHandler(handler)
    core_logger.setLevel(logging.DEBUG if app.debug else logging.INFO)
    core_logger.propagate = False
    app.config["_OBS_LOGGING_INIT"] = True


def register_request_id(app) -> None:
    if app.config.get("_OBS_REQID_INIT", False):
        return

    @app.before_request
    def _before_request():
        g.request_id = str(uuid4())
        g._start_time = time.monotonic()

    @app.after_request
    def _after_request(resp):
        resp.headers["X-Request-ID"] = getattr(g, "request_id", "")
        return resp

    app.config["_OBS_REQID_INIT"] = True


def register_latency_logging(app) -> None:
    if app.config.get("_OBS_LATENCY_INIT", False):
        return

    @app.after_request
    def _access_log(resp):
        start = getattr(g, "_start_time", None)
        latency_ms = int((time.monotonic() - start) * 1000) if start else None
        record: Dict[str, Any] = {
            "request_id": getattr(g, "request_id", None),
            "method": request.method,
            "path": request.path,
            "status": resp.status_code,
            "latency_ms": latency_ms,
            "remote_ip": request.headers.get("X-Forwarded-For", request.remote_addr),
            "user_agent": request.user_agent.string if request.user_agent else None,
            "event": "http.access",
        }
        app.logger.info("http.access", extra=record)
        return resp

    app.config["_OBS_LATENCY_INIT"] = True


def error_payload(message: str, code: int) -> Dict[str, Any]:
    """Unified error body for JSON surfaces."""
    return {
        "error": message,
        "code": code,
        "request_id": getattr(g, "request_id", None),
    }


def validation_details(exc: ValidationError):
    """Pydantic v2 can put exception instances in 'ctx'; stringify them for JSON."""
    details = []
    for err in exc.errors():
        ctx = err.get("ctx")
        if isinstance(ctx, dict):
            err = dict(err)
            err["ctx"] = {k: (str(v) if isinstance(v, BaseException) else v) for k, v in ctx.items()}
        details.append(err)
    return details


def register_error_handlers(app) -> None:
    if app.config.get("_OBS_ERRORS_INIT", False):
        return

    @app.errorhandler(ValidationError)
    def _validation_error(e: ValidationError):
        if not request.path.startswith("/api"):
            return "Bad Request", 400
        payload = error_payload("Validation error", 400)
        payload["details"] = validation_details(e)
        app.logger.warning("http.error", extra={"event": "http.error", "request_id": payload["request_id"]})
        return jsonify(payload), 400

    @app.errorhandler(CspError)
    def _csp_error(e: CspError):
        # Never answer with a half-built policy; fail the request instead.
        payload = error_payload("Internal Server Error", 500)
        app.logger.error(
            "csp.error",
            exc_info=e,
            extra={"event": "csp.error", "request_id": payload["request_id"], "path": request.path},
        )
        if not request.path.startswith("/api"):
            return "Internal Server Error", 500
        return jsonify(payload), 500

    @app.errorhandler(HTTPException)
    def _http_exception(e: HTTPException):
        if not request.path.startswith("/api"):
            return e
        payload = error_payload(e.description or e.name, e.code)
        app.logger.warning("http.error", extra={"event": "http.error", **payload})
        return jsonify(payload), e.code

    @app.errorhandler(Exception)
    def _unhandled_exception(e: Exception):
        payload = error_payload("Internal Server Error", 500)
        app.logger.error("http.exception", exc_info=True, extra={"event": "http.exception", **payload})
        if not request.path.startswith("/api"):
            return "Internal Server Error", 500
        return jsonify(payload), 500

    app.config["_OBS_ERRORS_INIT"] = True
