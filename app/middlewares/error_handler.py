from __future__ import annotations

import logging
from typing import Any

from flask import Flask, g, jsonify
from werkzeug.exceptions import HTTPException

from utils import ApiError, RemoteStoreError, err


def _respond(code: str, message: str, http_status: int, details: Any = None):
    payload, status = err(code, message, http_status, details)
    if getattr(g, "request_id", None):
        payload["request_id"] = g.request_id
    return jsonify(payload), status


def init_error_handlers(app: Flask) -> None:
    log = logging.getLogger("app")

    @app.errorhandler(ApiError)
    def _api_error(e: ApiError):
        if isinstance(e, RemoteStoreError) and e.http_status >= 500:
            log.warning("remote store failure request_id=%s: %s", getattr(g, "request_id", ""), e.message)
        return _respond(e.code, e.message, e.http_status, e.details)

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):
        status = int(e.code or 500)
        payload = {
            "success": False,
            "error": {"code": f"HTTP_{status}", "message": str(e.description or "HTTP error"), "details": None},
        }
        if getattr(g, "request_id", None):
            payload["request_id"] = g.request_id
        return jsonify(payload), status

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):
        log.exception("Unhandled exception request_id=%s", getattr(g, "request_id", ""))
        return _respond("INTERNAL", "Unexpected error", 500)
