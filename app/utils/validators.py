from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from flask import request

from utils import ApiError, parse_datetime_maybe


def require_json() -> dict[str, Any]:
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        raise ApiError("BAD_REQUEST", "JSON body must be an object")
    return body


def optional_datetime_arg(name: str) -> Optional[datetime]:
    raw = str(request.args.get(name) or "").strip()
    if not raw:
        return None
    dt = parse_datetime_maybe(raw, strict=True)
    if dt is None:
        raise ApiError("BAD_REQUEST", f"{name} must be an ISO-8601 timestamp", details={"field": name})
    return dt


def query_filters(*names: str) -> dict[str, str]:
    out: dict[str, str] = {}
    for name in names:
        value = str(request.args.get(name) or "").strip()
        if value:
            out[name] = value
    return out
