from __future__ import annotations

import json
import re
import threading
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from cachetools import TTLCache
from dateutil import parser as dt_parser

ALLOWED_ERROR_CODES = {
    "BAD_REQUEST",
    "AUTH_INVALID",
    "FORBIDDEN",
    "NOT_FOUND",
    "CONFLICT",
    "REMOTE_STORE",
    "RATE_LIMITED",
    "INTERNAL",
}

_CODE_MAP = {
    "BAD_JSON": "BAD_REQUEST",
    "VALIDATION": "BAD_REQUEST",
    "CONFIG_MISSING": "INTERNAL",
    "UNKNOWN_ERROR": "INTERNAL",
    "AUTH_REQUIRED": "AUTH_INVALID",
    "RBAC_DENIED": "FORBIDDEN",
    "REFERENTIAL_VIOLATION": "CONFLICT",
}


def map_error_code(code: str) -> str:
    c = str(code or "").upper().strip()
    if c in ALLOWED_ERROR_CODES:
        return c
    return _CODE_MAP.get(c, "INTERNAL")


class ApiError(Exception):
    def __init__(self, code: str, message: str, http_status: int = 400, details: Any = None):
        super().__init__(message)
        self.code = map_error_code(code)
        self.message = str(message or "")
        self.http_status = http_status
        self.details = details


class RemoteStoreError(ApiError):
    """The remote table or blob call itself failed (network, auth, constraint)."""

    def __init__(self, message: str, *, code: str = "REMOTE_STORE", http_status: int = 502, details: Any = None):
        super().__init__(code, message, http_status=http_status, details=details)


class ReferentialViolation(ApiError):
    """A business-rule guard blocked the operation; `details["blockers"]` lists the referencing ids."""

    def __init__(self, message: str, *, blockers: list[str] | None = None):
        super().__init__("CONFLICT", message, http_status=409, details={"blockers": list(blockers or [])})


class MappingError(ValueError):
    pass


class AuditWriteFailure(RuntimeError):
    pass


def ok(data: Any, http_status: int = 200):
    return {"success": True, "data": data}, http_status


def err(code: str, message: str, http_status: int = 400, details: Any = None):
    return {
        "success": False,
        "error": {"code": map_error_code(code), "message": str(message or ""), "details": details},
    }, http_status


def iso_utc_now() -> str:
    dt = datetime.now(timezone.utc)
    # Match JS Date.toJSON() millisecond precision.
    dt = dt.replace(microsecond=(dt.microsecond // 1000) * 1000)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_iso_utc(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    x = dt.astimezone(timezone.utc)
    x = x.replace(microsecond=(x.microsecond // 1000) * 1000)
    return x.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_datetime_maybe(value: Any, *, strict: bool = False) -> Optional[datetime]:
    """
    Parse ISO-ish strings or datetimes into aware UTC datetimes; naive values are taken as UTC.

    strict=True accepts ISO-8601 only (no fuzzy dateutil guessing).
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        s = str(value or "").strip()
        if not s:
            return None
        try:
            dt = dt_parser.isoparse(s)
        except (ValueError, OverflowError):
            if strict:
                return None
            try:
                dt = dt_parser.parse(s)
            except (ValueError, OverflowError):
                return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def new_uuid() -> str:
    return str(uuid.uuid4())


def redact_for_audit(obj: Any) -> Any:
    if not obj or not isinstance(obj, (dict, list)):
        return obj
    try:
        copy = json.loads(json.dumps(obj, default=str))
    except (TypeError, ValueError):
        return obj

    secret_keys = {
        "token",
        "accessToken",
        "sessionToken",
        "password",
        "apiKey",
        "secret",
    }

    def _walk(x: Any) -> Any:
        if isinstance(x, dict):
            for k in list(x.keys()):
                if k in secret_keys:
                    x[k] = "[REDACTED]"
                else:
                    x[k] = _walk(x[k])
            return x
        if isinstance(x, list):
            return [_walk(v) for v in x]
        return x

    return _walk(copy)


_CONTROL_CHARS_RE = re.compile(r"[\x00-\x1F\x7F]")
_WINDOWS_FORBIDDEN_RE = re.compile(r"[\\/:*?\"<>|]+")


def sanitize_filename(name: str) -> str:
    s = str(name or "").strip()
    s = _CONTROL_CHARS_RE.sub("", s)
    s = _WINDOWS_FORBIDDEN_RE.sub("_", s)
    s = re.sub(r"\s+", "_", s).strip()
    s = re.sub(r"_+", "_", s)
    if not s or s in {".", ".."}:
        s = "file"
    if len(s) > 120:
        s = s[:120]
    return s


class SimpleRateLimiter:
    """Fixed one-minute windows per key; counters live in a TTLCache so idle keys age out."""

    def __init__(self, *, window_seconds: int = 60, max_keys: int = 50_000):
        self._window_seconds = window_seconds
        self._lock = threading.Lock()
        self._counts = TTLCache(maxsize=max_keys, ttl=window_seconds * 2)

    @staticmethod
    def _parse_limit_per_minute(limit: str) -> int:
        m = re.match(r"^\s*(\d+)\s+per\s+minute\s*$", str(limit or ""), re.IGNORECASE)
        if not m:
            return 300
        return max(1, int(m.group(1)))

    def check(self, key: str, limit: str) -> None:
        max_per_minute = self._parse_limit_per_minute(limit)
        window_key = (key, int(time.time() // self._window_seconds))
        with self._lock:
            current = int(self._counts.get(window_key, 0)) + 1
            self._counts[window_key] = current
        if current > max_per_minute:
            raise ApiError("RATE_LIMITED", "Rate limit exceeded", http_status=429)
