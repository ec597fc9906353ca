from __future__ import annotations

import functools
import hashlib
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, TypeVar

import jwt
from flask import current_app, g, request

from config import Config
from utils import ApiError

_T = TypeVar("_T", bound=Callable[..., Any])


def create_access_token(cfg: Config, user_id: str, role: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user_id),
        "role": str(role or ""),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=cfg.JWT_EXP_MINUTES)).timestamp()),
    }
    return jwt.encode(payload, cfg.JWT_SECRET, algorithm="HS256")


def _decode_token(token: str) -> dict[str, Any]:
    cfg = current_app.config["CFG"]
    try:
        return jwt.decode(token, cfg.JWT_SECRET, algorithms=["HS256"])
    except jwt.ExpiredSignatureError as e:
        raise ApiError("AUTH_INVALID", "Token expired", http_status=401) from e
    except jwt.InvalidTokenError as e:
        raise ApiError("AUTH_INVALID", "Invalid token", http_status=401) from e


def _bearer_token() -> str:
    authz = str(request.headers.get("Authorization") or "").strip()
    if authz.lower().startswith("bearer "):
        return authz.split(" ", 1)[1].strip()
    return ""


def _note_login(token: str, user_id: str) -> None:
    seen = current_app.extensions["seen_tokens"]
    key = hashlib.sha256(token.encode("utf-8")).hexdigest()
    if key in seen:
        return
    seen[key] = user_id
    current_app.extensions["hiring_service"].record_login(user_id)


def get_current_user() -> dict[str, str]:
    """Resolve the bearer token to a stored user; the role comes from the user record, not the token."""
    token = _bearer_token()
    if not token:
        raise ApiError("AUTH_INVALID", "Missing bearer token", http_status=401)

    payload = _decode_token(token)
    sub = str(payload.get("sub") or "").strip()
    if not sub:
        raise ApiError("AUTH_INVALID", "Invalid token payload", http_status=401)

    svc = current_app.extensions["hiring_service"]
    user = svc.users.get_by_id(sub)
    if not user:
        raise ApiError("AUTH_INVALID", "User not found", http_status=401)

    _note_login(token, sub)
    current = {
        "id": str(user["id"]),
        "email": str(user.get("email") or ""),
        "name": str(user.get("name") or ""),
        "role": str(user.get("role") or "").lower().strip(),
    }
    g.user_id = current["id"]
    g.current_user = current
    return current


def require_roles(roles: list[str] | None = None) -> Callable[[_T], _T]:
    """Require a valid token; when `roles` is given the user's role must be one of them."""
    allowed = {str(r or "").lower().strip() for r in (roles or []) if str(r or "").strip()}

    def _decorator(fn: _T) -> _T:
        @functools.wraps(fn)
        def _wrapped(*args, **kwargs):
            user = get_current_user()
            if allowed and user["role"] not in allowed:
                raise ApiError("FORBIDDEN", "Insufficient role", http_status=403, details={"required": sorted(allowed)})
            return fn(*args, **kwargs)

        return _wrapped  # type: ignore[return-value]

    return _decorator
