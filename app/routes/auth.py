from __future__ import annotations

import hmac

from flask import Blueprint, current_app, jsonify, request

from app.utils.auth import create_access_token, get_current_user
from app.utils.validators import require_json
from utils import ApiError

auth_bp = Blueprint("auth", __name__)


@auth_bp.post("/bootstrap")
def bootstrap():
    """Create the first admin user. Only works while the users table is empty."""
    cfg = current_app.config["CFG"]
    if not cfg.BOOTSTRAP_TOKEN:
        raise ApiError("FORBIDDEN", "Bootstrap is disabled", http_status=403)

    provided = str(request.headers.get("X-Bootstrap-Token") or "").strip()
    if not provided or not hmac.compare_digest(provided, cfg.BOOTSTRAP_TOKEN):
        raise ApiError("FORBIDDEN", "Invalid bootstrap token", http_status=403)

    svc = current_app.extensions["hiring_service"]
    if svc.gateway.list("users"):
        raise ApiError("CONFLICT", "Bootstrap already completed", http_status=409)

    body = require_json()
    user = svc.users.create(
        {"name": body.get("name") or "Administrator", "email": body.get("email"), "role": "admin"},
        "system",
    )
    token = create_access_token(cfg, user["id"], user["role"])
    return jsonify({"success": True, "data": {"access_token": token, "token_type": "bearer", "user": user}}), 201


@auth_bp.get("/me")
def me():
    return jsonify({"success": True, "data": get_current_user()})
