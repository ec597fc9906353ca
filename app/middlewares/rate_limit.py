from __future__ import annotations

from flask import Flask, request

from utils import SimpleRateLimiter


def client_ip() -> str:
    ip = request.headers.get("X-Forwarded-For", request.remote_addr or "")
    if ip and "," in ip:
        ip = ip.split(",", 1)[0].strip()
    return ip or ""


def init_rate_limiting(app: Flask) -> None:
    cfg = app.config["CFG"]
    limiter = SimpleRateLimiter()
    app.extensions["rate_limiter"] = limiter

    @app.before_request
    def _rate_limit():
        path = request.path or ""
        if not path.startswith("/api/v1/") or request.method == "OPTIONS":
            return None

        ip = client_ip()
        limiter.check(f"{ip}:GLOBAL", cfg.RATE_LIMIT_GLOBAL)
        limiter.check(f"{ip}:{request.method}:{path}", cfg.RATE_LIMIT_DEFAULT)
        return None
