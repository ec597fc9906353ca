from __future__ import annotations

import logging

from cachetools import TTLCache
from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS

from actions import HiringService
from app.middlewares.error_handler import init_error_handlers
from app.middlewares.logging import init_request_logging
from app.middlewares.rate_limit import init_rate_limiting
from app.middlewares.request_id import init_request_id
from app.middlewares.security_headers import init_security_headers
from app.routes.auth import auth_bp
from app.routes.core import core_bp
from app.routes.files import files_bp
from app.routes.hiring import hiring_bp
from app.scheduler import maybe_start_scheduler
from app.utils.logging import setup_logging
from config import Config
from db import init_engine, init_schema
from remote_store import SqlTableStore
from services.storage import build_blob_store


def create_app(cfg: Config | None = None) -> Flask:
    load_dotenv()

    cfg = cfg or Config()
    cfg.validate()
    setup_logging(cfg.LOG_LEVEL)

    init_engine(cfg.DATABASE_URL)
    init_schema()

    app = Flask(__name__)
    app.config["CFG"] = cfg
    app.config["MAX_CONTENT_LENGTH"] = cfg.RESUME_MAX_BYTES + 1024 * 1024

    svc = HiringService.from_store(SqlTableStore(), blob_store=build_blob_store(cfg), cfg=cfg)
    app.extensions["hiring_service"] = svc
    # Tokens already answered with a LOGIN audit entry; expiry matches the token lifetime.
    app.extensions["seen_tokens"] = TTLCache(maxsize=10_000, ttl=max(60, cfg.JWT_EXP_MINUTES * 60))

    CORS(
        app,
        origins=cfg.ALLOWED_ORIGINS,
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        max_age=3600,
    )

    init_request_id(app)
    init_security_headers(app)
    init_rate_limiting(app)
    init_request_logging(app)
    init_error_handlers(app)

    app.register_blueprint(core_bp)
    app.register_blueprint(files_bp)
    app.register_blueprint(auth_bp, url_prefix="/api/v1/auth")
    app.register_blueprint(hiring_bp, url_prefix="/api/v1")

    maybe_start_scheduler(svc, cfg)

    logging.getLogger("app").info("app started env=%s version=%s", cfg.APP_ENV, cfg.APP_VERSION)
    return app
