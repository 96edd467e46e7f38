# rentledger_backend/__init__.py
from __future__ import annotations

import logging
import os
from typing import Any, Optional

from flask import Flask, jsonify
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix

from .cli import register_cli
from .errors import register_error_handlers
from .extensions import db, init_extensions
from .routes import register_routes


# --- Config ------------------------------------------------------------------
def _get_allowed_origins(app: Flask) -> list[str]:
    """Allowed CORS origins: local UI dev servers plus CORS_ALLOWED_ORIGINS."""
    default = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]
    # Support comma-separated list in env
    extra = app.config.get("CORS_ALLOWED_ORIGINS") or ""
    extra_list = [o.strip() for o in extra.split(",") if o.strip()]
    return sorted(set(default + extra_list))


def _load_config(app: Flask, config_object: Optional[str | Any]) -> None:
    """
    `config_object` may be:
      - a config class or instance
      - dotted path to a config class (e.g., "rentledger_backend.config.ProductionConfig")
      - None (then we'll try CONFIG_CLASS env or default to rentledger_backend.config.Config)
    """
    if config_object is None:
        config_object = os.getenv("CONFIG_CLASS", "rentledger_backend.config.Config")

    if isinstance(config_object, str):
        module, _, cls = config_object.rpartition(".")
        config_object = getattr(__import__(module, fromlist=[cls]), cls)
    if isinstance(config_object, type):
        config_object = config_object()
    app.config.from_object(config_object)
    app.config.setdefault("API_PREFIX", "/api")


def _configure_logging(app: Flask) -> None:
    """JSON logs to stdout."""
    level = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    app.logger.setLevel(level)
    root = logging.getLogger()
    root.setLevel(level)

    # avoid duplicate handlers in reloaders
    if not any(isinstance(h, logging.StreamHandler) for h in root.handlers):
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            fmt='{"ts":"%(asctime)s","level":"%(levelname)s","msg":"%(message)s","name":"%(name)s"}',
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )
        handler.setFormatter(formatter)
        root.addHandler(handler)


def _configure_cors(app: Flask) -> None:
    CORS(
        app,
        resources={app.config["API_PREFIX"] + "/*": {"origins": _get_allowed_origins(app)}},
        supports_credentials=True,
        methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
        max_age=86400,
    )


def _configure_proxy(app: Flask) -> None:
    """Respect X-Forwarded-* when running behind a proxy."""
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)  # type: ignore


# --- Application Factory ------------------------------------------------------
def create_app(config_object: Optional[str | Any] = None) -> Flask:
    """Standard Flask application factory."""
    app = Flask(__name__)
    _load_config(app, config_object)

    # Core middleware/logging/CORS
    _configure_logging(app)
    _configure_proxy(app)
    _configure_cors(app)

    init_extensions(app)
    register_routes(app)
    register_error_handlers(app)
    register_cli(app)

    @app.get("/")
    def root():
        return jsonify({"service": "rentledger-backend", "message": "See /api/health"}), 200

    return app


__all__ = ["create_app", "db"]
