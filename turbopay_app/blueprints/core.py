# turbopay_app/blueprints/core.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import time
from datetime import datetime, timezone
from flask import Blueprint, jsonify, current_app
from sqlalchemy import text

from ..extensions import db
from ..services.registry import get_services

bp = Blueprint("core", __name__)
_STARTED = time.monotonic()


def uptime() -> float:
    return round(time.monotonic() - _STARTED, 3)


def database_status() -> str:
    try:
        db.session.execute(text("SELECT 1"))
        return "ok"
    except Exception as e:
        current_app.logger.warning("Health check database error: %s", e)
        db.session.rollback()
        return "unavailable"


def service_status() -> dict:
    services = get_services()
    return {
        "database": database_status(),
        "email": "configured" if services.dispatcher.configured else "not configured",
        "mercadopago": "configured" if services.processor.configured else "not configured",
    }


@bp.route("/")
def index():
    return jsonify(
        status="OK",
        service=current_app.config["SERVICE_NAME"],
        version=current_app.config["VERSION"],
        timestamp=datetime.now(timezone.utc).isoformat(),
        endpoints={
            "payments": "/payments",
            "admin": "/admin",
            "webhooks": "/webhooks",
            "health": "/health",
        },
    )


@bp.route("/health")
def health():
    status = service_status()
    return jsonify(
        status="healthy" if status["database"] == "ok" else "degraded",
        database=status["database"],
        services=status,
        uptime=uptime(),
        environment=current_app.config.get("FLASK_ENV"),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
