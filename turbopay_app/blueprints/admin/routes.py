# turbopay_app/blueprints/admin/routes.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime, timezone
from flask import request, jsonify, current_app
from ..admin import admin_bp
from ...decorators import admin_token_required
from ...errors import NotFoundError
from ...services.notifications import TEST
from ...services.registry import get_services
from ..core import service_status, uptime


def _int_arg(name: str, default: int, minimum: int = 1, maximum: int | None = None) -> int:
    try:
        value = int(request.args.get(name, default))
    except (TypeError, ValueError):
        value = default
    value = max(value, minimum)
    return min(value, maximum) if maximum else value


@admin_bp.route("/stats")
@admin_token_required
def stats():
    data = get_services().ledger.dashboard_stats()
    data["last_updated"] = datetime.now(timezone.utc).isoformat()
    return jsonify(data)


@admin_bp.route("/payments")
@admin_token_required
def payments():
    page = _int_arg("page", 1)
    limit = _int_arg("limit", 50, maximum=1000)
    status = request.args.get("status") or None
    plan = request.args.get("plan") or None
    rows, total = get_services().ledger.list_payments(status=status, plan=plan, page=page, limit=limit)
    return jsonify(
        payments=[p.to_dict() for p in rows],
        pagination={
            "current_page": page,
            "per_page": limit,
            "total_items": total,
            "total_pages": (total + limit - 1) // limit,
        },
        filters={"status": status, "plan": plan},
    )


@admin_bp.route("/payments/recent")
@admin_token_required
def recent_payments():
    rows = get_services().ledger.recent_payments(hours=24)
    return jsonify(recent_payments=[p.to_dict() for p in rows], count=len(rows), period="24 hours")


@admin_bp.route("/test-email", methods=["POST"])
@admin_token_required
def test_email():
    email = ((request.get_json(silent=True) or {}).get("email") or "").strip()
    if not email:
        return jsonify(error="Email address required"), 400
    result = get_services().dispatcher.send(TEST, email, {"sent_at": datetime.now(timezone.utc).isoformat()})
    if not result.delivered:
        return jsonify(error="Failed to send test email", message=result.error), 500
    return jsonify(success=True, message="Test email sent successfully", messageId=result.message_id, to=email)


@admin_bp.route("/customers/<email>/resend-credentials", methods=["POST"])
@admin_token_required
def resend_credentials(email: str):
    """Gera nova senha temporária e reenvia (acesso liberado, e-mail não entregue)."""
    try:
        result = get_services().provisioner.resend_credentials(email.strip().lower())
    except NotFoundError as e:
        return jsonify(e.to_dict()), 404
    current_app.logger.info("Credentials resent email=%s delivered=%s", email, result.delivered)
    return jsonify(
        email=result.recipient,
        delivered=result.delivered,
        message_id=result.message_id,
        error=result.error,
    ), (200 if result.delivered else 502)


@admin_bp.route("/health")
@admin_token_required
def system_health():
    status = service_status()
    return jsonify(
        status="healthy" if status["database"] == "ok" else "degraded",
        services=status,
        uptime=uptime(),
        environment=current_app.config.get("FLASK_ENV"),
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


def _is_set(key: str) -> str:
    return current_app.config.get(key) or "not set"


@admin_bp.route("/config")
@admin_token_required
def config_status():
    """Quais integrações estão configuradas. Nunca devolve segredos."""
    services = get_services()
    cfg = current_app.config
    return jsonify(
        environment=cfg.get("FLASK_ENV"),
        services={
            "mercadopago": {
                "configured": services.processor.configured,
                "timeout": cfg.get("PROCESSOR_TIMEOUT"),
            },
            "email": {
                "configured": services.dispatcher.configured,
                "host": _is_set("MAIL_SERVER"),
                "user": _is_set("MAIL_USERNAME"),
                "sender": _is_set("MAIL_DEFAULT_SENDER"),
            },
            "urls": {
                "backend": _is_set("BACKEND_URL"),
                "system": _is_set("SYSTEM_URL"),
            },
        },
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
