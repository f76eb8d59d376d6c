# turbopay_app/blueprints/webhooks.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime, timezone
from flask import Blueprint, request, jsonify, current_app

from ..errors import ValidationError
from ..services.reconciliation import ReconcileOutcome, parse_envelope
from ..services.registry import get_services

bp = Blueprint("webhooks", __name__, url_prefix="/webhooks")


@bp.route("/processor", methods=["POST"])
def processor_webhook():
    """
    Notificação do processador. Responde 200 sempre que houve tentativa de
    processar; falhas internas ficam no log (o processador reenvia em não-2xx).
    """
    body = request.get_json(silent=True)
    try:
        topic, action, resource_id = parse_envelope(body)
    except ValidationError as e:
        current_app.logger.warning("Invalid webhook envelope: %s body=%r", e.message, body)
        ack = ReconcileOutcome(processed=False, result="invalid", error=e.message).to_ack()
        return jsonify(ack), 400

    outcome = get_services().reconciler.handle(topic, action, resource_id)
    return jsonify(outcome.to_ack()), 200


@bp.route("/test", methods=["POST"])
def test_webhook():
    body = request.get_json(silent=True)
    current_app.logger.info("Test webhook received: %r", body)
    return jsonify(
        message="Test webhook received successfully",
        body=body,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@bp.route("/status")
def webhook_status():
    return jsonify(
        status="active",
        service=f"{current_app.config['PRODUCT_NAME']} Webhooks",
        endpoints={"processor": "/webhooks/processor", "test": "/webhooks/test"},
        accepted_types=["payment"],
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
