# turbopay_app/blueprints/payments.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime, timezone
from flask import Blueprint, request, jsonify, current_app

from ..errors import PaymentError
from ..services.registry import get_services

bp = Blueprint("payments", __name__, url_prefix="/payments")


def _error_response(err: PaymentError):
    return jsonify(err.to_dict()), err.status_code


@bp.route("/process", methods=["POST"])
def process_payment():
    """Cria a cobrança no processador e grava a linha inicial no ledger."""
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    try:
        body = get_services().intake.process(data)
    except PaymentError as e:
        if e.status_code >= 500:
            current_app.logger.error("Payment processing error stage=%s payment_id=%s: %s",
                                     e.stage, e.payment_id, e.message)
        return _error_response(e)
    return jsonify(body)


@bp.route("/status/<payment_id>")
def payment_status(payment_id: str):
    """Status atual segundo o processador."""
    try:
        return jsonify(get_services().intake.status(payment_id))
    except PaymentError as e:
        current_app.logger.warning("Payment status error payment_id=%s: %s", payment_id, e.message)
        return _error_response(e)


@bp.route("/test")
def payments_test():
    return jsonify(
        message="Payment API is working",
        timestamp=datetime.now(timezone.utc).isoformat(),
        mercadopago_configured=get_services().processor.configured,
    )
