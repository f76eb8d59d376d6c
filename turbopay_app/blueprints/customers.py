# turbopay_app/blueprints/customers.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from flask import Blueprint, request, jsonify

from ..services.registry import get_services

bp = Blueprint("customers", __name__, url_prefix="/customers")


@bp.route("/login", methods=["POST"])
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    if not email or not password:
        return jsonify(error="Email and password required"), 400

    customer = get_services().provisioner.authenticate(email, password)
    if customer is None:
        return jsonify(error="Invalid credentials"), 401
    if not customer.access_granted or customer.status != "active":
        return jsonify(error="Access not granted"), 403
    return jsonify(customer.to_dict())
