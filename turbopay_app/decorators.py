# turbopay_app/decorators.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import hmac
from functools import wraps
from flask import current_app, jsonify, request

def admin_token_required(view_func):
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        expected = current_app.config.get("ADMIN_TOKEN") or ""
        header = request.headers.get("Authorization", "")
        # sem ADMIN_TOKEN configurado o painel fica fechado
        if not expected or not hmac.compare_digest(header, f"Bearer {expected}"):
            return jsonify(error="Unauthorized", message="Valid admin token required"), 401
        return view_func(*args, **kwargs)
    return wrapper
