# turbopay_app/__init__.py
# -*- coding: utf-8 -*-
from __future__ import annotations

import os

from flask import Flask, jsonify, request
from config import Config, TestingConfig, StagingConfig, ProductionConfig
from .extensions import init_extensions, register_cli
from .services.registry import init_services
from .blueprints.core import bp as core_bp
from .blueprints.payments import bp as payments_bp
from .blueprints.webhooks import bp as webhooks_bp
from .blueprints.customers import bp as customers_bp
from .blueprints.admin import admin_bp

_ENV_CONFIGS = {
    "testing": TestingConfig,
    "staging": StagingConfig,
    "production": ProductionConfig,
}


def create_app(config_object: type[Config] | None = None, *, processor=None, mail_transport=None) -> Flask:
    """
    Fábrica da aplicação. Ledger, processador e e-mail são montados uma vez
    aqui e injetados nos componentes (ver services/registry.py).
    """
    app = Flask(__name__, template_folder="../templates")
    if config_object is None:
        config_object = _ENV_CONFIGS.get(os.getenv("APP_ENV", "").lower(), Config)
    app.config.from_object(config_object)

    # Extensões (DB/Bcrypt/Mail/Migrate)
    init_extensions(app)

    # Componentes do fluxo de pagamento (ficam em app.extensions["turbopay"])
    init_services(app, processor=processor, mail_transport=mail_transport)

    # Blueprints
    app.register_blueprint(core_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(webhooks_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(admin_bp)
    # CLI (ex.: flask init-db)
    register_cli(app)

    @app.errorhandler(404)
    def not_found(_err):
        return jsonify(error="Route not found", path=request.path, method=request.method), 404

    return app
