# turbopay_app/extensions.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_mail import Mail
from flask_migrate import Migrate
from sqlalchemy import text


db = SQLAlchemy()
bcrypt = Bcrypt()
mail = Mail()
migrate = Migrate()

def init_extensions(app):
    # DB/Bcrypt/Mail/Migrate
    db.init_app(app)
    bcrypt.init_app(app)
    mail.init_app(app)
    migrate.init_app(app, db)

def register_cli(app):
    @app.cli.command("init-db")
    def init_db_cmd():
        """Cria as tabelas payments/customers. Em produção prefira `flask db upgrade`."""
        with app.app_context():
            db.session.execute(text("SELECT 1"))
            db.create_all()
            tables = ", ".join(sorted(db.metadata.tables))
            print(f"Tabelas criadas: {tables}")
