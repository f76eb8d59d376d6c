# tests/conftest.py
# -*- coding: utf-8 -*-
import os
import sys
import smtplib
import pathlib
from datetime import datetime, timezone
from decimal import Decimal

import pytest


# =====================================================================================
# Localização do projeto (garante que "turbopay_app" e "config" estejam no sys.path)
# =====================================================================================
def _add_project_root():
    here = pathlib.Path(__file__).resolve()
    for candidate in [here.parent, *here.parents]:
        if (candidate / "turbopay_app").is_dir():
            if str(candidate) not in sys.path:
                sys.path.insert(0, str(candidate))
            return candidate
    return None


PROJECT_ROOT = _add_project_root()


@pytest.fixture(autouse=True, scope="session")
def _testing_env():
    os.environ["APP_ENV"] = "testing"
    os.environ["FLASK_ENV"] = "testing"
    yield


# =====================================================================================
# Fakes dos colaboradores externos
#   - processador (Mercado Pago): guarda o "estado autoritativo" de cada pagamento
#   - transporte SMTP: guarda as mensagens enviadas
# =====================================================================================
class FakeProcessor:
    configured = True

    def __init__(self):
        self.payments = {}
        self.created = []
        self.get_calls = []
        self.create_status = "pending"
        self.create_status_detail = "pending_contingency"
        self.create_error = None
        self.get_error = None
        self._next_id = 90000

    def create(self, charge, idempotency_key=None):
        from turbopay_app.services.processor import PaymentResult
        if self.create_error is not None:
            raise self.create_error
        self.created.append((charge, idempotency_key))
        self._next_id += 1
        data = {
            "id": self._next_id,
            "status": self.create_status,
            "status_detail": self.create_status_detail,
            "transaction_amount": charge["transaction_amount"],
            "installments": charge["installments"],
            "payment_method_id": charge.get("payment_method_id") or "visa",
            "external_reference": charge["external_reference"],
            "date_created": datetime.now(timezone.utc).isoformat(),
        }
        self.payments[str(self._next_id)] = data
        return PaymentResult.from_api(data)

    def set_state(self, payment_id, status, status_detail=None):
        data = self.payments.setdefault(str(payment_id), {"id": payment_id})
        data["status"] = status
        data["status_detail"] = status_detail
        return data

    def get(self, payment_id):
        from turbopay_app.errors import NotFoundError
        from turbopay_app.services.processor import PaymentResult
        self.get_calls.append(str(payment_id))
        if self.get_error is not None:
            raise self.get_error
        data = self.payments.get(str(payment_id))
        if data is None:
            raise NotFoundError("Payment not found", payment_id=str(payment_id), stage="processor_get")
        return PaymentResult.from_api(data)


class FakeTransport:
    """Recebe flask_mail.Message; `fail` simula SMTP fora, `error` qualquer outra exceção."""
    configured = True

    def __init__(self):
        self.sent = []
        self.fail = False
        self.error = None

    def send(self, message):
        if self.error is not None:
            raise self.error
        if self.fail:
            raise smtplib.SMTPException("smtp down")
        self.sent.append(message)
        return message.msgId

    def subjects(self):
        return [m.subject for m in self.sent]


@pytest.fixture
def processor():
    return FakeProcessor()


@pytest.fixture
def mailer():
    return FakeTransport()


# =====================================================================================
# App Flask com SQLite temporário, schema criado por teste
# =====================================================================================
@pytest.fixture
def app(tmp_path, processor, mailer):
    from config import TestingConfig
    from turbopay_app import create_app
    from turbopay_app.extensions import db

    class _Cfg(TestingConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'turbopay_test.sqlite'}"

    app = create_app(_Cfg, processor=processor, mail_transport=mailer)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db_session(app):
    from turbopay_app.extensions import db
    yield db.session
    # limpa qualquer pendência sem manter transação aberta
    db.session.rollback()


@pytest.fixture
def services(app):
    from turbopay_app.services.registry import get_services
    return get_services()


@pytest.fixture
def admin_headers(app):
    return {"Authorization": f"Bearer {app.config['ADMIN_TOKEN']}"}


# =====================================================================================
# Helpers/Factories
# =====================================================================================
def make_payment(db_session, payment_id="5001", **overrides):
    from turbopay_app.models import Payment
    data = dict(
        id=str(payment_id),
        external_reference=f"TURBO_test_{payment_id}",
        status="pending",
        status_detail="pending_contingency",
        amount=Decimal("49.90"),
        installments=1,
        payment_method="visa",
        plan="monthly",
        customer_email="jane@example.com",
        customer_name="Jane Doe",
        customer_document="12345678909",
        metadata_json="{}",
    )
    data.update(overrides)
    p = Payment(**data)
    db_session.add(p); db_session.commit()
    return p


@pytest.fixture
def reload_row(db_session):
    """Relê do banco (o request do test client usa outra sessão)."""
    def _reload(Model, key):
        db_session.expire_all()
        return db_session.get(Model, key)
    return _reload


@pytest.fixture
def payment_factory(db_session):
    def _make(payment_id="5001", **overrides):
        return make_payment(db_session, payment_id, **overrides)
    return _make
