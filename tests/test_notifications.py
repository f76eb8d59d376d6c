# tests/test_notifications.py
# -*- coding: utf-8 -*-
import pytest
from jinja2 import TemplateNotFound

import turbopay_app.services.notifications as notifications
from turbopay_app.extensions import mail
from turbopay_app.services.notifications import (
    CONFIRMATION,
    CREDENTIALS,
    MailNotConfigured,
    MailTransport,
    NotificationDispatcher,
)


def _dispatcher(transport, **kw):
    kw.setdefault("sender", "TurboPay <no-reply@example.com>")
    return NotificationDispatcher(transport, **kw)


# --------------------------
# transporte Flask-Mail
# --------------------------
def test_mail_transport_not_configured(app):
    app.config["MAIL_SERVER"] = ""
    transport = MailTransport(mail)
    assert transport.configured is False
    with pytest.raises(MailNotConfigured):
        transport.send(None)


def test_unconfigured_mail_is_reported_not_raised(app):
    app.config["MAIL_SERVER"] = ""
    result = _dispatcher(MailTransport(mail)).send(CONFIRMATION, "jane@example.com", {"name": "Jane", "transaction_id": "1"})
    assert result.delivered is False
    assert "MAIL_SERVER" in result.error


def test_mail_transport_sends_through_flask_mail(app):
    # TESTING suprime o SMTP real; as mensagens ficam no outbox do Flask-Mail
    app.config["MAIL_SERVER"] = "smtp.example.test"
    dispatcher = _dispatcher(MailTransport(mail), product_name="Turbo")
    with mail.record_messages() as outbox:
        result = dispatcher.send(CREDENTIALS, "jane@example.com", {
            "name": "Jane", "email": "jane@example.com", "password": "Abc23456",
            "login_url": "https://app.example.test/login", "transaction_id": "9",
        })
    assert result.delivered is True
    assert len(outbox) == 1
    assert outbox[0].subject == "Seus dados de acesso - Turbo"
    assert outbox[0].recipients == ["jane@example.com"]
    assert result.message_id == outbox[0].msgId


# --------------------------
# dispatcher
# --------------------------
def test_confirmation_message_content(app, mailer):
    result = _dispatcher(mailer, product_name="Turbo").send(CONFIRMATION, "jane@example.com", {
        "name": "Jane", "plan": "annual", "amount": "397.00",
        "transaction_id": "123", "external_reference": "TURBO_1_abc",
    })
    assert result.delivered is True
    msg = mailer.sent[0]
    assert msg.subject == "Pagamento confirmado - Turbo"
    assert msg.sender == "TurboPay <no-reply@example.com>"
    assert "Plano: Anual" in msg.body
    assert "TURBO_1_abc" in msg.body


def test_smtp_failure_is_reported(app, mailer):
    mailer.fail = True
    result = _dispatcher(mailer).send(CONFIRMATION, "jane@example.com", {"name": "Jane", "transaction_id": "1"})
    assert result.delivered is False
    assert result.error == "smtp down"


@pytest.mark.parametrize("error", [
    UnicodeEncodeError("ascii", "sen\xe1", 3, 4, "ordinal not in range(128)"),
    RuntimeError("unexpected"),
    ConnectionResetError(),
])
def test_any_transport_error_is_reported(app, mailer, error):
    mailer.error = error
    result = _dispatcher(mailer).send(CONFIRMATION, "jane@example.com", {"name": "Jane", "transaction_id": "1"})
    assert result.delivered is False
    assert result.error


def test_template_error_is_reported(app, mailer, monkeypatch):
    def _missing(name, **ctx):
        raise TemplateNotFound(name)
    monkeypatch.setattr(notifications, "render_template", _missing)
    result = _dispatcher(mailer).send(CONFIRMATION, "jane@example.com", {"transaction_id": "1"})
    assert result.delivered is False
    assert mailer.sent == []


def test_unknown_kind_is_programming_error(app, mailer):
    with pytest.raises(ValueError):
        _dispatcher(mailer).send("newsletter", "jane@example.com", {})
