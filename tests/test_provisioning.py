# tests/test_provisioning.py
# -*- coding: utf-8 -*-
import pytest

import turbopay_app.services.provisioning as provisioning
from turbopay_app.errors import NotFoundError
from turbopay_app.models import Customer


def test_temp_password_shape():
    for _ in range(200):
        pw = provisioning.generate_temp_password()
        assert len(pw) == 8
        assert set(pw) <= set(provisioning.TEMP_PASSWORD_ALPHABET)


def test_temp_password_alphabet_has_no_ambiguous_chars():
    assert not set("0O1Il") & set(provisioning.TEMP_PASSWORD_ALPHABET)


def test_temp_password_uses_secrets(monkeypatch):
    calls = []

    def fake_choice(seq):
        calls.append(seq)
        return seq[0]
    monkeypatch.setattr(provisioning.secrets, "choice", fake_choice)
    assert provisioning.generate_temp_password() == "A" * 8
    assert len(calls) == 8


def test_grant_access_creates_active_customer(services, payment_factory, db_session):
    payment = payment_factory("5001", status="approved")
    with services.ledger.atomic():
        grant = services.provisioner.grant_access(payment)

    assert grant.email == "jane@example.com"
    assert grant.payment_id == "5001"
    c = db_session.query(Customer).filter_by(email="jane@example.com").one()
    assert c.access_granted is True
    assert c.status == "active"
    # só o hash fica gravado
    assert c.temp_password != grant.temp_password
    assert c.check_temp_password(grant.temp_password)


def test_deliver_credentials_renders_login_url(services, mailer):
    grant = provisioning.AccessGrant("jane@example.com", "Jane", "monthly", "Abc23456", payment_id="1")
    result = services.provisioner.deliver_credentials(grant)
    assert result.delivered is True
    body = mailer.sent[0].body
    assert "Abc23456" in body
    assert "https://app.example.test/login" in body


def test_resend_requires_granted_customer(services, db_session):
    db_session.add(Customer(email="x@example.com", name="X", access_granted=False))
    db_session.commit()
    with pytest.raises(NotFoundError):
        services.provisioner.resend_credentials("x@example.com")
    with pytest.raises(NotFoundError):
        services.provisioner.resend_credentials("missing@example.com")


def test_authenticate_stamps_last_login(services, db_session):
    c = Customer(email="jane@example.com", name="Jane", access_granted=True, status="active")
    c.set_temp_password("Abc23456")
    db_session.add(c); db_session.commit()

    assert services.provisioner.authenticate("jane@example.com", "wrong") is None
    logged = services.provisioner.authenticate("jane@example.com", "Abc23456")
    assert logged is not None
    assert logged.last_login is not None
