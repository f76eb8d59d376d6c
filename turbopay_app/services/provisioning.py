# turbopay_app/services/provisioning.py
# -*- coding: utf-8 -*-
"""Provisionamento de clientes após a aprovação do pagamento."""
from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone

from flask import current_app

from ..errors import NotFoundError
from .notifications import CREDENTIALS, DeliveryResult

# sem caracteres ambíguos: 0/O, 1/I/l
TEMP_PASSWORD_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZabcdefghijkmnpqrstuvwxyz23456789"
TEMP_PASSWORD_LENGTH = 8


def generate_temp_password(length: int = TEMP_PASSWORD_LENGTH) -> str:
    return "".join(secrets.choice(TEMP_PASSWORD_ALPHABET) for _ in range(length))


@dataclass
class AccessGrant:
    email: str
    name: str
    plan: str | None
    temp_password: str
    payment_id: str | None = None


class CustomerProvisioner:
    def __init__(self, ledger, dispatcher, login_url: str):
        self.ledger = ledger
        self.dispatcher = dispatcher
        self.login_url = login_url

    def grant_access(self, payment) -> AccessGrant:
        """Cria/ativa o cliente do pagamento e emite nova senha temporária.

        Roda dentro da transação do chamador; quem chama garante uma única
        execução por pagamento (ver ``LedgerStore.claim_provisioning``).
        """
        password = generate_temp_password()
        customer = self.ledger.upsert_customer(
            payment.customer_email,
            name=payment.customer_name,
            document=payment.customer_document,
            plan=payment.plan,
            status="active",
            access_granted=True,
        )
        customer.set_temp_password(password)
        current_app.logger.info(
            "Access granted email=%s payment_id=%s plan=%s", customer.email, payment.id, payment.plan
        )
        return AccessGrant(customer.email, customer.name, customer.plan, password, payment_id=payment.id)

    def deliver_credentials(self, grant: AccessGrant) -> DeliveryResult:
        result = self.dispatcher.send(CREDENTIALS, grant.email, {
            "email": grant.email,
            "name": grant.name,
            "password": grant.temp_password,
            "login_url": self.login_url,
            "transaction_id": grant.payment_id,
        })
        if not result.delivered:
            # acesso continua concedido; reenvio via admin
            current_app.logger.warning(
                "Credentials not delivered email=%s payment_id=%s stage=credentials: %s",
                grant.email, grant.payment_id, result.error,
            )
        return result

    def resend_credentials(self, email: str) -> DeliveryResult:
        """Gera nova senha temporária para um cliente já liberado e reenvia."""
        with self.ledger.atomic():
            customer = self.ledger.get_customer(email)
            if customer is None or not customer.access_granted:
                raise NotFoundError(f"Customer {email} has no access granted", stage="resend_credentials")
            password = generate_temp_password()
            customer.set_temp_password(password)
            customer.updated_at = datetime.now(timezone.utc)
            grant = AccessGrant(customer.email, customer.name, customer.plan, password)
        return self.deliver_credentials(grant)

    def authenticate(self, email: str, password: str):
        with self.ledger.atomic():
            customer = self.ledger.get_customer(email)
            if customer is None or not customer.check_temp_password(password):
                return None
            if customer.access_granted:
                customer.last_login = datetime.now(timezone.utc)
        return customer
