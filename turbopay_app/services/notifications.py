# turbopay_app/services/notifications.py
# -*- coding: utf-8 -*-
"""Envio de e-mails transacionais (confirmação, credenciais, teste).

``NotificationDispatcher.send`` nunca levanta por falha de entrega: devolve um
``DeliveryResult`` e registra o erro no log. Quem chama decide o que fazer.
"""
from __future__ import annotations

from dataclasses import dataclass

from flask import current_app, render_template
from flask_mail import Message

CONFIRMATION = "confirmation"
CREDENTIALS = "credentials"
TEST = "test"

SUBJECTS = {
    CONFIRMATION: "Pagamento confirmado - {product}",
    CREDENTIALS: "Seus dados de acesso - {product}",
    TEST: "E-mail de teste - {product}",
}


@dataclass
class DeliveryResult:
    kind: str
    recipient: str
    delivered: bool
    message_id: str | None = None
    error: str | None = None


class MailNotConfigured(RuntimeError):
    pass


class MailTransport:
    """Entrega via Flask-Mail (``extensions.mail``)."""

    def __init__(self, mail):
        self.mail = mail

    @property
    def configured(self) -> bool:
        return bool(current_app.config.get("MAIL_SERVER"))

    def send(self, message: Message) -> str:
        if not self.configured:
            raise MailNotConfigured("MAIL_SERVER (SMTP_HOST) not configured")
        self.mail.send(message)
        return message.msgId


class NotificationDispatcher:
    def __init__(self, transport, sender: str, product_name: str = "Concurso Turbo IA"):
        self.transport = transport
        self.sender = sender
        self.product_name = product_name

    @property
    def configured(self) -> bool:
        return bool(getattr(self.transport, "configured", True))

    def build_message(self, kind: str, recipient: str, payload: dict) -> Message:
        if kind not in SUBJECTS:
            raise ValueError(f"Unknown notification kind: {kind}")
        return Message(
            subject=SUBJECTS[kind].format(product=self.product_name),
            recipients=[recipient],
            sender=self.sender,
            body=render_template(f"email/{kind}.txt", product=self.product_name, **payload),
        )

    def send(self, kind: str, recipient: str, payload: dict) -> DeliveryResult:
        if kind not in SUBJECTS:
            raise ValueError(f"Unknown notification kind: {kind}")
        try:
            message = self.build_message(kind, recipient, payload)
            message_id = self.transport.send(message)
        except Exception as e:
            # template, SMTP ou rede: falha de e-mail não desfaz cobrança nem acesso
            current_app.logger.exception(
                "Notification delivery failed kind=%s recipient=%s payment_id=%s stage=notify",
                kind, recipient, payload.get("transaction_id"),
            )
            return DeliveryResult(kind, recipient, delivered=False, error=str(e) or type(e).__name__)
        current_app.logger.info("Notification sent kind=%s recipient=%s", kind, recipient)
        return DeliveryResult(kind, recipient, delivered=True, message_id=message_id)
