# turbopay_app/services/registry.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from dataclasses import dataclass

from flask import current_app

from ..extensions import db, mail
from .intake import PaymentIntake
from .ledger import LedgerStore
from .notifications import MailTransport, NotificationDispatcher
from .processor import MercadoPagoClient
from .provisioning import CustomerProvisioner
from .reconciliation import WebhookReconciler

EXTENSION_KEY = "turbopay"


@dataclass
class Services:
    ledger: LedgerStore
    processor: object
    dispatcher: NotificationDispatcher
    provisioner: CustomerProvisioner
    intake: PaymentIntake
    reconciler: WebhookReconciler


def init_services(app, processor=None, mail_transport=None) -> Services:
    """
    Monta os componentes uma vez na inicialização e guarda em app.extensions.
    processor/mail_transport podem ser injetados (testes, sandbox).
    """
    config = app.config
    ledger = LedgerStore(db)
    processor = processor or MercadoPagoClient.from_config(config)
    transport = mail_transport or MailTransport(mail)
    dispatcher = NotificationDispatcher(transport, sender=config["MAIL_DEFAULT_SENDER"], product_name=config["PRODUCT_NAME"])
    provisioner = CustomerProvisioner(ledger, dispatcher, login_url=config["SYSTEM_URL"])
    services = Services(
        ledger=ledger,
        processor=processor,
        dispatcher=dispatcher,
        provisioner=provisioner,
        intake=PaymentIntake(ledger, processor, dispatcher, config),
        reconciler=WebhookReconciler(ledger, processor, provisioner),
    )
    app.extensions[EXTENSION_KEY] = services
    return services


def get_services() -> Services:
    return current_app.extensions[EXTENSION_KEY]
