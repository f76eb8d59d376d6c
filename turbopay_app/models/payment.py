# turbopay_app/models/payment.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import json
from datetime import datetime, timezone
from ..extensions import db

APPROVED = "approved"
REJECTED = "rejected"
CANCELLED = "cancelled"
REFUNDED = "refunded"
CHARGED_BACK = "charged_back"

TERMINAL_STATUSES = frozenset({APPROVED, REJECTED, CANCELLED})

# únicas saídas aceitas a partir de um status terminal (estornos informados pelo processador)
TERMINAL_EXITS = {
    APPROVED: frozenset({REFUNDED, CHARGED_BACK}),
    REJECTED: frozenset(),
    CANCELLED: frozenset(),
}


def _now():
    return datetime.now(timezone.utc)


def transition_allowed(current: str | None, new: str) -> bool:
    """Status terminais só mudam para os estornos listados em TERMINAL_EXITS."""
    if current is None or current == new or current not in TERMINAL_STATUSES:
        return True
    return new in TERMINAL_EXITS[current]


class Payment(db.Model):
    __tablename__ = "payments"

    # id atribuído pelo processador (write-once)
    id = db.Column(db.String(64), primary_key=True)
    external_reference = db.Column(db.String(80), unique=True, nullable=False, index=True)
    status = db.Column(db.String(30), nullable=False)  # pending, in_process, approved, rejected, cancelled, refunded
    status_detail = db.Column(db.String(120))
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    installments = db.Column(db.Integer, default=1)
    payment_method = db.Column(db.String(40))
    plan = db.Column(db.String(40))

    # snapshot do cliente no momento da cobrança
    customer_email = db.Column(db.String(180), nullable=False, index=True)
    customer_name = db.Column(db.String(180), nullable=False)
    customer_document = db.Column(db.String(40))

    # "metadata" é reservado no declarative; a coluna mantém o nome
    metadata_json = db.Column("metadata", db.Text, default="{}")
    webhook_received = db.Column(db.Boolean, default=False, nullable=False)
    # marcador do provisionamento (garante uma única concessão de acesso por pagamento)
    access_provisioned_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, default=_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=_now, nullable=False)

    @property
    def extra(self) -> dict:
        try:
            return json.loads(self.metadata_json or "{}")
        except ValueError:
            return {}

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "external_reference": self.external_reference,
            "status": self.status,
            "status_detail": self.status_detail,
            "amount": float(self.amount) if self.amount is not None else None,
            "installments": self.installments,
            "payment_method": self.payment_method,
            "plan": self.plan,
            "customer_email": self.customer_email,
            "customer_name": self.customer_name,
            "customer_document": self.customer_document,
            "metadata": self.extra,
            "webhook_received": bool(self.webhook_received),
            "access_provisioned_at": self.access_provisioned_at.isoformat() if self.access_provisioned_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
