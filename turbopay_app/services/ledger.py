# turbopay_app/services/ledger.py
# -*- coding: utf-8 -*-
"""Ledger: fonte única da verdade para pagamentos e clientes.

Todas as escritas passam por aqui. Métodos fazem flush mas não commit;
quem orquestra o fluxo delimita a transação com ``atomic()``.
"""
from __future__ import annotations

import json
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import case, func, select, update

from ..errors import NotFoundError
from ..models import Customer, Payment
from ..models.payment import APPROVED, REJECTED, transition_allowed

PAYMENT_FIELDS = (
    "external_reference", "status", "status_detail", "amount", "installments",
    "payment_method", "plan", "customer_email", "customer_name", "customer_document",
)


def _now():
    return datetime.now(timezone.utc)


@dataclass
class StateChange:
    payment: Payment
    previous_status: str | None
    changed: bool       # houve escrita no ledger
    blocked: bool = False  # transição a partir de status terminal ignorada


class LedgerStore:
    def __init__(self, db):
        self._db = db

    @property
    def session(self):
        return self._db.session

    @contextmanager
    def atomic(self):
        try:
            yield self.session
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    # ---------- payments ----------
    def upsert_payment(self, payment_id, **fields) -> Payment:
        """Cria ou atualiza a linha do pagamento pela chave do processador."""
        payment_id = str(payment_id)
        metadata = fields.pop("metadata", None)
        row = self.session.get(Payment, payment_id)
        now = _now()
        if row is None:
            row = Payment(id=payment_id, created_at=now)
            self.session.add(row)
        for name in PAYMENT_FIELDS:
            if name in fields:
                setattr(row, name, fields[name])
        if metadata is not None:
            row.metadata_json = metadata if isinstance(metadata, str) else json.dumps(metadata, default=str)
        row.updated_at = now
        self.session.flush()
        return row

    def get_payment(self, payment_id, *, for_update: bool = False) -> Payment | None:
        stmt = select(Payment).where(Payment.id == str(payment_id))
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def apply_processor_state(self, payment_id, status: str, status_detail: str | None) -> StateChange:
        """Sobrescreve status/status_detail com o estado buscado no processador.

        Idempotente: reaplicar o mesmo estado não escreve nada.
        """
        row = self.get_payment(payment_id, for_update=True)
        if row is None:
            raise NotFoundError(
                f"Payment {payment_id} not found in ledger",
                payment_id=str(payment_id), stage="ledger_update",
            )
        previous = row.status
        if not transition_allowed(previous, status):
            return StateChange(row, previous, changed=False, blocked=True)
        if previous == status and row.status_detail == status_detail and row.webhook_received:
            return StateChange(row, previous, changed=False)

        row.status = status
        row.status_detail = status_detail
        row.webhook_received = True
        row.updated_at = _now()
        self.session.flush()
        return StateChange(row, previous, changed=True)

    def claim_provisioning(self, payment_id) -> bool:
        """Marca o pagamento como provisionado. True só para quem ganhou a marcação."""
        payment_id = str(payment_id)
        stmt = (
            update(Payment)
            .where(Payment.id == payment_id, Payment.access_provisioned_at.is_(None))
            .values(access_provisioned_at=_now())
            .execution_options(synchronize_session=False)
        )
        claimed = self.session.execute(stmt).rowcount == 1
        if claimed:
            row = self.session.get(Payment, payment_id)
            if row is not None:
                self.session.expire(row, ["access_provisioned_at"])
        return claimed

    def list_payments(self, *, status: str | None = None, plan: str | None = None,
                      page: int = 1, limit: int = 50):
        query = select(Payment)
        count_q = select(func.count()).select_from(Payment)
        if status:
            query = query.where(Payment.status == status)
            count_q = count_q.where(Payment.status == status)
        if plan:
            query = query.where(Payment.plan == plan)
            count_q = count_q.where(Payment.plan == plan)
        total = self.session.execute(count_q).scalar_one()
        rows = self.session.execute(
            query.order_by(Payment.created_at.desc()).offset((page - 1) * limit).limit(limit)
        ).scalars().all()
        return rows, total

    def recent_payments(self, hours: int = 24):
        since = _now() - timedelta(hours=hours)
        return self.session.execute(
            select(Payment).where(Payment.created_at >= since).order_by(Payment.created_at.desc())
        ).scalars().all()

    def dashboard_stats(self) -> dict:
        row = self.session.execute(
            select(
                func.count(Payment.id),
                func.count(case((Payment.status == APPROVED, 1))),
                func.count(case((Payment.status == "pending", 1))),
                func.count(case((Payment.status == REJECTED, 1))),
                func.coalesce(func.sum(case((Payment.status == APPROVED, Payment.amount), else_=0)), 0),
                func.count(case(((Payment.plan == "monthly") & (Payment.status == APPROVED), 1))),
                func.count(case(((Payment.plan == "annual") & (Payment.status == APPROVED), 1))),
            )
        ).one()
        total, approved, pending, rejected, revenue, monthly, annual = row
        revenue = Decimal(str(revenue or 0)).quantize(Decimal("0.01"))
        return {
            "total_payments": total,
            "approved_payments": approved,
            "pending_payments": pending,
            "rejected_payments": rejected,
            "total_revenue": float(revenue),
            "monthly_plans": monthly,
            "annual_plans": annual,
            "conversion_rate": round(approved / total * 100, 2) if total else 0,
            "average_order_value": float((revenue / approved).quantize(Decimal("0.01"))) if approved else 0,
            "rejection_rate": round(rejected / total * 100, 2) if total else 0,
        }

    # ---------- customers ----------
    def get_customer(self, email: str) -> Customer | None:
        return self.session.execute(
            select(Customer).where(Customer.email == email)
        ).scalar_one_or_none()

    def upsert_customer(self, email: str, **fields) -> Customer:
        """Cria ou atualiza o cliente pelo e-mail; campos None não apagam valores existentes."""
        customer = self.get_customer(email)
        if customer is None:
            customer = Customer(email=email, name=fields.get("name") or email)
            self.session.add(customer)
        for name, value in fields.items():
            if value is not None:
                setattr(customer, name, value)
        customer.updated_at = _now()
        self.session.flush()
        return customer
