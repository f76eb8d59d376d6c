# turbopay_app/services/reconciliation.py
# -*- coding: utf-8 -*-
"""Reconciliação das notificações do processador com o ledger.

A entrega é at-least-once, fora de ordem e pode repetir. Regras:
- o status vem sempre de ``processor.get(id)``, nunca do corpo da notificação;
- a atualização do ledger é sobrescrita pura (reaplicar não muda nada);
- o provisionamento roda uma única vez por pagamento aprovado;
- nenhuma falha interna vira resposta de erro para o remetente.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

from flask import current_app

from ..errors import NotFoundError, PaymentError, ValidationError
from ..models.payment import APPROVED

PAYMENT_TOPIC = "payment"


@dataclass
class ReconcileOutcome:
    processed: bool
    result: str  # updated, unchanged, blocked, ignored, not_found, error
    payment_id: str | None = None
    status: str | None = None
    provisioned: bool = False
    error: str | None = None

    def to_ack(self) -> dict:
        body = {
            "received": True,
            "processed": self.processed,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if self.error:
            body["error"] = self.error
        return body


def parse_envelope(body) -> tuple[str, str | None, str | None]:
    """Devolve (type, action, data.id). Envelope sem type/data é inválido."""
    if not isinstance(body, dict):
        raise ValidationError("Invalid webhook data")
    topic = body.get("type")
    data = body.get("data")
    if not topic or not isinstance(data, dict):
        raise ValidationError("Invalid webhook data")
    resource_id = data.get("id")
    if topic == PAYMENT_TOPIC and not resource_id:
        raise ValidationError("Missing payment ID")
    return topic, body.get("action"), (str(resource_id) if resource_id else None)


class WebhookReconciler:
    def __init__(self, ledger, processor, provisioner):
        self.ledger = ledger
        self.processor = processor
        self.provisioner = provisioner

    def handle(self, topic: str, action: str | None, resource_id: str | None) -> ReconcileOutcome:
        log = current_app.logger
        log.info("Webhook received type=%s action=%s id=%s", topic, action, resource_id)
        if topic != PAYMENT_TOPIC:
            log.info("Non-payment webhook type=%s ignored", topic)
            return ReconcileOutcome(processed=True, result="ignored", payment_id=resource_id)
        try:
            return self.reconcile_payment(resource_id)
        except NotFoundError as e:
            # linha ainda não gravada pela intake (corrida) ou id desconhecido
            log.warning("Webhook for unknown payment payment_id=%s stage=%s: %s",
                        resource_id, e.stage or "reconcile", e.message)
            return ReconcileOutcome(processed=False, result="not_found", payment_id=resource_id, error=e.message)
        except PaymentError as e:
            log.error("Webhook processing failed payment_id=%s stage=%s: %s",
                      resource_id, e.stage or "reconcile", e.message)
            return ReconcileOutcome(processed=False, result="error", payment_id=resource_id, error=e.message)
        except Exception as e:
            log.exception("Webhook processing crashed payment_id=%s stage=reconcile", resource_id)
            return ReconcileOutcome(processed=False, result="error", payment_id=resource_id, error=str(e))

    def reconcile_payment(self, payment_id: str) -> ReconcileOutcome:
        log = current_app.logger
        fetched = self.processor.get(payment_id)
        log.info("Processor state payment_id=%s status=%s detail=%s",
                 payment_id, fetched.status, fetched.status_detail)

        grant = None
        with self.ledger.atomic():
            change = self.ledger.apply_processor_state(payment_id, fetched.status, fetched.status_detail)
            if change.blocked:
                log.warning(
                    "Ignoring transition out of terminal status payment_id=%s %s -> %s",
                    payment_id, change.previous_status, fetched.status,
                )
            elif change.payment.status == APPROVED and self.ledger.claim_provisioning(payment_id):
                grant = self.provisioner.grant_access(change.payment)
            elif change.payment.status == APPROVED:
                log.info("Payment already provisioned payment_id=%s, skipping", payment_id)

        if grant is not None:
            # fora da transação: acesso já está gravado, entrega é best-effort
            self.provisioner.deliver_credentials(grant)

        if change.blocked:
            result = "blocked"
        elif change.changed:
            result = "updated"
        else:
            result = "unchanged"
        return ReconcileOutcome(
            processed=True, result=result, payment_id=payment_id,
            status=change.payment.status, provisioned=grant is not None,
        )
