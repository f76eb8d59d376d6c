# turbopay_app/services/intake.py
# -*- coding: utf-8 -*-
"""Recebimento de cobranças: valida, envia ao processador e grava no ledger."""
from __future__ import annotations

import re
import time
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from flask import current_app

from ..errors import PaymentError, UnknownError, ValidationError
from ..models.payment import APPROVED
from .notifications import CONFIRMATION

REQUIRED_FIELDS = ("token", "email", "amount", "customer_name")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MAX_AMOUNT = Decimal("100000000")  # Numeric(10, 2)


def _now():
    return datetime.now(timezone.utc)


def generate_external_reference(prefix: str = "TURBO") -> str:
    """Token de idempotência: timestamp em ms + sufixo aleatório."""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:12]}"


def split_name(full_name: str) -> tuple[str, str]:
    parts = full_name.split()
    if not parts:
        return "", ""
    first = parts[0]
    last = " ".join(parts[1:]) or first
    return first, last


def _parse_amount(value) -> Decimal:
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Amount must be numeric", field="amount", value=value)
    if not amount.is_finite() or amount <= 0:
        raise ValidationError("Amount must be greater than zero", field="amount", value=value)
    if amount >= MAX_AMOUNT:
        raise ValidationError("Amount too large", field="amount", value=value)
    return amount.quantize(Decimal("0.01"))


def _parse_installments(value) -> int:
    if value in (None, ""):
        return 1
    try:
        installments = int(value)
    except (TypeError, ValueError):
        raise ValidationError("Installments must be an integer", field="installments", value=value)
    if installments < 1:
        raise ValidationError("Installments must be at least 1", field="installments", value=value)
    return installments


class PaymentIntake:
    def __init__(self, ledger, processor, dispatcher, config):
        self.ledger = ledger
        self.processor = processor
        self.dispatcher = dispatcher
        self.reference_prefix = config.get("EXTERNAL_REFERENCE_PREFIX", "TURBO")
        self.source = config.get("PAYMENT_SOURCE", "landing_page")
        self.product_name = config.get("PRODUCT_NAME", "Concurso Turbo IA")
        self.backend_url = (config.get("BACKEND_URL") or "").rstrip("/")
        self.default_id_type = config.get("DEFAULT_IDENTIFICATION_TYPE") or "CPF"
        self.default_id_number = config.get("DEFAULT_IDENTIFICATION_NUMBER") or ""

    # ---------- validação ----------
    def validate(self, data: dict) -> dict:
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object", missing=REQUIRED_FIELDS)
        missing = [f for f in REQUIRED_FIELDS if not data.get(f)]
        if missing:
            raise ValidationError(
                f"Missing required fields: {', '.join(missing)}",
                missing=missing, received=list(data.keys()),
            )
        email = str(data["email"]).strip().lower()
        if not EMAIL_RE.match(email):
            raise ValidationError("Invalid email format", field="email", value=email, error="Invalid email format")
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise ValidationError("Metadata must be an object", field="metadata", value=metadata)
        return {
            "token": data["token"],
            "email": email,
            "amount": _parse_amount(data["amount"]),
            "customer_name": str(data["customer_name"]).strip(),
            "installments": _parse_installments(data.get("installments")),
            "payment_method_id": data.get("paymentMethodId"),
            "issuer_id": data.get("issuerId"),
            "identification_number": data.get("identificationNumber"),
            "identification_type": data.get("identificationType"),
            "description": data.get("description"),
            "plan": data.get("plan"),
            "metadata": metadata,
        }

    def _identification(self, req: dict, external_reference: str) -> dict | None:
        number = req["identification_number"]
        if number:
            return {"type": req["identification_type"] or self.default_id_type, "number": str(number)}
        if self.default_id_number:
            current_app.logger.warning(
                "Payer identification missing, using configured default external_reference=%s",
                external_reference,
            )
            return {"type": self.default_id_type, "number": self.default_id_number}
        return None

    def build_charge(self, req: dict, external_reference: str) -> dict:
        first_name, last_name = split_name(req["customer_name"])
        payer = {"email": req["email"], "first_name": first_name, "last_name": last_name}
        identification = self._identification(req, external_reference)
        if identification:
            payer["identification"] = identification

        charge = {
            "transaction_amount": float(req["amount"]),
            "token": req["token"],
            "description": req["description"] or f"{self.product_name} - Plano {req['plan'] or 'unknown'}",
            "installments": req["installments"],
            "payment_method_id": req["payment_method_id"],
            "payer": payer,
            "metadata": {
                "plan": req["plan"] or "unknown",
                "source": self.source,
                "customer_name": req["customer_name"],
                "timestamp": _now().isoformat(),
                **req["metadata"],
            },
            "external_reference": external_reference,
        }
        if req["issuer_id"]:
            charge["issuer_id"] = req["issuer_id"]
        if self.backend_url:
            charge["notification_url"] = f"{self.backend_url}/webhooks/processor"
        return charge

    # ---------- fluxo ----------
    def process(self, data: dict) -> dict:
        req = self.validate(data)
        external_reference = generate_external_reference(self.reference_prefix)
        charge = self.build_charge(req, external_reference)
        log = current_app.logger

        log.info("Creating payment external_reference=%s plan=%s", external_reference, req["plan"])
        try:
            result = self.processor.create(charge, idempotency_key=external_reference)
        except PaymentError as e:
            log.error(
                "Processor rejected charge external_reference=%s stage=%s: %s",
                external_reference, e.stage or "processor_create", e.message,
            )
            raise
        log.info("Payment created id=%s status=%s external_reference=%s", result.id, result.status, external_reference)

        try:
            with self.ledger.atomic():
                self.ledger.upsert_payment(
                    result.id,
                    external_reference=external_reference,
                    status=result.status,
                    status_detail=result.status_detail,
                    amount=result.transaction_amount if result.transaction_amount is not None else req["amount"],
                    installments=result.installments or req["installments"],
                    payment_method=result.payment_method_id or req["payment_method_id"],
                    customer_email=req["email"],
                    customer_name=req["customer_name"],
                    customer_document=req["identification_number"],
                    plan=req["plan"],
                    metadata=req["metadata"],
                )
        except Exception as e:
            # cobrança já existe no processador: logar o id para reconciliação manual
            log.exception("Ledger write failed payment_id=%s stage=ledger_write", result.id)
            raise UnknownError(str(e), payment_id=result.id, stage="ledger_write") from e

        if result.status == APPROVED:
            self.dispatcher.send(CONFIRMATION, req["email"], {
                "name": req["customer_name"],
                "plan": req["plan"],
                "amount": req["amount"],
                "transaction_id": result.id,
                "external_reference": external_reference,
            })

        amount = result.transaction_amount if result.transaction_amount is not None else req["amount"]
        return {
            "success": True,
            "id": result.id,
            "status": result.status,
            "status_detail": result.status_detail,
            "external_reference": external_reference,
            "payment_method_id": result.payment_method_id,
            "installments": result.installments,
            "transaction_amount": float(amount),
            "created_at": _now().isoformat(),
        }

    def status(self, payment_id) -> dict:
        result = self.processor.get(payment_id)
        return {
            "id": result.id,
            "status": result.status,
            "status_detail": result.status_detail,
            "external_reference": result.external_reference,
            "transaction_amount": float(result.transaction_amount) if result.transaction_amount is not None else None,
            "date_created": result.date_created,
        }
