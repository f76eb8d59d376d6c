# turbopay_app/errors.py
# -*- coding: utf-8 -*-
"""Taxonomia de erros do fluxo de pagamento.

Cada classe carrega o status HTTP e o corpo JSON que os blueprints devolvem.
"""
from __future__ import annotations
from datetime import datetime, timezone


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class PaymentError(Exception):
    status_code = 500
    error = "Payment processing failed"

    def __init__(self, message: str = "", *, payment_id: str | None = None, stage: str | None = None):
        super().__init__(message or self.error)
        self.message = message or self.error
        self.payment_id = payment_id
        self.stage = stage

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message, "timestamp": _timestamp()}


class ValidationError(PaymentError):
    """Entrada do cliente incompleta ou malformada."""
    status_code = 400
    error = "Invalid payment data"

    def __init__(self, message: str = "", *, missing=None, received=None, field: str | None = None,
                 value=None, error: str | None = None):
        super().__init__(message)
        if error:
            self.error = error
        self.missing = list(missing or [])
        self.received = list(received or [])
        self.field = field
        self.value = value
        if self.missing:
            self.error = "Missing required fields"

    def to_dict(self) -> dict:
        body = {"error": self.error, "message": self.message}
        if self.missing:
            body["missing"] = self.missing
            body["received"] = self.received
        if self.field:
            body["field"] = self.field
            body[self.field] = self.value
        return body


class ProcessorValidationError(PaymentError):
    """O processador recusou o formato da cobrança (detalhe repassado ao cliente)."""
    status_code = 400
    error = "Payment validation failed"

    def __init__(self, message: str = "", *, details=None, **kw):
        super().__init__(message, **kw)
        self.details = details

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message, "details": self.details or "Invalid payment data"}


class ProcessorAuthError(PaymentError):
    """Credencial do processador inválida; o detalhe não sai para o cliente."""
    status_code = 500
    error = "Payment service configuration error"

    def to_dict(self) -> dict:
        return {"error": self.error, "message": "Invalid credentials"}


class UnknownError(PaymentError):
    status_code = 500
    error = "Payment processing failed"

    def to_dict(self) -> dict:
        return {"error": self.error, "message": "Internal server error", "timestamp": _timestamp()}


class TransientIOError(UnknownError):
    """Timeout ou falha de rede com o processador/e-mail. Pode ser repetido."""
    status_code = 503
    retryable = True

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["retryable"] = True
        return body


class NotFoundError(PaymentError):
    status_code = 404
    error = "Payment not found"

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message, "id": self.payment_id}
