# turbopay_app/services/processor.py
# -*- coding: utf-8 -*-
"""Cliente do Mercado Pago (/v1/payments) sobre o SDK oficial.

Chamadas bloqueantes com timeout fixo; respostas não-2xx e falhas de rede
viram a taxonomia de ``turbopay_app.errors``.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

import mercadopago
import requests
from mercadopago.config import RequestOptions

from ..errors import (
    NotFoundError,
    ProcessorAuthError,
    ProcessorValidationError,
    TransientIOError,
    UnknownError,
)


def _decimal(value) -> Decimal | None:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


@dataclass
class PaymentResult:
    id: str
    status: str
    status_detail: str | None = None
    transaction_amount: Decimal | None = None
    installments: int | None = None
    payment_method_id: str | None = None
    external_reference: str | None = None
    date_created: str | None = None

    @classmethod
    def from_api(cls, data: dict) -> "PaymentResult":
        return cls(
            id=str(data.get("id")),
            status=data.get("status") or "pending",
            status_detail=data.get("status_detail"),
            transaction_amount=_decimal(data.get("transaction_amount")),
            installments=data.get("installments"),
            payment_method_id=data.get("payment_method_id"),
            external_reference=data.get("external_reference"),
            date_created=data.get("date_created"),
        )


class MercadoPagoClient:
    def __init__(self, access_token: str, timeout: float = 10.0, max_retries: int = 0, sdk=None):
        self.access_token = access_token
        self.timeout = float(timeout)
        self.max_retries = int(max_retries)
        self._sdk = sdk

    @classmethod
    def from_config(cls, config) -> "MercadoPagoClient":
        return cls(
            access_token=config.get("MERCADOPAGO_ACCESS_TOKEN", ""),
            timeout=float(config.get("PROCESSOR_TIMEOUT", 10)),
            max_retries=int(config.get("PROCESSOR_MAX_RETRIES", 0)),
        )

    @property
    def configured(self) -> bool:
        return bool(self.access_token)

    @property
    def sdk(self):
        if self._sdk is None:
            self._sdk = mercadopago.SDK(self.access_token, request_options=self._options())
        return self._sdk

    def _options(self, idempotency_key: str | None = None) -> RequestOptions:
        options = RequestOptions(connection_timeout=self.timeout, max_retries=self.max_retries)
        if idempotency_key:
            options.custom_headers = {"x-idempotency-key": idempotency_key}
        return options

    def _call(self, fn, *args, payment_id: str | None = None, stage: str, **kwargs) -> dict:
        try:
            result = fn(*args, **kwargs)
        except requests.Timeout as e:
            raise TransientIOError(f"Processor timeout after {self.timeout}s", payment_id=payment_id, stage=stage) from e
        except requests.ConnectionError as e:
            raise TransientIOError(f"Processor unreachable: {e}", payment_id=payment_id, stage=stage) from e
        except (requests.RequestException, mercadopago.MercadoPagoError) as e:
            raise UnknownError(str(e), payment_id=payment_id, stage=stage) from e

        status = result["status"]
        body = result.get("response")
        if not isinstance(body, dict):
            body = {}
        if status < 400:
            if not body:
                raise UnknownError("Empty response from processor", payment_id=payment_id, stage=stage)
            return body

        message = body.get("message") or f"HTTP {status}"
        if status == 400:
            raise ProcessorValidationError(message, details=body.get("cause"), payment_id=payment_id, stage=stage)
        if status in (401, 403):
            raise ProcessorAuthError(message, payment_id=payment_id, stage=stage)
        if status == 404:
            raise NotFoundError(message, payment_id=payment_id, stage=stage)
        if status in (408, 429) or status >= 500:
            raise TransientIOError(message, payment_id=payment_id, stage=stage)
        raise UnknownError(message, payment_id=payment_id, stage=stage)

    def create(self, charge: dict, idempotency_key: str | None = None) -> PaymentResult:
        data = self._call(
            self.sdk.payment().create, charge, self._options(idempotency_key),
            stage="processor_create",
        )
        return PaymentResult.from_api(data)

    def get(self, payment_id) -> PaymentResult:
        payment_id = str(payment_id)
        data = self._call(
            self.sdk.payment().get, payment_id, self._options(),
            payment_id=payment_id, stage="processor_get",
        )
        return PaymentResult.from_api(data)
