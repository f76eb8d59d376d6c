# turbopay_app/models/__init__.py
# -*- coding: utf-8 -*-
from .payment import Payment
from .customer import Customer


__all__ = [
    "Payment",
    "Customer",
]
