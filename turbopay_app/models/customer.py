# turbopay_app/models/customer.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime, timezone
from ..extensions import db, bcrypt


def _now():
    return datetime.now(timezone.utc)


class Customer(db.Model):
    __tablename__ = "customers"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(180), unique=True, nullable=False, index=True)
    name = db.Column(db.String(180), nullable=False)
    document = db.Column(db.String(40))
    phone = db.Column(db.String(40))
    plan = db.Column(db.String(40))
    status = db.Column(db.String(20), default="active")
    access_granted = db.Column(db.Boolean, default=False, nullable=False)
    # hash bcrypt da senha temporária enviada por e-mail
    temp_password = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=_now, onupdate=_now, nullable=False)
    last_login = db.Column(db.DateTime)

    def set_temp_password(self, raw: str) -> None:
        self.temp_password = bcrypt.generate_password_hash(raw).decode("utf-8")

    def check_temp_password(self, raw: str) -> bool:
        if not self.temp_password:
            return False
        return bcrypt.check_password_hash(self.temp_password, raw)

    def to_dict(self) -> dict:
        return {
            "email": self.email,
            "name": self.name,
            "document": self.document,
            "phone": self.phone,
            "plan": self.plan,
            "status": self.status,
            "access_granted": bool(self.access_granted),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "last_login": self.last_login.isoformat() if self.last_login else None,
        }
