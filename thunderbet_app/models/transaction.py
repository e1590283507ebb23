# thunderbet_app/models/transaction.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from datetime import datetime
from decimal import Decimal

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from ..exceptions import UserNotFound
from ..extensions import db
from .user import User

# tipos
DEPOSIT = "DEPOSIT"
WITHDRAWAL = "WITHDRAWAL"
BET = "BET"

# status (COMPLETED e CANCELLED são terminais)
PENDING = "PENDING"
COMPLETED = "COMPLETED"
CANCELLED = "CANCELLED"

# meios de pagamento
PIX = "PIX"
CREDIT_CARD = "CREDIT_CARD"

CREDIT_TYPES = {DEPOSIT}
DEBIT_TYPES = {WITHDRAWAL, BET}


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value if value is not None else 0))


class Transaction(db.Model):
    __tablename__ = "transactions"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), index=True, nullable=False)
    type = db.Column(db.String(20), nullable=False, index=True)            # DEPOSIT, WITHDRAWAL, BET
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=PENDING, index=True)
    payment_method = db.Column(db.String(20), index=True)                  # PIX, CREDIT_CARD
    external_reference = db.Column(db.String(120), unique=True, index=True)
    # "metadata" é nome reservado no declarative; o atributo Python é `meta`
    meta = db.Column("metadata", db.JSON, default=dict)
    reconciliation_applied = db.Column(db.Boolean, nullable=False, default=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = db.relationship("User", backref=db.backref("transactions", lazy="dynamic"))

    def balance_delta(self) -> Decimal:
        """Quanto o saldo do usuário muda quando esta transação é concluída."""
        amount = to_decimal(self.amount)
        if self.type in CREDIT_TYPES:
            return amount
        if self.type in DEBIT_TYPES:
            return -amount
        return Decimal("0")

    def update_meta(self, **values) -> None:
        # reatribui o dict para o SQLAlchemy detectar a mudança no JSON
        self.meta = {**(self.meta or {}), **values}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "amount": float(self.amount or 0),
            "status": self.status,
            "payment_method": self.payment_method,
            "external_reference": self.external_reference,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


# -------- Ledger --------
# O saldo do usuário reage à transição para COMPLETED dentro do mesmo flush,
# portanto participa da mesma transação de banco (commit/rollback juntos).
# Cancelamentos nunca movimentam saldo.
@event.listens_for(Session, "before_flush")
def _apply_completed_to_balance(session, flush_context, instances):
    completed = []
    for obj in list(session.new) + list(session.dirty):
        if not isinstance(obj, Transaction):
            continue
        hist = inspect(obj).attrs.status.history
        if COMPLETED in (hist.added or ()) and COMPLETED not in (hist.deleted or ()):
            completed.append(obj)

    for tx in completed:
        delta = tx.balance_delta()
        if not delta:
            continue
        with session.no_autoflush:
            user = session.get(User, tx.user_id)
        if user is None:
            raise UserNotFound(f"Usuário {tx.user_id} não encontrado para lançar a transação {tx.id}")
        user.balance = to_decimal(user.balance) + delta
