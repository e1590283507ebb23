# thunderbet_app/services/reconciliation.py
# -*- coding: utf-8 -*-
"""
Conciliação de depósitos PIX disparada pelo webhook de pagamento.

Regra de negócio (intencional): quando um pagamento é confirmado, todos os
depósitos PIX pendentes do mesmo usuário são resolvidos de uma vez.

  1. O depósito pendente de MAIOR valor (empate: o mais recente) vira COMPLETED.
  2. Todos os outros depósitos PIX pendentes do usuário viram CANCELLED.
  3. O saldo recebe apenas o valor do depósito concluído, nunca a soma.

Exemplo: PIX de R$ 500,00 gerado e não pago, depois PIX de R$ 35,00 pago.
O usuário recebe R$ 500,00 (não R$ 535,00) e o depósito de R$ 35,00 é cancelado.

Tudo acontece numa única transação de banco: ou o candidato é concluído e os
irmãos cancelados, ou nada muda.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Iterable, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..exceptions import InvalidWebhook, NoPendingDeposit, UserNotFound, PersistenceFailure, PixError
from ..extensions import db
from ..models.transaction import Transaction, DEPOSIT, PENDING, COMPLETED, CANCELLED, PIX, to_decimal
from ..models.user import User

PAID = "PAID"
CANCELLED_BY = "RECONCILIATION"
CANCEL_REASON = "Cancelado pela conciliação - valor maior já foi creditado"
RESULT_NOTE = "Apenas o valor maior foi creditado, outras transações foram canceladas"

# chaves aceitas como referência do depósito no payload do PSP
CORRELATION_KEYS = ("externalId", "external_id", "externalReference")


@dataclass
class ReconciliationResult:
    user_id: int
    transaction_id: int
    external_reference: Optional[str]
    credited_amount: Decimal
    cancelled_count: int
    actual_payment_amount: Any = "unknown"
    degraded_user_lookup: bool = False
    cancelled_ids: list = field(default_factory=list)
    reconciliation_applied: bool = True

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "transaction_id": self.transaction_id,
            "external_reference": self.external_reference,
            "credited_amount": float(self.credited_amount),
            "original_amount": float(self.credited_amount),
            "total_credited": float(self.credited_amount),
            "actual_payment_amount": self.actual_payment_amount,
            "cancelled_count": self.cancelled_count,
            "cancelled_ids": list(self.cancelled_ids),
            "reconciliation_applied": self.reconciliation_applied,
            "degraded_user_lookup": self.degraded_user_lookup,
            "note": RESULT_NOTE,
        }


def pending_pix_deposits():
    return Transaction.query.filter_by(type=DEPOSIT, status=PENDING, payment_method=PIX)


def validate_payload(payload) -> dict:
    if not payload or not isinstance(payload, dict) or payload.get("status") != PAID:
        raise InvalidWebhook()
    return payload


def correlation_key(payload: dict) -> Optional[str]:
    for key in CORRELATION_KEYS:
        value = payload.get(key)
        if value:
            return str(value)
    return None


def select_candidate(deposits: Iterable[Transaction]) -> Transaction:
    """Maior valor primeiro; empate pelo mais recente (id como último critério)."""
    deposits = list(deposits)
    if not deposits:
        raise NoPendingDeposit("Nenhuma transação PIX pendente encontrada para este usuário")
    return max(
        deposits,
        key=lambda t: (to_decimal(t.amount), t.created_at or datetime.min, t.id or 0),
    )


def resolve_target_user(payload: dict) -> Tuple[int, bool]:
    """Retorna (user_id, degraded). `degraded` indica que o usuário foi inferido."""
    ref = correlation_key(payload)
    if ref:
        tx = pending_pix_deposits().filter_by(external_reference=ref).first()
        if not tx:
            raise NoPendingDeposit(f"Nenhuma transação PIX pendente com a referência {ref}")
        return tx.user_id, False

    # Payload sem referência: usa o depósito pendente mais recente do sistema.
    tx = (pending_pix_deposits()
          .order_by(Transaction.created_at.desc(), Transaction.id.desc())
          .first())
    if not tx:
        raise NoPendingDeposit("Nenhuma transação PIX pendente encontrada")
    current_app.logger.warning(
        "Webhook PIX sem referência externa; usuário %s inferido pelo pendente mais recente (tx=%s)",
        tx.user_id, tx.id,
    )
    return tx.user_id, True


def _complete_candidate(candidate: Transaction, payload: dict, user_id: int,
                        now: datetime, degraded: bool) -> None:
    candidate.status = COMPLETED
    candidate.reconciliation_applied = True
    candidate.update_meta(
        pix_transaction_id=payload.get("transactionId") or "unknown",
        date_approval=payload.get("dateApproval") or now.isoformat(),
        payer_info=payload.get("creditParty") or {},
        webhook_data=payload,
        payment_method=PIX,
        reconciliation_applied=True,
        original_amount=float(candidate.amount),
        actual_payment_amount=payload.get("amount", "unknown"),
        processed_at=now.isoformat(),
        user_id_processed=user_id,
        degraded_user_lookup=degraded,
    )
    # o flush dispara o ledger (crédito no saldo) ainda dentro da transação
    db.session.flush()


def _cancel_siblings(siblings: list, now: datetime) -> int:
    for tx in siblings:
        tx.status = CANCELLED
        tx.update_meta(
            cancelled_by=CANCELLED_BY,
            cancelled_at=now.isoformat(),
            reason=CANCEL_REASON,
        )
    db.session.flush()
    return len(siblings)


def reconcile_payment(payload) -> ReconciliationResult:
    log = current_app.logger
    payload = validate_payload(payload)
    log.info("PIX recebido: transactionId=%s amount=%s",
             payload.get("transactionId"), payload.get("amount"))

    user_id = None
    try:
        user_id, degraded = resolve_target_user(payload)

        # lock por usuário: webhooks concorrentes do mesmo usuário são serializados aqui
        user = (db.session.query(User)
                .filter(User.id == user_id)
                .with_for_update()
                .first())
        if user is None:
            raise UserNotFound()

        pending = (pending_pix_deposits()
                   .filter_by(user_id=user_id)
                   .order_by(Transaction.amount.desc(), Transaction.created_at.desc(), Transaction.id.desc())
                   .with_for_update()
                   .all())
        candidate = select_candidate(pending)
        siblings = [t for t in pending if t.id != candidate.id]
        previous_balance = to_decimal(user.balance)
        now = datetime.utcnow()

        log.info("Conciliação: user=%s candidato=%s valor=%s pendentes=%s",
                 user_id, candidate.id, candidate.amount, len(pending))

        _complete_candidate(candidate, payload, user_id, now, degraded)
        cancelled = _cancel_siblings(siblings, now)
        db.session.commit()
    except PixError:
        db.session.rollback()
        raise
    except SQLAlchemyError as e:
        db.session.rollback()
        log.exception("Falha de persistência na conciliação PIX (user=%s)", user_id)
        raise PersistenceFailure() from e

    if cancelled:
        log.info("Conciliação: %s transações PIX pendentes canceladas", cancelled)
    log.info("Conciliação aplicada: user=%s creditado=%s saldo %s -> %s",
             user_id, candidate.amount, previous_balance, to_decimal(user.balance))

    return ReconciliationResult(
        user_id=user_id,
        transaction_id=candidate.id,
        external_reference=candidate.external_reference,
        credited_amount=to_decimal(candidate.amount),
        cancelled_count=cancelled,
        actual_payment_amount=payload.get("amount", "unknown"),
        degraded_user_lookup=degraded,
        cancelled_ids=[t.id for t in siblings],
    )
