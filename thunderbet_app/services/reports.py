# thunderbet_app/services/reports.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import math
from datetime import datetime, timedelta

from flask import current_app
from sqlalchemy import func

from ..exceptions import TransactionNotFound
from ..extensions import db
from ..models.transaction import Transaction, DEPOSIT, PIX
from .reconciliation import pending_pix_deposits


def _iso(dt):
    return dt.isoformat() if dt else None


def _reconciled():
    return Transaction.query.filter_by(type=DEPOSIT, payment_method=PIX, reconciliation_applied=True)


def _total_amount_reconciled() -> float:
    total = (db.session.query(func.coalesce(func.sum(Transaction.amount), 0))
             .filter(Transaction.type == DEPOSIT,
                     Transaction.payment_method == PIX,
                     Transaction.reconciliation_applied.is_(True))
             .scalar())
    return float(total or 0)


def get_status(external_id: str, user) -> dict:
    tx = Transaction.query.filter_by(external_reference=external_id).first()
    # transação de outro usuário se comporta como inexistente (exceto admin)
    if not tx or (not user.is_admin and tx.user_id != user.id):
        raise TransactionNotFound()
    return {
        "status": tx.status,
        "transaction_id": tx.id,
        "external_id": tx.external_reference,
        "amount": float(tx.amount),
        "created_at": _iso(tx.created_at),
        "updated_at": _iso(tx.updated_at),
        "metadata": tx.meta or {},
    }


def reconciliation_history(page: int = 1, limit: int = 20) -> dict:
    page = max(int(page or 1), 1)
    max_limit = current_app.config.get("HISTORY_MAX_LIMIT", 100)
    limit = min(max(int(limit or 20), 1), max_limit)

    q = _reconciled().order_by(Transaction.created_at.desc(), Transaction.id.desc())
    total = q.count()
    rows = q.offset((page - 1) * limit).limit(limit).all()

    items = []
    for t in rows:
        meta = t.meta or {}
        items.append({
            "id": t.id,
            "user_id": t.user_id,
            "username": t.user.username if t.user else None,
            "email": t.user.email if t.user else None,
            "amount": float(t.amount),
            "status": t.status,
            "original_amount": meta.get("original_amount"),
            "actual_payment_amount": meta.get("actual_payment_amount"),
            "processed_at": meta.get("processed_at"),
            "created_at": _iso(t.created_at),
            "reconciliation_applied": bool(t.reconciliation_applied),
            "external_reference": t.external_reference,
        })

    return {
        "transactions": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if total else 0,
        },
        "summary": {
            "total_reconciled_transactions": total,
            "total_amount_credited": _total_amount_reconciled(),
        },
    }


def reconciliation_stats(now: datetime | None = None) -> dict:
    now = now or datetime.utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week = now - timedelta(days=7)
    month = now - timedelta(days=30)

    base = _reconciled()
    stats = {
        "total": base.count(),
        "today": base.filter(Transaction.created_at >= today).count(),
        "this_week": base.filter(Transaction.created_at >= week).count(),
        "this_month": base.filter(Transaction.created_at >= month).count(),
        "total_amount_credited": _total_amount_reconciled(),
    }

    pending = (pending_pix_deposits()
               .order_by(Transaction.amount.desc(), Transaction.created_at.desc())
               .all())

    return {
        "reconciliation_stats": stats,
        "pending_transactions": [
            {
                "id": t.id,
                "user_id": t.user_id,
                "amount": float(t.amount),
                "created_at": _iso(t.created_at),
                "external_reference": t.external_reference,
            }
            for t in pending
        ],
        "system_info": {
            "logic_description": (
                "Quando um usuário gera PIX de valor maior e não paga, mas depois gera "
                "e paga PIX menor, recebe o valor maior"
            ),
            "active": True,
            "generated_at": now.isoformat(),
        },
    }
