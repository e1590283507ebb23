# thunderbet_app/services/deposits.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import time
import uuid
from decimal import Decimal, InvalidOperation

from flask import current_app

from ..exceptions import InvalidAmount, CredentialsMissing, PixError
from ..extensions import db
from ..models.pix_credential import PixCredential
from ..models.transaction import Transaction, DEPOSIT, PENDING, PIX
from .pix_service import generate_pix_qrcode


def parse_amount(raw) -> Decimal:
    if raw is None or isinstance(raw, bool):
        raise InvalidAmount()
    try:
        amount = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise InvalidAmount()
    if not amount.is_finite() or amount <= 0:
        raise InvalidAmount()
    minimum = Decimal(str(current_app.config.get("PIX_MIN_DEPOSIT", 35)))
    if amount < minimum:
        raise InvalidAmount(f"O valor mínimo para depósito é R$ {minimum:.2f}".replace(".", ","))
    maximum = Decimal(str(current_app.config.get("PIX_MAX_DEPOSIT", "9999999999.99")))
    try:
        amount = amount.quantize(Decimal("0.01"))
    except InvalidOperation:
        raise InvalidAmount()
    if amount > maximum:
        raise InvalidAmount()
    return amount


def new_external_id(user_id: int) -> str:
    return f"PIX_{int(time.time() * 1000)}_{user_id}_{uuid.uuid4().hex[:6]}"


def issue_deposit(user, raw_amount) -> dict:
    """Cria o depósito PENDING e devolve o QR Code PIX para pagamento."""
    amount = parse_amount(raw_amount)

    credential = PixCredential.active()
    if not credential:
        raise CredentialsMissing()

    external_id = new_external_id(user.id)
    tx = Transaction(
        user_id=user.id,
        type=DEPOSIT,
        amount=amount,
        status=PENDING,
        payment_method=PIX,
        external_reference=external_id,
        meta={},
    )
    db.session.add(tx)
    try:
        db.session.flush()
        pix = generate_pix_qrcode(
            amount=amount,
            description=current_app.config.get("PIX_DESCRIPTION", "Depósito via PIX"),
            external_id=external_id,
            credential=credential,
        )
    except PixError:
        # sem QR não pode sobrar depósito pendente para a conciliação
        db.session.rollback()
        raise
    db.session.commit()

    current_app.logger.info("PIX gerado: tx=%s user=%s valor=%s ref=%s", tx.id, user.id, amount, external_id)
    return {
        "transaction_id": tx.id,
        "external_id": external_id,
        "qr_code": pix["qr_code"],
        "amount": float(amount),
    }
