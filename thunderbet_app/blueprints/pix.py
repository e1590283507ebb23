# thunderbet_app/blueprints/pix.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import hashlib
import hmac

from flask import Blueprint, request, jsonify, current_app

from ..decorators import login_required, admin_required, current_user
from ..exceptions import PixError
from ..services.deposits import issue_deposit
from ..services.reconciliation import reconcile_payment
from ..services.reports import get_status, reconciliation_history, reconciliation_stats

bp = Blueprint("pix", __name__, url_prefix="/api/pix")


@bp.errorhandler(PixError)
def _pix_error(err: PixError):
    return jsonify(err.to_dict()), err.status_code


def _check_signature(raw: bytes):
    """Valida X-Webhook-Signature (HMAC-SHA256 do corpo) quando há segredo configurado."""
    secret = current_app.config.get("PIX_WEBHOOK_SECRET") or ""
    if not secret:
        return None
    sig = request.headers.get("X-Webhook-Signature", "")
    if not sig:
        return jsonify(success=False, error="missing_signature", message="Assinatura ausente"), 400
    mac = hmac.new(secret.encode(), raw, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(mac, sig):
        current_app.logger.warning("Webhook PIX com assinatura inválida")
        return jsonify(success=False, error="invalid_signature", message="Assinatura inválida"), 401
    return None


@bp.route("/generate", methods=["POST"])
@login_required
def generate():
    """Gera o QR Code PIX de um novo depósito."""
    user = current_user()
    if user is None:
        return jsonify(success=False, error="unauthorized", message="Faça login para acessar."), 401
    body = request.get_json(silent=True)
    amount = body.get("amount") if isinstance(body, dict) else None
    data = issue_deposit(user, amount)
    return jsonify(success=True, data=data), 201


@bp.route("/webhook", methods=["POST"])
def webhook():
    """Notificação de pagamento do PSP. Público; aplica a conciliação de pendentes."""
    bad = _check_signature(request.get_data())
    if bad is not None:
        return bad

    body = request.get_json(silent=True) or {}
    payload = body.get("requestBody") if isinstance(body, dict) and "requestBody" in body else body
    result = reconcile_payment(payload)
    return jsonify(
        success=True,
        message="Pagamento processado com sucesso - conciliação aplicada",
        data=result.to_dict(),
    )


@bp.route("/status/<external_id>")
@login_required
def status(external_id: str):
    user = current_user()
    if user is None:
        return jsonify(success=False, error="unauthorized", message="Faça login para acessar."), 401
    return jsonify(success=True, data=get_status(external_id, user))


@bp.route("/reconciliation-history")
@admin_required
def history():
    page = request.args.get("page", 1, type=int)
    limit = request.args.get("limit", 20, type=int)
    return jsonify(success=True, data=reconciliation_history(page, limit))


@bp.route("/reconciliation-stats")
@admin_required
def stats():
    return jsonify(success=True, data=reconciliation_stats())
