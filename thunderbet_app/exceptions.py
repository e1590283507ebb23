# thunderbet_app/exceptions.py
# -*- coding: utf-8 -*-
from __future__ import annotations


class PixError(Exception):
    """Erro de negócio do fluxo PIX, convertido em resposta JSON pelo blueprint."""

    status_code = 400
    code = "pix_error"
    message = "Erro no processamento PIX"

    def __init__(self, message: str | None = None):
        self.message = message or self.message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"success": False, "error": self.code, "message": self.message}


class InvalidWebhook(PixError):
    status_code = 400
    code = "invalid_webhook"
    message = "Dados de webhook inválidos"


class InvalidAmount(PixError):
    status_code = 400
    code = "invalid_amount"
    message = "Valor inválido"


class NoPendingDeposit(PixError):
    status_code = 404
    code = "no_pending_deposit"
    message = "Nenhuma transação PIX pendente encontrada"


class UserNotFound(PixError):
    status_code = 404
    code = "user_not_found"
    message = "Usuário não encontrado"


class TransactionNotFound(PixError):
    status_code = 404
    code = "transaction_not_found"
    message = "Transação não encontrada"


class CredentialsMissing(PixError):
    status_code = 500
    code = "credentials_missing"
    message = "Credenciais PIX não configuradas"


class PersistenceFailure(PixError):
    status_code = 500
    code = "persistence_failure"
    message = "Erro ao processar notificação de pagamento"


class QRCodeGenerationError(PixError):
    status_code = 502
    code = "qrcode_error"
    message = "Erro ao gerar QR Code PIX"
