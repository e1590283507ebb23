# thunderbet_app/services/pix_service.py
# -*- coding: utf-8 -*-
"""
Geração do QR Code PIX ("copia e cola").

Dois modos, conforme `PixCredential.provider`:
  - static: monta o BR Code (padrão EMV-MPM do Bacen) localmente a partir da chave PIX.
  - api:    pede a cobrança ao PSP via HTTP e devolve o payload retornado.
"""
from __future__ import annotations
import re
import unicodedata
from decimal import Decimal

import requests
from flask import current_app

from ..exceptions import QRCodeGenerationError

PIX_GUI = "br.gov.bcb.pix"


def _tlv(tag: str, value: str) -> str:
    if len(value) > 99:
        raise QRCodeGenerationError(f"Campo {tag} do BR Code excede 99 caracteres")
    return f"{tag}{len(value):02d}{value}"


def _ascii(text: str, limit: int) -> str:
    if limit <= 0:
        return ""
    text = unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode("ascii")
    return text.strip()[:limit]


def crc16(payload: str) -> str:
    """CRC16-CCITT (poly 0x1021, init 0xFFFF), em hexadecimal maiúsculo."""
    crc = 0xFFFF
    for byte in payload.encode("utf-8"):
        crc ^= byte << 8
        for _ in range(8):
            if crc & 0x8000:
                crc = ((crc << 1) ^ 0x1021) & 0xFFFF
            else:
                crc = (crc << 1) & 0xFFFF
    return f"{crc:04X}"


def build_brcode(pix_key: str, merchant_name: str, merchant_city: str,
                 amount: Decimal | None = None, txid: str | None = None,
                 description: str | None = None) -> str:
    account = _tlv("00", PIX_GUI) + _tlv("01", pix_key)
    # descrição (26/02) só entra se couber no limite de 99 chars do campo 26
    room = 99 - len(account) - 4
    if description and room > 0:
        desc = _ascii(description, room)
        if desc:
            account += _tlv("02", desc)

    # txid: somente alfanumérico, até 25 chars; "***" quando não há identificador
    txid = re.sub(r"[^A-Za-z0-9]", "", txid or "")[:25] or "***"

    payload = (
        _tlv("00", "01")
        + _tlv("26", account)
        + _tlv("52", "0000")
        + _tlv("53", "986")
    )
    if amount is not None:
        payload += _tlv("54", f"{Decimal(str(amount)):.2f}")
    payload += (
        _tlv("58", "BR")
        + _tlv("59", _ascii(merchant_name, 25))
        + _tlv("60", _ascii(merchant_city, 15))
        + _tlv("62", _tlv("05", txid))
        + "6304"
    )
    return payload + crc16(payload)


def _request_qrcode(amount, description, external_id, credential) -> str:
    if not credential.api_url:
        raise QRCodeGenerationError("Credencial PIX sem api_url configurada")
    url = f"{credential.api_url.rstrip('/')}/pix/qrcode"
    body = {"amount": float(amount), "description": description, "externalId": external_id}
    try:
        resp = requests.post(
            url,
            json=body,
            auth=(credential.client_id or "", credential.client_secret or ""),
            timeout=current_app.config.get("PIX_HTTP_TIMEOUT", 30),
        )
    except requests.RequestException as e:
        current_app.logger.warning("PSP indisponível ao gerar QR Code: %s", e)
        raise QRCodeGenerationError() from e

    if resp.status_code >= 400:
        current_app.logger.warning("PSP recusou o QR Code (%s): %s", resp.status_code, resp.text)
        raise QRCodeGenerationError()

    data = resp.json() or {}
    qr_code = data.get("qrCode") or data.get("qr_code")
    if not qr_code:
        raise QRCodeGenerationError("Resposta do PSP sem qrCode")
    return qr_code


def generate_pix_qrcode(amount, description: str, external_id: str, credential) -> dict:
    if credential.provider == "api":
        return {"qr_code": _request_qrcode(amount, description, external_id, credential)}
    if not credential.pix_key:
        raise QRCodeGenerationError("Credencial PIX sem chave configurada")
    qr_code = build_brcode(
        pix_key=credential.pix_key,
        merchant_name=credential.merchant_name or "THUNDERBET",
        merchant_city=credential.merchant_city or "SAO PAULO",
        amount=amount,
        txid=external_id,
        description=description,
    )
    return {"qr_code": qr_code}
