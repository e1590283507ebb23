# tests/test_pix_service.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from decimal import Decimal
from types import SimpleNamespace

import pytest

from conftest import FakeResponse
from thunderbet_app.exceptions import QRCodeGenerationError
from thunderbet_app.services import pix_service
from thunderbet_app.services.pix_service import build_brcode, crc16, generate_pix_qrcode


def _cred(**k):
    base = dict(provider="static", pix_key="pix@thunderbet.test", merchant_name="THUNDERBET",
                merchant_city="SAO PAULO", api_url=None, client_id=None, client_secret=None)
    base.update(k)
    return SimpleNamespace(**base)


def test_brcode_matches_bacen_manual_example():
    # exemplo do manual do BR Code (chave aleatória, sem valor e sem txid)
    code = build_brcode(
        pix_key="123e4567-e12b-12d1-a456-426655440000",
        merchant_name="Fulano de Tal",
        merchant_city="BRASILIA",
    )
    assert code == (
        "00020126580014br.gov.bcb.pix0136123e4567-e12b-12d1-a456-426655440000"
        "5204000053039865802BR5913Fulano de Tal6008BRASILIA62070503***63041D3D"
    )


def test_brcode_with_amount_txid_and_normalised_names():
    code = build_brcode(
        pix_key="pix@thunderbet.test",
        merchant_name="Apostas Relâmpago Ltda Filial Centro",
        merchant_city="São José dos Campos",
        amount=Decimal("35"),
        txid="PIX_1700000000000_42_abc123",
    )
    assert "540535.00" in code
    assert "5925Apostas Relampago Ltda F" in code
    assert "6015Sao Jose dos Ca" in code
    assert "62280524PIX170000000000042abc123" in code
    assert code[-8:-4] == "6304"
    assert code[-4:] == crc16(code[:-4])


def test_brcode_long_key_drops_description():
    # chave e-mail com 77 caracteres ocupa todo o campo 26
    key = "a" * 63 + "@thunderbet.io"
    code = build_brcode(pix_key=key, merchant_name="THUNDERBET", merchant_city="SAO PAULO",
                        amount=Decimal("35"), txid="PIX1", description="Depósito via PIX")
    assert code.startswith("0002012699" + "0014br.gov.bcb.pix0177" + key + "5204")
    assert "Deposito" not in code
    assert code[-4:] == crc16(code[:-4])


def test_brcode_key_too_long_raises():
    with pytest.raises(QRCodeGenerationError):
        build_brcode(pix_key="a" * 78, merchant_name="THUNDERBET", merchant_city="SAO PAULO")


def test_static_provider_returns_brcode(app):
    with app.app_context():
        out = generate_pix_qrcode(Decimal("50"), "Depósito via PIX", "PIX_1_2_ab", _cred())
    assert out["qr_code"].startswith("000201")
    assert "br.gov.bcb.pix" in out["qr_code"]
    assert "Deposito via PIX" in out["qr_code"]


def test_static_provider_without_key_fails(app):
    with app.app_context(), pytest.raises(QRCodeGenerationError):
        generate_pix_qrcode(Decimal("50"), "x", "PIX_1", _cred(pix_key=None))


def test_api_provider_posts_to_psp(app, monkeypatch):
    calls = {}

    def fake_post(url, json=None, auth=None, timeout=None):
        calls.update(url=url, json=json, auth=auth, timeout=timeout)
        return FakeResponse(json_data={"qrCode": "000201-psp"})

    monkeypatch.setattr(pix_service.requests, "post", fake_post)
    cred = _cred(provider="api", api_url="https://psp.test/", client_id="cid", client_secret="sec")
    with app.app_context():
        out = generate_pix_qrcode(Decimal("100"), "Depósito", "PIX_9", cred)

    assert out == {"qr_code": "000201-psp"}
    assert calls["url"] == "https://psp.test/pix/qrcode"
    assert calls["json"] == {"amount": 100.0, "description": "Depósito", "externalId": "PIX_9"}
    assert calls["auth"] == ("cid", "sec")
    assert calls["timeout"] == app.config["PIX_HTTP_TIMEOUT"]


@pytest.mark.parametrize("resp", [
    FakeResponse(status_code=500, text="erro"),
    FakeResponse(json_data={"other": "x"}),
])
def test_api_provider_bad_responses(app, monkeypatch, resp):
    monkeypatch.setattr(pix_service.requests, "post", lambda *a, **k: resp)
    cred = _cred(provider="api", api_url="https://psp.test")
    with app.app_context(), pytest.raises(QRCodeGenerationError):
        generate_pix_qrcode(Decimal("100"), "x", "PIX_9", cred)


def test_api_provider_transport_error(app, monkeypatch):
    import requests

    def boom(*a, **k):
        raise requests.ConnectionError("sem rota")

    monkeypatch.setattr(pix_service.requests, "post", boom)
    cred = _cred(provider="api", api_url="https://psp.test")
    with app.app_context(), pytest.raises(QRCodeGenerationError):
        generate_pix_qrcode(Decimal("100"), "x", "PIX_9", cred)
