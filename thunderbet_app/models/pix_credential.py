# thunderbet_app/models/pix_credential.py
from __future__ import annotations
from datetime import datetime
from ..extensions import db

class PixCredential(db.Model):
    __tablename__ = "pix_credentials"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(80), default="default")
    # 'static' = BR Code gerado localmente; 'api' = QR pedido ao PSP
    provider = db.Column(db.String(16), nullable=False, default="static")
    is_active = db.Column(db.Boolean, default=True, index=True)

    # recebedor
    pix_key = db.Column(db.String(140))
    merchant_name = db.Column(db.String(25), default="THUNDERBET")
    merchant_city = db.Column(db.String(15), default="SAO PAULO")

    # PSP (somente provider='api')
    client_id = db.Column(db.String(255))
    client_secret = db.Column(db.String(255))
    api_url = db.Column(db.String(255))

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    @classmethod
    def active(cls) -> "PixCredential | None":
        return cls.query.filter_by(is_active=True).order_by(cls.id.desc()).first()
