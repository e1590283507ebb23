# thunderbet_app/models/__init__.py
# -*- coding: utf-8 -*-
from .user import User
from .transaction import Transaction
from .pix_credential import PixCredential


__all__ = [
    "User",
    "Transaction",
    "PixCredential",
]
