# thunderbet_app/decorators.py
# -*- coding: utf-8 -*-
from __future__ import annotations
from functools import wraps
from flask import session, jsonify

from .extensions import db
from .models.user import User

def current_user() -> User | None:
    data = session.get("user")
    if not data or not data.get("id"):
        return None
    return db.session.get(User, data["id"])

def login_required(view_func):
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        if not session.get("user"):
            return jsonify(success=False, error="unauthorized", message="Faça login para acessar."), 401
        return view_func(*args, **kwargs)
    return wrapper

def admin_required(view_func):
    @wraps(view_func)
    def wrapper(*args, **kwargs):
        user = session.get("user")
        if not user:
            return jsonify(success=False, error="unauthorized", message="Faça login para acessar."), 401
        if not user.get("is_admin"):
            return jsonify(success=False, error="forbidden", message="Acesso restrito ao administrador."), 403
        return view_func(*args, **kwargs)
    return wrapper
