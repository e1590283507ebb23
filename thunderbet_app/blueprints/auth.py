# thunderbet_app/blueprints/auth.py
# -*- coding: utf-8 -*-
from __future__ import annotations

from flask import Blueprint, request, jsonify, session

from ..decorators import login_required, current_user
from ..extensions import db
from ..models import User

bp = Blueprint("auth", __name__, url_prefix="/api/auth")


def _start_session(u: User) -> None:
    session["user"] = {"id": u.id, "email": u.email, "is_admin": bool(u.is_admin)}


@bp.route("/register", methods=["POST"])
def register():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}
    username = (body.get("username") or "").strip()
    email = (body.get("email") or "").strip().lower()
    pwd = body.get("password") or ""

    if not username or not email or not pwd:
        return jsonify(success=False, message="Informe usuário, e-mail e senha."), 400

    if User.query.filter((User.email == email) | (User.username == username)).first():
        return jsonify(success=False, message="Usuário ou e-mail já cadastrado."), 409

    u = User(username=username, email=email)
    u.set_password(pwd)
    db.session.add(u)
    db.session.commit()

    _start_session(u)
    return jsonify(success=True, data=u.to_dict()), 201


@bp.route("/login", methods=["POST"])
def login():
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        body = {}
    email = (body.get("email") or "").strip().lower()
    pwd = body.get("password") or ""

    u = User.query.filter_by(email=email).first()
    if not u or not u.active or not u.check_password(pwd):
        return jsonify(success=False, message="Credenciais inválidas."), 401

    _start_session(u)
    return jsonify(success=True, data=u.to_dict())


@bp.route("/logout", methods=["POST"])
def logout():
    session.clear()
    return jsonify(success=True, message="Você saiu da sessão.")


@bp.route("/me")
@login_required
def me():
    u = current_user()
    if u is None:
        session.clear()
        return jsonify(success=False, error="unauthorized", message="Faça login para acessar."), 401
    return jsonify(success=True, data=u.to_dict())
