# tests/conftest.py
# -*- coding: utf-8 -*-
import os
import sys
import uuid
import pathlib
import tempfile
from datetime import datetime, timedelta
from decimal import Decimal

import pytest


# =====================================================================================
# Localização do projeto (garante que "thunderbet_app" e "config" estejam no sys.path)
# =====================================================================================
def _add_project_root():
    here = pathlib.Path(__file__).resolve()
    for candidate in [here.parent, *here.parents]:
        if (candidate / "thunderbet_app").is_dir():
            if str(candidate) not in sys.path:
                sys.path.insert(0, str(candidate))
            return candidate
    return None


PROJECT_ROOT = _add_project_root()

# =====================================================================================
# Ambiente de testes (definido antes de importar config.py, que lê o ambiente no import)
# =====================================================================================
_DB_FD, _DB_PATH = tempfile.mkstemp(prefix="thunderbet_test_", suffix=".sqlite")
os.close(_DB_FD)

os.environ["APP_ENV"] = "testing"
os.environ["FLASK_ENV"] = "testing"
os.environ["SQLALCHEMY_DATABASE_URI"] = f"sqlite:///{_DB_PATH}"
os.environ.setdefault("SECRET_KEY", "testing-secret")


# =====================================================================================
# App Flask com SQLite temporário e schema criado uma vez por sessão
# =====================================================================================
@pytest.fixture(scope="session")
def app():
    from config import TestingConfig
    from thunderbet_app import create_app
    from thunderbet_app.extensions import db

    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.engine.dispose()
    try:
        os.remove(_DB_PATH)
    except OSError:
        pass


# =====================================================================================
# Cada teste começa com as tabelas vazias (a conciliação olha o sistema inteiro)
# =====================================================================================
@pytest.fixture(autouse=True)
def _clean_tables(app):
    yield
    from thunderbet_app.extensions import db
    with app.app_context():
        db.session.rollback()
        for table in reversed(db.metadata.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def db_session(app):
    from thunderbet_app.extensions import db
    with app.app_context():
        try:
            yield db.session
        finally:
            try:
                db.session.rollback()
            except Exception:
                pass
            db.session.close()


# =====================================================================================
# Sem rede: requests.get/post devolvem uma resposta fake
# =====================================================================================
class FakeResponse:
    def __init__(self, status_code=200, json_data=None, text="OK"):
        self.status_code = status_code
        self._json = json_data or {}
        self.text = text

    def json(self):
        return self._json


@pytest.fixture(autouse=True)
def _mock_externals(monkeypatch):
    import requests
    monkeypatch.setattr(requests, "get", lambda *a, **k: FakeResponse(), raising=False)
    monkeypatch.setattr(requests, "post", lambda *a, **k: FakeResponse(), raising=False)
    yield


# =====================================================================================
# Factories
# =====================================================================================
def make_user(db_session, username=None, is_admin=False, balance=0, password="secret123"):
    from thunderbet_app.models.user import User
    username = username or f"user_{uuid.uuid4().hex[:6]}"
    u = User(username=username, email=f"{username}@test.com", is_admin=is_admin, balance=balance)
    u.set_password(password)
    db_session.add(u)
    db_session.commit()
    return u


def make_deposit(db_session, user, amount, created_at=None, status="PENDING",
                 payment_method="PIX", type="DEPOSIT", external_reference=None, meta=None):
    from thunderbet_app.models.transaction import Transaction
    tx = Transaction(
        user_id=user.id if hasattr(user, "id") else user,
        type=type,
        amount=Decimal(str(amount)),
        status=status,
        payment_method=payment_method,
        external_reference=external_reference or f"PIX_TEST_{uuid.uuid4().hex[:10]}",
        meta=meta or {},
        created_at=created_at or datetime.utcnow(),
    )
    db_session.add(tx)
    db_session.commit()
    return tx


def minutes_ago(n):
    return datetime.utcnow() - timedelta(minutes=n)


@pytest.fixture
def user_normal(db_session):
    return make_user(db_session, username=f"player_{uuid.uuid4().hex[:6]}")


@pytest.fixture
def user_admin(db_session):
    return make_user(db_session, username=f"admin_{uuid.uuid4().hex[:6]}", is_admin=True)


@pytest.fixture
def logged_client_user(client, user_normal):
    with client.session_transaction() as sess:
        sess["user"] = {"id": user_normal.id, "email": user_normal.email, "is_admin": False}
    return client


@pytest.fixture
def logged_client_admin(client, user_admin):
    with client.session_transaction() as sess:
        sess["user"] = {"id": user_admin.id, "email": user_admin.email, "is_admin": True}
    return client


@pytest.fixture
def pix_credential(db_session):
    from thunderbet_app.models.pix_credential import PixCredential
    cred = PixCredential(
        name="teste", provider="static", is_active=True,
        pix_key="pix@thunderbet.test", merchant_name="THUNDERBET", merchant_city="SAO PAULO",
    )
    db_session.add(cred)
    db_session.commit()
    return cred
