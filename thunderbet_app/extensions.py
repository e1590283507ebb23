# thunderbet_app/extensions.py
# -*- coding: utf-8 -*-
from __future__ import annotations
import click
from flask_sqlalchemy import SQLAlchemy
from flask_bcrypt import Bcrypt
from flask_migrate import Migrate
from sqlalchemy import text



db = SQLAlchemy()
bcrypt = Bcrypt()
migrate = Migrate()

def init_extensions(app):
    # DB/Bcrypt/Migrate
    db.init_app(app)
    bcrypt.init_app(app)
    migrate.init_app(app, db)

def register_cli(app):
    @app.cli.command("init-db")
    def init_db_cmd():
        """Cria as tabelas iniciais (DEV/MVP). Para produção: use flask db upgrade."""
        with app.app_context():
            # sanity check
            db.session.execute(text("SELECT 1"))
            db.create_all()
            print("Tabelas criadas.")

    @app.cli.command("create-pix-credential")
    @click.option("--name", default="default", show_default=True)
    @click.option("--pix-key", required=True, help="Chave PIX recebedora.")
    @click.option("--merchant-name", default="THUNDERBET", show_default=True)
    @click.option("--merchant-city", default="SAO PAULO", show_default=True)
    def create_pix_credential_cmd(name, pix_key, merchant_name, merchant_city):
        """Cadastra uma credencial PIX estática e a torna a única ativa."""
        from .models.pix_credential import PixCredential

        with app.app_context():
            PixCredential.query.update({"is_active": False})
            cred = PixCredential(
                name=name, provider="static", is_active=True, pix_key=pix_key,
                merchant_name=merchant_name, merchant_city=merchant_city,
            )
            db.session.add(cred)
            db.session.commit()
            print(f"Credencial PIX '{name}' ativa (id={cred.id}).")
