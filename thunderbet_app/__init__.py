# thunderbet_app/__init__.py
# -*- coding: utf-8 -*-
from __future__ import annotations

import os

from flask import Flask, jsonify
from config import Config, TestingConfig, StagingConfig, ProductionConfig
from .extensions import db, init_extensions, register_cli
from .blueprints.auth import bp as auth_bp
from .blueprints.pix import bp as pix_bp
from datetime import datetime

_CONFIGS = {
    "testing": TestingConfig,
    "staging": StagingConfig,
    "production": ProductionConfig,
}

def create_app(config_object: type[Config] | None = None) -> Flask:
    app = Flask(__name__)

    if config_object is None:
        config_object = _CONFIGS.get(os.getenv("APP_ENV", "").lower(), Config)
    app.config.from_object(config_object)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Extensões (DB/Bcrypt/Migrate)
    init_extensions(app)
    app.config["STARTED_AT"] = datetime.utcnow().strftime("%Y-%m-%d %H:%M:%S UTC")

    # Blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(pix_bp)
    # CLI (ex.: flask init-db)
    register_cli(app)

    @app.route("/")
    def index():
        return jsonify(message="API ThunderBet funcionando!", started_at=app.config["STARTED_AT"])

    return app
