from __future__ import annotations

import logging

import click
from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from app.cadastros import cadastros_bp
from app.core.config import Config
from app.core.errors import ServiceError
from app.core.extensions import db, migrate
from app.core.models import Setor, seed_demo_data
from app.core.transactions import rollback
from app.processos import processos_bp

logger = logging.getLogger(__name__)


def create_app(config_object: type[Config] | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object or Config)
    app.json.ensure_ascii = False

    configure_logging(app)
    db.init_app(app)
    migrate.init_app(app, db)

    app.register_blueprint(processos_bp)
    app.register_blueprint(cadastros_bp)

    register_cli(app)
    register_routes(app)
    register_error_handlers(app)
    return app


def configure_logging(app: Flask) -> None:
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    app.logger.setLevel(level)


def register_routes(app: Flask) -> None:
    @app.get("/health")
    def health():
        return jsonify({"status": "ok"})


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ServiceError)
    def service_error(error: ServiceError):
        rollback()
        return jsonify({"error": error.message}), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error: HTTPException):
        return jsonify({"error": error.description}), error.code

    @app.errorhandler(Exception)
    def unexpected_error(error: Exception):
        rollback()
        logger.exception("Erro não tratado: %s", error)
        return jsonify({"error": "Erro interno do servidor"}), 500


def register_cli(app: Flask) -> None:
    @app.cli.command("seed-demo")
    @click.option("--reset", is_flag=True, help="Drop and recreate tables before seed.")
    def seed_demo(reset: bool) -> None:
        """Seed departments, case types, subjects and demo users."""
        if reset:
            db.drop_all()
            db.create_all()
        if not Setor.query.first():
            seed_demo_data(db.session)
            click.echo("Demo data seeded.")
        else:
            click.echo("Seed skipped: existing departments found.")
