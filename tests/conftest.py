from __future__ import annotations

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app import create_app
from app.core.config import Config
from app.core.extensions import db
from app.core.models import (
    DEMO_PARTE_CHAVE,
    CadastroParte,
    Documento,
    DocumentoModo,
    DocumentoStatus,
    seed_demo_data,
)
from app.processos.services import create_processo


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SECRET_KEY = "test-secret"
    LOG_LEVEL = "WARNING"


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        db.create_all()
        seed_demo_data(db.session)
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def maria(app) -> CadastroParte:
    return CadastroParte.query.filter_by(chave=DEMO_PARTE_CHAVE).one()


@pytest.fixture
def novo_processo(app):
    """Factory for a case created by ``ana.souza`` in PROTOCOLO."""

    def _create(**kwargs):
        kwargs.setdefault("assunto", "Solicitação de informação")
        kwargs.setdefault("executado_por", "ana.souza")
        return create_processo(kwargs.pop("assunto"), **kwargs)

    return _create


@pytest.fixture
def novo_documento(app):
    """Factory for a document linked to a case at a fixed creation offset."""
    base = datetime(2026, 1, 5, 9, 0, 0)

    def _create(processo_id, minuto, autor="ana.souza", assinado_por=None, **kwargs):
        status = DocumentoStatus.ASSINADO if assinado_por else DocumentoStatus.RASCUNHO
        documento = Documento(
            processo_id=processo_id,
            titulo=kwargs.pop("titulo", f"Documento {minuto}"),
            modo=kwargs.pop("modo", DocumentoModo.EDITOR),
            status=status,
            autor=autor,
            assinado_por=assinado_por,
            assinado_em=base + timedelta(minutes=minuto) if assinado_por else None,
            criado_em=base + timedelta(minutes=minuto),
            **kwargs,
        )
        db.session.add(documento)
        db.session.commit()
        return documento.id

    return _create
