from __future__ import annotations

import logging

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.core.errors import NotFound
from app.core.extensions import db
from app.core.models import Setor
from app.core.transactions import transaction


def test_transaction_commits_on_success(app):
    with transaction() as session:
        session.add(Setor(sigla="RH", nome="Recursos Humanos"))

    db.session.expunge_all()
    assert db.session.get(Setor, "RH").nome == "Recursos Humanos"


def test_transaction_rolls_back_and_reraises(app):
    with pytest.raises(NotFound):
        with transaction() as session:
            session.add(Setor(sigla="RH", nome="Recursos Humanos"))
            session.flush()
            raise NotFound("Processo não encontrado")

    assert db.session.get(Setor, "RH") is None


def test_failed_rollback_is_logged_without_masking_the_error(app, monkeypatch, caplog):
    def _rollback_quebrado():
        raise SQLAlchemyError("conexão perdida")

    monkeypatch.setattr(db.session(), "rollback", _rollback_quebrado)

    with caplog.at_level(logging.ERROR, logger="app.core.transactions"):
        with pytest.raises(NotFound) as excinfo:
            with transaction():
                raise NotFound("Processo não encontrado")

    assert excinfo.value.message == "Processo não encontrado"
    assert "Falha ao executar ROLLBACK" in caplog.text
