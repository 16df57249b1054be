from __future__ import annotations

import logging

from flask import has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from app.core.extensions import db
from app.core.models import Auditoria
from app.core.transactions import rollback

logger = logging.getLogger(__name__)


def _request_meta() -> tuple[str, str, str]:
    if not has_request_context():
        return "", "", ""
    ip = request.headers.get("X-Forwarded-For") or request.remote_addr or ""
    user_agent = request.headers.get("User-Agent", "")
    return ip[:80], user_agent[:255], request.full_path.rstrip("?")[:255]


def audit_log(
    acao: str,
    usuario_login: str | None,
    entidade: str | None = None,
    entidade_id: str | int | None = None,
    detalhes: dict[str, object] | None = None,
) -> None:
    # Audit failures are logged, never propagated to the caller.
    if isinstance(detalhes, dict) and detalhes.get("cargo") in (None, ""):
        detalhes = {k: v for k, v in detalhes.items() if k != "cargo"}
    ip, user_agent, rota = _request_meta()
    try:
        db.session.add(
            Auditoria(
                acao=acao,
                usuario_login=usuario_login or None,
                entidade=entidade,
                entidade_id=str(entidade_id) if entidade_id is not None else None,
                detalhes=detalhes,
                ip=ip,
                user_agent=user_agent,
                rota=rota,
            )
        )
        db.session.commit()
    except SQLAlchemyError:
        rollback()
        logger.exception("Falha ao registrar auditoria %s", acao)
