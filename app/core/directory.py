from __future__ import annotations

from app.core.extensions import db
from app.core.models import Setor, Usuario


def get_usuario(login: str | None) -> Usuario | None:
    if not login:
        return None
    return db.session.get(Usuario, login)


def setor_do_usuario(login: str | None) -> str:
    usuario = get_usuario(login)
    if usuario is None:
        return ""
    return (usuario.setor or "").upper()


def resolve_setor(sigla: str | None) -> str | None:
    """Canonical sigla for a department code, matched case-insensitively."""
    if not sigla:
        return None
    setor = db.session.get(Setor, sigla)
    if setor is not None:
        return setor.sigla
    wanted = sigla.upper()
    for setor in Setor.query.all():
        if setor.sigla.upper() == wanted:
            return setor.sigla
    return None
