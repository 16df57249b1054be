from __future__ import annotations

import logging

from sqlalchemy import delete, update

from app.core.errors import NotFound, ValidationError
from app.core.extensions import db
from app.core.models import AcessoTipo, Processo, ProcessoAcesso, ProcessoAcessoChave, ProcessoParte
from app.core.transactions import transaction
from app.core.utils import clean, iso, match_enum

logger = logging.getLogger(__name__)


def _ensure_processo(processo_id: str) -> None:
    if not processo_id or db.session.get(Processo, processo_id) is None:
        raise NotFound("Processo não encontrado")


def _parte_do_processo(processo_id: str, parte_id: object) -> ProcessoParte | None:
    raw = clean(parte_id)
    if not raw.isdigit():
        return None
    return ProcessoParte.query.filter_by(id=int(raw), processo_id=processo_id).first()


def possui_acesso(processo_id: str, login: str, setor: str) -> bool:
    """True when the user or their department holds a grant on the case."""
    login_upper = (login or "").upper()
    setor_upper = (setor or "").upper()
    grants = ProcessoAcesso.query.filter(
        ProcessoAcesso.processo_id == processo_id,
        ProcessoAcesso.tipo.in_([AcessoTipo.USUARIO, AcessoTipo.SETOR]),
    ).all()
    for grant in grants:
        valor = (grant.valor or "").upper()
        if grant.tipo == AcessoTipo.USUARIO and login_upper and valor == login_upper:
            return True
        if grant.tipo == AcessoTipo.SETOR and setor_upper and valor == setor_upper:
            return True
    return False


def acesso_view(acesso: ProcessoAcesso) -> dict[str, object]:
    parte_nome = None
    parte_documento = None
    parte_id = None
    if acesso.tipo == AcessoTipo.PARTE:
        parte_id = acesso.valor
        link = _parte_do_processo(acesso.processo_id, acesso.valor)
        if link is not None and link.cadastro is not None:
            parte_nome = link.cadastro.nome
            parte_documento = link.cadastro.documento
    return {
        "id": acesso.id,
        "tipo": acesso.tipo.value,
        "valor": acesso.valor,
        "parteId": parte_id,
        "parteNome": parte_nome,
        "parteDocumento": parte_documento,
        "criadoEm": iso(acesso.criado_em),
    }


def list_acessos(processo_id: str) -> list[dict[str, object]]:
    rows = (
        ProcessoAcesso.query.filter_by(processo_id=processo_id)
        .order_by(ProcessoAcesso.criado_em.asc())
        .all()
    )
    return [acesso_view(row) for row in rows]


def add_acesso(processo_id: str, tipo: object, valor: object = None, parte_id: object = None) -> ProcessoAcesso:
    tipo_acesso = match_enum(AcessoTipo, clean(tipo).upper())
    if tipo_acesso is None:
        raise ValidationError("tipo inválido")
    if tipo_acesso in (AcessoTipo.SETOR, AcessoTipo.USUARIO) and not clean(valor):
        raise ValidationError("valor é obrigatório")
    if tipo_acesso == AcessoTipo.PARTE and not clean(parte_id):
        raise ValidationError("parteId é obrigatório para tipo PARTE")
    _ensure_processo(processo_id)

    if tipo_acesso == AcessoTipo.PARTE:
        link = _parte_do_processo(processo_id, parte_id)
        if link is None:
            raise ValidationError("Parte não encontrada no processo")
        stored = str(link.id)
    else:
        stored = clean(valor)

    with transaction() as session:
        acesso = ProcessoAcesso(processo_id=processo_id, tipo=tipo_acesso, valor=stored)
        session.add(acesso)
    logger.info("Acesso %s=%s concedido ao processo %s", tipo_acesso.value, stored, processo_id)
    return acesso


def remove_acesso(processo_id: str, acesso_id: str) -> None:
    with transaction() as session:
        result = session.execute(
            delete(ProcessoAcesso).where(
                ProcessoAcesso.id == acesso_id,
                ProcessoAcesso.processo_id == processo_id,
            )
        )
        if result.rowcount == 0:
            raise NotFound("Acesso não encontrado")


def chave_view(chave: ProcessoAcessoChave) -> dict[str, object]:
    return {
        "id": chave.id,
        "parteId": chave.parte_id,
        "chave": chave.chave,
        "ativo": chave.ativo,
        "criadoEm": iso(chave.criado_em),
    }


def list_chaves(processo_id: str) -> list[dict[str, object]]:
    rows = (
        ProcessoAcessoChave.query.filter_by(processo_id=processo_id)
        .order_by(ProcessoAcessoChave.criado_em.asc())
        .all()
    )
    return [chave_view(row) for row in rows]


def create_chave(processo_id: str, parte_id: object) -> ProcessoAcessoChave:
    if not clean(parte_id):
        raise ValidationError("parteId é obrigatório")
    _ensure_processo(processo_id)
    link = _parte_do_processo(processo_id, parte_id)
    if link is None:
        raise NotFound("Parte não encontrada")

    with transaction() as session:
        chave = ProcessoAcessoChave(processo_id=processo_id, parte_id=link.id, ativo=True)
        session.add(chave)
    return chave


def revoke_chave(processo_id: str, chave_id: str) -> None:
    with transaction() as session:
        result = session.execute(
            update(ProcessoAcessoChave)
            .where(ProcessoAcessoChave.id == chave_id, ProcessoAcessoChave.processo_id == processo_id)
            .values(ativo=False)
        )
        if result.rowcount == 0:
            raise NotFound("Chave não encontrada")
