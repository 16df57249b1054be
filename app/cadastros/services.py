from __future__ import annotations

import logging
import uuid

from flask import current_app
from sqlalchemy import or_

from app.core.directory import get_usuario, resolve_setor
from app.core.errors import NotFound, ValidationError
from app.core.extensions import db
from app.core.models import Assunto, CadastroParte, ProcessoParte, Setor, TipoProcesso, Usuario
from app.core.transactions import transaction
from app.core.utils import clean, clean_or_none, iso, parse_int

logger = logging.getLogger(__name__)

SETOR_ARQUIVO = "ARQUIVO"
_UNSET = object()
CADASTRO_FIELDS = (
    "tipo",
    "nome",
    "documento",
    "email",
    "telefone",
    "endereco_logradouro",
    "endereco_numero",
    "endereco_complemento",
    "endereco_bairro",
    "endereco_cidade",
    "endereco_estado",
    "endereco_cep",
)


def _normalize_estado(value: object) -> str | None:
    raw = clean(value).upper()
    return raw[:2] or None


def _sanitize(payload: dict[str, object]) -> dict[str, object]:
    data: dict[str, object] = {}
    for field_name in CADASTRO_FIELDS:
        if field_name not in payload:
            continue
        if field_name == "endereco_estado":
            data[field_name] = _normalize_estado(payload[field_name])
        else:
            data[field_name] = clean_or_none(payload[field_name])
    return data


def cadastro_view(parte: CadastroParte) -> dict[str, object]:
    payload: dict[str, object] = {"id": parte.id}
    for field_name in CADASTRO_FIELDS:
        payload[field_name] = getattr(parte, field_name)
    payload.update({"chave": parte.chave, "chave_ativo": parte.chave_ativo, "criado_em": iso(parte.criado_em)})
    return payload


def list_partes_cadastro(q: object = None, limit: object = None, offset: object = None) -> list[CadastroParte]:
    query = CadastroParte.query
    termo = clean(q)
    if termo:
        like = f"%{termo}%"
        query = query.filter(or_(CadastroParte.nome.ilike(like), CadastroParte.documento.ilike(like)))
    limite = parse_int(limit, 50)
    if limite < 1:
        limite = 50
    inicio = max(parse_int(offset, 0), 0)
    return query.order_by(CadastroParte.nome.asc()).offset(inicio).limit(limite).all()


def get_parte_cadastro(parte_id: str) -> CadastroParte:
    parte = db.session.get(CadastroParte, parte_id) if parte_id else None
    if parte is None:
        raise NotFound("Registro não encontrado")
    return parte


def create_parte_cadastro(payload: dict[str, object]) -> CadastroParte:
    data = _sanitize(payload)
    if not data.get("nome"):
        raise ValidationError("Nome é obrigatório")
    with transaction() as session:
        parte = CadastroParte(
            id=clean(payload.get("id")) or str(uuid.uuid4()),
            chave=str(uuid.uuid4()),
            chave_ativo=True,
            **data,
        )
        session.add(parte)
    logger.info("Parte %s cadastrada", parte.id)
    return parte


def update_parte_cadastro(parte_id: str, payload: dict[str, object]) -> CadastroParte:
    parte = get_parte_cadastro(parte_id)
    data = _sanitize(payload)
    if "nome" in data and not data["nome"]:
        raise ValidationError("Nome é obrigatório")
    if not data:
        return parte
    with transaction():
        for field_name, value in data.items():
            setattr(parte, field_name, value)
    return parte


def delete_parte_cadastro(parte_id: str) -> None:
    parte = get_parte_cadastro(parte_id)
    if ProcessoParte.query.filter_by(cadastro_parte_id=parte.id).first() is not None:
        raise ValidationError("Parte está vinculada a processos e não pode ser excluída")
    with transaction() as session:
        session.delete(parte)
    logger.info("Parte %s removida do cadastro", parte_id)


def usuario_view(usuario: Usuario) -> dict[str, object]:
    setor = usuario.setor_ref
    return {
        "id": usuario.login,
        "login": usuario.login,
        "nome": usuario.nome,
        "cargo": usuario.cargo,
        "setorId": usuario.setor,
        "setorSigla": setor.sigla if setor else None,
        "setorNome": setor.nome if setor else None,
    }


def get_usuario_or_404(login: object) -> Usuario:
    usuario = get_usuario(clean(login))
    if usuario is None:
        raise NotFound("Usuário não encontrado")
    return usuario


def list_usuarios(setor: object = None) -> list[Usuario]:
    query = Usuario.query
    if clean(setor):
        query = query.filter(Usuario.setor == clean(setor))
    return query.order_by(Usuario.nome.asc()).all()


def list_usuarios_por_sigla(sigla: object) -> list[Usuario]:
    canonical = resolve_setor(clean(sigla))
    if canonical is None:
        return []
    return Usuario.query.filter(Usuario.setor == canonical).order_by(Usuario.nome.asc()).all()


def upsert_usuario(
    login: object,
    nome: object,
    setor: object = None,
    cargo: object = _UNSET,
) -> tuple[str, Usuario]:
    """Create or update a directory user; returns (audit action, user)."""
    login_limpo, nome_limpo = clean(login), clean(nome)
    if not login_limpo or not nome_limpo:
        raise ValidationError("login e nome são obrigatórios")
    setor_final = None
    if clean(setor):
        setor_final = resolve_setor(clean(setor))
        if setor_final is None:
            raise ValidationError("Setor não encontrado")

    usuario = get_usuario(login_limpo)
    with transaction() as session:
        if usuario is not None:
            acao = "usuario.upsert"
            usuario.nome = nome_limpo
            if setor_final:
                usuario.setor = setor_final
            if cargo is not _UNSET:
                usuario.cargo = clean_or_none(cargo)
        else:
            acao = "usuario.criar"
            usuario = Usuario(
                login=login_limpo,
                nome=nome_limpo,
                setor=setor_final or current_app.config.get("SETOR_INICIAL", "PROTOCOLO"),
                cargo=None if cargo is _UNSET else clean_or_none(cargo),
            )
            session.add(usuario)
    logger.info("%s %s", acao, login_limpo)
    return acao, usuario


def list_setores() -> list[dict[str, str]]:
    rows = Setor.query.filter(Setor.sigla != SETOR_ARQUIVO).order_by(Setor.nome.asc()).all()
    return [{"sigla": row.sigla, "nome": row.nome} for row in rows]


def list_assuntos() -> list[dict[str, object]]:
    return [{"id": row.id, "nome": row.nome} for row in Assunto.query.order_by(Assunto.id.asc()).all()]


def list_tipos_processo() -> list[dict[str, str]]:
    return [{"id": row.id, "nome": row.nome} for row in TipoProcesso.query.order_by(TipoProcesso.id.asc()).all()]
