from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime

from flask import current_app
from sqlalchemy import func, update
from sqlalchemy.orm import Session

from app.core.directory import get_usuario, resolve_setor
from app.core.errors import Conflict, Forbidden, NotFound, ValidationError
from app.core.extensions import db
from app.core.models import (
    AcessoTipo,
    CadastroParte,
    Documento,
    NivelAcesso,
    Prioridade,
    Processo,
    ProcessoAcesso,
    ProcessoAcessoChave,
    ProcessoParte,
    ProcessoStatus,
    TipoProcesso,
    Tramite,
)
from app.core.transactions import transaction
from app.core.utils import (
    clean,
    clean_or_none,
    enum_value,
    iso,
    match_enum,
    parse_enum,
    parse_int,
    parse_optional_iso_date,
)
from app.processos.acessos import possui_acesso

logger = logging.getLogger(__name__)

NUMERO_DATETIME_FORMAT = "%Y%m%d-%H%M%S"
MOTIVO_ANDAMENTO_INICIAL = "Andamento inicial"
NIVEIS_RESTRITOS = (NivelAcesso.RESTRITO, NivelAcesso.SIGILOSO)


@dataclass
class TransitionResult:
    processo: Processo
    detalhes: dict[str, object] = field(default_factory=dict)


def gerar_numero(moment: datetime | None = None) -> str:
    moment = moment or datetime.now()
    return f"{moment.strftime(NUMERO_DATETIME_FORMAT)}-{random.randint(0, 999):03d}"


def _next_numero() -> str:
    for _ in range(1000):
        numero = gerar_numero()
        if not Processo.query.filter_by(numero=numero).first():
            return numero
    raise ValueError("Não foi possível gerar um número de processo livre")


def _setor_inicial() -> str:
    return current_app.config.get("SETOR_INICIAL", "PROTOCOLO")


def get_processo_or_404(processo_id: str | None) -> Processo:
    processo = db.session.get(Processo, processo_id) if processo_id else None
    if processo is None:
        raise NotFound("Processo não encontrado")
    return processo


def _atualizar_processo(processo_id: str, **values: object) -> None:
    result = db.session.execute(update(Processo).where(Processo.id == processo_id).values(**values))
    if result.rowcount == 0:
        raise NotFound("Processo não encontrado")


def _ultima_movimentacao(processo: Processo) -> datetime:
    ultima = db.session.query(func.max(Tramite.data)).filter(Tramite.processo_id == processo.id).scalar()
    return ultima or processo.criado_em


def _interessado(processo: Processo) -> str | None:
    if not processo.partes:
        return None
    primeira = processo.partes[0]
    return primeira.cadastro.nome if primeira.cadastro else None


def processo_view(processo: Processo) -> dict[str, object]:
    return {
        "id": processo.id,
        "numero": processo.numero,
        "assunto": processo.assunto,
        "tipo": processo.tipo.nome if processo.tipo else (processo.tipo_id or "Processo"),
        "tipoId": processo.tipo_id,
        "nivelAcesso": enum_value(processo.nivel_acesso),
        "baseLegal": processo.base_legal,
        "observacoes": processo.observacoes,
        "status": enum_value(processo.status),
        "prioridade": enum_value(processo.prioridade),
        "prazo": iso(processo.prazo),
        "setor": processo.setor_atual,
        "atribuidoA": processo.atribuido_usuario,
        "pendente": processo.pendente,
        "pendenteOrigemSetor": processo.pendente_origem_setor,
        "pendenteDestinoSetor": processo.pendente_destino_setor,
        "criadoEm": iso(processo.criado_em),
        "ultimaMovimentacao": iso(_ultima_movimentacao(processo)),
        "interessado": _interessado(processo),
    }


def parte_view(link: ProcessoParte) -> dict[str, object]:
    cadastro = link.cadastro
    return {
        "id": link.id,
        "tipo": cadastro.tipo if cadastro else None,
        "nome": cadastro.nome if cadastro else None,
        "documento": cadastro.documento if cadastro else None,
        "papel": link.papel,
        "cadastroParteId": link.cadastro_parte_id,
    }


def tramite_view(tramite: Tramite) -> dict[str, object]:
    return {
        "id": tramite.id,
        "origemSetor": tramite.origem_setor,
        "destinoSetor": tramite.destino_setor,
        "motivo": tramite.motivo,
        "prioridade": enum_value(tramite.prioridade),
        "prazo": iso(tramite.prazo),
        "usuario": tramite.origem_usuario,
        "data": iso(tramite.data),
    }


def processo_detail(processo_id: str) -> dict[str, object]:
    processo = get_processo_or_404(processo_id)
    payload = processo_view(processo)
    payload["partes"] = [parte_view(link) for link in processo.partes]
    return payload


def _resolve_tipo(tipo_id: object) -> str | None:
    raw = clean(tipo_id)
    if not raw:
        return None
    if db.session.get(TipoProcesso, raw) is None:
        raise ValidationError("Tipo de processo não encontrado")
    return raw


def _vincular_parte(
    session: Session,
    processo: Processo,
    payload: dict[str, object],
    exige_nome: bool = False,
) -> ProcessoParte:
    parte_id = clean(payload.get("parteId"))
    if parte_id:
        cadastro = db.session.get(CadastroParte, parte_id)
        if cadastro is None:
            raise NotFound("Parte de cadastro não encontrada")
    else:
        nome = clean(payload.get("nome"))
        if exige_nome and not nome:
            raise ValidationError("Nome da parte é obrigatório")
        cadastro = CadastroParte(
            tipo=clean_or_none(payload.get("tipo")),
            nome=nome,
            documento=clean_or_none(payload.get("documento")),
        )
        session.add(cadastro)
    link = ProcessoParte(cadastro=cadastro, papel=clean_or_none(payload.get("papel")))
    processo.partes.append(link)
    session.flush()
    return link


def vincular_documento(processo: Processo, documento_id: object) -> Documento:
    documento = db.session.get(Documento, clean(documento_id)) if clean(documento_id) else None
    if documento is None:
        raise NotFound("Documento não encontrado")
    if documento.processo_id and documento.processo_id != processo.id:
        raise Conflict("Documento já vinculado a outro processo")
    if documento.processo_id != processo.id:
        documento.processo = processo
    return documento


def insert_processo(
    session: Session,
    assunto: object,
    nivel_acesso: object = None,
    base_legal: object = None,
    observacoes: object = None,
    tipo_id: object = None,
    partes: list[dict[str, object]] | None = None,
    documentos_ids: list[object] | None = None,
    executado_por: str | None = None,
) -> Processo:
    assunto_limpo = clean(assunto)
    if not assunto_limpo:
        # Uncoded on purpose: surfaces as a generic server error.
        raise ValueError("Assunto é obrigatório")
    nivel = NivelAcesso.PUBLICO
    if clean(nivel_acesso):
        nivel = parse_enum(NivelAcesso, nivel_acesso, "Nível de acesso inválido")
    base = clean_or_none(base_legal)
    if nivel != NivelAcesso.PUBLICO and not base:
        raise ValidationError("Base legal é obrigatória para acesso restrito/sigiloso")

    setor_inicial = _setor_inicial()
    criador = clean_or_none(executado_por)
    processo = Processo(
        numero=_next_numero(),
        assunto=assunto_limpo,
        tipo_id=_resolve_tipo(tipo_id),
        nivel_acesso=nivel,
        base_legal=base,
        observacoes=clean(observacoes),
        status=ProcessoStatus.EM_INSTRUCAO,
        prioridade=Prioridade.NORMAL,
        setor_atual=setor_inicial,
        atribuido_usuario=criador,
        pendente=False,
    )
    session.add(processo)
    session.flush()

    for payload in partes or []:
        _vincular_parte(session, processo, payload)
    for documento_id in documentos_ids or []:
        vincular_documento(processo, documento_id)

    processo.tramites.append(
        Tramite(
            origem_setor=setor_inicial,
            destino_setor=setor_inicial,
            motivo=MOTIVO_ANDAMENTO_INICIAL,
            origem_usuario=criador,
        )
    )
    session.flush()
    return processo


def create_processo(
    assunto: object,
    nivel_acesso: object = None,
    base_legal: object = None,
    observacoes: object = None,
    tipo_id: object = None,
    partes: list[dict[str, object]] | None = None,
    documentos_ids: list[object] | None = None,
    executado_por: str | None = None,
) -> Processo:
    with transaction() as session:
        processo = insert_processo(
            session,
            assunto,
            nivel_acesso=nivel_acesso,
            base_legal=base_legal,
            observacoes=observacoes,
            tipo_id=tipo_id,
            partes=partes,
            documentos_ids=documentos_ids,
            executado_por=executado_por,
        )
    logger.info("Processo %s criado por %s", processo.numero, executado_por or "-")
    return processo


def update_dados(
    processo_id: str,
    assunto: object = None,
    nivel_acesso: object = None,
    observacoes: object = None,
    base_legal: object = None,
    tipo_id: object = None,
) -> TransitionResult:
    processo = get_processo_or_404(processo_id)
    anterior = {"nivelAcesso": enum_value(processo.nivel_acesso), "baseLegal": processo.base_legal}

    nivel = None
    if clean(nivel_acesso):
        nivel = parse_enum(NivelAcesso, nivel_acesso, "Nível de acesso inválido")
    base = clean_or_none(base_legal)
    if nivel is not None and nivel != NivelAcesso.PUBLICO and not base:
        raise ValidationError("Base legal obrigatória para nível de acesso não público")
    if nivel is None and base_legal is not None and not base and processo.nivel_acesso in NIVEIS_RESTRITOS:
        raise ValidationError("Base legal obrigatória para nível de acesso não público")

    with transaction():
        if clean(assunto):
            processo.assunto = clean(assunto)
        if observacoes is not None:
            processo.observacoes = clean(observacoes)
        if clean(tipo_id):
            processo.tipo_id = _resolve_tipo(tipo_id)
        if nivel is not None:
            processo.nivel_acesso = nivel
        if nivel == NivelAcesso.PUBLICO:
            processo.base_legal = None
        elif base:
            processo.base_legal = base

    return TransitionResult(
        processo,
        {
            "assunto": clean_or_none(assunto),
            "nivelAcesso": enum_value(nivel),
            "observacoes": observacoes,
            "baseLegal": processo.base_legal,
            "tipoId": clean_or_none(tipo_id),
            "anterior": anterior,
        },
    )


def list_processos(filters: dict[str, str]) -> dict[str, object]:
    page = max(parse_int(filters.get("page"), 1), 1)
    page_size = parse_int(filters.get("pageSize"), current_app.config.get("PAGE_SIZE_DEFAULT", 10))
    if page_size < 1:
        page_size = current_app.config.get("PAGE_SIZE_DEFAULT", 10)
    empty = {"total": 0, "page": page, "pageSize": page_size, "items": []}

    query = Processo.query
    numero = clean(filters.get("numero"))
    if numero:
        query = query.filter(Processo.numero.ilike(f"%{numero}%"))
    assunto = clean(filters.get("assunto"))
    if assunto:
        query = query.filter(Processo.assunto.ilike(f"%{assunto}%"))
    interessado = clean(filters.get("interessado"))
    if interessado:
        query = query.filter(
            Processo.partes.any(ProcessoParte.cadastro.has(CadastroParte.nome.ilike(f"%{interessado}%")))
        )
    for key, enum_cls, column in (
        ("status", ProcessoStatus, Processo.status),
        ("prioridade", Prioridade, Processo.prioridade),
        ("nivelAcesso", NivelAcesso, Processo.nivel_acesso),
    ):
        raw = clean(filters.get(key))
        if not raw:
            continue
        member = match_enum(enum_cls, raw)
        if member is None:
            return empty
        query = query.filter(column == member)
    setor = clean(filters.get("setor"))
    if setor:
        query = query.filter(Processo.setor_atual == (resolve_setor(setor) or setor))
    if clean(filters.get("pendente")).lower() == "true":
        query = query.filter(Processo.pendente.is_(True))
    pendente_setor = clean(filters.get("pendenteSetor"))
    if pendente_setor:
        query = query.filter(Processo.pendente_destino_setor == (resolve_setor(pendente_setor) or pendente_setor))
    usuario = clean(filters.get("usuario"))
    if clean(filters.get("somenteMeus")).lower() == "true" and usuario:
        query = query.filter(Processo.atribuido_usuario == usuario)

    total = query.count()
    rows = (
        query.order_by(Processo.criado_em.desc(), Processo.numero.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return {"total": total, "page": page, "pageSize": page_size, "items": [processo_view(p) for p in rows]}


def add_parte(processo_id: str, payload: dict[str, object]) -> ProcessoParte:
    processo = get_processo_or_404(processo_id)
    with transaction() as session:
        link = _vincular_parte(session, processo, payload, exige_nome=True)
    return link


def delete_parte(processo_id: str, link_id: str | int) -> str | None:
    raw = clean(link_id)
    link = None
    if raw.isdigit():
        link = ProcessoParte.query.filter_by(id=int(raw), processo_id=processo_id).first()
    if link is None:
        raise NotFound("Parte não encontrada")
    nome = link.cadastro.nome if link.cadastro else None
    with transaction() as session:
        ProcessoAcessoChave.query.filter_by(processo_id=processo_id, parte_id=link.id).delete()
        ProcessoAcesso.query.filter_by(processo_id=processo_id, tipo=AcessoTipo.PARTE, valor=str(link.id)).delete()
        session.delete(link)
    return nome


def list_tramites(processo_id: str) -> list[dict[str, object]]:
    get_processo_or_404(processo_id)
    rows = (
        Tramite.query.filter_by(processo_id=processo_id)
        .order_by(Tramite.data.desc())
        .all()
    )
    return [tramite_view(row) for row in rows]


def atribuir_processo(processo_id: str, usuario: str | None, executado_por: str | None) -> TransitionResult:
    alvo = clean(usuario)
    executor = clean(executado_por)
    if not alvo:
        raise ValidationError("Usuário de destino é obrigatório")
    if not executor:
        raise ValidationError("Usuário executor é obrigatório")
    processo = get_processo_or_404(processo_id)
    atual = processo.atribuido_usuario
    if atual and atual != executor:
        raise Forbidden("Você só pode atribuir processos atribuídos a você ou sem responsável")
    destino = get_usuario(alvo)
    if destino is None:
        raise ValidationError("Usuário não encontrado")
    setor_usuario = (destino.setor or "").upper()
    if setor_usuario != (processo.setor_atual or "").upper():
        raise ValidationError("Usuário não pertence ao setor atual do processo")
    if processo.nivel_acesso in NIVEIS_RESTRITOS and not possui_acesso(processo.id, alvo, setor_usuario):
        raise Forbidden("Destino não possui acesso ao processo restrito/sigiloso")

    with transaction():
        _atualizar_processo(processo.id, atribuido_usuario=alvo)
    logger.info("Processo %s atribuído a %s por %s", processo.numero, alvo, executor)
    return TransitionResult(processo, {"de": atual, "para": alvo})


def priorizar_processo(processo_id: str, prioridade: object, executado_por: str | None) -> TransitionResult:
    nova = match_enum(Prioridade, prioridade)
    if nova is None:
        raise ValidationError("Prioridade inválida")
    executor = clean(executado_por)
    if not executor:
        raise ValidationError("Usuário executor é obrigatório")
    processo = get_processo_or_404(processo_id)
    if processo.atribuido_usuario and processo.atribuido_usuario != executor:
        raise Forbidden("Você só pode definir prioridade de processos atribuídos a você ou sem responsável")

    with transaction():
        _atualizar_processo(processo.id, prioridade=nova)
    return TransitionResult(processo, {"prioridade": nova.value})


def tramitar_processo(
    processo_id: str,
    destino_setor: str | None,
    usuario: str | None,
    motivo: str | None = None,
    prioridade: object = None,
    prazo: object = None,
) -> TransitionResult:
    executor = clean(usuario)
    if not executor:
        raise ValidationError("Usuário executor é obrigatório")
    processo = get_processo_or_404(processo_id)
    origem = processo.setor_atual
    if (processo.atribuido_usuario or "") != executor:
        raise Forbidden("Você só pode tramitar processos atribuídos a você")
    if not clean(destino_setor):
        raise ValidationError("Setor de destino é obrigatório")
    destino = resolve_setor(clean(destino_setor))
    if destino is None:
        raise ValidationError("Setor de destino não encontrado")
    nova_prioridade = None
    if clean(prioridade):
        nova_prioridade = parse_enum(Prioridade, prioridade, "Prioridade inválida")
    novo_prazo = parse_optional_iso_date(prazo, "prazo")
    motivo_limpo = clean_or_none(motivo)

    with transaction() as session:
        tramite = Tramite(
            processo_id=processo.id,
            origem_setor=origem,
            destino_setor=destino,
            motivo=motivo_limpo,
            prioridade=nova_prioridade,
            prazo=novo_prazo,
            origem_usuario=executor,
        )
        session.add(tramite)
        session.flush()
        tramite_id = tramite.id
        values: dict[str, object] = {
            "status": ProcessoStatus.AGUARDANDO,
            "pendente": True,
            "pendente_origem_setor": origem,
            "pendente_destino_setor": destino,
            "atribuido_usuario": None,
        }
        if nova_prioridade is not None:
            values["prioridade"] = nova_prioridade
        if novo_prazo is not None:
            values["prazo"] = novo_prazo
        _atualizar_processo(processo.id, **values)

    logger.info("Processo %s tramitado de %s para %s por %s", processo.numero, origem, destino, executor)
    return TransitionResult(
        processo,
        {
            "origem": origem,
            "destino": destino,
            "motivo": motivo_limpo,
            "prioridade": enum_value(nova_prioridade),
            "prazo": iso(novo_prazo),
            "tramiteId": tramite_id,
        },
    )


def _pendencia_do_usuario(processo: Processo, executor: str, exige_origem: bool) -> str:
    destino = processo.pendente_destino_setor
    if not processo.pendente or not destino or (exige_origem and not processo.pendente_origem_setor):
        raise ValidationError("Processo não está pendente")
    usuario = get_usuario(executor)
    if usuario is None:
        raise ValidationError("Usuário não encontrado")
    if (usuario.setor or "").upper() != destino.upper():
        raise Forbidden("Usuário não pertence ao setor de destino da pendência")
    return destino


def aceitar_pendencia(processo_id: str, usuario: str | None) -> TransitionResult:
    executor = clean(usuario)
    if not executor:
        raise ValidationError("Usuário executor é obrigatório")
    processo = get_processo_or_404(processo_id)
    destino = _pendencia_do_usuario(processo, executor, exige_origem=False)

    with transaction():
        _atualizar_processo(
            processo.id,
            pendente=False,
            pendente_origem_setor=None,
            pendente_destino_setor=None,
            setor_atual=destino,
            status=ProcessoStatus.EM_INSTRUCAO,
            atribuido_usuario=executor,
        )
    logger.info("Pendência do processo %s aceita em %s por %s", processo.numero, destino, executor)
    return TransitionResult(processo, {"destino": destino})


def recusar_pendencia(processo_id: str, usuario: str | None, motivo: str | None) -> TransitionResult:
    executor = clean(usuario)
    if not executor:
        raise ValidationError("Usuário executor é obrigatório")
    motivo_limpo = clean(motivo)
    if not motivo_limpo:
        raise ValidationError("Motivo é obrigatório para recusa")
    processo = get_processo_or_404(processo_id)
    destino = _pendencia_do_usuario(processo, executor, exige_origem=True)
    origem = processo.pendente_origem_setor

    # Single bounce: the refusing department becomes the new origin.
    with transaction() as session:
        tramite = Tramite(
            processo_id=processo.id,
            origem_setor=destino,
            destino_setor=origem,
            motivo=motivo_limpo,
            origem_usuario=executor,
        )
        session.add(tramite)
        session.flush()
        tramite_id = tramite.id
        _atualizar_processo(
            processo.id,
            pendente=True,
            pendente_destino_setor=origem,
            pendente_origem_setor=destino,
            atribuido_usuario=None,
            status=ProcessoStatus.AGUARDANDO,
        )
    logger.info("Pendência do processo %s recusada por %s, devolvida a %s", processo.numero, executor, origem)
    return TransitionResult(
        processo,
        {"origem": origem, "destino": destino, "motivo": motivo_limpo, "tramiteId": tramite_id},
    )


def arquivar_processo(processo_id: str, usuario: str | None) -> TransitionResult:
    executor = clean(usuario)
    if not executor:
        raise ValidationError("Usuário executor é obrigatório")
    processo = get_processo_or_404(processo_id)
    if processo.pendente:
        raise ValidationError("Processo pendente não pode ser arquivado")
    if processo.status == ProcessoStatus.ARQUIVADO:
        raise ValidationError("Processo já está arquivado")
    if (processo.atribuido_usuario or "") != executor:
        raise Forbidden("Você só pode arquivar processos atribuídos a você")

    with transaction():
        _atualizar_processo(processo.id, status=ProcessoStatus.ARQUIVADO, atribuido_usuario=None)
    logger.info("Processo %s arquivado por %s", processo.numero, executor)
    return TransitionResult(processo, {"acao": "Arquivar"})
