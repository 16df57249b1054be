from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import delete, update

from app.core.directory import get_usuario, setor_do_usuario
from app.core.errors import Forbidden, NotFound, ValidationError
from app.core.extensions import db
from app.core.models import (
    CadastroParte,
    Documento,
    DocumentoModo,
    DocumentoStatus,
    Usuario,
    utcnow,
)
from app.core.transactions import transaction
from app.core.utils import clean, clean_or_none, enum_value, iso, parse_enum
from app.processos.services import get_processo_or_404, vincular_documento

logger = logging.getLogger(__name__)

EXTENSOES_ASSINAVEIS = ("pdf", "png", "jpg", "jpeg", "gif")
TITULO_DOCUMENTO_INICIAL = "Documento inicial"


@dataclass
class DocumentoMutation:
    documento: Documento
    detalhes: dict[str, object] = field(default_factory=dict)


def extensao(file_name: str | None) -> str:
    name = file_name or ""
    if "." not in name:
        return ""
    return name.rsplit(".", 1)[-1].lower()


def _nome_autor(login: str | None) -> str | None:
    if not login:
        return None
    usuario = get_usuario(login)
    if usuario is not None:
        return usuario.nome
    parte = db.session.get(CadastroParte, login)
    return parte.nome if parte is not None else None


def _setor(login: str | None) -> str | None:
    usuario = get_usuario(login)
    return usuario.setor if usuario is not None else None


def documento_view(documento: Documento) -> dict[str, object]:
    return {
        "id": documento.id,
        "titulo": documento.titulo,
        "tipo": documento.tipo,
        "modo": enum_value(documento.modo),
        "status": enum_value(documento.status),
        "fileName": documento.file_name,
        "criadoEm": iso(documento.criado_em),
        "autor": documento.autor,
        "autorNome": _nome_autor(documento.autor),
        "autorSetor": _setor(documento.autor),
        "assinadoPor": documento.assinado_por,
        "assinadoEm": iso(documento.assinado_em),
        "assinanteSetor": _setor(documento.assinado_por),
    }


def documento_detail(documento: Documento) -> dict[str, object]:
    payload = documento_view(documento)
    payload.update(
        {
            "processoId": documento.processo_id,
            "conteudo": documento.conteudo,
            "contentBase64": documento.content_base64,
        }
    )
    return payload


def get_documento_or_404(documento_id: str | None) -> Documento:
    documento = db.session.get(Documento, documento_id) if documento_id else None
    if documento is None:
        raise NotFound("Documento não encontrado")
    return documento


def _atualizar_documento(documento_id: str, **values: object) -> None:
    result = db.session.execute(update(Documento).where(Documento.id == documento_id).values(**values))
    if result.rowcount == 0:
        raise NotFound("Documento não encontrado")


def inicio_fim_da_arvore(sequencia: list[tuple[DocumentoStatus, str | None]], setor_viewer: str) -> int:
    """First index a department may still mutate in a case's document sequence.

    ``sequencia`` holds (status, signer department) in creation order. The
    result is one past the last document signed by another department.
    """
    viewer = (setor_viewer or "").upper()
    ultimo = -1
    for indice, (status, setor_assinante) in enumerate(sequencia):
        if status == DocumentoStatus.ASSINADO and (setor_assinante or "").upper() != viewer:
            ultimo = indice
    return ultimo + 1


def _validar_posicao_fim_arvore(documento: Documento, usuario: str, exige_atribuicao: bool) -> None:
    if not documento.processo_id:
        raise ValidationError("Documento não está vinculado a um processo")
    processo = documento.processo
    if exige_atribuicao:
        atual = processo.atribuido_usuario or ""
        if not atual:
            raise ValidationError("Processo não está atribuído a nenhum usuário")
        if atual != usuario:
            raise Forbidden("Você só pode editar documentos do processo atribuído a você")

    viewer = setor_do_usuario(usuario)
    rows = (
        db.session.query(Documento.id, Documento.status, Usuario.setor)
        .outerjoin(Usuario, Usuario.login == Documento.assinado_por)
        .filter(Documento.processo_id == processo.id)
        .order_by(Documento.criado_em.asc(), Documento.id.asc())
        .all()
    )
    inicio = inicio_fim_da_arvore([(row.status, row.setor) for row in rows], viewer)
    indice = [row.id for row in rows].index(documento.id)
    if indice < inicio:
        raise Forbidden("Documento só pode ser editado/assinado se estiver no fim da árvore")


def list_by_processo(processo_id: str, viewer_setor: str | None = None) -> list[dict[str, object]]:
    get_processo_or_404(processo_id)
    viewer = clean(viewer_setor).upper()
    rows = (
        Documento.query.filter_by(processo_id=processo_id)
        .order_by(Documento.criado_em.asc(), Documento.id.asc())
        .all()
    )
    visiveis = []
    for documento in rows:
        if documento.status == DocumentoStatus.ASSINADO:
            visiveis.append(documento)
        elif viewer and (_setor(documento.autor) or "").upper() == viewer:
            visiveis.append(documento)
    return [documento_view(documento) for documento in visiveis]


def link_documento(processo_id: str, documento_id: object) -> Documento:
    if not clean(documento_id):
        raise ValidationError("documentoId é obrigatório")
    processo = get_processo_or_404(processo_id)
    with transaction():
        documento = vincular_documento(processo, documento_id)
    return documento


def create_documento(
    titulo: object,
    tipo: object = None,
    modo: object = None,
    autor: object = None,
    conteudo: object = None,
) -> Documento:
    titulo_limpo = clean(titulo)
    if not titulo_limpo:
        raise ValidationError("Título é obrigatório")
    modo_documento = DocumentoModo.EDITOR
    if clean(modo):
        modo_documento = parse_enum(DocumentoModo, modo, "Modo de documento inválido")
    with transaction() as session:
        documento = Documento(
            titulo=titulo_limpo,
            tipo=clean(tipo) or "Documento",
            modo=modo_documento,
            status=DocumentoStatus.RASCUNHO,
            autor=clean_or_none(autor),
            conteudo=conteudo if isinstance(conteudo, str) else None,
        )
        session.add(documento)
    return documento


def upload_conteudo(
    documento_id: str,
    file_name: object,
    content_base64: object,
    usuario: object = None,
) -> DocumentoMutation:
    documento = get_documento_or_404(documento_id)
    executor = clean(usuario)
    status_anterior = documento.status
    assinante = documento.assinado_por

    if status_anterior == DocumentoStatus.ASSINADO:
        if not executor:
            raise ValidationError("Usuário executor é obrigatório para editar documento assinado")
        _validar_posicao_fim_arvore(documento, executor, exige_atribuicao=True)
    else:
        if not executor:
            raise ValidationError("Usuário executor é obrigatório para editar rascunho")
        _validar_posicao_fim_arvore(documento, executor, exige_atribuicao=False)

    values: dict[str, object] = {
        "modo": DocumentoModo.UPLOAD,
        "file_name": clean(file_name) or "arquivo.bin",
        "content_base64": clean(content_base64),
        "autor": executor,
    }
    if status_anterior == DocumentoStatus.ASSINADO:
        # Re-upload revokes the signature.
        values.update(status=DocumentoStatus.RASCUNHO, assinado_por=None, assinado_em=None)

    with transaction():
        _atualizar_documento(documento.id, **values)
    if status_anterior == DocumentoStatus.ASSINADO:
        logger.info("Assinatura de %s revogada por novo upload de %s", documento.id, executor)
    return DocumentoMutation(
        documento,
        {"statusAnterior": enum_value(status_anterior), "assinante": assinante, "fileName": values["file_name"]},
    )


def editor_conteudo(documento_id: str, conteudo: object, usuario: object = None) -> DocumentoMutation:
    documento = get_documento_or_404(documento_id)
    executor = clean(usuario)
    status_anterior = documento.status

    if status_anterior == DocumentoStatus.ASSINADO:
        if not executor:
            raise ValidationError("Usuário executor é obrigatório para editar documento assinado")
        if executor != documento.assinado_por:
            raise Forbidden("Você só pode editar documentos assinados por você")
        _validar_posicao_fim_arvore(documento, executor, exige_atribuicao=True)
    else:
        if not executor:
            raise ValidationError("Usuário executor é obrigatório para editar rascunho")
        _validar_posicao_fim_arvore(documento, executor, exige_atribuicao=False)

    with transaction():
        _atualizar_documento(
            documento.id,
            modo=DocumentoModo.EDITOR,
            conteudo=conteudo if isinstance(conteudo, str) else clean(conteudo),
            autor=executor,
        )
    return DocumentoMutation(documento, {"statusAnterior": enum_value(status_anterior)})


def assinar_documento(documento_id: str, usuario: object) -> DocumentoMutation:
    executor = clean(usuario)
    if not executor:
        raise ValidationError("Usuário executor é obrigatório para assinar")
    documento = get_documento_or_404(documento_id)
    if documento.modo not in (DocumentoModo.EDITOR, DocumentoModo.UPLOAD):
        raise ValidationError("Apenas documentos do Editor ou Upload podem ser assinados")
    if documento.modo == DocumentoModo.UPLOAD:
        if not documento.file_name or not documento.content_base64:
            raise ValidationError("Documento de Upload sem conteúdo para assinatura")
        if extensao(documento.file_name) not in EXTENSOES_ASSINAVEIS:
            raise ValidationError("Apenas PDFs e imagens podem ser assinados")
    if documento.status != DocumentoStatus.RASCUNHO:
        raise ValidationError("Documento não está em rascunho")
    _validar_posicao_fim_arvore(documento, executor, exige_atribuicao=True)

    with transaction():
        _atualizar_documento(
            documento.id,
            status=DocumentoStatus.ASSINADO,
            assinado_por=executor,
            assinado_em=utcnow(),
        )
    logger.info("Documento %s assinado por %s", documento.id, executor)
    return DocumentoMutation(documento, {"assinadoPor": executor})


def deletar_rascunho(documento_id: str, usuario: object) -> dict[str, object]:
    executor = clean(usuario)
    if not executor:
        raise ValidationError("Usuário executor é obrigatório")
    documento = get_documento_or_404(documento_id)
    if documento.status == DocumentoStatus.ASSINADO:
        raise ValidationError("Documento assinado não pode ser excluído")
    if documento.status != DocumentoStatus.RASCUNHO:
        raise ValidationError("Documento não está em rascunho")
    if (documento.autor or "") != executor:
        raise Forbidden("Você só pode excluir documentos criados por você")
    if not documento.processo_id:
        raise ValidationError("Documento não está vinculado a um processo")

    detalhes = {
        "titulo": documento.titulo,
        "processoId": documento.processo_id,
        "statusAnterior": enum_value(documento.status),
        "autorLogin": documento.autor,
    }
    with transaction() as session:
        result = session.execute(delete(Documento).where(Documento.id == documento.id))
        if result.rowcount == 0:
            raise NotFound("Documento não encontrado")
    logger.info("Rascunho %s excluído por %s", documento_id, executor)
    return detalhes


def seed_by_processo(processo_id: str, autor: object = None) -> dict[str, object]:
    processo = get_processo_or_404(processo_id)
    if Documento.query.filter_by(processo_id=processo.id).first() is not None:
        return {"ok": True, "seeded": False}

    autor_login = clean(autor) or processo.atribuido_usuario
    if not autor_login:
        primeiro = (
            Usuario.query.filter(db.func.upper(Usuario.setor) == (processo.setor_atual or "").upper())
            .order_by(Usuario.nome.asc())
            .first()
        )
        autor_login = primeiro.login if primeiro is not None else None

    with transaction() as session:
        documento = Documento(
            titulo=TITULO_DOCUMENTO_INICIAL,
            tipo="Documento",
            modo=DocumentoModo.EDITOR,
            status=DocumentoStatus.RASCUNHO,
            autor=autor_login,
            conteudo="",
        )
        session.add(documento)
        documento.processo = processo
        session.flush()
        documento_id = documento.id
    return {"ok": True, "seeded": True, "documentoId": documento_id}
