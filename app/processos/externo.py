from __future__ import annotations

import logging

from sqlalchemy import func

from app.core.errors import Conflict, NotFound, ValidationError
from app.core.extensions import db
from app.core.models import (
    CadastroParte,
    Documento,
    DocumentoModo,
    DocumentoStatus,
    ExternoDocumentoStatus,
    ExternoDocumentoTemp,
    NivelAcesso,
    Processo,
    ProcessoParte,
    ProcessoStatus,
    Tramite,
    utcnow,
)
from app.core.transactions import transaction
from app.core.utils import clean, clean_or_none, enum_value, iso, match_enum
from app.processos.services import insert_processo

logger = logging.getLogger(__name__)

PAPEL_INTERESSADO = "Interessado"


def _credencial(cpf: object, chave: object) -> tuple[str, str]:
    return clean(cpf), clean(chave)


def _cadastro_por_credencial(cpf: str, chave: str) -> CadastroParte | None:
    return CadastroParte.query.filter(
        CadastroParte.documento == cpf,
        CadastroParte.chave == chave,
        CadastroParte.chave_ativo.is_(True),
    ).first()


def list_processos_por_credencial(cpf: object, chave: object) -> list[dict[str, object]]:
    documento, key = _credencial(cpf, chave)
    if not documento or not key:
        raise ValidationError("CPF e chave são obrigatórios")

    rows = (
        db.session.query(Processo, ProcessoParte.papel, CadastroParte.nome)
        .join(ProcessoParte, ProcessoParte.processo_id == Processo.id)
        .join(CadastroParte, CadastroParte.id == ProcessoParte.cadastro_parte_id)
        .filter(
            CadastroParte.documento == documento,
            CadastroParte.chave == key,
            CadastroParte.chave_ativo.is_(True),
        )
        .order_by(Processo.criado_em.desc())
        .all()
    )
    items = []
    for processo, papel, nome in rows:
        ultima = db.session.query(func.max(Tramite.data)).filter(Tramite.processo_id == processo.id).scalar()
        items.append(
            {
                "id": processo.id,
                "numero": processo.numero,
                "assunto": processo.assunto,
                "status": enum_value(processo.status),
                "tipo": processo.tipo.nome if processo.tipo else processo.tipo_id,
                "nivelAcesso": enum_value(processo.nivel_acesso),
                "setor": processo.setor_atual,
                "atribuidoA": processo.atribuido_usuario,
                "criadoEm": iso(processo.criado_em),
                "ultimaMovimentacao": iso(ultima or processo.criado_em),
                "meuPapel": papel,
                "meuNome": nome,
            }
        )
    return items


def _validar_parte_processo(numero: object, cpf: object, chave: object) -> tuple[str, str]:
    """(processo id, cadastro id) for a credential holder that is party to the case."""
    numero_limpo = clean(numero)
    documento, key = _credencial(cpf, chave)
    if not numero_limpo or not documento or not key:
        raise ValidationError("Parâmetros insuficientes")
    row = (
        db.session.query(Processo.id, CadastroParte.id)
        .join(ProcessoParte, ProcessoParte.processo_id == Processo.id)
        .join(CadastroParte, CadastroParte.id == ProcessoParte.cadastro_parte_id)
        .filter(
            Processo.numero == numero_limpo,
            CadastroParte.documento == documento,
            CadastroParte.chave == key,
            CadastroParte.chave_ativo.is_(True),
        )
        .first()
    )
    if row is None:
        raise NotFound("Processo ou credenciais inválidas")
    return row[0], row[1]


def temp_view(temp: ExternoDocumentoTemp) -> dict[str, object]:
    return {
        "id": temp.id,
        "fileName": temp.file_name,
        "status": enum_value(temp.status),
        "titulo": temp.titulo,
        "criadoEm": iso(temp.criado_em),
        "motivo": temp.rejeicao_motivo,
    }


def list_documentos_temporarios(numero: object, cpf: object, chave: object) -> list[dict[str, object]]:
    processo_id, parte_id = _validar_parte_processo(numero, cpf, chave)
    rows = (
        ExternoDocumentoTemp.query.filter_by(processo_id=processo_id, parte_id=parte_id)
        .order_by(ExternoDocumentoTemp.criado_em.desc())
        .all()
    )
    return [temp_view(row) for row in rows]


def anexar_documento_temporario(
    numero: object,
    cpf: object,
    chave: object,
    file_name: object,
    content_base64: object,
    titulo: object = None,
) -> ExternoDocumentoTemp:
    processo_id, parte_id = _validar_parte_processo(numero, cpf, chave)
    nome, conteudo = clean(file_name), clean(content_base64)
    if not nome or not conteudo:
        raise ValidationError("Arquivo inválido")
    with transaction() as session:
        temp = ExternoDocumentoTemp(
            processo_id=processo_id,
            parte_id=parte_id,
            file_name=nome,
            content_base64=conteudo,
            titulo=clean_or_none(titulo),
            status=ExternoDocumentoStatus.AGUARDANDO_ANALISE,
        )
        session.add(temp)
    logger.info("Documento externo %s anexado ao processo %s", temp.id, processo_id)
    return temp


def list_documentos_externos_por_processo(processo_id: str, status: object = None) -> list[dict[str, object]]:
    if not clean(processo_id):
        raise ValidationError("processoId é obrigatório")
    query = (
        db.session.query(ExternoDocumentoTemp, CadastroParte)
        .join(CadastroParte, CadastroParte.id == ExternoDocumentoTemp.parte_id)
        .filter(ExternoDocumentoTemp.processo_id == processo_id)
    )
    if clean(status):
        filtro = match_enum(ExternoDocumentoStatus, status)
        if filtro is None:
            return []
        query = query.filter(ExternoDocumentoTemp.status == filtro)
    rows = query.order_by(ExternoDocumentoTemp.criado_em.desc()).all()
    items = []
    for temp, parte in rows:
        payload = temp_view(temp)
        payload.update({"parteId": parte.id, "parteNome": parte.nome, "parteDocumento": parte.documento})
        items.append(payload)
    return items


def _get_temp_or_404(processo_id: str, temp_id: str) -> ExternoDocumentoTemp:
    if not clean(processo_id) or not clean(temp_id):
        raise ValidationError("processoId e tempId são obrigatórios")
    temp = ExternoDocumentoTemp.query.filter_by(id=clean(temp_id), processo_id=clean(processo_id)).first()
    if temp is None:
        raise NotFound("Documento externo não encontrado")
    return temp


def get_documento_temporario(processo_id: str, temp_id: str) -> dict[str, object]:
    temp = _get_temp_or_404(processo_id, temp_id)
    payload = temp_view(temp)
    payload.update(
        {
            "processoId": temp.processo_id,
            "parteId": temp.parte_id,
            "contentBase64": temp.content_base64,
            "parteNome": temp.parte.nome if temp.parte else None,
            "parteDocumento": temp.parte.documento if temp.parte else None,
        }
    )
    return payload


def _exige_aguardando_analise(temp: ExternoDocumentoTemp) -> None:
    if temp.status != ExternoDocumentoStatus.AGUARDANDO_ANALISE:
        raise Conflict("Documento já analisado")


def aceitar_documento_temporario(processo_id: str, temp_id: str) -> dict[str, object]:
    temp = _get_temp_or_404(processo_id, temp_id)
    _exige_aguardando_analise(temp)

    with transaction() as session:
        documento = Documento(
            processo_id=temp.processo_id,
            titulo=temp.titulo or temp.file_name or "Documento Externo",
            tipo="Documento",
            modo=DocumentoModo.UPLOAD,
            status=DocumentoStatus.ASSINADO,
            file_name=temp.file_name,
            content_base64=temp.content_base64,
            autor=temp.parte_id,
            assinado_por=temp.parte_id,
            assinado_em=utcnow(),
        )
        session.add(documento)
        temp.status = ExternoDocumentoStatus.JUNTADO
        session.flush()
        documento_id = documento.id
    logger.info("Documento externo %s juntado ao processo %s como %s", temp_id, processo_id, documento_id)
    return {"ok": True, "documentoId": documento_id}


def rejeitar_documento_temporario(processo_id: str, temp_id: str, motivo: object) -> dict[str, object]:
    temp = _get_temp_or_404(processo_id, temp_id)
    _exige_aguardando_analise(temp)
    motivo_limpo = clean(motivo)
    if not motivo_limpo:
        raise ValidationError("Motivo é obrigatório")
    with transaction():
        temp.status = ExternoDocumentoStatus.REJEITADO
        temp.rejeicao_motivo = motivo_limpo
        temp.rejeitado_em = utcnow()
    return {"ok": True}


def criar_processo_externo(
    cpf: object,
    chave: object,
    assunto: object,
    tipo_id: object = None,
    observacoes: object = None,
) -> Processo:
    documento, key = _credencial(cpf, chave)
    if not documento or not key:
        raise ValidationError("CPF e chave são obrigatórios")
    if not clean(assunto):
        raise ValidationError("Assunto é obrigatório")
    cadastro = _cadastro_por_credencial(documento, key)
    if cadastro is None:
        raise NotFound("Credenciais inválidas ou parte não encontrada")

    with transaction() as session:
        processo = insert_processo(
            session,
            assunto,
            nivel_acesso=NivelAcesso.PUBLICO.value,
            observacoes=observacoes,
            tipo_id=tipo_id,
            partes=[{"parteId": cadastro.id, "papel": PAPEL_INTERESSADO}],
        )
        # Lands in the intake department's pending queue, unassigned.
        setor = processo.setor_atual
        processo.status = ProcessoStatus.AGUARDANDO
        processo.pendente = True
        processo.pendente_origem_setor = setor
        processo.pendente_destino_setor = setor
        processo.atribuido_usuario = None
    logger.info("Processo externo %s criado pela parte %s", processo.numero, cadastro.id)
    return processo
