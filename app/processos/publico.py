from __future__ import annotations

import base64
import re

from bs4 import BeautifulSoup

from app.core.directory import get_usuario
from app.core.errors import Conflict, Forbidden, NotFound, Unsupported
from app.core.extensions import db
from app.core.models import (
    CadastroParte,
    Documento,
    DocumentoModo,
    DocumentoStatus,
    NivelAcesso,
    Processo,
    ProcessoParte,
    Tramite,
)
from app.core.utils import clean, enum_value, iso, is_uuid
from app.processos.documentos import extensao
from app.processos.pdf import simple_pdf
from app.processos.services import tramite_view

EXTENSOES_PDF_PUBLICO = ("pdf", "png", "jpg", "jpeg", "gif", "webp", "svg")
_CSV_BYTES = re.compile(r"^\s*\d+(?:\s*,\s*\d+)*\s*$")
_BLOCOS_HTML = ("p", "div", "li", "tr", "h1", "h2", "h3", "h4", "h5", "h6", "blockquote", "pre")


def parte_com_credencial(processo_id: str, cpf: str, chave: str) -> ProcessoParte | None:
    """Case party whose registry entry matches the document number and an active key."""
    if not cpf or not chave:
        return None
    return (
        ProcessoParte.query.join(CadastroParte, CadastroParte.id == ProcessoParte.cadastro_parte_id)
        .filter(
            ProcessoParte.processo_id == processo_id,
            CadastroParte.documento == cpf,
            CadastroParte.chave == chave,
            CadastroParte.chave_ativo.is_(True),
        )
        .first()
    )


def _documento_publico_view(documento: Documento) -> dict[str, object]:
    assinante = get_usuario(documento.assinado_por)
    return {
        "id": documento.id,
        "titulo": documento.titulo,
        "tipo": documento.tipo,
        "modo": enum_value(documento.modo),
        "status": enum_value(documento.status),
        "fileName": documento.file_name,
        "criadoEm": iso(documento.criado_em),
        "assinadoPorLogin": documento.assinado_por,
        "assinaturaNome": assinante.nome if assinante else None,
        "assinaturaCargo": assinante.cargo if assinante else None,
        "assinanteSetor": assinante.setor if assinante else None,
    }


def consultar_publico(valor: str, cpf: object = None, chave: object = None) -> dict[str, object]:
    valor = clean(valor)
    if is_uuid(valor):
        processo = db.session.get(Processo, valor)
    else:
        processo = Processo.query.filter_by(numero=valor).first() if valor else None
    if processo is None:
        raise NotFound("Processo não encontrado")

    if processo.nivel_acesso != NivelAcesso.PUBLICO:
        cpf_limpo, chave_limpa = clean(cpf), clean(chave)
        if not cpf_limpo or not chave_limpa:
            raise Forbidden("Processo restrito: CPF e chave são obrigatórios")
        if parte_com_credencial(processo.id, cpf_limpo, chave_limpa) is None:
            raise Forbidden("Credenciais inválidas para acesso ao processo")

    tramites = Tramite.query.filter_by(processo_id=processo.id).order_by(Tramite.data.desc()).all()
    assinados = (
        Documento.query.filter_by(processo_id=processo.id, status=DocumentoStatus.ASSINADO)
        .order_by(Documento.criado_em.asc(), Documento.id.asc())
        .all()
    )
    return {
        "capaPublica": {
            "id": processo.id,
            "numero": processo.numero,
            "assunto": processo.assunto,
            "status": enum_value(processo.status),
        },
        "andamentosPublicos": [tramite_view(tramite) for tramite in tramites],
        "documentosPublicos": [_documento_publico_view(documento) for documento in assinados],
        "partesPublicas": [
            {
                "id": link.id,
                "tipo": link.cadastro.tipo if link.cadastro else None,
                "nome": link.cadastro.nome if link.cadastro else None,
                "papel": link.papel,
            }
            for link in processo.partes
        ],
    }


def _texto_editor(conteudo: str) -> list[str]:
    """Editor HTML flattened to text lines, one per block element or line break."""
    soup = BeautifulSoup(conteudo, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    for quebra in soup.find_all("br"):
        quebra.replace_with("\n")
    for bloco in soup.find_all(_BLOCOS_HTML):
        bloco.append("\n")
    return soup.get_text().splitlines()


def gerar_pdf_publico(documento_id: str, cpf: object = None, chave: object = None) -> dict[str, str]:
    documento = db.session.get(Documento, documento_id) if documento_id else None
    if documento is None or documento.processo is None:
        raise NotFound("Documento não encontrado")
    if documento.status != DocumentoStatus.ASSINADO:
        raise Forbidden("Documento não assinado")
    processo = documento.processo
    if processo.nivel_acesso != NivelAcesso.PUBLICO:
        cpf_limpo, chave_limpa = clean(cpf), clean(chave)
        if not cpf_limpo or not chave_limpa:
            raise Forbidden("Documento pertence a processo não público: CPF e chave são obrigatórios")
        if parte_com_credencial(processo.id, cpf_limpo, chave_limpa) is None:
            raise Forbidden("Credenciais inválidas para acesso ao documento")

    titulo_seguro = re.sub(r"[^a-zA-Z0-9_-]+", "_", documento.titulo or "documento")
    file_name = documento.file_name or ""

    if documento.modo == DocumentoModo.EDITOR:
        conteudo_pdf = base64.b64encode(simple_pdf(_texto_editor(documento.conteudo or ""))).decode("ascii")
    elif documento.modo == DocumentoModo.UPLOAD:
        bruto = documento.content_base64 or ""
        if not bruto:
            raise Conflict("Upload sem conteúdo para geração de PDF")
        ext = extensao(file_name)
        if ext not in EXTENSOES_PDF_PUBLICO:
            raise Unsupported("Formato de upload não suportado para PDF público")
        conteudo_pdf = bruto
        if ext == "pdf" and _CSV_BYTES.match(bruto):
            dados = bytes(int(parte.strip()) for parte in bruto.split(","))
            conteudo_pdf = base64.b64encode(dados).decode("ascii")
    else:
        raise Unsupported("Modo de documento não suportado para PDF público")

    if documento.modo == DocumentoModo.UPLOAD and file_name.lower().endswith(".pdf"):
        nome_saida = file_name
    else:
        nome_saida = f"{titulo_seguro}.pdf"
    return {"fileName": nome_saida, "contentBase64": conteudo_pdf}
