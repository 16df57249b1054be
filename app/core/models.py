from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from enum import Enum

from sqlalchemy import CheckConstraint, Enum as SAEnum, ForeignKey, Index, JSON
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.extensions import db


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class NivelAcesso(str, Enum):
    PUBLICO = "Público"
    RESTRITO = "Restrito"
    SIGILOSO = "Sigiloso"


class ProcessoStatus(str, Enum):
    EM_INSTRUCAO = "Em instrução"
    AGUARDANDO = "Aguardando"
    ARQUIVADO = "Arquivado"


class Prioridade(str, Enum):
    BAIXA = "Baixa"
    NORMAL = "Normal"
    ALTA = "Alta"
    URGENTE = "Urgente"


class DocumentoModo(str, Enum):
    EDITOR = "Editor"
    UPLOAD = "Upload"


class DocumentoStatus(str, Enum):
    RASCUNHO = "rascunho"
    ASSINADO = "assinado"


class AcessoTipo(str, Enum):
    SETOR = "SETOR"
    USUARIO = "USUARIO"
    PARTE = "PARTE"


class ExternoDocumentoStatus(str, Enum):
    AGUARDANDO_ANALISE = "aguardando_analise"
    JUNTADO = "juntado"
    REJEITADO = "rejeitado"


class Setor(db.Model):
    __tablename__ = "setores"

    sigla: Mapped[str] = mapped_column(db.String(30), primary_key=True)
    nome: Mapped[str] = mapped_column(db.String(120), nullable=False)


class Usuario(db.Model):
    __tablename__ = "usuarios"

    login: Mapped[str] = mapped_column(db.String(80), primary_key=True)
    nome: Mapped[str] = mapped_column(db.String(160), nullable=False)
    cargo: Mapped[str | None] = mapped_column(db.String(120), nullable=True)
    setor: Mapped[str | None] = mapped_column(ForeignKey("setores.sigla"), nullable=True, index=True)
    criado_em: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    setor_ref = relationship("Setor")


class TipoProcesso(db.Model):
    __tablename__ = "tipos_processo"

    id: Mapped[str] = mapped_column(db.String(20), primary_key=True)
    nome: Mapped[str] = mapped_column(db.String(120), nullable=False)


class Assunto(db.Model):
    __tablename__ = "assuntos"

    id: Mapped[int] = mapped_column(primary_key=True)
    nome: Mapped[str] = mapped_column(db.String(160), unique=True, nullable=False)


class CadastroParte(db.Model):
    __tablename__ = "cadastro_partes"
    __table_args__ = (Index("ix_cadastro_partes_documento_chave", "documento", "chave"),)

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=new_id)
    tipo: Mapped[str | None] = mapped_column(db.String(40), nullable=True)
    nome: Mapped[str] = mapped_column(db.String(200), nullable=False, default="")
    documento: Mapped[str | None] = mapped_column(db.String(40), nullable=True, index=True)
    email: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    telefone: Mapped[str | None] = mapped_column(db.String(40), nullable=True)
    endereco_logradouro: Mapped[str | None] = mapped_column(db.String(200), nullable=True)
    endereco_numero: Mapped[str | None] = mapped_column(db.String(20), nullable=True)
    endereco_complemento: Mapped[str | None] = mapped_column(db.String(120), nullable=True)
    endereco_bairro: Mapped[str | None] = mapped_column(db.String(120), nullable=True)
    endereco_cidade: Mapped[str | None] = mapped_column(db.String(120), nullable=True)
    endereco_estado: Mapped[str | None] = mapped_column(db.String(2), nullable=True)
    endereco_cep: Mapped[str | None] = mapped_column(db.String(12), nullable=True)
    chave: Mapped[str | None] = mapped_column(db.String(36), nullable=True)
    chave_ativo: Mapped[bool] = mapped_column(nullable=False, default=True)
    criado_em: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    vinculos = relationship("ProcessoParte", back_populates="cadastro")


class Processo(db.Model):
    __tablename__ = "processos"
    __table_args__ = (
        Index("ix_processos_setor_status", "setor_atual", "status"),
        Index("ix_processos_pendente_destino", "pendente", "pendente_destino_setor"),
        CheckConstraint(
            "pendente = false OR (pendente_origem_setor IS NOT NULL AND pendente_destino_setor IS NOT NULL)",
            name="ck_processos_pendencia",
        ),
    )

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=new_id)
    numero: Mapped[str] = mapped_column(db.String(19), unique=True, nullable=False)
    assunto: Mapped[str] = mapped_column(db.String(255), nullable=False)
    tipo_id: Mapped[str | None] = mapped_column(ForeignKey("tipos_processo.id"), nullable=True)
    nivel_acesso: Mapped[NivelAcesso] = mapped_column(
        SAEnum(NivelAcesso, name="nivel_acesso"),
        nullable=False,
        default=NivelAcesso.PUBLICO,
    )
    base_legal: Mapped[str | None] = mapped_column(db.String(500), nullable=True)
    observacoes: Mapped[str] = mapped_column(db.Text, nullable=False, default="")
    status: Mapped[ProcessoStatus] = mapped_column(
        SAEnum(ProcessoStatus, name="processo_status"),
        nullable=False,
        default=ProcessoStatus.EM_INSTRUCAO,
    )
    prioridade: Mapped[Prioridade] = mapped_column(
        SAEnum(Prioridade, name="prioridade"),
        nullable=False,
        default=Prioridade.NORMAL,
    )
    prazo: Mapped[date | None] = mapped_column(nullable=True)
    setor_atual: Mapped[str] = mapped_column(db.String(30), nullable=False, default="PROTOCOLO")
    atribuido_usuario: Mapped[str | None] = mapped_column(db.String(80), nullable=True, index=True)
    # pendente => origem/destino set and atribuido_usuario NULL
    pendente: Mapped[bool] = mapped_column(nullable=False, default=False)
    pendente_origem_setor: Mapped[str | None] = mapped_column(db.String(30), nullable=True)
    pendente_destino_setor: Mapped[str | None] = mapped_column(db.String(30), nullable=True)
    criado_em: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    tipo = relationship("TipoProcesso")
    partes = relationship(
        "ProcessoParte",
        back_populates="processo",
        order_by="ProcessoParte.id",
        cascade="all, delete-orphan",
    )
    tramites = relationship("Tramite", back_populates="processo", cascade="all, delete-orphan")
    documentos = relationship(
        "Documento",
        back_populates="processo",
        order_by="Documento.criado_em",
    )
    acessos = relationship("ProcessoAcesso", back_populates="processo", cascade="all, delete-orphan")


class ProcessoParte(db.Model):
    __tablename__ = "processo_partes"

    # Integer key: link insertion order drives "interessado".
    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    processo_id: Mapped[str] = mapped_column(ForeignKey("processos.id"), nullable=False, index=True)
    cadastro_parte_id: Mapped[str] = mapped_column(ForeignKey("cadastro_partes.id"), nullable=False, index=True)
    papel: Mapped[str | None] = mapped_column(db.String(80), nullable=True)

    processo = relationship("Processo", back_populates="partes")
    cadastro = relationship("CadastroParte", back_populates="vinculos")


class Tramite(db.Model):
    __tablename__ = "tramites"
    __table_args__ = (Index("ix_tramites_processo_data", "processo_id", "data"),)

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=new_id)
    processo_id: Mapped[str] = mapped_column(ForeignKey("processos.id"), nullable=False)
    origem_setor: Mapped[str] = mapped_column(db.String(30), nullable=False)
    destino_setor: Mapped[str] = mapped_column(db.String(30), nullable=False)
    motivo: Mapped[str | None] = mapped_column(db.String(500), nullable=True)
    prioridade: Mapped[Prioridade | None] = mapped_column(
        SAEnum(Prioridade, name="prioridade"),
        nullable=True,
    )
    prazo: Mapped[date | None] = mapped_column(nullable=True)
    origem_usuario: Mapped[str | None] = mapped_column(db.String(80), nullable=True)
    data: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    processo = relationship("Processo", back_populates="tramites")


class Documento(db.Model):
    __tablename__ = "documentos"
    __table_args__ = (
        Index("ix_documentos_processo_criado", "processo_id", "criado_em"),
        CheckConstraint(
            "(status = 'ASSINADO' AND assinado_por IS NOT NULL AND assinado_em IS NOT NULL)"
            " OR (status = 'RASCUNHO' AND assinado_por IS NULL AND assinado_em IS NULL)",
            name="ck_documentos_assinatura",
        ),
    )

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=new_id)
    # A document belongs to at most one case.
    processo_id: Mapped[str | None] = mapped_column(ForeignKey("processos.id"), nullable=True)
    titulo: Mapped[str] = mapped_column(db.String(255), nullable=False)
    tipo: Mapped[str] = mapped_column(db.String(80), nullable=False, default="Documento")
    modo: Mapped[DocumentoModo] = mapped_column(
        SAEnum(DocumentoModo, name="documento_modo"),
        nullable=False,
        default=DocumentoModo.EDITOR,
    )
    status: Mapped[DocumentoStatus] = mapped_column(
        SAEnum(DocumentoStatus, name="documento_status"),
        nullable=False,
        default=DocumentoStatus.RASCUNHO,
    )
    # Staff login, or a cadastro_partes id for external attachments.
    autor: Mapped[str | None] = mapped_column(db.String(80), nullable=True)
    assinado_por: Mapped[str | None] = mapped_column(db.String(80), nullable=True)
    assinado_em: Mapped[datetime | None] = mapped_column(nullable=True)
    file_name: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    content_base64: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    conteudo: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    criado_em: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    processo = relationship("Processo", back_populates="documentos")


class ProcessoAcesso(db.Model):
    __tablename__ = "processo_acessos"

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=new_id)
    processo_id: Mapped[str] = mapped_column(ForeignKey("processos.id"), nullable=False, index=True)
    tipo: Mapped[AcessoTipo] = mapped_column(SAEnum(AcessoTipo, name="acesso_tipo"), nullable=False)
    # login, setor sigla or processo_partes id, depending on tipo
    valor: Mapped[str] = mapped_column(db.String(120), nullable=False)
    criado_em: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    processo = relationship("Processo", back_populates="acessos")


class ProcessoAcessoChave(db.Model):
    __tablename__ = "processo_acesso_chaves"

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=new_id)
    processo_id: Mapped[str] = mapped_column(ForeignKey("processos.id"), nullable=False, index=True)
    parte_id: Mapped[int] = mapped_column(ForeignKey("processo_partes.id"), nullable=False)
    chave: Mapped[str] = mapped_column(db.String(36), nullable=False, default=new_id)
    ativo: Mapped[bool] = mapped_column(nullable=False, default=True)
    criado_em: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


class ExternoDocumentoTemp(db.Model):
    __tablename__ = "externo_documentos_temp"
    __table_args__ = (Index("ix_externo_docs_processo_parte", "processo_id", "parte_id"),)

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=new_id)
    processo_id: Mapped[str] = mapped_column(ForeignKey("processos.id"), nullable=False)
    parte_id: Mapped[str] = mapped_column(ForeignKey("cadastro_partes.id"), nullable=False)
    file_name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    content_base64: Mapped[str] = mapped_column(db.Text, nullable=False)
    titulo: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    status: Mapped[ExternoDocumentoStatus] = mapped_column(
        SAEnum(ExternoDocumentoStatus, name="externo_documento_status"),
        nullable=False,
        default=ExternoDocumentoStatus.AGUARDANDO_ANALISE,
    )
    rejeicao_motivo: Mapped[str | None] = mapped_column(db.String(500), nullable=True)
    rejeitado_em: Mapped[datetime | None] = mapped_column(nullable=True)
    criado_em: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)

    parte = relationship("CadastroParte")


class Auditoria(db.Model):
    __tablename__ = "auditoria"

    id: Mapped[str] = mapped_column(db.String(36), primary_key=True, default=new_id)
    acao: Mapped[str] = mapped_column(db.String(80), nullable=False, index=True)
    usuario_login: Mapped[str | None] = mapped_column(db.String(80), nullable=True)
    entidade: Mapped[str | None] = mapped_column(db.String(80), nullable=True)
    entidade_id: Mapped[str | None] = mapped_column(db.String(80), nullable=True)
    detalhes: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    ip: Mapped[str] = mapped_column(db.String(80), nullable=False, default="")
    user_agent: Mapped[str] = mapped_column(db.String(255), nullable=False, default="")
    rota: Mapped[str] = mapped_column(db.String(255), nullable=False, default="")
    criado_em: Mapped[datetime] = mapped_column(default=utcnow, nullable=False)


DEMO_SETORES: tuple[tuple[str, str], ...] = (
    ("PROTOCOLO", "Protocolo Geral"),
    ("GABINETE", "Gabinete"),
    ("JURÍDICO", "Assessoria Jurídica"),
    ("TI", "Tecnologia da Informação"),
    ("FINANCEIRO", "Financeiro"),
    ("ADM", "Administração"),
    ("ARQUIVO", "Arquivo Geral"),
)

DEMO_USUARIOS: tuple[tuple[str, str, str, str], ...] = (
    ("ana.souza", "Ana Souza", "Atendente", "PROTOCOLO"),
    ("bruno.lima", "Bruno Lima", "Atendente", "PROTOCOLO"),
    ("carla.dias", "Carla Dias", "Chefe de Gabinete", "GABINETE"),
    ("diego.rocha", "Diego Rocha", "Procurador", "JURÍDICO"),
    ("elisa.martins", "Elisa Martins", "Analista de Sistemas", "TI"),
    ("fabio.nunes", "Fabio Nunes", "Técnico de Suporte", "TI"),
    ("gabriela.costa", "Gabriela Costa", "Contadora", "FINANCEIRO"),
    ("helio.ramos", "Helio Ramos", "Diretor Administrativo", "ADM"),
    ("iris.alves", "Iris Alves", "Assistente Administrativa", "ADM"),
)

DEMO_PARTE_CHAVE = "0c7f2d1e-5a8b-4c3d-9e2f-1a2b3c4d5e6f"


def seed_demo_data(session) -> None:
    session.add_all([Setor(sigla=sigla, nome=nome) for sigla, nome in DEMO_SETORES])
    session.add_all(
        [
            TipoProcesso(id="TP-0001", nome="Processo Administrativo"),
            TipoProcesso(id="TP-0002", nome="Requerimento"),
            TipoProcesso(id="TP-0003", nome="Denúncia"),
        ]
    )
    session.add_all(
        [
            Assunto(nome=nome)
            for nome in (
                "Solicitação de informação",
                "Licitação",
                "Contratação de serviços",
                "Recurso administrativo",
                "Denúncia",
            )
        ]
    )
    session.flush()

    session.add_all(
        [
            Usuario(login=login, nome=nome, cargo=cargo, setor=setor)
            for login, nome, cargo, setor in DEMO_USUARIOS
        ]
    )
    session.add(
        CadastroParte(
            tipo="PF",
            nome="Maria Oliveira",
            documento="12345678900",
            email="maria.oliveira@example.com",
            endereco_cidade="Recife",
            endereco_estado="PE",
            chave=DEMO_PARTE_CHAVE,
            chave_ativo=True,
        )
    )
    session.commit()
