"""processos initial schema

Revision ID: 4f1a2b3c5d6e
Revises:
Create Date: 2026-10-17 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "4f1a2b3c5d6e"
down_revision = None
branch_labels = None
depends_on = None

PRIORIDADE_VALUES = ("BAIXA", "NORMAL", "ALTA", "URGENTE")
ENUM_TYPES = (
    "nivel_acesso",
    "processo_status",
    "prioridade",
    "documento_modo",
    "documento_status",
    "acesso_tipo",
    "externo_documento_status",
)


def upgrade():
    op.create_table(
        "setores",
        sa.Column("sigla", sa.String(length=30), nullable=False),
        sa.Column("nome", sa.String(length=120), nullable=False),
        sa.PrimaryKeyConstraint("sigla"),
    )
    op.create_table(
        "tipos_processo",
        sa.Column("id", sa.String(length=20), nullable=False),
        sa.Column("nome", sa.String(length=120), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "assuntos",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("nome", sa.String(length=160), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("nome"),
    )
    op.create_table(
        "usuarios",
        sa.Column("login", sa.String(length=80), nullable=False),
        sa.Column("nome", sa.String(length=160), nullable=False),
        sa.Column("cargo", sa.String(length=120), nullable=True),
        sa.Column("setor", sa.String(length=30), nullable=True),
        sa.Column("criado_em", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["setor"], ["setores.sigla"]),
        sa.PrimaryKeyConstraint("login"),
    )
    with op.batch_alter_table("usuarios", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_usuarios_setor"), ["setor"], unique=False)

    op.create_table(
        "cadastro_partes",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("tipo", sa.String(length=40), nullable=True),
        sa.Column("nome", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("documento", sa.String(length=40), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("telefone", sa.String(length=40), nullable=True),
        sa.Column("endereco_logradouro", sa.String(length=200), nullable=True),
        sa.Column("endereco_numero", sa.String(length=20), nullable=True),
        sa.Column("endereco_complemento", sa.String(length=120), nullable=True),
        sa.Column("endereco_bairro", sa.String(length=120), nullable=True),
        sa.Column("endereco_cidade", sa.String(length=120), nullable=True),
        sa.Column("endereco_estado", sa.String(length=2), nullable=True),
        sa.Column("endereco_cep", sa.String(length=12), nullable=True),
        sa.Column("chave", sa.String(length=36), nullable=True),
        sa.Column("chave_ativo", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("criado_em", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("cadastro_partes", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_cadastro_partes_documento"), ["documento"], unique=False)
    op.create_index("ix_cadastro_partes_documento_chave", "cadastro_partes", ["documento", "chave"], unique=False)

    op.create_table(
        "processos",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("numero", sa.String(length=19), nullable=False),
        sa.Column("assunto", sa.String(length=255), nullable=False),
        sa.Column("tipo_id", sa.String(length=20), nullable=True),
        sa.Column(
            "nivel_acesso",
            sa.Enum("PUBLICO", "RESTRITO", "SIGILOSO", name="nivel_acesso"),
            nullable=False,
        ),
        sa.Column("base_legal", sa.String(length=500), nullable=True),
        sa.Column("observacoes", sa.Text(), nullable=False, server_default=""),
        sa.Column(
            "status",
            sa.Enum("EM_INSTRUCAO", "AGUARDANDO", "ARQUIVADO", name="processo_status"),
            nullable=False,
        ),
        sa.Column("prioridade", sa.Enum(*PRIORIDADE_VALUES, name="prioridade"), nullable=False),
        sa.Column("prazo", sa.Date(), nullable=True),
        sa.Column("setor_atual", sa.String(length=30), nullable=False, server_default="PROTOCOLO"),
        sa.Column("atribuido_usuario", sa.String(length=80), nullable=True),
        sa.Column("pendente", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("pendente_origem_setor", sa.String(length=30), nullable=True),
        sa.Column("pendente_destino_setor", sa.String(length=30), nullable=True),
        sa.Column("criado_em", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "pendente = false OR (pendente_origem_setor IS NOT NULL AND pendente_destino_setor IS NOT NULL)",
            name="ck_processos_pendencia",
        ),
        sa.ForeignKeyConstraint(["tipo_id"], ["tipos_processo.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("numero"),
    )
    with op.batch_alter_table("processos", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_processos_atribuido_usuario"), ["atribuido_usuario"], unique=False)
    op.create_index("ix_processos_setor_status", "processos", ["setor_atual", "status"], unique=False)
    op.create_index(
        "ix_processos_pendente_destino",
        "processos",
        ["pendente", "pendente_destino_setor"],
        unique=False,
    )

    op.create_table(
        "processo_partes",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("processo_id", sa.String(length=36), nullable=False),
        sa.Column("cadastro_parte_id", sa.String(length=36), nullable=False),
        sa.Column("papel", sa.String(length=80), nullable=True),
        sa.ForeignKeyConstraint(["cadastro_parte_id"], ["cadastro_partes.id"]),
        sa.ForeignKeyConstraint(["processo_id"], ["processos.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("processo_partes", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_processo_partes_processo_id"), ["processo_id"], unique=False)
        batch_op.create_index(batch_op.f("ix_processo_partes_cadastro_parte_id"), ["cadastro_parte_id"], unique=False)

    op.create_table(
        "tramites",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("processo_id", sa.String(length=36), nullable=False),
        sa.Column("origem_setor", sa.String(length=30), nullable=False),
        sa.Column("destino_setor", sa.String(length=30), nullable=False),
        sa.Column("motivo", sa.String(length=500), nullable=True),
        sa.Column(
            "prioridade",
            postgresql.ENUM(*PRIORIDADE_VALUES, name="prioridade", create_type=False),
            nullable=True,
        ),
        sa.Column("prazo", sa.Date(), nullable=True),
        sa.Column("origem_usuario", sa.String(length=80), nullable=True),
        sa.Column("data", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["processo_id"], ["processos.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_tramites_processo_data", "tramites", ["processo_id", "data"], unique=False)

    op.create_table(
        "documentos",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("processo_id", sa.String(length=36), nullable=True),
        sa.Column("titulo", sa.String(length=255), nullable=False),
        sa.Column("tipo", sa.String(length=80), nullable=False, server_default="Documento"),
        sa.Column("modo", sa.Enum("EDITOR", "UPLOAD", name="documento_modo"), nullable=False),
        sa.Column("status", sa.Enum("RASCUNHO", "ASSINADO", name="documento_status"), nullable=False),
        sa.Column("autor", sa.String(length=80), nullable=True),
        sa.Column("assinado_por", sa.String(length=80), nullable=True),
        sa.Column("assinado_em", sa.DateTime(), nullable=True),
        sa.Column("file_name", sa.String(length=255), nullable=True),
        sa.Column("content_base64", sa.Text(), nullable=True),
        sa.Column("conteudo", sa.Text(), nullable=True),
        sa.Column("criado_em", sa.DateTime(), nullable=False),
        sa.CheckConstraint(
            "(status = 'ASSINADO' AND assinado_por IS NOT NULL AND assinado_em IS NOT NULL)"
            " OR (status = 'RASCUNHO' AND assinado_por IS NULL AND assinado_em IS NULL)",
            name="ck_documentos_assinatura",
        ),
        sa.ForeignKeyConstraint(["processo_id"], ["processos.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_documentos_processo_criado", "documentos", ["processo_id", "criado_em"], unique=False)

    op.create_table(
        "processo_acessos",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("processo_id", sa.String(length=36), nullable=False),
        sa.Column("tipo", sa.Enum("SETOR", "USUARIO", "PARTE", name="acesso_tipo"), nullable=False),
        sa.Column("valor", sa.String(length=120), nullable=False),
        sa.Column("criado_em", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["processo_id"], ["processos.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("processo_acessos", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_processo_acessos_processo_id"), ["processo_id"], unique=False)

    op.create_table(
        "processo_acesso_chaves",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("processo_id", sa.String(length=36), nullable=False),
        sa.Column("parte_id", sa.Integer(), nullable=False),
        sa.Column("chave", sa.String(length=36), nullable=False),
        sa.Column("ativo", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("criado_em", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["parte_id"], ["processo_partes.id"]),
        sa.ForeignKeyConstraint(["processo_id"], ["processos.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("processo_acesso_chaves", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_processo_acesso_chaves_processo_id"), ["processo_id"], unique=False)

    op.create_table(
        "externo_documentos_temp",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("processo_id", sa.String(length=36), nullable=False),
        sa.Column("parte_id", sa.String(length=36), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("content_base64", sa.Text(), nullable=False),
        sa.Column("titulo", sa.String(length=255), nullable=True),
        sa.Column(
            "status",
            sa.Enum("AGUARDANDO_ANALISE", "JUNTADO", "REJEITADO", name="externo_documento_status"),
            nullable=False,
        ),
        sa.Column("rejeicao_motivo", sa.String(length=500), nullable=True),
        sa.Column("rejeitado_em", sa.DateTime(), nullable=True),
        sa.Column("criado_em", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["parte_id"], ["cadastro_partes.id"]),
        sa.ForeignKeyConstraint(["processo_id"], ["processos.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_externo_docs_processo_parte",
        "externo_documentos_temp",
        ["processo_id", "parte_id"],
        unique=False,
    )

    op.create_table(
        "auditoria",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("acao", sa.String(length=80), nullable=False),
        sa.Column("usuario_login", sa.String(length=80), nullable=True),
        sa.Column("entidade", sa.String(length=80), nullable=True),
        sa.Column("entidade_id", sa.String(length=80), nullable=True),
        sa.Column("detalhes", sa.JSON(), nullable=True),
        sa.Column("ip", sa.String(length=80), nullable=False, server_default=""),
        sa.Column("user_agent", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("rota", sa.String(length=255), nullable=False, server_default=""),
        sa.Column("criado_em", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("auditoria", schema=None) as batch_op:
        batch_op.create_index(batch_op.f("ix_auditoria_acao"), ["acao"], unique=False)


def downgrade():
    op.drop_table("auditoria")
    op.drop_index("ix_externo_docs_processo_parte", table_name="externo_documentos_temp")
    op.drop_table("externo_documentos_temp")
    op.drop_table("processo_acesso_chaves")
    op.drop_table("processo_acessos")
    op.drop_index("ix_documentos_processo_criado", table_name="documentos")
    op.drop_table("documentos")
    op.drop_index("ix_tramites_processo_data", table_name="tramites")
    op.drop_table("tramites")
    op.drop_table("processo_partes")
    op.drop_index("ix_processos_pendente_destino", table_name="processos")
    op.drop_index("ix_processos_setor_status", table_name="processos")
    op.drop_table("processos")
    op.drop_index("ix_cadastro_partes_documento_chave", table_name="cadastro_partes")
    op.drop_table("cadastro_partes")
    op.drop_table("usuarios")
    op.drop_table("assuntos")
    op.drop_table("tipos_processo")
    op.drop_table("setores")

    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        for name in ENUM_TYPES:
            op.execute(sa.text(f"DROP TYPE IF EXISTS {name}"))
