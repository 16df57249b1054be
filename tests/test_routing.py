from __future__ import annotations

import re
from datetime import date

import pytest

from app.core.errors import Conflict, Forbidden, NotFound, ValidationError
from app.core.extensions import db
from app.core.models import (
    Documento,
    NivelAcesso,
    Prioridade,
    Processo,
    ProcessoParte,
    ProcessoStatus,
    Tramite,
)
from app.processos.acessos import add_acesso
from app.processos.services import (
    aceitar_pendencia,
    add_parte,
    arquivar_processo,
    atribuir_processo,
    create_processo,
    delete_parte,
    get_processo_or_404,
    list_processos,
    list_tramites,
    priorizar_processo,
    processo_detail,
    recusar_pendencia,
    tramitar_processo,
    update_dados,
)


def _tramites(processo_id: str) -> list[Tramite]:
    return Tramite.query.filter_by(processo_id=processo_id).all()


def _assert_pendencia_consistente(processo: Processo) -> None:
    db.session.refresh(processo)
    if processo.pendente:
        assert processo.pendente_origem_setor and processo.pendente_destino_setor
        assert processo.atribuido_usuario is None
    else:
        assert processo.pendente_origem_setor is None
        assert processo.pendente_destino_setor is None


def test_create_processo_generates_numero_and_initial_tramite(app, novo_processo):
    processo = novo_processo()

    assert re.match(r"^\d{8}-\d{6}-\d{3}$", processo.numero)
    assert processo.status == ProcessoStatus.EM_INSTRUCAO
    assert processo.setor_atual == "PROTOCOLO"
    assert processo.atribuido_usuario == "ana.souza"
    assert processo.nivel_acesso == NivelAcesso.PUBLICO

    tramites = _tramites(processo.id)
    assert len(tramites) == 1
    assert tramites[0].origem_setor == tramites[0].destino_setor == "PROTOCOLO"
    assert tramites[0].motivo == "Andamento inicial"
    assert tramites[0].origem_usuario == "ana.souza"


def test_create_processo_links_parties_in_order_and_documents(app, novo_processo):
    documentos = [Documento(titulo="Ofício"), Documento(titulo="Parecer")]
    db.session.add_all(documentos)
    db.session.commit()
    documento_ids = [documento.id for documento in documentos]

    processo = novo_processo(
        partes=[
            {"tipo": "PF", "nome": "João Pereira", "documento": "11122233344", "papel": "Interessado"},
            {"tipo": "PJ", "nome": "Construtora Alfa", "papel": "Representante"},
        ],
        documentos_ids=documento_ids,
    )

    detalhe = processo_detail(processo.id)
    assert detalhe["interessado"] == "João Pereira"
    assert [parte["nome"] for parte in detalhe["partes"]] == ["João Pereira", "Construtora Alfa"]
    assert ProcessoParte.query.filter_by(processo_id=processo.id).count() == 2
    assert {d.id for d in Documento.query.filter_by(processo_id=processo.id)} == set(documento_ids)
    assert len(_tramites(processo.id)) == 1


def test_create_processo_validations(app, novo_processo, maria):
    with pytest.raises(ValueError) as excinfo:
        create_processo("   ")
    assert not isinstance(excinfo.value, ValidationError)

    with pytest.raises(ValidationError):
        novo_processo(nivel_acesso="Restrito")

    with pytest.raises(NotFound):
        novo_processo(partes=[{"parteId": "00000000-0000-4000-8000-000000000000"}])

    processo = novo_processo(partes=[{"parteId": maria.id, "papel": "Interessado"}])
    assert processo_detail(processo.id)["interessado"] == "Maria Oliveira"
    assert Processo.query.count() == 1


def test_create_processo_rejects_document_owned_by_other_case(app, novo_processo):
    documento = Documento(titulo="Único")
    db.session.add(documento)
    db.session.commit()
    documento_id = documento.id

    novo_processo(documentos_ids=[documento_id])
    with pytest.raises(Conflict):
        novo_processo(documentos_ids=[documento_id])
    assert Processo.query.count() == 1


def test_atribuir_requires_department_membership_before_update(app, novo_processo):
    processo = novo_processo()

    with pytest.raises(ValidationError) as excinfo:
        atribuir_processo(processo.id, "carla.dias", "ana.souza")
    assert excinfo.value.message == "Usuário não pertence ao setor atual do processo"
    assert get_processo_or_404(processo.id).atribuido_usuario == "ana.souza"

    with pytest.raises(ValidationError):
        atribuir_processo(processo.id, "ninguem", "ana.souza")
    with pytest.raises(ValidationError):
        atribuir_processo(processo.id, "", "ana.souza")
    with pytest.raises(ValidationError):
        atribuir_processo(processo.id, "bruno.lima", "")
    with pytest.raises(NotFound):
        atribuir_processo("inexistente", "bruno.lima", "ana.souza")

    result = atribuir_processo(processo.id, "bruno.lima", "ana.souza")
    assert result.detalhes == {"de": "ana.souza", "para": "bruno.lima"}
    assert get_processo_or_404(processo.id).atribuido_usuario == "bruno.lima"

    with pytest.raises(Forbidden):
        atribuir_processo(processo.id, "ana.souza", "ana.souza")


def test_atribuir_restricted_case_needs_grant(app, novo_processo):
    processo = novo_processo(nivel_acesso="Restrito", base_legal="LAI art. 31")

    with pytest.raises(Forbidden):
        atribuir_processo(processo.id, "bruno.lima", "ana.souza")

    add_acesso(processo.id, "USUARIO", "Bruno.Lima")
    atribuir_processo(processo.id, "bruno.lima", "ana.souza")
    assert get_processo_or_404(processo.id).atribuido_usuario == "bruno.lima"


def test_atribuir_restricted_case_accepts_department_grant(app, novo_processo):
    processo = novo_processo(nivel_acesso="Sigiloso", base_legal="Segredo de justiça", executado_por=None)
    add_acesso(processo.id, "SETOR", "protocolo")

    atribuir_processo(processo.id, "bruno.lima", "ana.souza")
    assert get_processo_or_404(processo.id).atribuido_usuario == "bruno.lima"


def test_tramitar_only_by_assignee_and_creates_no_event_on_failure(app, novo_processo):
    processo = novo_processo()

    with pytest.raises(Forbidden):
        tramitar_processo(processo.id, "TI", "bruno.lima")
    assert len(_tramites(processo.id)) == 1

    with pytest.raises(ValidationError):
        tramitar_processo(processo.id, "", "ana.souza")
    with pytest.raises(ValidationError):
        tramitar_processo(processo.id, "INEXISTENTE", "ana.souza")
    assert len(_tramites(processo.id)) == 1


def test_tramitar_sets_pendency_and_keeps_priority_unless_given(app, novo_processo):
    processo = novo_processo()
    priorizar_processo(processo.id, "Alta", "ana.souza")

    result = tramitar_processo(processo.id, "ti", "ana.souza", motivo="Análise técnica")
    assert result.detalhes["origem"] == "PROTOCOLO"
    assert result.detalhes["destino"] == "TI"
    assert result.detalhes["prioridade"] is None

    processo = get_processo_or_404(processo.id)
    assert processo.status == ProcessoStatus.AGUARDANDO
    assert processo.pendente is True
    assert processo.pendente_origem_setor == "PROTOCOLO"
    assert processo.pendente_destino_setor == "TI"
    assert processo.atribuido_usuario is None
    assert processo.prioridade == Prioridade.ALTA
    assert processo.setor_atual == "PROTOCOLO"
    _assert_pendencia_consistente(processo)

    tramite = db.session.get(Tramite, result.detalhes["tramiteId"])
    assert tramite.origem_usuario == "ana.souza"
    assert tramite.motivo == "Análise técnica"


def test_tramitar_updates_priority_and_deadline_when_given(app, novo_processo):
    processo = novo_processo()
    tramitar_processo(processo.id, "JURÍDICO", "ana.souza", prioridade="Urgente", prazo="2026-12-01")

    processo = get_processo_or_404(processo.id)
    assert processo.prioridade == Prioridade.URGENTE
    assert processo.prazo == date(2026, 12, 1)


def test_aceitar_pendencia_moves_case_to_destination(app, novo_processo):
    processo = novo_processo()
    tramitar_processo(processo.id, "TI", "ana.souza")

    with pytest.raises(Forbidden):
        aceitar_pendencia(processo.id, "carla.dias")
    with pytest.raises(ValidationError):
        aceitar_pendencia(processo.id, "ninguem")

    result = aceitar_pendencia(processo.id, "elisa.martins")
    assert result.detalhes == {"destino": "TI"}

    processo = get_processo_or_404(processo.id)
    assert processo.pendente is False
    assert processo.setor_atual == "TI"
    assert processo.status == ProcessoStatus.EM_INSTRUCAO
    assert processo.atribuido_usuario == "elisa.martins"
    _assert_pendencia_consistente(processo)

    with pytest.raises(ValidationError) as excinfo:
        aceitar_pendencia(processo.id, "elisa.martins")
    assert excinfo.value.message == "Processo não está pendente"


def test_recusar_pendencia_bounces_back_to_origin(app, novo_processo):
    processo = novo_processo()
    tramitar_processo(processo.id, "TI", "ana.souza")

    with pytest.raises(ValidationError):
        recusar_pendencia(processo.id, "elisa.martins", "  ")
    with pytest.raises(Forbidden):
        recusar_pendencia(processo.id, "bruno.lima", "Fora da competência")

    result = recusar_pendencia(processo.id, "elisa.martins", "Fora da competência")
    assert result.detalhes["origem"] == "PROTOCOLO"
    assert result.detalhes["destino"] == "TI"

    processo = get_processo_or_404(processo.id)
    assert processo.pendente is True
    assert processo.pendente_destino_setor == "PROTOCOLO"
    assert processo.pendente_origem_setor == "TI"
    assert processo.status == ProcessoStatus.AGUARDANDO
    assert processo.atribuido_usuario is None
    _assert_pendencia_consistente(processo)

    tramite = db.session.get(Tramite, result.detalhes["tramiteId"])
    assert (tramite.origem_setor, tramite.destino_setor) == ("TI", "PROTOCOLO")
    assert tramite.origem_usuario == "elisa.martins"

    aceitar_pendencia(processo.id, "bruno.lima")
    assert get_processo_or_404(processo.id).setor_atual == "PROTOCOLO"


def test_arquivar_rules(app, novo_processo):
    processo = novo_processo()

    with pytest.raises(Forbidden):
        arquivar_processo(processo.id, "bruno.lima")

    tramitar_processo(processo.id, "ADM", "ana.souza")
    with pytest.raises(ValidationError) as excinfo:
        arquivar_processo(processo.id, "ana.souza")
    assert excinfo.value.message == "Processo pendente não pode ser arquivado"

    aceitar_pendencia(processo.id, "helio.ramos")
    result = arquivar_processo(processo.id, "helio.ramos")
    assert result.detalhes == {"acao": "Arquivar"}

    processo = get_processo_or_404(processo.id)
    assert processo.status == ProcessoStatus.ARQUIVADO
    assert processo.atribuido_usuario is None

    with pytest.raises(ValidationError) as excinfo:
        arquivar_processo(processo.id, "helio.ramos")
    assert excinfo.value.message == "Processo já está arquivado"


def test_priorizar_rules(app, novo_processo):
    processo = novo_processo()

    with pytest.raises(ValidationError):
        priorizar_processo(processo.id, "Imediata", "ana.souza")
    with pytest.raises(ValidationError):
        priorizar_processo(processo.id, "Alta", None)
    with pytest.raises(Forbidden):
        priorizar_processo(processo.id, "Alta", "bruno.lima")

    result = priorizar_processo(processo.id, "urgente", "ana.souza")
    assert result.detalhes == {"prioridade": "Urgente"}
    assert get_processo_or_404(processo.id).prioridade == Prioridade.URGENTE

    unassigned = novo_processo(executado_por=None)
    priorizar_processo(unassigned.id, "Baixa", "bruno.lima")
    assert get_processo_or_404(unassigned.id).prioridade == Prioridade.BAIXA


def test_update_dados_enforces_legal_basis(app, novo_processo):
    processo = novo_processo()

    with pytest.raises(ValidationError):
        update_dados(processo.id, nivel_acesso="Restrito")

    update_dados(processo.id, nivel_acesso="Restrito", base_legal="LGPD art. 11")
    processo = get_processo_or_404(processo.id)
    assert processo.nivel_acesso == NivelAcesso.RESTRITO
    assert processo.base_legal == "LGPD art. 11"

    update_dados(processo.id, assunto="Licitação", nivel_acesso="Público")
    processo = get_processo_or_404(processo.id)
    assert processo.assunto == "Licitação"
    assert processo.base_legal is None

    with pytest.raises(ValidationError):
        update_dados(processo.id, tipo_id="TP-9999")
    with pytest.raises(NotFound):
        update_dados("inexistente", assunto="x")


def test_list_processos_filters_and_pagination(app, novo_processo, maria):
    primeiro = novo_processo(assunto="Licitação de merenda", partes=[{"parteId": maria.id}])
    segundo = novo_processo(assunto="Contratação de serviços")
    novo_processo(assunto="Recurso administrativo", executado_por="bruno.lima")
    tramitar_processo(segundo.id, "TI", "ana.souza")

    assert list_processos({})["total"] == 3
    assert [item["id"] for item in list_processos({"assunto": "licitação"})["items"]] == [primeiro.id]
    assert [item["id"] for item in list_processos({"interessado": "maria"})["items"]] == [primeiro.id]
    assert list_processos({"status": "Aguardando"})["total"] == 1
    assert list_processos({"status": "Desconhecido"})["total"] == 0
    assert list_processos({"pendente": "true", "pendenteSetor": "ti"})["total"] == 1
    assert list_processos({"somenteMeus": "true", "usuario": "bruno.lima"})["total"] == 1

    page = list_processos({"page": "2", "pageSize": "2"})
    assert page["page"] == 2
    assert page["pageSize"] == 2
    assert page["total"] == 3
    assert len(page["items"]) == 1


def test_partes_and_tramites_history(app, novo_processo, maria):
    processo = novo_processo()

    with pytest.raises(ValidationError):
        add_parte(processo.id, {"tipo": "PF"})
    with pytest.raises(NotFound):
        add_parte("inexistente", {"parteId": maria.id})

    link = add_parte(processo.id, {"parteId": maria.id, "papel": "Requerente"})
    assert processo_detail(processo.id)["interessado"] == "Maria Oliveira"

    assert delete_parte(processo.id, str(link.id)) == "Maria Oliveira"
    with pytest.raises(NotFound):
        delete_parte(processo.id, str(link.id))

    tramitar_processo(processo.id, "GABINETE", "ana.souza")
    historico = list_tramites(processo.id)
    assert [(t["origemSetor"], t["destinoSetor"]) for t in historico] == [
        ("PROTOCOLO", "GABINETE"),
        ("PROTOCOLO", "PROTOCOLO"),
    ]
