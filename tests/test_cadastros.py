from __future__ import annotations

import pytest

from app.cadastros.services import (
    cadastro_view,
    create_parte_cadastro,
    delete_parte_cadastro,
    get_parte_cadastro,
    get_usuario_or_404,
    list_assuntos,
    list_partes_cadastro,
    list_setores,
    list_tipos_processo,
    list_usuarios,
    list_usuarios_por_sigla,
    update_parte_cadastro,
    upsert_usuario,
)
from app.core.errors import NotFound, ValidationError
from app.core.utils import is_uuid


def test_create_parte_cadastro_issues_active_key(app):
    with pytest.raises(ValidationError) as excinfo:
        create_parte_cadastro({"nome": "  ", "documento": "111"})
    assert excinfo.value.message == "Nome é obrigatório"

    parte = create_parte_cadastro(
        {
            "tipo": "PF",
            "nome": " João Pereira ",
            "documento": "11122233344",
            "endereco_estado": "sp",
            "endereco_cidade": "",
        }
    )
    view = cadastro_view(parte)
    assert view["nome"] == "João Pereira"
    assert view["endereco_estado"] == "SP"
    assert view["endereco_cidade"] is None
    assert view["chave_ativo"] is True
    assert is_uuid(view["chave"])
    assert is_uuid(view["id"])


def test_update_parte_cadastro_touches_only_sent_fields(app, maria):
    maria_id = maria.id

    parte = update_parte_cadastro(maria_id, {"telefone": "81 99999-0000", "endereco_estado": "Pernambuco"})
    assert parte.telefone == "81 99999-0000"
    assert parte.endereco_estado == "PE"
    assert parte.email == "maria.oliveira@example.com"

    with pytest.raises(ValidationError):
        update_parte_cadastro(maria_id, {"nome": ""})
    with pytest.raises(NotFound) as excinfo:
        update_parte_cadastro("inexistente", {"nome": "X"})
    assert excinfo.value.message == "Registro não encontrado"


def test_list_partes_cadastro_search_and_paging(app):
    for nome, documento in (("Ana Beatriz", "001"), ("Bento Alves", "002"), ("Carlos Alberto", "003")):
        create_parte_cadastro({"nome": nome, "documento": documento})

    nomes = [p.nome for p in list_partes_cadastro("alberto")]
    assert nomes == ["Carlos Alberto"]
    assert [p.nome for p in list_partes_cadastro("002")] == ["Bento Alves"]

    todos = [p.nome for p in list_partes_cadastro()]
    assert todos == sorted(todos)
    assert [p.nome for p in list_partes_cadastro(limit=2, offset=1)] == todos[1:3]
    assert len(list_partes_cadastro(limit="0")) == len(todos)


def test_delete_parte_cadastro_blocked_while_linked(app, novo_processo, maria):
    maria_id = maria.id
    novo_processo(partes=[{"parteId": maria_id}])

    with pytest.raises(ValidationError):
        delete_parte_cadastro(maria_id)

    avulsa_id = create_parte_cadastro({"nome": "Sem vínculo"}).id
    delete_parte_cadastro(avulsa_id)
    with pytest.raises(NotFound):
        get_parte_cadastro(avulsa_id)


def test_upsert_usuario_creates_then_updates(app):
    with pytest.raises(ValidationError):
        upsert_usuario("joana.reis", "")
    with pytest.raises(ValidationError) as excinfo:
        upsert_usuario("joana.reis", "Joana Reis", setor="RH")
    assert excinfo.value.message == "Setor não encontrado"

    acao, usuario = upsert_usuario("joana.reis", "Joana Reis")
    assert acao == "usuario.criar"
    assert usuario.setor == "PROTOCOLO"
    assert usuario.cargo is None

    acao, usuario = upsert_usuario("joana.reis", "Joana dos Reis", setor="ti", cargo="Analista")
    assert acao == "usuario.upsert"
    assert usuario.nome == "Joana dos Reis"
    assert usuario.setor == "TI"
    assert usuario.cargo == "Analista"

    # Omitted cargo keeps the stored value.
    _, usuario = upsert_usuario("joana.reis", "Joana dos Reis")
    assert usuario.cargo == "Analista"
    assert usuario.setor == "TI"


def test_directory_listings(app):
    assert [u.login for u in list_usuarios("ADM")] == ["helio.ramos", "iris.alves"]
    assert len(list_usuarios()) == 9
    assert [u.login for u in list_usuarios_por_sigla("jurídico")] == ["diego.rocha"]
    assert list_usuarios_por_sigla("XYZ") == []
    assert get_usuario_or_404("carla.dias").nome == "Carla Dias"
    with pytest.raises(NotFound):
        get_usuario_or_404("ninguem")


def test_catalog(app):
    siglas = [s["sigla"] for s in list_setores()]
    assert "ARQUIVO" not in siglas
    assert set(siglas) == {"PROTOCOLO", "GABINETE", "JURÍDICO", "TI", "FINANCEIRO", "ADM"}
    assert list_assuntos()[0]["nome"] == "Solicitação de informação"
    assert [t["id"] for t in list_tipos_processo()] == ["TP-0001", "TP-0002", "TP-0003"]
