from __future__ import annotations

import pytest

from app.core.errors import NotFound, ValidationError
from app.core.models import AcessoTipo
from app.processos.acessos import (
    add_acesso,
    create_chave,
    list_acessos,
    list_chaves,
    possui_acesso,
    remove_acesso,
    revoke_chave,
)
from app.processos.services import add_parte, delete_parte


def test_possui_acesso_matches_user_or_department_case_insensitive(app, novo_processo):
    processo = novo_processo()
    add_acesso(processo.id, "setor", "ti")
    add_acesso(processo.id, "USUARIO", "Diego.Rocha")

    assert possui_acesso(processo.id, "fabio.nunes", "TI")
    assert possui_acesso(processo.id, "diego.rocha", "JURÍDICO")
    assert not possui_acesso(processo.id, "carla.dias", "GABINETE")
    assert not possui_acesso(processo.id, "", "")


def test_party_grant_does_not_give_internal_access(app, novo_processo, maria):
    processo = novo_processo(partes=[{"parteId": maria.id, "papel": "Interessado"}])
    link_id = processo.partes[0].id

    acesso = add_acesso(processo.id, "PARTE", parte_id=str(link_id))
    assert acesso.valor == str(link_id)
    assert not possui_acesso(processo.id, str(link_id), "")

    view = list_acessos(processo.id)[0]
    assert view["tipo"] == "PARTE"
    assert view["parteId"] == str(link_id)
    assert view["parteNome"] == "Maria Oliveira"
    assert view["parteDocumento"] == "12345678900"


def test_add_acesso_validations(app, novo_processo):
    processo = novo_processo()

    with pytest.raises(ValidationError) as excinfo:
        add_acesso(processo.id, "GRUPO", "x")
    assert excinfo.value.message == "tipo inválido"
    with pytest.raises(ValidationError):
        add_acesso(processo.id, "SETOR", "  ")
    with pytest.raises(ValidationError):
        add_acesso(processo.id, "PARTE")
    with pytest.raises(ValidationError) as excinfo:
        add_acesso(processo.id, "PARTE", parte_id="999")
    assert excinfo.value.message == "Parte não encontrada no processo"
    with pytest.raises(NotFound):
        add_acesso("inexistente", "SETOR", "TI")


def test_remove_acesso_twice_reports_not_found(app, novo_processo):
    processo = novo_processo()
    acesso_id = add_acesso(processo.id, "SETOR", "TI").id
    outro = novo_processo()

    with pytest.raises(NotFound):
        remove_acesso(outro.id, acesso_id)

    remove_acesso(processo.id, acesso_id)
    assert list_acessos(processo.id) == []
    with pytest.raises(NotFound) as excinfo:
        remove_acesso(processo.id, acesso_id)
    assert excinfo.value.message == "Acesso não encontrado"


def test_list_acessos_returns_every_grant_type(app, novo_processo):
    processo = novo_processo(partes=[{"nome": "João Pereira"}])
    link_id = processo.partes[0].id
    add_acesso(processo.id, "SETOR", "FINANCEIRO")
    add_acesso(processo.id, "USUARIO", "gabriela.costa")
    add_acesso(processo.id, "PARTE", parte_id=link_id)

    tipos = {view["tipo"] for view in list_acessos(processo.id)}
    assert tipos == {AcessoTipo.SETOR.value, AcessoTipo.USUARIO.value, AcessoTipo.PARTE.value}


def test_chaves_create_list_and_revoke(app, novo_processo, maria):
    processo = novo_processo(partes=[{"parteId": maria.id}])
    link_id = processo.partes[0].id

    with pytest.raises(ValidationError):
        create_chave(processo.id, "")
    with pytest.raises(NotFound) as excinfo:
        create_chave(processo.id, "4242")
    assert excinfo.value.message == "Parte não encontrada"
    with pytest.raises(NotFound):
        create_chave("inexistente", link_id)

    chave = create_chave(processo.id, link_id)
    chave_id = chave.id
    assert chave.ativo is True
    assert len(chave.chave) == 36

    listed = list_chaves(processo.id)
    assert [c["id"] for c in listed] == [chave_id]
    assert listed[0]["parteId"] == link_id

    revoke_chave(processo.id, chave_id)
    assert list_chaves(processo.id)[0]["ativo"] is False
    with pytest.raises(NotFound) as excinfo:
        revoke_chave(processo.id, "inexistente")
    assert excinfo.value.message == "Chave não encontrada"


def test_delete_parte_drops_its_grants_and_keys(app, novo_processo):
    processo = novo_processo()
    link = add_parte(processo.id, {"nome": "Paulo Mendes", "documento": "98765432100"})
    link_id = link.id
    add_acesso(processo.id, "PARTE", parte_id=link_id)
    add_acesso(processo.id, "SETOR", "TI")
    create_chave(processo.id, link_id)

    assert delete_parte(processo.id, link_id) == "Paulo Mendes"
    assert [view["tipo"] for view in list_acessos(processo.id)] == ["SETOR"]
    assert list_chaves(processo.id) == []
