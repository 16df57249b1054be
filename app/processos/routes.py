from __future__ import annotations

from flask import jsonify, request

from app.core.audit import audit_log
from app.core.utils import clean
from app.processos import processos_bp
from app.processos.acessos import (
    add_acesso,
    create_chave,
    list_acessos,
    list_chaves,
    remove_acesso,
    revoke_chave,
)
from app.processos.documentos import (
    assinar_documento,
    create_documento,
    deletar_rascunho,
    documento_detail,
    documento_view,
    editor_conteudo,
    get_documento_or_404,
    link_documento,
    list_by_processo,
    seed_by_processo,
    upload_conteudo,
)
from app.processos.externo import (
    aceitar_documento_temporario,
    anexar_documento_temporario,
    criar_processo_externo,
    get_documento_temporario,
    list_documentos_externos_por_processo,
    list_documentos_temporarios,
    list_processos_por_credencial,
    rejeitar_documento_temporario,
    temp_view,
)
from app.processos.publico import consultar_publico, gerar_pdf_publico
from app.processos.services import (
    TransitionResult,
    add_parte,
    aceitar_pendencia,
    arquivar_processo,
    atribuir_processo,
    create_processo,
    delete_parte,
    list_processos,
    list_tramites,
    parte_view,
    priorizar_processo,
    processo_detail,
    recusar_pendencia,
    tramitar_processo,
    update_dados,
)


def _payload() -> dict[str, object]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _executor(data: dict[str, object], *keys: str) -> str | None:
    for key in keys or ("executadoPor", "usuario"):
        value = clean(data.get(key))
        if value:
            return value
    return None


def _transition_response(result: TransitionResult, acao: str, usuario: str | None):
    audit_log(acao, usuario, "processo", result.processo.id, result.detalhes)
    return jsonify({"ok": True, "processo": processo_detail(result.processo.id)})


@processos_bp.get("/processos")
def processos_index():
    return jsonify(list_processos(request.args.to_dict()))


@processos_bp.post("/processos")
def processos_create():
    data = _payload()
    criador = _executor(data)
    partes = data.get("partes") or []
    documentos_ids = data.get("documentosIds") or []
    processo = create_processo(
        data.get("assunto"),
        nivel_acesso=data.get("nivelAcesso"),
        base_legal=data.get("baseLegal"),
        observacoes=data.get("observacoes"),
        tipo_id=data.get("tipoId"),
        partes=partes,
        documentos_ids=documentos_ids,
        executado_por=criador,
    )
    audit_log(
        "processo.criar",
        criador,
        "processo",
        processo.id,
        {"numero": processo.numero, "documentosIds": documentos_ids, "partesCount": len(partes)},
    )
    return jsonify(processo_detail(processo.id)), 201


@processos_bp.get("/processos/<processo_id>")
def processos_show(processo_id: str):
    return jsonify(processo_detail(processo_id))


@processos_bp.post("/processos/<processo_id>/dados")
def processos_update_dados(processo_id: str):
    data = _payload()
    result = update_dados(
        processo_id,
        assunto=data.get("assunto"),
        nivel_acesso=data.get("nivelAcesso"),
        observacoes=data.get("observacoes"),
        base_legal=data.get("baseLegal"),
        tipo_id=data.get("tipoId"),
    )
    audit_log("processo.atualizar_dados", _executor(data), "processo", processo_id, result.detalhes)
    return jsonify(processo_detail(processo_id))


@processos_bp.post("/processos/<processo_id>/partes")
def processos_add_parte(processo_id: str):
    data = _payload()
    link = add_parte(processo_id, data)
    view = parte_view(link)
    audit_log(
        "processo.parte.criar",
        _executor(data),
        "processo",
        processo_id,
        {"parteId": view["id"], "nome": view["nome"], "papel": view["papel"]},
    )
    return jsonify(view), 201


@processos_bp.delete("/processos/<processo_id>/partes/<parte_id>")
def processos_delete_parte(processo_id: str, parte_id: str):
    data = _payload()
    nome = delete_parte(processo_id, parte_id)
    audit_log("processo.parte.deletar", _executor(data), "processo", processo_id, {"parteId": parte_id, "nome": nome})
    return jsonify({"ok": True})


@processos_bp.get("/processos/<processo_id>/documentos")
def processos_documentos(processo_id: str):
    viewer = request.args.get("viewerSetor") or request.args.get("setor")
    return jsonify(list_by_processo(processo_id, viewer))


@processos_bp.post("/processos/<processo_id>/documentos/seed")
def processos_documentos_seed(processo_id: str):
    data = _payload()
    autor = _executor(data, "usuarioLogin", "usuario", "executadoPor")
    result = seed_by_processo(processo_id, autor)
    if result.get("seeded"):
        audit_log("processo.documentos_seed", autor, "processo", processo_id, result)
    return jsonify(result)


@processos_bp.post("/processos/<processo_id>/documentos/link")
def processos_documentos_link(processo_id: str):
    data = _payload()
    documento = link_documento(processo_id, data.get("documentoId"))
    audit_log(
        "processo.link_documento",
        _executor(data, "usuarioLogin", "usuario"),
        "processo",
        processo_id,
        {"documentoId": documento.id},
    )
    return jsonify({"ok": True})


@processos_bp.get("/processos/<processo_id>/externo/documentos")
def processos_externo_documentos(processo_id: str):
    return jsonify(list_documentos_externos_por_processo(processo_id, request.args.get("status")))


@processos_bp.get("/processos/<processo_id>/externo/documentos/<temp_id>")
def processos_externo_documento(processo_id: str, temp_id: str):
    return jsonify(get_documento_temporario(processo_id, temp_id))


@processos_bp.post("/processos/<processo_id>/externo/documentos/<temp_id>/aceitar")
def processos_externo_aceitar(processo_id: str, temp_id: str):
    data = _payload()
    result = aceitar_documento_temporario(processo_id, temp_id)
    audit_log(
        "processo.externo.aceitar",
        _executor(data),
        "processo",
        processo_id,
        {"tempId": temp_id, "documentoId": result["documentoId"]},
    )
    return jsonify(result)


@processos_bp.post("/processos/<processo_id>/externo/documentos/<temp_id>/rejeitar")
def processos_externo_rejeitar(processo_id: str, temp_id: str):
    data = _payload()
    result = rejeitar_documento_temporario(processo_id, temp_id, data.get("motivo"))
    audit_log(
        "processo.externo.rejeitar",
        _executor(data),
        "processo",
        processo_id,
        {"tempId": temp_id, "motivo": clean(data.get("motivo"))},
    )
    return jsonify(result)


@processos_bp.post("/processos/<processo_id>/atribuir")
def processos_atribuir(processo_id: str):
    data = _payload()
    executor = clean(data.get("executadoPor")) or None
    result = atribuir_processo(processo_id, data.get("usuario"), executor)
    return _transition_response(result, "processo.atribuir", executor)


@processos_bp.post("/processos/<processo_id>/tramites")
def processos_tramitar(processo_id: str):
    data = _payload()
    usuario = clean(data.get("usuario")) or None
    result = tramitar_processo(
        processo_id,
        data.get("destinoSetor"),
        usuario,
        motivo=data.get("motivo"),
        prioridade=data.get("prioridade"),
        prazo=data.get("prazo"),
    )
    return _transition_response(result, "processo.tramitar", usuario)


@processos_bp.get("/processos/<processo_id>/tramites")
def processos_tramites(processo_id: str):
    return jsonify(list_tramites(processo_id))


@processos_bp.post("/processos/<processo_id>/prioridade")
def processos_prioridade(processo_id: str):
    data = _payload()
    executor = clean(data.get("executadoPor")) or None
    result = priorizar_processo(processo_id, data.get("prioridade"), executor)
    return _transition_response(result, "processo.prioridade", executor)


@processos_bp.post("/processos/<processo_id>/pendencia/aceitar")
def processos_pendencia_aceitar(processo_id: str):
    data = _payload()
    usuario = clean(data.get("usuario")) or None
    result = aceitar_pendencia(processo_id, usuario)
    return _transition_response(result, "processo.pendencia_aceitar", usuario)


@processos_bp.post("/processos/<processo_id>/pendencia/recusar")
def processos_pendencia_recusar(processo_id: str):
    data = _payload()
    usuario = clean(data.get("usuario")) or None
    result = recusar_pendencia(processo_id, usuario, data.get("motivo"))
    return _transition_response(result, "processo.pendencia_recusar", usuario)


@processos_bp.post("/processos/<processo_id>/arquivar")
def processos_arquivar(processo_id: str):
    data = _payload()
    usuario = clean(data.get("usuario")) or None
    result = arquivar_processo(processo_id, usuario)
    return _transition_response(result, "processo.arquivar", usuario)


@processos_bp.get("/processos/<processo_id>/acessos")
def processos_acessos(processo_id: str):
    return jsonify(list_acessos(processo_id))


@processos_bp.post("/processos/<processo_id>/acessos")
def processos_acessos_add(processo_id: str):
    data = _payload()
    acesso = add_acesso(processo_id, data.get("tipo"), data.get("valor"), data.get("parteId"))
    audit_log(
        "processo.acesso_add",
        _executor(data),
        "processo",
        processo_id,
        {"acessoId": acesso.id, "tipo": acesso.tipo.value, "valor": acesso.valor},
    )
    return jsonify({"id": acesso.id}), 201


@processos_bp.delete("/processos/<processo_id>/acessos/<acesso_id>")
def processos_acessos_remove(processo_id: str, acesso_id: str):
    data = _payload()
    remove_acesso(processo_id, acesso_id)
    audit_log("processo.acesso_del", _executor(data), "processo", processo_id, {"acessoId": acesso_id})
    return jsonify({"ok": True})


@processos_bp.get("/processos/<processo_id>/chaves")
def processos_chaves(processo_id: str):
    return jsonify(list_chaves(processo_id))


@processos_bp.post("/processos/<processo_id>/chaves")
def processos_chaves_create(processo_id: str):
    data = _payload()
    chave = create_chave(processo_id, data.get("parteId"))
    audit_log("processo.chave_criar", _executor(data), "processo", processo_id, {"chaveId": chave.id})
    return jsonify({"id": chave.id, "chave": chave.chave}), 201


@processos_bp.post("/processos/<processo_id>/chaves/<chave_id>/revogar")
def processos_chaves_revoke(processo_id: str, chave_id: str):
    data = _payload()
    revoke_chave(processo_id, chave_id)
    audit_log("processo.chave_revogar", _executor(data), "processo", processo_id, {"chaveId": chave_id})
    return jsonify({"ok": True})


@processos_bp.post("/documentos")
def documentos_create():
    data = _payload()
    autor = _executor(data, "autorLogin", "usuarioLogin")
    documento = create_documento(
        data.get("titulo"),
        tipo=data.get("tipo"),
        modo=data.get("modo"),
        autor=autor,
        conteudo=data.get("conteudo"),
    )
    audit_log(
        "documento.criar",
        autor,
        "documento",
        documento.id,
        {"titulo": documento.titulo, "tipo": documento.tipo, "modo": documento.modo.value},
    )
    return jsonify(documento_view(documento)), 201


@processos_bp.get("/documentos/<documento_id>")
def documentos_show(documento_id: str):
    return jsonify(documento_detail(get_documento_or_404(documento_id)))


@processos_bp.post("/documentos/<documento_id>/upload")
def documentos_upload(documento_id: str):
    data = _payload()
    usuario = _executor(data, "usuarioLogin", "autorLogin")
    result = upload_conteudo(documento_id, data.get("fileName"), data.get("contentBase64"), usuario)
    audit_log("documento.upload_conteudo", usuario, "documento", documento_id, result.detalhes)
    return jsonify({"ok": True, "documento": documento_view(result.documento)})


@processos_bp.post("/documentos/<documento_id>/editor/conteudo")
def documentos_editor_conteudo(documento_id: str):
    data = _payload()
    usuario = _executor(data, "usuarioLogin", "autorLogin")
    result = editor_conteudo(documento_id, data.get("conteudo"), usuario)
    audit_log("documento.editar_conteudo", usuario, "documento", documento_id, result.detalhes)
    return jsonify({"ok": True, "documento": documento_view(result.documento)})


@processos_bp.post("/documentos/<documento_id>/assinar")
def documentos_assinar(documento_id: str):
    data = _payload()
    usuario = _executor(data, "usuarioLogin", "autorLogin")
    result = assinar_documento(documento_id, usuario)
    audit_log("documento.assinar", usuario, "documento", documento_id, result.detalhes)
    return jsonify({"ok": True, "documento": documento_view(result.documento)})


@processos_bp.post("/documentos/<documento_id>/deletar")
def documentos_deletar(documento_id: str):
    data = _payload()
    usuario = _executor(data, "usuarioLogin", "autorLogin")
    detalhes = deletar_rascunho(documento_id, usuario)
    audit_log("documento.deletar", usuario, "documento", documento_id, detalhes)
    return jsonify({"ok": True})


@processos_bp.get("/public/consultas/<path:valor>")
def public_consulta(valor: str):
    return jsonify(consultar_publico(valor, request.args.get("cpf"), request.args.get("chave")))


@processos_bp.get("/public/documentos/<documento_id>/pdf")
def public_documento_pdf(documento_id: str):
    return jsonify(gerar_pdf_publico(documento_id, request.args.get("cpf"), request.args.get("chave")))


@processos_bp.get("/public/externo/processos")
def public_externo_processos():
    return jsonify(list_processos_por_credencial(request.args.get("cpf"), request.args.get("chave")))


@processos_bp.post("/public/externo/processos")
def public_externo_processos_create():
    data = _payload()
    processo = criar_processo_externo(
        data.get("cpf"),
        data.get("chave"),
        data.get("assunto"),
        tipo_id=data.get("tipoId"),
        observacoes=data.get("observacoes"),
    )
    audit_log("processo.externo.criar", None, "processo", processo.id, {"numero": processo.numero})
    return jsonify(processo_detail(processo.id)), 201


@processos_bp.get("/public/externo/processos/<numero>/documentos")
def public_externo_documentos(numero: str):
    return jsonify(list_documentos_temporarios(numero, request.args.get("cpf"), request.args.get("chave")))


@processos_bp.post("/public/externo/processos/<numero>/documentos")
def public_externo_documentos_anexar(numero: str):
    data = _payload()
    temp = anexar_documento_temporario(
        numero,
        request.args.get("cpf"),
        request.args.get("chave"),
        data.get("fileName"),
        data.get("contentBase64"),
        data.get("titulo"),
    )
    return jsonify(temp_view(temp)), 201
