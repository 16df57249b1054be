from __future__ import annotations

from flask import jsonify, request

from app.cadastros import cadastros_bp
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
from app.core.audit import audit_log
from app.core.errors import ValidationError
from app.core.utils import clean


def _payload() -> dict[str, object]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _executor(data: dict[str, object]) -> str | None:
    return clean(data.get("executadoPor")) or clean(data.get("usuario")) or None


@cadastros_bp.get("/setores")
def setores_index():
    return jsonify(list_setores())


@cadastros_bp.get("/catalog/assuntos")
def catalog_assuntos():
    return jsonify([row["nome"] for row in list_assuntos()])


@cadastros_bp.get("/catalog/tipos-processo")
def catalog_tipos_processo():
    return jsonify(list_tipos_processo())


@cadastros_bp.get("/partes-cadastro")
def partes_cadastro_index():
    rows = list_partes_cadastro(
        request.args.get("q"),
        request.args.get("limit"),
        request.args.get("offset"),
    )
    return jsonify([cadastro_view(row) for row in rows])


@cadastros_bp.get("/partes-cadastro/<parte_id>")
def partes_cadastro_show(parte_id: str):
    return jsonify(cadastro_view(get_parte_cadastro(parte_id)))


@cadastros_bp.post("/partes-cadastro")
def partes_cadastro_create():
    data = _payload()
    parte = create_parte_cadastro(data)
    audit_log("cadastro_partes.criar", _executor(data), "cadastro_parte", parte.id, {"nome": parte.nome})
    return jsonify(cadastro_view(parte)), 201


@cadastros_bp.put("/partes-cadastro/<parte_id>")
def partes_cadastro_update(parte_id: str):
    data = _payload()
    parte = update_parte_cadastro(parte_id, data)
    audit_log(
        "cadastro_partes.atualizar",
        _executor(data),
        "cadastro_parte",
        parte_id,
        {"campos": sorted(key for key in data if key not in ("executadoPor", "usuario"))},
    )
    return jsonify(cadastro_view(parte))


@cadastros_bp.delete("/partes-cadastro/<parte_id>")
def partes_cadastro_delete(parte_id: str):
    data = _payload()
    delete_parte_cadastro(parte_id)
    audit_log("cadastro_partes.deletar", _executor(data), "cadastro_parte", parte_id)
    return jsonify({"ok": True})


@cadastros_bp.get("/usuarios")
def usuarios_index():
    login = clean(request.args.get("login"))
    setor = clean(request.args.get("setor"))
    if login:
        usuario = get_usuario_or_404(login)
        return jsonify(
            {
                "username": usuario.login,
                "nome": usuario.nome,
                "cargo": usuario.cargo,
                "setor": usuario.setor,
            }
        )
    if setor:
        rows = list_usuarios_por_sigla(setor)
        return jsonify([{"username": row.login, "nome": row.nome, "cargo": row.cargo} for row in rows])
    rows = list_usuarios()
    return jsonify(
        [{"setor": row.setor, "username": row.login, "nome": row.nome, "cargo": row.cargo} for row in rows]
    )


@cadastros_bp.post("/usuarios/upsert")
def usuarios_upsert():
    data = _payload()
    if not clean(data.get("login")):
        raise ValidationError("Login é obrigatório")
    kwargs = {"setor": data.get("setor")}
    if "cargo" in data:
        kwargs["cargo"] = data.get("cargo")
    acao, usuario = upsert_usuario(data.get("login"), data.get("nome"), **kwargs)
    detalhes = {
        "tipo": "create" if acao == "usuario.criar" else "update",
        "setor": usuario.setor,
        "cargo": usuario.cargo,
    }
    audit_log(acao, usuario.login, "usuario", usuario.login, detalhes)
    return jsonify(
        {
            "ok": True,
            "usuario": {
                "username": usuario.login,
                "nome": usuario.nome,
                "setor": usuario.setor,
                "cargo": usuario.cargo,
            },
        }
    )


@cadastros_bp.post("/auditoria")
def auditoria_create():
    data = _payload()
    acao = clean(data.get("acao"))
    if not acao:
        raise ValidationError("acao obrigatória")
    detalhes = data.get("detalhes")
    audit_log(
        acao,
        clean(data.get("usuarioLogin")) or None,
        clean(data.get("entidade")) or None,
        clean(data.get("entidadeId")) or None,
        detalhes if isinstance(detalhes, dict) else None,
    )
    return jsonify({"ok": True})
