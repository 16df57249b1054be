from flask import Blueprint

processos_bp = Blueprint("processos", __name__, url_prefix="/api")

from app.processos import routes  # noqa: E402,F401
