from flask import Blueprint

cadastros_bp = Blueprint("cadastros", __name__, url_prefix="/api")

from app.cadastros import routes  # noqa: E402,F401
