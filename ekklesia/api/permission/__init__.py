from flask import Blueprint

permission_bp = Blueprint("permission", __name__)

from . import routes  # noqa: E402,F401
