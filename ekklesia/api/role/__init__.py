from flask import Blueprint

role_bp = Blueprint("role", __name__)

from . import routes  # noqa: E402,F401
