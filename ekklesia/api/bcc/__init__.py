from flask import Blueprint

bcc_bp = Blueprint("bcc", __name__)

from . import routes  # noqa: E402,F401
