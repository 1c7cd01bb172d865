# ekklesia/api/auth/routes.py
import logging

from flask import g
from marshmallow import fields

from ekklesia.extensions import db
from ekklesia.models import User
from ekklesia.core.exceptions import AuthenticationError
from ekklesia.core.permissions import authenticated
from ekklesia.core.monitoring import capture_error
from ..base import RequestSchema, load_json, success
from . import auth_bp

logger = logging.getLogger(__name__)


class LoginSchema(RequestSchema):
    email = fields.Email(required=True)
    password = fields.Str(required=True, load_only=True)


login_schema = LoginSchema()


@auth_bp.route("/login", methods=["POST"])
@capture_error
def login():
    data = load_json(login_schema)

    user = User.alive().filter(db.func.lower(User.email) == data["email"].lower()).first()
    if not user or not user.verify_password(data["password"]):
        logger.info(f"Failed login for {data['email']}")
        raise AuthenticationError("Invalid email or password")

    if not user.is_active:
        raise AuthenticationError("Account is inactive")

    if user.tenant is not None and not user.tenant.is_active:
        raise AuthenticationError("Your parish account is inactive")

    user.update_last_login()
    db.session.commit()

    token = user.generate_token()
    logger.info(f"User {user.id} logged in")

    return success({"token": token, "user": user.to_dict()})


@auth_bp.route("/me", methods=["GET"])
@authenticated
def me():
    user = g.current_user
    data = user.to_dict()
    data["permissions"] = [p.name for p in user.get_all_permissions()]
    data["is_super_admin"] = user.is_super_admin()
    data["is_admin"] = user.is_admin()
    return success(data)
