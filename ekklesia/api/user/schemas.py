# ekklesia/api/user/schemas.py
from marshmallow import fields, validate

from ekklesia.core.constants import UserType
from ..base import RequestSchema


class UserSchema(RequestSchema):
    """Body of user create; updates load it partially"""

    name = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    email = fields.Email(required=True, validate=validate.Length(max=255))
    password = fields.Str(load_only=True, validate=validate.Length(min=8, max=128))
    contact_number = fields.Str(allow_none=True, validate=validate.Length(max=50))
    user_type = fields.Int(allow_none=True, validate=validate.OneOf([t.value for t in UserType]))
    tenant_id = fields.Str(allow_none=True)
    role_ids = fields.List(fields.Str())
    is_active = fields.Bool()


class AssignRolesSchema(RequestSchema):
    role_ids = fields.List(
        fields.Str(),
        required=True,
        validate=validate.Length(min=1, error="At least one role is required."),
    )


class PermissionRefsSchema(RequestSchema):
    permissions = fields.List(fields.Str(), required=True, validate=validate.Length(min=1))
