# ekklesia/api/permission/schemas.py
from marshmallow import fields, validate

from ..base import RequestSchema

NAME_PATTERN = r"^[a-z0-9_]+(\.[a-z0-9_]+)+$"


class PermissionSchema(RequestSchema):
    name = fields.Str(
        required=True,
        validate=[
            validate.Length(max=100),
            validate.Regexp(NAME_PATTERN, error="Use a dotted lowercase name like 'users.create'."),
        ],
    )
    display_name = fields.Str(required=True, validate=validate.Length(min=1, max=150))
    description = fields.Str(allow_none=True, validate=validate.Length(max=255))
    module = fields.Str(required=True, validate=validate.Length(min=1, max=50))
    category = fields.Str(allow_none=True, validate=validate.Length(max=50))
    tenant_id = fields.Str(allow_none=True)
    is_active = fields.Bool()


class RolePermissionSchema(RequestSchema):
    role_id = fields.Str(required=True)
    permission = fields.Str(required=True)


class RoleBulkPermissionSchema(RequestSchema):
    role_id = fields.Str(required=True)
    permissions = fields.List(fields.Str(), required=True, validate=validate.Length(min=1))


class UserPermissionSchema(RequestSchema):
    user_id = fields.Str(required=True)
    permission = fields.Str(required=True)
