# ekklesia/api/role/schemas.py
from marshmallow import fields, validate

from ekklesia.core.constants import CUSTOM_ROLE_MAX_LEVEL, CUSTOM_ROLE_MIN_LEVEL
from ..base import RequestSchema


class RoleSchema(RequestSchema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    description = fields.Str(allow_none=True, validate=validate.Length(max=255))
    level = fields.Int(validate=validate.Range(min=CUSTOM_ROLE_MIN_LEVEL, max=CUSTOM_ROLE_MAX_LEVEL))
    tenant_id = fields.Str(allow_none=True)
    is_active = fields.Bool()
    permissions = fields.List(fields.Str())


class SyncPermissionsSchema(RequestSchema):
    # An empty list strips every permission from the role
    permissions = fields.List(fields.Str(), required=True)
