# ekklesia/api/tenant/schemas.py
from marshmallow import fields, validate

from ..base import RequestSchema


class ContactSchema(RequestSchema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=255))
    email = fields.Email(required=True)
    contact_number = fields.Str(allow_none=True, validate=validate.Length(max=50))
    password = fields.Str(load_only=True, validate=validate.Length(min=8, max=128))


class TenantSchema(RequestSchema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=150))
    slug = fields.Str(
        validate=validate.Regexp(r"^[a-z0-9]+(-[a-z0-9]+)*$", error="Invalid slug.")
    )
    email = fields.Email(allow_none=True)
    phone = fields.Str(allow_none=True, validate=validate.Length(max=50))
    address = fields.Str(allow_none=True, validate=validate.Length(max=255))
    city = fields.Str(allow_none=True, validate=validate.Length(max=100))
    country = fields.Str(allow_none=True, validate=validate.Length(max=100))
    settings = fields.Dict(allow_none=True)


class TenantOnboardingSchema(TenantSchema):
    admin = fields.Nested(ContactSchema, required=True)
    secondary_contact = fields.Nested(ContactSchema, allow_none=True)
