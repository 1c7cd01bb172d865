# ekklesia/api/family/schemas.py
from marshmallow import ValidationError, fields, validate, validates_schema

from ekklesia.core.constants import (
    GENDERS, MARITAL_STATUSES, RELATIONSHIPS, MemberStatus, RecordStatus,
)
from ..base import RequestSchema


class FamilyMemberSchema(RequestSchema):
    first_name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    middle_name = fields.Str(allow_none=True, validate=validate.Length(max=100))
    last_name = fields.Str(required=True, validate=validate.Length(min=1, max=100))
    date_of_birth = fields.Date(allow_none=True)
    gender = fields.Str(allow_none=True, validate=validate.OneOf(GENDERS))
    relationship_to_head = fields.Str(required=True, validate=validate.OneOf(RELATIONSHIPS))
    marital_status = fields.Str(allow_none=True, validate=validate.OneOf(MARITAL_STATUSES))
    phone = fields.Str(allow_none=True, validate=validate.Length(max=20))
    email = fields.Email(allow_none=True)
    is_primary_contact = fields.Bool()

    baptism_date = fields.Date(allow_none=True)
    baptism_place = fields.Str(allow_none=True, validate=validate.Length(max=255))
    first_communion_date = fields.Date(allow_none=True)
    first_communion_place = fields.Str(allow_none=True, validate=validate.Length(max=255))
    confirmation_date = fields.Date(allow_none=True)
    confirmation_place = fields.Str(allow_none=True, validate=validate.Length(max=255))
    marriage_date = fields.Date(allow_none=True)
    marriage_place = fields.Str(allow_none=True, validate=validate.Length(max=255))
    marriage_spouse_name = fields.Str(allow_none=True, validate=validate.Length(max=255))

    occupation = fields.Str(allow_none=True, validate=validate.Length(max=255))
    education = fields.Str(allow_none=True, validate=validate.Length(max=255))
    skills_talents = fields.Str(allow_none=True)
    notes = fields.Str(allow_none=True)
    status = fields.Str(validate=validate.OneOf([s.value for s in MemberStatus]))
    deceased_date = fields.Date(allow_none=True)

    @validates_schema
    def check_dates(self, data, **kwargs):
        if data.get("status") == MemberStatus.DECEASED.value and not data.get("deceased_date"):
            raise ValidationError("Required when the member is deceased.", "deceased_date")
        born = data.get("date_of_birth")
        died = data.get("deceased_date")
        if born and died and died < born:
            raise ValidationError("Cannot be before the date of birth.", "deceased_date")


class FamilySchema(RequestSchema):
    family_name = fields.Str(required=True, validate=validate.Length(min=1, max=150))
    head_of_family = fields.Str(allow_none=True, validate=validate.Length(max=150))
    address = fields.Str(allow_none=True, validate=validate.Length(max=255))
    city = fields.Str(allow_none=True, validate=validate.Length(max=100))
    postal_code = fields.Str(allow_none=True, validate=validate.Length(max=20))
    primary_phone = fields.Str(allow_none=True, validate=validate.Length(max=50))
    email = fields.Email(allow_none=True)
    bcc_id = fields.Str(allow_none=True)
    status = fields.Str(validate=validate.OneOf([s.value for s in RecordStatus]))
    notes = fields.Str(allow_none=True)
    tenant_id = fields.Str(allow_none=True)
    # Only read on create
    members = fields.List(fields.Nested(FamilyMemberSchema))
