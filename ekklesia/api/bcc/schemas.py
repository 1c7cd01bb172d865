# ekklesia/api/bcc/schemas.py
from marshmallow import ValidationError, fields, validate, validates_schema

from ekklesia.core.constants import LeaderRole, RecordStatus
from ..base import RequestSchema

WEEKDAYS = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
FREQUENCIES = ["weekly", "biweekly", "monthly"]


class BCCSchema(RequestSchema):
    name = fields.Str(required=True, validate=validate.Length(min=1, max=150))
    description = fields.Str(allow_none=True)
    meeting_place = fields.Str(allow_none=True, validate=validate.Length(max=255))
    meeting_day = fields.Str(allow_none=True, validate=validate.OneOf(WEEKDAYS))
    meeting_time = fields.Str(
        allow_none=True, validate=validate.Regexp(r"^\d{2}:\d{2}$", error="Use HH:MM.")
    )
    meeting_frequency = fields.Str(allow_none=True, validate=validate.OneOf(FREQUENCIES))
    status = fields.Str(validate=validate.OneOf([s.value for s in RecordStatus]))
    established_date = fields.Date(allow_none=True)
    max_families = fields.Int(allow_none=True, validate=validate.Range(min=1))
    notes = fields.Str(allow_none=True)
    tenant_id = fields.Str(allow_none=True)


class FamilyIdsSchema(RequestSchema):
    family_ids = fields.List(fields.Str(), required=True, validate=validate.Length(min=1))


class BCCLeaderSchema(RequestSchema):
    family_member_id = fields.Str(required=True)
    role = fields.Str(required=True, validate=validate.OneOf([r.value for r in LeaderRole]))
    role_description = fields.Str(allow_none=True, validate=validate.Length(max=255))
    appointed_date = fields.Date()
    term_start_date = fields.Date(allow_none=True)
    term_end_date = fields.Date(allow_none=True)
    is_active = fields.Bool()
    leader_phone = fields.Str(allow_none=True, validate=validate.Length(max=20))
    leader_email = fields.Email(allow_none=True)
    responsibilities = fields.Str(allow_none=True)
    notes = fields.Str(allow_none=True)

    @validates_schema
    def check_term(self, data, **kwargs):
        start = data.get("term_start_date")
        end = data.get("term_end_date")
        if start and end and end <= start:
            raise ValidationError("Must be after the term start date.", "term_end_date")
