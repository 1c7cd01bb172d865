# ekklesia/models/family_member.py
from datetime import date
from uuid import uuid4

from ekklesia.extensions import db
from ekklesia.core.database import BaseModel, SoftDeleteMixin
from ekklesia.core.constants import HEAD_RELATIONSHIPS, MemberStatus

# Sacrament columns as (date, place) pairs
SACRAMENTS = ("baptism", "first_communion", "confirmation", "marriage")


def _iso(value):
    return value.isoformat() if value else None


class FamilyMember(SoftDeleteMixin, BaseModel):
    """A person registered in a family, with their sacrament record"""

    __tablename__ = "family_members"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid4()))
    family_id = db.Column(
        db.String(36), db.ForeignKey("families.id", ondelete="CASCADE"), nullable=False, index=True
    )

    first_name = db.Column(db.String(100), nullable=False)
    middle_name = db.Column(db.String(100))
    last_name = db.Column(db.String(100), nullable=False)
    date_of_birth = db.Column(db.Date)
    gender = db.Column(db.String(10))
    relationship_to_head = db.Column(db.String(20), nullable=False, default="other")
    marital_status = db.Column(db.String(20), default="single")

    phone = db.Column(db.String(20))
    email = db.Column(db.String(255))
    is_primary_contact = db.Column(db.Boolean, nullable=False, default=False)

    baptism_date = db.Column(db.Date)
    baptism_place = db.Column(db.String(255))
    first_communion_date = db.Column(db.Date)
    first_communion_place = db.Column(db.String(255))
    confirmation_date = db.Column(db.Date)
    confirmation_place = db.Column(db.String(255))
    marriage_date = db.Column(db.Date)
    marriage_place = db.Column(db.String(255))
    marriage_spouse_name = db.Column(db.String(255))

    occupation = db.Column(db.String(255))
    education = db.Column(db.String(255))
    skills_talents = db.Column(db.Text)
    notes = db.Column(db.Text)

    status = db.Column(db.String(20), nullable=False, default=MemberStatus.ACTIVE.value, index=True)
    deceased_date = db.Column(db.Date)
    created_by = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"))
    updated_by = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"))

    family = db.relationship("Family", back_populates="members")

    def __repr__(self):
        return f"<FamilyMember {self.full_name}>"

    @property
    def tenant_id(self):
        return self.family.tenant_id if self.family else None

    @property
    def full_name(self):
        return " ".join(p for p in (self.first_name, self.middle_name, self.last_name) if p)

    @property
    def age(self):
        if not self.date_of_birth:
            return None
        end = self.deceased_date or date.today()
        born = self.date_of_birth
        return end.year - born.year - ((end.month, end.day) < (born.month, born.day))

    @property
    def is_head(self):
        return (self.relationship_to_head or "").lower() in HEAD_RELATIONSHIPS

    def is_baptized(self):
        return self.baptism_date is not None

    def is_confirmed(self):
        return self.confirmation_date is not None

    def to_dict(self):
        data = {
            "id": self.id,
            "family_id": self.family_id,
            "first_name": self.first_name,
            "middle_name": self.middle_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "date_of_birth": _iso(self.date_of_birth),
            "age": self.age,
            "gender": self.gender,
            "relationship_to_head": self.relationship_to_head,
            "marital_status": self.marital_status,
            "phone": self.phone,
            "email": self.email,
            "is_primary_contact": self.is_primary_contact,
            "marriage_spouse_name": self.marriage_spouse_name,
            "occupation": self.occupation,
            "education": self.education,
            "skills_talents": self.skills_talents,
            "notes": self.notes,
            "status": self.status,
            "deceased_date": _iso(self.deceased_date),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        for sacrament in SACRAMENTS:
            data[f"{sacrament}_date"] = _iso(getattr(self, f"{sacrament}_date"))
            data[f"{sacrament}_place"] = getattr(self, f"{sacrament}_place")
        return data
