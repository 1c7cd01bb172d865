# ekklesia/models/bcc_leader.py
from datetime import date
from uuid import uuid4

from ekklesia.extensions import db
from ekklesia.core.database import BaseModel, SoftDeleteMixin
from ekklesia.core.constants import LeaderRole


class BCCLeader(SoftDeleteMixin, BaseModel):
    """A family member holding an office in a BCC for a term"""

    __tablename__ = "bcc_leaders"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid4()))
    bcc_id = db.Column(
        db.String(36), db.ForeignKey("bccs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    family_member_id = db.Column(
        db.String(36),
        db.ForeignKey("family_members.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role = db.Column(db.String(20), nullable=False, default=LeaderRole.LEADER.value)
    role_description = db.Column(db.String(255))
    appointed_date = db.Column(db.Date, nullable=False, default=date.today)
    term_start_date = db.Column(db.Date)
    term_end_date = db.Column(db.Date)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)
    leader_phone = db.Column(db.String(20))
    leader_email = db.Column(db.String(255))
    responsibilities = db.Column(db.Text)
    notes = db.Column(db.Text)
    created_by = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"))
    updated_by = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"))

    bcc = db.relationship("BCC", back_populates="leaders")
    member = db.relationship("FamilyMember")

    def __repr__(self):
        return f"<BCCLeader {self.role} of {self.bcc_id}>"

    @property
    def tenant_id(self):
        return self.bcc.tenant_id if self.bcc else None

    @property
    def leader_name(self):
        return self.member.full_name if self.member else None

    @property
    def contact_phone(self):
        # Office contact details win over the member's own
        if self.leader_phone:
            return self.leader_phone
        return self.member.phone if self.member else None

    @property
    def contact_email(self):
        if self.leader_email:
            return self.leader_email
        return self.member.email if self.member else None

    @property
    def is_term_expired(self):
        return self.term_end_date is not None and self.term_end_date < date.today()

    def activate(self):
        self.is_active = True
        db.session.add(self)

    def deactivate(self):
        self.is_active = False
        db.session.add(self)

    def to_dict(self):
        return {
            "id": self.id,
            "bcc_id": self.bcc_id,
            "family_member_id": self.family_member_id,
            "leader_name": self.leader_name,
            "role": self.role,
            "role_description": self.role_description,
            "appointed_date": self.appointed_date.isoformat() if self.appointed_date else None,
            "term_start_date": self.term_start_date.isoformat() if self.term_start_date else None,
            "term_end_date": self.term_end_date.isoformat() if self.term_end_date else None,
            "is_term_expired": self.is_term_expired,
            "is_active": self.is_active,
            "contact_phone": self.contact_phone,
            "contact_email": self.contact_email,
            "responsibilities": self.responsibilities,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
