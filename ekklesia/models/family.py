# ekklesia/models/family.py
from uuid import uuid4

from ekklesia.extensions import db
from ekklesia.core.database import BaseModel, SoftDeleteMixin
from ekklesia.core.constants import FAMILY_CODE_PREFIX, FAMILY_CODE_WIDTH, MemberStatus, RecordStatus
from ekklesia.core.utils import next_sequential_code
from .family_member import FamilyMember


class Family(SoftDeleteMixin, BaseModel):
    __tablename__ = "families"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid4()))
    tenant_id = db.Column(
        db.String(36), db.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    family_code = db.Column(db.String(20), nullable=False)
    family_name = db.Column(db.String(150), nullable=False)
    head_of_family = db.Column(db.String(150))
    address = db.Column(db.String(255))
    city = db.Column(db.String(100))
    postal_code = db.Column(db.String(20))
    primary_phone = db.Column(db.String(50))
    email = db.Column(db.String(255))
    bcc_id = db.Column(db.String(36), db.ForeignKey("bccs.id", ondelete="SET NULL"), index=True)
    status = db.Column(db.String(20), nullable=False, default=RecordStatus.ACTIVE.value)
    notes = db.Column(db.Text)
    created_by = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"))
    updated_by = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"))

    tenant = db.relationship("Tenant", foreign_keys=[tenant_id])
    bcc = db.relationship("BCC", back_populates="families", foreign_keys=[bcc_id])
    members = db.relationship(
        "FamilyMember",
        back_populates="family",
        order_by=[FamilyMember.relationship_to_head, FamilyMember.date_of_birth],
    )

    __table_args__ = (
        db.UniqueConstraint("tenant_id", "family_code", name="uq_families_tenant_code"),
    )

    def __repr__(self):
        return f"<Family {self.family_code} {self.family_name}>"

    @staticmethod
    def generate_code(tenant_id):
        return next_sequential_code(
            Family, Family.family_code, tenant_id, FAMILY_CODE_PREFIX, FAMILY_CODE_WIDTH
        )

    def live_members(self):
        return [m for m in self.members if not m.is_deleted]

    def add_member(self, **fields):
        """Register a member; run inside session_manager"""
        member = FamilyMember(**fields)
        self.members.append(member)
        db.session.add(member)
        if member.is_head:
            self.sync_head_of_family()
        return member

    def update_member(self, member, fields):
        was_head = member.is_head
        for field, value in fields.items():
            setattr(member, field, value)
        if was_head or member.is_head:
            self.sync_head_of_family()
        return member

    def remove_member(self, member):
        member.soft_delete()
        if member.is_head:
            self.sync_head_of_family()

    def sync_head_of_family(self):
        """Copy the head member's name onto ``head_of_family``.

        An active head wins over an inactive one. With no head member left the
        stored name is kept.
        """
        heads = [m for m in self.live_members() if m.is_head]
        if not heads:
            return None
        active = [m for m in heads if m.status == MemberStatus.ACTIVE.value]
        head = (active or heads)[0]
        self.head_of_family = f"{head.first_name} {head.last_name}".strip()
        return head

    def remove(self):
        """Soft delete the family together with its members"""
        for member in self.live_members():
            member.soft_delete()
        self.soft_delete()

    @classmethod
    def statistics(cls, query):
        """Counts over a (tenant scoped) query of live families"""
        family_ids = [family_id for (family_id,) in query.with_entities(cls.id)]
        total = len(family_ids)
        active = query.filter(cls.status == RecordStatus.ACTIVE.value).count()
        with_bcc = query.filter(cls.bcc_id.isnot(None)).count()
        members = FamilyMember.alive().filter(FamilyMember.family_id.in_(family_ids))
        total_members = members.count()
        return {
            "total_families": total,
            "active_families": active,
            "inactive_families": total - active,
            "total_members": total_members,
            "active_members": members.filter(
                FamilyMember.status == MemberStatus.ACTIVE.value
            ).count(),
            "families_with_bcc": with_bcc,
            "families_without_bcc": total - with_bcc,
        }

    def to_dict(self, include_members=False):
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "family_code": self.family_code,
            "family_name": self.family_name,
            "head_of_family": self.head_of_family,
            "address": self.address,
            "city": self.city,
            "postal_code": self.postal_code,
            "primary_phone": self.primary_phone,
            "email": self.email,
            "bcc_id": self.bcc_id,
            "bcc_name": self.bcc.name if self.bcc else None,
            "status": self.status,
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "member_count": len(self.live_members()),
        }
        if include_members:
            data["members"] = [m.to_dict() for m in self.live_members()]
        return data
