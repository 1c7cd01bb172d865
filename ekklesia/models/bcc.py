# ekklesia/models/bcc.py
from uuid import uuid4

from ekklesia.extensions import db
from ekklesia.core.database import BaseModel, SoftDeleteMixin
from ekklesia.core.constants import BCC_CODE_PREFIX, BCC_CODE_WIDTH, RecordStatus
from ekklesia.core.exceptions import TenantIsolationError, ValidationError
from ekklesia.core.utils import next_sequential_code


class BCC(SoftDeleteMixin, BaseModel):
    """Base Christian Community: a small neighbourhood grouping of families"""

    __tablename__ = "bccs"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid4()))
    tenant_id = db.Column(
        db.String(36), db.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True
    )
    bcc_code = db.Column(db.String(20), nullable=False)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    meeting_place = db.Column(db.String(255))
    meeting_day = db.Column(db.String(20))
    meeting_time = db.Column(db.String(10))
    meeting_frequency = db.Column(db.String(30))
    status = db.Column(db.String(20), nullable=False, default=RecordStatus.ACTIVE.value)
    established_date = db.Column(db.Date)
    # None means unlimited
    max_families = db.Column(db.Integer)
    notes = db.Column(db.Text)
    created_by = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"))
    updated_by = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"))

    tenant = db.relationship("Tenant", foreign_keys=[tenant_id])
    families = db.relationship("Family", back_populates="bcc", foreign_keys="Family.bcc_id")
    leaders = db.relationship(
        "BCCLeader", back_populates="bcc", order_by="BCCLeader.appointed_date"
    )

    __table_args__ = (db.UniqueConstraint("tenant_id", "bcc_code", name="uq_bccs_tenant_code"),)

    def __repr__(self):
        return f"<BCC {self.bcc_code} {self.name}>"

    @staticmethod
    def generate_code(tenant_id):
        return next_sequential_code(BCC, BCC.bcc_code, tenant_id, BCC_CODE_PREFIX, BCC_CODE_WIDTH)

    def live_families(self):
        return [f for f in self.families if not f.is_deleted]

    def assign_families(self, families):
        """Attach families of the same tenant; run inside session_manager"""
        for family in families:
            self._ensure_same_tenant(family)
        incoming = [f for f in families if f.bcc_id != self.id]
        if not self.has_space(len(incoming)):
            raise ValidationError(
                "BCC does not have enough capacity for the requested families."
            )
        for family in families:
            family.bcc_id = self.id
            db.session.add(family)
        return families

    def live_leaders(self):
        return [leader for leader in self.leaders if not leader.is_deleted]

    def remaining_capacity(self):
        if self.max_families is None:
            return None
        return max(self.max_families - len(self.live_families()), 0)

    def has_space(self, count=1):
        remaining = self.remaining_capacity()
        return remaining is None or remaining >= count

    @classmethod
    def with_space(cls, query):
        """Narrow a BCC query to active BCCs that can take another family"""
        from .family import Family

        live_count = (
            db.select(db.func.count(Family.id))
            .where(Family.bcc_id == cls.id, Family.deleted_at.is_(None))
            .correlate(cls)
            .scalar_subquery()
        )
        return query.filter(
            cls.status == RecordStatus.ACTIVE.value,
            db.or_(cls.max_families.is_(None), live_count < cls.max_families),
        )

    @classmethod
    def statistics(cls, query):
        bccs = query.all()
        active = [b for b in bccs if b.status == RecordStatus.ACTIVE.value]
        in_bcc = sum(len(b.live_families()) for b in bccs)
        capacity = sum(b.max_families for b in bccs if b.max_families)
        bounded = sum(len(b.live_families()) for b in bccs if b.max_families)
        return {
            "total_bccs": len(bccs),
            "active_bccs": len(active),
            "inactive_bccs": len(bccs) - len(active),
            "bccs_with_space": len([b for b in active if b.has_space()]),
            "total_families_in_bcc": in_bcc,
            "total_capacity": capacity,
            "utilization_percentage": round(bounded / capacity * 100, 2) if capacity else 0,
        }

    def remove_families(self, families):
        """Detach the given families that currently belong to this BCC"""
        removed = []
        for family in families:
            self._ensure_same_tenant(family)
            if family.bcc_id == self.id:
                family.bcc_id = None
                db.session.add(family)
                removed.append(family)
        return removed

    def _ensure_same_tenant(self, family):
        if family.tenant_id != self.tenant_id:
            raise TenantIsolationError(
                entity_type="family",
                entity_tenant_id=family.tenant_id,
                actor_tenant_id=self.tenant_id,
            )

    def to_dict(self, include_families=False, include_leaders=False):
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "bcc_code": self.bcc_code,
            "name": self.name,
            "description": self.description,
            "meeting_place": self.meeting_place,
            "meeting_day": self.meeting_day,
            "meeting_time": self.meeting_time,
            "meeting_frequency": self.meeting_frequency,
            "status": self.status,
            "established_date": (
                self.established_date.isoformat() if self.established_date else None
            ),
            "notes": self.notes,
            "max_families": self.max_families,
            "family_count": len(self.live_families()),
            "has_space": self.has_space(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_families:
            data["families"] = [f.to_dict() for f in self.live_families()]
        if include_leaders:
            data["leaders"] = [leader.to_dict() for leader in self.live_leaders()]
        return data
