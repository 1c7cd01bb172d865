# ekklesia/models/audit_log.py
from datetime import datetime
from uuid import uuid4

from sqlalchemy.dialects.postgresql import JSONB

from ekklesia.extensions import db
from ekklesia.core.exceptions import AuthorizationError

# JSONB on postgres, plain JSON elsewhere
JSONType = db.JSON().with_variant(JSONB(), "postgresql")

USER_AGENT_LENGTH = 255


class AuditLog(db.Model):
    """Append-only trail of API mutations, kept per tenant.

    Rows are written by the ``audit_action`` decorator after the audited
    operation has committed. Platform rows (tenant onboarding, global roles)
    carry no tenant. Retention is enforced per tenant by
    ``flask cleanup-audit-logs``.
    """

    __tablename__ = "audit_logs"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid4()))
    tenant_id = db.Column(
        db.String(36), db.ForeignKey("tenants.id", ondelete="CASCADE"), index=True
    )
    user_id = db.Column(db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"), index=True)
    action = db.Column(db.String(50), nullable=False)
    entity_type = db.Column(db.String(50), nullable=False)
    entity_id = db.Column(db.String(36))
    changes = db.Column(JSONType)
    event_metadata = db.Column(JSONType)
    ip_address = db.Column(db.String(45))
    user_agent = db.Column(db.String(USER_AGENT_LENGTH))
    endpoint = db.Column(db.String(255))
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    actor = db.relationship("User", foreign_keys=[user_id])

    def __repr__(self):
        return f"<AuditLog {self.action} {self.entity_type}:{self.entity_id}>"

    @classmethod
    def record(cls, actor, action, entity_type, entity_id=None, changes=None, **context):
        """Stage an entry for ``actor``; the caller commits.

        ``context`` holds request details (ip_address, user_agent, endpoint,
        event_metadata).
        """
        user_agent = context.pop("user_agent", None)
        entry = cls(
            tenant_id=getattr(actor, "tenant_id", None),
            user_id=getattr(actor, "id", None),
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            changes=changes,
            user_agent=(user_agent or "")[:USER_AGENT_LENGTH] or None,
            **context,
        )
        db.session.add(entry)
        return entry

    @classmethod
    def visible_to(cls, actor):
        """Entries the actor may read: everything for global admins, else their tenant"""
        if actor.is_admin():
            return cls.query
        if actor.tenant_id is None:
            raise AuthorizationError("Your account is not associated with any tenant.")
        return cls.query.filter(cls.tenant_id == actor.tenant_id)

    @classmethod
    def history(cls, entity_type, entity_id, query=None):
        query = cls.query if query is None else query
        return query.filter(cls.entity_type == entity_type, cls.entity_id == entity_id).order_by(
            cls.timestamp.desc()
        )

    @classmethod
    def counts_by_tenant(cls):
        """``{tenant_id: row_count}`` over tenant-owned rows"""
        rows = (
            db.session.query(cls.tenant_id, db.func.count(cls.id))
            .filter(cls.tenant_id.isnot(None))
            .group_by(cls.tenant_id)
            .all()
        )
        return dict(rows)

    @classmethod
    def prune_tenant(cls, tenant_id, keep):
        """Delete all but the newest ``keep`` rows of a tenant; returns the count removed"""
        newest = (
            db.select(cls.id)
            .where(cls.tenant_id == tenant_id)
            .order_by(cls.timestamp.desc(), cls.id.desc())
            .limit(keep)
        )
        stale = cls.query.filter(cls.tenant_id == tenant_id, cls.id.notin_(newest))
        return stale.delete(synchronize_session=False)

    def to_dict(self):
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "user_id": self.user_id,
            "user_name": self.actor.name if self.actor else None,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "changes": self.changes,
            "event_metadata": self.event_metadata,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "endpoint": self.endpoint,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
