# ekklesia/models/role.py
import logging
from uuid import uuid4

from ekklesia.extensions import db
from ekklesia.core.database import BaseModel, SoftDeleteMixin
from ekklesia.core.constants import (
    CUSTOM_ROLE_MIN_LEVEL,
    SYSTEM_ROLES,
    RoleTier,
)
from ekklesia.core.exceptions import DuplicateNameError
from .associations import permission_role, role_user
from .permission import Permission

logger = logging.getLogger(__name__)


class Role(SoftDeleteMixin, BaseModel):
    __tablename__ = "roles"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid4()))
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.String(255))
    level = db.Column(db.Integer, nullable=False, default=CUSTOM_ROLE_MIN_LEVEL)
    tier = db.Column(
        db.Enum(RoleTier, name="role_tier", values_callable=lambda tiers: [t.value for t in tiers]),
        nullable=False,
        default=RoleTier.CUSTOM,
    )
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    tenant_id = db.Column(
        db.String(36), db.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True, index=True
    )
    is_custom = db.Column(db.Boolean, nullable=False, default=True)

    tenant = db.relationship("Tenant", foreign_keys=[tenant_id])
    permissions = db.relationship(
        "Permission", secondary=permission_role, back_populates="roles", order_by=Permission.name
    )
    # Holders of the legacy single role_id
    users = db.relationship("User", foreign_keys="User.role_id", back_populates="role")
    members = db.relationship("User", secondary=role_user, back_populates="roles")

    def __repr__(self):
        return f"<Role {self.name} for tenant {self.tenant_id}>"

    # Tier predicates

    def is_super_admin(self):
        return self.tier == RoleTier.SUPER_ADMIN

    def is_ekklesia_admin(self):
        return self.tier == RoleTier.EKKLESIA_ADMIN

    def is_ekklesia_manager(self):
        return self.tier == RoleTier.EKKLESIA_MANAGER

    def is_tenant_admin(self):
        return self.tier == RoleTier.TENANT_ADMIN

    @property
    def is_global(self):
        return self.tenant_id is None and not self.is_custom

    @property
    def is_usable(self):
        return bool(self.is_active) and not self.is_deleted

    # Permission set

    def has_permission(self, permission):
        """Membership of a permission (name or entity) among the active grants"""
        permission_id = Permission.resolve_id(permission)
        if permission_id is None:
            return False
        return permission_id in self.permission_ids()

    def permission_ids(self):
        return {p.id for p in self.permissions if p.is_active}

    def grant(self, permission):
        """Add a permission; granting twice is a no-op"""
        permission = Permission.resolve(permission)
        if permission not in self.permissions:
            self.permissions.append(permission)
        return permission

    def revoke(self, permission):
        """Remove a permission; revoking an absent one is a no-op"""
        permission = Permission.resolve(permission)
        if permission in self.permissions:
            self.permissions.remove(permission)
        return permission

    def sync_permissions(self, permissions):
        """Replace the permission set: detach everything, then grant each.

        Every reference is resolved before anything is detached, so an unknown
        name leaves the role untouched. Run inside ``session_manager`` to commit
        the swap as one transaction.
        """
        resolved = []
        for ref in permissions:
            permission = Permission.resolve(ref)
            if permission not in resolved:
                resolved.append(permission)

        self.permissions.clear()
        db.session.flush()
        for permission in resolved:
            self.permissions.append(permission)

        logger.info(f"Synced {len(resolved)} permissions onto role {self.name} ({self.id})")
        return resolved

    # Lifecycle

    def activate(self):
        self.is_active = True
        db.session.add(self)

    def deactivate(self):
        self.is_active = False
        db.session.add(self)

    def holder_count(self):
        holders = {u.id for u in self.users if not u.is_deleted}
        holders.update(u.id for u in self.members if not u.is_deleted)
        return len(holders)

    def to_dict(self, include_permissions=False):
        data = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "level": self.level,
            "tier": self.tier.value if self.tier else None,
            "tenant_id": self.tenant_id,
            "is_custom": self.is_custom,
            "is_global": self.is_global,
            "is_active": self.is_active,
            "deleted_at": self.deleted_at.isoformat() if self.deleted_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_permissions:
            data["permissions"] = [p.to_dict() for p in self.permissions]
        return data

    # Lookups and factories

    @staticmethod
    def get_role_by_name(tenant_id, role_name):
        """Get a live role by name within a tenant (None means global)"""
        return Role.alive().filter_by(tenant_id=tenant_id, name=role_name).first()

    @classmethod
    def ensure_name_available(cls, name, tenant_id, exclude_id=None):
        """Names are unique per tenant; global roles share one bucket"""
        if tenant_id is None:
            query = cls.query.filter(cls.name == name, cls.tenant_id.is_(None))
        else:
            query = cls.query.filter(cls.name == name, cls.tenant_id == tenant_id)
        if exclude_id:
            query = query.filter(cls.id != exclude_id)
        if query.first() is not None:
            scope = "globally" if tenant_id is None else "for this tenant"
            raise DuplicateNameError(f"A role named '{name}' already exists {scope}.")

    @classmethod
    def create_role(
        cls, name, tenant_id=None, description=None, level=CUSTOM_ROLE_MIN_LEVEL,
        tier=RoleTier.CUSTOM, is_custom=True, is_active=True,
    ):
        cls.ensure_name_available(name, tenant_id)
        role = cls(
            name=name,
            tenant_id=tenant_id,
            description=description,
            level=level,
            tier=tier,
            is_custom=is_custom,
            is_active=is_active,
        )
        db.session.add(role)
        db.session.flush()
        return role

    @classmethod
    def seed_system_roles(cls):
        """Create the global tier roles that do not exist yet"""
        created = []
        for definition in SYSTEM_ROLES:
            if cls.query.filter_by(tenant_id=None, name=definition["name"]).first():
                continue
            created.append(
                cls.create_role(
                    definition["name"],
                    tenant_id=None,
                    description=definition["description"],
                    level=int(definition["level"]),
                    tier=definition["tier"],
                    is_custom=False,
                )
            )
        return created

    @classmethod
    def create_administrator_role(cls, tenant, name="Administrator"):
        """Administrator role of a newly onboarded tenant, holding every system permission"""
        role = cls.create_role(
            name,
            tenant_id=tenant.id,
            description=f"{tenant.name} Super Administrator",
            level=1,
            tier=RoleTier.TENANT_ADMIN,
            is_custom=False,
        )
        role.sync_permissions(cls.system_permissions())
        return role

    @staticmethod
    def system_permissions():
        return Permission.query.filter(
            Permission.tenant_id.is_(None),
            Permission.is_custom.is_(False),
            Permission.is_active.is_(True),
        ).order_by(Permission.name).all()


# (name, tenant) is unique with every global role in one shared bucket
db.Index(
    "uq_roles_name_tenant",
    Role.name,
    db.func.coalesce(Role.tenant_id, ""),
    unique=True,
)
