# ekklesia/models/user.py
import logging
from datetime import datetime
from uuid import uuid4

from ekklesia.extensions import db
from ekklesia.core.database import BaseModel, SoftDeleteMixin
from ekklesia.core.security import SecurityMixin
from ekklesia.core.constants import RoleTier, GLOBAL_ADMIN_TIERS, STAFF_TIERS
from ekklesia.core.exceptions import DuplicateNameError, NotFoundError, ValidationError
from ekklesia.core import authorization
from .associations import permission_user, role_user
from .permission import Permission
from .role import Role

logger = logging.getLogger(__name__)


class User(SoftDeleteMixin, BaseModel, SecurityMixin):
    __tablename__ = "users"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid4()))
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False, unique=True)
    password_hash = db.Column(db.String(255))
    contact_number = db.Column(db.String(50))
    user_type = db.Column(db.Integer, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    is_primary_admin = db.Column(db.Boolean, nullable=False, default=False)
    last_login = db.Column(db.DateTime)

    tenant_id = db.Column(
        db.String(36), db.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True, index=True
    )
    # Legacy single role, kept alongside the multi-role set
    role_id = db.Column(
        db.String(36), db.ForeignKey("roles.id", ondelete="SET NULL"), nullable=True, index=True
    )

    tenant = db.relationship("Tenant", foreign_keys=[tenant_id], back_populates="users")
    role = db.relationship("Role", foreign_keys=[role_id], back_populates="users")
    roles = db.relationship("Role", secondary=role_user, back_populates="members")
    permissions = db.relationship(
        "Permission", secondary=permission_user, back_populates="users", order_by=Permission.name
    )

    def __repr__(self):
        return f"<User {self.email}>"

    # Roles and tiers

    def effective_roles(self):
        """Legacy role plus the role set, without duplicates, inactive or deleted roles"""
        seen = {}
        candidates = ([self.role] if self.role is not None else []) + list(self.roles)
        for role in candidates:
            if role.is_usable and role.id not in seen:
                seen[role.id] = role
        return list(seen.values())

    def has_tier(self, *tiers):
        return any(role.tier in tiers for role in self.effective_roles())

    def has_role(self, name):
        return any(role.name == name for role in self.effective_roles())

    def is_super_admin(self):
        return self.has_tier(RoleTier.SUPER_ADMIN)

    def is_ekklesia_admin(self):
        return self.has_tier(RoleTier.EKKLESIA_ADMIN)

    def is_ekklesia_manager(self):
        return self.has_tier(RoleTier.EKKLESIA_MANAGER)

    def is_admin(self):
        """SuperAdmin or EkklesiaAdmin: exempt from tenant isolation"""
        return self.has_tier(*GLOBAL_ADMIN_TIERS)

    def is_platform_staff(self):
        return self.has_tier(*STAFF_TIERS)

    def is_tenant_admin(self):
        return self.has_tier(RoleTier.TENANT_ADMIN)

    # Authorization evaluator

    def has_permission_to(self, permission):
        """Whether the user holds a permission, given by name or entity.

        SuperAdmin always passes. Otherwise a direct grant or a grant through any
        usable role is enough; there are no denies. Unknown names are simply
        not held.
        """
        if self.is_super_admin():
            return True

        permission_id = Permission.resolve_id(permission)
        if permission_id is None:
            return False

        if permission_id in self.direct_permission_ids():
            return True

        return any(permission_id in role.permission_ids() for role in self.effective_roles())

    def has_any_permission(self, *permissions):
        return any(self.has_permission_to(p) for p in permissions)

    def has_all_permissions(self, *permissions):
        return all(self.has_permission_to(p) for p in permissions)

    def direct_permission_ids(self):
        return {p.id for p in self.permissions if p.is_active}

    def get_all_permissions(self):
        """Direct and role permissions, de-duplicated by id and sorted by name"""
        collected = {p.id: p for p in self.permissions if p.is_active}
        for role in self.effective_roles():
            for permission in role.permissions:
                if permission.is_active:
                    collected.setdefault(permission.id, permission)
        return sorted(collected.values(), key=lambda p: p.name)

    def give_permission_to(self, permission):
        """Directly grant a permission; granting twice is a no-op"""
        permission = Permission.resolve(permission)
        if permission not in self.permissions:
            self.permissions.append(permission)
        return permission

    def revoke_permission_to(self, permission):
        permission = Permission.resolve(permission)
        if permission in self.permissions:
            self.permissions.remove(permission)
        return permission

    def sync_roles(self, role_ids, assigned_by, allow_empty=True):
        """Replace the role set with the given roles, checked against the assigning actor.

        Every id must name a live role, and every role must be global or owned by
        the actor's tenant. Run inside ``session_manager`` for an atomic swap.
        """
        unique_ids = list(dict.fromkeys(role_ids or []))
        if not unique_ids and not allow_empty:
            raise ValidationError("At least one role must be assigned.")

        roles = []
        for role_id in unique_ids:
            role = Role.get_alive(role_id)
            if role is None:
                raise NotFoundError(f"Role {role_id} does not exist.")
            roles.append(role)

        authorization.ensure_can_assign_roles(assigned_by, roles)

        self.roles.clear()
        db.session.flush()
        self.roles.extend(roles)

        logger.info(
            f"User {assigned_by.id} synced roles {[r.name for r in roles]} onto user {self.id}"
        )
        return roles

    # Lifecycle

    def activate(self, actor=None):
        if actor is not None:
            authorization.ensure_can_change_status(actor, self)
        self.is_active = True
        db.session.add(self)

    def deactivate(self, actor):
        authorization.ensure_can_deactivate(actor, self)
        self.is_active = False
        db.session.add(self)

    def remove(self, actor):
        authorization.ensure_can_delete(actor, self)
        self.soft_delete()

    def update_last_login(self):
        self.last_login = datetime.utcnow()
        db.session.add(self)

    @classmethod
    def ensure_email_available(cls, email, exclude_id=None):
        """Emails are unique across every tenant, deleted accounts included"""
        query = cls.query.filter(db.func.lower(cls.email) == email.strip().lower())
        if exclude_id:
            query = query.filter(cls.id != exclude_id)
        if query.first() is not None:
            raise DuplicateNameError(f"The email {email} has already been taken.")

    @classmethod
    def create_account(cls, name, email, password=None, **fields):
        cls.ensure_email_available(email)
        user = cls(name=name, email=email.strip().lower(), **fields)
        # Accounts without a password cannot log in until one is set
        user.password = password or str(uuid4())
        db.session.add(user)
        db.session.flush()
        return user

    def to_dict(self, include_roles=True):
        data = {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "contact_number": self.contact_number,
            "user_type": self.user_type,
            "tenant_id": self.tenant_id,
            "role_id": self.role_id,
            "is_active": self.is_active,
            "is_primary_admin": self.is_primary_admin,
            "last_login": self.last_login.isoformat() if self.last_login else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if include_roles:
            data["roles"] = [
                {"id": r.id, "name": r.name, "tier": r.tier.value} for r in self.effective_roles()
            ]
        return data
