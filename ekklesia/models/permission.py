# ekklesia/models/permission.py
from enum import Enum
from typing import List, Optional, Union
from uuid import uuid4

from ekklesia.extensions import db
from ekklesia.core.database import BaseModel
from ekklesia.core.exceptions import DuplicateNameError, NotFoundError, ValidationError
from .associations import permission_role, permission_user


class Permission(BaseModel):
    """A named capability such as ``users.create``.

    Names are unique across the whole catalogue, tenant custom permissions
    included, so a name alone always identifies a single permission.
    """

    __tablename__ = "permissions"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid4()))
    name = db.Column(db.String(100), nullable=False, unique=True)
    display_name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.String(255))
    module = db.Column(db.String(50), index=True)
    category = db.Column(db.String(50))
    tenant_id = db.Column(
        db.String(36), db.ForeignKey("tenants.id", ondelete="CASCADE"), nullable=True, index=True
    )
    is_custom = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    tenant = db.relationship("Tenant", foreign_keys=[tenant_id])
    roles = db.relationship("Role", secondary=permission_role, back_populates="permissions")
    users = db.relationship("User", secondary=permission_user, back_populates="permissions")

    def __repr__(self):
        return f"<Permission {self.name}>"

    @property
    def is_global(self):
        return self.tenant_id is None and not self.is_custom

    @property
    def is_in_use(self):
        return bool(self.roles) or bool(self.users)

    @classmethod
    def register(
        cls,
        name: str,
        display_name: str,
        description: Optional[str] = None,
        module: Optional[str] = None,
        category: Optional[str] = None,
        tenant_id: Optional[str] = None,
    ) -> "Permission":
        """Add a permission to the catalogue; tenant scoped ones are custom"""
        exists = db.session.execute(
            db.select(cls.id).where(cls.name == name)
        ).scalar_one_or_none()
        if exists:
            raise DuplicateNameError(f"Permission '{name}' already exists.")

        permission = cls(
            name=name,
            display_name=display_name,
            description=description,
            module=module,
            category=category,
            tenant_id=tenant_id,
            is_custom=tenant_id is not None,
            is_active=True,
        )
        db.session.add(permission)
        db.session.flush()
        return permission

    @classmethod
    def find_by_name(cls, name) -> "Permission":
        name = cls._name_of(name)
        permission = db.session.execute(
            db.select(cls).where(cls.name == name)
        ).scalar_one_or_none()
        if permission is None:
            raise NotFoundError(f"Permission '{name}' does not exist.")
        return permission

    @classmethod
    def list_active(cls, tenant_id: Optional[str] = None) -> List["Permission"]:
        """Global permissions plus the given tenant's custom ones, active only"""
        scope = cls.tenant_id.is_(None)
        if tenant_id is not None:
            scope = db.or_(scope, cls.tenant_id == tenant_id)

        return db.session.execute(
            db.select(cls)
            .where(scope, cls.is_active.is_(True))
            .order_by(cls.module, cls.category, cls.name)
        ).scalars().all()

    @classmethod
    def resolve(cls, ref: "PermissionRef") -> "Permission":
        """Turn a name or entity into a persisted Permission, or raise NotFoundError"""
        if isinstance(ref, cls):
            if ref.id is None:
                db.session.flush()
            return ref
        return cls.find_by_name(ref)

    @classmethod
    def resolve_id(cls, ref: "PermissionRef") -> Optional[str]:
        """Canonical id for a permission reference; None when the name is unknown"""
        if isinstance(ref, cls):
            return ref.id
        return db.session.execute(
            db.select(cls.id).where(cls.name == cls._name_of(ref))
        ).scalar_one_or_none()

    @staticmethod
    def _name_of(ref) -> str:
        return ref.value if isinstance(ref, Enum) else str(ref)

    def delete_if_unused(self):
        if self.is_in_use:
            raise ValidationError(
                f"Permission '{self.name}' is assigned to roles or users and cannot be deleted."
            )
        db.session.delete(self)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "display_name": self.display_name,
            "description": self.description,
            "module": self.module,
            "category": self.category,
            "tenant_id": self.tenant_id,
            "is_custom": self.is_custom,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


# A permission may be referenced by name or by entity
PermissionRef = Union[str, Enum, Permission]
