# ekklesia/models/__init__.py
from .associations import permission_role, permission_user, role_user
from .tenant import Tenant
from .permission import Permission, PermissionRef
from .role import Role
from .user import User
from .bcc import BCC
from .family_member import FamilyMember
from .family import Family
from .bcc_leader import BCCLeader
from .audit_log import AuditLog

__all__ = [
    "Tenant",
    "Permission",
    "PermissionRef",
    "Role",
    "User",
    "BCC",
    "Family",
    "FamilyMember",
    "BCCLeader",
    "AuditLog",
    "permission_role",
    "permission_user",
    "role_user",
]
