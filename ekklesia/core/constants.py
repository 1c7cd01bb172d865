# ekklesia/core/constants.py
from enum import Enum, IntEnum


class RoleTier(Enum):
    """Privilege tier of a role, independent of its display name"""

    SUPER_ADMIN = "super_admin"
    EKKLESIA_ADMIN = "ekklesia_admin"
    EKKLESIA_MANAGER = "ekklesia_manager"
    EKKLESIA_USER = "ekklesia_user"
    TENANT_ADMIN = "tenant_admin"
    CUSTOM = "custom"


class RoleLevel(IntEnum):
    SUPER_ADMIN = 1
    EKKLESIA_ADMIN = 2
    EKKLESIA_MANAGER = 3
    EKKLESIA_USER = 4


CUSTOM_ROLE_MIN_LEVEL = 5
CUSTOM_ROLE_MAX_LEVEL = 10


class UserType(IntEnum):
    PRIMARY_CONTACT = 1
    SECONDARY_CONTACT = 2


# Global system roles, seeded once
SYSTEM_ROLES = [
    {
        "name": "SuperAdmin",
        "tier": RoleTier.SUPER_ADMIN,
        "level": RoleLevel.SUPER_ADMIN,
        "description": "Full unrestricted access to the whole platform",
    },
    {
        "name": "EkklesiaAdmin",
        "tier": RoleTier.EKKLESIA_ADMIN,
        "level": RoleLevel.EKKLESIA_ADMIN,
        "description": "Platform administrator across all parishes",
    },
    {
        "name": "EkklesiaManager",
        "tier": RoleTier.EKKLESIA_MANAGER,
        "level": RoleLevel.EKKLESIA_MANAGER,
        "description": "Platform manager with cross-parish visibility",
    },
    {
        "name": "EkklesiaUser",
        "tier": RoleTier.EKKLESIA_USER,
        "level": RoleLevel.EKKLESIA_USER,
        "description": "Basic platform user",
    },
]

GLOBAL_ADMIN_TIERS = frozenset({RoleTier.SUPER_ADMIN, RoleTier.EKKLESIA_ADMIN})
STAFF_TIERS = frozenset(
    {RoleTier.SUPER_ADMIN, RoleTier.EKKLESIA_ADMIN, RoleTier.EKKLESIA_MANAGER}
)


class PermissionName(str, Enum):
    """Permission names checked by the API layer"""

    TENANTS_VIEW = "tenants.view"
    TENANTS_CREATE = "tenants.create"
    TENANTS_UPDATE = "tenants.update"

    USERS_VIEW = "users.view"
    USERS_CREATE = "users.create"
    USERS_UPDATE = "users.update"
    USERS_DELETE = "users.delete"
    USERS_ACTIVATE = "users.activate"

    ROLES_VIEW = "roles.view"
    ROLES_CREATE = "roles.create"
    ROLES_UPDATE = "roles.update"
    ROLES_DELETE = "roles.delete"
    ROLES_ASSIGN = "roles.assign"

    PERMISSIONS_VIEW = "permissions.view"
    PERMISSIONS_CREATE = "permissions.create"
    PERMISSIONS_UPDATE = "permissions.update"
    PERMISSIONS_DELETE = "permissions.delete"
    PERMISSIONS_ASSIGN = "permissions.assign"

    FAMILIES_VIEW = "families.view"
    FAMILIES_CREATE = "families.create"
    FAMILIES_UPDATE = "families.update"
    FAMILIES_DELETE = "families.delete"

    BCCS_VIEW = "bccs.view"
    BCCS_CREATE = "bccs.create"
    BCCS_UPDATE = "bccs.update"
    BCCS_DELETE = "bccs.delete"

    AUDIT_VIEW = "audit.view"


# module -> actions of the standard permission catalogue
PERMISSION_CATALOGUE = {
    "Dashboard": ["view", "export"],
    "Tenants": ["view", "create", "update", "delete", "download", "print"],
    "Users": [
        "view", "create", "update", "delete", "download", "print", "activate", "reset_password",
    ],
    "Roles": ["view", "create", "update", "delete", "download", "print", "assign"],
    "Permissions": ["view", "create", "update", "delete", "assign"],
    "Settings": [
        "view", "update", "manage_general", "manage_security", "manage_email",
        "manage_notifications",
    ],
    "Reports": ["view", "create", "download", "print", "schedule"],
    "Audit": ["view", "download", "print", "delete"],
    "Files": ["view", "upload", "download", "delete", "manage"],
    "Notifications": ["view", "create", "delete"],
    "Families": ["view", "create", "update", "delete", "export"],
    "BCCs": ["view", "create", "update", "delete", "export"],
}

_ACTION_CATEGORIES = {
    "view": "Read",
    "create": "Write",
    "update": "Write",
    "upload": "Write",
    "delete": "Delete",
    "download": "Export",
    "print": "Export",
    "export": "Export",
    "activate": "Manage",
    "assign": "Manage",
    "reset_password": "Manage",
    "schedule": "Manage",
}


def category_for_action(action):
    """Map a catalogue action onto its permission category"""
    if action.startswith("manage"):
        return "Manage"
    return _ACTION_CATEGORIES.get(action, "Other")


def catalogue_entries():
    """Yield the register() keyword arguments for every standard permission"""
    for module, actions in PERMISSION_CATALOGUE.items():
        for action in actions:
            yield {
                "name": f"{module.lower()}.{action}",
                "display_name": f"{action.replace('_', ' ').title()} {module}",
                "description": f"Can {action.replace('_', ' ')} {module.lower()}",
                "module": module,
                "category": category_for_action(action),
            }


class RecordStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


FAMILY_CODE_PREFIX = "FAM"
FAMILY_CODE_WIDTH = 6
BCC_CODE_PREFIX = "BCC"
BCC_CODE_WIDTH = 4


class MemberStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DECEASED = "deceased"
    MIGRATED = "migrated"


RELATIONSHIPS = [
    "self", "spouse", "son", "daughter", "father", "mother", "brother", "sister",
    "grandfather", "grandmother", "grandson", "granddaughter", "uncle", "aunt",
    "nephew", "niece", "cousin", "other",
]
# relationship_to_head values that mark the head of the family
HEAD_RELATIONSHIPS = ("self", "head")
GENDERS = ["male", "female", "other"]
MARITAL_STATUSES = ["single", "married", "widowed", "separated", "divorced"]


class LeaderRole(str, Enum):
    LEADER = "leader"
    COORDINATOR = "coordinator"
    ASSISTANT = "assistant"
    SECRETARY = "secretary"
    TREASURER = "treasurer"
    ANIMATOR = "animator"
    OTHER = "other"


# Audit rows kept per tenant by `flask cleanup-audit-logs`
AUDIT_RETENTION_DEFAULT = 25
