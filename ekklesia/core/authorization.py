# ekklesia/core/authorization.py
"""Policy rules built on top of the per-user evaluator.

``User.has_permission_to`` answers "does this user hold capability X"; the
functions here combine it with tier and tenant rules for the operations that
need more than a single capability check.
"""
import logging
from enum import Enum

from .constants import PermissionName, RoleTier
from .exceptions import AuthorizationError, TenantIsolationError, ValidationError
from . import tenancy

logger = logging.getLogger(__name__)


def _label(permission):
    if isinstance(permission, Enum):
        return permission.value
    return getattr(permission, "name", permission)


def ensure_permission(actor, *permissions, any_of=False):
    if any_of:
        allowed = actor.has_any_permission(*permissions)
    else:
        allowed = actor.has_all_permissions(*permissions)
    if not allowed:
        names = ", ".join(_label(p) for p in permissions)
        logger.info(f"User {actor.id} denied, requires {names}")
        raise AuthorizationError(f"You do not have the required permission: {names}")


# Users

def edit_restriction_reason(actor, target):
    """Why ``actor`` may not edit ``target`` through user management, or None"""
    if actor.id == target.id:
        return "You cannot edit your own account through user management."

    if actor.is_admin():
        return None

    if actor.tenant_id is None or actor.tenant_id != target.tenant_id:
        return "You cannot edit users from other tenants."

    if target.is_primary_admin:
        return "The primary administrator account can only be edited by a system administrator."

    if not actor.is_primary_admin and target.is_tenant_admin():
        return "Only the primary administrator can edit other administrators."

    if not actor.has_permission_to(PermissionName.USERS_UPDATE):
        return "You do not have permission to edit users."

    return None


def can_edit_user(actor, target):
    return edit_restriction_reason(actor, target) is None


def ensure_can_edit_user(actor, target):
    tenancy.ensure_tenant_access(actor, target, "user")
    reason = edit_restriction_reason(actor, target)
    if reason:
        raise AuthorizationError(reason)


def ensure_can_change_status(actor, target):
    tenancy.ensure_tenant_access(actor, target, "user")


def ensure_can_deactivate(actor, target):
    """Primary administrators may only be deactivated by global administrators"""
    ensure_can_change_status(actor, target)
    if actor.id == target.id:
        raise AuthorizationError("You cannot deactivate your own account.")
    if target.is_primary_admin and not actor.is_admin():
        raise AuthorizationError(
            "The primary administrator account can only be deactivated by a system administrator."
        )


def ensure_can_delete(actor, target):
    ensure_can_change_status(actor, target)
    if actor.id == target.id:
        raise AuthorizationError("You cannot delete your own account.")
    if target.is_admin() and not actor.is_super_admin():
        raise AuthorizationError("System administrator accounts cannot be deleted.")
    if target.is_primary_admin and not actor.is_admin():
        raise AuthorizationError(
            "The primary administrator account can only be deleted by a system administrator."
        )


def ensure_can_assign_roles(actor, roles):
    """Cross-tenant roles fail validation first; then privileged global tiers need a peer"""
    tenancy.ensure_roles_belong_to_tenant(actor, roles)
    for role in roles:
        if role.tier == RoleTier.SUPER_ADMIN and not actor.is_super_admin():
            raise AuthorizationError("Only a SuperAdmin can assign the SuperAdmin role.")
        staff_tier = role.tier in (RoleTier.EKKLESIA_ADMIN, RoleTier.EKKLESIA_MANAGER)
        if staff_tier and not actor.is_admin():
            raise AuthorizationError(f"You cannot assign the {role.name} role.")


# Roles

def can_manage_roles(actor):
    return actor.is_platform_staff() or actor.is_tenant_admin()


def can_view_role(actor, role):
    if actor.is_platform_staff():
        return True
    if actor.tenant_id is None:
        return False
    return role.tenant_id is None or role.tenant_id == actor.tenant_id


def visible_roles(actor, query):
    """Filter a Role query to what the actor may list"""
    from ekklesia.models import Role

    if actor.is_platform_staff():
        return query
    if actor.tenant_id is None:
        raise AuthorizationError("You do not have permission to view roles.")
    return query.filter((Role.tenant_id == actor.tenant_id) | Role.tenant_id.is_(None))


def ensure_can_modify_role(actor, role):
    if not can_manage_roles(actor):
        raise AuthorizationError("You do not have permission to manage roles.")
    if role.tenant_id is None:
        if not actor.is_super_admin():
            raise AuthorizationError("Only SuperAdmin can modify global roles.")
        return
    tenancy.ensure_tenant_access(actor, role, "role")
    if not role.is_custom and not actor.is_super_admin():
        raise AuthorizationError("System roles cannot be modified.")


def ensure_can_delete_role(actor, role):
    ensure_can_modify_role(actor, role)
    if not role.is_custom:
        raise AuthorizationError("System roles cannot be deleted.")
    if role.holder_count():
        raise ValidationError("Cannot delete a role that is assigned to users.")


# Permissions

def can_manage_permissions(actor):
    return actor.is_platform_staff() or actor.is_tenant_admin()


def can_view_permission(actor, permission):
    if actor.is_platform_staff():
        return True
    if permission.tenant_id is None:
        return not permission.is_custom
    return permission.tenant_id == actor.tenant_id


def visible_permissions(actor, query):
    from ekklesia.models import Permission

    if actor.is_platform_staff():
        return query
    if actor.tenant_id is None:
        raise AuthorizationError("You do not have permission to view permissions.")
    return query.filter(
        ((Permission.tenant_id.is_(None)) & (Permission.is_custom.is_(False)))
        | (Permission.tenant_id == actor.tenant_id)
    )


def ensure_can_modify_permission(actor, permission):
    if not can_manage_permissions(actor):
        raise AuthorizationError("You do not have permission to manage permissions.")
    if permission.tenant_id is None:
        if not actor.is_super_admin():
            raise AuthorizationError("Only SuperAdmin can modify system permissions.")
        return
    tenancy.ensure_tenant_access(actor, permission, "permission")


def ensure_can_manage_user_permissions(actor, target):
    """Direct grants bypass roles, so they stay with permission managers"""
    if not can_manage_permissions(actor):
        raise AuthorizationError("You do not have permission to manage permissions.")
    if actor.id == target.id and not actor.is_admin():
        raise AuthorizationError("You cannot change your own permissions.")


def ensure_can_grant_permission(actor, permission):
    """Tenant actors may only hand out permissions they can see"""
    if not can_view_permission(actor, permission):
        raise TenantIsolationError(
            entity_type="permission",
            entity_tenant_id=permission.tenant_id,
            actor_tenant_id=actor.tenant_id,
        )


# Tenants

def can_manage_tenants(actor):
    return actor.is_admin()
