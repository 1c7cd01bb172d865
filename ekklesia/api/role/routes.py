# ekklesia/api/role/routes.py
import logging

from flask import g, request

from ekklesia.extensions import db
from ekklesia.models import Permission, Role
from ekklesia.core import authorization, tenancy
from ekklesia.core.audit import audit_action, track_changes
from ekklesia.core.constants import CUSTOM_ROLE_MIN_LEVEL, PermissionName, RoleTier
from ekklesia.core.database import session_manager
from ekklesia.core.errors import APIError, isolation_message
from ekklesia.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    TenantIsolationError,
    ValidationError,
)
from ekklesia.core.monitoring import capture_error
from ekklesia.core.permissions import authenticated
from ..base import EXPECTED_ERRORS, bool_arg, load_json, paginate, success
from .schemas import RoleSchema, SyncPermissionsSchema
from . import role_bp

logger = logging.getLogger(__name__)

role_schema = RoleSchema()
sync_permissions_schema = SyncPermissionsSchema()


def ensure_can_view_roles(actor):
    if authorization.can_manage_roles(actor):
        return
    authorization.ensure_permission(actor, PermissionName.ROLES_VIEW)


def get_visible_role(actor, role_id, include_deleted=False):
    role = db.session.get(Role, role_id)
    if role is None or (role.is_deleted and not include_deleted):
        raise NotFoundError(isolation_message("role"))
    if not authorization.can_view_role(actor, role):
        raise TenantIsolationError(
            entity_type="role", entity_tenant_id=role.tenant_id, actor_tenant_id=actor.tenant_id
        )
    return role


def resolve_grantable(actor, names):
    permissions = []
    for name in names:
        permission = Permission.resolve(name)
        authorization.ensure_can_grant_permission(actor, permission)
        permissions.append(permission)
    return permissions


@role_bp.route("", methods=["GET"])
@authenticated
def list_roles():
    """Roles the caller may see: everything for platform staff, own tenant and global otherwise"""
    try:
        actor = g.current_user
        ensure_can_view_roles(actor)

        query = Role.trashed() if bool_arg("trashed") else Role.alive()
        query = authorization.visible_roles(actor, query)

        tenant_id = request.args.get("tenant_id")
        if tenant_id:
            query = query.filter(Role.tenant_id == tenant_id)

        is_custom = bool_arg("is_custom")
        if is_custom is not None:
            query = query.filter(Role.is_custom.is_(is_custom))

        is_active = bool_arg("is_active")
        if is_active is not None:
            query = query.filter(Role.is_active.is_(is_active))

        search = request.args.get("search")
        if search:
            query = query.filter(Role.name.ilike(f"%{search}%"))

        return paginate(query.order_by(Role.level, Role.name), lambda r: r.to_dict())

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in list_roles")
        raise APIError(str(e), status_code=500)


@role_bp.route("", methods=["POST"])
@capture_error
@authenticated
@audit_action("create", "role")
def create_role():
    """Create a role; everyone but SuperAdmin creates custom roles in a tenant"""
    try:
        actor = g.current_user
        if not authorization.can_manage_roles(actor):
            raise AuthorizationError("You do not have permission to create roles.")
        authorization.ensure_permission(actor, PermissionName.ROLES_CREATE)

        data = load_json(role_schema)

        if actor.is_super_admin():
            tenant_id = data.get("tenant_id")
        else:
            tenant_id = tenancy.tenant_for_create(actor, data.get("tenant_id"))

        with session_manager():
            role = Role.create_role(
                data["name"],
                tenant_id=tenant_id,
                description=data.get("description"),
                level=data.get("level", CUSTOM_ROLE_MIN_LEVEL),
                tier=RoleTier.CUSTOM,
                is_custom=tenant_id is not None,
                is_active=data.get("is_active", True),
            )
            if data.get("permissions"):
                role.sync_permissions(resolve_grantable(actor, data["permissions"]))

        logger.info(f"Role {role.name} ({role.id}) created for tenant {tenant_id} by {actor.id}")
        return success(role.to_dict(include_permissions=True), "Role created successfully.", 201)

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in create_role")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@role_bp.route("/<role_id>", methods=["GET"])
@authenticated
def get_role(role_id):
    actor = g.current_user
    ensure_can_view_roles(actor)
    role = get_visible_role(actor, role_id)
    data = role.to_dict(include_permissions=True)
    data["holder_count"] = role.holder_count()
    return success(data)


@role_bp.route("/<role_id>", methods=["PUT", "PATCH"])
@capture_error
@authenticated
@audit_action("update", "role", id_arg="role_id")
def update_role(role_id):
    try:
        actor = g.current_user
        role = get_visible_role(actor, role_id)
        authorization.ensure_can_modify_role(actor, role)
        authorization.ensure_permission(actor, PermissionName.ROLES_UPDATE)
        data = load_json(role_schema, partial=True)
        before = role.to_dict()

        with session_manager():
            if "name" in data and data["name"] != role.name:
                Role.ensure_name_available(data["name"], role.tenant_id, exclude_id=role.id)
                role.name = data["name"]
            if "description" in data:
                role.description = data["description"]
            if "level" in data and role.is_custom:
                role.level = data["level"]
            if data.get("is_active") is True:
                role.activate()
            elif data.get("is_active") is False:
                role.deactivate()
            if "permissions" in data:
                role.sync_permissions(resolve_grantable(actor, data["permissions"]))

        g.audit_changes = track_changes(before, role.to_dict())
        return success(role.to_dict(include_permissions=True), "Role updated successfully.")

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in update_role")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@role_bp.route("/<role_id>", methods=["DELETE"])
@capture_error
@authenticated
@audit_action("delete", "role", id_arg="role_id")
def delete_role(role_id):
    try:
        actor = g.current_user
        role = get_visible_role(actor, role_id)
        authorization.ensure_can_delete_role(actor, role)
        authorization.ensure_permission(actor, PermissionName.ROLES_DELETE)

        with session_manager():
            role.soft_delete()

        logger.info(f"Role {role.id} deleted by {actor.id}")
        return success(message="Role deleted successfully.")

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in delete_role")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@role_bp.route("/<role_id>/restore", methods=["POST"])
@authenticated
@audit_action("restore", "role", id_arg="role_id")
def restore_role(role_id):
    actor = g.current_user
    role = get_visible_role(actor, role_id, include_deleted=True)
    if not role.is_deleted:
        raise ValidationError("Role is not deleted.")
    authorization.ensure_can_modify_role(actor, role)

    with session_manager():
        role.restore()
    return success(role.to_dict(), "Role restored successfully.")


@role_bp.route("/<role_id>/activate", methods=["POST"])
@authenticated
@audit_action("activate", "role", id_arg="role_id")
def activate_role(role_id):
    actor = g.current_user
    role = get_visible_role(actor, role_id)
    authorization.ensure_can_modify_role(actor, role)
    with session_manager():
        role.activate()
    return success(role.to_dict(), "Role activated successfully.")


@role_bp.route("/<role_id>/deactivate", methods=["POST"])
@authenticated
@audit_action("deactivate", "role", id_arg="role_id")
def deactivate_role(role_id):
    actor = g.current_user
    role = get_visible_role(actor, role_id)
    authorization.ensure_can_modify_role(actor, role)
    with session_manager():
        role.deactivate()
    return success(role.to_dict(), "Role deactivated successfully.")


@role_bp.route("/<role_id>/permissions", methods=["GET"])
@authenticated
def role_permissions(role_id):
    actor = g.current_user
    ensure_can_view_roles(actor)
    role = get_visible_role(actor, role_id)
    return success([p.to_dict() for p in role.permissions])


@role_bp.route("/<role_id>/permissions", methods=["PUT"])
@capture_error
@authenticated
@audit_action("sync_permissions", "role", id_arg="role_id")
def sync_role_permissions(role_id):
    """Replace the role's permission set in one transaction"""
    try:
        actor = g.current_user
        role = get_visible_role(actor, role_id)
        authorization.ensure_can_modify_role(actor, role)
        authorization.ensure_permission(actor, PermissionName.PERMISSIONS_ASSIGN)
        data = load_json(sync_permissions_schema)

        with session_manager():
            permissions = role.sync_permissions(resolve_grantable(actor, data["permissions"]))

        return success(
            {"role_id": role.id, "permissions": [p.name for p in permissions]},
            "Permissions synced successfully.",
        )

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in sync_role_permissions")
        db.session.rollback()
        raise APIError(str(e), status_code=500)
