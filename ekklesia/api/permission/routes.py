# ekklesia/api/permission/routes.py
import logging
from collections import OrderedDict

from flask import g, request

from ekklesia.extensions import db
from ekklesia.models import Permission, User
from ekklesia.core import authorization, tenancy
from ekklesia.core.audit import audit_action, track_changes
from ekklesia.core.constants import PermissionName
from ekklesia.core.database import session_manager
from ekklesia.core.errors import APIError, isolation_message
from ekklesia.core.exceptions import AuthorizationError, NotFoundError
from ekklesia.core.monitoring import capture_error
from ekklesia.core.permissions import authenticated, require_permission
from ..base import EXPECTED_ERRORS, bool_arg, load_json, paginate, success
from ..role.routes import get_visible_role
from .schemas import (
    PermissionSchema,
    RoleBulkPermissionSchema,
    RolePermissionSchema,
    UserPermissionSchema,
)
from . import permission_bp

logger = logging.getLogger(__name__)

permission_schema = PermissionSchema()
role_permission_schema = RolePermissionSchema()
role_bulk_permission_schema = RoleBulkPermissionSchema()
user_permission_schema = UserPermissionSchema()


def ensure_can_view_permissions(actor):
    if authorization.can_manage_permissions(actor):
        return
    authorization.ensure_permission(actor, PermissionName.PERMISSIONS_VIEW)


def get_visible_permission(actor, permission_id):
    permission = db.session.get(Permission, permission_id)
    if permission is None:
        raise NotFoundError(isolation_message("permission"))
    authorization.ensure_can_grant_permission(actor, permission)
    return permission


def filtered_permissions(actor):
    query = authorization.visible_permissions(actor, Permission.query)

    for column in ("module", "category"):
        value = request.args.get(column)
        if value:
            query = query.filter(getattr(Permission, column) == value)

    is_custom = bool_arg("is_custom")
    if is_custom is not None:
        query = query.filter(Permission.is_custom.is_(is_custom))

    is_active = bool_arg("is_active")
    if is_active is not None:
        query = query.filter(Permission.is_active.is_(is_active))

    search = request.args.get("search")
    if search:
        pattern = f"%{search}%"
        query = query.filter(Permission.name.ilike(pattern) | Permission.display_name.ilike(pattern))

    return query.order_by(Permission.module, Permission.name)


@permission_bp.route("", methods=["GET"])
@authenticated
def list_permissions():
    try:
        actor = g.current_user
        ensure_can_view_permissions(actor)
        return paginate(filtered_permissions(actor), lambda p: p.to_dict())

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in list_permissions")
        raise APIError(str(e), status_code=500)


@permission_bp.route("/modules", methods=["GET"])
@authenticated
def permissions_by_module():
    """Visible permissions grouped by module, for permission matrices"""
    actor = g.current_user
    ensure_can_view_permissions(actor)

    grouped = OrderedDict()
    for permission in filtered_permissions(actor).all():
        grouped.setdefault(permission.module or "Other", []).append(permission.to_dict())

    return success([{"module": module, "permissions": perms} for module, perms in grouped.items()])


@permission_bp.route("", methods=["POST"])
@capture_error
@authenticated
@audit_action("create", "permission")
def create_permission():
    """Register a permission; tenant actors can only add custom ones to their tenant"""
    try:
        actor = g.current_user
        if not authorization.can_manage_permissions(actor):
            raise AuthorizationError("You do not have permission to create permissions.")
        authorization.ensure_permission(actor, PermissionName.PERMISSIONS_CREATE)

        data = load_json(permission_schema)

        if actor.is_super_admin():
            tenant_id = data.get("tenant_id")
        else:
            tenant_id = tenancy.tenant_for_create(actor, data.get("tenant_id"))

        with session_manager():
            permission = Permission.register(
                data["name"],
                data["display_name"],
                description=data.get("description"),
                module=data["module"],
                category=data.get("category") or "Other",
                tenant_id=tenant_id,
            )

        logger.info(f"Permission {permission.name} registered by {actor.id}")
        return success(permission.to_dict(), "Permission created successfully.", 201)

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in create_permission")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@permission_bp.route("/<permission_id>", methods=["GET"])
@authenticated
def get_permission(permission_id):
    actor = g.current_user
    ensure_can_view_permissions(actor)
    permission = get_visible_permission(actor, permission_id)
    data = permission.to_dict()
    data["role_count"] = len(permission.roles)
    return success(data)


@permission_bp.route("/<permission_id>", methods=["PUT", "PATCH"])
@capture_error
@authenticated
@audit_action("update", "permission", id_arg="permission_id")
def update_permission(permission_id):
    """Names are immutable; descriptive fields and the active flag can change"""
    try:
        actor = g.current_user
        permission = get_visible_permission(actor, permission_id)
        authorization.ensure_can_modify_permission(actor, permission)
        authorization.ensure_permission(actor, PermissionName.PERMISSIONS_UPDATE)
        data = load_json(permission_schema, partial=True)
        before = permission.to_dict()

        with session_manager():
            for field in ("display_name", "description", "module", "category", "is_active"):
                if field in data:
                    setattr(permission, field, data[field])

        g.audit_changes = track_changes(before, permission.to_dict())
        return success(permission.to_dict(), "Permission updated successfully.")

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in update_permission")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@permission_bp.route("/<permission_id>", methods=["DELETE"])
@capture_error
@authenticated
@audit_action("delete", "permission", id_arg="permission_id")
def delete_permission(permission_id):
    try:
        actor = g.current_user
        permission = get_visible_permission(actor, permission_id)
        authorization.ensure_can_modify_permission(actor, permission)
        authorization.ensure_permission(actor, PermissionName.PERMISSIONS_DELETE)
        if not permission.is_custom:
            raise AuthorizationError("System permissions cannot be deleted.")

        with session_manager():
            permission.delete_if_unused()

        logger.info(f"Permission {permission_id} deleted by {actor.id}")
        return success(message="Permission deleted successfully.")

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in delete_permission")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


def _grant_to_role(actor, role_id, names, revoke=False):
    role = get_visible_role(actor, role_id)
    authorization.ensure_can_modify_role(actor, role)

    with session_manager():
        for name in names:
            permission = Permission.resolve(name)
            authorization.ensure_can_grant_permission(actor, permission)
            if revoke:
                role.revoke(permission)
            else:
                role.grant(permission)
    return role


@permission_bp.route("/assign-to-role", methods=["POST"])
@authenticated
@require_permission(PermissionName.PERMISSIONS_ASSIGN)
@audit_action("assign_to_role", "permission")
def assign_to_role():
    data = load_json(role_permission_schema)
    role = _grant_to_role(g.current_user, data["role_id"], [data["permission"]])
    return success(role.to_dict(include_permissions=True), "Permission assigned to role.")


@permission_bp.route("/remove-from-role", methods=["POST"])
@authenticated
@require_permission(PermissionName.PERMISSIONS_ASSIGN)
@audit_action("remove_from_role", "permission")
def remove_from_role():
    data = load_json(role_permission_schema)
    role = _grant_to_role(g.current_user, data["role_id"], [data["permission"]], revoke=True)
    return success(role.to_dict(include_permissions=True), "Permission removed from role.")


@permission_bp.route("/bulk-assign-to-role", methods=["POST"])
@authenticated
@require_permission(PermissionName.PERMISSIONS_ASSIGN)
@audit_action("bulk_assign_to_role", "permission")
def bulk_assign_to_role():
    """Add several permissions to a role, keeping the ones it already has"""
    data = load_json(role_bulk_permission_schema)
    role = _grant_to_role(g.current_user, data["role_id"], data["permissions"])
    return success(role.to_dict(include_permissions=True), "Permissions assigned to role.")


def _grant_to_user(actor, user_id, name, revoke=False):
    user = tenancy.get_scoped(actor, User, user_id, "user")
    authorization.ensure_can_manage_user_permissions(actor, user)
    permission = Permission.resolve(name)
    authorization.ensure_can_grant_permission(actor, permission)

    with session_manager():
        if revoke:
            user.revoke_permission_to(permission)
        else:
            user.give_permission_to(permission)
    return user


@permission_bp.route("/assign-to-user", methods=["POST"])
@authenticated
@require_permission(PermissionName.PERMISSIONS_ASSIGN)
@audit_action("assign_to_user", "permission")
def assign_to_user():
    data = load_json(user_permission_schema)
    user = _grant_to_user(g.current_user, data["user_id"], data["permission"])
    return success(
        {"user_id": user.id, "direct_permissions": [p.name for p in user.permissions]},
        "Permission assigned to user.",
    )


@permission_bp.route("/remove-from-user", methods=["POST"])
@authenticated
@require_permission(PermissionName.PERMISSIONS_ASSIGN)
@audit_action("remove_from_user", "permission")
def remove_from_user():
    data = load_json(user_permission_schema)
    user = _grant_to_user(g.current_user, data["user_id"], data["permission"], revoke=True)
    return success(
        {"user_id": user.id, "direct_permissions": [p.name for p in user.permissions]},
        "Permission removed from user.",
    )
