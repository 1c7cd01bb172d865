# ekklesia/api/user/routes.py
import logging

from flask import g, request

from ekklesia.extensions import db
from ekklesia.models import Permission, User, role_user
from ekklesia.core import authorization, tenancy
from ekklesia.core.audit import audit_action, track_changes
from ekklesia.core.constants import PermissionName
from ekklesia.core.database import session_manager
from ekklesia.core.errors import APIError
from ekklesia.core.monitoring import capture_error
from ekklesia.core.permissions import authenticated, require_permission
from ..base import EXPECTED_ERRORS, bool_arg, load_json, paginate, success
from .schemas import AssignRolesSchema, PermissionRefsSchema, UserSchema
from . import user_bp

logger = logging.getLogger(__name__)

user_schema = UserSchema()
assign_roles_schema = AssignRolesSchema()
permission_refs_schema = PermissionRefsSchema()

PROFILE_FIELDS = ("name", "contact_number", "user_type")


@user_bp.route("", methods=["GET"])
@authenticated
@require_permission(PermissionName.USERS_VIEW)
def list_users():
    """List users visible to the caller, optionally filtered"""
    try:
        actor = g.current_user
        query = tenancy.scope_query(actor, User)

        search = request.args.get("search")
        if search:
            pattern = f"%{search}%"
            query = query.filter(User.name.ilike(pattern) | User.email.ilike(pattern))

        is_active = bool_arg("is_active")
        if is_active is not None:
            query = query.filter(User.is_active.is_(is_active))

        role_id = request.args.get("role_id")
        if role_id:
            query = query.filter(
                (User.role_id == role_id)
                | User.id.in_(db.select(role_user.c.user_id).where(role_user.c.role_id == role_id))
            )

        return paginate(query.order_by(User.name), lambda u: u.to_dict())

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in list_users")
        raise APIError(str(e), status_code=500)


@user_bp.route("", methods=["POST"])
@capture_error
@authenticated
@require_permission(PermissionName.USERS_CREATE)
@audit_action("create", "user")
def create_user():
    """Create a user in the caller's tenant"""
    try:
        actor = g.current_user
        data = load_json(user_schema)
        tenant_id = tenancy.tenant_for_create(actor, data.get("tenant_id"))

        with session_manager():
            user = User.create_account(
                data["name"],
                data["email"],
                password=data.get("password"),
                contact_number=data.get("contact_number"),
                user_type=data.get("user_type"),
                tenant_id=tenant_id,
                is_active=data.get("is_active", True),
            )
            if data.get("role_ids"):
                user.sync_roles(data["role_ids"], assigned_by=actor)

        logger.info(f"User {user.id} created in tenant {tenant_id} by {actor.id}")
        return success(user.to_dict(), "User created successfully.", 201)

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in create_user")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@user_bp.route("/<user_id>", methods=["GET"])
@authenticated
@require_permission(PermissionName.USERS_VIEW)
def get_user(user_id):
    actor = g.current_user
    user = tenancy.get_scoped(actor, User, user_id, "user")
    data = user.to_dict()
    data["can_edit"] = authorization.can_edit_user(actor, user)
    data["edit_restriction"] = authorization.edit_restriction_reason(actor, user)
    return success(data)


@user_bp.route("/<user_id>", methods=["PUT", "PATCH"])
@capture_error
@authenticated
@audit_action("update", "user", id_arg="user_id")
def update_user(user_id):
    """Update a user; who may edit whom is decided by edit_restriction_reason"""
    try:
        actor = g.current_user
        user = tenancy.get_scoped(actor, User, user_id, "user")
        authorization.ensure_can_edit_user(actor, user)
        data = load_json(user_schema, partial=True)
        before = user.to_dict()

        with session_manager():
            for field in PROFILE_FIELDS:
                if field in data:
                    setattr(user, field, data[field])

            if "email" in data and data["email"].lower() != user.email:
                User.ensure_email_available(data["email"], exclude_id=user.id)
                user.email = data["email"].strip().lower()

            if data.get("password"):
                user.password = data["password"]

            if "role_ids" in data:
                user.sync_roles(data["role_ids"], assigned_by=actor)

            if "is_active" in data and data["is_active"] != user.is_active:
                if data["is_active"]:
                    user.activate(actor)
                else:
                    user.deactivate(actor)

        g.audit_changes = track_changes(before, user.to_dict())
        return success(user.to_dict(), "User updated successfully.")

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in update_user")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@user_bp.route("/<user_id>", methods=["DELETE"])
@capture_error
@authenticated
@require_permission(PermissionName.USERS_DELETE)
@audit_action("delete", "user", id_arg="user_id")
def delete_user(user_id):
    try:
        actor = g.current_user
        user = tenancy.get_scoped(actor, User, user_id, "user")

        with session_manager():
            user.remove(actor)

        logger.info(f"User {user_id} deleted by {actor.id}")
        return success(message="User deleted successfully.")

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in delete_user")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@user_bp.route("/<user_id>/activate", methods=["POST"])
@authenticated
@require_permission(PermissionName.USERS_ACTIVATE)
@audit_action("activate", "user", id_arg="user_id")
def activate_user(user_id):
    actor = g.current_user
    user = tenancy.get_scoped(actor, User, user_id, "user")
    with session_manager():
        user.activate(actor)
    return success(user.to_dict(), "User activated successfully.")


@user_bp.route("/<user_id>/deactivate", methods=["POST"])
@authenticated
@require_permission(PermissionName.USERS_ACTIVATE)
@audit_action("deactivate", "user", id_arg="user_id")
def deactivate_user(user_id):
    actor = g.current_user
    user = tenancy.get_scoped(actor, User, user_id, "user")
    with session_manager():
        user.deactivate(actor)
    return success(user.to_dict(), "User deactivated successfully.")


@user_bp.route("/<user_id>/roles", methods=["PUT"])
@capture_error
@authenticated
@require_permission(PermissionName.USERS_UPDATE, PermissionName.ROLES_ASSIGN)
@audit_action("assign_roles", "user", id_arg="user_id")
def assign_roles(user_id):
    """Replace the user's role set"""
    try:
        actor = g.current_user
        user = tenancy.get_scoped(actor, User, user_id, "user")
        data = load_json(assign_roles_schema)

        with session_manager():
            roles = user.sync_roles(data["role_ids"], assigned_by=actor, allow_empty=False)

        return success(
            {"user_id": user.id, "roles": [r.to_dict() for r in roles]},
            "Roles assigned successfully.",
        )

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in assign_roles")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@user_bp.route("/<user_id>/permissions", methods=["GET"])
@authenticated
@require_permission(PermissionName.USERS_VIEW)
def user_permissions(user_id):
    """Everything the user holds, directly or through roles"""
    user = tenancy.get_scoped(g.current_user, User, user_id, "user")
    permissions = user.get_all_permissions()
    return success(
        {
            "user_id": user.id,
            "is_super_admin": user.is_super_admin(),
            "permissions": [p.to_dict() for p in permissions],
            "permission_names": [p.name for p in permissions],
            "direct_permissions": [p.name for p in user.permissions],
            "roles": [r.to_dict() for r in user.effective_roles()],
        }
    )


@user_bp.route("/<user_id>/permissions", methods=["POST", "DELETE"])
@capture_error
@authenticated
@require_permission(PermissionName.PERMISSIONS_ASSIGN)
@audit_action("direct_permissions", "user", id_arg="user_id")
def direct_permissions(user_id):
    """Grant (POST) or revoke (DELETE) permissions directly on a user"""
    try:
        actor = g.current_user
        user = tenancy.get_scoped(actor, User, user_id, "user")
        authorization.ensure_can_manage_user_permissions(actor, user)
        data = load_json(permission_refs_schema)

        with session_manager():
            for name in data["permissions"]:
                permission = Permission.resolve(name)
                authorization.ensure_can_grant_permission(actor, permission)
                if request.method == "POST":
                    user.give_permission_to(permission)
                else:
                    user.revoke_permission_to(permission)

        verb = "granted" if request.method == "POST" else "revoked"
        return success(
            {"user_id": user.id, "direct_permissions": [p.name for p in user.permissions]},
            f"Permissions {verb} successfully.",
        )

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in direct_permissions")
        db.session.rollback()
        raise APIError(str(e), status_code=500)
