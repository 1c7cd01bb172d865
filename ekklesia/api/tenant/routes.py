# ekklesia/api/tenant/routes.py
import logging
import re

from flask import current_app, g

from ekklesia.extensions import db
from ekklesia.models import Role, Tenant, User
from ekklesia.core import authorization
from ekklesia.core.audit import audit_action, track_changes
from ekklesia.core.constants import PermissionName, UserType
from ekklesia.core.database import session_manager
from ekklesia.core.errors import APIError, isolation_message
from ekklesia.core.exceptions import (
    AuthorizationError,
    DuplicateNameError,
    NotFoundError,
    TenantIsolationError,
)
from ekklesia.core.monitoring import capture_error
from ekklesia.core.permissions import authenticated
from ..base import EXPECTED_ERRORS, load_json, paginate, success
from .schemas import TenantOnboardingSchema, TenantSchema
from . import tenant_bp

logger = logging.getLogger(__name__)

onboarding_schema = TenantOnboardingSchema()
tenant_schema = TenantSchema()

TENANT_FIELDS = ("name", "email", "phone", "address", "city", "country", "settings")


def slugify(value):
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


def ensure_can_manage_tenants(actor):
    if not authorization.can_manage_tenants(actor):
        raise AuthorizationError("Only system administrators can manage tenants.")


def get_visible_tenant(actor, tenant_id):
    tenant = db.session.get(Tenant, tenant_id)
    if tenant is None:
        raise NotFoundError(isolation_message("tenant"))
    if not actor.is_admin() and actor.tenant_id != tenant.id:
        raise TenantIsolationError(
            entity_type="tenant", entity_tenant_id=tenant.id, actor_tenant_id=actor.tenant_id
        )
    return tenant


@tenant_bp.route("", methods=["POST"])
@capture_error
@authenticated
@audit_action("onboard", "tenant")
def onboard_tenant():
    """Create a tenant with its Administrator role, primary admin and optional secondary contact"""
    try:
        actor = g.current_user
        ensure_can_manage_tenants(actor)
        data = load_json(onboarding_schema)

        slug = data.get("slug") or slugify(data["name"])
        if Tenant.query.filter_by(slug=slug).first():
            raise DuplicateNameError(f"A tenant with slug '{slug}' already exists.")

        with session_manager():
            tenant = Tenant(slug=slug, is_active=True)
            for field in TENANT_FIELDS:
                if field in data:
                    setattr(tenant, field, data[field])
            db.session.add(tenant)
            db.session.flush()

            admin_role = Role.create_administrator_role(
                tenant, name=current_app.config["TENANT_ADMIN_ROLE_NAME"]
            )

            admin_data = data["admin"]
            admin = User.create_account(
                admin_data["name"],
                admin_data["email"],
                password=admin_data.get("password"),
                contact_number=admin_data.get("contact_number"),
                user_type=UserType.PRIMARY_CONTACT.value,
                tenant_id=tenant.id,
                role_id=admin_role.id,
                is_primary_admin=True,
            )
            # Onboarding hands the new tenant's own role to its admin; no caller-tenant check here
            admin.roles.append(admin_role)

            secondary = None
            if data.get("secondary_contact"):
                contact = data["secondary_contact"]
                secondary = User.create_account(
                    contact["name"],
                    contact["email"],
                    password=contact.get("password"),
                    contact_number=contact.get("contact_number"),
                    user_type=UserType.SECONDARY_CONTACT.value,
                    tenant_id=tenant.id,
                )

        logger.info(
            f"Tenant {tenant.slug} ({tenant.id}) onboarded by {actor.id} with admin {admin.id}"
        )
        payload = tenant.to_dict()
        payload["administrator_role"] = admin_role.to_dict()
        payload["primary_admin"] = admin.to_dict()
        payload["secondary_contact"] = secondary.to_dict() if secondary else None
        return success(payload, "Tenant onboarded successfully.", 201)

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in onboard_tenant")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@tenant_bp.route("", methods=["GET"])
@authenticated
def list_tenants():
    actor = g.current_user
    query = Tenant.query
    if not actor.is_platform_staff():
        if actor.tenant_id is None:
            raise AuthorizationError("Your account is not associated with any tenant.")
        query = query.filter(Tenant.id == actor.tenant_id)
    return paginate(query.order_by(Tenant.name), lambda t: t.to_dict())


@tenant_bp.route("/<tenant_id>", methods=["GET"])
@authenticated
def get_tenant(tenant_id):
    tenant = get_visible_tenant(g.current_user, tenant_id)
    data = tenant.to_dict()
    data["user_count"] = User.alive().filter_by(tenant_id=tenant.id).count()
    return success(data)


@tenant_bp.route("/<tenant_id>", methods=["PUT", "PATCH"])
@authenticated
@audit_action("update", "tenant", id_arg="tenant_id")
def update_tenant(tenant_id):
    actor = g.current_user
    tenant = get_visible_tenant(actor, tenant_id)
    if not actor.is_admin():
        authorization.ensure_permission(actor, PermissionName.TENANTS_UPDATE)
    data = load_json(tenant_schema, partial=True)
    before = tenant.to_dict()

    with session_manager():
        for field in TENANT_FIELDS:
            if field in data:
                setattr(tenant, field, data[field])

    g.audit_changes = track_changes(before, tenant.to_dict())
    return success(tenant.to_dict(), "Tenant updated successfully.")


@tenant_bp.route("/<tenant_id>/activate", methods=["POST"])
@authenticated
@audit_action("activate", "tenant", id_arg="tenant_id")
def activate_tenant(tenant_id):
    actor = g.current_user
    ensure_can_manage_tenants(actor)
    tenant = get_visible_tenant(actor, tenant_id)
    with session_manager():
        tenant.activate()
    return success(tenant.to_dict(), "Tenant activated successfully.")


@tenant_bp.route("/<tenant_id>/deactivate", methods=["POST"])
@authenticated
@audit_action("deactivate", "tenant", id_arg="tenant_id")
def deactivate_tenant(tenant_id):
    actor = g.current_user
    ensure_can_manage_tenants(actor)
    tenant = get_visible_tenant(actor, tenant_id)
    with session_manager():
        tenant.deactivate()
    return success(tenant.to_dict(), "Tenant deactivated successfully.")
