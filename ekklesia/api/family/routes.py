# ekklesia/api/family/routes.py
import logging

from flask import g, request

from ekklesia.extensions import db
from ekklesia.models import BCC, Family, FamilyMember
from ekklesia.core import tenancy
from ekklesia.core.audit import audit_action, track_changes
from ekklesia.core.constants import PermissionName
from ekklesia.core.database import session_manager
from ekklesia.core.errors import APIError
from ekklesia.core.exceptions import NotFoundError, ValidationError
from ekklesia.core.monitoring import capture_error
from ekklesia.core.permissions import authenticated, require_permission
from ..base import EXPECTED_ERRORS, load_json, paginate, success
from .schemas import FamilyMemberSchema, FamilySchema
from . import family_bp

logger = logging.getLogger(__name__)

family_schema = FamilySchema()
member_schema = FamilyMemberSchema()

EDITABLE_FIELDS = (
    "family_name", "head_of_family", "address", "city", "postal_code", "primary_phone",
    "email", "status", "notes",
)


def resolve_bcc(actor, bcc_id, tenant_id, current_bcc_id=None):
    """A family can only join a BCC of its own tenant that has room for it"""
    if not bcc_id:
        return None
    bcc = tenancy.get_scoped(actor, BCC, bcc_id, "bcc")
    if bcc.tenant_id != tenant_id:
        raise ValidationError(
            "The selected BCC does not belong to this family's tenant.",
            errors={"bcc_id": ["Invalid BCC."]},
        )
    if bcc.id != current_bcc_id and not bcc.has_space():
        raise ValidationError(
            "BCC does not have enough capacity for the requested families.",
            errors={"bcc_id": ["BCC is full."]},
        )
    return bcc


@family_bp.route("", methods=["GET"])
@authenticated
@require_permission(PermissionName.FAMILIES_VIEW)
def list_families():
    try:
        query = tenancy.scope_query(g.current_user, Family)

        search = request.args.get("search")
        if search:
            pattern = f"%{search}%"
            query = query.filter(
                Family.family_name.ilike(pattern)
                | Family.family_code.ilike(pattern)
                | Family.head_of_family.ilike(pattern)
            )

        for column in ("status", "bcc_id"):
            value = request.args.get(column)
            if value:
                query = query.filter(getattr(Family, column) == value)

        return paginate(query.order_by(Family.family_code), lambda f: f.to_dict())

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in list_families")
        raise APIError(str(e), status_code=500)


@family_bp.route("", methods=["POST"])
@capture_error
@authenticated
@require_permission(PermissionName.FAMILIES_CREATE)
@audit_action("create", "family")
def create_family():
    try:
        actor = g.current_user
        data = load_json(family_schema)
        tenant_id = tenancy.tenant_for_create(actor, data.get("tenant_id"))
        bcc = resolve_bcc(actor, data.get("bcc_id"), tenant_id)

        with session_manager():
            family = Family(
                tenant_id=tenant_id,
                family_code=Family.generate_code(tenant_id),
                bcc_id=bcc.id if bcc else None,
                created_by=actor.id,
                updated_by=actor.id,
            )
            for field in EDITABLE_FIELDS:
                if field in data:
                    setattr(family, field, data[field])
            db.session.add(family)
            for member_data in data.get("members", []):
                family.add_member(created_by=actor.id, updated_by=actor.id, **member_data)

        logger.info(f"Family {family.family_code} created in tenant {tenant_id}")
        return success(family.to_dict(include_members=True), "Family created successfully.", 201)

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in create_family")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@family_bp.route("/<family_id>", methods=["GET"])
@authenticated
@require_permission(PermissionName.FAMILIES_VIEW)
def get_family(family_id):
    family = tenancy.get_scoped(g.current_user, Family, family_id, "family")
    return success(family.to_dict(include_members=True))


@family_bp.route("/<family_id>", methods=["PUT", "PATCH"])
@capture_error
@authenticated
@require_permission(PermissionName.FAMILIES_UPDATE)
@audit_action("update", "family", id_arg="family_id")
def update_family(family_id):
    try:
        actor = g.current_user
        family = tenancy.get_scoped(actor, Family, family_id, "family")
        data = load_json(family_schema, partial=True)
        before = family.to_dict()

        with session_manager():
            for field in EDITABLE_FIELDS:
                if field in data:
                    setattr(family, field, data[field])
            if "bcc_id" in data:
                bcc = resolve_bcc(actor, data["bcc_id"], family.tenant_id, family.bcc_id)
                family.bcc_id = bcc.id if bcc else None
            family.updated_by = actor.id

        g.audit_changes = track_changes(before, family.to_dict())
        return success(family.to_dict(), "Family updated successfully.")

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in update_family")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@family_bp.route("/<family_id>", methods=["DELETE"])
@authenticated
@require_permission(PermissionName.FAMILIES_DELETE)
@audit_action("delete", "family", id_arg="family_id")
def delete_family(family_id):
    family = tenancy.get_scoped(g.current_user, Family, family_id, "family")
    with session_manager():
        family.remove()
    return success(message="Family deleted successfully.")


@family_bp.route("/statistics", methods=["GET"])
@authenticated
@require_permission(PermissionName.FAMILIES_VIEW)
def family_statistics():
    query = tenancy.scope_query(g.current_user, Family)
    return success(Family.statistics(query))


@family_bp.route("/without-bcc", methods=["GET"])
@authenticated
@require_permission(PermissionName.FAMILIES_VIEW)
def families_without_bcc():
    query = tenancy.scope_query(g.current_user, Family).filter(Family.bcc_id.is_(None))
    return paginate(query.order_by(Family.family_code), lambda f: f.to_dict())


@family_bp.route("/bcc/<bcc_id>", methods=["GET"])
@authenticated
@require_permission(PermissionName.FAMILIES_VIEW)
def families_in_bcc(bcc_id):
    actor = g.current_user
    bcc = tenancy.get_scoped(actor, BCC, bcc_id, "bcc")
    query = tenancy.scope_query(actor, Family).filter(Family.bcc_id == bcc.id)
    return paginate(query.order_by(Family.family_code), lambda f: f.to_dict())


# Members

def get_member(family, member_id):
    member = FamilyMember.get_alive(member_id)
    if member is None or member.family_id != family.id:
        raise NotFoundError("Family member not found.")
    return member


@family_bp.route("/<family_id>/members", methods=["GET"])
@authenticated
@require_permission(PermissionName.FAMILIES_VIEW)
def list_members(family_id):
    family = tenancy.get_scoped(g.current_user, Family, family_id, "family")
    return success([m.to_dict() for m in family.live_members()])


@family_bp.route("/<family_id>/members", methods=["POST"])
@capture_error
@authenticated
@require_permission(PermissionName.FAMILIES_UPDATE)
@audit_action("create", "family_member")
def add_member(family_id):
    try:
        actor = g.current_user
        family = tenancy.get_scoped(actor, Family, family_id, "family")
        data = load_json(member_schema)

        with session_manager():
            member = family.add_member(created_by=actor.id, updated_by=actor.id, **data)

        logger.info(f"Member {member.id} added to family {family.family_code}")
        return success(member.to_dict(), "Family member added successfully.", 201)

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in add_member")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@family_bp.route("/<family_id>/members/<member_id>", methods=["PUT", "PATCH"])
@capture_error
@authenticated
@require_permission(PermissionName.FAMILIES_UPDATE)
@audit_action("update", "family_member", id_arg="member_id")
def update_member(family_id, member_id):
    try:
        actor = g.current_user
        family = tenancy.get_scoped(actor, Family, family_id, "family")
        member = get_member(family, member_id)
        data = load_json(member_schema, partial=True)
        before = member.to_dict()

        with session_manager():
            family.update_member(member, data)
            member.updated_by = actor.id

        g.audit_changes = track_changes(before, member.to_dict())
        return success(member.to_dict(), "Family member updated successfully.")

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in update_member")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@family_bp.route("/<family_id>/members/<member_id>", methods=["DELETE"])
@authenticated
@require_permission(PermissionName.FAMILIES_UPDATE)
@audit_action("delete", "family_member", id_arg="member_id")
def delete_member(family_id, member_id):
    family = tenancy.get_scoped(g.current_user, Family, family_id, "family")
    member = get_member(family, member_id)
    with session_manager():
        family.remove_member(member)
    return success(message="Family member deleted successfully.")
