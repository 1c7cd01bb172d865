# ekklesia/api/bcc/routes.py
import logging

from flask import g, request

from ekklesia.extensions import db
from ekklesia.models import BCC, BCCLeader, Family, FamilyMember
from ekklesia.core import tenancy
from ekklesia.core.audit import audit_action, track_changes
from ekklesia.core.constants import PermissionName
from ekklesia.core.database import session_manager
from ekklesia.core.errors import APIError
from ekklesia.core.exceptions import NotFoundError, ValidationError
from ekklesia.core.monitoring import capture_error
from ekklesia.core.permissions import authenticated, require_permission
from ..base import EXPECTED_ERRORS, bool_arg, load_json, paginate, success
from .schemas import BCCLeaderSchema, BCCSchema, FamilyIdsSchema
from . import bcc_bp

logger = logging.getLogger(__name__)

bcc_schema = BCCSchema()
family_ids_schema = FamilyIdsSchema()
leader_schema = BCCLeaderSchema()

EDITABLE_FIELDS = (
    "name", "description", "meeting_place", "meeting_day", "meeting_time", "meeting_frequency",
    "status", "established_date", "max_families", "notes",
)


@bcc_bp.route("", methods=["GET"])
@authenticated
@require_permission(PermissionName.BCCS_VIEW)
def list_bccs():
    try:
        query = tenancy.scope_query(g.current_user, BCC)

        search = request.args.get("search")
        if search:
            pattern = f"%{search}%"
            query = query.filter(BCC.name.ilike(pattern) | BCC.bcc_code.ilike(pattern))

        status = request.args.get("status")
        if status:
            query = query.filter(BCC.status == status)

        return paginate(query.order_by(BCC.bcc_code), lambda b: b.to_dict())

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in list_bccs")
        raise APIError(str(e), status_code=500)


@bcc_bp.route("", methods=["POST"])
@capture_error
@authenticated
@require_permission(PermissionName.BCCS_CREATE)
@audit_action("create", "bcc")
def create_bcc():
    try:
        actor = g.current_user
        data = load_json(bcc_schema)
        tenant_id = tenancy.tenant_for_create(actor, data.get("tenant_id"))

        with session_manager():
            bcc = BCC(
                tenant_id=tenant_id,
                bcc_code=BCC.generate_code(tenant_id),
                created_by=actor.id,
                updated_by=actor.id,
            )
            for field in EDITABLE_FIELDS:
                if field in data:
                    setattr(bcc, field, data[field])
            db.session.add(bcc)

        logger.info(f"BCC {bcc.bcc_code} created in tenant {tenant_id}")
        return success(bcc.to_dict(), "BCC created successfully.", 201)

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in create_bcc")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@bcc_bp.route("/<bcc_id>", methods=["GET"])
@authenticated
@require_permission(PermissionName.BCCS_VIEW)
def get_bcc(bcc_id):
    bcc = tenancy.get_scoped(g.current_user, BCC, bcc_id, "bcc")
    return success(bcc.to_dict(include_families=True, include_leaders=True))


@bcc_bp.route("/<bcc_id>", methods=["PUT", "PATCH"])
@capture_error
@authenticated
@require_permission(PermissionName.BCCS_UPDATE)
@audit_action("update", "bcc", id_arg="bcc_id")
def update_bcc(bcc_id):
    try:
        actor = g.current_user
        bcc = tenancy.get_scoped(actor, BCC, bcc_id, "bcc")
        data = load_json(bcc_schema, partial=True)
        before = bcc.to_dict()

        with session_manager():
            for field in EDITABLE_FIELDS:
                if field in data:
                    setattr(bcc, field, data[field])
            bcc.updated_by = actor.id

        g.audit_changes = track_changes(before, bcc.to_dict())
        return success(bcc.to_dict(), "BCC updated successfully.")

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in update_bcc")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@bcc_bp.route("/<bcc_id>", methods=["DELETE"])
@authenticated
@require_permission(PermissionName.BCCS_DELETE)
@audit_action("delete", "bcc", id_arg="bcc_id")
def delete_bcc(bcc_id):
    """Soft delete the BCC and release its families"""
    bcc = tenancy.get_scoped(g.current_user, BCC, bcc_id, "bcc")
    with session_manager():
        bcc.remove_families(bcc.live_families())
        bcc.soft_delete()
    return success(message="BCC deleted successfully.")


@bcc_bp.route("/<bcc_id>/families", methods=["POST", "DELETE"])
@capture_error
@authenticated
@require_permission(PermissionName.BCCS_UPDATE)
@audit_action("families", "bcc", id_arg="bcc_id")
def bcc_families(bcc_id):
    """Assign (POST) or remove (DELETE) families, all or nothing"""
    try:
        actor = g.current_user
        bcc = tenancy.get_scoped(actor, BCC, bcc_id, "bcc")
        data = load_json(family_ids_schema)
        families = [
            tenancy.get_scoped(actor, Family, family_id, "family")
            for family_id in dict.fromkeys(data["family_ids"])
        ]

        with session_manager():
            if request.method == "POST":
                changed = bcc.assign_families(families)
            else:
                changed = bcc.remove_families(families)

        verb = "assigned to" if request.method == "POST" else "removed from"
        return success(
            {"bcc_id": bcc.id, "family_ids": [f.id for f in changed]},
            f"{len(changed)} families {verb} BCC.",
        )

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in bcc_families")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@bcc_bp.route("/statistics", methods=["GET"])
@authenticated
@require_permission(PermissionName.BCCS_VIEW)
def bcc_statistics():
    query = tenancy.scope_query(g.current_user, BCC)
    return success(BCC.statistics(query))


@bcc_bp.route("/with-space", methods=["GET"])
@authenticated
@require_permission(PermissionName.BCCS_VIEW)
def bccs_with_space():
    query = BCC.with_space(tenancy.scope_query(g.current_user, BCC))
    return success([b.to_dict() for b in query.order_by(BCC.name)])


# Leaders

def get_leader(bcc, leader_id):
    leader = BCCLeader.get_alive(leader_id)
    if leader is None or leader.bcc_id != bcc.id:
        raise NotFoundError("BCC leader not found.")
    return leader


def resolve_member(actor, bcc, member_id):
    """Leaders are drawn from families of the BCC's own tenant"""
    member = tenancy.get_scoped(actor, FamilyMember, member_id, "family_member")
    if member.tenant_id != bcc.tenant_id:
        raise ValidationError(
            "The selected family member does not belong to this BCC's tenant.",
            errors={"family_member_id": ["Invalid family member."]},
        )
    return member


@bcc_bp.route("/<bcc_id>/leaders", methods=["GET"])
@authenticated
@require_permission(PermissionName.BCCS_VIEW)
def list_leaders(bcc_id):
    bcc = tenancy.get_scoped(g.current_user, BCC, bcc_id, "bcc")
    leaders = bcc.live_leaders()
    active = bool_arg("active")
    if active is not None:
        leaders = [leader for leader in leaders if leader.is_active == active]
    return success([leader.to_dict() for leader in leaders])


@bcc_bp.route("/<bcc_id>/leaders", methods=["POST"])
@capture_error
@authenticated
@require_permission(PermissionName.BCCS_UPDATE)
@audit_action("create", "bcc_leader")
def add_leader(bcc_id):
    try:
        actor = g.current_user
        bcc = tenancy.get_scoped(actor, BCC, bcc_id, "bcc")
        data = load_json(leader_schema)
        member = resolve_member(actor, bcc, data.pop("family_member_id"))

        with session_manager():
            leader = BCCLeader(
                bcc=bcc, member=member, created_by=actor.id, updated_by=actor.id, **data
            )
            db.session.add(leader)

        logger.info(f"{member.full_name} appointed {leader.role} of BCC {bcc.bcc_code}")
        return success(leader.to_dict(), "BCC leader added successfully.", 201)

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in add_leader")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@bcc_bp.route("/<bcc_id>/leaders/<leader_id>", methods=["PUT", "PATCH"])
@capture_error
@authenticated
@require_permission(PermissionName.BCCS_UPDATE)
@audit_action("update", "bcc_leader", id_arg="leader_id")
def update_leader(bcc_id, leader_id):
    try:
        actor = g.current_user
        bcc = tenancy.get_scoped(actor, BCC, bcc_id, "bcc")
        leader = get_leader(bcc, leader_id)
        data = load_json(leader_schema, partial=True)
        before = leader.to_dict()

        with session_manager():
            if "family_member_id" in data:
                leader.member = resolve_member(actor, bcc, data.pop("family_member_id"))
            for field, value in data.items():
                setattr(leader, field, value)
            leader.updated_by = actor.id

        g.audit_changes = track_changes(before, leader.to_dict())
        return success(leader.to_dict(), "BCC leader updated successfully.")

    except EXPECTED_ERRORS:
        raise
    except Exception as e:
        logger.exception("Error in update_leader")
        db.session.rollback()
        raise APIError(str(e), status_code=500)


@bcc_bp.route("/<bcc_id>/leaders/<leader_id>", methods=["DELETE"])
@authenticated
@require_permission(PermissionName.BCCS_UPDATE)
@audit_action("delete", "bcc_leader", id_arg="leader_id")
def delete_leader(bcc_id, leader_id):
    bcc = tenancy.get_scoped(g.current_user, BCC, bcc_id, "bcc")
    leader = get_leader(bcc, leader_id)
    with session_manager():
        leader.soft_delete()
    return success(message="BCC leader deleted successfully.")
