# ekklesia/api/audit/routes.py
from flask import g, request

from ekklesia.models import AuditLog
from ekklesia.core.constants import PermissionName
from ekklesia.core.permissions import authenticated, require_permission
from ..base import paginate, success
from . import audit_bp

FILTERS = ("action", "entity_type", "entity_id", "user_id")


@audit_bp.route("", methods=["GET"])
@authenticated
@require_permission(PermissionName.AUDIT_VIEW)
def list_audit_logs():
    """Newest first, filtered by any of FILTERS"""
    query = AuditLog.visible_to(g.current_user)
    for column in FILTERS:
        value = request.args.get(column)
        if value:
            query = query.filter(getattr(AuditLog, column) == value)
    return paginate(query.order_by(AuditLog.timestamp.desc()), lambda entry: entry.to_dict())


@audit_bp.route("/<entity_type>/<entity_id>", methods=["GET"])
@authenticated
@require_permission(PermissionName.AUDIT_VIEW)
def entity_history(entity_type, entity_id):
    entries = AuditLog.history(entity_type, entity_id, AuditLog.visible_to(g.current_user))
    return success([entry.to_dict() for entry in entries])
