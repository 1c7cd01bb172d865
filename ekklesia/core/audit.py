# ekklesia/core/audit.py
import logging
from functools import wraps
from typing import Any, Callable, Dict, Optional

from flask import request, g, make_response

from ekklesia.extensions import db
from ekklesia.core.security import get_current_user
from ekklesia.models.audit_log import AuditLog

logger = logging.getLogger(__name__)

# Never copied into audit rows
REDACTED_FIELDS = {"password", "password_confirmation", "current_password"}


def track_changes(before: Dict[str, Any], after: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """Field level diff between two serialized states"""
    changes = {}

    for key in set(before.keys()) | set(after.keys()):
        if key not in before:
            changes[key] = {"added": after[key]}
        elif key not in after:
            changes[key] = {"removed": before[key]}
        elif before[key] != after[key]:
            changes[key] = {"from": before[key], "to": after[key]}

    return changes if changes else None


def _request_payload():
    payload = request.get_json(silent=True) if request.is_json else None
    if not isinstance(payload, dict):
        return None
    return {k: ("***" if k in REDACTED_FIELDS else v) for k, v in payload.items()}


def _entity_id_from(response, kwargs, id_arg):
    if id_arg and kwargs.get(id_arg):
        return kwargs[id_arg]
    body = response.get_json(silent=True) or {}
    data = body.get("data") if isinstance(body, dict) else None
    if isinstance(data, dict):
        return data.get("id")
    return None


def audit_action(action: str, entity_type: str, id_arg: Optional[str] = None):
    """
    Record a successful API mutation in the audit log.

    Views may leave a field diff in ``g.audit_changes``; otherwise the request
    payload is stored.

    Args:
        action: Type of action (create, update, delete, assign_roles, ...)
        entity_type: Type of entity being acted upon
        id_arg: View argument holding the entity id; defaults to ``data.id`` of the response
    """

    def decorator(f: Callable):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            response = make_response(f(*args, **kwargs))
            if response.status_code >= 400:
                return response

            actor = get_current_user()
            try:
                AuditLog.record(
                    actor,
                    action,
                    entity_type,
                    entity_id=_entity_id_from(response, kwargs, id_arg),
                    changes=g.get("audit_changes") or _request_payload(),
                    ip_address=request.remote_addr,
                    user_agent=request.user_agent.string,
                    endpoint=request.endpoint,
                )
                db.session.commit()
            except Exception:
                # The audited operation is already committed
                logger.exception(f"Error creating audit log for {action} {entity_type}")
                db.session.rollback()

            return response

        return decorated_function

    return decorator
