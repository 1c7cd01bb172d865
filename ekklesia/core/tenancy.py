# ekklesia/core/tenancy.py
"""Tenant isolation guard.

Every read or write of a tenant-scoped row goes through here. Global
administrators (SuperAdmin, EkklesiaAdmin) are exempt; everybody else is held
to rows whose ``tenant_id`` equals their own.
"""
import logging

from .errors import isolation_message
from .exceptions import AuthorizationError, NotFoundError, TenantIsolationError, ValidationError

logger = logging.getLogger(__name__)


def ensure_tenant_access(actor, entity, entity_type=None):
    """Raise TenantIsolationError unless the actor may touch the entity's tenant"""
    if actor.is_admin():
        return
    # Tenantless rows (system accounts) are reachable by global administrators only
    if actor.tenant_id is None or entity.tenant_id != actor.tenant_id:
        raise TenantIsolationError(
            entity_type=entity_type or entity.__class__.__name__.lower(),
            entity_tenant_id=entity.tenant_id,
            actor_tenant_id=actor.tenant_id,
        )


def can_access(actor, entity):
    try:
        ensure_tenant_access(actor, entity)
    except TenantIsolationError:
        return False
    return True


def scope_query(actor, model, query=None):
    """Restrict a query over a tenant-scoped model to the rows the actor may see"""
    if query is None:
        query = model.alive()
    if actor.is_admin():
        return query
    if actor.tenant_id is None:
        raise AuthorizationError("Your account is not associated with any tenant.")
    return query.filter(model.tenant_id == actor.tenant_id)


def get_scoped(actor, model, entity_id, entity_type=None):
    """Fetch a live row by id, enforcing isolation.

    A missing row and a row owned by another tenant raise different errors but
    render identically to the client.
    """
    entity_type = entity_type or model.__name__.lower()
    instance = model.get_alive(entity_id)
    if instance is None:
        raise NotFoundError(isolation_message(entity_type))
    ensure_tenant_access(actor, instance, entity_type)
    return instance


def tenant_for_create(actor, requested_tenant_id=None):
    """Tenant id a new tenant-scoped row must carry.

    Tenant actors always write into their own tenant whatever the payload says;
    global administrators may target another tenant explicitly.
    """
    if actor.is_admin():
        tenant_id = requested_tenant_id or actor.tenant_id
        if tenant_id is None:
            raise ValidationError("tenant_id is required.", errors={"tenant_id": ["Required."]})
        return tenant_id

    if actor.tenant_id is None:
        raise AuthorizationError("Your account is not associated with any tenant.")
    if requested_tenant_id and requested_tenant_id != actor.tenant_id:
        logger.warning(
            f"User {actor.id} asked to create a record in tenant {requested_tenant_id}; "
            f"forced to {actor.tenant_id}"
        )
    return actor.tenant_id


def ensure_roles_belong_to_tenant(actor, roles):
    """Roles handed out must be global or owned by the actor's tenant, whatever the actor's tier"""
    for role in roles:
        if role.tenant_id is not None and role.tenant_id != actor.tenant_id:
            raise ValidationError(
                f"The role '{role.name}' does not belong to your tenant.",
                errors={"role_ids": [f"Role {role.id} does not belong to your tenant."]},
            )
