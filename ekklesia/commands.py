# ekklesia/commands.py
import logging

import click

from .core.constants import AUDIT_RETENTION_DEFAULT, RoleTier, catalogue_entries
from .core.database import session_manager
from .models import AuditLog, Permission, Role

logger = logging.getLogger(__name__)


def seed_catalogue():
    """Register missing catalogue permissions and system roles; safe to re-run"""
    created = 0
    with session_manager():
        for entry in catalogue_entries():
            if Permission.query.filter_by(name=entry["name"]).first() is None:
                Permission.register(**entry)
                created += 1
        roles = Role.seed_system_roles()

    logger.info(f"Seeded {created} permissions and {len(roles)} system roles")
    return created, len(roles)


def assign_admin_permissions(tenant_id=None, dry_run=False):
    """Give every tenant Administrator role the full system permission set.

    Returns ``(role, missing_names)`` pairs for the roles that were short of
    permissions. Nothing is written when ``dry_run`` is set.
    """
    query = Role.alive().filter(Role.tier == RoleTier.TENANT_ADMIN)
    if tenant_id:
        query = query.filter(Role.tenant_id == tenant_id)

    system = Role.system_permissions()
    updated = []
    with session_manager():
        for role in query.order_by(Role.name).all():
            missing = [p for p in system if p not in role.permissions]
            if not missing:
                continue
            updated.append((role, [p.name for p in missing]))
            if not dry_run:
                for permission in missing:
                    role.grant(permission)

    if not dry_run:
        logger.info(f"Updated permissions on {len(updated)} administrator roles")
    return updated


def cleanup_audit_logs(keep=AUDIT_RETENTION_DEFAULT, dry_run=False):
    """Trim each tenant's audit trail to its newest ``keep`` rows.

    Returns ``{tenant_id: rows_over_limit}`` for the tenants that were over.
    """
    over = {
        tenant_id: count - keep
        for tenant_id, count in AuditLog.counts_by_tenant().items()
        if count > keep
    }
    if dry_run or not over:
        return over

    with session_manager():
        for tenant_id in over:
            AuditLog.prune_tenant(tenant_id, keep)

    logger.info(f"Pruned {sum(over.values())} audit rows across {len(over)} tenants")
    return over


def register_commands(app):
    @app.cli.command("seed")
    def seed_command():
        """Seed the permission catalogue and the global system roles."""
        permissions, roles = seed_catalogue()
        click.echo(f"Created {permissions} permissions and {roles} system roles.")

    @app.cli.command("assign-admin-permissions")
    @click.option("--tenant-id", default=None, help="Only update this tenant's roles.")
    @click.option("--dry-run", is_flag=True, help="Report what would change without saving.")
    def assign_admin_permissions_command(tenant_id, dry_run):
        """Sync every system permission onto tenant Administrator roles."""
        updated = assign_admin_permissions(tenant_id=tenant_id, dry_run=dry_run)
        if not updated:
            click.echo("All administrator roles already hold every system permission.")
            return

        for role, missing in updated:
            click.echo(f"{role.name} ({role.tenant_id}): +{len(missing)} {', '.join(missing)}")
        if dry_run:
            click.echo(f"Dry run: {len(updated)} roles would be updated.")
        else:
            click.echo(f"Updated {len(updated)} roles.")

    @app.cli.command("cleanup-audit-logs")
    @click.option(
        "--keep",
        default=AUDIT_RETENTION_DEFAULT,
        show_default=True,
        type=click.IntRange(min=0),
        help="Rows to keep per tenant.",
    )
    @click.option("--dry-run", is_flag=True, help="Report what would be deleted without deleting.")
    def cleanup_audit_logs_command(keep, dry_run):
        """Keep only the newest audit rows of every tenant."""
        over = cleanup_audit_logs(keep=keep, dry_run=dry_run)
        if not over:
            click.echo("All tenants are within the retention limit.")
            return

        for tenant_id, extra in sorted(over.items()):
            click.echo(f"{tenant_id}: {extra} rows over the limit of {keep}")
        total = sum(over.values())
        if dry_run:
            click.echo(f"Dry run: {total} rows would be deleted.")
        else:
            click.echo(f"Deleted {total} rows.")
