# tests/unit/test_commands.py
from ekklesia.core.database import session_manager
from ekklesia.models import AuditLog, Permission, Role


def test_seed_command(app):
    result = app.test_cli_runner().invoke(args=["seed"])

    assert result.exit_code == 0
    assert "system roles" in result.output
    assert Permission.find_by_name("families.view").module == "Families"
    assert Role.get_role_by_name(None, "SuperAdmin").is_super_admin()


def test_assign_admin_permissions(app, tenant, other_tenant, admin_role_for):
    role = admin_role_for(tenant)
    with session_manager():
        role.revoke("bccs.export")
        role.revoke("families.export")

    runner = app.test_cli_runner()
    result = runner.invoke(args=["assign-admin-permissions", "--dry-run"])
    assert result.exit_code == 0
    assert "Dry run: 1 roles would be updated." in result.output
    assert "bccs.export, families.export" in result.output
    assert not role.has_permission("bccs.export")

    result = runner.invoke(args=["assign-admin-permissions", "--tenant-id", other_tenant.id])
    assert "already hold every system permission" in result.output
    assert not role.has_permission("bccs.export")

    result = runner.invoke(args=["assign-admin-permissions"])
    assert "Updated 1 roles." in result.output
    assert role.has_permission("bccs.export")
    assert role.has_permission("families.export")


def test_cleanup_audit_logs(app, tenant_admin, other_admin):
    with session_manager():
        for _ in range(3):
            AuditLog.record(tenant_admin, "update", "family")
        AuditLog.record(other_admin, "update", "family")

    runner = app.test_cli_runner()
    result = runner.invoke(args=["cleanup-audit-logs", "--keep", "1", "--dry-run"])
    assert result.exit_code == 0
    assert f"{tenant_admin.tenant_id}: 2 rows over the limit of 1" in result.output
    assert "Dry run: 2 rows would be deleted." in result.output
    assert AuditLog.query.count() == 4

    result = runner.invoke(args=["cleanup-audit-logs", "--keep", "1"])
    assert "Deleted 2 rows." in result.output
    assert AuditLog.counts_by_tenant() == {tenant_admin.tenant_id: 1, other_admin.tenant_id: 1}

    result = runner.invoke(args=["cleanup-audit-logs"])
    assert "All tenants are within the retention limit." in result.output
