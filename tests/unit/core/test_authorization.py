# tests/unit/core/test_authorization.py
import pytest

from ekklesia.core import authorization
from ekklesia.core.constants import PermissionName
from ekklesia.core.database import session_manager
from ekklesia.core.exceptions import AuthorizationError, TenantIsolationError, ValidationError
from ekklesia.models import Permission, Role


class TestEnsurePermission:
    def test_all_of(self, tenant_user):
        authorization.ensure_permission(tenant_user, PermissionName.USERS_VIEW)
        with pytest.raises(AuthorizationError) as exc:
            authorization.ensure_permission(
                tenant_user, PermissionName.USERS_VIEW, PermissionName.USERS_DELETE
            )
        assert "users.view, users.delete" in exc.value.message

    def test_any_of(self, tenant_user):
        authorization.ensure_permission(
            tenant_user, PermissionName.USERS_DELETE, "users.view", any_of=True
        )
        with pytest.raises(AuthorizationError):
            authorization.ensure_permission(
                tenant_user, "users.delete", "roles.delete", any_of=True
            )


class TestUserEditing:
    def test_cannot_edit_self(self, tenant_admin):
        reason = authorization.edit_restriction_reason(tenant_admin, tenant_admin)
        assert reason == "You cannot edit your own account through user management."

    def test_admin_can_edit_anyone(self, ekklesia_admin, tenant_admin, other_user):
        assert authorization.can_edit_user(ekklesia_admin, tenant_admin)
        assert authorization.can_edit_user(ekklesia_admin, other_user)

    def test_other_tenant_cannot_edit(self, other_admin, tenant_user):
        assert not authorization.can_edit_user(other_admin, tenant_user)
        with pytest.raises(TenantIsolationError):
            authorization.ensure_can_edit_user(other_admin, tenant_user)

    def test_primary_admin_is_protected(
        self, tenant, tenant_admin, tenant_user, admin_role_for, user_factory
    ):
        co_admin = user_factory(
            "Second Admin", "second@stmary.test", tenant=tenant, role=admin_role_for(tenant)
        )
        assert "primary administrator" in authorization.edit_restriction_reason(
            co_admin, tenant_admin
        )
        assert authorization.can_edit_user(tenant_admin, co_admin)
        assert authorization.can_edit_user(co_admin, tenant_user)

    def test_only_primary_admin_edits_other_admins(
        self, tenant, tenant_admin, admin_role_for, user_factory
    ):
        admin_role = admin_role_for(tenant)
        first = user_factory("First", "first@stmary.test", tenant=tenant, role=admin_role)
        second = user_factory("Second", "second@stmary.test", tenant=tenant, role=admin_role)
        assert not authorization.can_edit_user(first, second)
        assert authorization.can_edit_user(tenant_admin, second)

    def test_needs_update_permission(self, tenant, tenant_user, user_factory):
        target = user_factory("Target", "target@stmary.test", tenant=tenant)
        with pytest.raises(AuthorizationError, match="permission to edit users"):
            authorization.ensure_can_edit_user(tenant_user, target)


class TestRoleManagement:
    def test_who_manages_roles(self, tenant_admin, tenant_user, ekklesia_manager):
        assert authorization.can_manage_roles(tenant_admin)
        assert authorization.can_manage_roles(ekklesia_manager)
        assert not authorization.can_manage_roles(tenant_user)

    def test_visible_roles(
        self, tenant_admin, other_admin, viewer_role, system_roles, ekklesia_manager
    ):
        visible = {r.id for r in authorization.visible_roles(other_admin, Role.alive()).all()}
        assert viewer_role.id not in visible
        assert next(iter(system_roles.values())).id in visible

        own = {r.id for r in authorization.visible_roles(tenant_admin, Role.alive()).all()}
        assert viewer_role.id in own

        everything = authorization.visible_roles(ekklesia_manager, Role.alive()).count()
        assert everything == Role.alive().count()

    def test_global_roles_only_by_super_admin(
        self, tenant_admin, ekklesia_admin, super_admin, system_roles
    ):
        role = next(iter(system_roles.values()))
        with pytest.raises(AuthorizationError):
            authorization.ensure_can_modify_role(tenant_admin, role)
        with pytest.raises(AuthorizationError):
            authorization.ensure_can_modify_role(ekklesia_admin, role)
        authorization.ensure_can_modify_role(super_admin, role)

    def test_tenant_custom_roles(
        self, tenant_admin, other_admin, viewer_role, tenant, admin_role_for
    ):
        authorization.ensure_can_modify_role(tenant_admin, viewer_role)
        with pytest.raises(TenantIsolationError):
            authorization.ensure_can_modify_role(other_admin, viewer_role)
        with pytest.raises(AuthorizationError, match="System roles"):
            authorization.ensure_can_modify_role(tenant_admin, admin_role_for(tenant))

    def test_delete_role_in_use(self, tenant_admin, viewer_role, tenant_user):
        with pytest.raises(ValidationError):
            authorization.ensure_can_delete_role(tenant_admin, viewer_role)

    def test_delete_unused_role(self, tenant_admin, tenant):
        with session_manager():
            role = Role.create_role("Choir", tenant_id=tenant.id)
        authorization.ensure_can_delete_role(tenant_admin, role)


class TestPermissionManagement:
    def test_visibility(self, tenant, other_tenant, tenant_admin, other_admin, ekklesia_manager):
        with session_manager():
            custom = Permission.register("mary.bells", "Ring Bells", tenant_id=tenant.id)
        system = Permission.find_by_name("users.view")

        assert authorization.can_view_permission(tenant_admin, custom)
        assert authorization.can_view_permission(other_admin, system)
        assert not authorization.can_view_permission(other_admin, custom)
        assert authorization.can_view_permission(ekklesia_manager, custom)

        names = {p.name for p in authorization.visible_permissions(other_admin, Permission.query)}
        assert "mary.bells" not in names
        assert "users.view" in names

    def test_grant_foreign_custom_permission(self, tenant, other_admin):
        with session_manager():
            custom = Permission.register("mary.bells", "Ring Bells", tenant_id=tenant.id)
        with pytest.raises(TenantIsolationError):
            authorization.ensure_can_grant_permission(other_admin, custom)

    def test_system_permissions_only_by_super_admin(self, tenant_admin, super_admin):
        system = Permission.find_by_name("users.view")
        with pytest.raises(AuthorizationError):
            authorization.ensure_can_modify_permission(tenant_admin, system)
        authorization.ensure_can_modify_permission(super_admin, system)

    def test_direct_grants_need_a_permission_manager(self, tenant_user, tenant_admin, super_admin):
        with pytest.raises(AuthorizationError, match="manage permissions"):
            authorization.ensure_can_manage_user_permissions(tenant_user, tenant_admin)
        authorization.ensure_can_manage_user_permissions(tenant_admin, tenant_user)
        authorization.ensure_can_manage_user_permissions(super_admin, tenant_user)

    def test_direct_grants_on_self(self, tenant_admin, super_admin):
        with pytest.raises(AuthorizationError, match="your own permissions"):
            authorization.ensure_can_manage_user_permissions(tenant_admin, tenant_admin)
        authorization.ensure_can_manage_user_permissions(super_admin, super_admin)
