# tests/unit/models/test_user.py
import pytest

from ekklesia.extensions import db
from ekklesia.core.constants import PermissionName, RoleTier
from ekklesia.core.database import session_manager
from ekklesia.core.exceptions import (
    AuthorizationError,
    DuplicateNameError,
    NotFoundError,
    TenantIsolationError,
    ValidationError,
)
from ekklesia.models import Permission, Role, User


@pytest.fixture
def parish_admin_role(tenant):
    """An Administrator-style custom role holding users.view and users.create only"""
    with session_manager():
        role = Role.create_role("Parish Office", tenant_id=tenant.id)
        role.sync_permissions(["users.view", "users.create"])
    return role


@pytest.fixture
def office_user(tenant, parish_admin_role, user_factory):
    return user_factory(
        "Office Clerk", "clerk@stmary.test", tenant=tenant, role=parish_admin_role
    )


class TestAuthorizationEvaluator:
    def test_role_grant_is_held(self, office_user):
        assert office_user.has_permission_to("users.create")
        assert not office_user.has_permission_to("users.delete")

    def test_direct_grant_adds_to_role_grants(self, office_user):
        with session_manager():
            office_user.give_permission_to("users.delete")

        assert office_user.has_permission_to("users.delete")
        assert not office_user.effective_roles()[0].has_permission("users.delete")

    def test_permission_by_entity_or_enum(self, office_user):
        permission = Permission.find_by_name("users.view")
        assert office_user.has_permission_to(permission)
        assert office_user.has_permission_to(PermissionName.USERS_VIEW)

    def test_super_admin_holds_everything(self, super_admin):
        assert super_admin.is_super_admin()
        assert super_admin.has_permission_to("users.delete")
        assert super_admin.has_permission_to("does.not.exist")
        assert super_admin.has_all_permissions("tenants.create", "anything.at.all")

    def test_unknown_permission_is_not_held(self, office_user):
        assert office_user.has_permission_to("does.not.exist") is False

    def test_or_composition_over_roles_and_direct(self, office_user, tenant):
        with session_manager():
            extra = Role.create_role("Families Desk", tenant_id=tenant.id)
            extra.sync_permissions(["families.update"])
            office_user.roles.append(extra)
            office_user.give_permission_to("bccs.view")

        for name in ("users.view", "users.create", "families.update", "bccs.view"):
            assert office_user.has_permission_to(name)
        assert not office_user.has_permission_to("bccs.delete")

    def test_any_and_all(self, office_user):
        assert office_user.has_any_permission("users.delete", "users.view")
        assert not office_user.has_any_permission("users.delete", "roles.delete")
        assert office_user.has_all_permissions("users.view", "users.create")
        assert not office_user.has_all_permissions("users.view", "users.delete")

    def test_get_all_permissions_is_deduplicated(self, office_user):
        with session_manager():
            office_user.give_permission_to("users.view")
            office_user.give_permission_to("families.view")

        names = [p.name for p in office_user.get_all_permissions()]
        assert names == ["families.view", "users.create", "users.view"]

    def test_inactive_role_grants_nothing(self, office_user, parish_admin_role):
        with session_manager():
            parish_admin_role.deactivate()
        assert not office_user.has_permission_to("users.view")

    def test_deleted_role_grants_nothing(self, office_user, parish_admin_role):
        with session_manager():
            parish_admin_role.soft_delete()
        assert office_user.effective_roles() == []
        assert not office_user.has_permission_to("users.view")

    def test_revoke_direct_permission(self, office_user):
        with session_manager():
            office_user.give_permission_to("roles.view")
        with session_manager():
            office_user.revoke_permission_to("roles.view")
        assert not office_user.has_permission_to("roles.view")

    def test_give_unknown_permission(self, office_user):
        with pytest.raises(NotFoundError):
            office_user.give_permission_to("users.teleport")


class TestTiers:
    def test_admin_tiers(self, super_admin, ekklesia_admin, ekklesia_manager, tenant_admin):
        assert super_admin.is_admin()
        assert ekklesia_admin.is_admin()
        assert ekklesia_admin.is_ekklesia_admin()
        assert not ekklesia_admin.is_super_admin()
        assert ekklesia_manager.is_ekklesia_manager()
        assert not ekklesia_manager.is_admin()
        assert ekklesia_manager.is_platform_staff()
        assert tenant_admin.is_tenant_admin()
        assert not tenant_admin.is_admin()

    def test_tier_from_multi_role_set(self, tenant_user, system_roles):
        assert not tenant_user.is_admin()
        with session_manager():
            tenant_user.roles.append(system_roles[RoleTier.EKKLESIA_ADMIN])
        assert tenant_user.is_admin()
        assert tenant_user.has_role("EkklesiaAdmin")
        assert tenant_user.has_role("Viewer")


class TestSyncRoles:
    def test_sync_replaces_role_set(self, tenant_admin, tenant_user, viewer_role, tenant):
        with session_manager():
            desk = Role.create_role("Families Desk", tenant_id=tenant.id)

        with session_manager():
            tenant_user.sync_roles([viewer_role.id, desk.id], assigned_by=tenant_admin)
        assert {r.name for r in tenant_user.roles} == {"Viewer", "Families Desk"}

        with session_manager():
            tenant_user.sync_roles([desk.id], assigned_by=tenant_admin)
        assert [r.name for r in tenant_user.roles] == ["Families Desk"]

    def test_role_from_other_tenant_rejected(
        self, other_admin, other_user, tenant, admin_role_for
    ):
        with pytest.raises(ValidationError) as exc:
            with session_manager():
                other_user.sync_roles([admin_role_for(tenant).id], assigned_by=other_admin)
        assert "does not belong to your tenant" in exc.value.message
        assert other_user.roles == []

    def test_role_from_other_tenant_rejected_for_super_admin(
        self, super_admin, tenant_user, other_tenant, admin_role_for
    ):
        with pytest.raises(ValidationError):
            with session_manager():
                tenant_user.sync_roles(
                    [admin_role_for(other_tenant).id], assigned_by=super_admin
                )

    def test_failed_sync_keeps_previous_roles(
        self, tenant_admin, tenant_user, viewer_role, other_tenant, admin_role_for
    ):
        with session_manager():
            tenant_user.roles.append(viewer_role)

        with pytest.raises(ValidationError):
            with session_manager():
                tenant_user.sync_roles(
                    [viewer_role.id, admin_role_for(other_tenant).id], assigned_by=tenant_admin
                )

        assert [r.name for r in tenant_user.roles] == ["Viewer"]

    def test_global_roles_are_assignable(self, tenant_admin, tenant_user, system_roles):
        with session_manager():
            tenant_user.sync_roles(
                [system_roles[RoleTier.EKKLESIA_USER].id], assigned_by=tenant_admin
            )
        assert tenant_user.has_role("EkklesiaUser")

    def test_privileged_tiers_need_a_peer(
        self, tenant_admin, ekklesia_admin, tenant_user, system_roles
    ):
        with pytest.raises(AuthorizationError):
            tenant_user.sync_roles(
                [system_roles[RoleTier.SUPER_ADMIN].id], assigned_by=tenant_admin
            )
        with pytest.raises(AuthorizationError):
            tenant_user.sync_roles(
                [system_roles[RoleTier.EKKLESIA_MANAGER].id], assigned_by=tenant_admin
            )
        with pytest.raises(AuthorizationError):
            tenant_user.sync_roles(
                [system_roles[RoleTier.SUPER_ADMIN].id], assigned_by=ekklesia_admin
            )
        db.session.rollback()

    def test_empty_role_set(self, tenant_admin, tenant_user):
        with pytest.raises(ValidationError):
            tenant_user.sync_roles([], assigned_by=tenant_admin, allow_empty=False)
        assert tenant_user.sync_roles([], assigned_by=tenant_admin) == []

    def test_unknown_role(self, tenant_admin, tenant_user):
        with pytest.raises(NotFoundError):
            tenant_user.sync_roles(["missing-role-id"], assigned_by=tenant_admin)


class TestLifecycle:
    def test_tenant_user_cannot_deactivate_primary_admin(self, tenant, tenant_admin, tenant_user):
        with pytest.raises(AuthorizationError):
            tenant_admin.deactivate(tenant_user)
        db.session.rollback()
        assert tenant_admin.is_active is True

    def test_co_admin_cannot_deactivate_primary_admin(
        self, tenant, tenant_admin, user_factory, admin_role_for
    ):
        co_admin = user_factory(
            "Second Admin", "second@stmary.test", tenant=tenant, role=admin_role_for(tenant)
        )
        with pytest.raises(AuthorizationError):
            tenant_admin.deactivate(co_admin)

    def test_super_admin_can_deactivate_primary_admin(self, super_admin, tenant_admin):
        with session_manager():
            tenant_admin.deactivate(super_admin)
        assert tenant_admin.is_active is False

        with session_manager():
            tenant_admin.activate(super_admin)
        assert tenant_admin.is_active is True

    def test_cannot_deactivate_self(self, tenant_admin):
        with pytest.raises(AuthorizationError):
            tenant_admin.deactivate(tenant_admin)

    def test_primary_admin_can_deactivate_members(self, tenant_admin, tenant_user):
        with session_manager():
            tenant_user.deactivate(tenant_admin)
        assert tenant_user.is_active is False

    def test_cross_tenant_deactivation_is_isolated(self, other_admin, tenant_user):
        with pytest.raises(TenantIsolationError):
            tenant_user.deactivate(other_admin)

    def test_remove_protects_system_admins(self, ekklesia_admin, super_admin):
        with pytest.raises(AuthorizationError, match="System administrator"):
            super_admin.remove(ekklesia_admin)
        with session_manager():
            ekklesia_admin.remove(super_admin)
        assert User.get_alive(ekklesia_admin.id) is None
        assert ekklesia_admin.is_deleted

    def test_remove_primary_admin_requires_system_admin(
        self, tenant_admin, tenant_user, ekklesia_admin
    ):
        with pytest.raises(AuthorizationError):
            tenant_admin.remove(tenant_user)
        with session_manager():
            tenant_admin.remove(ekklesia_admin)
        assert tenant_admin.is_deleted


class TestAccounts:
    def test_email_is_unique_across_tenants(self, tenant, other_tenant, user_factory):
        user_factory("First", "same@parish.test", tenant=tenant)
        with pytest.raises(DuplicateNameError):
            user_factory("Second", "same@parish.test", tenant=other_tenant)
        with pytest.raises(DuplicateNameError):
            user_factory("Third", "SAME@parish.test", tenant=tenant)

    def test_create_account_normalises_email(self, tenant, user_factory):
        user = user_factory("Mixed Case", "  Mixed@Parish.Test ", tenant=tenant)
        assert user.email == "mixed@parish.test"

    def test_account_without_password_gets_unusable_one(self, tenant):
        with session_manager():
            user = User.create_account("No Password", "nopass@parish.test", tenant_id=tenant.id)
        assert user.password_hash
        assert not user.verify_password("")

    def test_password_is_write_only(self, tenant_user):
        assert tenant_user.verify_password("password123")
        with pytest.raises(AttributeError):
            tenant_user.password
