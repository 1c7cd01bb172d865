# tests/unit/api/user/test_routes.py
from ekklesia.extensions import db
from ekklesia.core.constants import RoleTier
from ekklesia.core.database import session_manager
from ekklesia.models import Role, User


class TestUserRoutes:
    def test_list_users_is_tenant_scoped(
        self, client, auth_headers, tenant_admin, tenant_user, other_user
    ):
        response = client.get("/api/users", headers=auth_headers(tenant_admin))

        assert response.status_code == 200
        body = response.get_json()
        emails = {u["email"] for u in body["data"]}
        assert emails == {tenant_admin.email, tenant_user.email}
        assert body["meta"]["total"] == 2

    def test_list_users_as_super_admin(
        self, client, auth_headers, super_admin, tenant_user, other_user
    ):
        response = client.get("/api/users?search=member", headers=auth_headers(super_admin))

        emails = {u["email"] for u in response.get_json()["data"]}
        assert emails == {tenant_user.email, other_user.email}

    def test_list_users_pagination(self, client, auth_headers, tenant_admin, user_factory, tenant):
        for i in range(3):
            user_factory(f"Member {i}", f"member{i}@stmary.test", tenant=tenant)

        response = client.get("/api/users?per_page=2&page=2", headers=auth_headers(tenant_admin))
        meta = response.get_json()["meta"]
        assert meta == {"total": 4, "pages": 2, "current_page": 2, "per_page": 2}
        assert len(response.get_json()["data"]) == 2

    def test_list_users_requires_permission(self, client, auth_headers, other_user):
        response = client.get("/api/users", headers=auth_headers(other_user))
        assert response.status_code == 403
        assert response.get_json()["error"] == "forbidden"

    def test_create_user_forced_into_own_tenant(
        self, client, auth_headers, tenant_admin, other_tenant, viewer_role
    ):
        response = client.post(
            "/api/users",
            json={
                "name": "New Member",
                "email": "New@StMary.test",
                "tenant_id": other_tenant.id,
                "role_ids": [viewer_role.id],
            },
            headers=auth_headers(tenant_admin),
        )

        assert response.status_code == 201
        data = response.get_json()["data"]
        assert data["tenant_id"] == tenant_admin.tenant_id
        assert data["email"] == "new@stmary.test"
        assert [r["name"] for r in data["roles"]] == ["Viewer"]

    def test_create_user_duplicate_email(self, client, auth_headers, tenant_admin, other_user):
        response = client.post(
            "/api/users",
            json={"name": "Copy", "email": other_user.email},
            headers=auth_headers(tenant_admin),
        )
        assert response.status_code == 409
        assert response.get_json()["error"] == "duplicate"

    def test_create_user_with_foreign_role_rolls_back(
        self, client, auth_headers, other_admin, viewer_role
    ):
        response = client.post(
            "/api/users",
            json={"name": "Sneaky", "email": "sneaky@stjoseph.test", "role_ids": [viewer_role.id]},
            headers=auth_headers(other_admin),
        )

        assert response.status_code == 422
        assert response.get_json()["message"] == "The role 'Viewer' does not belong to your tenant."
        assert User.query.filter_by(email="sneaky@stjoseph.test").first() is None

    def test_get_user_reports_edit_rights(self, client, auth_headers, tenant_admin, tenant_user):
        response = client.get(f"/api/users/{tenant_user.id}", headers=auth_headers(tenant_admin))
        data = response.get_json()["data"]
        assert data["can_edit"] is True
        assert data["edit_restriction"] is None

        response = client.get(f"/api/users/{tenant_admin.id}", headers=auth_headers(tenant_user))
        data = response.get_json()["data"]
        assert data["can_edit"] is False

    def test_cross_tenant_user_looks_missing(self, client, auth_headers, other_admin, tenant_user):
        foreign = client.get(f"/api/users/{tenant_user.id}", headers=auth_headers(other_admin))
        missing = client.get("/api/users/does-not-exist", headers=auth_headers(other_admin))

        assert foreign.status_code == 404
        assert missing.status_code == 404
        assert foreign.get_json() == missing.get_json()
        assert foreign.get_json()["message"] == "User not found or does not belong to your tenant."

    def test_update_user(self, client, auth_headers, tenant_admin, tenant_user):
        response = client.patch(
            f"/api/users/{tenant_user.id}",
            json={"name": "Renamed Member", "contact_number": "555-0101"},
            headers=auth_headers(tenant_admin),
        )

        assert response.status_code == 200
        assert tenant_user.name == "Renamed Member"
        assert tenant_user.contact_number == "555-0101"

    def test_update_self_is_rejected(self, client, auth_headers, tenant_admin):
        response = client.patch(
            f"/api/users/{tenant_admin.id}", json={"name": "Me"}, headers=auth_headers(tenant_admin)
        )
        assert response.status_code == 403

    def test_delete_user_is_soft(self, client, auth_headers, tenant_admin, tenant_user):
        response = client.delete(f"/api/users/{tenant_user.id}", headers=auth_headers(tenant_admin))

        assert response.status_code == 200
        assert User.get_alive(tenant_user.id) is None
        assert db.session.get(User, tenant_user.id) is not None

    def test_tenant_member_cannot_deactivate_primary_admin(
        self, client, auth_headers, tenant, tenant_admin, user_factory, admin_role_for
    ):
        co_admin = user_factory(
            "Second Admin", "second@stmary.test", tenant=tenant, role=admin_role_for(tenant)
        )
        response = client.post(
            f"/api/users/{tenant_admin.id}/deactivate", headers=auth_headers(co_admin)
        )

        assert response.status_code == 403
        assert tenant_admin.is_active is True

    def test_super_admin_deactivates_primary_admin(
        self, client, auth_headers, super_admin, tenant_admin
    ):
        response = client.post(
            f"/api/users/{tenant_admin.id}/deactivate", headers=auth_headers(super_admin)
        )
        assert response.status_code == 200
        assert response.get_json()["data"]["is_active"] is False

        response = client.post(
            f"/api/users/{tenant_admin.id}/activate", headers=auth_headers(super_admin)
        )
        assert response.get_json()["data"]["is_active"] is True

    def test_assign_roles(self, client, auth_headers, tenant_admin, tenant_user, tenant):
        with session_manager():
            desk = Role.create_role("Families Desk", tenant_id=tenant.id)

        response = client.put(
            f"/api/users/{tenant_user.id}/roles",
            json={"role_ids": [desk.id]},
            headers=auth_headers(tenant_admin),
        )

        assert response.status_code == 200
        assert [r["name"] for r in response.get_json()["data"]["roles"]] == ["Families Desk"]
        assert [r.name for r in tenant_user.roles] == ["Families Desk"]

    def test_assign_roles_requires_one(self, client, auth_headers, tenant_admin, tenant_user):
        response = client.put(
            f"/api/users/{tenant_user.id}/roles",
            json={"role_ids": []},
            headers=auth_headers(tenant_admin),
        )
        assert response.status_code == 422

    def test_assign_super_admin_role_is_forbidden(
        self, client, auth_headers, tenant_admin, tenant_user, system_roles
    ):
        response = client.put(
            f"/api/users/{tenant_user.id}/roles",
            json={"role_ids": [system_roles[RoleTier.SUPER_ADMIN].id]},
            headers=auth_headers(tenant_admin),
        )
        assert response.status_code == 403
        assert not tenant_user.is_super_admin()

    def test_user_permissions(self, client, auth_headers, tenant_admin, tenant_user):
        response = client.get(
            f"/api/users/{tenant_user.id}/permissions", headers=auth_headers(tenant_admin)
        )
        data = response.get_json()["data"]
        assert data["permission_names"] == ["bccs.view", "families.view", "users.view"]
        assert data["direct_permissions"] == []

    def test_direct_permissions(self, client, auth_headers, tenant_admin, tenant_user):
        headers = auth_headers(tenant_admin)
        response = client.post(
            f"/api/users/{tenant_user.id}/permissions",
            json={"permissions": ["families.update"]},
            headers=headers,
        )
        assert response.status_code == 200
        assert tenant_user.has_permission_to("families.update")

        response = client.delete(
            f"/api/users/{tenant_user.id}/permissions",
            json={"permissions": ["families.update"]},
            headers=headers,
        )
        assert response.get_json()["data"]["direct_permissions"] == []
        assert not tenant_user.has_permission_to("families.update")

    def test_direct_permission_unknown_name(self, client, auth_headers, tenant_admin, tenant_user):
        response = client.post(
            f"/api/users/{tenant_user.id}/permissions",
            json={"permissions": ["families.teleport"]},
            headers=auth_headers(tenant_admin),
        )
        assert response.status_code == 404

    def test_permission_assigner_cannot_escalate(
        self, client, auth_headers, tenant, tenant_user, user_factory
    ):
        with session_manager():
            desk = Role.create_role("Permissions Desk", tenant_id=tenant.id)
            desk.sync_permissions(["users.view", "permissions.assign"])
        clerk = user_factory("Desk Clerk", "desk@stmary.test", tenant=tenant, role=desk)
        headers = auth_headers(clerk)

        for target in (clerk, tenant_user):
            response = client.post(
                f"/api/users/{target.id}/permissions",
                json={"permissions": ["users.delete", "roles.assign"]},
                headers=headers,
            )
            assert response.status_code == 403
            assert not target.has_permission_to("users.delete")

        response = client.delete(f"/api/users/{tenant_user.id}", headers=headers)
        assert response.status_code == 403
        assert not tenant_user.is_deleted

    def test_tenant_admin_cannot_grant_self(self, client, auth_headers, tenant_admin):
        response = client.post(
            f"/api/users/{tenant_admin.id}/permissions",
            json={"permissions": ["tenants.create"]},
            headers=auth_headers(tenant_admin),
        )
        assert response.status_code == 403
        assert response.get_json()["message"] == "You cannot change your own permissions."
        assert tenant_admin.permissions == []
