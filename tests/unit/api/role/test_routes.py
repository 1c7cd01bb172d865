# tests/unit/api/role/test_routes.py
from ekklesia.core.constants import RoleTier
from ekklesia.core.database import session_manager
from ekklesia.models import Role


class TestRoleRoutes:
    def test_list_roles_for_tenant_admin(
        self, client, auth_headers, tenant_admin, viewer_role, other_admin
    ):
        response = client.get("/api/roles?per_page=100", headers=auth_headers(other_admin))

        assert response.status_code == 200
        names = {r["name"] for r in response.get_json()["data"]}
        assert "Viewer" not in names
        assert {"SuperAdmin", "EkklesiaAdmin", "Administrator"} <= names
        tenants = {r["tenant_id"] for r in response.get_json()["data"]}
        assert tenants <= {None, other_admin.tenant_id}

    def test_list_roles_needs_permission(self, client, auth_headers, other_user):
        response = client.get("/api/roles", headers=auth_headers(other_user))
        assert response.status_code == 403

    def test_create_custom_role(self, client, auth_headers, tenant_admin, other_tenant):
        response = client.post(
            "/api/roles",
            json={
                "name": "Choir Leader",
                "level": 7,
                "tenant_id": other_tenant.id,
                "permissions": ["families.view", "bccs.view"],
            },
            headers=auth_headers(tenant_admin),
        )

        assert response.status_code == 201
        data = response.get_json()["data"]
        assert data["tenant_id"] == tenant_admin.tenant_id
        assert data["is_custom"] is True
        assert data["tier"] == RoleTier.CUSTOM.value
        assert [p["name"] for p in data["permissions"]] == ["bccs.view", "families.view"]

    def test_create_role_duplicate_name(self, client, auth_headers, tenant_admin, viewer_role):
        response = client.post(
            "/api/roles", json={"name": "Viewer"}, headers=auth_headers(tenant_admin)
        )
        assert response.status_code == 409

    def test_create_role_level_range(self, client, auth_headers, tenant_admin):
        response = client.post(
            "/api/roles", json={"name": "Too High", "level": 1}, headers=auth_headers(tenant_admin)
        )
        assert response.status_code == 422
        assert "level" in response.get_json()["errors"]

    def test_super_admin_creates_global_role(self, client, auth_headers, super_admin):
        response = client.post(
            "/api/roles", json={"name": "Diocesan Auditor"}, headers=auth_headers(super_admin)
        )

        data = response.get_json()["data"]
        assert response.status_code == 201
        assert data["tenant_id"] is None
        assert data["is_custom"] is False
        assert data["is_global"] is True

    def test_get_role_of_other_tenant_looks_missing(
        self, client, auth_headers, other_admin, viewer_role
    ):
        response = client.get(f"/api/roles/{viewer_role.id}", headers=auth_headers(other_admin))
        assert response.status_code == 404
        assert response.get_json()["message"] == "Role not found or does not belong to your tenant."

    def test_get_role(self, client, auth_headers, tenant_admin, viewer_role, tenant_user):
        response = client.get(f"/api/roles/{viewer_role.id}", headers=auth_headers(tenant_admin))
        data = response.get_json()["data"]
        assert data["holder_count"] == 1
        assert len(data["permissions"]) == 3

    def test_update_role(self, client, auth_headers, tenant_admin, viewer_role):
        response = client.put(
            f"/api/roles/{viewer_role.id}",
            json={"name": "Reader", "description": "Read only", "is_active": False},
            headers=auth_headers(tenant_admin),
        )

        assert response.status_code == 200
        assert viewer_role.name == "Reader"
        assert viewer_role.is_active is False

    def test_tenant_admin_cannot_edit_global_role(
        self, client, auth_headers, tenant_admin, system_roles
    ):
        role = system_roles[RoleTier.EKKLESIA_USER]
        response = client.put(
            f"/api/roles/{role.id}", json={"name": "Hacked"}, headers=auth_headers(tenant_admin)
        )
        assert response.status_code == 403
        assert role.name == "EkklesiaUser"

    def test_delete_role_in_use(self, client, auth_headers, tenant_admin, viewer_role, tenant_user):
        response = client.delete(f"/api/roles/{viewer_role.id}", headers=auth_headers(tenant_admin))
        assert response.status_code == 422

    def test_delete_and_restore_role(self, client, auth_headers, tenant_admin, tenant):
        with session_manager():
            role = Role.create_role("Choir", tenant_id=tenant.id)
        headers = auth_headers(tenant_admin)

        response = client.delete(f"/api/roles/{role.id}", headers=headers)
        assert response.status_code == 200
        assert Role.get_alive(role.id) is None

        trashed = client.get("/api/roles?trashed=true", headers=headers).get_json()["data"]
        assert [r["name"] for r in trashed] == ["Choir"]

        response = client.post(f"/api/roles/{role.id}/restore", headers=headers)
        assert response.status_code == 200
        assert Role.get_alive(role.id) is not None

        response = client.post(f"/api/roles/{role.id}/restore", headers=headers)
        assert response.status_code == 422

    def test_deactivate_and_activate(self, client, auth_headers, tenant_admin, viewer_role):
        headers = auth_headers(tenant_admin)
        response = client.post(f"/api/roles/{viewer_role.id}/deactivate", headers=headers)
        assert response.get_json()["data"]["is_active"] is False
        response = client.post(f"/api/roles/{viewer_role.id}/activate", headers=headers)
        assert response.get_json()["data"]["is_active"] is True

    def test_sync_permissions(self, client, auth_headers, tenant_admin, viewer_role):
        headers = auth_headers(tenant_admin)
        response = client.put(
            f"/api/roles/{viewer_role.id}/permissions",
            json={"permissions": ["families.view", "families.update"]},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.get_json()["data"]["permissions"] == ["families.view", "families.update"]
        assert not viewer_role.has_permission("users.view")

        response = client.get(f"/api/roles/{viewer_role.id}/permissions", headers=headers)
        names = [p["name"] for p in response.get_json()["data"]]
        assert names == ["families.update", "families.view"]

    def test_sync_permissions_unknown_name_is_atomic(
        self, client, auth_headers, tenant_admin, viewer_role
    ):
        response = client.put(
            f"/api/roles/{viewer_role.id}/permissions",
            json={"permissions": ["families.view", "nothing.here"]},
            headers=auth_headers(tenant_admin),
        )

        assert response.status_code == 404
        assert len(viewer_role.permissions) == 3

    def test_sync_permissions_to_empty(self, client, auth_headers, tenant_admin, viewer_role):
        response = client.put(
            f"/api/roles/{viewer_role.id}/permissions",
            json={"permissions": []},
            headers=auth_headers(tenant_admin),
        )
        assert response.status_code == 200
        assert viewer_role.permissions == []
