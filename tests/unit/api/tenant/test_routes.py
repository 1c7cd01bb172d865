# tests/unit/api/tenant/test_routes.py
from ekklesia.core.constants import RoleTier, UserType
from ekklesia.models import Role, Tenant, User

ONBOARDING = {
    "name": "Holy Family Church",
    "email": "office@holyfamily.test",
    "city": "Kochi",
    "admin": {"name": "Fr. Thomas", "email": "thomas@holyfamily.test", "password": "password123"},
    "secondary_contact": {"name": "Sr. Anne", "email": "anne@holyfamily.test"},
}


class TestTenantRoutes:
    def test_onboard_tenant(self, client, auth_headers, super_admin):
        response = client.post("/api/tenants", json=ONBOARDING, headers=auth_headers(super_admin))

        assert response.status_code == 201
        data = response.get_json()["data"]
        assert data["slug"] == "holy-family-church"
        assert data["administrator_role"]["tier"] == RoleTier.TENANT_ADMIN.value
        assert data["primary_admin"]["is_primary_admin"] is True
        assert data["primary_admin"]["user_type"] == UserType.PRIMARY_CONTACT.value
        assert data["secondary_contact"]["user_type"] == UserType.SECONDARY_CONTACT.value

        admin = User.query.filter_by(email="thomas@holyfamily.test").one()
        assert admin.is_tenant_admin()
        assert admin.has_permission_to("users.create")
        assert [r.name for r in admin.roles] == ["Administrator"]

        role = Role.get_role_by_name(data["id"], "Administrator")
        assert role.permission_ids() == {p.id for p in Role.system_permissions()}

    def test_onboarded_admin_can_log_in(self, client, auth_headers, super_admin):
        client.post("/api/tenants", json=ONBOARDING, headers=auth_headers(super_admin))
        response = client.post(
            "/api/auth/login",
            json={"email": "thomas@holyfamily.test", "password": "password123"},
        )
        assert response.status_code == 200

    def test_onboarding_is_atomic(self, client, auth_headers, super_admin, tenant_user):
        payload = dict(ONBOARDING, secondary_contact={"name": "Dup", "email": tenant_user.email})
        response = client.post("/api/tenants", json=payload, headers=auth_headers(super_admin))

        assert response.status_code == 409
        assert Tenant.query.filter_by(slug="holy-family-church").first() is None
        assert User.query.filter_by(email="thomas@holyfamily.test").first() is None

    def test_onboarding_duplicate_slug(self, client, auth_headers, super_admin, tenant):
        payload = dict(ONBOARDING, slug=tenant.slug)
        response = client.post("/api/tenants", json=payload, headers=auth_headers(super_admin))
        assert response.status_code == 409

    def test_onboarding_requires_system_admin(self, client, auth_headers, tenant_admin):
        response = client.post("/api/tenants", json=ONBOARDING, headers=auth_headers(tenant_admin))
        assert response.status_code == 403

    def test_onboarding_requires_admin_contact(self, client, auth_headers, ekklesia_admin):
        payload = {"name": "No Admin Parish"}
        response = client.post("/api/tenants", json=payload, headers=auth_headers(ekklesia_admin))
        assert response.status_code == 422
        assert "admin" in response.get_json()["errors"]

    def test_list_tenants(self, client, auth_headers, tenant_admin, ekklesia_manager, other_tenant):
        own = client.get("/api/tenants", headers=auth_headers(tenant_admin)).get_json()["data"]
        assert [t["id"] for t in own] == [tenant_admin.tenant_id]

        every = client.get("/api/tenants", headers=auth_headers(ekklesia_manager)).get_json()
        assert every["meta"]["total"] == 2

    def test_get_other_tenant_looks_missing(self, client, auth_headers, tenant_admin, other_tenant):
        response = client.get(f"/api/tenants/{other_tenant.id}", headers=auth_headers(tenant_admin))
        assert response.status_code == 404

    def test_get_own_tenant(self, client, auth_headers, tenant_admin, tenant_user):
        response = client.get(
            f"/api/tenants/{tenant_admin.tenant_id}", headers=auth_headers(tenant_admin)
        )
        assert response.get_json()["data"]["user_count"] == 2

    def test_update_own_tenant(self, client, auth_headers, tenant_admin, tenant):
        response = client.patch(
            f"/api/tenants/{tenant.id}",
            json={"phone": "0484-555-0101"},
            headers=auth_headers(tenant_admin),
        )
        assert response.status_code == 200
        assert tenant.phone == "0484-555-0101"

    def test_deactivate_tenant(self, client, auth_headers, super_admin, tenant_admin, tenant):
        headers = auth_headers(super_admin)
        response = client.post(f"/api/tenants/{tenant.id}/deactivate", headers=headers)
        assert response.get_json()["data"]["is_active"] is False

        response = client.post(f"/api/tenants/{tenant.id}/activate", headers=headers)
        assert response.get_json()["data"]["is_active"] is True

        response = client.post(
            f"/api/tenants/{tenant.id}/deactivate", headers=auth_headers(tenant_admin)
        )
        assert response.status_code == 403
