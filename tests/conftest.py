# conftest.py
import pytest
from flask_jwt_extended import create_access_token

from ekklesia import create_app
from ekklesia.commands import seed_catalogue
from ekklesia.extensions import db
from ekklesia.core.constants import RoleTier, UserType
from ekklesia.core.database import session_manager
from ekklesia.models import Role, Tenant, User

PASSWORD = "password123"


@pytest.fixture
def app():
    """Fresh app and in-memory schema per test"""
    app = create_app("testing")

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def catalogue(app):
    """Standard permissions plus the global system roles"""
    seed_catalogue()


@pytest.fixture
def system_roles(catalogue):
    return {role.tier: role for role in Role.query.filter(Role.tenant_id.is_(None)).all()}


def make_tenant(name, slug):
    with session_manager():
        tenant = Tenant(name=name, slug=slug, is_active=True)
        db.session.add(tenant)
        db.session.flush()
        Role.create_administrator_role(tenant)
    return tenant


def make_user(name, email, tenant=None, role=None, **fields):
    with session_manager():
        user = User.create_account(
            name,
            email,
            password=PASSWORD,
            tenant_id=tenant.id if tenant else None,
            role_id=role.id if role else None,
            **fields
        )
    return user


def admin_role_of(tenant):
    return Role.query.filter_by(tenant_id=tenant.id, tier=RoleTier.TENANT_ADMIN).one()


@pytest.fixture
def tenant(catalogue):
    return make_tenant("St. Mary Parish", "st-mary")


@pytest.fixture
def other_tenant(catalogue):
    return make_tenant("St. Joseph Parish", "st-joseph")


@pytest.fixture
def super_admin(system_roles):
    return make_user("Super Admin", "super@ekklesia.test", role=system_roles[RoleTier.SUPER_ADMIN])


@pytest.fixture
def ekklesia_admin(system_roles):
    return make_user(
        "Platform Admin", "platform@ekklesia.test", role=system_roles[RoleTier.EKKLESIA_ADMIN]
    )


@pytest.fixture
def ekklesia_manager(system_roles):
    return make_user(
        "Platform Manager", "manager@ekklesia.test", role=system_roles[RoleTier.EKKLESIA_MANAGER]
    )


@pytest.fixture
def tenant_admin(tenant):
    """Primary administrator of ``tenant``"""
    return make_user(
        "Mary Admin",
        "admin@stmary.test",
        tenant=tenant,
        role=admin_role_of(tenant),
        is_primary_admin=True,
        user_type=UserType.PRIMARY_CONTACT.value,
    )


@pytest.fixture
def other_admin(other_tenant):
    return make_user(
        "Joseph Admin",
        "admin@stjoseph.test",
        tenant=other_tenant,
        role=admin_role_of(other_tenant),
        is_primary_admin=True,
    )


@pytest.fixture
def viewer_role(tenant):
    """Custom role of ``tenant`` that can only look at users and families"""
    with session_manager():
        role = Role.create_role("Viewer", tenant_id=tenant.id)
        role.sync_permissions(["users.view", "families.view", "bccs.view"])
    return role


@pytest.fixture
def tenant_user(tenant, viewer_role):
    return make_user("Mary Member", "member@stmary.test", tenant=tenant, role=viewer_role)


@pytest.fixture
def other_user(other_tenant):
    return make_user("Joseph Member", "member@stjoseph.test", tenant=other_tenant)


@pytest.fixture
def auth_headers():
    """Build bearer headers for any user"""

    def _headers(user):
        token = create_access_token(identity=user.id)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def user_factory(app):
    return make_user


@pytest.fixture
def admin_role_for(app):
    return admin_role_of
