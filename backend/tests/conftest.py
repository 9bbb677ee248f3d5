"""
Pytest fixtures for bakeoffice backend tests.

Provides the application, a wiped database per test, two restaurants with
users for every role, TenantContexts for service-level tests, and bearer
headers for HTTP tests.
"""

import pytest

from bakeoffice import create_app
from bakeoffice.extensions import db
from bakeoffice.models import Restaurant
from bakeoffice.permissions.roles import Role
from bakeoffice.services import expense_service, stock_service
from bakeoffice.services.auth_service import add_membership, create_user
from bakeoffice.services.tenant_service import TenantContext

PASSWORD = "Password123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'BCRYPT_ROUNDS': 4,
        'DB_RETRY_ATTEMPTS': 1,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def restaurant_a(db_session):
    """First tenant."""
    restaurant = Restaurant(name="Chez Fatou", code="FATOU", is_active=True)
    db_session.add(restaurant)
    db_session.commit()
    return restaurant


@pytest.fixture(scope='function')
def restaurant_b(db_session):
    """Second tenant."""
    restaurant = Restaurant(name="Boulangerie Kaloum", code="KALOUM", is_active=True)
    db_session.add(restaurant)
    db_session.commit()
    return restaurant


def _member(email, restaurant, role):
    user = create_user(email, PASSWORD, name=email.split("@")[0])
    add_membership(user.id, restaurant.id, role)
    return user


@pytest.fixture(scope='function')
def owner(db_session, restaurant_a, restaurant_b):
    """Owner of both restaurants."""
    user = _member("owner@fatou.gn", restaurant_a, Role.OWNER)
    add_membership(user.id, restaurant_b.id, Role.OWNER)
    return user


@pytest.fixture(scope='function')
def manager(db_session, restaurant_a):
    return _member("manager@fatou.gn", restaurant_a, Role.RESTAURANT_MANAGER)


@pytest.fixture(scope='function')
def cashier(db_session, restaurant_a):
    return _member("cashier@fatou.gn", restaurant_a, Role.CASHIER)


@pytest.fixture(scope='function')
def baker(db_session, restaurant_a):
    return _member("baker@fatou.gn", restaurant_a, Role.BAKER)


@pytest.fixture(scope='function')
def rival(db_session, restaurant_b):
    """Owner of restaurant B only."""
    return _member("owner@kaloum.gn", restaurant_b, Role.OWNER)


def _ctx(user, restaurant, role):
    return TenantContext(user_id=user.id, role=role, restaurant_id=restaurant.id)


@pytest.fixture
def owner_ctx(owner, restaurant_a):
    return _ctx(owner, restaurant_a, Role.OWNER)


@pytest.fixture
def manager_ctx(manager, restaurant_a):
    return _ctx(manager, restaurant_a, Role.RESTAURANT_MANAGER)


@pytest.fixture
def cashier_ctx(cashier, restaurant_a):
    return _ctx(cashier, restaurant_a, Role.CASHIER)


@pytest.fixture
def baker_ctx(baker, restaurant_a):
    return _ctx(baker, restaurant_a, Role.BAKER)


@pytest.fixture
def rival_ctx(rival, restaurant_b):
    return _ctx(rival, restaurant_b, Role.OWNER)


@pytest.fixture
def make_item(owner_ctx):
    """Factory: inventory item in restaurant A with an initial stock."""
    def _make(name="Flour", stock=0, unit="kg", unit_cost=8000, min_stock=0, ctx=None):
        return stock_service.create_item(ctx or owner_ctx, {
            "name": name,
            "unit": unit,
            "initialStock": stock,
            "unitCostGNF": unit_cost,
            "minStock": min_stock,
        })
    return _make


@pytest.fixture
def category(owner_ctx):
    return expense_service.create_category(owner_ctx, {"name": "Ingredients"})


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def login(client):
    """Factory: bearer headers for a user."""
    def _login(user):
        token = get_auth_token(client, user.email)
        assert token, f"login failed for {user.email}"
        return auth_headers(token)
    return _login
