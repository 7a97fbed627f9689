"""
Pytest fixtures for the roastery backend tests.

Provides an in-memory database, the shops, coffees and users of a small
roastery, and bearer-token headers per role.
"""

from decimal import Decimal

import pytest

from roastery import create_app
from roastery.extensions import db
from roastery.models import GreenCoffee, Shop
from roastery.permissions import (
    ROLE_BARISTA,
    ROLE_RETAIL_OWNER,
    ROLE_ROASTER,
    ROLE_ROASTERY_OWNER,
    ROLE_SHOP_MANAGER,
)
from roastery.services import auth_service, shop_service


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
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

        app.config['BILLING_EXCLUSION_MODE'] = 'grade'

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def shop_a(db_session):
    shop = Shop(name="Old Town", location="Market Square 1", desired_small_bags=20, desired_large_bags=10)
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def shop_b(db_session):
    shop = Shop(name="Harbour", location="Pier 4")
    db_session.add(shop)
    db_session.commit()
    return shop


@pytest.fixture(scope='function')
def yirgacheffe(db_session):
    """Specialty lot with 10 kg in stock."""
    coffee = GreenCoffee(
        name="Ethiopia Yirgacheffe",
        producer="Konga Cooperative",
        country="Ethiopia",
        grade="Specialty",
        current_stock=Decimal("10.00"),
        min_threshold=Decimal("2.00"),
    )
    db_session.add(coffee)
    db_session.commit()
    return coffee


@pytest.fixture(scope='function')
def santos(db_session):
    """Premium lot."""
    coffee = GreenCoffee(
        name="Brazil Santos",
        producer="Fazenda Boa Vista",
        country="Brazil",
        grade="Premium",
        current_stock=Decimal("50.00"),
    )
    db_session.add(coffee)
    db_session.commit()
    return coffee


def make_user(username, role, shops=()):
    user = auth_service.create_user(username, PASSWORD, role)
    for shop in shops:
        shop_service.assign_user_to_shop(user.id, shop.id)
    return user


@pytest.fixture(scope='function')
def owner(db_session):
    return make_user("owner", ROLE_ROASTERY_OWNER)


@pytest.fixture(scope='function')
def retail_owner(db_session):
    return make_user("retail_owner", ROLE_RETAIL_OWNER)


@pytest.fixture(scope='function')
def roaster(db_session, shop_a):
    return make_user("roaster", ROLE_ROASTER, shops=[shop_a])


@pytest.fixture(scope='function')
def manager(db_session, shop_a):
    return make_user("manager_a", ROLE_SHOP_MANAGER, shops=[shop_a])


@pytest.fixture(scope='function')
def barista(db_session, shop_a):
    return make_user("barista_a", ROLE_BARISTA, shops=[shop_a])


@pytest.fixture(scope='function')
def barista_b(db_session, shop_b):
    return make_user("barista_b", ROLE_BARISTA, shops=[shop_b])


def login(client, username):
    resp = client.post("/api/auth/login", json={"username": username, "password": PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return {"Authorization": f"Bearer {resp.get_json()['token']}"}


@pytest.fixture(scope='function')
def owner_headers(client, owner):
    return login(client, owner.username)


@pytest.fixture(scope='function')
def roaster_headers(client, roaster):
    return login(client, roaster.username)


@pytest.fixture(scope='function')
def manager_headers(client, manager):
    return login(client, manager.username)


@pytest.fixture(scope='function')
def barista_headers(client, barista):
    return login(client, barista.username)


@pytest.fixture(scope='function')
def barista_b_headers(client, barista_b):
    return login(client, barista_b.username)
