"""
Pytest fixtures for tillbook backend tests.

Provides the app with an in-memory database, per-test cleanup, a small
catalog with stock at one store and at the distribution center, and users
for each role.
"""

import pytest
from tillbook import create_app
from tillbook.extensions import db
from tillbook.models import Store, User, Role, UserRole, Product, InventoryRecord, CustomerProfile
from tillbook.services.auth_service import hash_password, create_default_roles
from tillbook.services import permission_service
from tillbook.services.locations import DISTRIBUTION_CENTER, StoreLocation

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'BCRYPT_ROUNDS': 4,
        'TAX_RATE_BPS': 1000,
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
        db.session.rollback()
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        db.session.rollback()


@pytest.fixture(scope='function')
def setup_roles(db_session):
    """Setup default roles and permissions."""
    create_default_roles()
    permission_service.assign_default_role_permissions()
    db_session.commit()


@pytest.fixture(scope='function')
def store(db_session):
    store = Store(name="Main Street", code="MAIN")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def other_store(db_session):
    store = Store(name="Harbor Mall", code="HARBOR")
    db_session.add(store)
    db_session.commit()
    return store


@pytest.fixture(scope='function')
def store_location(store):
    return StoreLocation(store.id)


@pytest.fixture(scope='function')
def dc_location():
    return DISTRIBUTION_CENTER


def make_product(session, sku: str, name: str, price_cents: int, min_stock: int = 10) -> Product:
    product = Product(sku=sku, name=name, price_cents=price_cents, min_stock=min_stock)
    session.add(product)
    session.commit()
    return product


def add_stock(session, product: Product, location, quantity: int) -> InventoryRecord:
    record = InventoryRecord(
        product_id=product.id,
        quantity=quantity,
        location_type=location.location_type,
        store_id=location.store_id,
        location_key=location.key,
    )
    session.add(record)
    session.commit()
    return record


@pytest.fixture(scope='function')
def product_a(db_session):
    """Ten-dollar item."""
    return make_product(db_session, "SKU-A", "Dog Food 5kg", 1000)


@pytest.fixture(scope='function')
def product_b(db_session):
    """Five-dollar item."""
    return make_product(db_session, "SKU-B", "Cat Toy", 500)


@pytest.fixture(scope='function')
def stock_a(db_session, product_a, store_location):
    return add_stock(db_session, product_a, store_location, 5)


@pytest.fixture(scope='function')
def stock_b(db_session, product_b, store_location):
    return add_stock(db_session, product_b, store_location, 3)


@pytest.fixture(scope='function')
def customer(db_session):
    profile = CustomerProfile(phone_number="555-0100", name="Dana Reyes")
    db_session.add(profile)
    db_session.commit()
    return profile


def make_user(session, username: str, role_name: str, store_id=None, display_name=None) -> User:
    user = User(
        username=username,
        email=f"{username}@tillbook.test",
        display_name=display_name,
        password_hash=hash_password(PASSWORD),
        store_id=store_id,
    )
    session.add(user)
    session.commit()

    role = session.query(Role).filter_by(name=role_name).first()
    session.add(UserRole(user_id=user.id, role_id=role.id))
    session.commit()
    return user


@pytest.fixture(scope='function')
def cashier(db_session, store, setup_roles):
    return make_user(db_session, "cashier1", "cashier", store_id=store.id, display_name="Casey Till")


@pytest.fixture(scope='function')
def manager(db_session, store, setup_roles):
    return make_user(db_session, "manager1", "manager", store_id=store.id)


@pytest.fixture(scope='function')
def admin(db_session, setup_roles):
    return make_user(db_session, "admin1", "admin")


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def new_product(db_session):
    """Factory: new_product(sku, name, price_cents, min_stock=10)."""
    def _make(sku, name, price_cents, min_stock=10):
        return make_product(db_session, sku, name, price_cents, min_stock)
    return _make


@pytest.fixture(scope='function')
def new_stock(db_session):
    """Factory: new_stock(product, location, quantity)."""
    def _make(product, location, quantity):
        return add_stock(db_session, product, location, quantity)
    return _make


@pytest.fixture(scope='function')
def cashier_headers(client, cashier):
    return auth_headers(get_auth_token(client, cashier.username))


@pytest.fixture(scope='function')
def manager_headers(client, manager):
    return auth_headers(get_auth_token(client, manager.username))


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.username))
