"""
Pytest fixtures for visitrack backend tests.

Provides the test app (in-memory SQLite, fixed signing secret, cheap bcrypt),
users of every role in two sales departments, and auth header helpers.
"""

import pytest

from visitrack import create_app
from visitrack.extensions import db
from visitrack.models import Customer, Department, School, User, UserStatus
from visitrack.permissions import Role
from visitrack.services.auth_service import hash_password
from visitrack.types import Identity

TEST_SECRET = "test-signing-secret-0123456789abcdef-0123456789"
DEFAULT_PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'JWT_SECRET_KEY': TEST_SECRET,
        'JWT_EXPIRATION_SECONDS': 3600,
        'BCRYPT_ROUNDS': 4,
        'LOG_LEVEL': 'WARNING',
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


def make_user(
    username: str,
    role: Role = Role.SALES,
    department: str | None = None,
    password: str = DEFAULT_PASSWORD,
    status: UserStatus = UserStatus.ACTIVE,
) -> User:
    user = User(
        username=username,
        password_hash=hash_password(password),
        real_name=username.title(),
        email=f"{username}@visitrack.test",
        role=role,
        department=department,
        status=status,
    )
    db.session.add(user)
    db.session.commit()
    return user


def identity_of(user: User) -> Identity:
    return Identity.from_user(user)


@pytest.fixture(scope='function')
def admin(db_session):
    return make_user("admin", Role.ADMIN, department="HQ")


@pytest.fixture(scope='function')
def manager_east(db_session):
    return make_user("manager_east", Role.MANAGER, department="East")


@pytest.fixture(scope='function')
def manager_west(db_session):
    return make_user("manager_west", Role.MANAGER, department="West")


@pytest.fixture(scope='function')
def alice(db_session):
    """Sales user in East."""
    return make_user("alice", Role.SALES, department="East")


@pytest.fixture(scope='function')
def bob(db_session):
    """Sales user in West."""
    return make_user("bob", Role.SALES, department="West")


@pytest.fixture(scope='function')
def school(db_session):
    school = School(name="North University", city="Beijing", province="Beijing")
    db_session.add(school)
    db_session.commit()
    return school


@pytest.fixture(scope='function')
def chemistry(db_session, school):
    department = Department(school_id=school.id, name="Chemistry")
    db_session.add(department)
    db_session.commit()
    return department


@pytest.fixture(scope='function')
def alice_customer(db_session, alice, school, chemistry):
    customer = Customer(
        name="Prof. Wang",
        school_id=school.id,
        department_id=chemistry.id,
        created_by_id=alice.id,
    )
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def bob_customer(db_session, bob, school):
    customer = Customer(name="Dr. Zhao", school_id=school.id, created_by_id=bob.id)
    db_session.add(customer)
    db_session.commit()
    return customer


def get_auth_token(client, username: str, password: str = DEFAULT_PASSWORD) -> str:
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


def login_headers(client, username: str, password: str = DEFAULT_PASSWORD) -> dict:
    token = get_auth_token(client, username, password)
    assert token, f"login failed for {username}"
    return auth_headers(token)
