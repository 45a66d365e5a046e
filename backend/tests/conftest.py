"""
Pytest fixtures for multishop backend tests.

Provides test database setup, two-branch fixtures, principals for every
role family, and helpers for obtaining tokens through the login endpoint.
"""

from datetime import date

import pytest
from multishop import create_app
from multishop.config import TestingConfig
from multishop.extensions import db
from multishop.models import Branch, Customer, Staff, User
from multishop.permissions import ManagementRole, PrincipalKind, StaffRole
from multishop.principal import Principal
from multishop.services.auth_service import hash_password


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash(app):
    """bcrypt is deliberately slow; hash the shared test password once."""
    return hash_password(PASSWORD)


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
def branch_a(db_session):
    """Create Branch A."""
    branch = Branch(name="Branch A - Downtown", address="1 Main St", manager_name="Alice")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def branch_b(db_session):
    """Create Branch B."""
    branch = Branch(name="Branch B - Uptown", address="99 Hill Rd", manager_name="Bob")
    db_session.add(branch)
    db_session.commit()
    return branch


def make_user(db_session, password_hash, username, role, **kwargs) -> User:
    user = User(
        username=username,
        full_name=kwargs.pop("full_name", username.title()),
        password_hash=password_hash,
        role=role.value,
        **kwargs,
    )
    db_session.add(user)
    db_session.commit()
    return user


def make_staff(db_session, password_hash, username, branch, role=StaffRole.STAFF, **kwargs) -> Staff:
    staff = Staff(
        branch_id=branch.id,
        username=username,
        full_name=kwargs.pop("full_name", username.title()),
        password_hash=password_hash,
        role=role.value,
        **kwargs,
    )
    db_session.add(staff)
    db_session.commit()
    return staff


def make_customer(db_session, branch, email, **kwargs) -> Customer:
    customer = Customer(
        branch_id=branch.id,
        full_name=kwargs.pop("full_name", email.split("@")[0].title()),
        email=email,
        registration_date=kwargs.pop("registration_date", date(2026, 1, 15)),
        status=kwargs.pop("status", "Active"),
        **kwargs,
    )
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def owner(db_session, password_hash):
    """Management user with the Owner role."""
    return make_user(db_session, password_hash, "owner", ManagementRole.OWNER)


@pytest.fixture(scope='function')
def warehouse_user(db_session, password_hash):
    """Management user with the Warehouse role."""
    return make_user(db_session, password_hash, "warehouse", ManagementRole.WAREHOUSE)


@pytest.fixture(scope='function')
def staff_a(db_session, password_hash, branch_a):
    """Plain staff member in Branch A."""
    return make_staff(db_session, password_hash, "staff_a", branch_a)


@pytest.fixture(scope='function')
def staff_b(db_session, password_hash, branch_b):
    """Plain staff member in Branch B."""
    return make_staff(db_session, password_hash, "staff_b", branch_b)


@pytest.fixture(scope='function')
def head_branch_a(db_session, password_hash, branch_a):
    """HeadBranch staff member in Branch A."""
    return make_staff(db_session, password_hash, "head_a", branch_a, role=StaffRole.HEAD_BRANCH)


@pytest.fixture(scope='function')
def customers(db_session, branch_a, branch_b):
    """Three customers in Branch A, two in Branch B."""
    return {
        "a": [
            make_customer(db_session, branch_a, "ann@example.com", full_name="Ann Archer", phone_number="555-0101", code="A-001"),
            make_customer(db_session, branch_a, "amir@example.com", full_name="Amir Aziz", address="12 Oak Lane"),
            make_customer(db_session, branch_a, "ava@example.com", full_name="Ava Adams", status="Inactive"),
        ],
        "b": [
            make_customer(db_session, branch_b, "ben@example.com", full_name="Ben Baker", code="B-001"),
            make_customer(db_session, branch_b, "bea@example.com", full_name="Bea Brown", phone_number="555-0202"),
        ],
    }


def principal_for(account) -> Principal:
    """Build the Principal a login would produce for a fixture account."""
    if isinstance(account, Staff):
        return Principal(
            id=account.id,
            username=account.username,
            kind=PrincipalKind.STAFF,
            role=StaffRole(account.role),
            branch_id=account.branch_id,
        )
    return Principal(
        id=account.id,
        username=account.username,
        kind=PrincipalKind.MANAGEMENT,
        role=ManagementRole(account.role),
    )


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get an access token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json['data']['access_token']
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def owner_headers(client, owner):
    return auth_headers(get_auth_token(client, owner.username))


@pytest.fixture(scope='function')
def warehouse_headers(client, warehouse_user):
    return auth_headers(get_auth_token(client, warehouse_user.username))


@pytest.fixture(scope='function')
def staff_a_headers(client, staff_a):
    return auth_headers(get_auth_token(client, staff_a.username))


@pytest.fixture(scope='function')
def staff_b_headers(client, staff_b):
    return auth_headers(get_auth_token(client, staff_b.username))


@pytest.fixture(scope='function')
def head_branch_a_headers(client, head_branch_a):
    return auth_headers(get_auth_token(client, head_branch_a.username))
