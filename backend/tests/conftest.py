"""
Pytest fixtures for GymDesk backend tests.

Provides the test application, a per-test clean database, accounts for each
role and helpers for bearer-token headers.
"""

import pytest

from gymdesk import create_app
from gymdesk.extensions import db
from gymdesk.services import account_service, member_service
from gymdesk.services.account_service import ROLE_ADMIN, ROLE_MEMBER, ROLE_USER


TEST_PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app(tmp_path_factory):
    """Create application for testing."""
    upload_dir = tmp_path_factory.mktemp("uploads")
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'UPLOAD_FOLDER': str(upload_dir),
        'ALLOW_STOCK_OVERSELL': False,
        'LOW_STOCK_THRESHOLD': 5,
        'EXPIRY_WARNING_DAYS': 7,
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


def make_account(role: str, email: str, password: str = TEST_PASSWORD, first_name: str = "Test", last_name: str = "Account"):
    return account_service.create_account(
        first_name=first_name,
        last_name=last_name,
        email=email,
        role=role,
        password=password,
    )


@pytest.fixture(scope='function')
def admin_account(db_session):
    return make_account(ROLE_ADMIN, "admin@gym.test", first_name="Asha", last_name="Admin")


@pytest.fixture(scope='function')
def user_account(db_session):
    return make_account(ROLE_USER, "desk@gym.test", first_name="Dev", last_name="Desk")


@pytest.fixture(scope='function')
def member_account(db_session):
    return make_account(ROLE_MEMBER, "ravi@gym.test", first_name="Ravi", last_name="Kumar")


@pytest.fixture(scope='function')
def member(db_session, member_account):
    """Member profile linked to member_account."""
    return member_service.add_member({
        "account_id": member_account.id,
        "first_name": "Ravi",
        "last_name": "Kumar",
        "email": "ravi@gym.test",
        "phone": "9800000001",
        "membership_type": "basic",
    })


@pytest.fixture(scope='function')
def other_member(db_session):
    return member_service.add_member({
        "first_name": "Meera",
        "last_name": "Shah",
        "email": "meera@gym.test",
        "phone": "9800000002",
    })


def get_auth_token(client, email: str, password: str = TEST_PASSWORD, role: str | None = None) -> str:
    """Helper to get auth token for an account."""
    body = {'email': email, 'password': password}
    if role:
        body['role'] = role
    response = client.post('/api/auth/login', json=body)
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin_account):
    return auth_headers(get_auth_token(client, admin_account.email))


@pytest.fixture(scope='function')
def user_headers(client, user_account):
    return auth_headers(get_auth_token(client, user_account.email))


@pytest.fixture(scope='function')
def member_headers(client, member_account):
    return auth_headers(get_auth_token(client, member_account.email))
