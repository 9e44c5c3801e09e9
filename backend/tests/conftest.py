"""
Pytest fixtures for the vales backend tests.

Provides an in-memory database, a test client, stores and auth helpers.
"""

from datetime import date

import pytest
from vales import create_app
from vales.extensions import db
from vales.services import store_service, voucher_service


STORE_PASSWORD = "Password123!"


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
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Empty every table before each test."""
    meta = db.metadata
    for table in reversed(meta.sorted_tables):
        db.session.execute(table.delete())
    db.session.commit()

    yield db.session

    db.session.rollback()


@pytest.fixture(scope='function')
def central(db_session):
    return store_service.create("Local Central", "central", STORE_PASSWORD)


@pytest.fixture(scope='function')
def norte(db_session):
    return store_service.create("Local Norte", "norte", STORE_PASSWORD)


@pytest.fixture(scope='function')
def sur(db_session):
    return store_service.create("Local Sur", "sur", STORE_PASSWORD)


@pytest.fixture(scope='function')
def make_voucher(db_session):
    """Factory creating vouchers through the service."""
    def _make(origin, destination, *, fecha=date(2025, 4, 12), items=("Resma de papel A4",), person="Juan Pérez"):
        return voucher_service.create_voucher(
            voucher_date=fecha,
            origin_store_id=origin.id,
            destination_store_id=destination.id,
            responsible_person=person,
            items=list(items),
        )
    return _make


def get_auth_token(client, login: str, password: str = STORE_PASSWORD) -> str:
    """Helper to get auth token for a store."""
    response = client.post('/api/auth/login', json={
        'usuario': login,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def central_headers(client, central):
    return auth_headers(get_auth_token(client, "central"))


@pytest.fixture(scope='function')
def norte_headers(client, norte):
    return auth_headers(get_auth_token(client, "norte"))
