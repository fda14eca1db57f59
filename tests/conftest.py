import pytest
from flask import g
from flask.testing import FlaskClient
from sqlalchemy.pool import StaticPool

from fedsite import create_app
from fedsite.auth import Principal, issue_token
from fedsite.config import Config
from fedsite.extensions import db
from fedsite.services.microsites import create_microsite


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = 'test-secret-key'
    AUTH_TOKEN_SECRET = 'test-secret-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {
        'poolclass': StaticPool,
        'connect_args': {'check_same_thread': False},
    }
    ROOT_DOMAIN = 'fed.mx'
    RESERVED_SUBDOMAINS = ['admin', 'static']
    TRUST_FORWARDED_HOST = True
    PREFERRED_URL_SCHEME = 'https'
    RATELIMIT_ENABLED = False
    REDIS_URL = None
    NOTIFICATION_SERVICE_URL = None
    UPLOAD_FOLDER = None


class IsolatedClient(FlaskClient):
    """Requests share the fixture's app context, so drop the user Flask-Login cached on g."""

    def open(self, *args, **kwargs):
        g.pop('_login_user', None)
        return super().open(*args, **kwargs)


@pytest.fixture
def app(tmp_path):
    """Create and configure a test application instance."""
    config = type('IsolatedConfig', (TestConfig,), {'UPLOAD_FOLDER': str(tmp_path / 'uploads')})
    app = create_app(config)
    app.test_client_class = IsolatedClient

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create a test client for the app."""
    return app.test_client()


@pytest.fixture
def owner():
    return Principal(id='owner-1', role='club', email='owner@club.mx')


@pytest.fixture
def other_owner():
    return Principal(id='owner-2', role='club', email='other@club.mx')


@pytest.fixture
def auth_headers(app):
    """Return a factory for Authorization headers."""

    def _headers(user_id='owner-1', role='club', email='owner@club.mx'):
        return {'Authorization': f'Bearer {issue_token(user_id, role, email)}'}

    return _headers


@pytest.fixture
def make_microsite(app, owner):
    """Create a microsite through the service layer."""

    def _make(subdomain, principal=None, **data):
        payload = {'name': data.pop('name', subdomain.title()), 'subdomain': subdomain, 'slug': subdomain}
        payload.update(data)
        return create_microsite(principal or owner, payload)

    return _make
