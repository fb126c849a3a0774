import pytest

from api import create_app
from api.config import AuthSettings
from models import storage
from services.auth_service import AuthService
from services.token_ledger import RefreshTokenLedger
from utils.tokens import TokenCodec


@pytest.fixture
def app():
    """Fresh app on an empty in-memory database."""
    app = create_app("test")
    yield app
    storage.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def settings(app):
    return app.extensions["auth_settings"]


@pytest.fixture
def codec(app):
    return app.extensions["token_codec"]


@pytest.fixture
def auth_service(app):
    return app.extensions["auth_service"]


@pytest.fixture
def ledger(app):
    return RefreshTokenLedger(storage)


@pytest.fixture
def make_service(app, settings, codec):
    """Build an AuthService sharing the app's storage, with a custom clock."""
    def _make(clock):
        return AuthService(settings, storage, codec=codec, clock=clock)

    return _make


@pytest.fixture
def registered(auth_service):
    """A registered user with a live token pair."""
    return auth_service.register("John", "JOHN@X.com", "Abc123xx")


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def make_codec(clock=None, **overrides):
    values = dict(access_secret="a-secret", refresh_secret="r-secret")
    values.update(overrides)
    if clock is None:
        return TokenCodec(AuthSettings(**values))
    return TokenCodec(AuthSettings(**values), clock=clock)
