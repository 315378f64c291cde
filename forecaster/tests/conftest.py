import pytest
from flask.testing import FlaskClient

from forecaster.app import create_app
from forecaster.config import AppConfig
from forecaster.core.store import InMemoryStore


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def client(store) -> FlaskClient:
    config = AppConfig(share_base_url="https://example.test/forecast", log_level="WARNING")
    flask_app = create_app(config, store=store)
    with flask_app.test_client() as test_client:
        yield test_client
