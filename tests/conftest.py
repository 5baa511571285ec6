import pytest

from goodlife import create_app


@pytest.fixture
def app():
    """Application with the demo plan (plan 1, student 1) seeded."""
    return create_app({'TESTING': True, 'SEED_DEMO_DATA': True, 'LOG_LEVEL': 'ERROR'})


@pytest.fixture
def client(app):
    return app.test_client()
