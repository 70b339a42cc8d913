"""
Fixtures for API tests: the real app with storage swapped for in-memory fakes.
The client is not entered as a context manager, so the Mongo lifespan never runs.
"""
import pytest
from fastapi.testclient import TestClient

from main import app
from onboarding.api.routes.training import get_gate_sessions, get_training_store
from onboarding.modules.training.gate_sessions import GateSessionCache

from fakes import DictRedis, auth_headers


@pytest.fixture
def redis_data():
    return DictRedis()


@pytest.fixture
def api_client(store, redis_data):
    app.dependency_overrides[get_training_store] = lambda: store
    app.dependency_overrides[get_gate_sessions] = lambda: GateSessionCache(redis_data)
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def employee_headers():
    return auth_headers("EMP_001")


@pytest.fixture
def hr_headers():
    return auth_headers("HR_001", role="HR")
