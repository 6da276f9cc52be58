import os

os.environ["STORAGE_BACKEND"] = "memory"

import pytest
from fastapi.testclient import TestClient

from app import app
from backend import scene_backend
from coordinator import coordinator


@pytest.fixture(autouse=True)
def clean_state():
    scene_backend.clear()
    coordinator.reset()
    yield
    scene_backend.clear()
    coordinator.reset()


@pytest.fixture
def api_client():
    with TestClient(app) as client:
        yield client
