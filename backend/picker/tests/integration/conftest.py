"""Fixtures for picker integration tests."""

from __future__ import annotations

import pytest
from starlette.testclient import TestClient

from picker.tests.helpers.api import make_app


@pytest.fixture
def app(tmp_path):
    app = make_app(tmp_path)
    yield app
    app.state.db.close()


@pytest.fixture
def client(app):
    return TestClient(app)
