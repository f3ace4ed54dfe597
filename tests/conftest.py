import copy

import pytest

from guidance_console.db import init_db


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary, initialized preferences database path for tests."""
    db_path = str(tmp_path / "test_prefs.db")
    init_db(db_path)
    return db_path


class FakeClient:
    """Stands in for ApiClient. ``responses`` maps (method, path) to a value,
    an exception to raise, or a callable ``(params, data) -> value``."""

    def __init__(self):
        self.base_url = "http://api.test"
        self.timeout = 15
        self.responses = {}
        self.calls = []

    def request(self, method, path, params=None, data=None):
        self.calls.append((method, path, params, data))
        response = self.responses.get((method, path))
        if isinstance(response, Exception):
            raise response
        if callable(response):
            response = response(params, data)
        return copy.deepcopy(response)

    def get(self, path, params=None):
        return self.request("GET", path, params=params)

    def post(self, path, data=None):
        return self.request("POST", path, data=data)

    def put(self, path, data=None):
        return self.request("PUT", path, data=data)

    def delete(self, path):
        return self.request("DELETE", path)

    def calls_to(self, method, path):
        return [c for c in self.calls if c[0] == method and c[1] == path]


@pytest.fixture
def fake_client():
    return FakeClient()
