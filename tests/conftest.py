import types

import pytest
from app import create_app
from models import db

import firebase_rtdb

BASE_URL = "https://test-rtdb.example.com"


class FakeResponse:
    def __init__(self, json_data=None, status_code=200):
        self._json = json_data
        self.status_code = status_code

    def json(self):
        return self._json


class FakeRtdb:
    """In-memory stand-in for the Realtime Database REST API."""

    def __init__(self):
        self.nodes = {}
        self.calls = []
        self.next_status = {}
        self.counter = 0

    def _record(self, method, url, params, json, headers=None):
        self.calls.append({"method": method, "url": url, "params": dict(params or {}), "json": json,
                           "headers": dict(headers or {})})
        status = self.next_status.pop(method, None)
        if status is not None:
            return FakeResponse({"error": "forced"}, status_code=status)
        return None

    def _split(self, url):
        path = url[: -len(".json")]
        parent, key = path.rsplit("/", 1)
        return parent, key

    def get(self, url, params=None, headers=None, timeout=None, **kwargs):
        forced = self._record("GET", url, params, None, headers)
        if forced:
            return forced
        collection = self.nodes.get(url[: -len(".json")])
        return FakeResponse(dict(collection) if collection else None)

    def post(self, url, params=None, json=None, headers=None, timeout=None, **kwargs):
        forced = self._record("POST", url, params, json, headers)
        if forced:
            return forced
        self.counter += 1
        key = f"-Nkey{self.counter:03d}"
        self.nodes.setdefault(url[: -len(".json")], {})[key] = dict(json)
        return FakeResponse({"name": key})

    def put(self, url, params=None, json=None, headers=None, timeout=None, **kwargs):
        forced = self._record("PUT", url, params, json, headers)
        if forced:
            return forced
        parent, key = self._split(url)
        self.nodes.setdefault(parent, {})[key] = dict(json)
        return FakeResponse(dict(json))

    def delete(self, url, params=None, headers=None, timeout=None, **kwargs):
        forced = self._record("DELETE", url, params, None, headers)
        if forced:
            return forced
        parent, key = self._split(url)
        self.nodes.get(parent, {}).pop(key, None)
        return FakeResponse(None)

    def seed(self, user_id, records):
        path = f"{BASE_URL}/FirebaseWeatherForecastOwner/{user_id}"
        self.nodes[path] = dict(records)


@pytest.fixture()
def fake_rtdb(monkeypatch):
    fake = FakeRtdb()
    monkeypatch.setattr(firebase_rtdb, "requests", types.SimpleNamespace(
        get=fake.get, post=fake.post, put=fake.put, delete=fake.delete,
    ))
    return fake


# Creates a Flask app with a temporary SQLite database for tests.
@pytest.fixture()
def app(tmp_path, monkeypatch):
    db_path = tmp_path / "test.db"
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path}")
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("FIREBASE_RTDB_BASE_URL", BASE_URL)
    monkeypatch.setenv("FIREBASE_USER_ID", "user-1")
    monkeypatch.setenv("FIREBASE_ID_TOKEN", "token-1")
    app = create_app()
    app.config.update(TESTING=True)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()

@pytest.fixture()
def client(app):
    return app.test_client()
