import json

import pytest

from app import create_app
from config import SystemConfig
from data_store import DataStore


def write_json(path, data):
    path.write_text(json.dumps(data), encoding='utf-8')


@pytest.fixture
def db_path(tmp_path):
    path = tmp_path / 'db.json'
    write_json(path, {"posts": [], "profile": {"name": "typicode"}})
    return path


@pytest.fixture
def store(db_path):
    store = DataStore(str(db_path))
    store.load()
    return store


@pytest.fixture
def make_client(store):
    def _make(**overrides):
        cfg = SystemConfig(DB_FILE=store.db_file, **overrides)
        app = create_app(cfg, store=store)
        app.testing = True
        return app.test_client()
    return _make


@pytest.fixture
def client(make_client):
    return make_client()
