"""Tests for the saved connection endpoints."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from main import create_app
from services.connections.store import ConnectionStore

CONN = "Endpoint=sb://test.servicebus.windows.net/;SharedAccessKeyName=k;SharedAccessKey=s"


@pytest.fixture
def client(tmp_path):
    app = create_app(connection_store=ConnectionStore(f"sqlite:///{tmp_path / 'explorer.db'}"))
    with TestClient(app) as test_client:
        yield test_client


def create(client, name: str, connection_string: str = CONN):
    return client.post("/api/connections", json={"name": name, "connectionString": connection_string})


def test_create_and_list(client):
    response = create(client, "dev")

    assert response.status_code == 201
    connection = response.json()["connection"]
    assert connection["name"] == "dev"
    assert connection["connectionString"] == CONN
    assert {"id", "createdAt", "updatedAt"} <= connection.keys()

    listed = client.get("/api/connections").json()["connections"]
    assert [c["name"] for c in listed] == ["dev"]


def test_create_requires_fields(client):
    response = client.post("/api/connections", json={"name": "dev"})

    assert response.status_code == 400
    assert response.json()["error"] == "Name and connection string are required"


def test_duplicate_name_conflicts(client):
    create(client, "dev")

    response = create(client, "dev")

    assert response.status_code == 409
    assert response.json() == {"error": "A connection with this name already exists", "kind": "duplicate_name"}


def test_get_unknown_connection(client):
    response = client.get("/api/connections/42")

    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"


def test_update_and_delete(client):
    connection_id = create(client, "dev").json()["connection"]["id"]

    updated = client.put(f"/api/connections/{connection_id}", json={"name": "development"})
    assert updated.status_code == 200
    assert updated.json()["connection"]["name"] == "development"
    assert updated.json()["connection"]["connectionString"] == CONN

    assert client.delete(f"/api/connections/{connection_id}").json() == {"success": True}
    assert client.delete(f"/api/connections/{connection_id}").status_code == 404


def test_update_requires_name(client):
    connection_id = create(client, "dev").json()["connection"]["id"]

    response = client.put(f"/api/connections/{connection_id}", json={"connectionString": CONN})

    assert response.status_code == 400


class LoopRecordingStore(ConnectionStore):
    """Records whether each store call ran on the event loop thread."""

    def __init__(self, database_url: str):
        super().__init__(database_url)
        self.calls_on_loop = []

    def _record(self):
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            self.calls_on_loop.append(False)
        else:
            self.calls_on_loop.append(True)

    def list(self):
        self._record()
        return super().list()

    def create(self, name, connection_string):
        self._record()
        return super().create(name, connection_string)

    def delete(self, connection_id):
        self._record()
        return super().delete(connection_id)


def test_store_calls_run_off_the_event_loop(tmp_path):
    store = LoopRecordingStore(f"sqlite:///{tmp_path / 'explorer.db'}")

    with TestClient(create_app(connection_store=store)) as test_client:
        connection_id = create(test_client, "dev").json()["connection"]["id"]
        test_client.get("/api/connections")
        test_client.get("/health/debug")
        test_client.delete(f"/api/connections/{connection_id}")

    assert store.calls_on_loop == [False, False, False, False]


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy", "service": "servicebus-explorer"}
    assert client.get("/health/debug").json()["connection_store"] == {"available": True, "profiles": 0}
