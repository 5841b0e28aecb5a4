"""Tests for the SQLite-backed connection profile store."""

import pytest

from common.errors import DuplicateNameError, NotFoundError, ValidationError
from services.connections.store import ConnectionStore

CONN_A = "Endpoint=sb://a.servicebus.windows.net/;SharedAccessKeyName=k;SharedAccessKey=a"
CONN_B = "Endpoint=sb://b.servicebus.windows.net/;SharedAccessKeyName=k;SharedAccessKey=b"


@pytest.fixture
def store(tmp_path) -> ConnectionStore:
    return ConnectionStore(f"sqlite:///{tmp_path / 'nested' / 'explorer.db'}")


def test_create_and_get(store):
    created = store.create("dev", CONN_A)

    fetched = store.get(created.id)

    assert fetched == created
    assert fetched.name == "dev"
    assert fetched.connection_string == CONN_A
    assert fetched.created_at is not None


def test_list_is_ordered_by_name(store):
    store.create("staging", CONN_A)
    store.create("dev", CONN_B)

    assert [p.name for p in store.list()] == ["dev", "staging"]


def test_duplicate_name_is_rejected(store):
    store.create("dev", CONN_A)

    with pytest.raises(DuplicateNameError):
        store.create("dev", CONN_B)

    assert len(store.list()) == 1


def test_create_requires_name_and_connection_string(store):
    with pytest.raises(ValidationError):
        store.create("", CONN_A)
    with pytest.raises(ValidationError):
        store.create("dev", "")


def test_update_keeps_connection_string_when_omitted(store):
    created = store.create("dev", CONN_A)

    updated = store.update(created.id, "development")

    assert updated.name == "development"
    assert updated.connection_string == CONN_A
    assert updated.updated_at >= created.updated_at


def test_update_replaces_connection_string(store):
    created = store.create("dev", CONN_A)

    assert store.update(created.id, "dev", CONN_B).connection_string == CONN_B


def test_update_unknown_profile(store):
    with pytest.raises(NotFoundError):
        store.update(999, "dev")


def test_update_to_existing_name_is_rejected(store):
    store.create("dev", CONN_A)
    other = store.create("prod", CONN_B)

    with pytest.raises(DuplicateNameError):
        store.update(other.id, "dev")

    assert store.get(other.id).name == "prod"


def test_delete(store):
    created = store.create("dev", CONN_A)

    assert store.delete(created.id) is True
    assert store.get(created.id) is None
    assert store.delete(created.id) is False
