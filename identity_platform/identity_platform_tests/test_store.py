"""
Unit tests for the credential store.
"""
import pytest
from unittest.mock import patch
from sqlalchemy.exc import OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from identity_platform.identity_platform.user_service.db import Database
from identity_platform.identity_platform.user_service.errors import StoreUnavailable, UserNotFound, UsernameTaken
from identity_platform.identity_platform.user_service.models import User, UserRecord
from identity_platform.identity_platform.user_service.store import CredentialStore


def test_find_by_username_returns_user(store, alice):
    found = store.find_by_username("alice")

    assert isinstance(found, User)
    assert found.id == alice.id == 1
    assert found.username == "alice"
    assert found.password_hash == alice.password_hash


def test_find_by_username_unknown_user(store, alice):
    with pytest.raises(UserNotFound):
        store.find_by_username("bob")


def test_find_by_username_is_exact_match(store, alice):
    with pytest.raises(UserNotFound):
        store.find_by_username("alic")


def test_find_by_username_rejects_empty_username(store):
    with pytest.raises(ValueError):
        store.find_by_username("")


def test_returned_user_is_immutable(store, alice):
    user = store.find_by_username("alice")
    with pytest.raises(AttributeError):
        user.username = "mallory"


def test_user_repr_hides_password_hash(alice):
    assert alice.password_hash not in repr(alice)


def test_add_assigns_sequential_ids(store):
    first = store.add("alice", "hash-a")
    second = store.add("carol", "hash-c")

    assert second.id == first.id + 1


def test_add_duplicate_username_raises(store, alice):
    with pytest.raises(UsernameTaken):
        store.add("alice", "another-hash")

    # The existing record is untouched
    assert store.find_by_username("alice").password_hash == alice.password_hash


def test_lookup_does_not_mutate(store, alice):
    store.find_by_username("alice")
    store.find_by_username("alice")

    with store.database.session() as db:
        assert db.query(UserRecord).count() == 1


def test_unreachable_store_raises_store_unavailable():
    database = Database.from_url("sqlite:////nonexistent-dir/deeper/users.db")
    store = CredentialStore(database)

    with pytest.raises(StoreUnavailable):
        store.find_by_username("alice")

    database.dispose()


def test_query_failure_raises_store_unavailable(store, alice):
    error = OperationalError("SELECT", {}, Exception("connection lost"))
    with patch.object(Session, "execute", side_effect=error):
        with pytest.raises(StoreUnavailable) as exc_info:
            store.find_by_username("alice")

    assert exc_info.value.__cause__ is error


def test_pool_exhaustion_raises_store_unavailable(store, alice):
    with patch.object(Session, "execute", side_effect=PoolTimeoutError("QueuePool limit reached")):
        with pytest.raises(StoreUnavailable):
            store.find_by_username("alice")
