"""
Shared fixtures: a fresh in-memory credential store per test and a token issuer.
"""
import pytest

from identity_platform.identity_platform.user_service.auth import hash_password
from identity_platform.identity_platform.user_service.db import Database
from identity_platform.identity_platform.user_service.store import CredentialStore
from identity_platform.identity_platform.user_service.tokens import TokenIssuer

SECRET = "test-signing-key-not-for-prod-" + "0123456789abcdef" * 3


@pytest.fixture
def database():
    """Create a fresh in-memory database for each test."""
    db = Database.from_url("sqlite://")
    db.create_tables()
    yield db
    db.dispose()


@pytest.fixture
def store(database):
    return CredentialStore(database)


@pytest.fixture
def issuer():
    return TokenIssuer(SECRET, algorithm="HS256", expire_minutes=60)


@pytest.fixture
def alice(store):
    """User 1: alice / secret"""
    return store.add("alice", hash_password("secret"))
