"""
Unit tests for credential verification.
"""
import logging
import pytest
from unittest.mock import Mock, patch

from identity_platform.identity_platform.user_service.auth import hash_password, verify_password
from identity_platform.identity_platform.user_service.errors import AuthenticationFailed, StoreUnavailable
from identity_platform.identity_platform.user_service.store import CredentialStore
from identity_platform.identity_platform.user_service.verifier import CredentialVerifier


@pytest.fixture
def verifier(store):
    return CredentialVerifier(store)


def test_hash_password_is_salted():
    first = hash_password("secret")
    second = hash_password("secret")

    assert first != second
    assert "secret" not in first
    assert verify_password("secret", first)
    assert verify_password("secret", second)


def test_verify_password_rejects_corrupt_hash():
    assert verify_password("secret", "not-a-hash") is False
    assert verify_password("secret", "") is False


def test_verify_registered_user(verifier, alice):
    user = verifier.verify("alice", "secret")

    assert user.id == alice.id
    assert user.username == "alice"


@pytest.mark.parametrize("username,password", [
    ("alice", "secret"),
    ("dave", "correct horse battery staple"),
    ("Ünïcødé", "pässwörd"),
])
def test_verify_returns_correct_id_for_each_user(store, verifier, username, password):
    store.add("someone-else", hash_password("other"))
    created = store.add(username, hash_password(password))

    assert verifier.verify(username, password).id == created.id


def test_wrong_password_fails(verifier, alice):
    with pytest.raises(AuthenticationFailed):
        verifier.verify("alice", "wrong")


def test_unknown_user_indistinguishable_from_wrong_password(verifier, alice):
    with pytest.raises(AuthenticationFailed) as wrong_password:
        verifier.verify("alice", "wrong")
    with pytest.raises(AuthenticationFailed) as unknown_user:
        verifier.verify("bob", "anything")

    assert type(wrong_password.value) is type(unknown_user.value)
    assert str(wrong_password.value) == str(unknown_user.value) == "Invalid credentials"
    assert wrong_password.value.args == unknown_user.value.args


def test_unknown_user_still_spends_hash_work(verifier):
    with patch("identity_platform.identity_platform.user_service.verifier.dummy_verify") as dummy:
        with pytest.raises(AuthenticationFailed):
            verifier.verify("bob", "anything")

    dummy.assert_called_once()


def test_empty_username_fails_authentication(verifier):
    with pytest.raises(AuthenticationFailed):
        verifier.verify("", "anything")


def test_corrupt_stored_hash_fails_authentication(store, verifier):
    store.add("eve", "plaintext-not-a-hash")

    with pytest.raises(AuthenticationFailed):
        verifier.verify("eve", "plaintext-not-a-hash")


def test_store_unavailable_is_not_reported_as_bad_credentials():
    store = Mock(spec=CredentialStore)
    store.find_by_username.side_effect = StoreUnavailable("connection refused")
    verifier = CredentialVerifier(store)

    with pytest.raises(StoreUnavailable):
        verifier.verify("alice", "secret")


def test_password_never_logged(verifier, alice, caplog):
    caplog.set_level(logging.DEBUG)

    verifier.verify("alice", "secret")
    with pytest.raises(AuthenticationFailed):
        verifier.verify("alice", "hunter2-attempt")
    with pytest.raises(AuthenticationFailed):
        verifier.verify("bob", "hunter3-attempt")

    assert "hunter2-attempt" not in caplog.text
    assert "hunter3-attempt" not in caplog.text
    assert "secret" not in caplog.text
