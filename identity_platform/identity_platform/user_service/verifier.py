"""
Credential verification: username/password against the stored hash.
"""
import logging

from .auth import dummy_verify, verify_password
from .errors import AuthenticationFailed, UserNotFound
from .models import User
from .store import CredentialStore

logger = logging.getLogger(__name__)


class CredentialVerifier:
    def __init__(self, store: CredentialStore):
        self.store = store

    def verify(self, username: str, password: str) -> User:
        """
        Return the user owning these credentials.

        Unknown usernames and wrong passwords raise the same
        AuthenticationFailed, and both paths run one hash verification.
        StoreUnavailable is not caught here.
        """
        if not username or password is None:
            dummy_verify()
            raise AuthenticationFailed()

        try:
            user = self.store.find_by_username(username)
        except UserNotFound:
            dummy_verify()
            logger.info("Login failed: username=%s", username)
            raise AuthenticationFailed() from None

        if not verify_password(password, user.password_hash):
            logger.info("Login failed: username=%s", username)
            raise AuthenticationFailed()

        return user
