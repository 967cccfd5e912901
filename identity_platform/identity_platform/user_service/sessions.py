"""
Session response building and the login pipeline.
"""
import logging

from .models import User
from .schemas import SessionResult
from .tokens import TokenIssuer
from .verifier import CredentialVerifier

logger = logging.getLogger(__name__)


def build_session(user: User, token: str) -> SessionResult:
    return SessionResult(id=user.id, username=user.username, token=token)


class LoginService:
    """
    Verify credentials, issue a token, build the session result.

    Holds only shared read-only collaborators, so one instance serves
    concurrent requests. Failures propagate to the caller unchanged and
    nothing is retried.
    """

    def __init__(self, verifier: CredentialVerifier, issuer: TokenIssuer):
        self.verifier = verifier
        self.issuer = issuer

    def login(self, username: str, password: str) -> SessionResult:
        user = self.verifier.verify(username, password)
        token = self.issuer.issue(user)
        logger.info("Successful login: user_id=%s, username=%s", user.id, user.username)
        return build_session(user, token)
