"""
Session token issuance and verification (JWT, HMAC-signed).
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import binascii
import logging

import jwt
from jwt.utils import base64url_decode, base64url_encode

from .errors import InvalidToken, SigningUnavailable, TokenExpired
from .models import TokenClaims, User

logger = logging.getLogger(__name__)

# Key must be at least as long as the hash output (RFC 7518 section 3.2)
MIN_KEY_BYTES = {"HS256": 32, "HS384": 48, "HS512": 64}
SUPPORTED_ALGORITHMS = tuple(MIN_KEY_BYTES)
REQUIRED_CLAIMS = ["sub", "iat", "exp", "username"]


def _is_canonical(token: str) -> bool:
    """
    True when every segment is exactly the base64url encoding of its bytes.

    The decoder ignores the spare low bits of a segment's final character, so
    without this check some single-character edits would still verify.
    """
    segments = token.split(".")
    if len(segments) != 3:
        return False
    try:
        return all(
            base64url_encode(base64url_decode(segment.encode("ascii"))).decode("ascii") == segment
            for segment in segments
        )
    except (UnicodeError, binascii.Error, ValueError):
        return False


class TokenIssuer:
    """
    Signs and verifies session tokens with a process-wide key.

    The key is validated on construction; a usable issuer never raises
    SigningUnavailable afterwards.
    """

    def __init__(self, secret_key: Optional[str], algorithm: str = "HS256", expire_minutes: int = 60):
        if not secret_key:
            raise SigningUnavailable("JWT_SECRET_KEY is not set")
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise SigningUnavailable(
                f"Unsupported signing algorithm '{algorithm}'. Must be one of: {', '.join(SUPPORTED_ALGORITHMS)}"
            )
        if len(secret_key.encode("utf-8")) < MIN_KEY_BYTES[algorithm]:
            raise SigningUnavailable(
                f"JWT_SECRET_KEY must be at least {MIN_KEY_BYTES[algorithm]} bytes for {algorithm}"
            )
        if expire_minutes <= 0:
            raise SigningUnavailable("ACCESS_TOKEN_EXPIRE_MINUTES must be positive")

        self._secret_key = secret_key
        self.algorithm = algorithm
        self.lifetime = timedelta(minutes=expire_minutes)

        # Fail at startup rather than on the first login
        try:
            jwt.encode({"probe": True}, self._secret_key, algorithm=self.algorithm)
        except (jwt.PyJWTError, TypeError, ValueError) as exc:
            raise SigningUnavailable(f"Signing key rejected: {exc}") from exc

    def issue(self, user: User, now: Optional[datetime] = None) -> str:
        issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        payload = {
            "sub": str(user.id),
            "username": user.username,
            "iat": issued_at,
            "exp": issued_at + self.lifetime,
        }
        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Decode and check a token produced by ``issue``.

        Raises:
            TokenExpired: signature is valid but ``exp`` has passed
            InvalidToken: anything else is wrong with the token
        """
        if not isinstance(token, str) or not _is_canonical(token):
            raise InvalidToken("Malformed token")

        try:
            data = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpired(str(exc)) from exc
        except jwt.InvalidTokenError as exc:
            logger.debug("Token rejected: %s", exc)
            raise InvalidToken(str(exc)) from exc

        try:
            subject = int(data["sub"])
            issued_at = datetime.fromtimestamp(int(data["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(data["exp"]), tz=timezone.utc)
        except (TypeError, ValueError) as exc:
            raise InvalidToken("Malformed claims") from exc

        username = data["username"]
        if not isinstance(username, str) or not username:
            raise InvalidToken("Malformed claims")

        return TokenClaims(subject=subject, username=username, issued_at=issued_at, expires_at=expires_at)
