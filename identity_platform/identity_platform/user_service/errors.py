"""
Error taxonomy for the user service.

Infrastructure errors (StoreUnavailable, SigningUnavailable) carry detail for
internal logs only; callers receive the opaque public_message.
"""


class UserServiceError(Exception):
    """Base class for every error raised by the user service."""

    public_message = "Internal error"


class StoreUnavailable(UserServiceError):
    """The credential store could not be reached or the query failed."""

    public_message = "Service temporarily unavailable"


class UserNotFound(UserServiceError):
    """No user record matches the requested username."""

    public_message = "User not found"


class UsernameTaken(UserServiceError):
    """A user record with this username already exists."""

    public_message = "Username already exists"


class AuthenticationFailed(UserServiceError):
    """Bad credentials. Deliberately identical for unknown users and wrong passwords."""

    public_message = "Invalid credentials"

    def __init__(self):
        super().__init__(self.public_message)


class SigningUnavailable(UserServiceError):
    """Signing key material is missing or unusable."""

    public_message = "Token signing unavailable"


class InvalidToken(UserServiceError):
    public_message = "Invalid token"


class TokenExpired(UserServiceError):
    public_message = "Token expired"
