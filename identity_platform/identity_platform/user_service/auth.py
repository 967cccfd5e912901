from passlib.context import CryptContext
from passlib.exc import UnknownHashError

# Use pbkdf2_sha256 to avoid external bcrypt backend issues in some environments
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Salted, constant-time check. Unrecognised or corrupt hashes never match."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (UnknownHashError, ValueError):
        return False


def dummy_verify() -> None:
    """Spend the same work as a real verification, for users that do not exist."""
    pwd_context.dummy_verify()
