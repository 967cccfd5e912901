from sqlalchemy import Column, Integer, String
from dataclasses import dataclass
from datetime import datetime
from .db import Base


class UserRecord(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)

    def to_user(self) -> "User":
        return User(id=self.id, username=self.username, password_hash=self.password_hash)

    def __repr__(self):
        return f"<UserRecord(id={self.id}, username={self.username})>"


@dataclass(frozen=True)
class User:
    """Detached, read-only view of a stored user."""
    id: int
    username: str
    password_hash: str

    def __repr__(self):
        # Keep the hash out of logs and tracebacks
        return f"User(id={self.id}, username={self.username!r})"


@dataclass(frozen=True)
class TokenClaims:
    """Claims carried by an issued session token."""
    subject: int
    username: str
    issued_at: datetime
    expires_at: datetime
