"""
Credential store: the users table behind a pooled database handle.
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from .db import Database
from .errors import StoreUnavailable, UserNotFound, UsernameTaken
from .models import User, UserRecord

logger = logging.getLogger(__name__)


class CredentialStore:
    def __init__(self, database: Database):
        self.database = database

    def find_by_username(self, username: str) -> User:
        """
        Look up the single record owning ``username``.

        Raises:
            UserNotFound: if no record matches
            StoreUnavailable: if the store cannot be reached or the query fails
        """
        if not username:
            raise ValueError("username must be a non-empty string")

        try:
            with self.database.session() as db:
                record = db.execute(
                    select(UserRecord).where(UserRecord.username == username)
                ).scalar_one_or_none()
                user = record.to_user() if record else None
        except StoreUnavailable:
            logger.exception("Credential lookup failed for username=%s", username)
            raise

        if user is None:
            raise UserNotFound(username)
        return user

    def add(self, username: str, password_hash: str) -> User:
        """
        Insert a new user record.

        Raises:
            UsernameTaken: if the username already exists
            StoreUnavailable: if the store cannot be reached or the insert fails
        """
        if not username:
            raise ValueError("username must be a non-empty string")

        try:
            with self.database.session() as db:
                record = UserRecord(username=username, password_hash=password_hash)
                db.add(record)
                try:
                    db.commit()
                except IntegrityError as exc:
                    db.rollback()
                    raise UsernameTaken(username) from exc
                db.refresh(record)
                user = record.to_user()
        except StoreUnavailable:
            logger.exception("Could not create user username=%s", username)
            raise

        logger.info("User created: user_id=%s, username=%s", user.id, user.username)
        return user
