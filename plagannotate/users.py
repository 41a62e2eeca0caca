"""Username registration and lookup."""
from __future__ import annotations

import logging
import sqlite3
from typing import List, Optional

from .errors import StoreError, UserExistsError, UserNotFoundError, ValidationError
from .shared.database import Database, fetch_all, fetch_one
from .shared.models import User

LOGGER = logging.getLogger(__name__)


def _clean_username(username: str) -> str:
    text = (username or "").strip()
    if not text:
        raise ValidationError("Username is required")
    return text


class IdentityProvider:
    """Maps plaintext usernames to stable numeric user ids."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def register(self, username: str) -> User:
        name = _clean_username(username)
        try:
            with self.db.transaction() as conn:
                cur = conn.execute("INSERT INTO users(username) VALUES (?)", (name,))
                user_id = int(cur.lastrowid)
        except sqlite3.IntegrityError as exc:
            raise UserExistsError(name) from exc
        except sqlite3.Error as exc:
            LOGGER.exception("Failed to register user %s", name)
            raise StoreError("Could not register user") from exc
        LOGGER.info("Registered user %s (id=%d)", name, user_id)
        return User(username=name, user_id=user_id)

    def _lookup(self, name: str) -> Optional[sqlite3.Row]:
        try:
            with self.db.reader() as conn:
                return fetch_one(conn, "SELECT user_id, username FROM users WHERE username=?", (name,))
        except sqlite3.Error as exc:
            LOGGER.exception("Failed to look up user %s", name)
            raise StoreError("Could not look up user") from exc

    def login(self, username: str) -> User:
        name = _clean_username(username)
        row = self._lookup(name)
        if row is None:
            raise UserNotFoundError(name)
        return User.from_row(row)

    def user_id_for(self, username: str) -> int:
        name = _clean_username(username)
        row = self._lookup(name)
        if row is None:
            raise UserNotFoundError(name)
        return int(row["user_id"])

    def list_users(self) -> List[User]:
        try:
            with self.db.reader() as conn:
                rows = fetch_all(conn, "SELECT user_id, username FROM users ORDER BY user_id")
        except sqlite3.Error as exc:
            LOGGER.exception("Failed to list users")
            raise StoreError("Could not list users") from exc
        return [User.from_row(row) for row in rows]
