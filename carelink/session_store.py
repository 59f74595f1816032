"""Local key-value storage for the persisted login session."""

import datetime
import json
import logging
import sqlite3
from contextlib import contextmanager
from typing import Generator, Optional

from carelink.models import Session, UserSummary

TOKEN_KEY = "user_token"
USER_DATA_KEY = "user_data"

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS kv_store (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at INTEGER NOT NULL
);
"""


class SessionStore:
    """Device-local key-value store backed by SQLite.

    Values are opaque strings. The session lives under two fixed keys:
    ``user_token`` holds the user id and ``user_data`` the JSON-encoded
    UserSummary cached at login.
    """

    def __init__(self, db_file_path: str):
        self.db_file = db_file_path
        self.logger = logging.getLogger(self.__class__.__name__)
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the store with the required table"""
        try:
            with self._get_connection() as conn:
                conn.executescript(CREATE_TABLE_SQL)
                conn.commit()
                self.logger.debug(f"Session store initialized: {self.db_file}")
        except sqlite3.Error as e:
            self.logger.critical(
                f"Failed to initialize session store {self.db_file}: {str(e)}"
            )
            raise

    @contextmanager
    def _get_connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Context manager for database connections with proper error handling"""
        conn = None
        try:
            conn = sqlite3.connect(self.db_file)
            conn.row_factory = sqlite3.Row
            yield conn
        except sqlite3.Error as e:
            self.logger.error(f"Session store error ({self.db_file}): {str(e)}")
            raise
        finally:
            if conn:
                conn.close()

    def get_item(self, key: str) -> Optional[str]:
        with self._get_connection() as conn:
            row = conn.execute(
                "SELECT value FROM kv_store WHERE key = ?", (key,)
            ).fetchone()
            return row["value"] if row else None

    def set_item(self, key: str, value: str) -> None:
        now = int(datetime.datetime.now(datetime.timezone.utc).timestamp())
        with self._get_connection() as conn:
            with conn:
                conn.execute(
                    """
                    INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        value = excluded.value,
                        updated_at = excluded.updated_at
                    """,
                    (key, value, now),
                )
        self.logger.debug(f"Stored key '{key}'")

    def remove_item(self, key: str) -> None:
        with self._get_connection() as conn:
            with conn:
                conn.execute("DELETE FROM kv_store WHERE key = ?", (key,))

    def clear(self) -> None:
        """Remove every stored key."""
        with self._get_connection() as conn:
            with conn:
                cursor = conn.execute("DELETE FROM kv_store")
                self.logger.info(f"Cleared session store ({cursor.rowcount} keys removed)")

    def save_session(self, user: UserSummary) -> Session:
        """Persist the token and user snapshot after a successful login."""
        session = Session(token=user.user_id, user=user)
        self.set_item(TOKEN_KEY, session.token)
        self.set_item(USER_DATA_KEY, json.dumps(user.to_dict()))
        self.logger.info(
            f"Saved session for user {user.user_id} ({user.user_type})"
        )
        return session

    def load_session(self) -> Optional[Session]:
        """Return the persisted session, or None when absent or unreadable."""
        try:
            token = self.get_item(TOKEN_KEY)
            user_data = self.get_item(USER_DATA_KEY)
        except sqlite3.Error as e:
            self.logger.warning(f"Session could not be read from storage: {e}")
            return None
        if not token or not user_data:
            return None
        try:
            user = UserSummary.from_dict(json.loads(user_data))
        except (ValueError, KeyError, TypeError) as e:
            self.logger.warning(f"Stored user data could not be parsed: {e}")
            return None
        return Session(token=token, user=user)
