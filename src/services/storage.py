"""
Defines storage management APIs, using SQLite, for
the node's persistence of accounts, friendships and channel logs.
"""

import logging
import sqlite3
from contextlib import contextmanager
from typing import Iterator, List, Optional

from src.core.errors import StorageIntegrityError
from src.core.message import ChannelId, Message

logger = logging.getLogger(__name__)


class StorageService:
    """Handles local storage in nodes for persistence."""

    def __init__(self, db_name: str):
        self.db_name = db_name
        self._init_db()

    @contextmanager
    def _get_conn(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_name)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._get_conn() as conn:
            cursor = conn.cursor()

            # seq keeps the insertion order of the registry
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS accounts (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    account_id TEXT NOT NULL UNIQUE
                    )
                """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS friendships (
                    user_id TEXT NOT NULL,
                    friend_id TEXT NOT NULL,
                    is_friend INTEGER NOT NULL,
                    PRIMARY KEY (user_id, friend_id)
                    )
                """
            )

            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS messages (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    channel_id BLOB NOT NULL,
                    author TEXT NOT NULL,
                    content TEXT NOT NULL,
                    created_at_ms INTEGER NOT NULL
                    )
                """
            )

            cursor.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_messages_channel_id
                    ON messages(channel_id, seq)
                """
            )

            conn.commit()

    # === Accounts ===

    def add_account(self, account_id: str) -> bool:
        """
        Inserts an account in the registry.
        Returns False if it was already registered.
        """
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT OR IGNORE INTO accounts (account_id) VALUES (?)
                """,
                (account_id,),
            )
            conn.commit()
            return cursor.rowcount == 1

    def account_exists(self, account_id: str) -> bool:
        """Checks registry membership."""
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT 1 FROM accounts WHERE account_id = ?
                """,
                (account_id,),
            )
            return cursor.fetchone() is not None

    def get_accounts(self, limit: int = 10, offset: int = 0) -> List[str]:
        """Returns a page of the registry, most recently registered first."""
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT account_id FROM accounts
                    ORDER BY seq DESC
                    LIMIT ? OFFSET ?
                """,
                (limit, offset),
            )
            return [row["account_id"] for row in cursor.fetchall()]

    def count_accounts(self) -> int:
        """Exact cardinality of the registry."""
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS total FROM accounts")
            return int(cursor.fetchone()["total"])

    # === Friendships ===

    def set_friendship(self, user_id: str, friend_id: str) -> None:
        """
        Writes both directions of a friendship edge in a single transaction.

        The rows are written user->friend first, then friend->user, and read
        back before commit: if either direction is missing the transaction
        is rolled back and StorageIntegrityError is raised.
        """
        with self._get_conn() as conn:
            try:
                cursor = conn.cursor()
                for source, target in ((user_id, friend_id), (friend_id, user_id)):
                    cursor.execute(
                        """
                        INSERT OR REPLACE INTO friendships
                            (user_id, friend_id, is_friend)
                            VALUES (?, ?, 1)
                        """,
                        (source, target),
                    )

                cursor.execute(
                    """
                    SELECT COUNT(*) AS total FROM friendships
                        WHERE is_friend = 1
                        AND ((user_id = ? AND friend_id = ?) OR (user_id = ? AND friend_id = ?))
                    """,
                    (user_id, friend_id, friend_id, user_id),
                )
                if cursor.fetchone()["total"] != 2:
                    raise StorageIntegrityError(
                        f"Friendship between {user_id} and {friend_id} was not written in both directions."
                    )
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    def get_friendship(self, user_id: str, friend_id: str) -> Optional[bool]:
        """
        Returns the flag of the directed fact user->friend,
        or None if it was never written.
        """
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT is_friend FROM friendships
                    WHERE user_id = ? AND friend_id = ?
                """,
                (user_id, friend_id),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return bool(row["is_friend"])

    def has_friends(self, user_id: str) -> bool:
        """Checks if the account has at least one friendship entry."""
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT 1 FROM friendships WHERE user_id = ? LIMIT 1
                """,
                (user_id,),
            )
            return cursor.fetchone() is not None

    # === Channel logs ===

    def append_message(self, channel_id: ChannelId, message: Message) -> None:
        """Appends a message at the end of the channel log."""
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO messages
                    (channel_id, author, content, created_at_ms)
                    VALUES (?, ?, ?, ?)
                """,
                (channel_id, message.author, message.content, message.created_at_ms),
            )
            conn.commit()

    def channel_exists(self, channel_id: ChannelId) -> bool:
        """A channel exists once its first message is appended."""
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT 1 FROM messages WHERE channel_id = ? LIMIT 1
                """,
                (channel_id,),
            )
            return cursor.fetchone() is not None

    def get_channel_messages(self, channel_id: ChannelId, limit: int = 10, offset: int = 0) -> List[Message]:
        """Retreives a page of the channel log, most recent first."""
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT author, content, created_at_ms FROM messages
                    WHERE channel_id = ?
                    ORDER BY seq DESC
                    LIMIT ? OFFSET ?
                """,
                (channel_id, limit, offset),
            )
            return [Message(**dict(row)) for row in cursor.fetchall()]

    def get_latest_created_at_ms(self) -> int:
        """
        Retreives the highest message timestamp stored.
        Useful to keep timestamps non-decreasing across restarts.
        """
        with self._get_conn() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT MAX(created_at_ms) AS latest FROM messages")
            latest = cursor.fetchone()["latest"]
            return int(latest) if latest is not None else 0
