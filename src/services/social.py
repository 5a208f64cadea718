"""
Social state machine: account registry, friendship graph and channel logs.

Every mutating operation validates the caller and its counterpart before
writing anything, and runs validation and write under the same lock.
"""

import logging
import threading
import time
from typing import Callable, List

from src.config.settings import settings
from src.core.channel import derive_channel
from src.core.errors import (
    EmptyMessage,
    InvalidEncoding,
    InvalidPagination,
    InvalidTarget,
    NoFriendsAtAll,
    NoSuchChannel,
    NotFriend,
    SelfReference,
    Unauthorized,
)
from src.core.message import ChannelId, Message
from src.services.storage import StorageService

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = settings.default_page_limit

Clock = Callable[[], int]


def now_ms() -> int:
    """Wall clock in epoch milliseconds. It may step back, SocialService clamps it."""
    return time.time_ns() // 1_000_000


def _check_utf8(*values: str) -> None:
    # Lone surrogates can't be hashed nor stored
    for value in values:
        try:
            value.encode("utf-8")
        except UnicodeEncodeError:
            raise InvalidEncoding("Account ids and messages must be valid UTF-8 text.") from None


def _check_page(limit: int, offset: int) -> None:
    if limit < 0 or offset < 0:
        raise InvalidPagination(f"limit and offset must be non-negative (got limit={limit}, offset={offset}).")


class SocialService:
    """
    Owns the whole social state of the node.
    It can't exist without a storage, so there is no uninitialized state.
    """

    def __init__(self, storage: StorageService, clock: Clock = now_ms) -> None:
        self._storage = storage
        self._clock = clock
        self._lock = threading.Lock()
        # created_at_ms never goes below the newest stored message, even across restarts
        self._last_created_at_ms = storage.get_latest_created_at_ms()

    @property
    def storage(self) -> StorageService:
        """Returns the backing storage service"""
        return self._storage

    # === Account registry ===

    def register(self, caller: str) -> bool:
        """
        Self-registration of the caller.
        Returns True if the account is new, False if it was already registered.
        """
        _check_utf8(caller)
        with self._lock:
            created = self._storage.add_account(caller)

        if created:
            logger.info("Registered account %s", caller)
        else:
            logger.debug("Account %s already registered", caller)
        return created

    def is_registered(self, account_id: str) -> bool:
        """Checks if the account opted in"""
        _check_utf8(account_id)
        return self._storage.account_exists(account_id)

    def list_accounts(self, limit: int = DEFAULT_LIMIT, offset: int = 0) -> List[str]:
        """Returns a page of the registry, most recently registered first."""
        _check_page(limit, offset)
        return self._storage.get_accounts(limit=limit, offset=offset)

    def count_accounts(self) -> int:
        """Returns the number of registered accounts"""
        return self._storage.count_accounts()

    # === Friendship graph ===

    def add_friend(self, caller: str, target: str) -> None:
        """
        Establishes the friendship between caller and target in both directions.
        Adding an existing friendship again is a no-op.
        """
        _check_utf8(caller, target)
        with self._lock:
            if not self._storage.account_exists(caller):
                raise Unauthorized("You must be a user to add a friend.")
            if not self._storage.account_exists(target):
                raise InvalidTarget("Your friend must be a user.")
            if caller == target:
                raise SelfReference("You cannot add yourself as friend.")

            self._storage.set_friendship(caller, target)

        logger.info("Friendship established between %s and %s", caller, target)

    def are_friends(self, user_id: str, friend_id: str) -> bool:
        """True iff the directed fact user_id -> friend_id is set."""
        _check_utf8(user_id, friend_id)
        return self._storage.get_friendship(user_id, friend_id) is True

    # === Channel logs ===

    def get_channel_id(self, user_id: str, receiver_id: str) -> ChannelId:
        """Channel of the ordered pair, no normalization of the order is applied."""
        _check_utf8(user_id, receiver_id)
        return derive_channel(user_id, receiver_id)

    def send_message(self, caller: str, receiver: str, content: str) -> ChannelId:
        """
        Appends a message from caller to the (caller, receiver) channel.
        Returns the channel id.
        """
        _check_utf8(caller, receiver, content)
        with self._lock:
            if not self._storage.account_exists(caller):
                raise Unauthorized("You must be a user to send a message.")
            if not self._storage.account_exists(receiver):
                raise InvalidTarget("The receiver must be a user to receive a message.")
            if not self._storage.has_friends(caller):
                raise NoFriendsAtAll("You do not have any friend.")
            if not self.are_friends(caller, receiver):
                raise NotFriend("You are not friends with the given receiver.")
            if not content:
                raise EmptyMessage("The message can not be empty.")

            channel_id = self.get_channel_id(caller, receiver)
            created_at_ms = max(self._clock(), self._last_created_at_ms)
            message = Message(author=caller, content=content, created_at_ms=created_at_ms)
            self._storage.append_message(channel_id, message)
            self._last_created_at_ms = created_at_ms

        logger.info("Message from %s appended to channel %s", caller, channel_id.hex())
        return channel_id

    def get_messages(
        self, user_id: str, receiver_id: str, limit: int = DEFAULT_LIMIT, offset: int = 0
    ) -> List[Message]:
        """
        Returns a page of the (user_id, receiver_id) channel, most recent first.
        Raises NoSuchChannel if nothing was ever sent on it.
        """
        _check_page(limit, offset)
        channel_id = self.get_channel_id(user_id, receiver_id)

        if not self._storage.channel_exists(channel_id):
            raise NoSuchChannel("The user does not have any messages.")

        logger.debug("Reading channel %s (limit=%d, offset=%d)", channel_id.hex(), limit, offset)
        return self._storage.get_channel_messages(channel_id, limit=limit, offset=offset)
