"""Unit tests for storage service and CRUD ops on DB."""

# Disabling pylint warning as it is a false positive due to pytest fixtures.
# pylint: disable=redefined-outer-name
import sqlite3
from unittest.mock import patch

import pytest

from src.core.channel import derive_channel
from src.core.errors import StorageIntegrityError
from src.core.message import Message
from src.services.storage import StorageService


@pytest.fixture
def storage_service(tmp_path):
    """
    Creates a temporary file-based DB.
    tmp_path is a built-in pytest fixture that provides a temporary directory
    """
    db_file = tmp_path / "test_node.db"
    return StorageService(str(db_file))


def test_add_account_is_idempotent(storage_service):
    """A second insertion of the same account reports it as already present."""
    assert storage_service.add_account("alice") is True
    assert storage_service.add_account("alice") is False

    assert storage_service.account_exists("alice")
    assert not storage_service.account_exists("bob")
    assert storage_service.count_accounts() == 1


def test_get_accounts_reverse_insertion_order(storage_service):
    """Most recently registered accounts come first."""
    for name in ["a", "b", "c", "d"]:
        storage_service.add_account(name)

    assert storage_service.get_accounts() == ["d", "c", "b", "a"]
    assert storage_service.get_accounts(limit=2, offset=1) == ["c", "b"]
    assert storage_service.get_accounts(limit=10, offset=10) == []


def test_set_friendship_writes_both_directions(storage_service):
    """Test that a single call stores the edge in both directions."""
    storage_service.set_friendship("alice", "bob")

    assert storage_service.get_friendship("alice", "bob") is True
    assert storage_service.get_friendship("bob", "alice") is True
    assert storage_service.get_friendship("alice", "carol") is None

    assert storage_service.has_friends("alice")
    assert storage_service.has_friends("bob")
    assert not storage_service.has_friends("carol")


def test_set_friendship_twice_is_noop(storage_service):
    """Re-adding rewrites the same rows."""
    storage_service.set_friendship("alice", "bob")
    storage_service.set_friendship("bob", "alice")

    assert storage_service.get_friendship("alice", "bob") is True
    assert storage_service.get_friendship("bob", "alice") is True


def test_set_friendship_rolls_back_on_partial_write(storage_service):
    """
    If the read back does not find both directions, nothing is committed.
    """
    # Self edges collapse in a single row, so the read back only finds one.
    with pytest.raises(StorageIntegrityError):
        storage_service.set_friendship("alice", "alice")

    assert storage_service.get_friendship("alice", "alice") is None
    assert not storage_service.has_friends("alice")


def test_set_friendship_rolls_back_on_error(storage_service):
    """A failure between the two writes leaves no direction behind."""
    original_connect = sqlite3.connect

    class FailingCursor:
        """Lets the first INSERT through and fails the second one."""

        def __init__(self, cursor):
            self._cursor = cursor
            self._inserts = 0

        def execute(self, sql, params=()):
            if "INSERT" in sql:
                self._inserts += 1
                if self._inserts == 2:
                    raise RuntimeError("disk unplugged")
            return self._cursor.execute(sql, params)

        def __getattr__(self, name):
            return getattr(self._cursor, name)

    class FailingConnection:
        """Wraps a real connection, handing out failing cursors."""

        def __init__(self, conn):
            self._conn = conn

        def cursor(self):
            return FailingCursor(self._conn.cursor())

        def __getattr__(self, name):
            return getattr(self._conn, name)

        def __setattr__(self, name, value):
            if name == "_conn":
                object.__setattr__(self, name, value)
            else:
                setattr(self._conn, name, value)

    with patch(
        "src.services.storage.sqlite3.connect",
        side_effect=lambda *a, **kw: FailingConnection(original_connect(*a, **kw)),
    ):
        with pytest.raises(RuntimeError):
            storage_service.set_friendship("alice", "bob")

    assert storage_service.get_friendship("alice", "bob") is None
    assert storage_service.get_friendship("bob", "alice") is None


def test_append_and_read_channel(storage_service):
    """
    Tests message append and retrieval, most recent first
    """
    channel = derive_channel("alice", "bob")
    assert not storage_service.channel_exists(channel)

    for i in range(5):
        storage_service.append_message(channel, Message(author="alice", content=f"msg_{i}", created_at_ms=1000 + i))

    assert storage_service.channel_exists(channel)
    assert len(storage_service.get_channel_messages(channel, limit=100)) == 5

    messages = storage_service.get_channel_messages(channel, limit=10)
    assert [m.content for m in messages] == ["msg_4", "msg_3", "msg_2", "msg_1", "msg_0"]
    assert messages[0].author == "alice"
    assert messages[0].created_at_ms == 1004

    page = storage_service.get_channel_messages(channel, limit=2, offset=2)
    assert [m.content for m in page] == ["msg_2", "msg_1"]


def test_channels_are_isolated(storage_service):
    """Messages of another channel never leak into a page."""
    ab = derive_channel("alice", "bob")
    ba = derive_channel("bob", "alice")

    storage_service.append_message(ab, Message(author="alice", content="hi", created_at_ms=1))
    storage_service.append_message(ba, Message(author="bob", content="noise", created_at_ms=2))

    assert [m.content for m in storage_service.get_channel_messages(ab)] == ["hi"]
    assert [m.content for m in storage_service.get_channel_messages(ba)] == ["noise"]


def test_state_survives_reopen(tmp_path):
    """A new service on the same file sees the previous state."""
    db_file = str(tmp_path / "persist.db")
    first = StorageService(db_file)
    first.add_account("alice")
    first.add_account("bob")
    first.set_friendship("alice", "bob")
    first.append_message(derive_channel("alice", "bob"), Message(author="alice", content="hi", created_at_ms=1))

    second = StorageService(db_file)
    assert second.count_accounts() == 2
    assert second.get_friendship("bob", "alice") is True
    assert second.get_channel_messages(derive_channel("alice", "bob"))[0].content == "hi"


def test_get_latest_created_at_ms(storage_service):
    """Highest stored timestamp, whatever the channel, 0 on an empty log."""
    assert storage_service.get_latest_created_at_ms() == 0

    storage_service.append_message(derive_channel("a", "b"), Message(author="a", content="x", created_at_ms=50))
    storage_service.append_message(derive_channel("b", "a"), Message(author="b", content="y", created_at_ms=20))

    assert storage_service.get_latest_created_at_ms() == 50
