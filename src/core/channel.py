"""
Channel id derivation.

A channel groups the messages exchanged by an ordered pair of accounts.
Its id is the Keccak-256 digest of the two account ids concatenated
in the order they are given, with no separator and no sorting, so
channel(a, b) and channel(b, a) are different channels.
"""

from Crypto.Hash import keccak

from src.core.message import ChannelId

CHANNEL_ID_SIZE = 32


def derive_channel(user_id: str, receiver_id: str) -> ChannelId:
    """
    Computes the channel id of the (user_id, receiver_id) pair.

    Args:
        user_id (str): The first account of the pair.
        receiver_id (str): The second account of the pair.

    Returns:
        ChannelId: The raw 32 bytes digest.
    """
    hasher = keccak.new(digest_bits=256)
    hasher.update(user_id.encode("utf-8") + receiver_id.encode("utf-8"))
    return hasher.digest()


def channel_to_hex(channel_id: ChannelId) -> str:
    """Lowercase hex rendering used on the wire."""
    return channel_id.hex()
