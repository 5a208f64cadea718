"""
Define Message structure to ensure consinstency in the system
"""

from pydantic import BaseModel, ConfigDict

# Raw 32 bytes Keccak-256 digest of the (sender, receiver) pair
ChannelId = bytes


class Message(BaseModel):
    """A message appended to a channel log. Immutable once stored."""

    model_config = ConfigDict(frozen=True)

    author: str
    content: str
    created_at_ms: int
