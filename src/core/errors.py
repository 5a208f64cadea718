"""
Error hierarchy for the social state machine.

Every error carries a stable code and the HTTP status the API maps it to.
All of them are raised before any state is written.
"""

from typing import Any, Dict


class SocialError(Exception):
    """Base exception for all the rejected operations."""

    code: str = "SOCIAL_ERROR"
    http_status: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_response(self) -> Dict[str, Any]:
        """Converts the error to the REST error envelope."""
        return {"error": {"code": self.code, "message": self.message}}


class Unauthorized(SocialError):
    """The caller is not a registered account."""

    code = "UNAUTHORIZED"
    http_status = 403


class InvalidTarget(SocialError):
    """The referenced account is not registered."""

    code = "INVALID_TARGET"
    http_status = 404


class SelfReference(SocialError):
    """The caller referenced itself where a counterpart is required."""

    code = "SELF_REFERENCE"
    http_status = 400


class NoFriendsAtAll(SocialError):
    """The caller has no friendship at all."""

    code = "NO_FRIENDS_AT_ALL"
    http_status = 403


class NotFriend(SocialError):
    """The caller is not friend with the given account."""

    code = "NOT_FRIEND"
    http_status = 403


class EmptyMessage(SocialError):
    """Message content has zero length."""

    code = "EMPTY_MESSAGE"
    http_status = 400


class NoSuchChannel(SocialError):
    """No message was ever appended to the requested channel."""

    code = "NO_SUCH_CHANNEL"
    http_status = 404


class InvalidPagination(SocialError, ValueError):
    """Negative limit or offset."""

    code = "INVALID_PAGINATION"
    http_status = 400


class StorageIntegrityError(SocialError):
    """A friendship write left the two directions out of sync."""

    code = "STORAGE_INTEGRITY"
    http_status = 500


class InvalidEncoding(SocialError):
    """An account id or a message content can't be encoded as UTF-8."""

    code = "INVALID_ENCODING"
    http_status = 400
