"""Caller identity provider, resolves the account behind each request."""

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Optional

from src.core.auth_models import LoginRequest, User

logger = logging.getLogger(__name__)


class IAuthProvider(ABC):
    """
    Abstract interface for the caller identity provider.
    """

    @abstractmethod
    async def authenticate(self, credentials: LoginRequest) -> Optional[User]:
        """
        Verifies credentials and returns the caller if valid,
        otherwise None.
        """
        pass


class DummyAuthProvider(IAuthProvider):
    """
    Trusts the given username as the caller's account id,
    without verifying any password.
    The user id is derived from the account id so it is stable across calls.
    """

    async def authenticate(self, credentials: LoginRequest) -> Optional[User]:
        account_id = credentials.username.strip()
        if not account_id:
            logger.warning("Identification attempt with empty account id")
            return None

        user_uuid = uuid.uuid5(uuid.NAMESPACE_DNS, account_id)

        return User(id=user_uuid, username=account_id, is_authenticated=True)


# Create a singleton for Auth provider
current_auth_provider: IAuthProvider = DummyAuthProvider()
