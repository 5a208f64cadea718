"""
FastAPI dependencies for caller identification and state validation.
"""

from typing import Optional

from fastapi import Header, HTTPException, status

from src.core.auth_models import LoginRequest, User
from src.services.auth import current_auth_provider
from src.services.node import node_service
from src.services.social import SocialService


async def get_current_user(x_account_id: Optional[str] = Header(default=None)) -> User:
    """
    Dependency that resolves the caller from the X-Account-Id header.
    """
    if not x_account_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-Account-Id header.")

    # Header values arrive latin-1 decoded, account ids are UTF-8
    try:
        account_id = x_account_id.encode("latin-1").decode("utf-8")
    except UnicodeError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="X-Account-Id is not valid UTF-8."
        ) from None

    user = await current_auth_provider.authenticate(LoginRequest(username=account_id))
    if not user or not user.is_authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid caller identity.")
    return user


def get_social_service() -> SocialService:
    """
    Dependency that checks if the node is initialized.
    Returns the social state machine.
    """
    if not node_service.is_initialized() or not node_service.social:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Node not initialized.")
    return node_service.social
