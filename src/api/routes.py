"""
API Routes definition.
Handles caller identification, account registry, friendships and channel logs.
"""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel

from src.api.dependencies import get_current_user, get_social_service
from src.config.settings import settings
from src.core.auth_models import LoginRequest, User
from src.core.channel import channel_to_hex
from src.core.message import Message
from src.services.auth import current_auth_provider
from src.services.node import node_service
from src.services.social import SocialService

logger = logging.getLogger(__name__)

router = APIRouter()


class RegisterResponse(BaseModel):
    """Outcome of a self-registration."""

    account_id: str
    created: bool


class AddFriendRequest(BaseModel):
    """Payload for adding a friend."""

    target: str


class SendMessageRequest(BaseModel):
    """Payload for sending a message."""

    receiver: str
    content: str


class ChannelResponse(BaseModel):
    """Hex encoded channel id."""

    channel_id: str


# === PUBLIC ROUTES ===


@router.post("/login", response_model=User)
async def login(credentials: LoginRequest) -> User:
    """
    Checks the caller identity the same way protected routes do,
    so clients can validate an account id before using it.
    """
    user = await current_auth_provider.authenticate(credentials)

    if not user or not user.is_authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials.")

    return user


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """Returns the node status"""
    return {"status": "online", "initialized": node_service.is_initialized()}


@router.get("/accounts", response_model=List[str])
async def list_accounts(
    limit: int = Query(default=settings.default_page_limit, ge=0),
    offset: int = Query(default=0, ge=0),
    social: SocialService = Depends(get_social_service),
) -> List[str]:
    """Registered accounts, most recent first."""
    return social.list_accounts(limit=limit, offset=offset)


@router.get("/accounts/count")
async def count_accounts(social: SocialService = Depends(get_social_service)) -> Dict[str, int]:
    """Number of registered accounts."""
    return {"count": social.count_accounts()}


@router.get("/friends")
async def are_friends(
    user_id: str, friend_id: str, social: SocialService = Depends(get_social_service)
) -> Dict[str, bool]:
    """Checks the friendship from user_id to friend_id."""
    return {"are_friends": social.are_friends(user_id, friend_id)}


@router.get("/channels", response_model=ChannelResponse)
async def get_channel_id(
    user_id: str, receiver_id: str, social: SocialService = Depends(get_social_service)
) -> ChannelResponse:
    """Channel id of the ordered (user_id, receiver_id) pair."""
    return ChannelResponse(channel_id=channel_to_hex(social.get_channel_id(user_id, receiver_id)))


@router.get("/messages", response_model=List[Message])
async def get_messages(
    user_id: str,
    receiver_id: str,
    limit: int = Query(default=settings.default_page_limit, ge=0),
    offset: int = Query(default=0, ge=0),
    social: SocialService = Depends(get_social_service),
) -> List[Message]:
    """
    Retrieves a page of the (user_id, receiver_id) channel, most recent first.
    """
    return social.get_messages(user_id, receiver_id, limit=limit, offset=offset)


# === Protected routes ===


@router.get("/me", response_model=User)
async def get_me(current_user: User = Depends(get_current_user)) -> User:
    """Returns the current caller"""
    return current_user


@router.post("/accounts", response_model=RegisterResponse)
async def register(
    response: Response,
    current_user: User = Depends(get_current_user),
    social: SocialService = Depends(get_social_service),
) -> RegisterResponse:
    """Registers the caller. Answers 201 for a new account, 200 otherwise."""
    created = social.register(current_user.username)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return RegisterResponse(account_id=current_user.username, created=created)


@router.post("/friends")
async def add_friend(
    payload: AddFriendRequest,
    current_user: User = Depends(get_current_user),
    social: SocialService = Depends(get_social_service),
) -> Dict[str, str]:
    """Adds the target as friend of the caller, in both directions."""
    social.add_friend(current_user.username, payload.target)
    return {"status": "ok"}


@router.post("/messages", response_model=ChannelResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    payload: SendMessageRequest,
    current_user: User = Depends(get_current_user),
    social: SocialService = Depends(get_social_service),
) -> ChannelResponse:
    """Sends a message to a friend. Returns the channel it was appended to."""
    channel_id = social.send_message(current_user.username, payload.receiver, payload.content)
    return ChannelResponse(channel_id=channel_to_hex(channel_id))
