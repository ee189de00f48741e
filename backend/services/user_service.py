import asyncio
import logging
from typing import Optional

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from constants import LINE_PROFILE_URL, LINE_TOKEN_URL
from database import run_in_session, transaction
from errors import IdentityProviderError, StorageError, UserNotFound
from models import User
from repositories import user_repository
from schemas import LineProfile, UserListResponse, UserResponse
from security import decrypt_token, encrypt_token

logger = logging.getLogger("shopping-cart")


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.identity_timeout_seconds)


async def exchange_token(code: str) -> str:
    form = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": settings.line_redirect_uri,
        "client_id": settings.line_channel_id,
        "client_secret": settings.line_channel_secret,
    }
    try:
        async with _client() as client:
            response = await client.post(LINE_TOKEN_URL, data=form)
        response.raise_for_status()
        token_data = response.json()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("LINE token exchange failed: %s", exc)
        raise IdentityProviderError("Failed to exchange authorization code") from exc

    access_token = token_data.get("access_token") if isinstance(token_data, dict) else None
    if not isinstance(access_token, str) or not access_token:
        raise IdentityProviderError("Failed to parse access token")
    return access_token


async def get_line_profile(access_token: str) -> LineProfile:
    headers = {"Authorization": f"Bearer {access_token}"}
    try:
        async with _client() as client:
            response = await client.get(LINE_PROFILE_URL, headers=headers)
        response.raise_for_status()
        return LineProfile.model_validate(response.json())
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("LINE profile lookup failed: %s", exc)
        raise IdentityProviderError("Failed to fetch LINE profile") from exc


def get_user(session: Session, user_id: int) -> User:
    user = user_repository.find_by_id(session, user_id)
    if user is None:
        raise UserNotFound(f"User {user_id} not found")
    return user


def save_or_update_user(session: Session, profile: LineProfile, access_token: str) -> User:
    """Create the user for this LINE account, or refresh the stored one."""
    user = user_repository.find_by_line_id(session, profile.user_id)
    try:
        with transaction(session):
            if user is None:
                user = User(
                    line_id=profile.user_id,
                    display_name=profile.display_name,
                    email=profile.email,
                    line_token_encrypted=encrypt_token(access_token),
                    is_member=False,
                    is_deleted=False,
                )
                user_repository.create(session, user)
                logger.info("Registered user %s for LINE account %s", user.id, user.line_id)
            else:
                user.display_name = profile.display_name
                user.email = profile.email or user.email
                user.line_token_encrypted = encrypt_token(access_token)
                user_repository.update(session, user)
    except SQLAlchemyError as exc:
        raise StorageError("Failed to store user") from exc
    return user


def _stored_token(session: Session, user_id: int) -> Optional[str]:
    user = get_user(session, user_id)
    if not user.line_token_encrypted:
        return None
    return decrypt_token(user.line_token_encrypted)


def _save_response(session: Session, profile: LineProfile, access_token: str) -> UserResponse:
    return UserResponse.model_validate(save_or_update_user(session, profile, access_token))


async def login_with_code(code: str) -> UserResponse:
    access_token = await exchange_token(code)
    profile = await get_line_profile(access_token)
    return await asyncio.to_thread(run_in_session, _save_response, profile, access_token)


async def sync_profile(user_id: int) -> UserResponse:
    access_token = await asyncio.to_thread(run_in_session, _stored_token, user_id)
    if not access_token:
        raise IdentityProviderError("No LINE access token stored for this user")
    profile = await get_line_profile(access_token)
    return await asyncio.to_thread(run_in_session, _save_response, profile, access_token)


async def read_user(user_id: int) -> UserResponse:
    return await asyncio.to_thread(
        run_in_session,
        lambda session: UserResponse.model_validate(get_user(session, user_id)),
    )


async def resolve_user_id(line_id: str) -> Optional[int]:
    def _lookup(session: Session) -> Optional[int]:
        user = user_repository.find_by_line_id(session, line_id)
        return user.id if user else None

    return await asyncio.to_thread(run_in_session, _lookup)


async def list_users() -> UserListResponse:
    def _list(session: Session) -> UserListResponse:
        users = user_repository.find_all(session)
        return UserListResponse(items=[UserResponse.model_validate(u) for u in users])

    return await asyncio.to_thread(run_in_session, _list)
