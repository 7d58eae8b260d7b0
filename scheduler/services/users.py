"""
User service: lookups, creation and credential checks.
"""

from __future__ import annotations

import uuid
from typing import Optional

import structlog
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from scheduler.core import errors
from scheduler.core.auth import dummy_password_hash, hash_password_async, verify_password_async
from scheduler.core.logging import mask_identifier
from scheduler.models.user import User

log = structlog.get_logger()


def normalize_email(email: Optional[str]) -> Optional[str]:
    return email.strip().lower() if email else None


def is_email_identifier(identifier: str) -> bool:
    """Login and registration treat anything containing '@' as an email."""
    return "@" in identifier


async def get_user(user_id: uuid.UUID, session: AsyncSession) -> Optional[User]:
    result = await session.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(email: str, session: AsyncSession) -> Optional[User]:
    result = await session.execute(
        select(User).where(func.lower(User.email) == normalize_email(email))
    )
    return result.scalar_one_or_none()


async def get_user_by_username(username: str, session: AsyncSession) -> Optional[User]:
    result = await session.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession,
    *,
    username: str,
    password: str,
    email: Optional[str] = None,
    role: str = "user",
) -> User:
    """Hash the password and insert the user. Uniqueness races raise Conflict."""
    user = User(
        username=username,
        email=normalize_email(email),
        password_hash=await hash_password_async(password),
        role=role,
    )
    session.add(user)
    try:
        await session.flush()
    except IntegrityError:
        raise errors.Conflict("This username or email is already registered.")

    log.info("user.created", user_id=str(user.id))
    return user


async def authenticate(identifier: str, password: str, session: AsyncSession) -> User:
    """Resolve login credentials.

    Identifiers containing '@' are looked up by email, anything else by
    username. Both failure paths raise the same InvalidCredentials.
    """
    by_email = is_email_identifier(identifier)
    if by_email:
        user = await get_user_by_email(identifier, session)
    else:
        user = await get_user_by_username(identifier, session)

    if not user:
        await verify_password_async(password, dummy_password_hash())
        log.info("auth.login_failure", username=mask_identifier(identifier), by_email=by_email, reason="unknown_user")
        raise errors.InvalidCredentials()

    if not await verify_password_async(password, user.password_hash):
        log.warning("auth.login_failure", user_id=str(user.id), reason="bad_password")
        raise errors.InvalidCredentials()

    log.info("auth.login_success", user_id=str(user.id))
    return user
