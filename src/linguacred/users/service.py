"""User lookup, signup, language preference and per-user locking."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from linguacred.db.models import CreditBalance, User
from linguacred.errors import UserNotFoundError

logger = logging.getLogger(__name__)


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by primary key."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def create_user(
    db: AsyncSession,
    email: str,
    display_name: str | None = None,
    selected_language: str | None = None,
) -> User:
    """Create a user together with its zero balance row."""
    user = User(
        email=email.strip().lower(),
        display_name=display_name,
        selected_language=selected_language,
    )
    db.add(user)
    await db.flush()
    db.add(CreditBalance(user_id=user.id, credits=0))
    await db.flush()
    logger.info("Created user %d", user.id)
    return user


async def lock_user(db: AsyncSession, user_id: int) -> None:
    """Take the per-user row lock for the rest of the transaction.

    All writes to one user's balance, streak and reward rows go through this
    lock, so two requests for the same user run one after the other while
    different users never wait on each other.
    """
    result = await db.execute(
        select(User.id).where(User.id == user_id).with_for_update()
    )
    if result.scalar_one_or_none() is None:
        raise UserNotFoundError


async def update_language_preference(db: AsyncSession, user_id: int, language: str) -> User:
    """Set the language whose foundation modules the user works through.

    Raises:
        ValueError: If ``language`` is blank.
    """
    normalized = language.strip().lower()
    if not normalized:
        msg = "Language must not be blank"
        raise ValueError(msg)

    await lock_user(db, user_id)
    user = await db.get(User, user_id, populate_existing=True)
    if user is None:
        raise UserNotFoundError
    user.selected_language = normalized
    await db.flush()
    logger.info("User %d selected language %s", user_id, normalized)
    return user
