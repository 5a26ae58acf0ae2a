"""Achievement unlocks with duplicate prevention."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from linguacred.credits.ledger_service import add_credits
from linguacred.database import insert_if_absent
from linguacred.db.models import UserAchievement
from linguacred.events import queue_event
from linguacred.users.service import lock_user

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AchievementResult:
    unlocked: bool
    achievement_type: str
    credits_awarded: int = 0


async def has_achievement(db: AsyncSession, user_id: int, achievement_type: str) -> bool:
    """Check if user already unlocked an achievement."""
    result = await db.execute(
        select(UserAchievement.id).where(
            UserAchievement.user_id == user_id,
            UserAchievement.achievement_type == achievement_type,
        )
    )
    return result.scalar_one_or_none() is not None


async def unlock_achievement(
    db: AsyncSession,
    user_id: int,
    achievement_type: str,
    title: str,
    description: str = "",
    *,
    badge_icon: str = "\U0001f3c6",
    badge_color: str = "gold",
    credits: int = 0,
) -> AchievementResult:
    """Unlock an achievement for a user.

    Returns ``unlocked=False`` when the user already has it. The flag row and
    the optional credit are written in the caller's transaction; the credit is
    only minted by the call that actually inserted the flag.
    """
    await lock_user(db, user_id)
    new_id = await insert_if_absent(
        db,
        UserAchievement,
        {
            "user_id": user_id,
            "achievement_type": achievement_type,
            "title": title,
            "description": description,
            "badge_icon": badge_icon,
            "badge_color": badge_color,
            "credits_awarded": credits,
        },
        index_elements=["user_id", "achievement_type"],
    )
    if new_id is None:
        return AchievementResult(unlocked=False, achievement_type=achievement_type)

    if credits > 0:
        await add_credits(db, user_id, credits, f"Achievement: {title}")

    queue_event(db, "pubsub:achievement_unlocked", {
        "user_id": user_id,
        "achievement_type": achievement_type,
        "title": title,
        "credits_awarded": credits,
    })
    logger.info("Achievement %s unlocked for user %d", achievement_type, user_id)
    return AchievementResult(
        unlocked=True, achievement_type=achievement_type, credits_awarded=credits
    )


async def list_achievements(db: AsyncSession, user_id: int) -> list[UserAchievement]:
    """Unlocked achievements, newest first."""
    result = await db.execute(
        select(UserAchievement)
        .where(UserAchievement.user_id == user_id)
        .order_by(UserAchievement.unlocked_at.desc(), UserAchievement.id.desc())
    )
    return list(result.scalars().all())
