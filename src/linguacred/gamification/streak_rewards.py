"""Streak reward tiers: each tier is paid at most once per user."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from linguacred.credits.ledger_service import add_credits
from linguacred.database import insert_if_absent
from linguacred.db.models import StreakReward
from linguacred.events import queue_event
from linguacred.gamification.achievement_service import unlock_achievement
from linguacred.gamification.reward_tables import (
    DEFAULT_REWARD_TABLE,
    RewardTable,
    StreakTier,
    streak_badge_style,
)
from linguacred.users.service import lock_user

logger = logging.getLogger(__name__)


async def check_streak_rewards(
    db: AsyncSession,
    user_id: int,
    current_streak: int,
    *,
    rewards: RewardTable = DEFAULT_REWARD_TABLE,
) -> list[StreakTier]:
    """Grant every reached tier that has not been paid yet.

    For each tier the StreakReward flag is inserted first; only the call whose
    insert succeeded credits the ledger (and, for long streaks, unlocks the
    badge). Repeated or concurrent calls for the same streak therefore pay
    nothing twice, and a retry after a failed transaction pays exactly the
    tiers whose flags were rolled back.

    Returns the tiers granted by this call.
    """
    reached = rewards.tiers_reached(current_streak)
    if not reached:
        return []

    await lock_user(db, user_id)
    granted: list[StreakTier] = []

    for tier in reached:
        new_id = await insert_if_absent(
            db,
            StreakReward,
            {"user_id": user_id, "streak_days": tier.days, "credits_awarded": tier.credits},
            index_elements=["user_id", "streak_days"],
        )
        if new_id is None:
            continue

        await add_credits(db, user_id, tier.credits, f"{tier.days}-day streak reward")

        if rewards.grants_achievement(tier):
            icon, color = streak_badge_style(tier.days)
            # Credits were already paid by the streak reward itself
            await unlock_achievement(
                db,
                user_id,
                f"STREAK_{tier.days}",
                f"{tier.days}-Day Streak Master",
                f"Maintained a {tier.days}-day learning streak!",
                badge_icon=icon,
                badge_color=color,
                credits=0,
            )

        queue_event(db, "pubsub:streak_reward", {
            "user_id": user_id,
            "streak_days": tier.days,
            "credits_awarded": tier.credits,
        })
        logger.info("Streak reward %d days (+%d) granted to user %d", tier.days, tier.credits, user_id)
        granted.append(tier)

    return granted


async def list_streak_rewards(db: AsyncSession, user_id: int) -> list[StreakReward]:
    """Granted streak rewards in ascending tier order."""
    result = await db.execute(
        select(StreakReward)
        .where(StreakReward.user_id == user_id)
        .order_by(StreakReward.streak_days.asc())
    )
    return list(result.scalars().all())
