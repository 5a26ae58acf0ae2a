"""Learning milestones: one-time, optionally per-language rewards."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from linguacred.credits.ledger_service import add_credits
from linguacred.database import dialect_insert
from linguacred.db.models import UserMilestone
from linguacred.events import queue_event
from linguacred.gamification.reward_tables import (
    DEFAULT_REWARD_TABLE,
    MilestoneType,
    RewardTable,
    parse_milestone_type,
)
from linguacred.users.service import lock_user

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MilestoneResult:
    awarded: bool
    milestone_type: MilestoneType
    credits_awarded: int = 0
    message: str = ""


async def check_milestone(
    db: AsyncSession,
    user_id: int,
    milestone_type: str | MilestoneType,
    language: str | None = None,
    metadata: dict[str, Any] | None = None,
    *,
    rewards: RewardTable = DEFAULT_REWARD_TABLE,
) -> MilestoneResult:
    """Award a milestone unless the user already achieved it.

    An achieved milestone is a no-op returning ``awarded=False``. Unknown
    types raise UnknownMilestoneError before anything is written.
    """
    kind = parse_milestone_type(milestone_type)
    reward = rewards.milestone_reward(kind)
    now = datetime.now(timezone.utc)

    await lock_user(db, user_id)

    stmt = dialect_insert(db, UserMilestone).values(
        user_id=user_id,
        milestone_type=kind.value,
        language=language or "",
        milestone=reward.message,
        achieved=True,
        achieved_at=now,
        credits_awarded=reward.credits,
        milestone_metadata=metadata,
    )
    # A pre-existing row that is not yet achieved is claimed; an achieved one is left alone.
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "milestone_type", "language"],
        set_={
            "achieved": True,
            "achieved_at": now,
            "credits_awarded": reward.credits,
            "milestone_metadata": stmt.excluded.milestone_metadata,
        },
        where=UserMilestone.achieved.is_(False),
    ).returning(UserMilestone.id)

    result = await db.execute(stmt)
    if result.scalar_one_or_none() is None:
        return MilestoneResult(awarded=False, milestone_type=kind, message="Milestone already achieved")

    await add_credits(db, user_id, reward.credits, f"Milestone: {reward.message}")

    queue_event(db, "pubsub:milestone_achieved", {
        "user_id": user_id,
        "milestone_type": kind.value,
        "language": language or "",
        "credits_awarded": reward.credits,
    })
    logger.info("Milestone %s (%s) awarded to user %d", kind.value, language or "-", user_id)
    return MilestoneResult(
        awarded=True,
        milestone_type=kind,
        credits_awarded=reward.credits,
        message=reward.message,
    )


async def list_milestones(db: AsyncSession, user_id: int) -> list[UserMilestone]:
    """All milestone rows for a user, most recently achieved first."""
    result = await db.execute(
        select(UserMilestone)
        .where(UserMilestone.user_id == user_id)
        .order_by(UserMilestone.achieved_at.desc(), UserMilestone.id.desc())
    )
    return list(result.scalars().all())
