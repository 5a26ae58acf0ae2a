"""Conversation sessions: paid start, completion bookkeeping and stats.

The audio session itself is run by the vendor in the browser. This module
only charges for a session when it starts and records its result when it
ends.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta, timezone

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from linguacred.clock import Clock, SystemClock
from linguacred.config import Settings, get_settings
from linguacred.credits.ledger_service import use_credits
from linguacred.db.models import ConversationSession, ConversationStatus
from linguacred.errors import AlreadyProcessedError, ConversationNotFoundError
from linguacred.gamification.activity_service import ActivityDelta, ActivityResult, record_activity
from linguacred.gamification.milestone_service import MilestoneResult, check_milestone
from linguacred.gamification.reward_tables import DEFAULT_REWARD_TABLE, MilestoneType, RewardTable
from linguacred.users.service import lock_user

logger = logging.getLogger(__name__)

# (completed sessions, milestone) pairs checked after every completion
CONVERSATION_COUNT_MILESTONES: tuple[tuple[int, MilestoneType], ...] = (
    (10, MilestoneType.CONVERSATION_COUNT_10),
    (50, MilestoneType.CONVERSATION_COUNT_50),
)


@dataclass(frozen=True)
class ConversationResult:
    session: ConversationSession
    activity: ActivityResult
    milestones: list[MilestoneResult] = field(default_factory=list)


@dataclass(frozen=True)
class ConversationStats:
    total_sessions: int
    total_duration: int
    total_credits_used: int
    average_quality: float
    this_week_sessions: int


async def start_conversation(
    db: AsyncSession,
    user_id: int,
    language: str = "english",
    topic: str | None = None,
    *,
    settings: Settings | None = None,
    clock: Clock | None = None,
) -> ConversationSession:
    """Open an ACTIVE session and charge for it.

    Raises InsufficientCreditsError, with no session created, when the user
    cannot pay.
    """
    settings = settings or get_settings()
    clock = clock or SystemClock()
    cost = settings.conversation_cost_credits

    await lock_user(db, user_id)
    if cost > 0:
        await use_credits(db, user_id, cost, f"Conversation session ({language})")

    session = ConversationSession(
        user_id=user_id,
        agent_id=settings.conversation_agent_id,
        language=language,
        topic=topic,
        status=ConversationStatus.ACTIVE,
        credits_used=cost,
        created_at=clock.now().astimezone(timezone.utc),
    )
    db.add(session)
    await db.flush()
    logger.info("Conversation %d started for user %d (%s)", session.id, user_id, language)
    return session


async def end_conversation(
    db: AsyncSession,
    user_id: int,
    session_id: int,
    duration_seconds: int | None = None,
    quality: int | None = None,
    feedback: str | None = None,
    *,
    clock: Clock | None = None,
    rewards: RewardTable = DEFAULT_REWARD_TABLE,
) -> ConversationResult:
    """Complete an ACTIVE session, record the day's activity and check milestones."""
    clock = clock or SystemClock()
    await lock_user(db, user_id)

    result = await db.execute(
        update(ConversationSession)
        .where(
            ConversationSession.id == session_id,
            ConversationSession.user_id == user_id,
            ConversationSession.status == ConversationStatus.ACTIVE,
        )
        .values(
            status=ConversationStatus.COMPLETED,
            duration_seconds=duration_seconds,
            quality=quality,
            feedback=feedback,
            ended_at=clock.now().astimezone(timezone.utc),
        )
        .returning(ConversationSession.id)
    )
    if result.scalar_one_or_none() is None:
        existing = await db.get(ConversationSession, session_id)
        if existing is None or existing.user_id != user_id:
            raise ConversationNotFoundError
        raise AlreadyProcessedError("Conversation session already ended")

    session = (
        await db.execute(
            select(ConversationSession)
            .where(ConversationSession.id == session_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one()

    activity = await record_activity(
        db,
        user_id,
        ActivityDelta(conversations=1, time_spent=duration_seconds or 0),
        clock=clock,
        rewards=rewards,
    )

    milestones = [
        await check_milestone(
            db, user_id, MilestoneType.FIRST_CONVERSATION, session.language,
            {"session_id": session.id}, rewards=rewards,
        )
    ]
    completed = await count_completed_conversations(db, user_id)
    for threshold, kind in CONVERSATION_COUNT_MILESTONES:
        if completed >= threshold:
            milestones.append(
                await check_milestone(
                    db, user_id, kind, None, {"completed_sessions": completed}, rewards=rewards,
                )
            )

    logger.info("Conversation %d completed for user %d", session_id, user_id)
    return ConversationResult(
        session=session,
        activity=activity,
        milestones=[m for m in milestones if m.awarded],
    )


async def count_completed_conversations(db: AsyncSession, user_id: int) -> int:
    result = await db.execute(
        select(func.count()).select_from(ConversationSession).where(
            ConversationSession.user_id == user_id,
            ConversationSession.status == ConversationStatus.COMPLETED,
        )
    )
    return result.scalar_one()


async def list_conversations(
    db: AsyncSession, user_id: int, limit: int = 10
) -> list[ConversationSession]:
    """Most recent sessions first."""
    result = await db.execute(
        select(ConversationSession)
        .where(ConversationSession.user_id == user_id)
        .order_by(ConversationSession.created_at.desc(), ConversationSession.id.desc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def get_conversation_stats(
    db: AsyncSession,
    user_id: int,
    *,
    clock: Clock | None = None,
) -> ConversationStats:
    """Totals over completed sessions plus sessions started in the last 7 days."""
    clock = clock or SystemClock()
    row = (
        await db.execute(
            select(
                func.count(ConversationSession.id),
                func.coalesce(func.sum(ConversationSession.duration_seconds), 0),
                func.coalesce(func.sum(ConversationSession.credits_used), 0),
                func.avg(ConversationSession.quality),
            ).where(
                ConversationSession.user_id == user_id,
                ConversationSession.status == ConversationStatus.COMPLETED,
            )
        )
    ).one()

    week_ago = clock.now().astimezone(timezone.utc) - timedelta(days=7)
    this_week = (
        await db.execute(
            select(func.count()).select_from(ConversationSession).where(
                ConversationSession.user_id == user_id,
                ConversationSession.created_at >= week_ago,
            )
        )
    ).scalar_one()

    return ConversationStats(
        total_sessions=row[0],
        total_duration=int(row[1]),
        total_credits_used=int(row[2]),
        average_quality=float(row[3]) if row[3] is not None else 0.0,
        this_week_sessions=this_week,
    )
