"""Paid conversation sessions and their completion rewards."""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from linguacred.config import Settings
from linguacred.conversations.conversation_service import (
    count_completed_conversations,
    end_conversation,
    get_conversation_stats,
    list_conversations,
    start_conversation,
)
from linguacred.credits.ledger_service import add_credits, audit_balance, get_balance
from linguacred.database import atomic
from linguacred.db.models import ConversationSession, ConversationStatus
from linguacred.errors import (
    AlreadyProcessedError,
    ConversationNotFoundError,
    InsufficientCreditsError,
)
from linguacred.gamification.reward_tables import MilestoneType

SETTINGS = Settings(conversation_cost_credits=10, conversation_agent_id="agent_test")


async def _fund(db, user_id: int, amount: int) -> None:
    async with atomic(db):
        await add_credits(db, user_id, amount, "Test funding")


async def _start(db, user_id: int, clock, language: str = "japanese") -> ConversationSession:
    async with atomic(db):
        return await start_conversation(db, user_id, language, settings=SETTINGS, clock=clock)


class TestStartConversation:
    @pytest.mark.asyncio
    async def test_start_charges_cost(self, db, user, clock):
        await _fund(db, user.id, 25)

        session = await _start(db, user.id, clock)

        assert session.status == ConversationStatus.ACTIVE
        assert session.credits_used == 10
        assert session.agent_id == "agent_test"
        assert session.language == "japanese"
        assert await get_balance(db, user.id) == 15
        assert (await audit_balance(db, user.id)).consistent

    @pytest.mark.asyncio
    async def test_insufficient_credits_creates_no_session(self, db, user, clock):
        await _fund(db, user.id, 5)

        with pytest.raises(InsufficientCreditsError):
            await _start(db, user.id, clock)

        count = (await db.execute(select(func.count()).select_from(ConversationSession))).scalar_one()
        assert count == 0
        assert await get_balance(db, user.id) == 5

    @pytest.mark.asyncio
    async def test_free_sessions_skip_the_ledger(self, db, user, clock):
        free = Settings(conversation_cost_credits=0)
        async with atomic(db):
            session = await start_conversation(db, user.id, settings=free, clock=clock)

        assert session.credits_used == 0
        assert session.language == "english"
        assert await get_balance(db, user.id) == 0


class TestEndConversation:
    @pytest.mark.asyncio
    async def test_end_records_activity_and_first_milestone(self, db, user, clock):
        await _fund(db, user.id, 10)
        session = await _start(db, user.id, clock)

        async with atomic(db):
            result = await end_conversation(
                db, user.id, session.id, duration_seconds=300, quality=4, feedback="fun", clock=clock
            )

        assert result.session.status == ConversationStatus.COMPLETED
        assert result.session.duration_seconds == 300
        assert result.session.quality == 4
        assert result.activity.activity.conversation_count == 1
        assert result.activity.activity.time_spent_seconds == 300
        assert result.activity.streak.current_streak == 1
        assert [m.milestone_type for m in result.milestones] == [MilestoneType.FIRST_CONVERSATION]
        assert await get_balance(db, user.id) == 100

    @pytest.mark.asyncio
    async def test_second_session_awards_nothing_new(self, db, user, clock):
        await _fund(db, user.id, 20)
        first = await _start(db, user.id, clock)
        second = await _start(db, user.id, clock)
        async with atomic(db):
            await end_conversation(db, user.id, first.id, clock=clock)
        async with atomic(db):
            result = await end_conversation(db, user.id, second.id, clock=clock)

        assert result.milestones == []
        assert result.activity.activity.conversation_count == 2
        assert await get_balance(db, user.id) == 100

    @pytest.mark.asyncio
    async def test_already_ended(self, db, user, clock):
        await _fund(db, user.id, 10)
        session = await _start(db, user.id, clock)
        async with atomic(db):
            await end_conversation(db, user.id, session.id, clock=clock)

        with pytest.raises(AlreadyProcessedError):
            async with atomic(db):
                await end_conversation(db, user.id, session.id, clock=clock)
        assert await get_balance(db, user.id) == 100

    @pytest.mark.asyncio
    async def test_other_users_session_is_not_found(self, db, user, other_user, clock):
        await _fund(db, other_user.id, 10)
        session = await _start(db, other_user.id, clock)

        with pytest.raises(ConversationNotFoundError):
            async with atomic(db):
                await end_conversation(db, user.id, session.id, clock=clock)

    @pytest.mark.asyncio
    async def test_missing_session(self, db, user, clock):
        with pytest.raises(ConversationNotFoundError):
            async with atomic(db):
                await end_conversation(db, user.id, 31337, clock=clock)

    @pytest.mark.asyncio
    async def test_tenth_completion_awards_count_milestone(self, db, user, clock):
        await _fund(db, user.id, 100)
        awarded: list[MilestoneType] = []
        for _ in range(10):
            session = await _start(db, user.id, clock)
            async with atomic(db):
                result = await end_conversation(db, user.id, session.id, clock=clock)
            awarded.extend(m.milestone_type for m in result.milestones)

        assert awarded == [MilestoneType.FIRST_CONVERSATION, MilestoneType.CONVERSATION_COUNT_10]
        assert await count_completed_conversations(db, user.id) == 10
        assert await get_balance(db, user.id) == 100 + 150
        assert (await audit_balance(db, user.id)).consistent


class TestConversationReads:
    @pytest.mark.asyncio
    async def test_list_and_stats(self, db, user, clock):
        await _fund(db, user.id, 30)
        done = await _start(db, user.id, clock)
        await _start(db, user.id, clock, language="korean")
        async with atomic(db):
            await end_conversation(db, user.id, done.id, duration_seconds=240, quality=5, clock=clock)

        sessions = await list_conversations(db, user.id)
        assert len(sessions) == 2

        stats = await get_conversation_stats(db, user.id, clock=clock)
        assert stats.total_sessions == 1
        assert stats.total_duration == 240
        assert stats.total_credits_used == 10
        assert stats.average_quality == 5.0
        assert stats.this_week_sessions == 2

    @pytest.mark.asyncio
    async def test_stats_without_sessions(self, db, user, clock):
        stats = await get_conversation_stats(db, user.id, clock=clock)
        assert stats.total_sessions == 0
        assert stats.average_quality == 0.0
