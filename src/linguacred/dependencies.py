"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from linguacred.clock import get_clock as _get_clock
from linguacred.config import Settings, get_settings
from linguacred.database import get_session as _get_session
from linguacred.gamification.reward_tables import get_reward_table as _get_reward_table
from linguacred.redis_client import get_redis_or_none as _get_redis_or_none

get_db = _get_session
get_clock = _get_clock
get_reward_table = _get_reward_table


async def get_redis_dep() -> AsyncGenerator[object, None]:
    """Yield the Redis client (None when Redis is not configured) as a FastAPI dependency."""
    yield _get_redis_or_none()


def get_settings_dep() -> Settings:
    return get_settings()
