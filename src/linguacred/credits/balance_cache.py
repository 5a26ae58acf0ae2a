"""Read-through Redis cache for balances, invalidated after each committed change."""

from __future__ import annotations

import json
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from linguacred.database import PENDING_BALANCE_CHANGES

logger = logging.getLogger(__name__)

BALANCE_CHANNEL = "pubsub:balance_update"


def balance_key(user_id: int) -> str:
    return f"balance:{user_id}"


def queue_balance_change(db: AsyncSession, user_id: int, new_balance: int) -> None:
    """Remember a balance change until the surrounding transaction commits."""
    db.info.setdefault(PENDING_BALANCE_CHANGES, {})[user_id] = new_balance


async def publish_balance_changes(redis: object, changes: dict[int, int]) -> None:
    """Drop cached balances and announce the new values to listening surfaces."""
    if redis is None:
        return
    for user_id, balance in changes.items():
        try:
            await redis.delete(balance_key(user_id))  # type: ignore[attr-defined]
            await redis.publish(  # type: ignore[attr-defined]
                BALANCE_CHANNEL,
                json.dumps({"user_id": user_id, "credits": balance}),
            )
        except Exception:
            logger.warning("Failed to publish balance update for user %d", user_id, exc_info=True)


async def get_cached_balance(
    db: AsyncSession,
    redis: object,
    user_id: int,
    ttl_seconds: int = 30,
) -> int:
    """Return the balance, serving from Redis when a fresh copy is cached."""
    from linguacred.credits.ledger_service import get_balance

    if redis is not None:
        try:
            cached = await redis.get(balance_key(user_id))  # type: ignore[attr-defined]
            if cached is not None:
                return int(cached)
        except Exception:
            logger.warning("Balance cache read failed for user %d", user_id, exc_info=True)

    balance = await get_balance(db, user_id)

    if redis is not None:
        try:
            await redis.set(balance_key(user_id), balance, ex=ttl_seconds)  # type: ignore[attr-defined]
        except Exception:
            logger.warning("Balance cache write failed for user %d", user_id, exc_info=True)
    return balance
