"""Post-commit pub/sub events (rewards, milestones, streak changes)."""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

PENDING_EVENTS = "pending_events"


def queue_event(db: AsyncSession, channel: str, payload: dict[str, Any]) -> None:
    """Hold an event until the surrounding transaction commits."""
    db.info.setdefault(PENDING_EVENTS, []).append((channel, payload))


async def publish_events(redis: object, events: list[tuple[str, dict[str, Any]]]) -> None:
    """Publish committed events. Failures are logged, never raised."""
    if redis is None:
        return
    for channel, payload in events:
        try:
            await redis.publish(channel, json.dumps(payload, default=str))  # type: ignore[attr-defined]
        except Exception:
            logger.warning("Failed to publish %s event", channel, exc_info=True)
