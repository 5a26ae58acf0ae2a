"""Logging setup and Redis pool wiring."""

import json
import logging

import pytest

from linguacred.config import Settings
from linguacred.middleware.logging import HANDLER_NAME, build_formatter, setup_logging
from linguacred.redis_client import close_redis, get_redis, get_redis_or_none, init_redis


def _installed_handlers() -> list[logging.Handler]:
    return [h for h in logging.getLogger("linguacred").handlers if h.get_name() == HANDLER_NAME]


def test_setup_logging_configures_app_logger() -> None:
    setup_logging(Settings(log_level="DEBUG", log_format="json"))
    try:
        app_logger = logging.getLogger("linguacred")
        assert app_logger.level == logging.DEBUG
        assert len(_installed_handlers()) == 1
    finally:
        setup_logging(Settings(log_level="INFO"))


def test_setup_logging_does_not_stack_handlers() -> None:
    settings = Settings(log_level="INFO")
    setup_logging(settings)
    setup_logging(settings)

    assert len(_installed_handlers()) == 1
    assert logging.getLogger("linguacred").level == logging.INFO


def test_stdlib_records_render_as_json() -> None:
    formatter = build_formatter(Settings(log_format="json"))
    record = logging.LogRecord(
        "linguacred.credits.ledger_service", logging.INFO, __file__, 1,
        "Purchase %d completed", (7,), None,
    )

    data = json.loads(formatter.format(record))

    assert data["event"] == "Purchase 7 completed"
    assert data["level"] == "info"
    assert data["logger"] == "linguacred.credits.ledger_service"
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_redis_pool_size_comes_from_caller() -> None:
    await init_redis("redis://localhost:6379/0", max_connections=7)
    try:
        assert get_redis().connection_pool.max_connections == 7
    finally:
        await close_redis()
    assert get_redis_or_none() is None
