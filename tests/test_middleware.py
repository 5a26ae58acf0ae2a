"""Middleware tests: request ID and error rendering."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    """Request ID is auto-generated when not provided."""
    response = await client.get("/health")
    assert "x-request-id" in response.headers
    assert len(response.headers["x-request-id"]) == 36  # UUID format


@pytest.mark.asyncio
async def test_request_id_preserved(client: AsyncClient) -> None:
    """Custom request ID is echoed back in response."""
    response = await client.get("/health", headers={"X-Request-Id": "test-abc-123"})
    assert response.headers["x-request-id"] == "test-abc-123"


@pytest.mark.asyncio
async def test_404_returns_json(client: AsyncClient) -> None:
    """Unknown paths return 404 with JSON body."""
    response = await client.get("/nonexistent-path")
    assert response.status_code == 404
    data = response.json()
    assert data["detail"] == "Not Found"
    assert data["code"] == "http_error"


@pytest.mark.asyncio
async def test_validation_error_shape(authed_client: AsyncClient) -> None:
    """Body validation failures return 422 with the error list."""
    response = await authed_client.post("/api/v1/credits/purchases", json={"credits": -1})
    assert response.status_code == 422
    data = response.json()
    assert data["code"] == "validation_error"
    assert data["retryable"] is False
    assert {tuple(e["loc"]) for e in data["errors"]} >= {("body", "credits"), ("body", "price")}


@pytest.mark.asyncio
async def test_domain_error_shape(authed_client: AsyncClient) -> None:
    """Domain errors carry a stable code and the retryable flag."""
    response = await authed_client.post(
        "/api/v1/conversations/999/end", json={}, headers={"X-Request-Id": "req-42"}
    )
    assert response.status_code == 404
    assert response.json() == {
        "detail": "Conversation session not found",
        "code": "conversation_not_found",
        "retryable": False,
    }
    assert response.headers["x-request-id"] == "req-42"
