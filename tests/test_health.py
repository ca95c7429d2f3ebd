"""Tests for health check endpoints."""
from unittest.mock import patch

from redis import ConnectionError as RedisConnectionError


def test_health_check(client):
    """Test basic health check."""
    response = client.get("/api/v1/health/")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "retailer-api"}


def test_readiness_with_redis_up(client):
    with patch("retailer.api.health.cache_service.ping", return_value=True):
        response = client.get("/api/v1/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"]["database"] is True
    assert data["checks"]["redis"] is True


def test_readiness_with_redis_down(client):
    """Redis only backs the cache, so the service stays ready without it."""
    with patch(
        "retailer.api.health.cache_service.ping",
        side_effect=RedisConnectionError("connection refused"),
    ):
        response = client.get("/api/v1/health/ready")

    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"]["redis"] is False
    assert "connection refused" in data["checks"]["redis_error"]


def test_root_endpoint(client):
    """Test root endpoint returns API info."""
    response = client.get("/")

    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Retailer Back-Office API"
    assert "version" in data
    assert "docs" in data
