"""Unit tests for health endpoints."""

import pytest


@pytest.mark.asyncio
async def test_health_check(test_client):
    """Test the health check endpoint."""
    response = await test_client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "service" in data
    assert "version" in data


@pytest.mark.asyncio
async def test_ready_check(test_client):
    """Test the readiness check endpoint."""
    response = await test_client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert "checks" in data


@pytest.mark.asyncio
async def test_info_endpoint(test_client):
    """Test the service info endpoint."""
    response = await test_client.get("/info")
    assert response.status_code == 200
    data = response.json()
    assert "service" in data
    assert "version" in data
    assert "features" in data


@pytest.mark.asyncio
async def test_health_ping_rpc(test_client):
    """Test the RPC-style health ping endpoint."""
    response = await test_client.post("/v1/health/ping", json={})
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert "timestamp" in data
    assert data["checks"] == {"database": "ok", "completion_sweep": "disabled"}


@pytest.mark.asyncio
async def test_ping_degraded_without_database(test_client, monkeypatch):
    """Ping stays 200 but reports degraded when the database does not answer."""
    import excursion_booking.routers.health as health_module

    async def database_down(session=None) -> bool:
        return False

    monkeypatch.setattr(health_module, "check_database", database_down)

    response = await test_client.post("/v1/health/ping", json={})
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["checks"]["database"] == "unavailable"


@pytest.mark.asyncio
async def test_ready_check_database_unavailable(test_client, monkeypatch):
    """Readiness reports 503 when the database cannot be queried."""
    import excursion_booking.main as main_module

    async def database_down() -> bool:
        return False

    monkeypatch.setattr(main_module, "check_database", database_down)

    response = await test_client.get("/ready")
    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "not_ready"
    assert data["checks"]["database"] == "unavailable"


@pytest.mark.asyncio
async def test_request_id_echoed(test_client):
    """A caller-supplied request id is returned on the response."""
    response = await test_client.post(
        "/v1/health/ping",
        json={},
        headers={"X-Request-ID": "req-123"}
    )
    assert response.headers["X-Request-ID"] == "req-123"


@pytest.mark.asyncio
async def test_request_id_generated(test_client):
    """A request id is generated when none is supplied."""
    response = await test_client.get("/health")
    assert response.headers.get("X-Request-ID")
