"""
Test cases for the app-wide HTTP middleware: per-IP rate limiting and access logging.
"""
from dataclasses import replace

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from identity_service.database import init_tables
from identity_service.main import create_app


@pytest_asyncio.fixture
async def limited_app(settings):
    application = create_app(replace(settings, rate_limit="3/minute"))
    await init_tables(application.state.engine)
    yield application
    await application.state.engine.dispose()


def client_from(app, ip):
    transport = ASGITransport(app=app, client=(ip, 4321))
    return AsyncClient(base_url="http://test", transport=transport)


@pytest.mark.asyncio
async def test_requests_over_the_limit_are_rejected(limited_app):
    async with client_from(limited_app, "10.0.0.1") as ac:
        statuses = [(await ac.get("/health")).status_code for _ in range(4)]
    assert statuses == [200, 200, 200, 429]


@pytest.mark.asyncio
async def test_limit_applies_to_protected_and_public_routes_alike(limited_app):
    async with client_from(limited_app, "10.0.0.1") as ac:
        await ac.get("/users/me")
        await ac.post("/users/auth", json={"email": "ada@example.com", "password": "x"})
        await ac.get("/health")
        resp = await ac.get("/users/me")
    assert resp.status_code == 429


@pytest.mark.asyncio
async def test_limit_is_per_client_ip(limited_app):
    async with client_from(limited_app, "10.0.0.1") as ac:
        for _ in range(3):
            await ac.get("/health")
        assert (await ac.get("/health")).status_code == 429

    async with client_from(limited_app, "10.0.0.2") as ac:
        assert (await ac.get("/health")).status_code == 200


@pytest.mark.asyncio
async def test_rate_limit_can_be_disabled(settings):
    application = create_app(replace(settings, rate_limit=None))
    try:
        async with client_from(application, "10.0.0.1") as ac:
            statuses = {(await ac.get("/health")).status_code for _ in range(120)}
        assert statuses == {200}
    finally:
        await application.state.engine.dispose()


@pytest.mark.asyncio
async def test_requests_are_access_logged(client, caplog):
    with caplog.at_level("INFO", logger="identity_service.http"):
        await client.get("/health")
        await client.get("/users/me", headers={"Authorization": "Bearer garbage"})

    records = [r.getMessage() for r in caplog.records if r.name == "identity_service.http"]
    assert len(records) == 2
    assert "'method': 'GET'" in records[0]
    assert "'path': '/health'" in records[0]
    assert "'status': 200" in records[0]
    assert "duration_ms" in records[0]
    assert "'path': '/users/me'" in records[1]
    assert "'status': 401" in records[1]
    # Credentials never reach the access log
    assert "garbage" not in caplog.text


@pytest.mark.asyncio
async def test_rate_limited_requests_are_access_logged(limited_app, caplog):
    with caplog.at_level("INFO", logger="identity_service.http"):
        async with client_from(limited_app, "10.0.0.3") as ac:
            for _ in range(4):
                await ac.get("/health")
    assert "'status': 429" in caplog.text
