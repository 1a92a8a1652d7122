"""
Shared fixtures: an app wired to a throwaway SQLite file per test.
"""
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from identity_service.apps.models import App
from identity_service.config import Settings
from identity_service.database import init_tables
from identity_service.main import create_app
from identity_service.users.models import User

TEST_SECRET = "test-signing-secret-that-is-long-enough-for-hs256"
TEST_PASSWORD = "CorrectHorse42"


@pytest.fixture
def settings(tmp_path):
    return Settings(
        environment="test",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'identity.db'}",
        log_dir=None,
        jwt_secret=TEST_SECRET,
        hash_work_factor=4,
    )


@pytest_asyncio.fixture
async def app(settings):
    # ASGITransport does not run the lifespan, so create the schema here
    application = create_app(settings)
    await init_tables(application.state.engine)
    yield application
    await application.state.engine.dispose()


@pytest_asyncio.fixture
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(base_url="http://test", transport=transport) as ac:
        yield ac


@pytest_asyncio.fixture
async def tenant(app):
    """An app (tenant) row to attach users to."""
    async with app.state.session_factory() as session:
        row = App(name="dvarapala")
        session.add(row)
        await session.commit()
        return row.id


@pytest_asyncio.fixture
async def user(app, tenant):
    """A stored user whose password is TEST_PASSWORD."""
    async with app.state.session_factory() as session:
        row = User(
            app_id=tenant,
            firstname="Ada",
            lastname="Lovelace",
            email="ada@example.com",
            password=app.state.hasher.hash(TEST_PASSWORD),
        )
        session.add(row)
        await session.commit()
        return {"id": row.id, "email": row.email, "app_id": tenant}


@pytest.fixture
def auth_headers(app, user):
    token = app.state.token_manager.issue(str(user["id"]))
    return {"Authorization": f"Bearer {token}"}
