"""
CMSCRM - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator, Iterable

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

# Set testing environment (before the app reads its settings)
os.environ['APP_ENV'] = 'test'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///:memory:'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['JWT_SECRET'] = 'test-jwt-secret-for-testing-only'

from src.cmscrm.app import app
from src.cmscrm.bootstrap import create_tables, seed_roles
from src.cmscrm.config import settings
from src.cmscrm.crud.users import create_user
from src.cmscrm.models.page import Page
from src.cmscrm.models.security.role import role_pages
from src.cmscrm.models.user import User
from src.cmscrm.monitoring import ApiMetrics
from src.cmscrm.utils.database import get_db
from src.cmscrm.utils.navigation import RoleTag
from src.cmscrm.utils.security import create_access_token, hash_password

TEST_PASSWORD = 'secret123'


@pytest.fixture
async def engine(tmp_path):
    """File-backed SQLite per test so every request can open its own session."""
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    await create_tables(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging data and asserting on the database directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / 'uploads'
    monkeypatch.setattr(settings, 'UPLOAD_DIR', str(path))
    return path


@pytest.fixture
async def client(session_factory, upload_dir) -> AsyncGenerator[AsyncClient, None]:
    """Test client with a fresh database session per request."""
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.metrics = ApiMetrics()

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def roles(db_session):
    return await seed_roles(db_session)


@pytest.fixture
def make_user(db_session, roles):
    async def _make(username: str, tags: Iterable[RoleTag] = (), status: str = 'active') -> User:
        return await create_user(
            db_session,
            username=username,
            email=f'{username}@example.com',
            password=hash_password(TEST_PASSWORD),
            roles=[roles[t] for t in tags],
            status=status,
        )
    return _make


@pytest.fixture
async def admin_user(make_user) -> User:
    return await make_user('admin', [RoleTag.SUPER_ADMIN])


@pytest.fixture
async def plain_user(make_user) -> User:
    return await make_user('alice', [RoleTag.USER])


def _bearer(user: User) -> dict:
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers_for():
    return _bearer


@pytest.fixture
def admin_headers(admin_user) -> dict:
    return _bearer(admin_user)


@pytest.fixture
def user_headers(plain_user) -> dict:
    return _bearer(plain_user)


@pytest.fixture
def make_page(db_session):
    async def _make(name: str, url: str, **kw) -> Page:
        row = Page(name=name, url=url, **kw)
        db_session.add(row)
        await db_session.commit()
        return row
    return _make


@pytest.fixture
def grant(db_session):
    """Assign pages to a role straight through the association table."""
    async def _grant(role, *pages) -> None:
        for p in pages:
            page_id = getattr(p, "id", p)
            await db_session.execute(role_pages.insert().values(role_id=role.id, page_id=page_id))
        await db_session.commit()
    return _grant
