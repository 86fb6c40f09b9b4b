import os
import tempfile
from typing import AsyncGenerator

_TEST_ROOT = tempfile.mkdtemp(prefix="glo-cloud-tests-")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("STORAGE_ROOT", os.path.join(_TEST_ROOT, "storage"))
os.environ.setdefault("BRANDING_DIR", os.path.join(_TEST_ROOT, "company"))
os.environ.setdefault("DEFAULT_FAVICON", os.path.join(_TEST_ROOT, "missing-favicon.ico"))

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import AsyncClient, ASGITransport
from sqlalchemy import StaticPool
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, AsyncEngine

from glo_cloud.config import settings
from glo_cloud.dependencies import get_db
from glo_cloud.main import app
from glo_cloud.models.database import Base, User, Role
from glo_cloud.services.auth import auth_service
from glo_cloud.utils.cache import cache

PASSWORD = "secret123"


@pytest_asyncio.fixture(scope="function")
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """One session shared by the test body and every request it makes"""
    session = AsyncSession(bind=db_engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()


@pytest.fixture(autouse=True)
def storage_dirs(tmp_path, monkeypatch):
    """Fresh storage and branding directories per test"""
    storage_root = tmp_path / "storage"
    branding_dir = tmp_path / "company"
    storage_root.mkdir()
    monkeypatch.setattr(settings, "STORAGE_ROOT", str(storage_root))
    monkeypatch.setattr(settings, "BRANDING_DIR", str(branding_dir))
    return storage_root


@pytest_asyncio.fixture(autouse=True)
async def clear_cache():
    await cache.clear()
    yield
    await cache.clear()


@pytest.fixture(scope="function")
def test_app(db_session: AsyncSession) -> FastAPI:
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def async_client(test_app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


async def _create_user(db_session: AsyncSession, email: str, name: str, role: Role = Role.EMPLOYEE,
                       is_active: bool = True, employee_id: str = None) -> User:
    user = User(
        email=email,
        name=name,
        password_hash=auth_service.get_password_hash(PASSWORD),
        role=role.value,
        is_active=is_active,
        employee_id=employee_id,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture(scope="function")
async def employee(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "alice@acme.io", "Alice", employee_id="E100")


@pytest_asyncio.fixture(scope="function")
async def other_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "bob@acme.io", "Bob")


@pytest_asyncio.fixture(scope="function")
async def admin_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "admin@acme.io", "Admin", role=Role.ADMIN)


@pytest_asyncio.fixture(scope="function")
async def super_admin(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "root@acme.io", "Root", role=Role.SUPER_ADMIN)


@pytest_asyncio.fixture(scope="function")
async def inactive_user(db_session: AsyncSession) -> User:
    return await _create_user(db_session, "pending@acme.io", "Pending", is_active=False)


@pytest.fixture(scope="function")
def auth_headers_for():
    """Factory for bearer headers of a given user"""
    def _get_headers(user: User) -> dict:
        return {"Authorization": f"Bearer {auth_service.token_for(user)}"}
    return _get_headers


@pytest.fixture(scope="function")
def upload_file(async_client: AsyncClient, auth_headers_for):
    """Factory that uploads bytes as the given user and returns the file dict"""
    async def _upload(user: User, name: str = "report.txt", content: bytes = b"hello world",
                      parent_id: str = None) -> dict:
        data = {"parent_id": parent_id} if parent_id else {}
        response = await async_client.post(
            "/api/files/upload",
            files={"file": (name, content, "text/plain")},
            data=data,
            headers=auth_headers_for(user),
        )
        assert response.status_code == 201, response.text
        return response.json()["file"]
    return _upload


@pytest.fixture(scope="function")
def make_folder(async_client: AsyncClient, auth_headers_for):
    async def _make(user: User, name: str, parent_id: str = None) -> dict:
        payload = {"name": name}
        if parent_id:
            payload["parent_id"] = parent_id
        response = await async_client.post(
            "/api/files/folders", json=payload, headers=auth_headers_for(user)
        )
        assert response.status_code == 201, response.text
        return response.json()["file"]
    return _make


@pytest.fixture
def user_password() -> str:
    """Password of every user created by the fixtures above"""
    return PASSWORD
