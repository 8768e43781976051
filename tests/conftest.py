import os
import uuid
from typing import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

os.environ.setdefault("MONGODB_DB_NAME", "vynn_test")
os.environ.setdefault("SECRET_KEY", "test-secret-key-min-32-characters-long")


@pytest_asyncio.fixture
async def db():
    """Fresh in-memory database with document models bound and the badge catalog seeded."""
    from vynn.db.init import init_db
    from vynn.services.badges import seed_system_badges

    database = AsyncMongoMockClient()[f"vynn_test_{uuid.uuid4().hex}"]
    await init_db(database)
    await seed_system_badges()
    yield database


@pytest_asyncio.fixture
async def client(db) -> AsyncGenerator[AsyncClient, None]:
    from vynn.main import app
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


@pytest_asyncio.fixture
async def make_user(db):
    """Factory: create and persist a user through the normal write path."""
    from vynn.core.security import hash_password
    from vynn.models.user import User
    from vynn.services.accounts import save_user

    async def _make(username: str, **fields):
        user = User(
            email=f"{username}@example.com",
            password_hash=hash_password("secret123"),
            username=username,
            display_name=username,
            **fields,
        )
        return await save_user(user)

    return _make
