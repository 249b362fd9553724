"""Shared test fixtures."""

from __future__ import annotations

import os
import tempfile
from collections.abc import AsyncGenerator
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest_asyncio
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.jwt import create_access_token, reset_keys
from learnhub.auth.password import hash_password
from learnhub.coins.pool import clear_pool_account, seed_pool_account, set_pool_account
from learnhub.config import get_settings
from learnhub.database import close_db, get_engine, init_db, session_scope
from learnhub.db.base import Base
from learnhub.db.models import User

TEST_PASSWORD = "SecurePass1"

_keys_ready = False


def _ensure_test_keys() -> None:
    """Generate an RSA key pair for JWT signing once per test run."""
    global _keys_ready  # noqa: PLW0603
    if _keys_ready:
        return

    tmpdir = Path(tempfile.mkdtemp(prefix="learnhub_test_keys_"))
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_path = tmpdir / "jwt_private.pem"
    public_path = tmpdir / "jwt_public.pem"
    private_path.write_bytes(
        private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        )
    )
    public_path.write_bytes(
        private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
    )

    os.environ["LEARNHUB_JWT_PRIVATE_KEY_PATH"] = str(private_path)
    os.environ["LEARNHUB_JWT_PUBLIC_KEY_PATH"] = str(public_path)
    get_settings.cache_clear()
    reset_keys()
    _keys_ready = True


_ensure_test_keys()


@pytest_asyncio.fixture
async def database(tmp_path: Path) -> AsyncGenerator[None, None]:
    """Fresh SQLite database with the schema and a registered coin pool."""
    _ensure_test_keys()
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'learnhub.db'}")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with session_scope() as session:
        pool = await seed_pool_account(session, get_settings())
        await session.commit()
    set_pool_account(pool.id)

    yield

    clear_pool_account()
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """A direct database session for setup and assertions."""
    async with session_scope() as session:
        yield session


@pytest_asyncio.fixture
async def client(database: None) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to a fresh application instance."""
    from learnhub.main import create_app

    app = create_app()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


async def create_user(
    name: str = "Test Learner",
    email: str = "learner@example.com",
    role: str = "user",
    coins: int = 0,
    is_active: bool = True,
    created_at: datetime | None = None,
) -> User:
    """Insert a user directly and return it."""
    async with session_scope() as session:
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(TEST_PASSWORD),
            role=role,
            is_active=is_active,
            coins=coins,
        )
        if created_at is not None:
            user.created_at = created_at
            user.updated_at = created_at
        session.add(user)
        await session.commit()
        return user


def auth_headers(user: User) -> dict[str, str]:
    """Bearer header for a user."""
    return {"Authorization": f"Bearer {create_access_token(user.id, user.role)}"}


async def register(client: AsyncClient, name: str, email: str, password: str = TEST_PASSWORD) -> dict[str, Any]:
    """Register through the API and return the token response."""
    response = await client.post(
        "/api/v1/auth/register",
        json={"name": name, "email": email, "password": password},
    )
    assert response.status_code == 201, response.text
    return response.json()


async def balance_of(user_id: int) -> int:
    """Current stored balance, read fresh."""
    async with session_scope() as session:
        return await session.scalar(select(User.coins).where(User.id == user_id)) or 0


@pytest_asyncio.fixture
async def learner(database: None) -> User:
    """A regular user."""
    return await create_user()


@pytest_asyncio.fixture
async def admin_user(database: None) -> User:
    """An admin who is not the coin pool."""
    return await create_user(name="Staff Admin", email="staff@example.com", role="admin")


@pytest_asyncio.fixture
async def user_client(client: AsyncClient, learner: User) -> AsyncClient:
    """Client authenticated as the learner."""
    client.headers.update(auth_headers(learner))
    return client


@pytest_asyncio.fixture
async def admin_client(client: AsyncClient, admin_user: User) -> AsyncClient:
    """Client authenticated as an admin."""
    client.headers.update(auth_headers(admin_user))
    return client
