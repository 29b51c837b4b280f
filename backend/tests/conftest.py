"""Pytest configuration and fixtures."""

import json
from datetime import datetime, timedelta, timezone

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from digital_download import models  # noqa: F401
from digital_download.core.config import settings
from digital_download.core.database import Base, get_session_factory
from digital_download.main import app
from digital_download.models import Asset, DownloadLog, Token, User, UserGroup, Volume
from digital_download.models.asset import FS_LOCAL


@pytest.fixture(autouse=True)
def default_settings(monkeypatch):
    """Keep every test on the same configuration regardless of the environment."""
    monkeypatch.setattr(settings, "KEEP_DOWNLOAD_LOG", True)
    monkeypatch.setattr(settings, "LOGIN_URL", "")
    monkeypatch.setattr(settings, "PUBLIC_BASE_URL", "")
    monkeypatch.setattr(settings, "TRUST_PROXY_HEADERS", False)
    monkeypatch.setattr(settings, "DOWNLOAD_CHUNK_SIZE", 8 * 1024)
    monkeypatch.setattr(settings, "SECRET_KEY", "test-secret-key-with-enough-bytes-for-hs256")


@pytest.fixture
def access_token():
    """Issues signed access tokens the way the login service does."""

    def issue(claims: dict, expires_delta: timedelta = timedelta(minutes=30)) -> str:
        payload = {**claims, "exp": datetime.now(timezone.utc) + expires_delta}
        return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    return issue


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    """A fresh SQLite database per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def storage_dir(tmp_path):
    path = tmp_path / "storage"
    path.mkdir()
    return path


class Seeder:
    """Creates catalog, token and user rows for a test database."""

    def __init__(self, session_factory, storage_dir):
        self.session_factory = session_factory
        self.storage_dir = storage_dir
        self._volume = None

    async def _add(self, obj):
        async with self.session_factory() as db:
            db.add(obj)
            await db.commit()
            await db.refresh(obj)
        return obj

    async def volume(self, handle="uploads", fs_type=FS_LOCAL, path=None, url=None, bucket=None):
        return await self._add(Volume(
            handle=handle,
            fs_type=fs_type,
            path=str(self.storage_dir) if path is None and fs_type == FS_LOCAL else path,
            url=url,
            bucket=bucket,
        ))

    async def local_volume(self):
        if self._volume is None:
            self._volume = await self.volume()
        return self._volume

    async def asset(self, filename="report.pdf", content=b"%PDF-1.4 test file", folder="docs",
                    volume=None, write=True, url=None, size=None):
        volume = volume or await self.local_volume()
        if write and volume.fs_type == FS_LOCAL:
            directory = self.storage_dir / folder
            directory.mkdir(parents=True, exist_ok=True)
            (directory / filename).write_bytes(content)
        return await self._add(Asset(
            volume_id=volume.id,
            folder_path=folder,
            filename=filename,
            size=len(content) if size is None else size,
            url=url,
        ))

    async def token(self, token, asset=None, enabled=True, expires: datetime | None = None,
                    max_downloads=None, total_downloads=0, require_user=None, headers=None):
        return await self._add(Token(
            token=token,
            asset_id=asset.id if asset is not None else None,
            enabled=enabled,
            expires=expires,
            max_downloads=max_downloads,
            total_downloads=total_downloads,
            require_user=json.dumps(require_user) if require_user is not None else None,
            headers=json.dumps(headers) if headers is not None else None,
        ))

    async def user(self, email, groups=(), is_active=True):
        async with self.session_factory() as db:
            members = []
            for handle in groups:
                res = await db.execute(select(UserGroup).where(UserGroup.handle == handle))
                members.append(res.scalars().first() or UserGroup(handle=handle, name=handle.title()))
            user = User(email=email, is_active=is_active, groups=members)
            db.add(user)
            await db.commit()
            return user.id

    async def get_token(self, token) -> Token:
        async with self.session_factory() as db:
            res = await db.execute(select(Token).where(Token.token == token))
            return res.scalars().one()

    async def logs(self) -> list[DownloadLog]:
        async with self.session_factory() as db:
            res = await db.execute(select(DownloadLog).order_by(DownloadLog.id))
            return list(res.scalars().all())


@pytest_asyncio.fixture
async def seed(session_factory, storage_dir) -> Seeder:
    return Seeder(session_factory, storage_dir)


@pytest_asyncio.fixture
async def client(session_factory):
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()

