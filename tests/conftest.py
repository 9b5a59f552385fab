"""
Shared fixtures.

API tests build a fresh app per test with in-memory collaborators:
- VideoRepository on a MockSnowflakeConnection
- MockStorageClient (records every put)
- MockMediaProber (fixed dimensions, records probed paths)
"""

import asyncio
from datetime import timedelta
from uuid import UUID, uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.api.dependencies import (
    get_media_prober,
    get_storage_client,
    get_video_repository,
)
from src.config.settings import Settings, get_settings
from src.core.media.models import Video
from src.infrastructure.auth.tokens import make_jwt
from src.infrastructure.snowflake.client import MockSnowflakeConnection
from src.infrastructure.snowflake.repositories.videos import VideoRepository
from src.infrastructure.storage.client import MockStorageClient
from src.infrastructure.video.prober import MockMediaProber
from src.main import create_app

JWT_SECRET = "test-secret"


def make_settings(**overrides) -> Settings:
    values = dict(
        jwt_secret=JWT_SECRET,
        s3_bucket="tubely-test",
        s3_region="us-west-2",
        s3_mock_mode=True,
        snowflake_mock_mode=True,
        media_probe_mock_mode=True,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


def token_for(user_id: UUID, secret: str = JWT_SECRET) -> str:
    return make_jwt(user_id, secret, expires_in=timedelta(hours=1))


@pytest.fixture
def staging_dir(tmp_path):
    path = tmp_path / "staging"
    path.mkdir()
    return path


@pytest.fixture
def settings(staging_dir) -> Settings:
    return make_settings(upload_temp_dir=str(staging_dir))


@pytest.fixture
def repository() -> VideoRepository:
    return VideoRepository(MockSnowflakeConnection())


@pytest.fixture
def storage() -> MockStorageClient:
    return MockStorageClient()


@pytest.fixture
def prober() -> MockMediaProber:
    return MockMediaProber(width=1920, height=1080)


@pytest.fixture
def owner_id() -> UUID:
    return uuid4()


@pytest.fixture
def video(repository, owner_id) -> Video:
    return repository.create_video(Video(user_id=owner_id, title="Boots demo"))


@pytest.fixture
def owner_headers(owner_id) -> dict:
    return {"Authorization": f"Bearer {token_for(owner_id)}"}


def build_app(settings, repository, storage, prober) -> FastAPI:
    app = create_app(settings)
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_video_repository] = lambda: repository
    app.dependency_overrides[get_storage_client] = lambda: storage
    app.dependency_overrides[get_media_prober] = lambda: prober
    return app


def build_client(settings, repository, storage, prober) -> TestClient:
    return TestClient(build_app(settings, repository, storage, prober))


def on_event_loop() -> bool:
    """Whether the calling thread is running an asyncio event loop."""
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return False
    return True


@pytest.fixture
def client(settings, repository, storage, prober) -> TestClient:
    return build_client(settings, repository, storage, prober)
