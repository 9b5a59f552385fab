"""
FastAPI dependency injection.

Dependencies provide instances of services, clients, and configuration
to route handlers. Routes never instantiate their own collaborators, so
tests can swap any of them through ``app.dependency_overrides``.
"""

import logging
from typing import Annotated, Generator, Optional
from uuid import UUID

from fastapi import Depends, Header

from ..config.settings import Settings, get_settings
from ..infrastructure.auth.tokens import get_bearer_token, validate_jwt
from ..infrastructure.snowflake.client import (
    MockSnowflakeConnection,
    create_snowflake_connection,
)
from ..infrastructure.snowflake.repositories.videos import (
    SnowflakeConfig,
    VideoRepository,
    VideoStore,
)
from ..infrastructure.storage.client import StorageClient, StorageConfig, create_storage_client
from ..infrastructure.video.prober import MediaProber, create_media_prober

logger = logging.getLogger(__name__)

# Global mock instances (shared across requests so local data persists)
_mock_storage_client = None
_mock_snowflake_connection = None


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

async def get_current_user_id(
    settings: Annotated[Settings, Depends(get_settings)],
    authorization: Annotated[Optional[str], Header()] = None,
) -> UUID:
    """
    Resolve the bearer token on the request to a user id.

    Raises UnauthenticatedError (401) if the header is missing, malformed,
    or the token doesn't validate against the configured secret.
    """
    token = get_bearer_token(authorization)
    return validate_jwt(
        token,
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        issuer=settings.jwt_issuer,
    )


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_video_repository(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Generator[VideoStore, None, None]:
    """
    Provide VideoRepository with database connection.

    Generator dependency so the connection is closed after the request.
    In mock mode, one in-memory connection is reused across requests
    so that records persist during the local session.
    """
    global _mock_snowflake_connection

    if settings.snowflake_mock_mode:
        if _mock_snowflake_connection is None:
            _mock_snowflake_connection = MockSnowflakeConnection()
            logger.info("Created shared mock Snowflake connection")

        yield VideoRepository(_mock_snowflake_connection)
    else:
        config = SnowflakeConfig(
            account=settings.snowflake_account,
            user=settings.snowflake_user,
            password=settings.snowflake_password or None,
            private_key_path=settings.snowflake_private_key_path,
            database=settings.snowflake_database,
            schema=settings.snowflake_schema,
            warehouse=settings.snowflake_warehouse,
            role=settings.snowflake_role,
        )

        with create_snowflake_connection(config=config) as conn:
            logger.debug("Created VideoRepository with Snowflake connection")
            yield VideoRepository(conn)


def get_storage_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> StorageClient:
    """
    Provide storage client for media uploads.

    Returns either an S3 client or the shared in-memory mock.
    """
    global _mock_storage_client

    config = StorageConfig(
        bucket_name=settings.s3_bucket,
        region=settings.s3_region,
        access_key_id=settings.aws_access_key_id,
        secret_access_key=settings.aws_secret_access_key,
        endpoint_url=settings.s3_endpoint_url,
    )

    if settings.s3_mock_mode:
        if _mock_storage_client is None:
            _mock_storage_client = create_storage_client(config=config, mock_mode=True)
            logger.info("Created shared mock storage client")
        return _mock_storage_client

    return create_storage_client(config=config)


def get_media_prober(
    settings: Annotated[Settings, Depends(get_settings)],
) -> MediaProber:
    """Provide the media prober (ffprobe or mock)."""
    return create_media_prober(
        mock_mode=settings.media_probe_mock_mode,
        ffprobe_path=settings.ffprobe_path,
        timeout_seconds=settings.ffprobe_timeout_seconds,
    )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

CurrentUserId = Annotated[UUID, Depends(get_current_user_id)]
VideoStoreDep = Annotated[VideoStore, Depends(get_video_repository)]
StorageClientDep = Annotated[StorageClient, Depends(get_storage_client)]
MediaProberDep = Annotated[MediaProber, Depends(get_media_prober)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
