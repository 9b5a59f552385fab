"""
Object storage client for uploaded media.

Talks to AWS S3 through boto3, with an in-memory mock for local
development and tests. The public URL of an object is derived from bucket,
region and key (see src.core.media.keys.build_object_url), so the client
only needs to know how to put bytes under a key.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import BinaryIO, Optional, Protocol, Union

logger = logging.getLogger(__name__)

Body = Union[bytes, BinaryIO]


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


@dataclass
class StorageConfig:
    """
    Configuration for S3 storage.

    Credentials are optional: when omitted, boto3 falls back to its
    default chain (environment, shared config, instance role).
    """
    bucket_name: str
    region: str
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    endpoint_url: Optional[str] = None


class StorageClient(Protocol):
    """
    Protocol for object storage operations.

    Using a protocol means tests can provide fakes and we can swap
    storage backends without changing dependent code.
    """

    async def put_object(
        self,
        key: str,
        body: Body,
        content_type: str,
    ) -> None:
        """Store body under key with the given content type."""
        ...


class S3StorageClient:
    """
    AWS S3 object storage client.

    boto3 is synchronous, so each put runs in a worker thread and the
    event loop keeps serving other requests during the transfer.
    """

    def __init__(self, config: StorageConfig) -> None:
        import boto3
        from botocore.config import Config

        self._config = config

        boto_config = Config(
            signature_version="s3v4",
            retries={"max_attempts": 1, "mode": "standard"},
        )

        self._s3_client = boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
            config=boto_config,
        )

        logger.info(
            "Initialized S3 storage client",
            extra={"bucket": config.bucket_name, "region": config.region}
        )

    async def put_object(
        self,
        key: str,
        body: Body,
        content_type: str,
    ) -> None:
        """
        Upload an object to S3.

        File bodies are read from their current position, so callers must
        rewind staged files first.
        """
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            await asyncio.to_thread(
                self._s3_client.put_object,
                Bucket=self._config.bucket_name,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "Failed to upload object",
                extra={"key": key, "error": str(e)}
            )
            raise StorageError(f"Upload failed: {e}")

        logger.info(
            "Uploaded object",
            extra={"key": key, "content_type": content_type}
        )


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

@dataclass
class StoredObject:
    key: str
    content_type: str
    data: bytes


class MockStorageClient:
    """
    In-memory storage for local development and tests.

    Objects are kept in a dictionary and every put is recorded, so tests
    can assert that a failed request never reached the store.
    """

    def __init__(self) -> None:
        self.objects: dict[str, StoredObject] = {}
        self.put_calls: list[str] = []
        logger.info("Initialized mock storage client (in-memory)")

    async def put_object(
        self,
        key: str,
        body: Body,
        content_type: str,
    ) -> None:
        self.put_calls.append(key)
        data = body if isinstance(body, bytes) else body.read()
        self.objects[key] = StoredObject(key=key, content_type=content_type, data=data)

        logger.debug(
            "Stored object in mock storage",
            extra={"key": key, "size_bytes": len(data)}
        )


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return mock client for testing

    Returns:
        StorageClient implementation (S3 or Mock)
    """
    if mock_mode:
        return MockStorageClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return S3StorageClient(config)
