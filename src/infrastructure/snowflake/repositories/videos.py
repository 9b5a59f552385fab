"""
Snowflake repository for video metadata records.

The repository:
1. Translates between the Video domain model and database rows
2. Encapsulates all SQL queries
3. Provides a clean interface for the upload endpoints

Records are created by the video management side of the product; the
upload endpoints only read a record and write back new URLs.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol
from uuid import UUID

from src.core.errors import VideoNotFoundError
from src.core.media.models import Video

logger = logging.getLogger(__name__)


class SnowflakeConnection(Protocol):
    """
    Protocol for Snowflake connections.

    Using a protocol means tests can provide a mock without
    importing the actual snowflake-connector-python.
    """

    def cursor(self): ...
    def commit(self) -> None: ...


@dataclass
class SnowflakeConfig:
    """Configuration for Snowflake connection."""
    account: str
    user: str
    password: Optional[str] = None
    private_key_path: Optional[str] = None
    database: str = "TUBELY"
    schema: str = "MEDIA"
    warehouse: str = "COMPUTE_WH"
    role: Optional[str] = None


class VideoStore(Protocol):
    """What the upload endpoints need from the metadata store."""

    def get_video(self, video_id: UUID) -> Video: ...
    def update_video(self, video: Video) -> None: ...
    def ping(self) -> None: ...


VIDEOS_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS videos (
    id VARCHAR(36) PRIMARY KEY,
    user_id VARCHAR(36) NOT NULL,
    title VARCHAR NOT NULL DEFAULT '',
    description VARCHAR NOT NULL DEFAULT '',
    video_url VARCHAR,
    thumbnail_url VARCHAR,
    created_at TIMESTAMP_TZ NOT NULL,
    updated_at TIMESTAMP_TZ NOT NULL
)
"""

VIDEO_COLUMNS = (
    "id, user_id, title, description, video_url, thumbnail_url, "
    "created_at, updated_at"
)


class VideoRepository:
    """
    Repository for video metadata persistence.

    - get_video: load a record by id
    - update_video: write back mutable fields (never the owner)
    - create_video: insert a new record (seeding, admin tooling)
    """

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def get_video(self, video_id: UUID) -> Video:
        cursor = self._conn.cursor()

        try:
            cursor.execute(
                f"SELECT {VIDEO_COLUMNS} FROM videos WHERE id = %s",
                (str(video_id),),
            )
            row = cursor.fetchone()
            if not row:
                raise VideoNotFoundError(f"Video {video_id} not found")

            return self._build_video_from_row(row)

        finally:
            cursor.close()

    def update_video(self, video: Video) -> None:
        """
        Persist the mutable fields of an existing record.

        Last write wins: concurrent updates to the same record are not
        serialized here.
        """
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                UPDATE videos SET
                    title = %s,
                    description = %s,
                    video_url = %s,
                    thumbnail_url = %s,
                    updated_at = %s
                WHERE id = %s
            """, (
                video.title,
                video.description,
                video.video_url,
                video.thumbnail_url,
                video.updated_at,
                str(video.id),
            ))

            if cursor.rowcount == 0:
                raise VideoNotFoundError(f"Video {video.id} not found")

            self._conn.commit()

            logger.debug("Updated video record", extra={"video_id": str(video.id)})

        except Exception as e:
            logger.error(
                "Failed to update video",
                extra={"video_id": str(video.id), "error": str(e)}
            )
            raise
        finally:
            cursor.close()

    def create_video(self, video: Video) -> Video:
        cursor = self._conn.cursor()

        try:
            cursor.execute(f"""
                INSERT INTO videos ({VIDEO_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """, (
                str(video.id),
                str(video.user_id),
                video.title,
                video.description,
                video.video_url,
                video.thumbnail_url,
                video.created_at,
                video.updated_at,
            ))
            self._conn.commit()

            logger.info(
                "Created video record",
                extra={"video_id": str(video.id), "user_id": str(video.user_id)}
            )

            return video

        finally:
            cursor.close()

    def create_table(self) -> None:
        cursor = self._conn.cursor()
        try:
            cursor.execute(VIDEOS_TABLE_DDL)
            self._conn.commit()
        finally:
            cursor.close()

    def ping(self) -> None:
        """Cheap round trip used by the readiness check."""
        cursor = self._conn.cursor()
        try:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        finally:
            cursor.close()

    def _build_video_from_row(self, row: tuple) -> Video:
        (
            video_id, user_id, title, description,
            video_url, thumbnail_url, created_at, updated_at,
        ) = row

        return Video(
            id=UUID(str(video_id)),
            user_id=UUID(str(user_id)),
            title=title or "",
            description=description or "",
            video_url=video_url,
            thumbnail_url=thumbnail_url,
            created_at=created_at,
            updated_at=updated_at,
        )
