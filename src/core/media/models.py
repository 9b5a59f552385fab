"""
Domain models for uploaded media.

These models represent the core business concepts. They have no dependencies
on external frameworks, databases, or APIs.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Orientation(Enum):
    """
    Frame geometry of a video.

    The value doubles as the top-level directory of the storage key, so
    renaming a member changes where new uploads land in the bucket.
    """
    LANDSCAPE = "landscape"
    PORTRAIT = "portrait"
    OTHER = "other"

    @property
    def aspect_ratio(self) -> str:
        """Ratio label as reported to humans and logs."""
        return {
            Orientation.LANDSCAPE: "16:9",
            Orientation.PORTRAIT: "9:16",
            Orientation.OTHER: "other",
        }[self]


@dataclass(frozen=True)
class MediaStream:
    """A single stream as reported by the media prober."""
    codec_type: str
    width: Optional[int] = None
    height: Optional[int] = None

    @property
    def is_video(self) -> bool:
        return self.codec_type == "video"


@dataclass(frozen=True)
class ProbeResult:
    """All streams found in a media file."""
    streams: tuple[MediaStream, ...] = ()

    @property
    def video_stream(self) -> Optional[MediaStream]:
        """
        The last video stream in the file.

        Containers with several video tracks (cover art, alternate angles)
        are classified by the final one.
        """
        found = None
        for stream in self.streams:
            if stream.is_video:
                found = stream
        return found


@dataclass
class Video:
    """
    Metadata record for a video.

    Created elsewhere; the upload endpoints only ever read a record and
    then set one of its URLs. user_id never changes after creation.
    """
    user_id: UUID
    id: UUID = field(default_factory=uuid4)
    title: str = ""
    description: str = ""
    video_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def attach_video(self, url: str) -> None:
        self.video_url = url
        self.updated_at = utcnow()

    def attach_thumbnail(self, url: str) -> None:
        self.thumbnail_url = url
        self.updated_at = utcnow()
