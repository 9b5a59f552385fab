"""
Media upload endpoints.

Video upload is a strictly linear pipeline, one pass per request:

1. Authenticate the bearer token (dependency)
2. Load the video record and check the caller owns it
3. Parse the multipart form and stage the file on local disk
4. Probe the staged file and classify its orientation
5. Upload to S3 under <orientation>/<random token>.mp4
6. Save the public URL on the record and return it

Each step either succeeds or raises a TubelyError that becomes the
response; nothing is retried. The form is only parsed after ownership is
confirmed, so a stranger's upload never reaches the disk or the bucket.

If step 6 fails, the object uploaded in step 5 is left in the bucket
with no record pointing at it. The key is logged so it can be swept.

Thumbnail upload follows the same shape minus probing.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Request, status
from pydantic import BaseModel, Field
from starlette.datastructures import FormData, UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import ClientDisconnect

from ...core.errors import (
    BadRequestError,
    MetadataLookupError,
    MetadataWriteFailedError,
    PayloadTooLargeError,
    ProbeFailedError,
    StoreUnavailableError,
    UnsupportedMediaTypeError,
    VideoNotFoundError,
)
from ...core.media.keys import build_object_url, generate_storage_key, parse_media_type
from ...core.media.models import Orientation, Video
from ...core.media.orientation import classify_probe_result
from ...infrastructure.auth.tokens import ensure_owner
from ...infrastructure.snowflake.repositories.videos import VideoStore
from ...infrastructure.storage.client import Body, StorageClient, StorageError
from ...infrastructure.video.prober import MediaProber, ProbeError
from ...infrastructure.video.staging import staged_upload
from ..dependencies import (
    CurrentUserId,
    MediaProberDep,
    SettingsDep,
    StorageClientDep,
    VideoStoreDep,
)

logger = logging.getLogger(__name__)

router = APIRouter()

VIDEO_MEDIA_TYPE = "video/mp4"
THUMBNAIL_MEDIA_TYPES = ("image/jpeg", "image/png")
THUMBNAIL_KEY_PREFIX = "thumbnails"


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------

class VideoResponse(BaseModel):
    """A video metadata record."""
    id: UUID = Field(description="Video identifier")
    user_id: UUID = Field(description="Owner of the video")
    title: str = Field(description="Video title")
    description: str = Field(description="Video description")
    video_url: Optional[str] = Field(default=None, description="Public URL of the video file")
    thumbnail_url: Optional[str] = Field(default=None, description="Public URL of the thumbnail")
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_video(cls, video: Video) -> "VideoResponse":
        return cls(
            id=video.id,
            user_id=video.user_id,
            title=video.title,
            description=video.description,
            video_url=video.video_url,
            thumbnail_url=video.thumbnail_url,
            created_at=video.created_at,
            updated_at=video.updated_at,
        )


# ---------------------------------------------------------------------------
# Pipeline Steps
# ---------------------------------------------------------------------------

def parse_video_id(raw: str) -> UUID:
    try:
        return UUID(raw)
    except ValueError:
        raise BadRequestError("Invalid ID")


async def load_owned_video(raw_video_id: str, user_id: UUID, repository: VideoStore) -> Video:
    """Fetch the record and make sure the caller owns it."""
    video_id = parse_video_id(raw_video_id)

    try:
        video = await asyncio.to_thread(repository.get_video, video_id)
    except VideoNotFoundError:
        logger.info("Video not found", extra={"video_id": str(video_id)})
        raise
    except Exception as e:
        logger.error(
            "Failed to fetch video metadata",
            extra={"video_id": str(video_id), "error": str(e)},
            exc_info=e,
        )
        raise MetadataLookupError()

    ensure_owner(user_id, video)
    return video


async def read_form(request: Request, video_id: UUID) -> FormData:
    """
    Parse the multipart body.

    Runs only after authorization. Client disconnects, oversized and
    malformed bodies end the request before anything is staged.

    Starlette only closes the parts it has spooled so far when parsing
    fails with MultiPartException. On a disconnect or an oversized body
    those spooled parts are released when the parser is collected; they
    are anonymous temp files, so nothing is left on disk.
    """
    try:
        return await request.form(max_files=1)
    except PayloadTooLargeError:
        logger.info("Upload exceeded the body ceiling", extra={"video_id": str(video_id)})
        raise
    except ClientDisconnect:
        logger.info("Client disconnected during upload", extra={"video_id": str(video_id)})
        raise BadRequestError("Upload aborted")
    except (MultiPartException, StarletteHTTPException) as e:
        logger.info(
            "Unparsable upload form",
            extra={"video_id": str(video_id), "error": str(e)}
        )
        raise BadRequestError("Unable to parse form file")


def get_form_file(form: FormData, field_name: str) -> UploadFile:
    upload = form.get(field_name)
    if not isinstance(upload, UploadFile):
        raise BadRequestError(f"Unable to parse {field_name} file")
    return upload


async def probe_orientation(prober: MediaProber, path: str, video_id: UUID) -> Orientation:
    try:
        result = await prober.probe(path)
        orientation = classify_probe_result(result)
    except (ProbeError, ValueError) as e:
        logger.error(
            "Failed to classify video",
            extra={"video_id": str(video_id), "error": str(e)}
        )
        raise ProbeFailedError()

    logger.info(
        "Classified video",
        extra={
            "video_id": str(video_id),
            "orientation": orientation.value,
            "aspect_ratio": orientation.aspect_ratio,
        }
    )
    return orientation


async def store_object(
    storage: StorageClient,
    key: str,
    body: Body,
    media_type: str,
    video_id: UUID,
) -> None:
    try:
        await storage.put_object(key=key, body=body, content_type=media_type)
    except StorageError as e:
        logger.error(
            "Failed to store upload",
            extra={"video_id": str(video_id), "key": key, "error": str(e)}
        )
        raise StoreUnavailableError()


async def save_video(repository: VideoStore, video: Video, key: str) -> None:
    try:
        await asyncio.to_thread(repository.update_video, video)
    except Exception as e:
        logger.error(
            "Failed to update video; stored object is orphaned",
            extra={"video_id": str(video.id), "orphaned_key": key, "error": str(e)},
            exc_info=e,
        )
        raise MetadataWriteFailedError()


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post(
    "/videos/{video_id}/upload",
    response_model=VideoResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload a video file",
    description=(
        "Upload an MP4 for an existing video record. Multipart field 'video'. "
        "The file is classified as landscape, portrait or other and stored in S3."
    ),
)
async def upload_video(
    video_id: str,
    request: Request,
    user_id: CurrentUserId,
    repository: VideoStoreDep,
    storage: StorageClientDep,
    prober: MediaProberDep,
    settings: SettingsDep,
) -> VideoResponse:
    video = await load_owned_video(video_id, user_id, repository)

    logger.info(
        "Video upload started",
        extra={"video_id": str(video.id), "user_id": str(user_id)}
    )

    form = await read_form(request, video.id)
    try:
        upload = get_form_file(form, "video")

        media_type = parse_media_type(upload.content_type)
        if media_type != VIDEO_MEDIA_TYPE:
            raise UnsupportedMediaTypeError()

        with staged_upload(
            suffix=".mp4",
            directory=settings.upload_temp_dir,
            max_bytes=settings.max_upload_size_bytes,
        ) as staged:
            size = await staged.write_from(upload, chunk_size=settings.upload_chunk_size_bytes)
            staged.rewind()

            orientation = await probe_orientation(prober, staged.path, video.id)

            key = generate_storage_key(orientation.value, media_type)
            await store_object(storage, key, staged.file, media_type, video.id)
    finally:
        await form.close()

    video.attach_video(build_object_url(settings.s3_bucket, settings.s3_region, key))
    await save_video(repository, video, key)

    logger.info(
        "Video upload complete",
        extra={"video_id": str(video.id), "key": key, "size_bytes": size}
    )

    return VideoResponse.from_video(video)


@router.post(
    "/thumbnail_upload/{video_id}",
    response_model=VideoResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload a thumbnail",
    description="Upload a JPEG or PNG thumbnail for an existing video. Multipart field 'thumbnail'.",
)
async def upload_thumbnail(
    video_id: str,
    request: Request,
    user_id: CurrentUserId,
    repository: VideoStoreDep,
    storage: StorageClientDep,
    settings: SettingsDep,
) -> VideoResponse:
    video = await load_owned_video(video_id, user_id, repository)

    form = await read_form(request, video.id)
    try:
        upload = get_form_file(form, "thumbnail")

        media_type = parse_media_type(upload.content_type)
        if media_type not in THUMBNAIL_MEDIA_TYPES:
            raise UnsupportedMediaTypeError()

        # thumbnails are small enough to hold in memory
        limit = settings.max_thumbnail_size_bytes
        data = await upload.read(limit + 1)
        if len(data) > limit:
            raise PayloadTooLargeError("Thumbnail too large")
    finally:
        await form.close()

    key = generate_storage_key(THUMBNAIL_KEY_PREFIX, media_type)
    await store_object(storage, key, data, media_type, video.id)

    video.attach_thumbnail(build_object_url(settings.s3_bucket, settings.s3_region, key))
    await save_video(repository, video, key)

    logger.info(
        "Thumbnail upload complete",
        extra={"video_id": str(video.id), "key": key, "size_bytes": len(data)}
    )

    return VideoResponse.from_video(video)
