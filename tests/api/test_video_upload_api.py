"""
API tests for the upload endpoints.

Each test builds an app over in-memory collaborators (see conftest.py)
and checks both the response and what did or did not reach the
collaborators: the bucket, the prober, the staging directory and the
metadata store.
"""

import asyncio
import os
import re
from uuid import uuid4

import pytest

from conftest import build_app, build_client, make_settings, on_event_loop, token_for
from src.infrastructure.snowflake.client import MockSnowflakeConnection
from src.infrastructure.snowflake.repositories.videos import VideoRepository
from src.infrastructure.storage.client import StorageError
from src.infrastructure.video.prober import MockMediaProber, ProbeError

VIDEO_URL_PATTERN = re.compile(
    r"^https://tubely-test\.s3\.us-west-2\.amazonaws\.com/"
    r"(landscape|portrait|other)/[A-Za-z0-9_-]{43}\.mp4$"
)

MP4_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 4096


def upload_url(video_id) -> str:
    return f"/api/videos/{video_id}/upload"


def mp4_file(data: bytes = MP4_BYTES, content_type: str = "video/mp4") -> dict:
    return {"video": ("boots.mp4", data, content_type)}


def key_from_url(url: str) -> str:
    return url.split(".amazonaws.com/", 1)[1]


class FailingProber(MockMediaProber):
    async def probe(self, path):
        self.probed_paths.append(path)
        raise ProbeError("moov atom not found")


class NoVideoStreamProber(MockMediaProber):
    async def probe(self, path):
        from src.core.media.models import MediaStream, ProbeResult
        self.probed_paths.append(path)
        return ProbeResult(streams=(MediaStream(codec_type="audio"),))


class FailingStorage:
    def __init__(self):
        self.put_calls = []

    async def put_object(self, key, body, content_type):
        self.put_calls.append(key)
        raise StorageError("connection reset")


class ReadOnlyRepository(VideoRepository):
    def update_video(self, video):
        raise RuntimeError("warehouse suspended")


class ThreadRecordingRepository(VideoRepository):
    """Notes whether each call ran on the event loop thread."""

    def __init__(self, connection):
        super().__init__(connection)
        self.calls_on_loop: list[tuple[str, bool]] = []

    def get_video(self, video_id):
        self.calls_on_loop.append(("get_video", on_event_loop()))
        return super().get_video(video_id)

    def update_video(self, video):
        self.calls_on_loop.append(("update_video", on_event_loop()))
        super().update_video(video)


BOUNDARY = "tubely-boundary"

PART_HEADER = (
    f"--{BOUNDARY}\r\n"
    'Content-Disposition: form-data; name="video"; filename="boots.mp4"\r\n'
    "Content-Type: video/mp4\r\n\r\n"
).encode()


def send_raw(app, path: str, headers: dict, chunks: list[bytes], disconnect: bool = False):
    """
    Drive the ASGI app with a hand-fed body.

    Chunks are delivered without a Content-Length. With disconnect=True the
    client goes away after the last chunk instead of finishing the body.
    """
    messages = [
        {"type": "http.request", "body": chunk, "more_body": disconnect or i < len(chunks) - 1}
        for i, chunk in enumerate(chunks)
    ]
    sent = []

    async def receive():
        if messages:
            return messages.pop(0)
        return {"type": "http.disconnect"}

    async def send(message):
        sent.append(message)

    scope = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": "POST",
        "scheme": "http",
        "path": path,
        "raw_path": path.encode(),
        "root_path": "",
        "query_string": b"",
        "headers": [
            (b"content-type", f"multipart/form-data; boundary={BOUNDARY}".encode()),
            *[(k.lower().encode(), v.encode()) for k, v in headers.items()],
        ],
        "client": ("testclient", 50000),
        "server": ("testserver", 80),
    }

    asyncio.run(app(scope, receive, send))

    status = next(m["status"] for m in sent if m["type"] == "http.response.start")
    body = b"".join(m.get("body", b"") for m in sent if m["type"] == "http.response.body")
    return status, body


# ---------------------------------------------------------------------------
# Video Upload
# ---------------------------------------------------------------------------

class TestVideoUploadSuccess:

    def test_landscape_upload_is_stored_and_recorded(
        self, client, video, owner_headers, storage, prober, repository, staging_dir
    ):
        response = client.post(upload_url(video.id), files=mp4_file(), headers=owner_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == str(video.id)
        assert body["user_id"] == str(video.user_id)
        assert body["title"] == "Boots demo"
        assert VIDEO_URL_PATTERN.match(body["video_url"])
        assert "/landscape/" in body["video_url"]

        key = key_from_url(body["video_url"])
        assert storage.put_calls == [key]
        assert storage.objects[key].content_type == "video/mp4"
        assert storage.objects[key].data == MP4_BYTES

        assert repository.get_video(video.id).video_url == body["video_url"]

    def test_staged_file_is_removed(self, client, video, owner_headers, prober, staging_dir):
        client.post(upload_url(video.id), files=mp4_file(), headers=owner_headers)

        assert len(prober.probed_paths) == 1
        probed = prober.probed_paths[0]
        assert os.path.dirname(probed) == str(staging_dir)
        assert not os.path.exists(probed)
        assert os.listdir(staging_dir) == []

    def test_portrait_video_goes_under_portrait(
        self, settings, repository, storage, video, owner_headers
    ):
        client = build_client(settings, repository, storage, MockMediaProber(width=1080, height=1920))

        response = client.post(upload_url(video.id), files=mp4_file(), headers=owner_headers)

        assert response.status_code == 200
        assert "/portrait/" in response.json()["video_url"]

    def test_square_video_goes_under_other(
        self, settings, repository, storage, video, owner_headers
    ):
        client = build_client(settings, repository, storage, MockMediaProber(width=1080, height=1080))

        response = client.post(upload_url(video.id), files=mp4_file(), headers=owner_headers)

        assert "/other/" in response.json()["video_url"]

    def test_media_type_parameters_are_ignored(self, client, video, owner_headers):
        response = client.post(
            upload_url(video.id),
            files=mp4_file(content_type="video/MP4; codecs=avc1"),
            headers=owner_headers,
        )

        assert response.status_code == 200

    def test_each_upload_gets_a_new_key(self, client, video, owner_headers, storage):
        first = client.post(upload_url(video.id), files=mp4_file(), headers=owner_headers)
        second = client.post(upload_url(video.id), files=mp4_file(), headers=owner_headers)

        assert first.json()["video_url"] != second.json()["video_url"]
        assert len(storage.objects) == 2


class TestVideoUploadAuthorization:

    def test_missing_token_is_rejected(self, client, video, storage):
        response = client.post(upload_url(video.id), files=mp4_file())

        assert response.status_code == 401
        assert response.json()["detail"] == "Couldn't find JWT"
        assert response.headers["www-authenticate"] == "Bearer"
        assert storage.put_calls == []

    def test_token_signed_with_another_secret_is_rejected(self, client, video, owner_id):
        headers = {"Authorization": f"Bearer {token_for(owner_id, secret='other-secret')}"}

        response = client.post(upload_url(video.id), files=mp4_file(), headers=headers)

        assert response.status_code == 401
        assert response.json()["detail"] == "Couldn't validate JWT"

    def test_unconfigured_secret_rejects_self_signed_tokens(
        self, staging_dir, repository, storage, prober, video, owner_id
    ):
        settings = make_settings(upload_temp_dir=str(staging_dir), jwt_secret="")
        client = build_client(settings, repository, storage, prober)
        headers = {"Authorization": f"Bearer {token_for(owner_id, secret='')}"}

        response = client.post(upload_url(video.id), files=mp4_file(b"\x00" * 100), headers=headers)

        assert response.status_code == 401
        assert storage.put_calls == []
        assert repository.get_video(video.id).video_url is None

    def test_non_owner_never_reaches_disk_or_bucket(
        self, client, video, storage, prober, repository, staging_dir
    ):
        headers = {"Authorization": f"Bearer {token_for(uuid4())}"}

        response = client.post(upload_url(video.id), files=mp4_file(), headers=headers)

        assert response.status_code == 401
        assert response.json()["detail"] == "User not authorized"
        assert storage.put_calls == []
        assert prober.probed_paths == []
        assert os.listdir(staging_dir) == []
        assert repository.get_video(video.id).video_url is None


class TestVideoUploadRejections:

    def test_malformed_id_is_bad_request(self, client, owner_headers):
        response = client.post(upload_url("not-a-uuid"), files=mp4_file(), headers=owner_headers)

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid ID"

    def test_unknown_video_is_not_found(self, client, owner_headers, storage):
        response = client.post(upload_url(uuid4()), files=mp4_file(), headers=owner_headers)

        assert response.status_code == 404
        assert storage.put_calls == []

    def test_wrong_media_type_is_rejected(self, client, video, owner_headers, storage, prober):
        response = client.post(
            upload_url(video.id),
            files=mp4_file(content_type="video/quicktime"),
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid file upload"
        assert storage.put_calls == []
        assert prober.probed_paths == []

    def test_unparsable_media_type_is_rejected(self, client, video, owner_headers):
        response = client.post(
            upload_url(video.id),
            files=mp4_file(content_type="mp4"),
            headers=owner_headers,
        )

        assert response.status_code == 400

    def test_missing_video_field_is_rejected(self, client, video, owner_headers):
        response = client.post(
            upload_url(video.id),
            files={"file": ("boots.mp4", MP4_BYTES, "video/mp4")},
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert response.json()["detail"] == "Unable to parse video file"

    def test_oversized_upload_is_rejected(
        self, staging_dir, repository, storage, prober, video, owner_headers
    ):
        settings = make_settings(upload_temp_dir=str(staging_dir), max_upload_size_bytes=1024)
        client = build_client(settings, repository, storage, prober)

        response = client.post(upload_url(video.id), files=mp4_file(), headers=owner_headers)

        assert response.status_code == 413
        assert storage.put_calls == []
        assert prober.probed_paths == []
        assert os.listdir(staging_dir) == []


class TestVideoUploadCollaboratorFailures:

    def test_probe_failure(self, settings, repository, storage, video, owner_headers, staging_dir):
        prober = FailingProber()
        client = build_client(settings, repository, storage, prober)

        response = client.post(upload_url(video.id), files=mp4_file(), headers=owner_headers)

        assert response.status_code == 500
        assert response.json()["detail"] == "Couldn't get aspect ratio"
        assert storage.put_calls == []
        assert os.listdir(staging_dir) == []
        assert repository.get_video(video.id).video_url is None

    def test_file_without_video_stream_is_a_probe_failure(
        self, settings, repository, storage, video, owner_headers
    ):
        client = build_client(settings, repository, storage, NoVideoStreamProber())

        response = client.post(upload_url(video.id), files=mp4_file(), headers=owner_headers)

        assert response.status_code == 500
        assert storage.put_calls == []

    def test_store_failure(self, settings, repository, prober, video, owner_headers, staging_dir):
        storage = FailingStorage()
        client = build_client(settings, repository, storage, prober)

        response = client.post(upload_url(video.id), files=mp4_file(), headers=owner_headers)

        assert response.status_code == 500
        assert response.json()["detail"] == "Couldn't upload to S3"
        assert len(storage.put_calls) == 1
        assert os.listdir(staging_dir) == []
        assert repository.get_video(video.id).video_url is None

    def test_metadata_write_failure_leaves_orphan(
        self, settings, storage, prober, owner_id, owner_headers
    ):
        from src.core.media.models import Video

        repository = ReadOnlyRepository(MockSnowflakeConnection())
        video = repository.create_video(Video(user_id=owner_id))
        client = build_client(settings, repository, storage, prober)

        response = client.post(upload_url(video.id), files=mp4_file(), headers=owner_headers)

        assert response.status_code == 500
        assert response.json()["detail"] == "Couldn't update video"
        assert len(storage.objects) == 1
        assert repository.get_video(video.id).video_url is None


class TestVideoUploadInterruptedBodies:

    def test_client_disconnect_while_reading_form(
        self, settings, repository, storage, prober, video, owner_headers, staging_dir
    ):
        app = build_app(settings, repository, storage, prober)

        status, body = send_raw(
            app,
            upload_url(video.id),
            owner_headers,
            [PART_HEADER + b"\x00" * 512],
            disconnect=True,
        )

        assert status == 400
        assert b"Upload aborted" in body
        assert storage.put_calls == []
        assert prober.probed_paths == []
        assert os.listdir(staging_dir) == []
        assert repository.get_video(video.id).video_url is None

    def test_streamed_body_over_the_ceiling(
        self, staging_dir, repository, storage, prober, video, owner_headers
    ):
        settings = make_settings(upload_temp_dir=str(staging_dir), max_upload_size_bytes=1024)
        app = build_app(settings, repository, storage, prober)

        status, body = send_raw(
            app,
            upload_url(video.id),
            owner_headers,
            [PART_HEADER + b"\x00" * 600, b"\x00" * 600, b"\x00" * 600],
        )

        assert status == 413
        assert b"Upload too large" in body
        assert storage.put_calls == []
        assert prober.probed_paths == []
        assert os.listdir(staging_dir) == []


class TestVideoUploadEventLoop:

    def test_metadata_calls_run_off_the_event_loop(
        self, settings, storage, prober, owner_id, owner_headers
    ):
        from src.core.media.models import Video

        repository = ThreadRecordingRepository(MockSnowflakeConnection())
        video = repository.create_video(Video(user_id=owner_id))
        client = build_client(settings, repository, storage, prober)

        response = client.post(upload_url(video.id), files=mp4_file(), headers=owner_headers)

        assert response.status_code == 200
        assert repository.calls_on_loop == [("get_video", False), ("update_video", False)]


# ---------------------------------------------------------------------------
# Thumbnail Upload
# ---------------------------------------------------------------------------

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def thumbnail_url(video_id) -> str:
    return f"/api/thumbnail_upload/{video_id}"


class TestThumbnailUpload:

    def test_png_thumbnail_is_stored(self, client, video, owner_headers, storage, repository):
        response = client.post(
            thumbnail_url(video.id),
            files={"thumbnail": ("thumb.png", PNG_BYTES, "image/png")},
            headers=owner_headers,
        )

        assert response.status_code == 200
        url = response.json()["thumbnail_url"]
        assert re.match(
            r"^https://tubely-test\.s3\.us-west-2\.amazonaws\.com/thumbnails/[A-Za-z0-9_-]{43}\.png$",
            url,
        )
        assert storage.objects[key_from_url(url)].data == PNG_BYTES
        assert repository.get_video(video.id).thumbnail_url == url

    def test_gif_is_rejected(self, client, video, owner_headers, storage):
        response = client.post(
            thumbnail_url(video.id),
            files={"thumbnail": ("thumb.gif", b"GIF89a", "image/gif")},
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert storage.put_calls == []

    def test_oversized_thumbnail_is_rejected(
        self, staging_dir, repository, storage, prober, video, owner_headers
    ):
        settings = make_settings(upload_temp_dir=str(staging_dir), max_thumbnail_size_bytes=16)
        client = build_client(settings, repository, storage, prober)

        response = client.post(
            thumbnail_url(video.id),
            files={"thumbnail": ("thumb.png", PNG_BYTES, "image/png")},
            headers=owner_headers,
        )

        assert response.status_code == 413
        assert response.json()["detail"] == "Thumbnail too large"
        assert storage.put_calls == []

    def test_non_owner_is_rejected(self, client, video, storage):
        headers = {"Authorization": f"Bearer {token_for(uuid4())}"}

        response = client.post(
            thumbnail_url(video.id),
            files={"thumbnail": ("thumb.png", PNG_BYTES, "image/png")},
            headers=headers,
        )

        assert response.status_code == 401
        assert storage.put_calls == []
