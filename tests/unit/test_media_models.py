"""
Tests for the media domain models.
"""

from uuid import uuid4

from src.core.media.models import MediaStream, Orientation, ProbeResult, Video


class TestOrientation:

    def test_values_are_key_prefixes(self):
        assert [o.value for o in Orientation] == ["landscape", "portrait", "other"]

    def test_aspect_ratio_labels(self):
        assert Orientation.LANDSCAPE.aspect_ratio == "16:9"
        assert Orientation.PORTRAIT.aspect_ratio == "9:16"
        assert Orientation.OTHER.aspect_ratio == "other"


class TestProbeResult:

    def test_empty_result_has_no_video_stream(self):
        assert ProbeResult().video_stream is None

    def test_video_stream_is_last_match(self):
        first = MediaStream(codec_type="video", width=1, height=1)
        last = MediaStream(codec_type="video", width=2, height=2)
        result = ProbeResult(streams=(first, MediaStream(codec_type="audio"), last))
        assert result.video_stream is last


class TestVideo:

    def test_new_video_has_no_urls(self):
        video = Video(user_id=uuid4())
        assert video.video_url is None
        assert video.thumbnail_url is None

    def test_attach_video_sets_url_and_touches_updated_at(self):
        video = Video(user_id=uuid4())
        before = video.updated_at

        video.attach_video("https://bucket.s3.us-east-1.amazonaws.com/other/x.mp4")

        assert video.video_url.endswith("/other/x.mp4")
        assert video.updated_at >= before

    def test_attach_thumbnail_leaves_video_url_alone(self):
        video = Video(user_id=uuid4(), video_url="https://example/v.mp4")
        video.attach_thumbnail("https://example/t.png")
        assert video.video_url == "https://example/v.mp4"
        assert video.thumbnail_url == "https://example/t.png"
