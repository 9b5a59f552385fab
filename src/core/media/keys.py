"""
Storage key derivation.

Keys look like ``<prefix>/<token>.<extension>``:
- prefix groups objects in the bucket (orientation for videos,
  "thumbnails" for thumbnails)
- token is 32 bytes from the OS CSPRNG, URL-safe base64 without padding
- extension comes from the declared media type, never from sniffing bytes

Tokens are never derived from the video id, so re-uploading the same video
always produces a new object.
"""

import secrets
from typing import Optional

from ..errors import InvalidMediaTypeError

TOKEN_BYTES = 32


def parse_media_type(content_type: Optional[str]) -> str:
    """
    Normalize a Content-Type header value to a bare media type.

    ``video/mp4; codecs="avc1"`` becomes ``video/mp4``.
    """
    if not content_type:
        raise InvalidMediaTypeError()

    media_type = content_type.split(";", 1)[0].strip().lower()
    main_type, sep, sub_type = media_type.partition("/")
    if not sep or not main_type or not sub_type or "/" in sub_type:
        raise InvalidMediaTypeError()

    return media_type


def extension_for_media_type(media_type: str) -> str:
    """File extension implied by a media type (``video/mp4`` -> ``mp4``)."""
    return parse_media_type(media_type).split("/", 1)[1]


def generate_storage_key(prefix: Optional[str], media_type: str) -> str:
    """Build a fresh, unpredictable storage key for one upload."""
    token = secrets.token_urlsafe(TOKEN_BYTES)
    filename = f"{token}.{extension_for_media_type(media_type)}"
    if prefix:
        return f"{prefix}/{filename}"
    return filename


def build_object_url(bucket: str, region: str, key: str) -> str:
    """Public URL of an object in a virtual-hosted-style S3 bucket."""
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"
