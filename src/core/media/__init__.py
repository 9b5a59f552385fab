"""
Media domain: records, orientation rules and storage keys.
"""

from .keys import (
    build_object_url,
    extension_for_media_type,
    generate_storage_key,
    parse_media_type,
)
from .models import MediaStream, Orientation, ProbeResult, Video
from .orientation import classify_orientation, classify_probe_result

__all__ = [
    "MediaStream",
    "Orientation",
    "ProbeResult",
    "Video",
    "build_object_url",
    "classify_orientation",
    "classify_probe_result",
    "extension_for_media_type",
    "generate_storage_key",
    "parse_media_type",
]
