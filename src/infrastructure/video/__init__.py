"""
Video processing infrastructure.

- prober: stream inspection via FFprobe (with a mock for local dev)
- staging: request-scoped temp files for inbound uploads
"""

from .prober import (
    FFprobeMediaProber,
    MediaProber,
    MockMediaProber,
    ProbeError,
    create_media_prober,
)
from .staging import StagedUpload, staged_upload

__all__ = [
    "FFprobeMediaProber",
    "MediaProber",
    "MockMediaProber",
    "ProbeError",
    "StagedUpload",
    "create_media_prober",
    "staged_upload",
]
