"""
Orientation classification.

The rule is an exact integer match against 16:9 in either direction:

    width  == 16 * height // 9   -> landscape
    height == 16 * width  // 9   -> portrait
    anything else                -> other

Floor division truncates, so resolutions that are only approximately 16:9
(e.g. 854x480) fall into "other". Existing stored keys depend on this
boundary; do not swap in a tolerance-based comparison without migrating.
"""

from .models import Orientation, ProbeResult


def classify_orientation(width: int, height: int) -> Orientation:
    """Classify frame dimensions. Pure function of (width, height)."""
    if width < 0 or height < 0:
        raise ValueError("Frame dimensions cannot be negative")

    if width == 16 * height // 9:
        return Orientation.LANDSCAPE
    if height == 16 * width // 9:
        return Orientation.PORTRAIT
    return Orientation.OTHER


def classify_probe_result(result: ProbeResult) -> Orientation:
    """
    Classify the video stream of a probed file.

    Raises ValueError if the result has no usable video stream; callers
    treat that as a probe failure rather than an "other" orientation.
    """
    stream = result.video_stream
    if stream is None:
        raise ValueError("No video stream found")
    if stream.width is None or stream.height is None:
        raise ValueError("Video stream has no dimensions")

    return classify_orientation(stream.width, stream.height)
