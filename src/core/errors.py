"""
Error taxonomy for the upload pipeline.

Every failure in the pipeline maps to exactly one of these exceptions.
Each carries the HTTP status code and the short, client-safe message that
the API layer renders. Internal detail (stack traces, subprocess output,
boto errors) is logged where the failure is detected and never stored on
the exception message.
"""

from typing import Optional


class TubelyError(Exception):
    """Base class for all errors the API turns into a response."""

    status_code: int = 500
    default_detail: str = "Internal server error"

    def __init__(self, detail: Optional[str] = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# 4xx - caller problems
# ---------------------------------------------------------------------------

class BadRequestError(TubelyError):
    """Malformed identity, unparsable form, missing file field."""
    status_code = 400
    default_detail = "Bad request"


class InvalidMediaTypeError(BadRequestError):
    """Content-Type header could not be parsed as type/subtype."""
    default_detail = "Invalid media type"


class UnsupportedMediaTypeError(BadRequestError):
    """
    Declared media type is well-formed but not accepted.

    Reported as 400 to stay compatible with existing clients.
    """
    default_detail = "Invalid file upload"


class UnauthenticatedError(TubelyError):
    """Missing, malformed, invalid or expired bearer credential."""
    status_code = 401
    default_detail = "Couldn't validate JWT"


class UnauthorizedError(TubelyError):
    """Authenticated, but not the owner of the video."""
    status_code = 401
    default_detail = "User not authorized"


class VideoNotFoundError(TubelyError):
    """No metadata record exists for the requested identity."""
    status_code = 404
    default_detail = "Video not found"


class PayloadTooLargeError(TubelyError):
    """Request body or uploaded file exceeds the configured ceiling."""
    status_code = 413
    default_detail = "Upload too large"


# ---------------------------------------------------------------------------
# 5xx - collaborator failures
# ---------------------------------------------------------------------------

class MetadataLookupError(TubelyError):
    """The metadata store failed while fetching a record."""
    default_detail = "Couldn't find video metadata"


class ProbeFailedError(TubelyError):
    """The media prober could not be run or produced unusable output."""
    default_detail = "Couldn't get aspect ratio"


class StoreUnavailableError(TubelyError):
    """The durable object store rejected or failed the upload."""
    default_detail = "Couldn't upload to S3"


class MetadataWriteFailedError(TubelyError):
    """The metadata store failed while saving the updated record."""
    default_detail = "Couldn't update video"
