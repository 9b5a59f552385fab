"""
Repository pattern implementations for Snowflake.

Repositories translate between domain models and database representations.
"""

from .videos import VideoRepository, VideoStore

__all__ = ["VideoRepository", "VideoStore"]
