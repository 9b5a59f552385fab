"""
Service configuration.

Values come from environment variables (or a .env file). Mock modes let
the API run locally without Snowflake, S3 or FFmpeg.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
