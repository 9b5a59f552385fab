"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables with sensible defaults.
Settings are read once at startup and treated as read-only afterwards;
request handlers receive them through FastAPI dependencies.

Mock modes enable local development without external services.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    """

    # API Configuration
    api_title: str = "Tubely API"
    api_version: str = "v1"

    # Authentication
    jwt_secret: str = Field(
        default="",
        description="Shared secret used to validate bearer JWTs."
    )
    jwt_algorithm: str = Field(
        default="HS256",
        description="Signing algorithm of access tokens."
    )
    jwt_issuer: str = Field(
        default="tubely-access",
        description="Expected 'iss' claim of access tokens."
    )

    # S3 Storage Configuration
    s3_bucket: str = Field(
        default="tubely-media",
        description="Bucket that receives uploaded videos and thumbnails"
    )
    s3_region: str = Field(
        default="us-east-1",
        description="Region of the bucket. Also used to build public object URLs."
    )
    s3_endpoint_url: Optional[str] = Field(
        default=None,
        description="Custom S3 endpoint (e.g. MinIO). Leave unset for AWS."
    )
    aws_access_key_id: Optional[str] = Field(
        default=None,
        description="Access key. Falls back to the boto3 credential chain when unset."
    )
    aws_secret_access_key: Optional[str] = Field(
        default=None,
        description="Secret key. Falls back to the boto3 credential chain when unset."
    )
    s3_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real S3."
    )

    # Snowflake Configuration
    snowflake_account: str = Field(
        default="",
        description="Snowflake account identifier"
    )
    snowflake_user: str = Field(
        default="",
        description="Snowflake service account username"
    )
    snowflake_password: str = Field(
        default="",
        description="Snowflake service account password"
    )
    snowflake_private_key_path: Optional[str] = Field(
        default=None,
        description="Path to RSA private key file for key-pair authentication"
    )
    snowflake_database: str = Field(
        default="TUBELY",
        description="Snowflake database name"
    )
    snowflake_schema: str = Field(
        default="MEDIA",
        description="Snowflake schema name"
    )
    snowflake_warehouse: str = Field(
        default="COMPUTE_WH",
        description="Snowflake warehouse for query execution"
    )
    snowflake_role: Optional[str] = Field(
        default=None,
        description="Snowflake role to use (optional)"
    )
    snowflake_mock_mode: bool = Field(
        default=False,
        description="Use in-memory mock instead of real Snowflake connection."
    )

    # Media inspection
    ffprobe_path: str = Field(
        default="ffprobe",
        description="Path to the ffprobe binary"
    )
    ffprobe_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Hard limit for a single probe. Unset means wait for ffprobe to exit."
    )
    media_probe_mock_mode: bool = Field(
        default=False,
        description="Report fixed 1920x1080 streams instead of running ffprobe."
    )
    upload_temp_dir: Optional[str] = Field(
        default=None,
        description="Directory for staged uploads. Defaults to the system temp dir."
    )

    # Upload limits
    max_upload_size_bytes: int = Field(
        default=1 << 30,
        description="Ceiling on a request body (1 GiB)."
    )
    max_thumbnail_size_bytes: int = Field(
        default=10 << 20,
        description="Ceiling on a thumbnail file (10 MiB). Thumbnails are held in memory."
    )
    upload_chunk_size_bytes: int = Field(
        default=1 << 20,
        description="Chunk size used when staging uploads to disk."
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:8091",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields. Kept separate from
        Pydantic validation because requirements depend on mock modes.
        """
        missing = []

        if not self.jwt_secret:
            missing.append("JWT_SECRET")

        if not self.s3_mock_mode:
            if not self.s3_bucket:
                missing.append("S3_BUCKET")
            if not self.s3_region:
                missing.append("S3_REGION")

        if not self.snowflake_mock_mode:
            if not self.snowflake_account:
                missing.append("SNOWFLAKE_ACCOUNT")
            if not self.snowflake_user:
                missing.append("SNOWFLAKE_USER")
            if not self.snowflake_password and not self.snowflake_private_key_path:
                missing.append("SNOWFLAKE_PASSWORD or SNOWFLAKE_PRIVATE_KEY_PATH")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Only loaded once per process. For tests, call
    get_settings.cache_clear() or override the dependency.
    """
    return Settings()
