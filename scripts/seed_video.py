#!/usr/bin/env python3
"""
Create a video record and print an access token for its owner.

Handy for exercising the upload endpoints locally:

    python scripts/seed_video.py --title "Boots demo" --create-table
    curl -H "Authorization: Bearer $TOKEN" \
         -F "video=@boots.mp4;type=video/mp4" \
         http://localhost:8091/api/videos/$VIDEO_ID/upload

Requires:
    - .env file with Snowflake credentials and JWT_SECRET
"""

import sys
from datetime import timedelta
from pathlib import Path
from uuid import UUID, uuid4

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.config.settings import get_settings
from src.core.media.models import Video
from src.infrastructure.auth.tokens import make_jwt
from src.infrastructure.snowflake.client import create_snowflake_connection
from src.infrastructure.snowflake.repositories.videos import SnowflakeConfig, VideoRepository


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Seed a video record for local testing")
    parser.add_argument("--user-id", type=UUID, default=None, help="Owner id (random if omitted)")
    parser.add_argument("--title", default="Untitled", help="Video title")
    parser.add_argument("--description", default="", help="Video description")
    parser.add_argument("--token-hours", type=int, default=24, help="Token lifetime in hours")
    parser.add_argument("--create-table", action="store_true", help="Create the videos table first")
    args = parser.parse_args()

    settings = get_settings()
    if not settings.jwt_secret:
        print("ERROR: JWT_SECRET is not set")
        sys.exit(1)

    if settings.snowflake_mock_mode:
        print("WARNING: SNOWFLAKE_MOCK_MODE is on; the record only lives for this process")

    config = SnowflakeConfig(
        account=settings.snowflake_account,
        user=settings.snowflake_user,
        password=settings.snowflake_password or None,
        private_key_path=settings.snowflake_private_key_path,
        database=settings.snowflake_database,
        schema=settings.snowflake_schema,
        warehouse=settings.snowflake_warehouse,
        role=settings.snowflake_role,
    )

    video = Video(
        user_id=args.user_id or uuid4(),
        title=args.title,
        description=args.description,
    )

    with create_snowflake_connection(config=config, mock_mode=settings.snowflake_mock_mode) as conn:
        repository = VideoRepository(conn)
        if args.create_table:
            repository.create_table()
        repository.create_video(video)

    token = make_jwt(
        video.user_id,
        settings.jwt_secret,
        expires_in=timedelta(hours=args.token_hours),
        algorithm=settings.jwt_algorithm,
        issuer=settings.jwt_issuer,
    )

    print(f"VIDEO_ID={video.id}")
    print(f"USER_ID={video.user_id}")
    print(f"TOKEN={token}")


if __name__ == "__main__":
    main()
