"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- auth: JWT bearer token validation
- snowflake: Video metadata persistence
- storage: Object storage (S3)
- video: FFprobe media inspection and upload staging

These wrappers translate between external formats and our domain models.
"""
