"""
Authentication helpers: bearer extraction, JWT validation, ownership.
"""

from .tokens import ensure_owner, get_bearer_token, make_jwt, validate_jwt

__all__ = ["ensure_owner", "get_bearer_token", "make_jwt", "validate_jwt"]
