"""
Snowflake database connection management.

Provides connection factory and context manager for Snowflake operations.
Includes mock mode with in-memory storage for local development.

Most code never touches this module directly - it goes through
VideoRepository which handles the translation between domain models and
database rows.
"""

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from .repositories.videos import SnowflakeConfig, SnowflakeConnection

logger = logging.getLogger(__name__)


class SnowflakeConnectionError(Exception):
    """Raised when Snowflake connection fails."""
    pass


def _load_private_key(key_path: str) -> bytes:
    """
    Load private key from file for key-pair authentication.

    Snowflake wants the key as DER-encoded PKCS8 bytes, not a file path.
    """
    from cryptography.hazmat.primitives import serialization

    with open(key_path, "rb") as key_file:
        private_key = serialization.load_pem_private_key(
            key_file.read(),
            password=None,
        )

    return private_key.private_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


@contextmanager
def get_snowflake_connection(config: SnowflakeConfig) -> Generator[SnowflakeConnection, None, None]:
    """
    Provide Snowflake connection with automatic cleanup.

    Supports both password and key-pair authentication:
    - If private_key_path is set, uses key-pair auth
    - Otherwise, uses password auth

    Only connection failures are translated to SnowflakeConnectionError;
    errors raised by the caller inside the block propagate unchanged.
    """
    import snowflake.connector

    connect_params = {
        "account": config.account,
        "user": config.user,
        "database": config.database,
        "schema": config.schema,
        "warehouse": config.warehouse,
        "role": config.role,
    }

    if config.private_key_path:
        logger.info("Using key-pair authentication for Snowflake")
        connect_params["private_key"] = _load_private_key(config.private_key_path)
    elif config.password:
        logger.info("Using password authentication for Snowflake")
        connect_params["password"] = config.password
    else:
        raise SnowflakeConnectionError(
            "Either password or private_key_path must be provided"
        )

    try:
        conn = snowflake.connector.connect(**connect_params)
    except snowflake.connector.errors.DatabaseError as e:
        logger.error(
            "Snowflake connection failed",
            extra={"error": str(e), "account": config.account}
        )
        raise SnowflakeConnectionError(f"Database connection failed: {e}")

    logger.debug(
        "Established Snowflake connection",
        extra={
            "account": config.account,
            "database": config.database,
            "schema": config.schema,
        }
    )

    try:
        yield conn
    finally:
        try:
            conn.close()
            logger.debug("Closed Snowflake connection")
        except Exception as e:
            logger.warning(
                "Error closing Snowflake connection",
                extra={"error": str(e)}
            )


# ---------------------------------------------------------------------------
# Mock Connection for Local Development
# ---------------------------------------------------------------------------

class MockSnowflakeCursor:
    """
    Mock Snowflake cursor for testing.

    Implements just enough of the cursor interface to support
    VideoRepository: SELECT by id, INSERT, UPDATE by id and the
    ``SELECT 1`` readiness ping. Rows are stored as tuples in
    VIDEO_COLUMNS order.
    """

    def __init__(self, storage: dict) -> None:
        self._storage = storage
        self._results: list = []
        self._rowcount: int = 0

    def execute(self, query: str, params: Optional[tuple] = None) -> "MockSnowflakeCursor":
        logger.debug(
            "Mock cursor execute",
            extra={"query": query[:100], "params": params}
        )

        query_upper = " ".join(query.upper().split())
        self._results = []
        self._rowcount = 0

        if query_upper == "SELECT 1":
            self._results = [(1,)]
        elif query_upper.startswith("SELECT") and "FROM VIDEOS" in query_upper:
            self._handle_select(params)
        elif query_upper.startswith("INSERT INTO VIDEOS"):
            self._handle_insert(params)
        elif query_upper.startswith("UPDATE VIDEOS"):
            self._handle_update(params)

        return self

    def _handle_select(self, params: Optional[tuple]) -> None:
        if not params:
            return
        row = self._storage["videos"].get(str(params[0]))
        if row:
            self._results = [row]

    def _handle_insert(self, params: Optional[tuple]) -> None:
        if not params:
            return
        self._storage["videos"][str(params[0])] = tuple(params)
        self._rowcount = 1

    def _handle_update(self, params: Optional[tuple]) -> None:
        # params: title, description, video_url, thumbnail_url, updated_at, id
        if not params:
            return
        video_id = str(params[5])
        existing = self._storage["videos"].get(video_id)
        if existing is None:
            return

        title, description, video_url, thumbnail_url, updated_at = params[:5]
        self._storage["videos"][video_id] = (
            existing[0],
            existing[1],
            title,
            description,
            video_url,
            thumbnail_url,
            existing[6],
            updated_at,
        )
        self._rowcount = 1

    def fetchone(self):
        if not self._results:
            return None
        return self._results[0]

    def fetchall(self) -> list:
        return self._results

    def close(self) -> None:
        pass

    @property
    def rowcount(self) -> int:
        return self._rowcount


class MockSnowflakeConnection:
    """
    Mock Snowflake connection for local development.

    Stores data in memory using a simple dictionary structure.
    Not suitable for production, but fine for local development,
    unit tests and CI.
    """

    def __init__(self) -> None:
        # In-memory storage: {table_name: {id: row_tuple}}
        self._storage: dict[str, dict[str, tuple]] = {
            "videos": {},
        }
        self.commit_count = 0

        logger.info("Initialized mock Snowflake connection (in-memory)")

    def cursor(self) -> MockSnowflakeCursor:
        return MockSnowflakeCursor(self._storage)

    def commit(self) -> None:
        self.commit_count += 1
        logger.debug("Mock connection commit")

    def rollback(self) -> None:
        logger.debug("Mock connection rollback")

    def close(self) -> None:
        logger.debug("Mock connection close")

    def _clear(self) -> None:
        """Clear all mock storage (for test cleanup)."""
        for table in self._storage.values():
            table.clear()


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

@contextmanager
def create_snowflake_connection(
    config: Optional[SnowflakeConfig] = None,
    mock_mode: bool = False,
) -> Generator[SnowflakeConnection, None, None]:
    """
    Create Snowflake connection based on configuration.

    Args:
        config: Snowflake configuration (required if not mock_mode)
        mock_mode: If True, return a fresh in-memory connection

    Yields:
        SnowflakeConnection implementation (real or mock)
    """
    if mock_mode:
        conn = MockSnowflakeConnection()
        try:
            yield conn
        finally:
            conn.close()
        return

    if config is None:
        raise ValueError("config is required when not in mock mode")

    with get_snowflake_connection(config) as conn:
        yield conn
