"""
PostgreSQL client with connection pooling.

Uses psycopg2 with ThreadedConnectionPool. Every execute_* call runs on its own
pooled connection and commits before returning, so a single statement is a
single transaction. Invoice state transitions rely on that: each one is one
conditional UPDATE, never a read followed by a write.

Connectivity failures surface as DatabaseUnavailableError so callers can tell
"the store is down" apart from "the query is wrong".
"""

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Tuple
from uuid import UUID

import psycopg2
import psycopg2.extras
import psycopg2.pool

logger = logging.getLogger(__name__)

# Global JSONB registration flag
_jsonb_registered = False


class DatabaseUnavailableError(Exception):
    """Could not reach PostgreSQL or obtain a pooled connection."""


class PostgresClient:
    """
    PostgreSQL client returning rows as dicts.

    Usage:
        db = PostgresClient(database_url)
        row = db.execute_single("SELECT * FROM invoices WHERE id = %s", (42,))
        seq = db.execute_scalar("SELECT nextval('invoice_number_seq')")
    """

    # Class-level connection pools shared across instances
    _connection_pools: Dict[str, psycopg2.pool.ThreadedConnectionPool] = {}
    _pools_lock = threading.RLock()

    def __init__(self, database_url: str, min_connections: int = 2, max_connections: int = 20):
        self._database_url = database_url
        self._min_connections = min_connections
        self._max_connections = max_connections
        self._ensure_connection_pool()

    def _ensure_connection_pool(self) -> None:
        """Create connection pool if it doesn't exist."""
        with self._pools_lock:
            if self._database_url in self._connection_pools:
                return

            try:
                pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=self._min_connections,
                    maxconn=self._max_connections,
                    dsn=self._database_url,
                    connect_timeout=30,
                )
            except psycopg2.OperationalError as e:
                logger.error(f"Could not create connection pool: {e}")
                raise DatabaseUnavailableError(f"Could not connect to database: {e}") from e

            global _jsonb_registered
            if not _jsonb_registered:
                psycopg2.extras.register_default_jsonb(globally=True)
                _jsonb_registered = True

            self._connection_pools[self._database_url] = pool
            logger.info("Connection pool created")

    @contextmanager
    def get_connection(self):
        """Borrow a pooled connection; rolled back if the caller raises."""
        if self._database_url not in self._connection_pools:
            self._ensure_connection_pool()

        pool = self._connection_pools[self._database_url]
        conn = None

        try:
            try:
                conn = pool.getconn()
            except psycopg2.pool.PoolError as e:
                raise DatabaseUnavailableError(f"Connection pool exhausted: {e}") from e

            if conn is None:
                raise DatabaseUnavailableError("Could not get connection from pool")

            try:
                yield conn
            except (psycopg2.OperationalError, psycopg2.InterfaceError) as e:
                raise DatabaseUnavailableError(f"Database connection failed: {e}") from e
            except Exception:
                if not conn.closed:
                    conn.rollback()
                raise

        finally:
            if conn:
                # Broken connections are discarded rather than recycled
                pool.putconn(conn, close=bool(conn.closed))

    def _convert_params(self, params: Tuple | Dict | None) -> Tuple | Dict | None:
        """Convert UUID objects to strings."""
        if params is None:
            return None

        def convert(value: Any) -> Any:
            if isinstance(value, UUID):
                return str(value)
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, tuple):
                return tuple(convert(v) for v in value)
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(params)

    def execute(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute query, return list of row dicts. Empty list if no results."""
        params = self._convert_params(params)
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(query, params)
                rows = [dict(row) for row in cur.fetchall()] if cur.description else []
                conn.commit()
                return rows

    def execute_single(self, query: str, params: Tuple | Dict | None = None) -> Dict[str, Any] | None:
        """Execute query, return first row or None."""
        results = self.execute(query, params)
        return results[0] if results else None

    def execute_scalar(self, query: str, params: Tuple | Dict | None = None) -> Any:
        """Execute query, return first value of first row or None. Commits (nextval is a write)."""
        params = self._convert_params(params)
        with self.get_connection() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                result = cur.fetchone()
                conn.commit()
                return result[0] if result else None

    def execute_returning(self, query: str, params: Tuple | Dict | None = None) -> List[Dict[str, Any]]:
        """Execute INSERT/UPDATE with RETURNING, return affected rows (possibly none)."""
        params = self._convert_params(params)
        with self.get_connection() as conn:
            with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                cur.execute(query, params)
                rows = [dict(row) for row in cur.fetchall()]
                conn.commit()
                return rows

    def close(self) -> None:
        """Close connection pool."""
        with self._pools_lock:
            if self._database_url in self._connection_pools:
                self._connection_pools[self._database_url].closeall()
                del self._connection_pools[self._database_url]

    @classmethod
    def close_all_pools(cls) -> None:
        """Close all connection pools."""
        with cls._pools_lock:
            for pool in cls._connection_pools.values():
                pool.closeall()
            cls._connection_pools.clear()
