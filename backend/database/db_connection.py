"""
PostgreSQL connection helper.
Provides a shared connection pool and get_db() for use by services.
"""

import logging
import os
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

import psycopg2
from psycopg2.extras import DictCursor
from psycopg2.pool import ThreadedConnectionPool
from dotenv import load_dotenv

from backend.errors import StoreError

# Load .env variables from the project root
load_dotenv()

# Get the database URL from environment variable
DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set. Please set the environment variable.")

DB_POOL_MIN = int(os.getenv("DB_POOL_MIN", 1))
DB_POOL_MAX = int(os.getenv("DB_POOL_MAX", 10))
# Seconds a request waits for a free connection before giving up
DB_POOL_TIMEOUT = float(os.getenv("DB_POOL_TIMEOUT", 30))

_pool: Optional[ThreadedConnectionPool] = None
_pool_lock = threading.Lock()
# ThreadedConnectionPool raises instead of blocking when exhausted, so
# borrowers queue on this first.
_slots = threading.BoundedSemaphore(DB_POOL_MAX)


def get_pool() -> ThreadedConnectionPool:
    """
    Return the process-wide connection pool, creating it on first use.

    Every connection handed out uses DictCursor so rows can be read by
    column name (e.g., row["event_id"]).
    """
    global _pool
    if _pool is None:
        with _pool_lock:
            if _pool is None:
                _pool = ThreadedConnectionPool(
                    DB_POOL_MIN,
                    DB_POOL_MAX,
                    DATABASE_URL,
                    cursor_factory=DictCursor,
                )
    return _pool


@contextmanager
def get_db() -> Iterator["psycopg2.extensions.connection"]:
    """
    Borrow a pooled connection for the duration of a `with` block.

    The transaction is committed when the block exits normally and rolled
    back if it raises. The connection always goes back to the pool.

    Usage:
        with get_db() as conn:
            with conn.cursor() as cur:
                cur.execute(...)

    Waits up to DB_POOL_TIMEOUT seconds when every connection is in use.

    Raises:
        StoreError: No connection freed up in time.
        psycopg2.Error: If connecting or the statement fails.
    """
    if not _slots.acquire(timeout=DB_POOL_TIMEOUT):
        logging.error(f"[DB] No free connection after {DB_POOL_TIMEOUT}s")
        raise StoreError("Database is busy, try again later")
    try:
        pool = get_pool()
        conn = pool.getconn()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            pool.putconn(conn)
    finally:
        _slots.release()


def close_pool() -> None:
    """Close every pooled connection (used on shutdown)."""
    global _pool
    with _pool_lock:
        if _pool is not None:
            _pool.closeall()
            _pool = None
