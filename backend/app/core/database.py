"""
PostgreSQL database access

Two ways of reaching the database live here:
- SQLAlchemy declarative Base (table definitions in app.models, used by scripts/init_db.py)
- psycopg2 direct connections (raw SQL in the repositories)

Author: TM3
Updated: 2025-12-02
"""
import time
import logging

import psycopg2
from psycopg2.extras import RealDictCursor, register_uuid
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base

from .config import settings

logger = logging.getLogger(__name__)

# UUID columns come back as uuid.UUID and uuid.UUID params are adapted
register_uuid()


# ============================================================================
# SQLAlchemy Configuration (schema definitions)
# ============================================================================

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=10,
)

Base = declarative_base()


# ============================================================================
# psycopg2 Direct Connections (for raw SQL queries)
# ============================================================================

def _database_url() -> str:
    database_url = settings.DATABASE_URL
    if not database_url:
        raise Exception("DATABASE_URL not configured")
    return database_url


def get_db_connection_dict():
    """
    Get a database connection with RealDictCursor (returns dictionaries)

    Example:
        conn = get_db_connection_dict()
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM products")
        results = cursor.fetchall()  # Returns list of dicts
        cursor.close()
        conn.close()
    """
    return psycopg2.connect(_database_url(), cursor_factory=RealDictCursor)


# ============================================================================
# Database Connection with Retry Logic
# ============================================================================

def _connect_with_retry(max_retries: int, retry_delay: float):
    database_url = _database_url()
    last_error = None

    for attempt in range(1, max_retries + 1):
        try:
            logger.debug(f"Database connection attempt {attempt}/{max_retries}")
            conn = psycopg2.connect(database_url)

            # Test connection with a simple query
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.close()

            logger.debug(f"Database connection successful on attempt {attempt}")
            return conn

        except psycopg2.OperationalError as e:
            last_error = e
            logger.warning(f"Connection error on attempt {attempt}/{max_retries}: {e}")

            if attempt < max_retries:
                # Exponential backoff
                delay = retry_delay * (2 ** (attempt - 1))
                logger.info(f"Retrying in {delay:.2f} seconds...")
                time.sleep(delay)
            else:
                logger.error(f"All {max_retries} connection attempts failed")
                raise

    raise last_error if last_error else Exception("Connection failed after all retries")


def get_db_connection_with_retry(max_retries=None, retry_delay=None):
    """
    Get a psycopg2 connection with automatic retry on connection failures

    Retries up to max_retries times with exponential backoff between attempts.

    Raises:
        psycopg2.OperationalError: If all retry attempts fail
    """
    return _connect_with_retry(
        max_retries or settings.DB_MAX_RETRIES,
        retry_delay or settings.DB_RETRY_DELAY,
    )
