from contextlib import contextmanager

from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from fintrack.core.config import settings

DB_POOL = ConnectionPool(
    settings.database_url,
    min_size=settings.db_pool_min,
    max_size=settings.db_pool_max,
    timeout=settings.db_pool_timeout,
    max_waiting=settings.db_pool_max_waiting,
    open=False,
    kwargs={"row_factory": dict_row},
)


def open_db_pool() -> None:
    DB_POOL.open()


def close_db_pool() -> None:
    DB_POOL.close()


@contextmanager
def db_conn():
    with DB_POOL.connection() as conn:
        yield conn


@contextmanager
def rollback_on_exit(conn):
    # Registered before the first statement; after a commit there is nothing
    # left to roll back, so this is a no-op on the success path.
    try:
        yield conn
    finally:
        conn.rollback()


@contextmanager
def db_tx():
    with DB_POOL.connection() as conn, rollback_on_exit(conn):
        yield conn
