"""Database engine and session factory construction"""

from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker


SQLITE_BUSY_TIMEOUT_SECONDS = 30.0


def sqlite_busy_timeout(lock_timeout_seconds: Optional[float] = None) -> float:
    """Seconds a SQLite connection waits on a locked database, capped by the transaction deadline"""
    if lock_timeout_seconds is None:
        return SQLITE_BUSY_TIMEOUT_SECONDS
    return min(SQLITE_BUSY_TIMEOUT_SECONDS, lock_timeout_seconds)


def build_engine(database_url: str, echo: bool = False, lock_timeout_seconds: Optional[float] = None) -> Engine:
    """
    Create an engine for the ledger database.

    PostgreSQL gets a connection pool: max 20 connections, recycled after an
    hour. SQLite connections open every transaction with BEGIN IMMEDIATE so
    writers are serialized instead of failing on lock upgrade; the wait for the
    write lock never outlasts lock_timeout_seconds.
    """
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": sqlite_busy_timeout(lock_timeout_seconds)},
        )
        _serialize_sqlite_transactions(engine)
        return engine

    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,  # Verify connections before using
        pool_size=10,
        max_overflow=10,
        pool_recycle=3600,
    )


def _serialize_sqlite_transactions(engine: Engine) -> None:
    # pysqlite defers BEGIN until the first DML statement; take over transaction control
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_session_factory(engine: Engine) -> sessionmaker:
    """Sessions keep loaded attributes after commit so results outlive the transaction"""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
