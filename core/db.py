"""
core/db.py -- Engine construction shared by auth/store.py and ledger/store.py.

Both stores accept a database URL and build their own engine through
make_engine(). Pointing them at the same URL puts users and sales in one
database; SQLAlchemy keeps the schema portable, so swapping SQLite for
PostgreSQL is a connection string change.
"""

from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _is_memory_db(db_url: str) -> bool:
    return db_url == "sqlite://" or ":memory:" in db_url or "mode=memory" in db_url


def make_engine(db_url: str) -> Engine:
    """Create an engine with the SQLite settings the stores rely on.

    check_same_thread=False: FastAPI runs sync route handlers in a thread
    pool, so one connection may be used from several threads.

    In-memory databases use StaticPool: the data lives only as long as a
    connection to it is open, so the engine holds exactly one.
    """
    kwargs: dict = {}
    if db_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_db(db_url):
            kwargs["poolclass"] = StaticPool
    engine = create_engine(db_url, **kwargs)
    if db_url.startswith("sqlite") and not _is_memory_db(db_url):
        event.listen(engine, "connect", _set_wal_mode)
    return engine


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
