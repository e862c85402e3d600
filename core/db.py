"""
core/db.py -- Shared SQLAlchemy engine factory.

auth/store.py and documents/store.py keep their own tables but share one
engine per process, so a single DATABASE_URL holds both.

Layer rule: core/ may not import from api/, auth/, or documents/.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def make_engine(db_url: str) -> Engine:
    """Create an engine, applying the SQLite-specific settings when relevant.

    check_same_thread=False is required because store calls run in the
    Starlette thread pool, not on the thread that opened the connection.
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    return engine
