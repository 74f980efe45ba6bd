"""
Engine and session management.

One process-wide engine, configured once from a URL:

    PostgreSQL   QueuePool, REPEATABLE READ.  Settlements additionally lock
                 item rows with SELECT ... FOR UPDATE, so two settlements on
                 the same item serialize, or the loser gets a serialization
                 failure (translated to ConcurrentSettlementError upstream).
    SQLite       Foreign keys switched on for every connection.  In-memory
                 URLs share a single connection through StaticPool, otherwise
                 each new connection would see an empty database.

Calling get_engine()/get_session() before init_engine_from_url() raises
RuntimeError.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from inventory_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."


def _sqlite_foreign_keys_on(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _build_sqlite_engine(url, echo: bool) -> Engine:
    options: dict = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    engine = create_engine(url, echo=echo, **options)
    event.listen(engine, "connect", _sqlite_foreign_keys_on)
    return engine


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 5,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the process-wide engine and session factory.

    A second call replaces the first engine (the old one is disposed).
    Pool arguments only apply to server databases.
    """
    global _engine, _session_factory

    url = make_url(database_url)
    backend = url.get_backend_name()

    if _engine is not None:
        _engine.dispose()

    if backend == "sqlite":
        _engine = _build_sqlite_engine(url, echo)
    else:
        _engine = create_engine(
            url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="REPEATABLE READ",
        )

    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info("engine_initialized", extra={"backend": backend, "echo": echo})
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session() -> Session:
    """New session from the shared factory; the caller closes it."""
    if _session_factory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _session_factory()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Session that commits on normal exit and rolls back on error.

    Settlement services commit on their own; use this for callers that
    compose several services with ``auto_commit=False``:

        with session_scope() as session:
            purchases = PurchaseService(session, auto_commit=False)
            purchases.create_purchase(first)
            purchases.create_purchase(second)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        logger.warning("session_scope_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    from inventory_kernel.db.base import Base
    import inventory_kernel.models  # noqa: F401  (registers the tables)

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """Drop every kernel table. Tests only."""
    from inventory_kernel.db.base import Base
    import inventory_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
