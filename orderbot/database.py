from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from orderbot.config import settings

Base = declarative_base()


def enable_sqlite_savepoints(engine: Engine, immediate: bool = False) -> None:
    """Let SQLAlchemy own BEGIN on pysqlite so SAVEPOINT behaves.

    ``immediate`` takes the write lock at BEGIN, so concurrent writers queue on
    the busy timeout instead of failing when a read transaction upgrades.
    """
    begin_sql = "BEGIN IMMEDIATE" if immediate else "BEGIN"

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql(begin_sql)


def build_engine(url: str) -> Engine:
    if url.startswith("sqlite"):
        engine = create_engine(url, connect_args={"check_same_thread": False})
        enable_sqlite_savepoints(engine, immediate=True)
        return engine
    return create_engine(url, pool_pre_ping=True)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Create tables for all registered models."""
    import orderbot.models  # noqa: F401

    Base.metadata.create_all(bind=engine)
