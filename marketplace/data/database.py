# marketplace/data/database.py
from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from marketplace.utils.settings import DATABASE_URL
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class Base(DeclarativeBase):
    pass


class Database:
    """
    Handle over the pooled engine and its session factory.
    Opened once at process start (FastAPI lifespan / celery worker init)
    and disposed on shutdown.
    """

    def __init__(self, url: str | None = None):
        self.url = url or DATABASE_URL
        self.engine: Engine | None = None
        self._sessionmaker: sessionmaker | None = None

    def connect(self) -> "Database":
        if self.engine is not None:
            return self

        kwargs = {"pool_pre_ping": True}
        if self.url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False, "timeout": 30}}

        self.engine = create_engine(self.url, **kwargs)
        if self.engine.dialect.name == "sqlite":
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)

        self._sessionmaker = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)
        logger.info(f"Database connected ({self.engine.dialect.name})")
        return self

    def create_all(self):
        # models must be imported so they are registered in Base.metadata
        import marketplace.data.models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)
        logger.info(f"Tables ready: {sorted(Base.metadata.tables.keys())}")

    def session(self) -> Session:
        if self._sessionmaker is None:
            raise RuntimeError("Database is not connected")
        return self._sessionmaker()

    def ping(self) -> bool:
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def dispose(self):
        if self.engine is not None:
            self.engine.dispose()
            logger.info("Database disposed")
        self.engine = None
        self._sessionmaker = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def dialect_insert(db: Session, table):
    """INSERT construct supporting on_conflict_do_* for the session's dialect."""
    name = db.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert(table)
    if name == "sqlite":
        return sqlite.insert(table)
    raise RuntimeError(f"Upsert not supported for dialect {name}")


def get_db(request: Request) -> Iterator[Session]:
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()


# Handle used by celery tasks; bound by the worker process (or the API process
# when tasks run eagerly).
_task_database: Database | None = None


def bind_task_database(database: Database | None):
    global _task_database
    _task_database = database


def task_database() -> Database:
    global _task_database
    if _task_database is None:
        _task_database = Database().connect()
    return _task_database
