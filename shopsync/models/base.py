"""
Base database model and the store that owns engine and session lifecycle
"""
import os
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from shopsync.utils.logger import log

# Base class for all models
Base = declarative_base()


def _resolve_sqlite_path(database_url: str) -> str:
    """Resolve relative SQLite paths to absolute so cwd changes can't break it"""
    if database_url.startswith("sqlite:///") and not database_url.startswith("sqlite:////"):
        rel_path = database_url[len("sqlite:///"):]
        if rel_path and rel_path != ":memory:":
            return "sqlite:///" + os.path.abspath(rel_path)
    return database_url


def _is_memory_sqlite(database_url: str) -> bool:
    return database_url in ("sqlite://", "sqlite:///:memory:")


class Store:
    """
    Relational store for tenants and synced Shopify data.

    Constructed explicitly and passed to whoever needs it; there is no
    module-level engine. open() must be called before session().
    """

    def __init__(self, database_url: str, echo: bool = False):
        self.database_url = _resolve_sqlite_path(database_url)
        self.echo = echo
        self.engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    def open(self) -> "Store":
        if self.engine is not None:
            return self

        if self.database_url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False}}
            if _is_memory_sqlite(self.database_url):
                # One shared connection, otherwise every session sees an empty database
                kwargs["poolclass"] = StaticPool
            self.engine = create_engine(self.database_url, echo=self.echo, **kwargs)
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
        else:
            self.engine = create_engine(
                self.database_url,
                echo=self.echo,
                pool_pre_ping=True,
                pool_size=5,
                max_overflow=5,
                pool_recycle=300,
            )

        self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        log.info(f"Store opened: {self.engine.url.render_as_string(hide_password=True)}")
        return self

    def create_all(self) -> None:
        """Create missing tables"""
        # Import models so they register on Base.metadata
        import shopsync.models  # noqa: F401

        Base.metadata.create_all(bind=self._require_engine())

    def drop_all(self) -> None:
        Base.metadata.drop_all(bind=self._require_engine())

    def session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError("Store is not open")
        return self._session_factory()

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
            log.info("Store closed")
        self.engine = None
        self._session_factory = None

    @property
    def is_open(self) -> bool:
        return self.engine is not None

    def _require_engine(self) -> Engine:
        if self.engine is None:
            raise RuntimeError("Store is not open")
        return self.engine

    def __enter__(self) -> "Store":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_db(request: Request) -> Iterator[Session]:
    """Get database session from the app's store"""
    db = request.app.state.store.session()
    try:
        yield db
    finally:
        db.close()
