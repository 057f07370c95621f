import logging
from typing import Generator, Optional
from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from edutrack_backend.model import Base
from edutrack_backend.settings import settings

logger = logging.getLogger(__name__)

_database_options = {
    "pool_pre_ping": True,
    "pool_size": 10,
    "max_overflow": 5,
    "pool_timeout": 30,
    "pool_recycle": 300
}

class Database:
    """Document store handle with an explicit connect/dispose lifecycle."""

    def __init__(self, url: Optional[str] = None, **options):
        self.url = url or settings.database_url
        self.options = options
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    def _engine_options(self) -> dict:
        if self.url.startswith("sqlite"):
            # One shared connection so in-memory databases survive across threads
            return {"connect_args": {"check_same_thread": False}, "poolclass": StaticPool, **self.options}
        return {**_database_options, **self.options}

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not connected")
        return self._engine

    @property
    def connected(self) -> bool:
        return self._engine is not None

    def connect(self) -> "Database":
        if self._engine is None:
            self._engine = create_engine(self.url, **self._engine_options())
            self._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self._engine)
            logger.info("Connected to document store %s", self._engine.url.render_as_string(hide_password=True))
        return self

    def create_all(self):
        Base.metadata.create_all(self.engine)

    def session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError("Database is not connected")
        return self._session_factory()

    def dispose(self):
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            self._session_factory = None
            logger.info("Document store connection disposed")

def get_db(request: Request) -> Generator[Session, None, None]:

    db = request.app.state.database.session()

    try:
        yield db
    except OperationalError:
        logger.error("Database connection failed")
        db.rollback()
        raise
    finally:
        db.close()
