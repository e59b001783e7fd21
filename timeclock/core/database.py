import itertools
import os
import threading
import time
from typing import Generator, Optional

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

Base = declarative_base()

# ObjectId-shaped identifiers: 4-byte timestamp, 5 random bytes, 3-byte counter.
_PROCESS_UNIQUE = os.urandom(5).hex()
_COUNTER = itertools.count(int.from_bytes(os.urandom(3), "big"))


def new_object_id() -> str:
    """Return a 24-char hex id that sorts by creation time."""
    counter = next(_COUNTER) % 0x1000000
    return f"{int(time.time()):08x}{_PROCESS_UNIQUE}{counter:06x}"


class Database:
    """
    Process-wide database handle.

    Built once at startup and shared through ``app.state``. The engine is
    created lazily on the first ``connect()`` call; later calls reuse it.
    """

    def __init__(self, url: str, **engine_kwargs):
        self.url = url
        self.engine_kwargs = engine_kwargs
        self.engine: Optional[Engine] = None
        self.session_factory: Optional[sessionmaker] = None
        self._lock = threading.Lock()

    @property
    def is_connected(self) -> bool:
        return self.engine is not None

    def connect(self) -> Engine:
        if self.engine is not None:
            return self.engine
        with self._lock:
            if self.engine is None:
                kwargs = dict(self.engine_kwargs)
                if self.url.startswith("sqlite"):
                    kwargs.setdefault("connect_args", {"check_same_thread": False})
                engine = create_engine(self.url, pool_pre_ping=True, **kwargs)
                # Import models so every table is registered on Base
                import timeclock.models  # noqa: F401

                Base.metadata.create_all(bind=engine)
                self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
                self.engine = engine
        return self.engine

    def session(self) -> Session:
        self.connect()
        return self.session_factory()

    def dispose(self):
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
            self.session_factory = None


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_db(request: Request) -> Generator[Session, None, None]:
    """Yield a session bound to the application's shared database."""
    db = get_database(request).session()
    try:
        yield db
    finally:
        db.close()
