# services/api/gallery_api/db.py

from typing import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session as OrmSession, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import Settings

class Base(DeclarativeBase):
    pass


def make_engine(settings: Settings) -> Engine:
    url = settings.DATABASE_URL
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # one shared in-memory db across threads
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)

    return create_engine(
        url,
        pool_size=int(settings.DB_POOL_SIZE),
        max_overflow=int(settings.DB_MAX_OVERFLOW),
        pool_timeout=int(settings.DB_CONNECT_TIMEOUT_SEC),
        pool_recycle=int(settings.DB_POOL_RECYCLE_SEC),
        pool_pre_ping=True,
        connect_args={"connect_timeout": int(settings.DB_CONNECT_TIMEOUT_SEC)},
    )


class Database:
    def __init__(self, settings: Settings):
        self.engine = make_engine(settings)
        self.SessionLocal = sessionmaker(bind=self.engine, autoflush=False, expire_on_commit=False)

    def create_all(self):
        from . import models  # noqa: F401 (register tables)
        Base.metadata.create_all(self.engine)

    def dispose(self):
        self.engine.dispose()


def get_db(request: Request) -> Iterator[OrmSession]:
    db: OrmSession = request.app.state.db.SessionLocal()
    try:
        yield db
    finally:
        db.close()
