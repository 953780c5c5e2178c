"""Database handle with connection pooling and an explicit lifecycle"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker

from card_reconciler.infrastructure.database.models import Base


class Database:
    """
    Engine plus session factory.

    Opened once at process start and disposed at shutdown. Repositories open
    one short-lived session per call, so concurrent callers never share a session.
    """

    def __init__(self, database_url: str):
        url = make_url(database_url)
        if url.get_backend_name() == "sqlite":
            engine_kwargs = {"connect_args": {"check_same_thread": False}}
        else:
            # Connection pool: max 20 connections, recycle after 1 hour to avoid stale connections
            engine_kwargs = {
                "pool_pre_ping": True,  # Verify connections before using
                "pool_size": 10,
                "max_overflow": 10,
                "pool_recycle": 3600,
            }
        self.engine = create_engine(url, **engine_kwargs)
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def drop_schema(self) -> None:
        Base.metadata.drop_all(bind=self.engine)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Session that commits on success and rolls back on error"""
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def dispose(self) -> None:
        self.engine.dispose()
