from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from .config import Settings

Base = declarative_base()


def create_db_engine(settings: Settings):
    """Create the SQLAlchemy engine with bounded waits on every storage round trip."""
    url = settings.database_url
    timeout = settings.storage_timeout

    if url.startswith("sqlite"):
        # SQLite needs special config; `timeout` bounds the wait on a locked database
        connect_args = {"check_same_thread": False, "timeout": timeout}
    elif url.startswith("postgresql"):
        connect_args = {
            "connect_timeout": max(1, int(timeout)),
            "options": f"-c statement_timeout={int(timeout * 1000)}",
        }
    else:
        connect_args = {}

    kwargs = {"connect_args": connect_args, "pool_pre_ping": True}
    if not url.startswith("sqlite"):
        kwargs["pool_timeout"] = timeout
    return create_engine(url, **kwargs)


def make_session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine):
    """Ensure database tables exist. Safe to call multiple times."""
    from . import models  # noqa: F401  registers table metadata
    Base.metadata.create_all(bind=engine)


def get_db(request: Request):
    """Dependency to provide a DB session."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
