import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import DATABASE_URL

logger = logging.getLogger(__name__)


def storage_backend(url: str = DATABASE_URL) -> str:
    """
    Name the persistence backend selected by a database URL.

    Returns
    -------
    str
        ``"local"`` for a sqlite file (or in-memory) database,
        ``"remote"`` for any server-backed datastore such as PostgreSQL.
    """
    return "local" if make_url(url).get_backend_name() == "sqlite" else "remote"


def _engine_kwargs(url: str) -> dict:
    if storage_backend(url) == "local":
        # TestClient and uvicorn's threadpool share the sqlite connection
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """
    Yield a SQLAlchemy database session for the Bookings service.

    This function is used as a FastAPI dependency, creating a scoped
    session per HTTP request and ensuring it is closed afterwards.

    Yields
    ------
    Session
        Active SQLAlchemy session bound to the bookings database engine.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
