from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from cafeops.core.config import settings


def build_engine(url: str, **kwargs):
    """SQLite needs check_same_thread off because FastAPI serves from a thread pool."""
    if url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
    return create_engine(url, **kwargs)


engine = build_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()
