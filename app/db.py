# FILE: app/db.py
import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

# Database path: ./data/beacon.db relative to project root
# Override with BEACON_DATABASE_URL env var if needed
DATABASE_URL = os.getenv("BEACON_DATABASE_URL", "sqlite:///./data/beacon.db")

_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    connect_args=_connect_args,  # Required for SQLite
    echo=False,  # Set True to log SQL statements for debugging
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency that yields a DB session and closes it after the request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """Create all tables. Call once at startup."""
    # Import models so Base.metadata knows about them
    from app.memory import models  # noqa: F401
    from app.cache import models as cache_models  # noqa: F401
    Base.metadata.create_all(bind=engine)
