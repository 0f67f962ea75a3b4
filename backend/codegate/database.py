from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from pathlib import Path

from .config import settings


def build_database_url() -> str:
    """Resolve the SQLAlchemy URL from settings."""
    if settings.DATABASE_URL:
        return settings.DATABASE_URL
    if settings.DEV_MODE:
        db_file = Path(__file__).resolve().parents[1] / "dev.db"
        return f"sqlite:///{db_file}"
    return (
        f"mysql+pymysql://{settings.DB_USER}:{settings.DB_PASS}"
        f"@{settings.DB_HOST}:{settings.DB_PORT}/{settings.DB_NAME}"
    )


DATABASE_URL = build_database_url()

# SQLite is used for DEV_MODE and tests. An in-memory database must share a
# single connection across threads or every session sees an empty schema.
if DATABASE_URL.startswith("sqlite"):
    sqlite_kwargs = {"poolclass": StaticPool} if ":memory:" in DATABASE_URL or DATABASE_URL == "sqlite://" else {}
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},
        echo=False,
        **sqlite_kwargs,
    )
else:
    engine = create_engine(
        DATABASE_URL,
        pool_pre_ping=True,
        pool_recycle=3600,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_POOL_SIZE * 2
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Dependency for getting database sessions."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
