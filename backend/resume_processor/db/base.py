# path: backend/resume_processor/db/base.py
# Purpose: SQLAlchemy engine, session factory, and declarative base. Single source of DB truth.
from sqlalchemy import JSON, create_engine
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from resume_processor.core.config import settings


class Base(DeclarativeBase):
    pass


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,  # proactively validate connections
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    """Yield a database session; close it when done."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
