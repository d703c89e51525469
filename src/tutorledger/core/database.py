"""Database session and metadata configuration."""

from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import get_settings

settings = get_settings()

engine = create_engine(settings.database_url, future=True)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

Base = declarative_base()


def get_db() -> Generator:
    """Yield a database session for request lifetime."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def insert_if_absent(session: Session, model, values: dict, conflict_columns: list[str]) -> int:
    """Insert a row unless one already exists for ``conflict_columns``.

    Returns the number of rows written (0 when another writer got there first).
    Rows that already exist are never modified.
    """

    dialect = session.get_bind().dialect.name
    insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
    stmt = insert(model.__table__).values(**values).on_conflict_do_nothing(index_elements=conflict_columns)
    return session.execute(stmt).rowcount
