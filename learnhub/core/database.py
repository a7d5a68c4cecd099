from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
import logging

from learnhub.core.config import settings
from learnhub.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)

DATABASE_URL = settings.DATABASE_URL

def _engine_kwargs(url: str) -> dict:
    # In-memory SQLite needs a single shared connection across threads
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return kwargs
    return {"pool_pre_ping": True}

engine = create_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    """
    Dependency to get a database session.
    Ensures the database session is always closed after the request.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def commit_or_rollback(db: Session, action: str) -> None:
    """
    Commits the current unit of work. Any store failure rolls the whole
    transaction back and surfaces as a retryable PersistenceError.
    """
    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error while {action}: {e}", exc_info=True)
        raise PersistenceError(f"Could not complete the operation ({action}). Please retry.") from e

def create_db_and_tables():
    # Importing the models package registers every table on Base.metadata
    import learnhub.models  # noqa: F401
    Base.metadata.create_all(bind=engine)
