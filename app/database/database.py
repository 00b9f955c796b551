from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from app.core.config import settings
import logging

logger = logging.getLogger(__name__)


def _connect_args() -> dict:
    """Per-connection options. PostgreSQL sessions get the lock/statement deadlines."""
    if settings.is_postgres:
        return {
            "options": (
                f"-c lock_timeout={settings.DB_LOCK_TIMEOUT_MS} "
                f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"
            )
        }
    if settings.database_url.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


if settings.is_postgres:
    engine = create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        echo=settings.DEBUG and settings.ENVIRONMENT != "test",
        connect_args=_connect_args()
    )
else:
    engine = create_engine(
        settings.database_url,
        pool_pre_ping=True,
        connect_args=_connect_args()
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """Yield a database session for one request."""
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        logger.error(f"Database error: {e}")
        db.rollback()
        raise
    finally:
        db.close()
