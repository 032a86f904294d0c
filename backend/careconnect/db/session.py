import logging
from typing import Callable, Generator, TypeVar

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from careconnect.core.config import settings
from careconnect.core.exceptions import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Attempts for a write whose versioned rows changed underneath it
MAX_COMMIT_ATTEMPTS = 3

connect_args = {}
if settings.DATABASE_URL.startswith("sqlite"):
    # SQLite connections are shared across FastAPI's threadpool
    connect_args = {"check_same_thread": False}

engine = create_engine(settings.DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a request-scoped session, rolling back anything left uncommitted."""
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def commit_with_retry(
    db: Session,
    apply: Callable[[], T],
    action: str,
    attempts: int = MAX_COMMIT_ATTEMPTS,
) -> T:
    """
    Run ``apply`` and commit its changes as one transaction.

    Users, posts and connections carry a version column, so a commit that
    would overwrite a row another session changed since it was loaded fails
    with ``StaleDataError``. The session is then rolled back, which expires
    everything it loaded, and ``apply`` runs again against fresh rows.
    ``apply`` must therefore load every row it mutates itself.

    Args:
        db: Session to work in
        apply: Loads, checks and mutates rows; its return value is passed through
        action: Short description for logs and the conflict message
        attempts: How many times to try before giving up

    Raises:
        ConflictError: every attempt collided with a concurrent write
        IntegrityError: a constraint rejected the write (session rolled back)
    """
    for attempt in range(1, attempts + 1):
        result = apply()
        try:
            db.commit()
        except StaleDataError:
            db.rollback()
            logger.warning("Concurrent update during %s (attempt %d/%d)", action, attempt, attempts)
            continue
        except IntegrityError:
            db.rollback()
            raise
        except SQLAlchemyError:
            db.rollback()
            logger.error("Failed to %s; transaction rolled back", action, exc_info=True)
            raise
        return result

    raise ConflictError(f"Could not {action} because of concurrent updates, please retry")
