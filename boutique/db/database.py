import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from boutique.core.config import settings
from boutique.core.errors import ConflictError, TransientError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


is_sqlite = settings.database_url.startswith("sqlite")

connect_args = {"check_same_thread": False} if is_sqlite else {}

engine = create_engine(
    settings.database_url,
    connect_args=connect_args,
    echo=settings.sql_echo,
    pool_pre_ping=not is_sqlite,
    pool_recycle=1800 if not is_sqlite else -1,
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session, conflict_message: str = "Conflicting data, reload and retry") -> Iterator[Session]:
    """Run a block as one transaction: commit on success, roll back on any error.

    Storage-level unique violations surface as ``ConflictError`` and lost
    connections as ``TransientError``; domain errors propagate unchanged.
    """
    try:
        yield db
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Integrity violation rolled back: %s", exc.orig)
        raise ConflictError(conflict_message) from exc
    except OperationalError as exc:
        db.rollback()
        logger.exception("Storage failure, transaction rolled back")
        raise TransientError("Storage temporarily unavailable, retry") from exc
    except Exception:
        db.rollback()
        raise


def enum_values(enum_cls) -> list[str]:
    """Persist enum members by value (``"3XL"``, ``"proprietaire"``) rather than by name."""
    return [member.value for member in enum_cls]
