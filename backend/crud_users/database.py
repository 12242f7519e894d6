import logging
import time
from collections.abc import Generator

from sqlalchemy.exc import OperationalError
from sqlmodel import Session, SQLModel, create_engine

from crud_users.config import settings

logger = logging.getLogger(__name__)


def _connect_args(url: str) -> dict:
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": settings.db_connect_timeout}
    return {"connect_timeout": settings.db_connect_timeout}


engine = create_engine(
    settings.database_url,
    echo=False,
    pool_pre_ping=True,
    connect_args=_connect_args(settings.database_url),
)


def init_db(retries: int | None = None, delay: float | None = None) -> None:
    """Create tables, retrying the initial connection with exponential backoff.

    Only startup is retried. Failures during a request propagate as-is.
    """
    import crud_users.models  # noqa: F401  register all models with SQLModel metadata

    retries = retries if retries is not None else settings.db_connect_retries
    delay = delay if delay is not None else settings.db_retry_delay_seconds

    for attempt in range(retries):
        try:
            SQLModel.metadata.create_all(engine)
        except OperationalError as exc:
            if attempt == retries - 1:
                logger.error(
                    "Database unreachable after %d attempts: %s", retries, exc
                )
                raise
            wait = delay * 2**attempt
            logger.warning(
                "Database connection failed (attempt %d/%d), retrying in %.1fs: %s",
                attempt + 1,
                retries,
                wait,
                exc,
            )
            time.sleep(wait)
        else:
            logger.info("Database ready")
            return


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session
