"""Process-wide logging setup.

Every module logs through ``logging.getLogger(__name__)``; this only decides
level and format once at startup (API lifespan and Celery worker import).
"""

import logging

from app.core.config import settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # SQL echo is controlled by QD_DATABASE_ECHO, keep the engine logger quiet otherwise
    if not settings.database_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
