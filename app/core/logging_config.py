"""Process-wide logging setup.

Everything logs through the standard library under the ``app.*`` namespace so
request logs, audit records and service messages share one format.
"""
import logging
import sys

from app.core.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def setup_logging() -> logging.Logger:
    """Configure root logging once and return the application logger."""
    global _configured
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    if not _configured:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root = logging.getLogger()
        root.addHandler(handler)
        root.setLevel(level)
        # SQL echo is controlled by SQL_DEBUG on the engine; keep the logger quiet otherwise
        logging.getLogger("sqlalchemy.engine").setLevel(
            logging.INFO if settings.sql_debug else logging.WARNING
        )
        _configured = True
    logger = logging.getLogger("app")
    logger.setLevel(level)
    return logger
