"""
Storefront: logging setup.

Every module logs through logging.getLogger(__name__); this configures the
root handler once at startup (API process and Celery worker alike).
"""
import logging
import sys

LOG_FORMAT = "%(asctime)s - %(levelname)s - [PID:%(process)d] - %(name)s - %(message)s"


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    # Reduce verbosity from external libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
