"""Process-wide logging setup."""
import logging
import sys

from eventrsvp.config import settings

HANDLER_NAME = "eventrsvp-stdout"


def configure_logging() -> None:
    """Send log records to stdout at the configured level."""
    log_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Idempotent: startup may run more than once per process (reload, tests)
    if any(h.get_name() == HANDLER_NAME for h in root_logger.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(HANDLER_NAME)
    handler.setLevel(log_level)
    handler.setFormatter(
        logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    )
    root_logger.addHandler(handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
