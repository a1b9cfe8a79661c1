import logging
import os

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

# loggers of the imaging stack that are noisy at DEBUG
QUIET_LOGGERS = ["PIL", "matplotlib"]


def configure_logging(level=None):
    """
    Configures the root logger.

    The level comes from the argument when given, otherwise from the
    LOG_LEVEL environment variable (default INFO).
    """
    log_level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    resolved = getattr(logging, log_level, logging.INFO)
    logging.basicConfig(level=resolved, format=LOG_FORMAT, force=True)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.debug("Logging configured at %s", logging.getLevelName(resolved))
    return resolved
