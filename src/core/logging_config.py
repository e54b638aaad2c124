"""
Logging setup shared by the upload client and the receiver.
"""
import logging
import sys

LOG_FORMAT = '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def configure_logging(level: str = "INFO") -> logging.Logger:
    """
    Install a single stdout handler on the ``src`` logger hierarchy.

    Args:
        level: Log level name (DEBUG, INFO, ...)

    Returns:
        The configured package logger
    """
    logger = logging.getLogger('src')
    logger.setLevel(level.upper())

    # Remove existing handlers
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(console_handler)
    logger.propagate = False

    return logger
