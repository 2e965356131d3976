"""Logging utilities for podupload modules."""
import logging


def get_logger(name: str) -> logging.Logger:
    """
    Get a package logger that defers to the application's configuration.

    Records propagate to the root logger, so ``logging.basicConfig()`` or
    ``podupload.setup_logging()`` is enough to see them. Until the
    application installs a root handler, the logger defaults to WARNING
    so that library chatter stays quiet.

    Args:
        name: Logger name, 'podupload.<area>'

    Returns:
        Logger instance
    """
    logger = logging.getLogger(name)
    logger.propagate = True

    if not logging.getLogger().handlers:
        logger.setLevel(logging.WARNING)

    return logger
