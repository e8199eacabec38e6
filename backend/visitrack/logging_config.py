"""
Application logging configuration.

Console logging for the Flask app and the visitrack package loggers. Services
log through ``logging.getLogger(__name__)``; routes use ``current_app.logger``.
"""

import logging


def configure_logging(app):
    """Attach a console handler at the configured LOG_LEVEL.

    Args:
        app: Flask app whose config carries LOG_LEVEL.

    Returns:
        The package logger.
    """
    level_name = str(app.config.get("LOG_LEVEL", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    logger = logging.getLogger("visitrack")
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        logger.addHandler(handler)

    app.logger.setLevel(level)
    return logger
