import logging
import os
from logging.handlers import RotatingFileHandler

from config import LOG_DIR, LOG_LEVEL


def setup_api_logger(log_path: str | None = None) -> logging.Logger:
    """Setup and return the application-wide logger.

    Creates a rotating file handler at `log_path` (defaults to LOG_DIR/api.log,
    or ./logs/api.log when LOG_DIR is unset). Service modules log on child
    loggers (``murmur.api.<name>``) and inherit this handler.
    """
    if log_path is None:
        logs_dir = LOG_DIR
        if not logs_dir:
            base = os.path.abspath(os.path.dirname(__file__))
            logs_dir = os.path.join(base, '..', 'logs')
        os.makedirs(logs_dir, exist_ok=True)
        log_path = os.path.join(logs_dir, 'api.log')

    logger = logging.getLogger('murmur.api')
    logger.setLevel(LOG_LEVEL)

    # avoid adding multiple handlers if called multiple times
    if not logger.handlers:
        handler = RotatingFileHandler(log_path, maxBytes=5 * 1024 * 1024, backupCount=5, encoding='utf-8')
        formatter = logging.Formatter('%(asctime)s [%(levelname)s] %(name)s: %(message)s')
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Child logger of the api logger, e.g. get_logger('messages')."""
    return logging.getLogger(f'murmur.api.{name}')
