from loguru import logger as log_config
import sys

from core.config import settings


def log_func():
    log_config.remove()
    log_config.add(sys.stderr,
                   format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>",
                   level=settings.LOG_LEVEL)
    if settings.LOG_FILE is not None:
        log_config.add(settings.LOG_FILE,
                       level="DEBUG",
                       rotation="10 MB")
    return log_config

logger = log_func()
