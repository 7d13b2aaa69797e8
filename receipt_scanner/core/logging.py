import sys
from loguru import logger
from .config import settings


def setup_logging():
    """Replace loguru's default sink with one configured from settings."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level.upper(),
        serialize=settings.log_json,
        backtrace=False,
        diagnose=settings.app_env == "dev",
    )
    logger.info("Logging configured", app=settings.app_name, env=settings.app_env)
    return logger
