"""
Structured Logging Configuration
Loguru sinks, with stdlib logging routed through them
"""
import sys
import logging
from typing import Optional

from loguru import logger

from .config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
PLAIN_FORMAT = "{time} | {level} | {name}:{function}:{line} | {message}"


class InterceptHandler(logging.Handler):
    """Intercept standard logging and redirect to Loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the frame that issued the logging call
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def configure_logging(level: Optional[str] = None):
    """Configure Loguru logging"""
    level = level or settings.LOG_LEVEL
    json_output = settings.LOG_JSON_FORMAT and settings.ENVIRONMENT == "production"

    logger.remove()

    if json_output:
        logger.add(sys.stdout, format=PLAIN_FORMAT, level=level, serialize=True)
    else:
        logger.add(sys.stdout, format=CONSOLE_FORMAT, level=level, colorize=True)

    if settings.LOG_FILE_ENABLED:
        logger.add(
            "logs/marketplace_{time:YYYY-MM-DD}.log",
            rotation="00:00",
            retention="30 days",
            level=level,
            format=PLAIN_FORMAT,
            serialize=settings.LOG_JSON_FORMAT,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error", "sqlalchemy.engine"]:
        logging.getLogger(logger_name).handlers = [InterceptHandler()]

    logger.info(f"Logging configured: level={level}, json={json_output}")


# Initialize logging on import
configure_logging()
