"""
Logging Configuration
Structured logging with JSON output for production

Every record carries ``actor_id`` and ``request_id`` extras so grant
changes can be traced back to the user and HTTP request behind them.
"""

import logging
import sys
from typing import Any

from loguru import logger as loguru_logger

from gad_procurement.core.config import settings

# Placeholder shown when a record is not tied to an actor or request
NO_CONTEXT = "-"

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<magenta>actor={extra[actor_id]} req={extra[request_id]}</magenta> - <level>{message}</level>"
)


class InterceptHandler(logging.Handler):
    """Intercept standard logging and redirect to loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = loguru_logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Walk back to the frame that called the stdlib logger
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        loguru_logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def setup_logging() -> None:
    """Setup application logging"""

    loguru_logger.remove()
    loguru_logger.configure(extra={"actor_id": NO_CONTEXT, "request_id": NO_CONTEXT})

    if settings.DEBUG:
        loguru_logger.add(sys.stdout, format=CONSOLE_FORMAT, level="DEBUG", colorize=True)
    else:
        # One JSON object per line; extras land under record.extra
        loguru_logger.add(sys.stdout, level=settings.LOG_LEVEL, serialize=True)

    if settings.LOG_FILE:
        loguru_logger.add(
            settings.LOG_FILE,
            rotation="100 MB",
            retention="7 days",
            compression="zip",
            level=settings.LOG_LEVEL,
            serialize=True,
        )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    logging.getLogger("uvicorn").handlers = [InterceptHandler()]
    logging.getLogger("uvicorn.access").handlers = [InterceptHandler()]
    logging.getLogger("fastapi").handlers = [InterceptHandler()]
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)


def get_logger(name: str) -> Any:
    """Get a logger instance"""
    return loguru_logger.bind(name=name)


def bind_actor(logger: Any, actor: Any) -> Any:
    """
    Attach the acting user and request to a logger

    ``actor`` is anything with ``user_id`` and ``request_id`` attributes,
    normally an ActorContext.
    """
    return logger.bind(
        actor_id=str(actor.user_id),
        request_id=actor.request_id or NO_CONTEXT,
    )
