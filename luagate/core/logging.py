"""Global loguru logging configuration"""

import sys
import logging
from pathlib import Path
from contextvars import ContextVar
from typing import Optional

from loguru import logger

# Context variable to store the endpoint whose scripts are running
current_endpoint: ContextVar[str] = ContextVar("current_endpoint", default="")


class InterceptHandler(logging.Handler):
    """Intercept standard logging messages and redirect to loguru"""

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a log record to loguru"""
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = sys._getframe(6), 6
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        message = record.getMessage()
        endpoint = current_endpoint.get()
        if endpoint:
            message = f"[ENDPOINT: {endpoint}] {message}"

        logger.opt(depth=depth, exception=record.exc_info).log(level, message)


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = "logs/luagate.log") -> None:
    """Configure loguru logging with console and optional file handlers

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file, or None to log to the console only
    """
    # Remove default handler
    logger.remove()

    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        level=log_level,
        colorize=True,
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            level="DEBUG",  # File logs everything
            rotation="500 MB",
            retention="10 days",
            compression="zip",
            encoding="utf-8",
        )

    # Intercept standard logging (uvicorn, fastapi, etc.)
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)

    for logger_name in ["uvicorn", "uvicorn.access", "uvicorn.error", "fastapi"]:
        logging_logger = logging.getLogger(logger_name)
        logging_logger.handlers = [InterceptHandler()]
        logging_logger.propagate = False

    logger.info(f"Logging initialized: level={log_level}, file={log_file}")


def set_endpoint_context(endpoint: str) -> None:
    """Set the current endpoint in context for logging"""
    current_endpoint.set(endpoint)


def clear_endpoint_context() -> None:
    current_endpoint.set("")


def get_log_prefix() -> str:
    """Prefix for script log lines, e.g. ``[ENDPOINT: /foo][Lua]``"""
    endpoint = current_endpoint.get()
    if endpoint:
        return f"[ENDPOINT: {endpoint}][Lua]"
    return "[Lua]"


def get_logger():
    """Get the configured logger instance

    Returns:
        Configured loguru logger
    """
    return logger
