import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from typing import Dict, Any

from fastapi import HTTPException

from .settings import get_settings


class ColoredFormatter(logging.Formatter):
    """Custom formatter with color coding for different log levels."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m'
    }

    def format(self, record):
        record = logging.makeLogRecord(record.__dict__)
        color = self.COLORS.get(record.levelname, self.COLORS['RESET'])
        record.levelname = f"{color}{record.levelname}{self.COLORS['RESET']}"
        return super().format(record)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging in production."""

    EXTRA_FIELDS = ('request_id', 'staff_id', 'trip_id', 'visit_id', 'duration', 'row_count')

    def format(self, record):
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        for field in self.EXTRA_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


def build_logging_config() -> Dict[str, Any]:
    """Build the dictConfig payload from current settings."""
    settings = get_settings()
    console_formatter = 'json' if settings.LOG_JSON else ('colored' if settings.DEBUG else 'standard')

    handlers: Dict[str, Any] = {
        'console': {
            'level': 'DEBUG' if settings.DEBUG else 'INFO',
            'class': 'logging.StreamHandler',
            'formatter': console_formatter,
            'stream': 'ext://sys.stdout'
        }
    }
    app_handlers = ['console']

    if settings.LOG_FILE:
        log_dir = os.path.dirname(settings.LOG_FILE)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        handlers['file'] = {
            'level': 'INFO',
            'class': 'logging.handlers.RotatingFileHandler',
            'formatter': 'json' if settings.LOG_JSON else 'detailed',
            'filename': settings.LOG_FILE,
            'maxBytes': 10485760,  # 10MB
            'backupCount': 5,
            'encoding': 'utf8'
        }
        app_handlers.append('file')

    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'standard': {
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'detailed': {
                'format': '%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(funcName)s(): %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'colored': {
                '()': ColoredFormatter,
                'format': '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            },
            'json': {
                '()': JSONFormatter
            }
        },
        'handlers': handlers,
        'loggers': {
            '': {
                'handlers': app_handlers,
                'level': settings.LOG_LEVEL,
            },
            'uvicorn.access': {
                'handlers': app_handlers,
                'level': 'WARNING',
                'propagate': False
            },
            'sqlalchemy.engine': {
                'handlers': app_handlers,
                'level': 'INFO' if settings.DEBUG else 'WARNING',
                'propagate': False
            },
            'api': {
                'handlers': app_handlers,
                'level': 'INFO',
                'propagate': False
            },
            'database': {
                'handlers': app_handlers,
                'level': 'DEBUG' if settings.DEBUG else 'INFO',
                'propagate': False
            },
            'mileage_tracker': {
                'handlers': app_handlers,
                'level': 'DEBUG' if settings.DEBUG else settings.LOG_LEVEL,
                'propagate': False
            }
        }
    }


def setup_logging():
    """Setup logging configuration."""
    logging.config.dictConfig(build_logging_config())
    logging.getLogger("multipart").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name."""
    return logging.getLogger(name)


def log_api_request(request_id: str, method: str, path: str):
    """Log API request information."""
    logger = get_logger("api")
    logger.info(f"{method} {path}", extra={'request_id': request_id})


def log_api_response(request_id: str, status_code: int, duration: float):
    """Log API response information."""
    logger = get_logger("api")
    extra = {'request_id': request_id, 'duration': duration}
    logger.info(f"Response: {status_code} ({duration:.3f}s)", extra=extra)


def log_database_operation(operation: str, table: str, duration: float = None, row_count: int = None):
    """Log database operations."""
    logger = get_logger("database")
    extra = {}
    if duration is not None:
        extra['duration'] = duration
    if row_count is not None:
        extra['row_count'] = row_count

    message = f"DB Operation: {operation} - Table: {table}"
    if row_count is not None:
        message += f" - Rows: {row_count}"

    logger.debug(message, extra=extra)


def log_performance(logger_name: str = "performance"):
    """Decorator to log function performance."""
    def decorator(func):
        import functools
        import time

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger(logger_name)
            start_time = time.time()
            try:
                result = func(*args, **kwargs)
                duration = time.time() - start_time
                logger.debug(f"{func.__name__} completed in {duration:.3f}s")
                return result
            except HTTPException as e:
                duration = time.time() - start_time
                level = logging.ERROR if e.status_code >= 500 else logging.INFO
                logger.log(level, f"{func.__name__} rejected after {duration:.3f}s ({e.status_code}): {e.detail}")
                raise
            except Exception as e:
                duration = time.time() - start_time
                logger.error(f"{func.__name__} failed after {duration:.3f}s: {str(e)}")
                raise
        return wrapper
    return decorator


__all__ = [
    "setup_logging",
    "get_logger",
    "log_api_request",
    "log_api_response",
    "log_database_operation",
    "log_performance"
]
