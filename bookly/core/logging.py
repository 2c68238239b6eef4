"""
Logging Configuration and Utilities

Structured logging setup combining structlog processors with the standard
logging module. Records from the package loggers are rendered through
structlog's ProcessorFormatter, so context enrichment and sensitive-key
redaction apply to every handler. python-json-logger renders JSON when
structured logging is switched off.
"""

import sys
import logging
import logging.handlers
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
from pathlib import Path
from functools import wraps

import structlog
from pythonjsonlogger import jsonlogger

from .config import settings


class OperationContextProcessor:
    """Add service context to log records"""

    def __call__(self, logger, method_name, event_dict):
        event_dict.setdefault('timestamp', datetime.now(timezone.utc).isoformat())
        event_dict['service'] = settings.PROJECT_NAME
        event_dict['environment'] = settings.ENVIRONMENT

        return event_dict


class SensitiveDataProcessor:
    """Mask sensitive values before rendering"""

    sensitive_keys = [
        'password', 'token', 'secret', 'api_key', 'credentials',
        'authorization', 'cookie'
    ]

    def __call__(self, logger, method_name, event_dict):
        self._sanitize_event_dict(event_dict)
        return event_dict

    def _sanitize_event_dict(self, event_dict: Dict[str, Any]):
        """Remove or mask sensitive information"""
        for key in list(event_dict.keys()):
            if key.startswith('_'):
                continue
            if any(sensitive in key.lower() for sensitive in self.sensitive_keys):
                event_dict[key] = '[REDACTED]'
            elif isinstance(event_dict[key], dict):
                self._sanitize_event_dict(event_dict[key])


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter for plain (non-structlog) logging"""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['module'] = record.module
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno

        if record.exc_info:
            log_record['exception'] = self.formatException(record.exc_info)


class LoggingConfig:
    """Centralized logging configuration"""

    @staticmethod
    def shared_processors() -> List[Any]:
        """Processors applied to both structlog and standard library records"""
        return [
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.ExtraAdder(),
            OperationContextProcessor(),
            SensitiveDataProcessor(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]

    @staticmethod
    def _renderer(log_format: str):
        if log_format == "json":
            return structlog.processors.JSONRenderer()
        return structlog.processors.KeyValueRenderer(key_order=['timestamp', 'level', 'event'])

    @staticmethod
    def build_formatter(
        structured: Optional[bool] = None,
        log_format: Optional[str] = None,
    ) -> logging.Formatter:
        """
        Formatter for package handlers.

        Args:
            structured: Use the structlog processor chain (defaults to settings)
            log_format: "json" or "text" (defaults to settings)

        Returns:
            Configured formatter
        """
        if structured is None:
            structured = settings.logging.ENABLE_STRUCTURED_LOGGING
        log_format = log_format or settings.logging.LOG_FORMAT

        if structured:
            return structlog.stdlib.ProcessorFormatter(
                foreign_pre_chain=LoggingConfig.shared_processors(),
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    LoggingConfig._renderer(log_format),
                ],
            )

        if log_format == "json":
            return CustomJsonFormatter('%(asctime)s %(name)s %(levelname)s %(message)s')
        return logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    @staticmethod
    def configure_structured_logging():
        """Configure structlog so its own loggers share the package handlers"""

        structlog.configure(
            processors=[
                structlog.stdlib.filter_by_level,
                *LoggingConfig.shared_processors(),
                structlog.stdlib.PositionalArgumentsFormatter(),
                structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            context_class=dict,
            cache_logger_on_first_use=True,
        )

    @staticmethod
    def configure_standard_logging():
        """Configure standard Python logging"""

        level = getattr(logging, settings.logging.LOG_LEVEL)

        package_logger = logging.getLogger("bookly")
        package_logger.setLevel(level)
        package_logger.handlers.clear()

        formatter = LoggingConfig.build_formatter()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        package_logger.addHandler(console_handler)

        if settings.logging.LOG_FILE:
            log_path = Path(settings.logging.LOG_FILE)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                log_path,
                maxBytes=10*1024*1024,  # 10MB
                backupCount=5
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(formatter)
            package_logger.addHandler(file_handler)

        LoggingConfig._configure_library_loggers()

    @staticmethod
    def _configure_library_loggers():
        """Configure logging for external libraries"""

        if settings.logging.LOG_SQL_QUERIES:
            logging.getLogger("sqlalchemy.engine").setLevel(logging.INFO)
        else:
            logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


class LoggerAdapter:
    """Logger wrapper passing structured fields through ``extra``"""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def _log(self, level: int, message: str, *args, **kwargs):
        kwargs['extra'] = dict(kwargs.get('extra') or {})
        self.logger.log(level, message, *args, **kwargs)

    def debug(self, message: str, *args, **kwargs):
        self._log(logging.DEBUG, message, *args, **kwargs)

    def info(self, message: str, *args, **kwargs):
        self._log(logging.INFO, message, *args, **kwargs)

    def warning(self, message: str, *args, **kwargs):
        self._log(logging.WARNING, message, *args, **kwargs)

    def error(self, message: str, *args, **kwargs):
        self._log(logging.ERROR, message, *args, **kwargs)


def get_logger(name: str) -> LoggerAdapter:
    """
    Get configured logger instance.

    Args:
        name: Logger name, usually the caller's ``__name__``

    Returns:
        Logger adapter whose records pass through the package formatter
    """
    return LoggerAdapter(logging.getLogger(name))


def log_execution_time(logger_name: Optional[str] = None):
    """
    Decorator to log function execution time.

    Args:
        logger_name: Custom logger name
    """
    def decorator(func):
        logger = get_logger(logger_name or func.__module__)

        @wraps(func)
        def wrapper(*args, **kwargs):
            start_time = datetime.now(timezone.utc)

            try:
                result = func(*args, **kwargs)
                execution_time = (datetime.now(timezone.utc) - start_time).total_seconds()

                logger.debug("Function executed successfully", extra={
                    'function': func.__name__,
                    'execution_time': execution_time
                })

                return result

            except Exception as e:
                execution_time = (datetime.now(timezone.utc) - start_time).total_seconds()

                logger.error("Function execution failed", extra={
                    'function': func.__name__,
                    'execution_time': execution_time,
                    'error_type': type(e).__name__,
                    'error_message': str(e)
                })

                raise

        return wrapper

    return decorator


def setup_logging():
    """Initialize logging configuration"""
    if settings.logging.ENABLE_STRUCTURED_LOGGING:
        LoggingConfig.configure_structured_logging()

    LoggingConfig.configure_standard_logging()

    logger = get_logger(__name__)
    logger.debug("Logging system initialized", extra={
        'log_level': settings.logging.LOG_LEVEL,
        'log_format': settings.logging.LOG_FORMAT,
        'structured_logging': settings.logging.ENABLE_STRUCTURED_LOGGING
    })


# Initialize logging when module is imported
setup_logging()

__all__ = [
    'get_logger',
    'setup_logging',
    'log_execution_time',
    'LoggerAdapter',
    'LoggingConfig',
]
