"""Centralized logging configuration for the detection trigger service."""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Dict, Optional

ROOT_LOGGER_NAME = "deepstack_trigger"


class StructuredFormatter(logging.Formatter):
    """Formatter that appends structured context to log records."""

    BASE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-40s | %(message)s"

    def __init__(self, include_context: bool = True):
        super().__init__(self.BASE_FORMAT)
        self.include_context = include_context

    def format(self, record: logging.LogRecord) -> str:
        """Format log record, adding context key/values when present."""
        message = super().format(record)

        context = getattr(record, "context", None)
        if self.include_context and context:
            context_str = " | ".join(f"{k}={v}" for k, v in context.items())
            message = f"{message} | Context: {context_str}"

        return message


class LoggingManager:
    """Owns the handlers attached to the service's root logger."""

    def __init__(self, log_dir: Optional[str] = None, log_level: int = logging.INFO):
        self.log_dir = Path(log_dir) if log_dir else None
        self.log_level = log_level
        self.max_log_size = 10 * 1024 * 1024  # 10MB
        self.backup_count = 5

        self._setup_root_logger()

    def _setup_root_logger(self) -> None:
        """Attach console and optional rotating file handlers."""
        root_logger = logging.getLogger(ROOT_LOGGER_NAME)
        root_logger.setLevel(self.log_level)
        root_logger.handlers.clear()

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(StructuredFormatter(include_context=False))
        root_logger.addHandler(console_handler)

        if self.log_dir is not None:
            self.log_dir.mkdir(parents=True, exist_ok=True)

            main_file_handler = logging.handlers.RotatingFileHandler(
                self.log_dir / "deepstack_trigger.log",
                maxBytes=self.max_log_size,
                backupCount=self.backup_count
            )
            main_file_handler.setLevel(logging.DEBUG)
            main_file_handler.setFormatter(StructuredFormatter(include_context=True))
            root_logger.addHandler(main_file_handler)

            error_file_handler = logging.handlers.RotatingFileHandler(
                self.log_dir / "errors.log",
                maxBytes=self.max_log_size,
                backupCount=self.backup_count
            )
            error_file_handler.setLevel(logging.ERROR)
            error_file_handler.setFormatter(StructuredFormatter(include_context=True))
            root_logger.addHandler(error_file_handler)

        root_logger.info("Logging system initialized")


_logging_manager: Optional[LoggingManager] = None


def get_logger(component_name: str) -> logging.Logger:
    """Get a logger for a component, namespaced under the service logger."""
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{component_name}")


def log_with_context(logger: logging.Logger, level: int, message: str,
                     context: Optional[Dict[str, object]] = None) -> None:
    """Log a message carrying extra key/value context."""
    logger.log(level, message, extra={"context": context or {}})


def setup_logging(log_level: str = "INFO", log_dir: Optional[str] = None,
                  verbose: bool = False) -> LoggingManager:
    """Set up the service logging. ``verbose`` forces DEBUG output."""
    global _logging_manager

    numeric_level = logging.DEBUG if verbose else getattr(logging, log_level.upper(), logging.INFO)
    _logging_manager = LoggingManager(log_dir, numeric_level)

    return _logging_manager
