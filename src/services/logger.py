"""
Logger Service Module
Centralized logging configuration with rotation, formatting, and multiple handlers
"""

import json
import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import colorlog


class LoggerService:
    """
    Centralized logging service with support for:
    - Multiple log levels
    - File rotation
    - Colored console output
    - JSON structured logging
    """

    def __init__(self, config: dict[str, Any] | None = None):
        self.config = self._default_config()
        if config:
            self.config.update(config)
        self.loggers = {}
        self.handlers = {}

        # Create log directory
        self.log_dir = Path(self.config.get("log_dir", "./logs"))
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            if not os.access(self.log_dir, os.W_OK):
                raise PermissionError(f"Log directory not writable: {self.log_dir}")
        except OSError:
            # Fall back to a local writable directory to avoid crashing tests/app
            self.log_dir = Path("./logs")
            self.log_dir.mkdir(parents=True, exist_ok=True)

        self._setup_root_logger()

    def _default_config(self) -> dict[str, Any]:
        """Default logging configuration"""
        return {
            "log_dir": "./logs",
            "log_level": "INFO",
            "console_level": "INFO",
            "file_level": "DEBUG",
            "max_bytes": 5 * 1024 * 1024,  # 5MB
            "backup_count": 3,
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "date_format": "%Y-%m-%d %H:%M:%S",
            "colored_output": True,
            "console_output": True,
            "json_logs": False,
        }

    def _setup_root_logger(self):
        """Configure the root logger"""
        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)  # Capture all, filter at handler level

        root_logger.handlers = []

        if self.config.get("console_output", True):
            root_logger.addHandler(self._create_console_handler())

        root_logger.addHandler(self._create_file_handler("app.log"))
        root_logger.addHandler(self._create_file_handler("errors.log", level=logging.ERROR))

        # aiohttp access/client chatter stays at WARNING unless asked for
        logging.getLogger("aiohttp").setLevel(logging.WARNING)

    def _create_console_handler(self) -> logging.Handler:
        """Create console handler with optional colored output"""
        console_handler = logging.StreamHandler(sys.stdout)
        console_level = self.config.get("console_level") or self.config.get("log_level", "INFO")
        console_handler.setLevel(getattr(logging, str(console_level).upper(), logging.INFO))

        if self.config.get("colored_output"):
            formatter = colorlog.ColoredFormatter(
                "%(log_color)s%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt=self.config.get("date_format"),
                log_colors={
                    "DEBUG": "cyan",
                    "INFO": "green",
                    "WARNING": "yellow",
                    "ERROR": "red",
                    "CRITICAL": "red,bg_white",
                },
            )
        else:
            formatter = logging.Formatter(
                self.config.get("format"), datefmt=self.config.get("date_format")
            )

        console_handler.setFormatter(formatter)
        return console_handler

    def _create_file_handler(self, filename: str, level: int | None = None) -> logging.Handler:
        """Create rotating file handler"""
        file_path = self.log_dir / filename

        try:
            handler: logging.Handler = RotatingFileHandler(
                file_path,
                maxBytes=self.config.get("max_bytes"),
                backupCount=self.config.get("backup_count"),
            )
        except OSError:
            # Don't fail hard if filesystem isn't writable (common in CI/sandboxes).
            handler = logging.StreamHandler(sys.stderr)

        handler.setLevel(level or getattr(logging, self.config.get("file_level", "DEBUG")))

        if self.config.get("json_logs"):
            handler.setFormatter(JsonFormatter())
        else:
            formatter = logging.Formatter(
                self.config.get("format"), datefmt=self.config.get("date_format")
            )
            handler.setFormatter(formatter)

        return handler

    def get_logger(self, name: str) -> logging.Logger:
        """Get or create a named logger"""
        if name not in self.loggers:
            logger = logging.getLogger(name)
            self.loggers[name] = logger

        return self.loggers[name]

    def set_level(self, level: str, logger_name: str | None = None):
        """Set logging level for a specific logger or all loggers"""
        level_value = getattr(logging, level.upper())

        if logger_name:
            logging.getLogger(logger_name).setLevel(level_value)
        else:
            logging.getLogger().setLevel(level_value)

    def cleanup(self):
        """Clean up handlers and close files"""
        root_logger = logging.getLogger()
        for handler in list(root_logger.handlers):
            handler.close()
            root_logger.removeHandler(handler)

        for logger_handlers in self.handlers.values():
            for handler in logger_handlers:
                handler.close()
        self.handlers.clear()

        for logger in self.loggers.values():
            logger.handlers = []
        self.loggers.clear()


class JsonFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    _RESERVED = frozenset(
        [
            "name",
            "msg",
            "args",
            "created",
            "filename",
            "funcName",
            "levelname",
            "levelno",
            "lineno",
            "module",
            "msecs",
            "message",
            "pathname",
            "process",
            "processName",
            "relativeCreated",
            "thread",
            "threadName",
            "taskName",
            "exc_info",
            "exc_text",
            "stack_info",
        ]
    )

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Add extra fields (session_id, phase, ...)
        for key, value in record.__dict__.items():
            if key not in self._RESERVED:
                log_data[key] = value

        return json.dumps(log_data, default=str)


# Global logger service instance
_logger_service = None
_logging_configured = False


def setup_logging(config: dict | None = None) -> logging.Logger:
    """
    Setup logging configuration and return root logger

    Args:
        config: Optional configuration dictionary

    Returns:
        Configured root logger
    """
    global _logger_service, _logging_configured

    if _logging_configured and _logger_service is not None:
        return logging.getLogger()

    from config import config as app_config

    log_config = {
        "log_dir": str(app_config.FILES.get("log_dir", "./logs")),
        "log_level": app_config.LOGGING.get("level", "INFO"),
        "console_level": app_config.LOGGING.get("level", "INFO"),
        "max_bytes": app_config.LOGGING.get("max_bytes", 5 * 1024 * 1024),
        "backup_count": app_config.LOGGING.get("backup_count", 3),
        "format": app_config.LOGGING.get("format"),
        "date_format": app_config.LOGGING.get("date_format"),
        "console_output": app_config.LOGGING.get("console_output", True),
    }
    if config:
        log_config.update(config)

    _logger_service = LoggerService(log_config)
    _logging_configured = True

    return logging.getLogger()


def get_logger(name: str) -> logging.Logger:
    """Get a named logger"""
    if _logger_service is None:
        setup_logging()

    return _logger_service.get_logger(name)


def cleanup_logging():
    """Clean up logging resources"""
    global _logger_service, _logging_configured

    if _logger_service:
        _logger_service.cleanup()
        _logger_service = None
        _logging_configured = False
