"""
Logger configuration for the Service Registry
Compatible with Grafana, Loki, and Prometheus monitoring stack
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

from service_registry.config import LOG_LEVEL, LOG_FORMAT
from service_registry.constants import (
    LOG_INSTANCE_REGISTERED,
    LOG_INSTANCE_HEARTBEAT,
    LOG_INSTANCE_REVIVED,
    LOG_INSTANCE_MARKED_DOWN,
    LOG_INSTANCE_EVICTED,
    LOG_INSTANCE_UNREGISTERED,
)

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_RECORD_FIELDS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
    "getMessage",
    "exc_info",
    "exc_text",
    "stack_info",
}

_LOGGER_NAMES = (
    "service_registry",
    "service_registry.registry",
    "service_registry.api",
    "service_registry.client",
)


class StructuredFormatter(logging.Formatter):
    """
    Structured JSON formatter for better integration with Grafana/Loki/Prometheus
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON"""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        # service_name, version, address, status, event_type...
        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_FIELDS:
                log_entry[key] = value

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class RegistryLogger:
    """
    Centralized logger configuration for the Service Registry
    """

    @staticmethod
    def setup_logging(
        level: str = LOG_LEVEL,
        format_type: str = "structured",
        enable_console: bool = True,
        enable_file: bool = False,
        log_file_path: Optional[str] = None,
    ) -> None:
        """
        Setup logging configuration

        Args:
            level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
            format_type: Format type - "structured" (JSON) or "simple" (text)
            enable_console: Enable console logging
            enable_file: Enable file logging
            log_file_path: Path to log file (required if enable_file=True)
        """
        numeric_level = getattr(logging, level.upper(), logging.INFO)

        if format_type == "structured":
            formatter = StructuredFormatter()
        else:
            formatter = logging.Formatter(LOG_FORMAT)

        handlers = []

        if enable_console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            handlers.append(console_handler)

        if enable_file and log_file_path:
            file_handler = logging.FileHandler(log_file_path)
            file_handler.setFormatter(formatter)
            handlers.append(file_handler)

        logging.basicConfig(
            level=numeric_level,
            handlers=handlers,
            force=True,  # Override any existing configuration
        )

        RegistryLogger._configure_registry_loggers(numeric_level, handlers)

    @staticmethod
    def _configure_registry_loggers(level: int, handlers: list) -> None:
        """Configure the package loggers with appropriate levels"""
        for name in _LOGGER_NAMES:
            package_logger = logging.getLogger(name)
            package_logger.setLevel(level)
            package_logger.handlers = list(handlers)
            package_logger.propagate = False

    @staticmethod
    def get_logger(name: str) -> logging.Logger:
        """Get a logger instance"""
        return logging.getLogger(name)

    @staticmethod
    def log_instance_event(
        logger: logging.Logger,
        level: int,
        message: str,
        service_name: str,
        version: str,
        address: str,
        **kwargs,
    ) -> None:
        """
        Log an instance-related event with structured data

        Args:
            logger: Logger instance
            level: Log level
            message: Log message
            service_name: Name of the service
            version: Version of the service
            address: Address of the instance
            **kwargs: Additional structured data
        """
        extra_data = {
            "service_name": service_name,
            "version": version,
            "address": address,
            **kwargs,
        }
        logger.log(level, message, extra=extra_data)


# Convenience functions for common logging patterns
def _log_lifecycle(logger, level, template, instance, event_type, **kwargs):
    RegistryLogger.log_instance_event(
        logger,
        level,
        template.format(instance.service_name, instance.version, instance.address),
        instance.service_name,
        instance.version,
        instance.address,
        status=instance.status.value,
        event_type=event_type,
        **kwargs,
    )


def log_instance_registered(logger: logging.Logger, instance) -> None:
    """Log first registration of an instance"""
    _log_lifecycle(
        logger, logging.INFO, LOG_INSTANCE_REGISTERED, instance, "registration"
    )


def log_instance_heartbeat(logger: logging.Logger, instance) -> None:
    """Log a routine heartbeat"""
    _log_lifecycle(logger, logging.DEBUG, LOG_INSTANCE_HEARTBEAT, instance, "heartbeat")


def log_instance_revived(logger: logging.Logger, instance) -> None:
    """Log a heartbeat that brought a DOWN instance back"""
    _log_lifecycle(logger, logging.INFO, LOG_INSTANCE_REVIVED, instance, "revival")


def log_instance_marked_down(
    logger: logging.Logger, instance, seconds_since_heartbeat: float
) -> None:
    """Log an instance transition to DOWN"""
    _log_lifecycle(
        logger,
        logging.WARNING,
        LOG_INSTANCE_MARKED_DOWN,
        instance,
        "mark_down",
        seconds_since_heartbeat=round(seconds_since_heartbeat, 3),
    )


def log_instance_evicted(
    logger: logging.Logger, instance, seconds_since_heartbeat: float
) -> None:
    """Log an instance removed by the reaper"""
    _log_lifecycle(
        logger,
        logging.WARNING,
        LOG_INSTANCE_EVICTED,
        instance,
        "eviction",
        seconds_since_heartbeat=round(seconds_since_heartbeat, 3),
    )


def log_instance_unregistered(logger: logging.Logger, instance) -> None:
    """Log explicit removal of an instance"""
    _log_lifecycle(
        logger, logging.INFO, LOG_INSTANCE_UNREGISTERED, instance, "unregistration"
    )
