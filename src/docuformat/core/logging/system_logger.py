# src/docuformat/core/logging/system_logger.py
"""
Provides a context-aware logging utility for the document pipeline.

Every record carries the ambient context of the running component
(component name, machine name) merged with the event-specific context, and
can be emitted either as plain text or as a single JSON document per line.
"""

import logging
import json
import os
from typing import Dict, Any, Optional, TYPE_CHECKING
from uuid import uuid4
from datetime import datetime, timedelta, date, time
import copy

from ..errors import DocuFormatError

if TYPE_CHECKING:
    from ..config.configuration_manager import LoggingConfig


def custom_json_serializer(obj):
    """Custom JSON serializer for objects not serializable by default json code"""
    if isinstance(obj, bytes):
        return obj.hex()
    if isinstance(obj, timedelta):
        return obj.total_seconds()
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    if hasattr(obj, "value"):
        return obj.value
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class JsonFormatter(logging.Formatter):
    """
    Custom formatter to output log records as a single JSON string.
    """
    def format(self, record):
        log_record = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if hasattr(record, 'extra_context'):
            log_record.update(record.extra_context)
        if hasattr(record, 'error_data'):
            log_record["error"] = record.error_data
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_record, default=custom_json_serializer)


def configure_logging(logging_config: "LoggingConfig") -> None:
    """Initializes the root handler and the optional file handler."""
    logging.basicConfig(level=logging_config.level.upper(),
                        format='%(asctime)s - %(levelname)s - %(message)s', force=True)

    if logging_config.format.upper() == "JSON":
        for handler in logging.getLogger().handlers:
            handler.setFormatter(JsonFormatter())

    if logging_config.file and logging_config.file.enabled:
        log_dir = os.path.dirname(logging_config.file.path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.FileHandler(logging_config.file.path)
        file_handler.setLevel(logging_config.file.level.upper())
        if logging_config.file.format.upper() == "JSON":
            file_handler.setFormatter(JsonFormatter())
        else:
            file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        logging.getLogger().addHandler(file_handler)


class SystemLogger:
    """
    A structured logger that provides a set of methods for logging specific
    pipeline events, with ambient context and optional JSON output.
    """

    def __init__(self, logger: logging.Logger, log_format: str = "TEXT", ambient_context: Optional[Dict[str, Any]] = None):
        """
        Initializes the logger with a base logger instance and ambient context.

        - logger: The base Python logger instance.
        - log_format: The format for log output ('TEXT' or 'JSON').
        - ambient_context: A dictionary of context that is always present,
          e.g., {"component_name": "Viewer", "machine_name": "laptop-1"}
        """
        self.logger = logger
        self.ambient_context = dict(ambient_context or {})

        required_fields = ['component_name', 'machine_name']
        for field in required_fields:
            if field not in self.ambient_context:
                self.ambient_context[field] = 'UNKNOWN'
                self.logger.debug(f"Ambient context is missing required field '{field}'. Defaulting to 'UNKNOWN'.")

        if log_format.upper() == "JSON":
            for handler in self.logger.handlers:
                handler.setFormatter(JsonFormatter())

    def _log(self, level: int, message: str, context: Dict[str, Any], exc_info: bool = False):
        """
        Internal log method that merges ambient and specific context
        and emits the final log record.
        """
        final_context = {**self.ambient_context, **context}
        self.logger.log(level, message, extra={"extra_context": final_context}, exc_info=exc_info)

    def _ensure_trace_id(self, trace_id: Optional[str], context: Dict[str, Any]) -> str:
        """Validates trace_id, creating one if missing, and returns it."""
        if not trace_id:
            trace_id = f"missing_trace_{uuid4().hex}"
            context['trace_warning'] = 'trace_id was missing or empty'
        return trace_id

    # --- Configuration & Startup Logging ---

    def log_config_load(self, status: str, **context):
        """Logs the status of configuration loading."""
        self._log(logging.INFO, f"Configuration loading {status}.", context)

    def log_component_lifecycle(self, component: str, event: str, **context):
        """Logs a lifecycle event for a major component (e.g., startup, shutdown)."""
        self._log(logging.INFO, f"Component '{component}' event: {event}.", context)

    # --- Attempt Lifecycle Logging ---

    def log_attempt_transition(self, attempt_id: int, state: str, **context):
        """Logs a state transition of a processing attempt."""
        level = logging.WARNING if state == "failed" else logging.DEBUG
        self._log(level, f"Attempt {attempt_id} entered state '{state}'.", {"attempt_id": attempt_id, "state": state, **context})

    def log_stale_result(self, attempt_id: int, latest_attempt_id: int, **context):
        """Logs that an attempt finished after a newer submission and was discarded."""
        self._log(logging.INFO,
                  f"Discarding result of attempt {attempt_id}; attempt {latest_attempt_id} is current.",
                  {"attempt_id": attempt_id, "latest_attempt_id": latest_attempt_id, **context})

    # --- Error Handling Integration ---

    def log_docuformat_error(self, error: "DocuFormatError", trace_id: Optional[str], **context):
        """Logs a structured error, correlating it with the current trace_id."""
        final_trace_id = self._ensure_trace_id(trace_id, context)

        # Copy so the error's own context is not mutated
        error_dict = copy.deepcopy(error.to_dict())
        error_dict['context']['trace_id'] = final_trace_id
        error_dict['context'].update(context)

        message = f"DocuFormatError occurred: {error.message}"

        severity_map = {
            "CRITICAL": logging.CRITICAL,
            "HIGH": logging.ERROR,
            "MEDIUM": logging.WARNING,
            "LOW": logging.INFO
        }
        level = severity_map.get(error.severity.value.upper(), logging.ERROR)
        self._log(level, message, error_dict)

    # --- General-Purpose Logging ---

    def info(self, message: str, **context):
        """Log an info message."""
        self._log(logging.INFO, message, context)

    def warning(self, message: str, **context):
        """Log a warning message."""
        self._log(logging.WARNING, message, context)

    def error(self, message: str, exc_info: bool = False, **context):
        """Log an error message."""
        self._log(logging.ERROR, message, context, exc_info=exc_info)

    def debug(self, message: str, **context):
        """Log a debug message."""
        self._log(logging.DEBUG, message, context)

    def critical(self, message: str, **context):
        """Log a critical message."""
        self._log(logging.CRITICAL, message, context)
