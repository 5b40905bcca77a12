# src/docuformat/core/errors.py
"""
Consistent error hierarchy and handling system for the document pipeline.

Every failure surfaced by the pipeline is a DocuFormatError subclass carrying
a structured payload (type, category, severity, context) for the logs and a
short user-facing message for the viewer.
"""

import traceback
import threading
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Any, Optional, List
from uuid import uuid4
import logging
import sys
import zipfile
from xml.etree.ElementTree import ParseError as XmlParseError

# =============================================================================
# Error Categories and Types
# =============================================================================

GENERIC_READ_FAILURE_MESSAGE = "Failed to read file. Please ensure it is a valid supported format."


class ErrorCategory(Enum):
    """High-level error categories for classification"""
    CONFIGURATION = "configuration"
    PROCESSING = "processing"
    RESOURCE = "resource"
    VALIDATION = "validation"
    SYSTEM = "system"
    FATAL_BUG = "fatal_bug"


class ErrorSeverity(Enum):
    """Error severity levels"""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorType(Enum):
    """Specific error types for detailed classification"""
    # Validation errors
    VALIDATION_SIZE_EXCEEDED = "validation_size_exceeded"
    VALIDATION_UNSUPPORTED_TYPE = "validation_unsupported_type"
    VALIDATION_TYPE_ERROR = "validation_type_error"

    # Processing errors
    PROCESSING_FORMAT_ERROR = "processing_format_error"
    PROCESSING_DATA_CORRUPTION = "processing_data_corruption"
    PROCESSING_LOGIC_ERROR = "processing_logic_error"

    # Resource errors
    RESOURCE_READ_FAILED = "resource_read_failed"
    RESOURCE_FILE_NOT_FOUND = "resource_file_not_found"
    RESOURCE_MEMORY_EXHAUSTED = "resource_memory_exhausted"

    # Configuration errors
    CONFIGURATION_MISSING = "configuration_missing"
    CONFIGURATION_INVALID = "configuration_invalid"
    CONFIGURATION_DEPENDENCY_MISSING = "configuration_dependency_missing"

    # compilation errors
    PROGRAMMING_ERROR = "programming_error"

    # System errors
    SYSTEM_INTERNAL_ERROR = "system_internal_error"


# =============================================================================
# Base Error Classes
# =============================================================================

class DocuFormatError(Exception):
    """
    Base exception for all document pipeline errors.
    Provides structured error information with context.
    """

    def __init__(self,
                 message: str,
                 error_type: ErrorType,
                 error_category: ErrorCategory = None,
                 severity: ErrorSeverity = ErrorSeverity.MEDIUM,
                 user_message: Optional[str] = None,
                 context: Optional[Dict[str, Any]] = None,
                 cause: Optional[Exception] = None):

        super().__init__(message)

        # Core error information
        self.message = message
        self.error_type = error_type
        self.error_category = error_category or self._infer_category(error_type)
        self.severity = severity
        self.user_message = user_message or GENERIC_READ_FAILURE_MESSAGE

        # Context and tracking
        self.context = context or {}
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)
        self.error_id = f"err_{int(self.timestamp.timestamp() * 1000)}_{uuid4().hex[:6]}"

        # Capture stack trace
        self.stack_trace = traceback.format_exc() if sys.exc_info()[0] else None

        if cause:
            self.context['caused_by'] = {
                'type': type(cause).__name__,
                'message': str(cause),
                'error_id': getattr(cause, 'error_id', None)
            }

    def _infer_category(self, error_type: ErrorType) -> ErrorCategory:
        """Infer error category from error type"""
        type_to_category = {
            ErrorType.VALIDATION_SIZE_EXCEEDED: ErrorCategory.VALIDATION,
            ErrorType.VALIDATION_UNSUPPORTED_TYPE: ErrorCategory.VALIDATION,
            ErrorType.VALIDATION_TYPE_ERROR: ErrorCategory.VALIDATION,

            ErrorType.PROCESSING_FORMAT_ERROR: ErrorCategory.PROCESSING,
            ErrorType.PROCESSING_DATA_CORRUPTION: ErrorCategory.PROCESSING,
            ErrorType.PROCESSING_LOGIC_ERROR: ErrorCategory.PROCESSING,

            ErrorType.RESOURCE_READ_FAILED: ErrorCategory.RESOURCE,
            ErrorType.RESOURCE_FILE_NOT_FOUND: ErrorCategory.RESOURCE,
            ErrorType.RESOURCE_MEMORY_EXHAUSTED: ErrorCategory.RESOURCE,

            ErrorType.CONFIGURATION_MISSING: ErrorCategory.CONFIGURATION,
            ErrorType.CONFIGURATION_INVALID: ErrorCategory.CONFIGURATION,
            ErrorType.CONFIGURATION_DEPENDENCY_MISSING: ErrorCategory.CONFIGURATION,

            ErrorType.PROGRAMMING_ERROR: ErrorCategory.FATAL_BUG,
            ErrorType.SYSTEM_INTERNAL_ERROR: ErrorCategory.SYSTEM,
        }

        return type_to_category.get(error_type, ErrorCategory.SYSTEM)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization"""
        return {
            'error_id': self.error_id,
            'error_type': self.error_type.value,
            'error_category': self.error_category.value,
            'severity': self.severity.value,
            'message': self.message,
            'user_message': self.user_message,
            'timestamp': self.timestamp.isoformat(),
            'context': self.context,
            'stack_trace': self.stack_trace,
            'class_name': self.__class__.__name__
        }

    def add_context(self, key: str, value: Any) -> 'DocuFormatError':
        """Add context information to error (fluent interface)"""
        self.context[key] = value
        return self

    def __str__(self) -> str:
        """String representation with error ID and context"""
        context_str = ""
        if self.context:
            key_contexts = [f"{k}={v}" for k, v in self.context.items()
                            if k not in ['caused_by', 'stack_trace']]
            if key_contexts:
                context_str = f" [{', '.join(key_contexts)}]"

        return f"[{self.error_id}] {self.message}{context_str}"


# =============================================================================
# Specific Error Classes
# =============================================================================

class ValidationError(DocuFormatError):
    """Rejected before any byte parsing (size ceiling, extension whitelist)"""

    def __init__(self, message: str,
                 error_type: ErrorType = ErrorType.VALIDATION_UNSUPPORTED_TYPE,
                 file_name: Optional[str] = None,
                 size_bytes: Optional[int] = None,
                 **kwargs):

        kwargs.setdefault('severity', ErrorSeverity.LOW)
        # The validation message is already written for the end user.
        kwargs.setdefault('user_message', message)

        super().__init__(message, error_type, ErrorCategory.VALIDATION, **kwargs)

        if file_name:
            self.add_context('file_name', file_name)
        if size_bytes is not None:
            self.add_context('size_bytes', size_bytes)


class ParseError(DocuFormatError):
    """Container or markup could not be decoded for the expected format"""

    def __init__(self, message: str,
                 kind: Any,
                 error_type: ErrorType = ErrorType.PROCESSING_FORMAT_ERROR,
                 **kwargs):

        kwargs.setdefault('severity', ErrorSeverity.MEDIUM)

        super().__init__(message, error_type, ErrorCategory.PROCESSING, **kwargs)

        self.kind = kind
        self.add_context('content_type', getattr(kind, 'value', kind))


class ContentIOError(DocuFormatError):
    """Raw bytes could not be read from the underlying source"""

    def __init__(self, message: str,
                 error_type: ErrorType = ErrorType.RESOURCE_READ_FAILED,
                 source: Optional[str] = None,
                 **kwargs):

        kwargs.setdefault('severity', ErrorSeverity.MEDIUM)

        super().__init__(message, error_type, ErrorCategory.RESOURCE, **kwargs)

        if source:
            self.add_context('source', source)


class ConfigurationError(DocuFormatError):
    """Configuration and setup errors"""

    def __init__(self, message: str,
                 error_type: ErrorType = ErrorType.CONFIGURATION_INVALID,
                 config_section: Optional[str] = None,
                 config_key: Optional[str] = None,
                 **kwargs):

        kwargs.setdefault('severity', ErrorSeverity.HIGH)

        super().__init__(message, error_type, ErrorCategory.CONFIGURATION, **kwargs)

        if config_section:
            self.add_context('config_section', config_section)
        if config_key:
            self.add_context('config_key', config_key)


# =============================================================================
# Error Handling Utilities
# =============================================================================

class ErrorHandler:
    """Centralized error handling and logging with thread safety"""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

        self._registry_lock = threading.Lock()
        self.error_registry: Dict[str, DocuFormatError] = {}
        self._max_registry_size = 1000

    def handle_error(self,
                     error: Exception,
                     context: str,
                     operation: Optional[str] = None,
                     **additional_context) -> DocuFormatError:
        """
        Convert any exception to DocuFormatError, log it and register it.
        """
        if not isinstance(error, Exception):
            self.logger.error(f"ERROR HANDLER BUG: Received non-Exception object: {type(error)}")
            error = RuntimeError(f"Invalid error object passed to handler: {str(error)}")

        if not context:
            self.logger.warning("ERROR HANDLER: Empty context provided, using fallback")
            context = "unknown_context"

        self.logger.debug(f"Handling {type(error).__name__} in {context} (operation={operation}): {error}")

        if isinstance(error, DocuFormatError):
            docuformat_error = error
            if operation:
                docuformat_error.add_context('operation', operation)
            docuformat_error.add_context('context', context)
            for key, value in additional_context.items():
                docuformat_error.add_context(key, value)
        else:
            docuformat_error = self._convert_exception(error, context, operation, **additional_context)

        self._log_error(docuformat_error)

        with self._registry_lock:
            if len(self.error_registry) >= self._max_registry_size:
                oldest_id = min(self.error_registry.keys(),
                                key=lambda k: self.error_registry[k].timestamp)
                del self.error_registry[oldest_id]

            self.error_registry[docuformat_error.error_id] = docuformat_error

        return docuformat_error

    def _convert_exception(self,
                           error: Exception,
                           context: str,
                           operation: Optional[str] = None,
                           **additional_context) -> DocuFormatError:
        """Convert generic exception to appropriate DocuFormatError"""

        error_message = str(error)
        error_class = type(error).__name__
        error_context = {'original_context': context, 'operation': operation, **additional_context}

        if isinstance(error, FileNotFoundError):
            return ContentIOError(
                f"{error_class}: {error_message}",
                ErrorType.RESOURCE_FILE_NOT_FOUND,
                cause=error,
                context=error_context
            )

        elif isinstance(error, OSError):
            return ContentIOError(
                f"{error_class}: {error_message}",
                ErrorType.RESOURCE_READ_FAILED,
                cause=error,
                context=error_context
            )

        elif isinstance(error, (zipfile.BadZipFile, XmlParseError)):
            return ParseError(
                f"{error_class}: {error_message}",
                additional_context.get('content_type', 'unknown'),
                ErrorType.PROCESSING_DATA_CORRUPTION,
                cause=error,
                context=error_context
            )

        elif isinstance(error, (ValueError, TypeError)):
            return ValidationError(
                f"Data validation error: {error_class}: {error_message}",
                ErrorType.VALIDATION_TYPE_ERROR,
                user_message=GENERIC_READ_FAILURE_MESSAGE,
                cause=error,
                context=error_context
            )

        elif isinstance(error, (ImportError, ModuleNotFoundError)):
            return ConfigurationError(
                f"Module/import error: {error_class}: {error_message}",
                ErrorType.CONFIGURATION_DEPENDENCY_MISSING,
                cause=error,
                context=error_context
            )

        elif isinstance(error, (NameError, SyntaxError, AttributeError)):
            return DocuFormatError(
                f"FATAL BUG: {error_class}: {error_message}",
                ErrorType.PROGRAMMING_ERROR,
                ErrorCategory.FATAL_BUG,
                ErrorSeverity.CRITICAL,
                cause=error,
                context=error_context
            )

        elif isinstance(error, MemoryError):
            return ContentIOError(
                f"{error_class}: {error_message}",
                ErrorType.RESOURCE_MEMORY_EXHAUSTED,
                severity=ErrorSeverity.HIGH,
                cause=error,
                context=error_context
            )

        else:
            return DocuFormatError(
                f"{error_class}: {error_message}",
                ErrorType.SYSTEM_INTERNAL_ERROR,
                ErrorCategory.SYSTEM,
                ErrorSeverity.HIGH,
                cause=error,
                context=error_context
            )

    def _log_error(self, error: DocuFormatError):
        """Log error with appropriate level based on severity"""
        error_dict = error.to_dict()

        if error.severity == ErrorSeverity.CRITICAL:
            self.logger.critical("Critical error occurred", extra={'error_data': error_dict})
        elif error.severity == ErrorSeverity.HIGH:
            self.logger.error("High severity error occurred", extra={'error_data': error_dict})
        elif error.severity == ErrorSeverity.MEDIUM:
            self.logger.warning("Medium severity error occurred", extra={'error_data': error_dict})
        else:
            self.logger.info("Low severity error occurred", extra={'error_data': error_dict})

    def get_error_by_id(self, error_id: str) -> Optional[DocuFormatError]:
        """Retrieve error by ID from registry (thread-safe)"""
        with self._registry_lock:
            return self.error_registry.get(error_id)

    def get_recent_errors(self,
                          count: int = 10,
                          severity_filter: Optional[ErrorSeverity] = None,
                          category_filter: Optional[ErrorCategory] = None) -> List[DocuFormatError]:
        """Get recent errors with optional filtering (thread-safe)"""

        with self._registry_lock:
            errors = list(self.error_registry.values())

        if severity_filter:
            errors = [e for e in errors if e.severity == severity_filter]
        if category_filter:
            errors = [e for e in errors if e.error_category == category_filter]

        errors.sort(key=lambda e: e.timestamp, reverse=True)
        return errors[:count]

    def clear_old_errors(self, max_age_hours: int = 24):
        """Clear errors older than specified hours (thread-safe)"""
        cutoff_time = datetime.now(timezone.utc).timestamp() - (max_age_hours * 3600)

        with self._registry_lock:
            old_error_ids = [
                error_id for error_id, error in self.error_registry.items()
                if error.timestamp.timestamp() < cutoff_time
            ]

            for error_id in old_error_ids:
                del self.error_registry[error_id]
