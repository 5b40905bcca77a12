from .configuration_manager import (
    ConfigurationManager,
    ViewerConfig,
    SystemIdentityConfig,
    LoggingConfig,
    FileLoggingConfig,
    ValidationLimitsConfig,
    ExtractionConfig,
)

__all__ = [
    "ConfigurationManager",
    "ViewerConfig",
    "SystemIdentityConfig",
    "LoggingConfig",
    "FileLoggingConfig",
    "ValidationLimitsConfig",
    "ExtractionConfig",
]
