# src/docuformat/core/config/configuration_manager.py
"""
Provides a type-safe configuration management system.

The base configuration is read from a YAML file, optional dotted-key
overrides are merged on top of it, and the result is validated into the
ViewerConfig pydantic model.
"""

import socket
from typing import List, Dict, Any, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, ValidationError as PydanticValidationError

from ..errors import ConfigurationError, ErrorType

from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from ..logging.system_logger import SystemLogger
    from ..errors import ErrorHandler

# =================================================================
# Pydantic Models for Type-Safe Viewer Configuration
# =================================================================

class SystemIdentityConfig(BaseModel):
    component_name: str = Field("DocuFormat")
    machine_name: str = Field(default_factory=socket.gethostname)


class FileLoggingConfig(BaseModel):
    enabled: bool = Field(False, description="Master switch to enable logging to a file.")
    path: str = Field("logs/docuformat.log", description="Path to the log file.")
    level: str = Field("DEBUG", description="Log level for the file (e.g., DEBUG, INFO).")
    format: str = Field("JSON", description="Format for the file log (JSON is best for analysis).")


class LoggingConfig(BaseModel):
    format: str = Field("TEXT")
    level: str = Field("INFO")
    file: Optional[FileLoggingConfig] = None


class ValidationLimitsConfig(BaseModel):
    """Gate applied to every submitted file before any parsing."""
    max_file_size_bytes: int = Field(20 * 1024 * 1024, ge=0, description="Files strictly larger than this are rejected.")
    allowed_extensions: List[str] = Field(default_factory=lambda: [".txt", ".docx", ".pptx", ".xlsx"])

    @field_validator("allowed_extensions")
    @classmethod
    def _normalize_extensions(cls, value: List[str]) -> List[str]:
        normalized = []
        for ext in value:
            ext = ext.strip().lower()
            if not ext:
                continue
            normalized.append(ext if ext.startswith(".") else f".{ext}")
        if not normalized:
            raise ValueError("allowed_extensions must name at least one extension")
        return normalized


class ExtractionConfig(BaseModel):
    text_encoding: str = Field("utf-8", description="Encoding used to decode plain text files.")
    text_decode_errors: str = Field("replace", description="Codec error policy for undecodable bytes.")
    empty_slide_placeholder: str = Field("(No text content)")
    no_slides_placeholder: str = Field("No slides found")


class ViewerConfig(BaseModel):
    """The root model for the entire viewer configuration."""
    system: SystemIdentityConfig = Field(default_factory=SystemIdentityConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    validation: ValidationLimitsConfig = Field(default_factory=ValidationLimitsConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)

# =================================================================
# The Configuration Manager
# =================================================================

class ConfigurationManager:
    """Manages application configuration using a three-phase initialization."""

    def __init__(self, default_config_path: Optional[str] = None):
        """Phase 1: Initialize with no dependencies to load the base file."""
        self.logger: Optional["SystemLogger"] = None
        self.error_handler: Optional["ErrorHandler"] = None
        self._raw_config: Dict[str, Any] = {}
        self._change_report: List[str] = []
        self.settings: Optional[ViewerConfig] = None

        if default_config_path is None:
            return

        try:
            with open(default_config_path, 'r') as f:
                loaded = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Failed to load base configuration file '{default_config_path}': {e}",
                ErrorType.CONFIGURATION_MISSING if isinstance(e, FileNotFoundError) else ErrorType.CONFIGURATION_INVALID,
                cause=e
            ) from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigurationError(
                f"Root of configuration file '{default_config_path}' is not a mapping.",
                ErrorType.CONFIGURATION_INVALID
            )
        self._raw_config = loaded

    def set_core_services(self, system_logger: "SystemLogger", error_handler: "ErrorHandler"):
        """Phase 2: Inject core services once they are initialized."""
        self.logger = system_logger
        self.error_handler = error_handler
        self.logger.debug("Core services (Logger, ErrorHandler) have been injected into ConfigurationManager.")

    def _ensure_services(self):
        """Internal check to ensure core services have been injected."""
        if not self.logger or not self.error_handler:
            raise RuntimeError("ConfigurationManager cannot perform this action until set_core_services() is called.")

    def get_partial_ambient_context(self) -> Dict[str, Any]:
        """Gets essential context from the raw config for logger initialization."""
        system_section = self._raw_config.get("system", {}) or {}
        return {
            "component_name": system_section.get("component_name", "DocuFormat"),
            "machine_name": system_section.get("machine_name", socket.gethostname()),
        }

    def apply_overrides(self, overrides: Dict[str, Any]):
        """Merges dotted-key overrides (e.g. 'validation.max_file_size_bytes') into the raw config."""
        for parameter_name, new_value in overrides.items():
            keys = parameter_name.split('.')
            d = self._raw_config
            for key in keys[:-1]:
                child = d.setdefault(key, {})
                if not isinstance(child, dict):
                    raise ConfigurationError(
                        f"Cannot override '{parameter_name}': '{key}' is not a section.",
                        config_key=parameter_name
                    )
                d = child

            target_key = keys[-1]
            old_value = d.get(target_key)

            if old_value != new_value:
                self._change_report.append(f"Parameter '{parameter_name}': '{old_value}' -> '{new_value}'")
                d[target_key] = new_value

    def finalize(self, context: Optional[Dict[str, Any]] = None) -> ViewerConfig:
        """Phase 3: Finalize and validate the configuration."""
        self._ensure_services()
        context = context or {}
        try:
            self.settings = ViewerConfig.model_validate(self._raw_config)
        except PydanticValidationError as e:
            error = ConfigurationError(f"Configuration validation failed: {e}", cause=e)
            self.error_handler.handle_error(error, context="finalize_config_validation", **context)
            raise error from e

        if self._change_report:
            self.logger.info("Configuration overrides applied:", **context)
            for change in self._change_report:
                self.logger.info(f"  - {change}", **context)

        self.logger.log_config_load("succeeded", **context)
        return self.settings

    @property
    def change_report(self) -> List[str]:
        return list(self._change_report)
