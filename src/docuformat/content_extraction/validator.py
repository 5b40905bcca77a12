# src/docuformat/content_extraction/validator.py
"""Rejects files that fail the size or extension gate before any parsing."""

from typing import List, Optional

from ..core.config.configuration_manager import ValidationLimitsConfig
from ..core.errors import ValidationError, ErrorType


def _format_megabytes(size_bytes: int) -> str:
    return f"{size_bytes / (1024 * 1024):g}"


def _format_extension_list(extensions: List[str]) -> str:
    if len(extensions) == 1:
        return extensions[0]
    if len(extensions) == 2:
        return f"{extensions[0]} or {extensions[1]}"
    return f"{', '.join(extensions[:-1])}, or {extensions[-1]}"


class FileValidator:
    """Pure check of file metadata against the configured limits."""

    def __init__(self, limits: Optional[ValidationLimitsConfig] = None):
        self.limits = limits or ValidationLimitsConfig()

    def validate(self, file) -> Optional[ValidationError]:
        """
        Returns the first failing rule as a ValidationError, or None.

        Rules are checked in order: size ceiling, then extension whitelist.
        """
        if file.size_bytes > self.limits.max_file_size_bytes:
            return ValidationError(
                f"File size exceeds {_format_megabytes(self.limits.max_file_size_bytes)}MB limit.",
                ErrorType.VALIDATION_SIZE_EXCEEDED,
                file_name=file.name,
                size_bytes=file.size_bytes
            )

        if not self.has_allowed_extension(file.name):
            return ValidationError(
                f"Unsupported file type. Please upload {_format_extension_list(self.limits.allowed_extensions)}.",
                ErrorType.VALIDATION_UNSUPPORTED_TYPE,
                file_name=file.name,
                size_bytes=file.size_bytes
            )

        return None

    def has_allowed_extension(self, file_name: str) -> bool:
        lowered = file_name.lower()
        return any(lowered.endswith(ext) for ext in self.limits.allowed_extensions)


def validate(file, limits: Optional[ValidationLimitsConfig] = None) -> Optional[ValidationError]:
    return FileValidator(limits).validate(file)
