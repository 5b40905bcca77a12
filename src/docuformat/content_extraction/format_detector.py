# src/docuformat/content_extraction/format_detector.py
"""Maps a filename's extension to a content-type tag and a media type."""

from typing import Optional, Union

from ..core.models.models import ContentTypeTag

EXTENSION_TO_TYPE = {
    '.docx': ContentTypeTag.DOCUMENT,
    '.pptx': ContentTypeTag.PRESENTATION,
    '.xlsx': ContentTypeTag.SPREADSHEET,
}

EXTENSION_TO_MIME = {
    '.txt': 'text/plain',
    '.docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    '.pptx': 'application/vnd.openxmlformats-officedocument.presentationml.presentation',
    '.xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
}

DEFAULT_MIME_TYPE = 'application/octet-stream'


def _file_name(file: Union[str, object]) -> str:
    return file if isinstance(file, str) else file.name


def _match_extension(file_name: str, table: dict) -> Optional[str]:
    lowered = file_name.lower()
    for ext in table:
        if lowered.endswith(ext):
            return ext
    return None


def detect_type(file: Union[str, object]) -> ContentTypeTag:
    """
    Classifies by extension alone. Anything unrecognized is TEXT; callers
    must run the validator first, which is the only gate on extensions.
    """
    ext = _match_extension(_file_name(file), EXTENSION_TO_TYPE)
    return EXTENSION_TO_TYPE[ext] if ext else ContentTypeTag.TEXT


def infer_mime_type(file_name: str, declared: Optional[str] = None) -> str:
    """Prefers the declared media type and falls back to the extension."""
    if declared:
        return declared
    ext = _match_extension(file_name, EXTENSION_TO_MIME)
    return EXTENSION_TO_MIME[ext] if ext else DEFAULT_MIME_TYPE
