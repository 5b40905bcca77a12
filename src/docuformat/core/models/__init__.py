from .models import (
    ContentTypeTag,
    CellValue,
    BaseContentModel,
    TextContentModel,
    DocumentContentModel,
    PresentationContentModel,
    SpreadsheetContentModel,
    ContentModel,
    content_model_adapter,
    build_content_model,
)

__all__ = [
    "ContentTypeTag",
    "CellValue",
    "BaseContentModel",
    "TextContentModel",
    "DocumentContentModel",
    "PresentationContentModel",
    "SpreadsheetContentModel",
    "ContentModel",
    "content_model_adapter",
    "build_content_model",
]
