# src/docuformat/core/models/models.py
"""
Normalized content models produced by the document pipeline.

A ContentModel is a discriminated union keyed on ``type``: each variant
fixes the concrete shape of ``content`` so a text model can never carry
slides and a spreadsheet model can never carry an HTML string.
"""

from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Annotated, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class ContentTypeTag(str, Enum):
    """Closed set of content shapes the viewer can render."""
    TEXT = "text"
    DOCUMENT = "document"
    PRESENTATION = "presentation"
    SPREADSHEET = "spreadsheet"


# Empty cells are normalized to "" before a row is built, never None.
CellValue = Union[bool, int, float, datetime, date, time, timedelta, str]
SpreadsheetRow = List[CellValue]


class BaseContentModel(BaseModel):
    """Fields shared by every content variant."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(..., description="Original filename.")
    mime_type: str = Field(..., alias="mimeType", description="Declared or inferred media type.")
    encoded_bytes: str = Field(..., alias="encodedBytes", description="Base64 of the complete original byte stream.")
    size_bytes: int = Field(..., alias="sizeBytes", ge=0)


class TextContentModel(BaseContentModel):
    type: Literal[ContentTypeTag.TEXT] = ContentTypeTag.TEXT
    content: str


class DocumentContentModel(BaseContentModel):
    type: Literal[ContentTypeTag.DOCUMENT] = ContentTypeTag.DOCUMENT
    content: str = Field(..., description="HTML fragment produced by the document converter.")


class PresentationContentModel(BaseContentModel):
    type: Literal[ContentTypeTag.PRESENTATION] = ContentTypeTag.PRESENTATION
    content: List[str] = Field(..., min_length=1, description="One entry per slide, in slide order.")


class SpreadsheetContentModel(BaseContentModel):
    type: Literal[ContentTypeTag.SPREADSHEET] = ContentTypeTag.SPREADSHEET
    content: List[SpreadsheetRow] = Field(..., description="Row-major cells of the first sheet; rows may be ragged.")


ContentModel = Annotated[
    Union[TextContentModel, DocumentContentModel, PresentationContentModel, SpreadsheetContentModel],
    Field(discriminator="type")
]

CONTENT_MODEL_BY_TYPE = {
    ContentTypeTag.TEXT: TextContentModel,
    ContentTypeTag.DOCUMENT: DocumentContentModel,
    ContentTypeTag.PRESENTATION: PresentationContentModel,
    ContentTypeTag.SPREADSHEET: SpreadsheetContentModel,
}

content_model_adapter = TypeAdapter(ContentModel)


def build_content_model(content_type: ContentTypeTag, **fields) -> BaseContentModel:
    """Instantiates the variant matching ``content_type``."""
    content_type = ContentTypeTag(content_type)
    return CONTENT_MODEL_BY_TYPE[content_type](type=content_type, **fields)
