"""Tests for extension-based format detection and media type inference."""

import pytest

from docuformat.core.models.models import ContentTypeTag
from docuformat.content_extraction.format_detector import detect_type, infer_mime_type, DEFAULT_MIME_TYPE
from docuformat.content_extraction.sources import InMemorySource


class TestDetectType:

    @pytest.mark.parametrize("name, expected", [
        ("report.docx", ContentTypeTag.DOCUMENT),
        ("deck.pptx", ContentTypeTag.PRESENTATION),
        ("sheet.xlsx", ContentTypeTag.SPREADSHEET),
        ("notes.txt", ContentTypeTag.TEXT),
        ("Quarterly.XLSX", ContentTypeTag.SPREADSHEET),
        ("v1.2.final.pptx", ContentTypeTag.PRESENTATION),
    ])
    def test_extension_mapping(self, name, expected):
        assert detect_type(name) == expected

    def test_accepts_source_objects(self):
        assert detect_type(InMemorySource("a.docx", b"")) == ContentTypeTag.DOCUMENT

    def test_unknown_extension_defaults_to_text(self):
        assert detect_type("mystery.bin") == ContentTypeTag.TEXT


class TestInferMimeType:

    def test_declared_type_wins(self):
        assert infer_mime_type("a.txt", "text/markdown") == "text/markdown"

    @pytest.mark.parametrize("name, expected", [
        ("a.txt", "text/plain"),
        ("a.docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document"),
        ("a.pptx", "application/vnd.openxmlformats-officedocument.presentationml.presentation"),
        ("a.xlsx", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"),
    ])
    def test_inferred_from_extension(self, name, expected):
        assert infer_mime_type(name) == expected

    def test_empty_declared_type_falls_back(self):
        assert infer_mime_type("a.txt", "") == "text/plain"

    def test_unknown_extension_is_octet_stream(self):
        assert infer_mime_type("a.bin") == DEFAULT_MIME_TYPE == "application/octet-stream"
