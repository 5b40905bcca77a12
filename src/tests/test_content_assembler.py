"""
Tests for ContentAssembler: end-to-end scenarios, state transitions and
last-submission-wins handling of overlapping attempts.
"""

import asyncio
import random

import pytest

from docuformat.core.config.configuration_manager import ViewerConfig
from docuformat.core.errors import (
    ContentIOError,
    ErrorType,
    ParseError,
    ValidationError,
    GENERIC_READ_FAILURE_MESSAGE,
)
from docuformat.core.models.models import (
    ContentTypeTag,
    PresentationContentModel,
    SpreadsheetContentModel,
    TextContentModel,
)
from docuformat.content_extraction import content_assembler
from docuformat.content_extraction.content_assembler import ContentAssembler, AssemblyState
from docuformat.content_extraction.raw_encoder import decode_raw
from docuformat.content_extraction.sources import InMemorySource

from tests.builders import GatedSource, SizedSource, build_pptx, build_xlsx, slide_xml

MIB = 1024 * 1024


class RecordingExtractor:
    """Stands in for ContentExtractor and records every dispatch."""

    def __init__(self, result):
        self.result = result
        self.calls = []

    async def read_content(self, data, content_type):
        self.calls.append((data, content_type))
        return self.result


def transition_states(mock_logger):
    return [c.args[1] for c in mock_logger.log_attempt_transition.call_args_list]


# =============================================================================
# End-to-end scenarios
# =============================================================================

class TestAssemblyScenarios:

    @pytest.mark.asyncio
    async def test_text_file_assembled(self, assembler):
        data = ("The quick brown fox. " * 250).encode("utf-8")[: 5 * 1024]

        result = await assembler.submit(InMemorySource("notes.txt", data))

        assert result.state == AssemblyState.ASSEMBLED
        assert result.error is None and not result.is_stale
        model = result.model
        assert isinstance(model, TextContentModel)
        assert model.type == ContentTypeTag.TEXT
        assert model.name == "notes.txt"
        assert model.mime_type == "text/plain"
        assert model.size_bytes == 5 * 1024
        assert model.content == data.decode("utf-8")
        assert decode_raw(model.encoded_bytes) == data
        assert assembler.current_model is model
        assert assembler.state == AssemblyState.ASSEMBLED
        assert not assembler.is_loading

    @pytest.mark.asyncio
    async def test_presentation_with_twelve_slides(self, assembler):
        names = [f"ppt/slides/slide{i}.xml" for i in range(1, 13)]
        random.Random(7).shuffle(names)
        slides = {
            name: slide_xml() if name.endswith(("slide4.xml", "slide11.xml"))
            else slide_xml(f"Slide {name[len('ppt/slides/slide'):-len('.xml')]}")
            for name in names
        }
        data = build_pptx(slides)

        model = await assembler.process(InMemorySource("deck.pptx", data))

        assert isinstance(model, PresentationContentModel)
        assert len(model.content) == 12
        for index, text in enumerate(model.content, start=1):
            if index in (4, 11):
                assert text == "(No text content)"
            else:
                assert text == f"Slide {index}"
        assert model.mime_type == "application/vnd.openxmlformats-officedocument.presentationml.presentation"

    @pytest.mark.asyncio
    async def test_oversized_file_rejected_without_reading(self, assembler):
        source = SizedSource("huge.docx", 25 * MIB)

        result = await assembler.submit(source)

        assert result.state == AssemblyState.FAILED
        assert isinstance(result.error, ValidationError)
        assert result.error.error_type == ErrorType.VALIDATION_SIZE_EXCEEDED
        assert result.user_message == "File size exceeds 20MB limit."
        assert assembler.error_message == "File size exceeds 20MB limit."
        assert assembler.current_model is None
        assert assembler.state == AssemblyState.FAILED
        assert source.read_calls == 0

    @pytest.mark.asyncio
    async def test_truncated_spreadsheet(self, assembler):
        data = build_xlsx([["a", "b"], [1, 2], [3, 4]])

        with pytest.raises(ParseError) as exc_info:
            await assembler.process(InMemorySource("broken.xlsx", data[: len(data) // 2]))

        assert exc_info.value.kind == ContentTypeTag.SPREADSHEET
        assert exc_info.value.user_message == GENERIC_READ_FAILURE_MESSAGE
        assert assembler.error_message == GENERIC_READ_FAILURE_MESSAGE
        assert assembler.state == AssemblyState.FAILED

    @pytest.mark.asyncio
    async def test_spreadsheet_assembled(self, assembler):
        data = build_xlsx([["name", "qty"], ["apple", 3], [], ["pear"]])

        model = await assembler.process(InMemorySource("stock.xlsx", data))

        assert isinstance(model, SpreadsheetContentModel)
        assert model.content == [["name", "qty"], ["apple", 3], [], ["pear"]]
        assert decode_raw(model.encoded_bytes) == data

    @pytest.mark.asyncio
    async def test_declared_mime_type_kept(self, assembler):
        model = await assembler.process(InMemorySource("readme.txt", b"hi", mime_type="text/x-readme"))

        assert model.mime_type == "text/x-readme"


# =============================================================================
# Gate and transitions
# =============================================================================

class TestAssemblyPipeline:

    @pytest.mark.asyncio
    async def test_unsupported_extension_never_reaches_reader(self, settings, mock_logger, error_handler):
        extractor = RecordingExtractor("unused")
        assembler = ContentAssembler(settings, mock_logger, error_handler, extractor=extractor)

        result = await assembler.submit(InMemorySource("paper.pdf", b"%PDF-1.7"))

        assert result.error.error_type == ErrorType.VALIDATION_UNSUPPORTED_TYPE
        assert result.user_message == "Unsupported file type. Please upload .txt, .docx, .pptx, or .xlsx."
        assert extractor.calls == []

    @pytest.mark.asyncio
    async def test_transitions_on_success(self, assembler, mock_logger):
        await assembler.process(InMemorySource("a.txt", b"hi"))

        assert transition_states(mock_logger) == ["validating", "detecting", "reading", "assembled"]

    @pytest.mark.asyncio
    async def test_transitions_on_validation_failure(self, assembler, mock_logger):
        await assembler.submit(InMemorySource("a.pdf", b"hi"))

        assert transition_states(mock_logger) == ["validating", "failed"]

    @pytest.mark.asyncio
    async def test_reader_receives_detected_tag(self, settings, mock_logger, error_handler):
        extractor = RecordingExtractor("<p>ok</p>")
        assembler = ContentAssembler(settings, mock_logger, error_handler, extractor=extractor)

        model = await assembler.process(InMemorySource("a.docx", b"docx bytes"))

        assert extractor.calls == [(b"docx bytes", ContentTypeTag.DOCUMENT)]
        assert model.content == "<p>ok</p>"

    @pytest.mark.asyncio
    async def test_wrong_content_shape_reported_as_failure(self, settings, mock_logger, error_handler):
        assembler = ContentAssembler(settings, mock_logger, error_handler,
                                     extractor=RecordingExtractor(["not", "a", "string"]))

        result = await assembler.submit(InMemorySource("a.txt", b"hi"))

        assert result.state == AssemblyState.FAILED
        assert result.user_message == GENERIC_READ_FAILURE_MESSAGE
        assert isinstance(result.error, ParseError)
        assert not isinstance(result.error, ValidationError)
        assert result.error.kind == ContentTypeTag.TEXT
        assert result.error.error_type == ErrorType.PROCESSING_LOGIC_ERROR

    @pytest.mark.asyncio
    async def test_failures_are_registered(self, assembler, error_handler):
        result = await assembler.submit(InMemorySource("a.pdf", b"hi"))

        assert error_handler.get_error_by_id(result.error.error_id) is result.error

    @pytest.mark.asyncio
    async def test_configured_limit_applies(self, mock_logger, error_handler):
        settings = ViewerConfig.model_validate({"validation": {"max_file_size_bytes": 4}})
        assembler = ContentAssembler(settings, mock_logger, error_handler)

        result = await assembler.submit(InMemorySource("a.txt", b"12345"))

        assert result.error.error_type == ErrorType.VALIDATION_SIZE_EXCEEDED


# =============================================================================
# Concurrent reader and encoder
# =============================================================================

class TestReaderEncoderTasks:

    @pytest.mark.asyncio
    async def test_reader_failure_cancels_encoder(self, assembler, monkeypatch):
        cancelled = asyncio.Event()

        async def slow_encode(data):
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return ""

        monkeypatch.setattr(content_assembler, "encode_raw", slow_encode)

        with pytest.raises(ParseError):
            await assembler.process(InMemorySource("bad.pptx", b"not a zip"))

        assert cancelled.is_set()

    @pytest.mark.asyncio
    async def test_encoder_failure_fails_attempt(self, assembler, monkeypatch):
        async def failing_encode(data):
            raise ContentIOError("encoder exploded")

        monkeypatch.setattr(content_assembler, "encode_raw", failing_encode)

        result = await assembler.submit(InMemorySource("a.txt", b"hi"))

        assert isinstance(result.error, ContentIOError)
        assert result.user_message == GENERIC_READ_FAILURE_MESSAGE
        assert assembler.current_model is None

    @pytest.mark.asyncio
    async def test_cancelled_attempt_propagates_cancellation(self, assembler, error_handler):
        source = GatedSource("a.txt", b"a")
        pending = asyncio.create_task(assembler.submit(source))
        await source.started.wait()

        pending.cancel()

        with pytest.raises(asyncio.CancelledError):
            await pending
        assert error_handler.get_recent_errors() == []


# =============================================================================
# Last submission wins
# =============================================================================

class TestOverlappingAttempts:

    @pytest.mark.asyncio
    async def test_stale_success_does_not_replace_newer_model(self, assembler, mock_logger):
        first = GatedSource("first.txt", b"first")
        pending = asyncio.create_task(assembler.submit(first))
        await first.started.wait()
        assert assembler.is_loading

        second = await assembler.submit(InMemorySource("second.txt", b"second"))
        first.release.set()
        first_result = await pending

        assert first_result.is_stale
        assert first_result.model.content == "first"
        assert not second.is_stale
        assert assembler.current_model.content == "second"
        assert assembler.state == AssemblyState.ASSEMBLED
        assert assembler.latest_attempt_id == second.attempt_id == first_result.attempt_id + 1
        mock_logger.log_stale_result.assert_called_once()

    @pytest.mark.asyncio
    async def test_stale_failure_does_not_replace_newer_model(self, assembler):
        first = GatedSource("first.pptx", b"not a zip")
        pending = asyncio.create_task(assembler.submit(first))
        await first.started.wait()

        await assembler.submit(InMemorySource("second.txt", b"second"))
        first.release.set()
        first_result = await pending

        assert first_result.state == AssemblyState.FAILED
        assert first_result.is_stale
        assert assembler.error_message is None
        assert assembler.current_model.content == "second"
        assert assembler.state == AssemblyState.ASSEMBLED

    @pytest.mark.asyncio
    async def test_new_submission_clears_previous_model(self, assembler):
        await assembler.submit(InMemorySource("a.txt", b"a"))

        await assembler.submit(InMemorySource("b.pdf", b"b"))

        assert assembler.current_model is None
        assert assembler.state == AssemblyState.FAILED


class TestReset:

    @pytest.mark.asyncio
    async def test_reset_clears_slot(self, assembler):
        await assembler.submit(InMemorySource("a.txt", b"a"))

        assembler.reset()

        assert assembler.current_model is None
        assert assembler.error_message is None
        assert assembler.state == AssemblyState.IDLE

    @pytest.mark.asyncio
    async def test_reset_supersedes_in_flight_attempt(self, assembler):
        source = GatedSource("a.txt", b"a")
        pending = asyncio.create_task(assembler.submit(source))
        await source.started.wait()

        assembler.reset()
        source.release.set()
        result = await pending

        assert result.is_stale
        assert assembler.current_model is None
        assert assembler.state == AssemblyState.IDLE

    def test_initial_state(self, assembler):
        assert assembler.state == AssemblyState.IDLE
        assert assembler.current_model is None
        assert assembler.latest_attempt_id == 0
        assert not assembler.is_loading
