# src/docuformat/content_extraction/content_assembler.py
"""
Orchestrates one processing attempt per submitted file:

    idle -> validating -> detecting -> reading -> assembled
                      \\-----------\\----------\\-> failed

Validation and detection are synchronous. Once the format is known, the
matching reader and the raw encoder run as two independent tasks over the
same bytes and the attempt only assembles when both have succeeded.

The assembler owns the single current-model slot. Every submission gets a
monotonically increasing attempt id; an attempt that finishes after a newer
submission (or a reset) never touches the slot.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Tuple
from uuid import uuid4

from ..core.config.configuration_manager import ViewerConfig
from ..core.errors import DocuFormatError, ContentIOError, ErrorHandler, ErrorType, ParseError
from ..core.logging.system_logger import SystemLogger
from ..core.models.models import BaseContentModel, ContentTypeTag, build_content_model
from .content_extractor import ContentExtractor
from .format_detector import detect_type, infer_mime_type
from .raw_encoder import encode_raw
from .sources import SourceFile
from .validator import FileValidator


class AssemblyState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    DETECTING = "detecting"
    READING = "reading"
    ASSEMBLED = "assembled"
    FAILED = "failed"


LOADING_STATES = (AssemblyState.VALIDATING, AssemblyState.DETECTING, AssemblyState.READING)


@dataclass
class AttemptResult:
    """Outcome of one submission as seen by the caller."""
    attempt_id: int
    state: AssemblyState
    model: Optional[BaseContentModel] = None
    error: Optional[DocuFormatError] = None
    is_stale: bool = False

    @property
    def user_message(self) -> Optional[str]:
        return self.error.user_message if self.error else None


class ContentAssembler:
    """Validator -> detector -> (reader || encoder) -> ContentModel"""

    def __init__(self, settings: ViewerConfig, logger: SystemLogger, error_handler: ErrorHandler,
                 validator: Optional[FileValidator] = None,
                 extractor: Optional[ContentExtractor] = None):
        self.settings = settings
        self.logger = logger
        self.error_handler = error_handler
        self.validator = validator or FileValidator(settings.validation)
        self.extractor = extractor or ContentExtractor(settings.extraction, logger)

        self._latest_attempt_id = 0
        self._state = AssemblyState.IDLE
        self._current_model: Optional[BaseContentModel] = None
        self._error_message: Optional[str] = None

    # =============================================================================
    # Session State
    # =============================================================================

    @property
    def state(self) -> AssemblyState:
        return self._state

    @property
    def current_model(self) -> Optional[BaseContentModel]:
        return self._current_model

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    @property
    def is_loading(self) -> bool:
        return self._state in LOADING_STATES

    @property
    def latest_attempt_id(self) -> int:
        return self._latest_attempt_id

    def reset(self):
        """Drops the current document and supersedes any in-flight attempt."""
        self._latest_attempt_id += 1
        self._current_model = None
        self._error_message = None
        self._state = AssemblyState.IDLE
        self.logger.debug("Viewer session reset", latest_attempt_id=self._latest_attempt_id)

    def _begin_attempt(self) -> int:
        self._latest_attempt_id += 1
        self._current_model = None
        self._error_message = None
        return self._latest_attempt_id

    def _is_current(self, attempt_id: int) -> bool:
        return attempt_id == self._latest_attempt_id

    def _transition(self, attempt_id: int, state: AssemblyState, **context):
        if self._is_current(attempt_id):
            self._state = state
        self.logger.log_attempt_transition(attempt_id, state.value, **context)

    # =============================================================================
    # Main Processing Interface
    # =============================================================================

    async def process(self, file: SourceFile) -> BaseContentModel:
        """
        Runs a full attempt for ``file`` and returns its ContentModel.

        Raises ValidationError, ParseError or ContentIOError. A model returned
        after a newer submission is still returned, but is not published to
        the current slot.
        """
        attempt_id = self._begin_attempt()
        return await self._run_attempt(file, attempt_id)

    async def submit(self, file: SourceFile) -> AttemptResult:
        """Like process(), but reports failures in the result instead of raising."""
        attempt_id = self._begin_attempt()
        try:
            model = await self._run_attempt(file, attempt_id)
        except DocuFormatError as e:
            return AttemptResult(attempt_id, AssemblyState.FAILED, error=e,
                                 is_stale=not self._is_current(attempt_id))
        return AttemptResult(attempt_id, AssemblyState.ASSEMBLED, model=model,
                             is_stale=not self._is_current(attempt_id))

    async def _run_attempt(self, file: SourceFile, attempt_id: int) -> BaseContentModel:
        trace_id = f"attempt_{attempt_id}_{uuid4().hex[:8]}"
        try:
            self._transition(attempt_id, AssemblyState.VALIDATING, file_name=file.name,
                             size_bytes=file.size_bytes, trace_id=trace_id)
            validation_error = self.validator.validate(file)
            if validation_error is not None:
                raise validation_error

            self._transition(attempt_id, AssemblyState.DETECTING, trace_id=trace_id)
            content_type = detect_type(file)

            self._transition(attempt_id, AssemblyState.READING,
                             content_type=content_type.value, trace_id=trace_id)
            self.logger.info("Starting content extraction",
                             file_name=file.name, content_type=content_type.value,
                             size_bytes=file.size_bytes, attempt_id=attempt_id, trace_id=trace_id)

            data = await self._read_source(file)
            content, encoded = await self._read_and_encode(data, content_type)

            model = self._build_model(file, content_type, data, content, encoded)

        except Exception as e:
            error = self.error_handler.handle_error(
                e, "content_assembly",
                operation="process",
                file_name=file.name,
                attempt_id=attempt_id
            )
            self.logger.log_docuformat_error(error, trace_id)
            self._fail(attempt_id, error)
            if error is e:
                raise
            raise error from e

        if self._is_current(attempt_id):
            self._current_model = model
            self._transition(attempt_id, AssemblyState.ASSEMBLED, trace_id=trace_id)
            self.logger.info("Content extraction completed",
                             attempt_id=attempt_id, content_type=model.type.value, trace_id=trace_id)
        else:
            self.logger.log_stale_result(attempt_id, self._latest_attempt_id, trace_id=trace_id)
        return model

    def _fail(self, attempt_id: int, error: DocuFormatError):
        if self._is_current(attempt_id):
            self._error_message = error.user_message
            self._transition(attempt_id, AssemblyState.FAILED, error_id=error.error_id)
        else:
            self.logger.log_stale_result(attempt_id, self._latest_attempt_id, error_id=error.error_id)

    def _build_model(self, file: SourceFile, content_type: ContentTypeTag, data: bytes,
                     content: Any, encoded: str) -> BaseContentModel:
        """Wraps the reader output; a shape the variant rejects is a parse failure of that format."""
        try:
            return build_content_model(
                content_type,
                name=file.name,
                mime_type=infer_mime_type(file.name, file.mime_type),
                encoded_bytes=encoded,
                size_bytes=len(data),
                content=content,
            )
        except (ValueError, TypeError) as e:
            raise ParseError(f"Reader output does not fit the {content_type.value} model: {e}",
                             content_type, ErrorType.PROCESSING_LOGIC_ERROR, cause=e) from e

    async def _read_source(self, file: SourceFile) -> bytes:
        try:
            return await file.read_bytes()
        except ContentIOError:
            raise
        except OSError as e:
            raise ContentIOError(f"Failed to read {file.name}: {e}", source=file.name, cause=e) from e

    async def _read_and_encode(self, data: bytes, content_type: ContentTypeTag) -> Tuple[Any, str]:
        """Runs the reader and the raw encoder concurrently; the first failure wins."""
        reader_task = asyncio.create_task(self.extractor.read_content(data, content_type),
                                          name=f"read_{content_type.value}")
        encoder_task = asyncio.create_task(encode_raw(data), name="encode_raw")
        tasks = (reader_task, encoder_task)

        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        for task in tasks:
            if not task.cancelled() and task.exception() is not None:
                raise task.exception()

        return reader_task.result(), encoder_task.result()
