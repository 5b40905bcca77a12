"""
conftest.py - shared fixtures for the document pipeline tests
"""

import logging
from unittest.mock import Mock

import pytest

from docuformat.core.config.configuration_manager import ViewerConfig, ExtractionConfig
from docuformat.core.errors import ErrorHandler
from docuformat.core.logging.system_logger import SystemLogger
from docuformat.content_extraction.content_assembler import ContentAssembler
from docuformat.content_extraction.content_extractor import ContentExtractor


@pytest.fixture
def mock_logger():
    return Mock(spec=SystemLogger)


@pytest.fixture
def error_handler():
    return ErrorHandler(logging.getLogger("docuformat.tests"))


@pytest.fixture
def settings():
    return ViewerConfig()


@pytest.fixture
def extraction_config():
    return ExtractionConfig()


@pytest.fixture
def extractor(extraction_config, mock_logger):
    return ContentExtractor(extraction_config, mock_logger)


@pytest.fixture
def assembler(settings, mock_logger, error_handler):
    return ContentAssembler(settings, mock_logger, error_handler)


@pytest.fixture
def restore_root_logging():
    """configure_logging() replaces root handlers; put the originals back afterwards."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
