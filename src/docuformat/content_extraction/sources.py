# src/docuformat/content_extraction/sources.py
"""
Byte sources handed to the pipeline.

A source exposes the metadata the validator needs (name and size) without
touching the bytes; the bytes themselves are only read once validation has
passed.
"""

import os
from abc import ABC, abstractmethod
from typing import Optional

import aiofiles
import aiofiles.os

from ..core.errors import ContentIOError, ErrorType


class SourceFile(ABC):
    """A locally selected file: metadata plus an awaitable byte read."""

    name: str
    size_bytes: int
    mime_type: Optional[str]

    @abstractmethod
    async def read_bytes(self) -> bytes:
        """Returns the complete original byte stream."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, size_bytes={self.size_bytes})"


class InMemorySource(SourceFile):
    """Bytes already held in memory, e.g. received from an upload widget."""

    def __init__(self, name: str, data: bytes, mime_type: Optional[str] = None):
        self.name = name
        self.size_bytes = len(data)
        self.mime_type = mime_type
        self._data = bytes(data)

    async def read_bytes(self) -> bytes:
        return self._data


class LocalFileSource(SourceFile):
    """A file on the local filesystem, read asynchronously."""

    def __init__(self, path: str, size_bytes: int, mime_type: Optional[str] = None):
        self.path = path
        self.name = os.path.basename(path)
        self.size_bytes = size_bytes
        self.mime_type = mime_type

    @classmethod
    async def open(cls, path: str, mime_type: Optional[str] = None) -> "LocalFileSource":
        """Stats ``path`` and returns a source for it without reading the content."""
        try:
            stats = await aiofiles.os.stat(path)
        except FileNotFoundError as e:
            raise ContentIOError(f"File not found: {path}", ErrorType.RESOURCE_FILE_NOT_FOUND,
                                 source=path, cause=e) from e
        except OSError as e:
            raise ContentIOError(f"Cannot stat file {path}: {e}", source=path, cause=e) from e
        return cls(path, stats.st_size, mime_type)

    async def read_bytes(self) -> bytes:
        try:
            async with aiofiles.open(self.path, 'rb') as f:
                return await f.read()
        except OSError as e:
            raise ContentIOError(f"Failed to read {self.path}: {e}", source=self.path, cause=e) from e
