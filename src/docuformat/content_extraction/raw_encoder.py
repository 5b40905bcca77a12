# src/docuformat/content_extraction/raw_encoder.py
"""Text-safe passthrough copy of the original bytes, independent of parsing."""

import asyncio
import base64
import binascii

from ..core.errors import ContentIOError


async def encode_raw(data: bytes) -> str:
    """Base64-encodes ``data`` in the thread pool."""
    loop = asyncio.get_running_loop()
    try:
        encoded = await loop.run_in_executor(None, base64.b64encode, data)
    except (TypeError, MemoryError) as e:
        raise ContentIOError(f"Raw encoding failed: {e}", cause=e) from e
    return encoded.decode("ascii")


def decode_raw(encoded: str) -> bytes:
    """Exact inverse of encode_raw."""
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ContentIOError(f"Encoded bytes are not valid base64: {e}", cause=e) from e
