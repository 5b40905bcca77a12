from .sources import SourceFile, InMemorySource, LocalFileSource
from .validator import FileValidator, validate
from .format_detector import detect_type, infer_mime_type
from .content_extractor import ContentExtractor
from .raw_encoder import encode_raw, decode_raw
from .content_assembler import ContentAssembler, AssemblyState, AttemptResult

__all__ = [
    "SourceFile",
    "InMemorySource",
    "LocalFileSource",
    "FileValidator",
    "validate",
    "detect_type",
    "infer_mime_type",
    "ContentExtractor",
    "encode_raw",
    "decode_raw",
    "ContentAssembler",
    "AssemblyState",
    "AttemptResult",
]
