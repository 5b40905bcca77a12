# src/docuformat/cli.py
"""
Command-line entry point: processes one local file and prints its
ContentModel as JSON.

Exit codes:
    0  assembled
    1  rejected by validation
    2  bytes could not be read or parsed
    3  configuration could not be loaded
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Dict, List, Optional
from uuid import uuid4

import yaml

from .core.config.configuration_manager import ConfigurationManager
from .core.errors import ConfigurationError, DocuFormatError, ErrorCategory, ErrorHandler
from .core.logging.system_logger import SystemLogger, configure_logging
from .content_extraction.content_assembler import ContentAssembler
from .content_extraction.sources import LocalFileSource

EXIT_OK = 0
EXIT_VALIDATION = 1
EXIT_READ_FAILURE = 2
EXIT_CONFIGURATION = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="docuformat",
                                     description="Parse a .txt, .docx, .pptx or .xlsx file into a normalized content model.")
    parser.add_argument("file", help="Path of the file to process.")
    parser.add_argument("--config", type=str, default=None,
                        help="YAML configuration file (defaults are used when omitted).")
    parser.add_argument("--set", dest="overrides", action="append", default=[], metavar="KEY=VALUE",
                        help="Override a configuration value, e.g. validation.max_file_size_bytes=1048576. Repeatable.")
    parser.add_argument("--omit-encoded", action="store_true",
                        help="Leave the base64 copy of the file out of the output.")
    parser.add_argument("--indent", type=int, default=2, help="JSON indentation (default: 2).")
    return parser


def parse_overrides(pairs: List[str]) -> Dict[str, Any]:
    """Turns KEY=VALUE strings into a dotted-key dict; values are parsed as YAML scalars."""
    overrides = {}
    for pair in pairs:
        key, sep, raw_value = pair.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ConfigurationError(f"Invalid override '{pair}', expected KEY=VALUE.", config_key=pair)
        try:
            overrides[key] = yaml.safe_load(raw_value)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid value for override '{key}': {e}", config_key=key, cause=e) from e
    return overrides


def exit_code_for(error: DocuFormatError) -> int:
    if error.error_category == ErrorCategory.VALIDATION:
        return EXIT_VALIDATION
    if error.error_category == ErrorCategory.CONFIGURATION:
        return EXIT_CONFIGURATION
    return EXIT_READ_FAILURE


async def run(args: argparse.Namespace) -> int:
    # Configuration (file, overrides, validation)
    try:
        config_manager = ConfigurationManager(args.config)
        partial_context = config_manager.get_partial_ambient_context()
        temp_logger = SystemLogger(logging.getLogger("docuformat.startup"), "TEXT", partial_context)
        error_handler = ErrorHandler(logging.getLogger("docuformat.errors"))
        config_manager.set_core_services(temp_logger, error_handler)
        config_manager.apply_overrides(parse_overrides(args.overrides))
        settings = config_manager.finalize()
    except ConfigurationError as e:
        print(f"Configuration error: {e.message}", file=sys.stderr)
        return EXIT_CONFIGURATION

    configure_logging(settings.logging)
    ambient_context = {
        "component_name": settings.system.component_name,
        "machine_name": settings.system.machine_name,
    }
    logger = SystemLogger(logging.getLogger("docuformat"), log_format=settings.logging.format,
                          ambient_context=ambient_context)
    trace_id = f"cli_{uuid4().hex}"
    logger.log_component_lifecycle("ContentAssembler", "STARTUP", trace_id=trace_id)

    assembler = ContentAssembler(settings, logger, error_handler)

    try:
        source = await LocalFileSource.open(args.file)
    except DocuFormatError as e:
        logger.log_docuformat_error(e, trace_id)
        print(e.user_message, file=sys.stderr)
        return EXIT_READ_FAILURE

    result = await assembler.submit(source)
    if result.error is not None:
        print(result.user_message, file=sys.stderr)
        return exit_code_for(result.error)

    exclude = {"encoded_bytes"} if args.omit_encoded else None
    payload = result.model.model_dump(mode="json", by_alias=True, exclude=exclude)
    print(json.dumps(payload, indent=args.indent, ensure_ascii=False))
    logger.log_component_lifecycle("ContentAssembler", "SHUTDOWN", trace_id=trace_id)
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
