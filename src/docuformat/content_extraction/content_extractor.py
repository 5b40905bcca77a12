# src/docuformat/content_extraction/content_extractor.py
"""
Content extraction for the four supported document formats.

Each reader turns the raw byte stream of one format into that format's
normalized content shape:

- text          -> str
- document      -> str (HTML fragment)
- presentation  -> List[str], one entry per slide, never empty
- spreadsheet   -> List[List[cell]], row-major, rows may be ragged

Parsing is CPU-bound and runs in the default thread pool so the event loop
stays free for the concurrent raw encoding of the same bytes. Any failure
inside a reader surfaces as a ParseError tagged with the reader's format.
"""

import asyncio
import html
import io
import re
import zipfile
from typing import Any, Awaitable, Callable, Dict, List, Optional
from xml.etree import ElementTree as ET

from ..core.config.configuration_manager import ExtractionConfig
from ..core.errors import ParseError, ErrorType
from ..core.logging.system_logger import SystemLogger
from ..core.models.models import ContentTypeTag, CellValue

SLIDE_ENTRY_PATTERN = re.compile(r"^ppt/slides/slide(\d+)\.xml$")
SLIDE_INDEX_PATTERN = re.compile(r"slide(\d+)\.xml")
DRAWINGML_NS = "http://schemas.openxmlformats.org/drawingml/2006/main"
TEXT_RUN_TAG = f"{{{DRAWINGML_NS}}}t"

HEADING_STYLE_PATTERN = re.compile(r"^heading\s*(\d*)$", re.IGNORECASE)


class ContentExtractor:
    """Format-specific readers plus the tag -> reader registry"""

    def __init__(self, extraction_config: ExtractionConfig, logger: SystemLogger):
        self.extraction_config = extraction_config
        self.logger = logger
        self.reader_registry = self._build_reader_registry()

    # =============================================================================
    # Main Reading Interface
    # =============================================================================

    async def read_content(self, data: bytes, content_type: ContentTypeTag) -> Any:
        """Dispatches ``data`` to the reader registered for ``content_type``."""
        try:
            reader = self.reader_registry.get(ContentTypeTag(content_type))
        except ValueError:
            reader = None
        if reader is None:
            raise ParseError(f"No reader registered for content type '{content_type}'",
                             content_type, ErrorType.PROCESSING_LOGIC_ERROR)
        return await reader(data)

    async def _run_blocking(self, content_type: ContentTypeTag, description: str,
                            func: Callable[[bytes], Any], data: bytes) -> Any:
        """Runs a blocking reader in the thread pool and normalizes its failures."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, func, data)
        except ParseError:
            raise
        except Exception as e:
            self.logger.warning(f"{description} extraction failed",
                                content_type=content_type.value, error=str(e),
                                error_class=type(e).__name__)
            raise ParseError(f"{description} extraction failed: {e}", content_type, cause=e) from e

    # =============================================================================
    # Text Processing
    # =============================================================================

    async def read_text(self, data: bytes) -> str:
        """Decode a plain text file"""
        return await self._run_blocking(ContentTypeTag.TEXT, "Text file",
                                        self._blocking_text_decode, data)

    def _blocking_text_decode(self, data: bytes) -> str:
        encoding = self.extraction_config.text_encoding
        # A leading BOM is dropped, as a browser text read does.
        if encoding.lower().replace("-", "") == "utf8":
            encoding = "utf-8-sig"
        return data.decode(encoding, errors=self.extraction_config.text_decode_errors)

    # =============================================================================
    # Excel Processing
    # =============================================================================

    async def read_spreadsheet(self, data: bytes) -> List[List[CellValue]]:
        """First worksheet as a row-major matrix"""
        return await self._run_blocking(ContentTypeTag.SPREADSHEET, "Excel workbook",
                                        self._blocking_xlsx_extraction, data)

    def _blocking_xlsx_extraction(self, data: bytes) -> List[List[CellValue]]:
        """Synchronous workbook extraction to run in thread pool"""
        from openpyxl import load_workbook

        workbook = load_workbook(io.BytesIO(data), data_only=True)
        try:
            if not workbook.sheetnames:
                return []

            sheet = workbook[workbook.sheetnames[0]]
            # Chartsheets carry no cells.
            if not hasattr(sheet, "iter_rows"):
                return []

            rows: List[List[CellValue]] = []
            for values in sheet.iter_rows(min_row=sheet.min_row, min_col=sheet.min_column,
                                          values_only=True):
                rows.append(self._convert_excel_row(values))

            # Blank rows inside the used range stay as []; a sheet without values is empty.
            if not any(rows):
                rows = []

            self.logger.debug("Excel sheet converted",
                              sheet_name=sheet.title, row_count=len(rows),
                              sheet_count=len(workbook.sheetnames))
            return rows
        finally:
            workbook.close()

    def _convert_excel_row(self, values) -> List[CellValue]:
        """Empty cells become "", trailing empty cells are dropped"""
        row = ["" if value is None else value for value in values]
        while row and row[-1] == "":
            row.pop()
        return row

    # =============================================================================
    # PowerPoint Processing
    # =============================================================================

    async def read_presentation(self, data: bytes) -> List[str]:
        """Slide texts in numeric slide order; never empty"""
        return await self._run_blocking(ContentTypeTag.PRESENTATION, "PowerPoint presentation",
                                        self._blocking_pptx_extraction, data)

    def _blocking_pptx_extraction(self, data: bytes) -> List[str]:
        """Synchronous presentation extraction to run in thread pool"""
        slides = []

        with zipfile.ZipFile(io.BytesIO(data), 'r') as pptx_zip:
            slide_files = [name for name in pptx_zip.namelist() if SLIDE_ENTRY_PATTERN.match(name)]
            # Numeric, not lexical: slide10 must follow slide2.
            slide_files.sort(key=self._slide_index)

            for slide_file in slide_files:
                try:
                    root = ET.fromstring(pptx_zip.read(slide_file))
                except ET.ParseError as e:
                    raise ParseError(f"Malformed slide XML in {slide_file}: {e}",
                                     ContentTypeTag.PRESENTATION,
                                     ErrorType.PROCESSING_DATA_CORRUPTION, cause=e) from e

                fragments = [node.text or "" for node in root.iter(TEXT_RUN_TAG)]
                slide_text = " ".join(fragments).strip()
                slides.append(slide_text or self.extraction_config.empty_slide_placeholder)

        if not slides:
            self.logger.info("Presentation contains no slide entries")
            return [self.extraction_config.no_slides_placeholder]

        return slides

    @staticmethod
    def _slide_index(entry_name: str) -> int:
        match = SLIDE_INDEX_PATTERN.search(entry_name)
        return int(match.group(1)) if match else 0

    # =============================================================================
    # Word Processing
    # =============================================================================

    async def read_document(self, data: bytes) -> str:
        """Word document converted to an HTML fragment"""
        return await self._run_blocking(ContentTypeTag.DOCUMENT, "Word document",
                                        self._blocking_docx_conversion, data)

    def _blocking_docx_conversion(self, data: bytes) -> str:
        """Synchronous Word document conversion to run in thread pool"""
        from docx import Document
        from docx.oxml.ns import qn
        from docx.table import Table
        from docx.text.paragraph import Paragraph

        doc = Document(io.BytesIO(data))
        parts: List[str] = []
        list_stack: List[str] = []

        for child in doc.element.body.iterchildren():
            if child.tag == qn('w:p'):
                paragraph = Paragraph(child, doc)
                inner_html = self._convert_docx_runs(paragraph)
                if not inner_html.strip():
                    continue

                list_kind = self._docx_list_kind(paragraph)
                if list_kind:
                    self._open_list_item(parts, list_stack, list_kind, self._docx_list_level(paragraph))
                    parts.append(inner_html)
                    continue

                self._close_lists(parts, list_stack, 0)
                tag = self._docx_block_tag(paragraph)
                parts.append(f"<{tag}>{inner_html}</{tag}>")

            elif child.tag == qn('w:tbl'):
                self._close_lists(parts, list_stack, 0)
                parts.append(self._convert_docx_table(Table(child, doc)))

        self._close_lists(parts, list_stack, 0)
        return "".join(parts)

    def _docx_block_tag(self, paragraph) -> str:
        style_name = paragraph.style.name if paragraph.style is not None else ""
        if style_name == "Title":
            return "h1"
        match = HEADING_STYLE_PATTERN.match(style_name or "")
        if match:
            level = int(match.group(1) or 1)
            return f"h{min(max(level, 1), 6)}"
        return "p"

    def _docx_list_kind(self, paragraph) -> Optional[str]:
        """'ul' / 'ol' for list paragraphs, None otherwise"""
        style_name = (paragraph.style.name if paragraph.style is not None else "") or ""
        if style_name.startswith("List Bullet"):
            return "ul"
        if style_name.startswith("List Number"):
            return "ol"

        num_pr = self._docx_num_pr(paragraph)
        if num_pr is None or num_pr.numId is None:
            return None
        num_format = self._docx_numbering_format(paragraph, num_pr.numId.val, self._docx_list_level(paragraph))
        return "ul" if num_format in (None, "bullet") else "ol"

    @staticmethod
    def _docx_num_pr(paragraph):
        p_pr = paragraph._p.pPr
        return p_pr.numPr if p_pr is not None else None

    def _docx_list_level(self, paragraph) -> int:
        num_pr = self._docx_num_pr(paragraph)
        if num_pr is not None and num_pr.ilvl is not None:
            return int(num_pr.ilvl.val)
        return 0

    def _docx_numbering_format(self, paragraph, num_id: int, level: int) -> Optional[str]:
        """Looks up w:numFmt for (numId, ilvl) in the numbering part"""
        try:
            numbering = paragraph.part.numbering_part.element
        except (KeyError, NotImplementedError):
            return None

        abstract_ids = numbering.xpath(f'./w:num[@w:numId="{num_id}"]/w:abstractNumId/@w:val')
        if not abstract_ids:
            return None
        formats = numbering.xpath(
            f'./w:abstractNum[@w:abstractNumId="{abstract_ids[0]}"]'
            f'/w:lvl[@w:ilvl="{level}"]/w:numFmt/@w:val'
        )
        return formats[0] if formats else None

    @staticmethod
    def _open_list_item(parts: List[str], list_stack: List[str], kind: str, level: int):
        depth = level + 1
        ContentExtractor._close_lists(parts, list_stack, depth)

        if len(list_stack) == depth:
            if list_stack[-1] == kind:
                parts.append("</li><li>")
                return
            parts.append(f"</li></{list_stack.pop()}>")

        while len(list_stack) < depth:
            parts.append(f"<{kind}><li>")
            list_stack.append(kind)

    @staticmethod
    def _close_lists(parts: List[str], list_stack: List[str], depth: int):
        while len(list_stack) > depth:
            parts.append(f"</li></{list_stack.pop()}>")

    def _convert_docx_runs(self, paragraph) -> str:
        """Inline content of a paragraph with user text escaped"""
        from docx.text.hyperlink import Hyperlink

        fragments = []
        for item in paragraph.iter_inner_content():
            if isinstance(item, Hyperlink):
                inner = "".join(self._convert_docx_run(run) for run in item.runs)
                if item.address:
                    fragments.append(f'<a href="{html.escape(item.address, quote=True)}">{inner}</a>')
                else:
                    fragments.append(inner)
            else:
                fragments.append(self._convert_docx_run(item))
        return "".join(fragments)

    @staticmethod
    def _convert_docx_run(run) -> str:
        text = run.text
        if not text:
            return ""
        markup = html.escape(text).replace("\n", "<br />")
        if run.underline:
            markup = f"<u>{markup}</u>"
        if run.italic:
            markup = f"<em>{markup}</em>"
        if run.bold:
            markup = f"<strong>{markup}</strong>"
        return markup

    def _convert_docx_table(self, table) -> str:
        """Convert a Word table to an HTML table"""
        rows_html = []
        for row in table.rows:
            cells_html = []
            seen_cells = set()
            for cell in row.cells:
                # Merged cells are repeated by python-docx.
                if id(cell._tc) in seen_cells:
                    continue
                seen_cells.add(id(cell._tc))
                paragraphs = [self._convert_docx_runs(p) for p in cell.paragraphs]
                cell_html = "".join(f"<p>{p}</p>" for p in paragraphs if p.strip())
                cells_html.append(f"<td>{cell_html}</td>")
            rows_html.append(f"<tr>{''.join(cells_html)}</tr>")
        return f"<table>{''.join(rows_html)}</table>"

    # =============================================================================
    # Reader Registry
    # =============================================================================

    def _build_reader_registry(self) -> Dict[ContentTypeTag, Callable[[bytes], Awaitable[Any]]]:
        """Build registry of readers, one per content-type tag"""
        registry = {
            ContentTypeTag.TEXT: self.read_text,
            ContentTypeTag.DOCUMENT: self.read_document,
            ContentTypeTag.PRESENTATION: self.read_presentation,
            ContentTypeTag.SPREADSHEET: self.read_spreadsheet,
        }

        self.logger.debug("Reader registry built",
                          available_readers=[tag.value for tag in registry])
        return registry
