"""
DOCX extractor.

Primary path uses python-docx. When the package cannot be opened, falls
back to scraping <w:t> runs from word/document.xml, then to byte-level
salvage. Fallback results are marked incomplete.
"""

import io
import logging
import re
import zipfile
from typing import List, Optional, Tuple

from docx import Document
from docx.oxml.table import CT_Tbl
from docx.oxml.text.paragraph import CT_P
from docx.table import Table
from docx.text.paragraph import Paragraph

from ..errors import NoTextExtractedError
from ..models import DocumentStructure, ExtractedText, Section
from . import BaseExtractor, count_words
from .language import detect_language
from .salvage import MIN_RUN_LENGTH, salvage_text

logger = logging.getLogger(__name__)

ZIP_MAGIC = b"PK\x03\x04"
DOCUMENT_XML = "word/document.xml"

_XML_PARAGRAPH_RE = re.compile(r"<w:p[ >].*?</w:p>", re.DOTALL)
_XML_TEXT_RE = re.compile(r"<w:t(?:\s[^>]*)?>([^<]*)</w:t>")
_XML_ENTITIES = (("&lt;", "<"), ("&gt;", ">"), ("&quot;", '"'), ("&apos;", "'"), ("&amp;", "&"))
_ZIP_NOISE_RE = re.compile(r"\.xml|\.rels|_rels/|word/|docProps/|Content_Types")


def heading_level(style_name: str) -> Optional[int]:
    """'Heading 2' -> 2, 'Title' -> 1, anything else -> None."""
    if style_name == "Title":
        return 1
    if style_name.startswith("Heading"):
        level = style_name.replace("Heading", "").strip()
        if level.isdigit():
            return min(max(int(level), 1), 6)
    return None


def _unescape_xml(text: str) -> str:
    for entity, char in _XML_ENTITIES:
        text = text.replace(entity, char)
    return text


def scrape_document_xml(buffer: bytes) -> List[str]:
    """Paragraph texts from the raw WordprocessingML, without python-docx."""
    with zipfile.ZipFile(io.BytesIO(buffer)) as archive:
        xml = archive.read(DOCUMENT_XML).decode("utf-8", errors="replace")
    paragraphs = []
    for paragraph in _XML_PARAGRAPH_RE.findall(xml):
        text = "".join(_XML_TEXT_RE.findall(paragraph)).strip()
        if text:
            paragraphs.append(_unescape_xml(text))
    return paragraphs


class DocxExtractor(BaseExtractor):
    """Word (.docx) extractor."""

    MIME_TYPES = frozenset({
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    })
    EXTENSIONS = frozenset({".docx"})

    BASE_PROCESSING_MS = 100.0
    PROCESSING_MS_PER_KB = 5.0

    def __init__(self, salvage_min_length: int = MIN_RUN_LENGTH):
        self.salvage_min_length = salvage_min_length

    @property
    def name(self) -> str:
        """Return the name of this extractor."""
        return "docx"

    def _validate(self, buffer: bytes, file_name: str) -> bool:
        """Check the ZIP local-file-header signature."""
        return buffer[:4] == ZIP_MAGIC

    def _extract(self, buffer, file_name, options, started) -> ExtractedText:
        errors: List[str] = []

        if buffer[:4] == ZIP_MAGIC:
            try:
                return self._extract_with_python_docx(buffer, options, started)
            except Exception as e:
                logger.warning("python-docx could not read %s: %s", file_name, e)
                errors.append(f"DOCX parsing failed: {e}")

            try:
                paragraphs = scrape_document_xml(buffer)
                if paragraphs:
                    return self._fallback_result(
                        paragraphs, buffer, options, started, "docx-xml", errors,
                        ["Extracted raw document text; formatting and tables were not interpreted"],
                    )
            except Exception as e:
                logger.debug("Raw document.xml scrape failed for %s: %s", file_name, e)
                errors.append(f"document.xml unreadable: {e}")
        else:
            errors.append("Missing ZIP signature; not a valid DOCX package")

        exclude = _ZIP_NOISE_RE if buffer[:4] == ZIP_MAGIC else None
        text = salvage_text(buffer, self.salvage_min_length, exclude)
        if not text:
            raise NoTextExtractedError(f"Unable to extract any text from {file_name}")

        logger.info("Salvaged text from %s at byte level", file_name)
        return self._fallback_result(
            text.split("\n\n"), buffer, options, started, "docx-salvage", errors,
            ["Byte-level salvage used; content may contain noise"],
        )

    def _fallback_result(self, paragraphs, buffer, options, started, method, errors, warnings) -> ExtractedText:
        content = "\n\n".join(paragraphs)
        return self._build_result(
            content=content,
            file_type="docx",
            buffer=buffer,
            options=options,
            started=started,
            method=method,
            language=detect_language(content),
            is_complete=False,
            errors=errors,
            warnings=warnings,
            word_count=count_words(content),
            paragraph_count=len(paragraphs),
        )

    def _iter_blocks(self, document) -> List[object]:
        """Paragraphs and tables in body order."""
        blocks = []
        for element in document.element.body:
            if isinstance(element, CT_P):
                blocks.append(Paragraph(element, document))
            elif isinstance(element, CT_Tbl):
                blocks.append(Table(element, document))
        return blocks

    def _table_text(self, table: Table, preserve_formatting: bool) -> str:
        separator = "\t" if preserve_formatting else " "
        rows = []
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            if any(cells):
                rows.append(separator.join(cells))
        return "\n".join(rows)

    def _extract_with_python_docx(self, buffer, options, started) -> ExtractedText:
        document = Document(io.BytesIO(buffer))

        parts: List[str] = []
        headings: List[Tuple[int, str, int]] = []  # (part index, title, level)
        paragraph_count = 0
        has_lists = False
        table_count = 0

        for block in self._iter_blocks(document):
            if isinstance(block, Table):
                text = self._table_text(block, options.preserve_formatting)
                table_count += 1
                if text:
                    parts.append(text)
                continue

            text = block.text.strip()
            if not text:
                continue
            paragraph_count += 1
            style_name = block.style.name if block.style is not None else ""
            level = heading_level(style_name)
            if level:
                headings.append((len(parts), text, level))
            if "List" in style_name:
                has_lists = True
                if options.preserve_formatting:
                    text = f"- {text}"
            parts.append(text)

        content = "\n\n".join(parts)
        if not content.strip():
            raise ValueError("document contains no text")

        structure = None
        if options.extract_structure:
            structure = self._build_structure(parts, headings)

        properties = document.core_properties
        extra = {}
        if properties.title:
            extra["title"] = properties.title
        if properties.author:
            extra["author"] = properties.author
        if properties.created:
            extra["creation_date"] = properties.created.isoformat()
        if properties.modified:
            extra["modification_date"] = properties.modified.isoformat()

        return self._build_result(
            content=content,
            file_type="docx",
            buffer=buffer,
            options=options,
            started=started,
            method="python-docx",
            structure=structure,
            language=detect_language(content),
            word_count=count_words(content),
            paragraph_count=paragraph_count,
            table_count=table_count,
            has_tables=table_count > 0,
            has_images=len(document.inline_shapes) > 0,
            has_lists=has_lists,
            **extra,
        )

    def _build_structure(self, parts: List[str], headings: List[Tuple[int, str, int]]) -> DocumentStructure:
        sections = []
        for position, (index, title, level) in enumerate(headings):
            end = headings[position + 1][0] if position + 1 < len(headings) else len(parts)
            sections.append(Section(
                title=title,
                content="\n\n".join(parts[index + 1:end]).strip(),
                level=level,
            ))
        return DocumentStructure(
            headings=[title for _, title, _ in headings],
            sections=sections,
        )
