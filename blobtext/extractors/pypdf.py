"""
PyPDF extractor for PDF files.

Uses pypdf for page text, document info and outline. When pypdf cannot
read the file, text-showing operators are scraped from uncompressed content
streams, then any remaining printable runs are salvaged.
"""

import io
import logging
import re
from typing import Any, Dict, List, Tuple

from pypdf import PdfReader

from ..errors import NoTextExtractedError
from ..models import DocumentStructure, ExtractedText, Section
from . import BaseExtractor, count_words
from .language import detect_language
from .salvage import MIN_RUN_LENGTH, join_paragraphs, salvage_text

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"

# (text) Tj  /  (text) '  /  [(te) -20 (xt)] TJ
_TJ_RE = re.compile(rb"\(((?:\\.|[^\\)])*)\)\s*(?:Tj|')")
_TJ_ARRAY_RE = re.compile(rb"\[((?:\\.|[^\]])*)\]\s*TJ")
_ARRAY_STRING_RE = re.compile(rb"\(((?:\\.|[^\\)])*)\)")
_PDF_ESCAPES = {b"n": b"\n", b"r": b"\r", b"t": b"\t", b"b": b"\b", b"f": b"\f"}
_PDF_ESCAPE_RE = re.compile(rb"\\([nrtbf()\\]|[0-7]{1,3})")
_PDF_SYNTAX_RE = re.compile(
    r"\b\d+\s+\d+\s+(?:obj|R)\b|endobj|endstream|\bstream\b|xref|trailer|startxref|%%EOF|%PDF|<<|>>|/[A-Z]\w+"
)

INFO_FIELDS = {
    "title": "/Title",
    "author": "/Author",
    "subject": "/Subject",
    "creator": "/Creator",
    "producer": "/Producer",
    "creation_date": "/CreationDate",
    "modification_date": "/ModDate",
}


def _unescape_pdf_string(raw: bytes) -> str:
    def _replace(match: "re.Match") -> bytes:
        token = match.group(1)
        if token in _PDF_ESCAPES:
            return _PDF_ESCAPES[token]
        if token.isdigit():
            return bytes([int(token, 8) & 0xFF])
        return token

    return _PDF_ESCAPE_RE.sub(_replace, raw).decode("latin-1")


def scrape_text_operators(buffer: bytes) -> List[str]:
    """Strings shown by Tj/TJ operators in uncompressed content streams."""
    found: List[Tuple[int, str]] = []
    for match in _TJ_RE.finditer(buffer):
        found.append((match.start(), _unescape_pdf_string(match.group(1))))
    for match in _TJ_ARRAY_RE.finditer(buffer):
        pieces = [_unescape_pdf_string(s) for s in _ARRAY_STRING_RE.findall(match.group(1))]
        found.append((match.start(), "".join(pieces)))
    found.sort(key=lambda item: item[0])
    return [text.strip() for _, text in found if text.strip()]


def _outline_headings(outline: Any, level: int = 1) -> List[Tuple[str, int]]:
    """Flatten pypdf's nested outline list into (title, level) pairs."""
    headings = []
    for item in outline:
        if isinstance(item, list):
            headings.extend(_outline_headings(item, min(level + 1, 6)))
        else:
            title = getattr(item, "title", None)
            if title:
                headings.append((str(title).strip(), level))
    return headings


class PyPDFExtractor(BaseExtractor):
    """PDF text extractor using pypdf library."""

    MIME_TYPES = frozenset({"application/pdf", "application/x-pdf"})
    EXTENSIONS = frozenset({".pdf"})

    BASE_PROCESSING_MS = 200.0
    PROCESSING_MS_PER_KB = 10.0

    def __init__(self, salvage_min_length: int = MIN_RUN_LENGTH):
        self.salvage_min_length = salvage_min_length

    @property
    def name(self) -> str:
        """Return the name of this extractor."""
        return "pdf"

    def _validate(self, buffer: bytes, file_name: str) -> bool:
        """Check the %PDF signature."""
        return buffer[:4] == PDF_MAGIC

    def _extract(self, buffer, file_name, options, started) -> ExtractedText:
        errors: List[str] = []
        if buffer[:4] != PDF_MAGIC:
            errors.append("Missing %PDF signature")
        else:
            try:
                result = self._extract_with_pypdf(buffer, options, started)
                if result is not None:
                    return result
                errors.append("No text extracted (possibly scanned PDF without OCR)")
            except Exception as e:
                logger.warning("pypdf could not read %s: %s", file_name, e)
                errors.append(f"PyPDF extraction failed: {e}")

        paragraphs = scrape_text_operators(buffer)
        method = "pdf-operators"
        if not paragraphs:
            text = salvage_text(buffer, self.salvage_min_length, exclude=_PDF_SYNTAX_RE)
            paragraphs = text.split("\n\n") if text else []
            method = "pdf-salvage"

        if not paragraphs:
            raise NoTextExtractedError(f"Unable to extract any text from {file_name}")

        logger.info("Recovered text from %s via %s", file_name, method)
        content = join_paragraphs(paragraphs)
        return self._build_result(
            content=content,
            file_type="pdf",
            buffer=buffer,
            options=options,
            started=started,
            method=method,
            language=detect_language(content),
            is_complete=False,
            errors=errors,
            warnings=["Fallback text recovery used; layout and ordering may be lost"],
            word_count=count_words(content),
        )

    def _extract_with_pypdf(self, buffer, options, started):
        """Full parse; returns None when the document has no extractable text."""
        reader = PdfReader(io.BytesIO(buffer))

        if reader.is_encrypted:
            # Many "protected" PDFs only restrict editing and open with an empty password
            if not reader.decrypt(""):
                raise ValueError("PDF is encrypted/password-protected")

        warnings: List[str] = []
        pages: List[str] = []
        failed_pages = 0
        for number, page in enumerate(reader.pages, start=1):
            try:
                page_text = page.extract_text() or ""
            except Exception as e:
                # Continue with other pages if one fails
                warnings.append(f"Page {number}: {e}")
                failed_pages += 1
                page_text = ""
            pages.append(page_text.strip())

        content = "\n\n".join(text for text in pages if text)
        if not content.strip():
            return None

        metadata: Dict[str, Any] = {}
        info = reader.metadata
        if info:
            for field_name, key in INFO_FIELDS.items():
                value = info.get(key)
                if value:
                    metadata[field_name] = str(value)

        structure = None
        if options.extract_structure:
            try:
                outline = _outline_headings(reader.outline)
            except Exception as e:
                warnings.append(f"Outline unreadable: {e}")
                outline = []
            structure = DocumentStructure(
                headings=[title for title, _ in outline],
                sections=[
                    Section(title=f"Page {number}", content=text, level=1)
                    for number, text in enumerate(pages, start=1)
                    if text
                ],
            )

        return self._build_result(
            content=content,
            file_type="pdf",
            buffer=buffer,
            options=options,
            started=started,
            method="pypdf",
            structure=structure,
            language=detect_language(content),
            is_complete=failed_pages == 0,
            warnings=warnings,
            page_count=len(reader.pages),
            word_count=count_words(content),
            **metadata,
        )
