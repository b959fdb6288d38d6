"""
Plain text file extractor.

Catch-all extractor for text-based files with encoding detection, binary
rejection and content sniffing (shebang, JSON, XML/HTML, CSV, Markdown)
when the extension does not say what the file is.
"""

import json
import logging
import re
from typing import Dict, List, Optional

from ..models import DocumentStructure, ExtractedText, Section
from . import TextExtractor, count_words, get_extension
from .encoding import decode_bytes
from .html import extract_html_headings
from .language import detect_language
from .markdown import parse_markdown_structure
from .source_code import analyze_code

logger = logging.getLogger(__name__)

EXTENSION_TYPES: Dict[str, str] = {
    ".txt": "text",
    ".text": "text",
    ".log": "log",
    ".rst": "rst",
    ".ini": "config",
    ".cfg": "config",
    ".conf": "config",
    ".env": "config",
    ".properties": "config",
}

SHEBANG_TYPES: Dict[str, str] = {
    "python": "python",
    "node": "javascript",
    "deno": "javascript",
    "bash": "shell",
    "zsh": "shell",
    "sh": "shell",
    "perl": "perl",
    "ruby": "ruby",
}

CSV_DELIMITERS = (",", ";", "\t")
CSV_SAMPLE_LINES = 10
CSV_TOLERANCE = 1

_XML_PROLOGUE_RE = re.compile(r"^\s*<\?xml\b", re.IGNORECASE)
_HTML_PROLOGUE_RE = re.compile(r"^\s*(?:<!doctype\s+html\b|<html\b)", re.IGNORECASE)
_MD_HEADING_RE = re.compile(r"^#{1,6}\s+\S", re.MULTILINE)
_TRAILING_WS_RE = re.compile(r"[ \t]+$", re.MULTILINE)
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")


def looks_like_csv(text: str) -> bool:
    """Consistent delimiter counts (within tolerance) across the first lines."""
    lines = [line for line in text.split("\n")[:CSV_SAMPLE_LINES] if line.strip()]
    if len(lines) < 2:
        return False
    for delimiter in CSV_DELIMITERS:
        counts = [line.count(delimiter) for line in lines]
        if min(counts) > 0 and max(counts) - min(counts) <= CSV_TOLERANCE:
            return True
    return False


def detect_shebang(text: str) -> Optional[str]:
    if not text.startswith("#!"):
        return None
    parts = text.split("\n", 1)[0][2:].strip().lower().split()
    if not parts:
        return "script"
    # "#!/usr/bin/env python3" names the interpreter in the second word
    program = parts[1] if parts[0].endswith("/env") and len(parts) > 1 else parts[0]
    program = re.sub(r"[\d.]+$", "", program.rsplit("/", 1)[-1])
    return SHEBANG_TYPES.get(program, "script")


def detect_file_type(text: str, file_name: Optional[str]) -> str:
    """Extension first; otherwise sniff the content."""
    extension = get_extension(file_name)
    if extension in EXTENSION_TYPES:
        return EXTENSION_TYPES[extension]

    shebang = detect_shebang(text)
    if shebang:
        return shebang

    stripped = text.strip()
    if stripped[:1] in ("{", "["):
        try:
            json.loads(stripped)
            return "json"
        except ValueError:
            pass
    if _XML_PROLOGUE_RE.match(stripped):
        return "xml"
    if _HTML_PROLOGUE_RE.match(stripped):
        return "html"
    if looks_like_csv(stripped):
        return "csv"
    if _MD_HEADING_RE.search(stripped):
        return "markdown"
    return "text"


def generic_sections(text: str) -> DocumentStructure:
    """Blank-line delimited paragraphs as level-1 sections."""
    sections = []
    for index, paragraph in enumerate(_PARAGRAPH_SPLIT_RE.split(text.strip()), start=1):
        paragraph = paragraph.strip()
        if paragraph:
            sections.append(Section(title=f"Section {index}", content=paragraph, level=1))
    return DocumentStructure(headings=[], sections=sections)


def code_sections(text: str, language: str) -> DocumentStructure:
    analysis = analyze_code(text, language)
    return DocumentStructure(
        headings=analysis.functions + analysis.classes,
        sections=analysis.sections,
    )


def build_structure(text: str, file_type: str) -> DocumentStructure:
    if file_type == "markdown":
        return parse_markdown_structure(text)
    if file_type in ("html", "xml"):
        return extract_html_headings(text)
    if file_type in ("python", "javascript", "shell", "perl", "ruby"):
        return code_sections(text, file_type)
    return generic_sections(text)


def clean_text(text: str) -> str:
    """Strip trailing whitespace and collapse 3+ newlines."""
    text = _TRAILING_WS_RE.sub("", text)
    return _EXCESS_NEWLINES_RE.sub("\n\n", text).strip()


class PlainTextExtractor(TextExtractor):
    """Plain text file extractor with encoding detection."""

    MIME_TYPES = frozenset({
        "text/plain",
        "text/x-log",
        "text/x-rst",
        "text/prs.fallenstein.rst",
        "text/x-ini",
    })
    EXTENSIONS = frozenset(EXTENSION_TYPES)

    BASE_PROCESSING_MS = 5.0
    PROCESSING_MS_PER_KB = 0.5

    @property
    def name(self) -> str:
        """Return the name of this extractor."""
        return "plain-text"

    def _extract(self, buffer, file_name, options, started) -> ExtractedText:
        decoded = decode_bytes(buffer, options.encoding)
        text = decoded.text

        warnings: List[str] = []
        is_complete = True
        if decoded.fallback:
            warnings.append(f"Content is not valid UTF-8; decoded as {decoded.encoding}")
        if self.looks_binary(buffer):
            logger.warning("%s looks binary; text may be garbled", file_name)
            warnings.append("Content appears to be binary")
            is_complete = False

        normalized = text.replace("\r\n", "\n").replace("\r", "\n")
        detected_type = detect_file_type(normalized, file_name)
        content = text if options.preserve_formatting else clean_text(normalized)

        return self._build_result(
            content=content,
            file_type="text",
            buffer=buffer,
            options=options,
            started=started,
            structure=build_structure(normalized, detected_type) if options.extract_structure else None,
            language=detect_language(normalized),
            is_complete=is_complete,
            warnings=warnings,
            encoding=decoded.encoding,
            detected_type=detected_type,
            line_count=normalized.count("\n") + 1 if normalized else 0,
            word_count=count_words(normalized),
            char_count=len(normalized),
        )
