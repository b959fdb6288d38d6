"""
Markdown extractor.

Builds a flat, level-annotated section list from ATX and Setext headings
and optionally strips Markdown syntax down to readable text.
"""

import re
from typing import List, Optional, Tuple

from ..models import DocumentStructure, ExtractedText, Section
from . import TextExtractor, count_words
from .encoding import decode_bytes
from .language import detect_language

CODE_BLOCK_PLACEHOLDER = "[code block]"

_ATX_RE = re.compile(r"^ {0,3}(#{1,6})\s+(.+?)(?:\s+#+)?\s*$")
_SETEXT_H1_RE = re.compile(r"^ {0,3}=+\s*$")
_SETEXT_H2_RE = re.compile(r"^ {0,3}-+\s*$")
_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")
_LIST_ITEM_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+")
_TABLE_ROW_RE = re.compile(r"^\s*\|.*\|\s*$", re.MULTILINE)

# Formatting strip, applied in this order
_FENCED_BLOCK_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})[^\n]*\n.*?(?:^ {0,3}\1[ \t]*$|\Z)", re.MULTILINE | re.DOTALL)
_IMAGE_RE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_LINK_RE = re.compile(r"\[([^\]]+)\]\([^)]*\)")
_INLINE_CODE_RE = re.compile(r"`([^`\n]+)`")
_BOLD_RE = re.compile(r"(\*\*|__)(.+?)\1")
_ITALIC_STAR_RE = re.compile(r"(?<!\*)\*(?!\s)([^*\n]+?)\*(?!\*)")
_ITALIC_UNDERSCORE_RE = re.compile(r"(?<!\w)_(?!\s)([^_\n]+?)_(?!\w)")
_HEADER_MARK_RE = re.compile(r"^ {0,3}#{1,6}[ \t]+(.*?)(?:[ \t]+#+)?[ \t]*$", re.MULTILINE)
_UNDERLINE_RE = re.compile(r"^ {0,3}(?:=+|-{2,})[ \t]*$", re.MULTILINE)
_RULE_RE = re.compile(r"^ {0,3}(?:[*_][ \t]*){3,}$", re.MULTILINE)
_BLOCKQUOTE_RE = re.compile(r"^[ \t]*>[ \t]?", re.MULTILINE)
_BULLET_RE = re.compile(r"^([ \t]*)[-*+][ \t]+", re.MULTILINE)
_NUMBERED_RE = re.compile(r"^([ \t]*)\d+[.)][ \t]+", re.MULTILINE)
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")


def find_headings(lines: List[str]) -> List[Tuple[int, int, str, int]]:
    """Locate headings outside fenced code.

    Returns (start_line, body_start_line, title, level) tuples in document order.
    """
    headings = []
    fence: Optional[str] = None
    underline_index = -1
    for index, line in enumerate(lines):
        if index == underline_index:
            continue
        fence_match = _FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(1)[0]
            if fence is None:
                fence = marker
            elif marker == fence:
                fence = None
            continue
        if fence is not None:
            continue

        atx = _ATX_RE.match(line)
        if atx:
            headings.append((index, index + 1, atx.group(2).strip(), len(atx.group(1))))
            continue

        # Setext: a non-empty paragraph line underlined by === or ---
        if index + 1 < len(lines) and line.strip() and not _LIST_ITEM_RE.match(line):
            underline = lines[index + 1]
            if _SETEXT_H1_RE.match(underline):
                headings.append((index, index + 2, line.strip(), 1))
                underline_index = index + 1
            elif _SETEXT_H2_RE.match(underline):
                headings.append((index, index + 2, line.strip(), 2))
                underline_index = index + 1
    return headings


def parse_markdown_structure(text: str) -> DocumentStructure:
    """Headings plus a flat section list; each section runs to the next heading."""
    lines = text.split("\n")
    headings = find_headings(lines)

    sections = []
    for position, (_, body_start, title, level) in enumerate(headings):
        end = headings[position + 1][0] if position + 1 < len(headings) else len(lines)
        content = "\n".join(lines[body_start:end]).strip()
        sections.append(Section(title=title, content=content, level=level))

    return DocumentStructure(
        headings=[title for _, _, title, _ in headings],
        sections=sections,
    )


def strip_markdown(text: str) -> str:
    """Reduce Markdown to readable plain text."""
    text = _FENCED_BLOCK_RE.sub(CODE_BLOCK_PLACEHOLDER, text)
    text = _IMAGE_RE.sub(lambda m: f"[Image: {m.group(1)}]" if m.group(1) else "[Image]", text)
    text = _LINK_RE.sub(r"\1", text)
    text = _INLINE_CODE_RE.sub(r"\1", text)
    text = _BOLD_RE.sub(r"\2", text)
    text = _ITALIC_STAR_RE.sub(r"\1", text)
    text = _ITALIC_UNDERSCORE_RE.sub(r"\1", text)
    text = _HEADER_MARK_RE.sub(r"\1", text)
    text = _UNDERLINE_RE.sub("", text)
    text = _RULE_RE.sub("", text)
    text = _BLOCKQUOTE_RE.sub("", text)
    text = _BULLET_RE.sub(r"\1", text)
    text = _NUMBERED_RE.sub(r"\1", text)
    text = _EXCESS_NEWLINES_RE.sub("\n\n", text)
    return text.strip()


class MarkdownExtractor(TextExtractor):
    """Markdown extractor with heading outline and syntax stripping."""

    MIME_TYPES = frozenset({"text/markdown", "text/x-markdown"})
    EXTENSIONS = frozenset({".md", ".markdown", ".mdown", ".mkd", ".mkdn"})

    BASE_PROCESSING_MS = 10.0
    PROCESSING_MS_PER_KB = 1.0

    @property
    def name(self) -> str:
        """Return the name of this extractor."""
        return "markdown"

    def _extract(self, buffer, file_name, options, started) -> ExtractedText:
        decoded = decode_bytes(buffer, options.encoding)
        raw = decoded.text.replace("\r\n", "\n").replace("\r", "\n")

        warnings = []
        if decoded.fallback:
            warnings.append(f"Content is not valid UTF-8; decoded as {decoded.encoding}")

        structure = parse_markdown_structure(raw) if options.extract_structure else None
        content = raw if options.preserve_formatting else strip_markdown(raw)

        return self._build_result(
            content=content,
            file_type="markdown",
            buffer=buffer,
            options=options,
            started=started,
            structure=structure,
            language=detect_language(strip_markdown(raw) if options.preserve_formatting else content),
            warnings=warnings,
            encoding=decoded.encoding,
            word_count=count_words(content),
            line_count=raw.count("\n") + 1 if raw else 0,
            heading_count=len(find_headings(raw.split("\n"))),
            code_block_count=len(_FENCED_BLOCK_RE.findall(raw)),
            link_count=len(_LINK_RE.findall(_IMAGE_RE.sub("", raw))),
            image_count=len(_IMAGE_RE.findall(raw)),
            has_tables=bool(_TABLE_ROW_RE.search(raw)),
        )
