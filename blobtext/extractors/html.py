"""
HTML extractor.

Body text and head metadata (title, description, keywords, author, lang)
come from a BeautifulSoup parse with scripts, styles and comments removed.
Headings are collected from <h1>-<h6>; section bodies are not
reconstructed.
"""

import re
from typing import Dict, Optional

from bs4 import BeautifulSoup, Comment

from ..models import DocumentStructure, ExtractedText, Section
from . import TextExtractor, count_words
from .encoding import decode_bytes
from .language import detect_language

HTML_ENTITIES: Dict[str, str] = {
    "&nbsp;": " ",
    "&amp;": "&",
    "&lt;": "<",
    "&gt;": ">",
    "&quot;": '"',
    "&#39;": "'",
    "&apos;": "'",
    "&copy;": "©",
    "&reg;": "®",
    "&trade;": "™",
    "&hellip;": "…",
    "&mdash;": "—",
    "&ndash;": "–",
    "&lsquo;": "‘",
    "&rsquo;": "’",
    "&ldquo;": "“",
    "&rdquo;": "”",
    "&bull;": "•",
    "&euro;": "€",
    "&pound;": "£",
}

REMOVED_TAGS = ["script", "style"]
LINE_BREAK_TAGS = ["br", "hr"]
BLOCK_TAGS = [
    "p", "div", "h1", "h2", "h3", "h4", "h5", "h6", "li", "tr", "blockquote",
    "section", "article", "header", "footer", "pre", "table", "ul", "ol",
]

# Attribute values may contain '>' when quoted
_ATTRS = r"(?:[^>\"']|\"[^\"]*\"|'[^']*')*"
_TAG_RE = re.compile(r"<" + _ATTRS + r">")
_HEADING_RE = re.compile(r"<h([1-6])\b" + _ATTRS + r">(.*?)</h\1\s*>", re.IGNORECASE | re.DOTALL)
_COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
_NUMERIC_ENTITY_RE = re.compile(r"&#(x[0-9a-fA-F]+|\d+);")
_SPACES_RE = re.compile(r"[^\S\n]+")
_WHITESPACE_RE = re.compile(r"\s+")
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")


def decode_entities(text: str) -> str:
    """Decode the fixed entity table plus numeric character references."""
    for entity, char in HTML_ENTITIES.items():
        text = text.replace(entity, char)

    def _numeric(match: "re.Match") -> str:
        value = match.group(1)
        try:
            code = int(value[1:], 16) if value[0] in "xX" else int(value)
            return chr(code)
        except (ValueError, OverflowError):
            return match.group(0)

    return _NUMERIC_ENTITY_RE.sub(_numeric, text)


def inline_text(fragment: str) -> str:
    """Tag-free, entity-decoded, whitespace-collapsed text of a fragment."""
    return _WHITESPACE_RE.sub(" ", decode_entities(_TAG_RE.sub(" ", fragment))).strip()


def extract_html_headings(html: str) -> DocumentStructure:
    """Headings from <h1>-<h6>; sections carry the level but no body."""
    headings = []
    sections = []
    for match in _HEADING_RE.finditer(_COMMENT_RE.sub("", html)):
        title = inline_text(match.group(2))
        if not title:
            continue
        headings.append(title)
        sections.append(Section(title=title, content="", level=int(match.group(1))))
    return DocumentStructure(headings=headings, sections=sections)


def parse_html(html: str) -> BeautifulSoup:
    """Parse HTML and drop script, style and comment nodes."""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup.find_all(REMOVED_TAGS):
        element.decompose()
    for comment in soup.find_all(string=lambda node: isinstance(node, Comment)):
        comment.extract()
    return soup


def head_metadata(soup: BeautifulSoup) -> Dict[str, object]:
    """Title, meta description/keywords/author and the <html lang> attribute."""
    metadata: Dict[str, object] = {}

    if soup.title:
        title = _WHITESPACE_RE.sub(" ", soup.title.get_text()).strip()
        if title:
            metadata["title"] = title

    for meta in soup.find_all("meta", attrs={"name": True}):
        name = meta["name"].strip().lower()
        content = (meta.get("content") or "").strip()
        if not content:
            continue
        if name in ("description", "author"):
            metadata[name] = content
        elif name == "keywords":
            metadata["keywords"] = [k.strip() for k in content.split(",") if k.strip()]

    root = soup.find("html")
    if root and root.get("lang"):
        metadata["lang"] = root["lang"].strip()

    return metadata


def extract_head_metadata(html: str) -> Dict[str, object]:
    return head_metadata(parse_html(html))


def soup_to_text(soup: BeautifulSoup, preserve_formatting: bool = False) -> str:
    """Text of a parsed document; block boundaries become newlines when preserving.

    Modifies the tree when preserve_formatting is set.
    """
    if not preserve_formatting:
        return _WHITESPACE_RE.sub(" ", soup.get_text(separator=" ")).strip()

    for tag in soup.find_all(LINE_BREAK_TAGS):
        tag.replace_with("\n")
    for tag in soup.find_all(BLOCK_TAGS):
        tag.append("\n")

    text = soup.get_text(separator=" ").replace("\r\n", "\n")
    lines = [_SPACES_RE.sub(" ", line).strip() for line in text.split("\n")]
    return _EXCESS_NEWLINES_RE.sub("\n\n", "\n".join(lines)).strip()


def html_to_text(html: str, preserve_formatting: bool = False) -> str:
    """Strip scripts, styles, comments and tags; optionally keep block breaks."""
    return soup_to_text(parse_html(html), preserve_formatting)


def primary_language(lang: Optional[str]) -> Optional[str]:
    """'en-US' -> 'en'."""
    if not lang:
        return None
    return lang.split("-")[0].split("_")[0].lower() or None


class HTMLExtractor(TextExtractor):
    """HTML extractor with head metadata and heading outline."""

    MIME_TYPES = frozenset({"text/html", "application/xhtml+xml"})
    EXTENSIONS = frozenset({".html", ".htm", ".xhtml"})

    BASE_PROCESSING_MS = 10.0
    PROCESSING_MS_PER_KB = 1.5

    @property
    def name(self) -> str:
        """Return the name of this extractor."""
        return "html"

    def _extract(self, buffer, file_name, options, started) -> ExtractedText:
        decoded = decode_bytes(buffer, options.encoding)
        html = decoded.text

        warnings = []
        if decoded.fallback:
            warnings.append(f"Content is not valid UTF-8; decoded as {decoded.encoding}")

        soup = parse_html(html)
        head = head_metadata(soup)
        has_tables = soup.find("table") is not None
        has_images = soup.find("img") is not None
        link_count = len(soup.find_all("a", href=True))

        content = soup_to_text(soup, options.preserve_formatting)
        language = primary_language(head.get("lang")) or detect_language(content)

        return self._build_result(
            content=content,
            file_type="html",
            buffer=buffer,
            options=options,
            started=started,
            structure=extract_html_headings(html) if options.extract_structure else None,
            language=language,
            warnings=warnings,
            encoding=decoded.encoding,
            word_count=count_words(content),
            has_tables=has_tables,
            has_images=has_images,
            link_count=link_count,
            **head,
        )
