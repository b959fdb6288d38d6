"""
JSON and CSV/TSV extractor.

JSON is pretty-printed or flattened to ``key: value`` pairs, with key,
depth and object-count analysis. CSV/TSV rows are parsed with quote
awareness and rendered either per row with column labels or as flat text.
"""

import json
import logging
from typing import Any, Iterator, List, Optional, Set, Tuple

from ..errors import NoTextExtractedError
from ..models import DocumentStructure, ExtractedText, Section
from . import TextExtractor, count_words, get_extension
from .encoding import decode_bytes

logger = logging.getLogger(__name__)

QUOTE_CHARS = ("\"", "'")


# =============================================================================
# JSON analysis
# =============================================================================

def format_json(value: Any) -> str:
    """Conventional 2-space indented JSON."""
    return json.dumps(value, indent=2, ensure_ascii=False)


def _scalar(value: Any) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def iter_json_pairs(value: Any, path: str = "") -> Iterator[Tuple[str, str]]:
    """Yield (path, scalar) pairs; nested keys are dotted, list items indexed."""
    if isinstance(value, dict):
        if not value and path:
            yield path, "{}"
        for key, child in value.items():
            yield from iter_json_pairs(child, f"{path}.{key}" if path else str(key))
    elif isinstance(value, list):
        if not value and path:
            yield path, "[]"
        for index, child in enumerate(value):
            yield from iter_json_pairs(child, f"{path}[{index}]")
    else:
        yield path or "value", _scalar(value)


def flatten_json(value: Any) -> str:
    """Space-joined ``key: value`` pairs."""
    return " ".join(f"{key}: {scalar}" for key, scalar in iter_json_pairs(value))


def json_depth(value: Any) -> int:
    """Nesting depth: each object or array adds one level, scalars add none."""
    if isinstance(value, dict):
        return 1 + max((json_depth(child) for child in value.values()), default=0)
    if isinstance(value, list):
        return 1 + max((json_depth(child) for child in value), default=0)
    return 0


def count_json_objects(value: Any) -> int:
    """Objects count once plus their children; arrays only sum their children."""
    if isinstance(value, dict):
        return 1 + sum(count_json_objects(child) for child in value.values())
    if isinstance(value, list):
        return sum(count_json_objects(child) for child in value)
    return 0


def collect_json_keys(value: Any, keys: Optional[Set[str]] = None) -> Set[str]:
    """All distinct object keys at any depth."""
    if keys is None:
        keys = set()
    if isinstance(value, dict):
        for key, child in value.items():
            keys.add(str(key))
            collect_json_keys(child, keys)
    elif isinstance(value, list):
        for child in value:
            collect_json_keys(child, keys)
    return keys


def json_root_type(value: Any) -> str:
    if isinstance(value, dict):
        return "object"
    if isinstance(value, list):
        return "array"
    if isinstance(value, bool):
        return "boolean"
    if value is None:
        return "null"
    if isinstance(value, (int, float)):
        return "number"
    return "string"


# =============================================================================
# CSV parsing
# =============================================================================

def parse_csv_line(line: str, delimiter: str = ",") -> List[str]:
    """Split a line on delimiter, ignoring delimiters inside quotes."""
    fields = []
    current = []
    quote: Optional[str] = None
    for char in line:
        if quote is None and char in QUOTE_CHARS:
            quote = char
        elif char == quote:
            quote = None
        elif char == delimiter and quote is None:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
    fields.append("".join(current).strip())
    return fields


def is_numeric(value: str) -> bool:
    try:
        float(value.strip())
        return True
    except ValueError:
        return False


def has_real_headers(rows: List[List[str]]) -> bool:
    """Non-numeric header row followed by a row with at least one numeric cell."""
    if len(rows) < 2:
        return False
    header, first = rows[0], rows[1]
    if any(is_numeric(cell) for cell in header if cell):
        return False
    return any(is_numeric(cell) for cell in first if cell)


def choose_delimiter(extension: Optional[str], header_line: str) -> str:
    if extension == ".tsv":
        return "\t"
    if header_line.count(";") > header_line.count(","):
        return ";"
    return ","


# =============================================================================
# Extractor
# =============================================================================

class StructuredDataExtractor(TextExtractor):
    """JSON and CSV/TSV extractor."""

    JSON_MIME_TYPES = frozenset({"application/json", "text/json", "application/ld+json"})
    CSV_MIME_TYPES = frozenset({"text/csv", "application/csv", "text/tab-separated-values"})

    MIME_TYPES = JSON_MIME_TYPES | CSV_MIME_TYPES
    EXTENSIONS = frozenset({".json", ".csv", ".tsv"})

    BASE_PROCESSING_MS = 10.0
    PROCESSING_MS_PER_KB = 2.0

    @property
    def name(self) -> str:
        """Return the name of this extractor."""
        return "structured-data"

    def _is_json(self, file_name: str, text: str) -> bool:
        """Dispatch on extension; without one, sniff the first character."""
        extension = get_extension(file_name)
        if extension == ".json":
            return True
        if extension in (".csv", ".tsv"):
            return False
        return text.lstrip()[:1] in ("{", "[")

    def _validate(self, buffer: bytes, file_name: str) -> bool:
        return super()._validate(buffer, file_name) and b"\x00" not in buffer[:self.binary_sample_size]

    def _extract(self, buffer, file_name, options, started) -> ExtractedText:
        decoded = decode_bytes(buffer, options.encoding)
        warnings = []
        if decoded.fallback:
            warnings.append(f"Content is not valid UTF-8; decoded as {decoded.encoding}")

        if self._is_json(file_name, decoded.text):
            return self._extract_json(decoded.text, buffer, options, started, warnings)
        return self._extract_csv(decoded.text, file_name, buffer, options, started, warnings)

    def _extract_json(self, text, buffer, options, started, warnings) -> ExtractedText:
        try:
            value = json.loads(text)
        except json.JSONDecodeError as e:
            if not text.strip():
                raise NoTextExtractedError("Unable to extract any text: JSON content is empty") from e
            logger.info("Invalid JSON, returning raw text: %s", e)
            return self._build_result(
                content=text.strip(),
                file_type="json",
                buffer=buffer,
                options=options,
                started=started,
                method="json-raw",
                is_complete=False,
                errors=[f"Invalid JSON: {e}"],
                warnings=warnings,
                word_count=count_words(text),
            )

        content = format_json(value) if options.preserve_formatting else flatten_json(value)

        structure = None
        if options.extract_structure:
            top_level = list(value.keys()) if isinstance(value, dict) else []
            structure = DocumentStructure(
                headings=[str(key) for key in top_level],
                sections=[
                    Section(
                        title=str(key),
                        content=json.dumps(value[key], ensure_ascii=False),
                        level=1,
                    )
                    for key in top_level
                ],
                keys=sorted(collect_json_keys(value)),
                depth=json_depth(value),
                object_count=count_json_objects(value),
            )

        return self._build_result(
            content=content,
            file_type="json",
            buffer=buffer,
            options=options,
            started=started,
            method="json",
            structure=structure,
            warnings=warnings,
            root_type=json_root_type(value),
            item_count=len(value) if isinstance(value, (dict, list)) else 1,
            word_count=count_words(content),
        )

    def _extract_csv(self, text, file_name, buffer, options, started, warnings) -> ExtractedText:
        extension = get_extension(file_name)
        lines = [line.strip() for line in text.splitlines()]
        lines = [line for line in lines if line]

        file_type = "tsv" if extension == ".tsv" else "csv"
        if not lines:
            return self._build_result(
                content="",
                file_type=file_type,
                buffer=buffer,
                options=options,
                started=started,
                method=file_type,
                warnings=warnings + ["File contains no rows"],
                row_count=0,
                column_count=0,
            )

        delimiter = choose_delimiter(extension, lines[0])
        rows = [parse_csv_line(line, delimiter) for line in lines]
        real_headers = has_real_headers(rows)
        column_count = max(len(row) for row in rows)

        if real_headers:
            headers = rows[0]
            data_rows = rows[1:]
        else:
            headers = [f"Column {i + 1}" for i in range(column_count)]
            data_rows = rows

        if options.preserve_formatting:
            content = self._format_rows(headers, data_rows)
        else:
            content = "\n".join(" ".join(cell for cell in row if cell) for row in rows)

        structure = None
        if options.extract_structure:
            structure = DocumentStructure(
                headings=list(headers),
                sections=[],
                row_count=len(data_rows),
                column_count=column_count,
                has_headers=real_headers,
            )

        return self._build_result(
            content=content,
            file_type=file_type,
            buffer=buffer,
            options=options,
            started=started,
            method=file_type,
            structure=structure,
            warnings=warnings,
            delimiter=delimiter,
            headers=list(headers),
            has_headers=real_headers,
            row_count=len(data_rows),
            column_count=column_count,
        )

    def _format_rows(self, headers: List[str], rows: List[List[str]]) -> str:
        """Labelled per-row breakdown."""
        blocks = []
        for number, row in enumerate(rows, start=1):
            lines = [f"Row {number}:"]
            for index, cell in enumerate(row):
                label = headers[index] if index < len(headers) and headers[index] else f"Column {index + 1}"
                lines.append(f"  {label}: {cell}")
            blocks.append("\n".join(lines))
        return "\n\n".join(blocks)
