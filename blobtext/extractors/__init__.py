"""
Text extraction modules.

Provides the extractor interface and shared result-building helpers.
Concrete extractors live in the sibling modules and are registered, in
priority order, by ``blobtext.pipeline``.
"""

import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any, FrozenSet, List, Optional

from ..errors import ExtractionError
from ..models import (
    DocumentMetadata,
    DocumentStructure,
    ExtractedText,
    ExtractionInfo,
    ExtractionOptions,
    ExtractorInfo,
)
from .encoding import BINARY_SAMPLE_SIZE, BINARY_THRESHOLD, is_probably_binary

logger = logging.getLogger(__name__)

TRUNCATION_SUFFIX = "..."

_WORD_RE = re.compile(r"\S+")


def get_extension(file_name: Optional[str]) -> Optional[str]:
    """Return the lowercase extension after the last dot (with the dot), or None."""
    if not file_name or "." not in file_name:
        return None
    ext = file_name.rsplit(".", 1)[1].lower()
    return f".{ext}" if ext else None


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    return len(_WORD_RE.findall(text))


def truncate_text(text: str, max_length: Optional[int]) -> tuple:
    """Cut text to max_length characters plus '...'. Returns (text, truncated)."""
    if max_length is None or len(text) <= max_length:
        return text, False
    return text[:max_length] + TRUNCATION_SUFFIX, True


def base_mime_type(mime_type: str) -> str:
    """'Text/Plain; charset=utf-8' -> 'text/plain'."""
    return mime_type.split(";", 1)[0].strip().lower()


def elapsed_ms(started: float) -> float:
    """Milliseconds since a time.perf_counter() reading."""
    return round((time.perf_counter() - started) * 1000, 3)


class BaseExtractor(ABC):
    """Abstract base class for text extractors.

    Subclasses declare ``MIME_TYPES`` and ``EXTENSIONS`` and implement
    ``_extract``; the public coroutine ``extract_text`` handles timing and
    wraps unexpected exceptions.
    """

    MIME_TYPES: FrozenSet[str] = frozenset()
    EXTENSIONS: FrozenSet[str] = frozenset()

    # estimate_processing_time = BASE + PER_KB * size_kb
    BASE_PROCESSING_MS = 5.0
    PROCESSING_MS_PER_KB = 0.5

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of this extractor."""
        pass

    @property
    def supported_mime_types(self) -> FrozenSet[str]:
        return self.MIME_TYPES

    @property
    def supported_extensions(self) -> FrozenSet[str]:
        return self.EXTENSIONS

    def can_handle(self, mime_type: Optional[str], file_name: Optional[str] = None) -> bool:
        """Check MIME type first, then the file extension (case-insensitive).

        Parameters such as ``; charset=utf-8`` are ignored.
        """
        if mime_type and base_mime_type(mime_type) in self.supported_mime_types:
            return True
        extension = get_extension(file_name)
        return extension is not None and extension in self.supported_extensions

    async def validate_file(self, buffer: bytes, file_name: str) -> bool:
        """Cheap structural sanity check. Never raises."""
        try:
            return self._validate(buffer, file_name)
        except Exception as e:
            logger.debug("Validation of %s by %s raised: %s", file_name, self.name, e)
            return False

    def _validate(self, buffer: bytes, file_name: str) -> bool:
        return buffer is not None

    async def extract_text(
        self,
        buffer: bytes,
        file_name: str,
        options: Optional[ExtractionOptions] = None,
    ) -> ExtractedText:
        """Extract text from the buffer.

        Recoverable failures come back as degraded results
        (``is_complete=False``); anything else is raised as ExtractionError.
        """
        options = options or ExtractionOptions()
        started = time.perf_counter()
        try:
            return self._extract(buffer, file_name, options, started)
        except ExtractionError as e:
            if e.processing_time is None:
                e.processing_time = elapsed_ms(started)
            if e.extractor is None:
                e.extractor = self.name
            raise
        except Exception as e:
            raise ExtractionError(
                f"{self.name} extraction failed for {file_name}: {e}",
                extractor=self.name,
                processing_time=elapsed_ms(started),
            ) from e

    @abstractmethod
    def _extract(
        self,
        buffer: bytes,
        file_name: str,
        options: ExtractionOptions,
        started: float,
    ) -> ExtractedText:
        """Format-specific transform."""
        pass

    def estimate_processing_time(self, file_size: int) -> int:
        """Rough processing time in milliseconds for a file of file_size bytes."""
        size_kb = max(file_size, 0) / 1024
        return int(round(self.BASE_PROCESSING_MS + self.PROCESSING_MS_PER_KB * size_kb))

    def describe(self) -> ExtractorInfo:
        """Capability descriptor for registry introspection."""
        return ExtractorInfo(
            name=self.name,
            supported_mime_types=sorted(self.supported_mime_types),
            supported_extensions=sorted(self.supported_extensions),
        )

    def _build_result(
        self,
        *,
        content: str,
        file_type: str,
        buffer: bytes,
        options: ExtractionOptions,
        started: float,
        method: Optional[str] = None,
        structure: Optional[DocumentStructure] = None,
        language: Optional[str] = None,
        is_complete: bool = True,
        errors: Optional[List[str]] = None,
        warnings: Optional[List[str]] = None,
        **extra_metadata: Any,
    ) -> ExtractedText:
        """Apply truncation and assemble the ExtractedText record."""
        content, truncated = truncate_text(content, options.max_length)

        metadata = DocumentMetadata(
            file_type=file_type,
            file_size=len(buffer),
            language=language,
            structure=structure if options.extract_structure else None,
            truncated=truncated,
            **extra_metadata,
        )

        return ExtractedText(
            content=content,
            metadata=metadata,
            extraction_info=ExtractionInfo(
                processing_time=elapsed_ms(started),
                method=method or self.name,
                is_complete=is_complete,
                errors=errors or None,
                warnings=warnings or None,
            ),
        )


class TextExtractor(BaseExtractor):
    """Base for extractors of text-based formats.

    Validation rejects buffers whose sampled prefix has too many control
    bytes.
    """

    def __init__(
        self,
        binary_sample_size: int = BINARY_SAMPLE_SIZE,
        binary_threshold: float = BINARY_THRESHOLD,
    ):
        self.binary_sample_size = binary_sample_size
        self.binary_threshold = binary_threshold

    def looks_binary(self, buffer: bytes) -> bool:
        return is_probably_binary(buffer, self.binary_sample_size, self.binary_threshold)

    def _validate(self, buffer: bytes, file_name: str) -> bool:
        """Reject content that looks binary."""
        return not self.looks_binary(buffer)


__all__ = [
    "BaseExtractor",
    "TextExtractor",
    "base_mime_type",
    "count_words",
    "elapsed_ms",
    "get_extension",
    "truncate_text",
]
