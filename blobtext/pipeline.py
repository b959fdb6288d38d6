"""
Extraction pipeline: extractor registration, dispatch and the single entry
point for turning file bytes into text.

The factory is immutable once built. ``get_factory()`` builds the
process-wide instance on first use and returns the same object afterwards.
"""

import logging
import threading
from typing import Dict, List, Optional, Sequence

from .config import BlobtextSettings, get_config
from .errors import FileTooLargeError, FileValidationError, UnsupportedFileTypeError
from .extractors import BaseExtractor
from .extractors.docx import DocxExtractor
from .extractors.html import HTMLExtractor
from .extractors.markdown import MarkdownExtractor
from .extractors.pypdf import PyPDFExtractor
from .extractors.source_code import SourceCodeExtractor
from .extractors.structured import StructuredDataExtractor
from .extractors.text import PlainTextExtractor
from .models import ExtractedText, ExtractionOptions, ExtractorInfo

logger = logging.getLogger(__name__)


def default_extractors(settings: Optional[BlobtextSettings] = None) -> List[BaseExtractor]:
    """Extractors in priority order.

    Markdown -> HTML -> JSON/CSV -> source code -> DOCX -> PDF -> plain text.
    Plain text goes last so it only claims text/plain when nothing more
    specific matched by extension.
    """
    extraction = (settings or BlobtextSettings()).extraction
    binary_check = {
        "binary_sample_size": extraction.binary_sample_size,
        "binary_threshold": extraction.binary_threshold,
    }
    return [
        MarkdownExtractor(**binary_check),
        HTMLExtractor(**binary_check),
        StructuredDataExtractor(**binary_check),
        SourceCodeExtractor(**binary_check),
        DocxExtractor(salvage_min_length=extraction.salvage_min_length),
        PyPDFExtractor(salvage_min_length=extraction.salvage_min_length),
        PlainTextExtractor(**binary_check),
    ]


class ExtractorFactory:
    """Ordered, read-only set of extractors with capability-based dispatch."""

    def __init__(
        self,
        extractors: Optional[Sequence[BaseExtractor]] = None,
        settings: Optional[BlobtextSettings] = None,
    ):
        """Register extractors; the first one that can handle a file wins."""
        self.settings = settings or BlobtextSettings()
        if extractors is None:
            extractors = default_extractors(self.settings)

        names = set()
        for extractor in extractors:
            if extractor.name in names:
                raise ValueError(f"Duplicate extractor name: {extractor.name}")
            names.add(extractor.name)

        self._extractors = tuple(extractors)
        self._by_name: Dict[str, BaseExtractor] = {e.name: e for e in self._extractors}

    def get_extractor(self, mime_type: Optional[str], file_name: Optional[str] = None) -> Optional[BaseExtractor]:
        """First registered extractor whose can_handle accepts the input."""
        for extractor in self._extractors:
            if extractor.can_handle(mime_type, file_name):
                return extractor
        return None

    def get_extractor_by_name(self, name: str) -> Optional[BaseExtractor]:
        return self._by_name.get(name)

    def is_supported(self, mime_type: Optional[str], file_name: Optional[str] = None) -> bool:
        return self.get_extractor(mime_type, file_name) is not None

    def get_all_extractors(self) -> List[BaseExtractor]:
        """Get all registered extractors."""
        return list(self._extractors)

    def get_supported_mime_types(self) -> List[str]:
        return sorted({mime for e in self._extractors for mime in e.supported_mime_types})

    def get_supported_extensions(self) -> List[str]:
        return sorted({ext for e in self._extractors for ext in e.supported_extensions})

    def get_stats(self) -> Dict[str, object]:
        """Per-extractor capabilities plus totals, for ops tooling."""
        extractors: List[ExtractorInfo] = [e.describe() for e in self._extractors]
        return {
            "total_extractors": len(extractors),
            "extractors": extractors,
            "supported_mime_types": self.get_supported_mime_types(),
            "supported_extensions": self.get_supported_extensions(),
        }

    async def extract_text_from_file(
        self,
        buffer: bytes,
        file_name: str,
        mime_type: Optional[str],
        options: Optional[ExtractionOptions] = None,
    ) -> ExtractedText:
        """Resolve, validate and run the extractor for a file.

        Raises:
            UnsupportedFileTypeError: no extractor matches
            FileTooLargeError: buffer exceeds extraction.max_file_size
            FileValidationError: the extractor's pre-check rejected the file
            ExtractionError: extraction produced no text at all
        """
        extractor = self.get_extractor(mime_type, file_name)
        if extractor is None:
            raise UnsupportedFileTypeError(mime_type or "", file_name)

        limit = self.settings.extraction.max_file_size
        if len(buffer) > limit:
            raise FileTooLargeError(file_name, len(buffer), limit)

        if not await extractor.validate_file(buffer, file_name):
            raise FileValidationError(file_name, extractor.name)

        if options is None:
            options = self.settings.extraction.to_options()

        logger.debug(
            "Extracting %s (%s, %d bytes) with %s",
            file_name, mime_type, len(buffer), extractor.name,
        )
        result = await extractor.extract_text(buffer, file_name, options)
        if not result.extraction_info.is_complete:
            logger.info(
                "Degraded extraction for %s via %s: %s",
                file_name,
                result.extraction_info.method,
                "; ".join(result.extraction_info.errors or result.extraction_info.warnings or []),
            )
        return result


# Process-wide factory, built on first use
_factory: Optional[ExtractorFactory] = None
_factory_lock = threading.Lock()


def get_factory() -> ExtractorFactory:
    """Get the process-wide extractor factory (built once, never rebuilt)."""
    global _factory
    if _factory is None:
        with _factory_lock:
            if _factory is None:
                _factory = ExtractorFactory(settings=get_config())
    return _factory


async def extract_text_from_file(
    buffer: bytes,
    file_name: str,
    mime_type: Optional[str],
    options: Optional[ExtractionOptions] = None,
) -> ExtractedText:
    """Extract text from a file using the process-wide factory."""
    return await get_factory().extract_text_from_file(buffer, file_name, mime_type, options)


__all__ = [
    "ExtractorFactory",
    "default_extractors",
    "extract_text_from_file",
    "get_factory",
]
