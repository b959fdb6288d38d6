"""
blobtext: text extraction for stored blobs

Turns uploaded file bytes (plain text, Markdown, HTML, JSON/CSV, source
code, DOCX, PDF) into normalized text plus structural metadata.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .errors import ExtractionError
from .models import ExtractedText, ExtractionOptions
from .pipeline import ExtractorFactory, extract_text_from_file, get_factory

__all__ = [
    "ExtractedText",
    "ExtractionError",
    "ExtractionOptions",
    "ExtractorFactory",
    "extract_text_from_file",
    "get_factory",
]
