"""
Exceptions raised for hard extraction failures.

Degraded results are returned normally with ``is_complete=False``; these
exceptions cover the cases where no text at all can be produced.
"""

from typing import Optional


class ExtractionError(Exception):
    """Base class for extraction failures."""

    def __init__(
        self,
        message: str,
        *,
        extractor: Optional[str] = None,
        processing_time: Optional[float] = None,
    ):
        super().__init__(message)
        self.message = message
        self.extractor = extractor
        self.processing_time = processing_time


class UnsupportedFileTypeError(ExtractionError):
    """No registered extractor can handle the file."""

    def __init__(self, mime_type: str, file_name: Optional[str] = None):
        super().__init__(
            f"No extractor available for file type: {mime_type or 'unknown'}"
            + (f" ({file_name})" if file_name else "")
        )
        self.mime_type = mime_type
        self.file_name = file_name


class FileValidationError(ExtractionError):
    """The extractor's structural pre-check rejected the file."""

    def __init__(self, file_name: str, extractor: str):
        super().__init__(
            f"File validation failed: {file_name} is not a valid {extractor} file",
            extractor=extractor,
        )
        self.file_name = file_name


class FileTooLargeError(ExtractionError):
    """File exceeds the configured size limit."""

    def __init__(self, file_name: str, size: int, limit: int):
        super().__init__(f"File too large: {file_name} is {size} bytes (limit {limit})")
        self.size = size
        self.limit = limit


class NoTextExtractedError(ExtractionError):
    """Neither the primary path nor any fallback produced text."""
