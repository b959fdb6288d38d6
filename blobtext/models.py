"""
Pydantic models for extraction input/output.

These records are the boundary contract of the extraction core: downstream
indexing and embedding code consumes ``ExtractedText.content`` as plain text.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExtractionOptions(BaseModel):
    """Per-call extraction configuration."""

    model_config = ConfigDict(frozen=True)

    preserve_formatting: bool = Field(
        default=False,
        description="Keep original whitespace/markup instead of cleaning it"
    )
    max_length: Optional[int] = Field(
        default=None,
        ge=1,
        description="Truncate content to this many characters (plus '...')"
    )
    extract_structure: bool = Field(
        default=False,
        description="Build the heading/section outline"
    )
    encoding: Optional[str] = Field(
        default=None,
        description="Text encoding; None sniffs a BOM and defaults to UTF-8"
    )


class Section(BaseModel):
    """A heading and the text it governs."""

    title: str
    content: str = ""
    level: int = Field(default=1, ge=1, le=6, description="Heading depth (1 = top)")


class DocumentStructure(BaseModel):
    """Heading/section outline plus format-specific structural fields."""

    model_config = ConfigDict(extra="allow")

    headings: List[str] = Field(default_factory=list)
    sections: List[Section] = Field(default_factory=list)


class DocumentMetadata(BaseModel):
    """Document-level metadata; extractors add format-specific extra fields."""

    model_config = ConfigDict(extra="allow")

    file_type: str
    file_size: int = Field(..., ge=0)
    language: Optional[str] = Field(
        None,
        description="ISO 639-1 language guess"
    )
    structure: Optional[DocumentStructure] = None
    truncated: bool = False


class ExtractionInfo(BaseModel):
    """How the content was produced."""

    processing_time: float = Field(..., ge=0.0, description="Milliseconds")
    method: str = Field(..., description="Code path that produced the result")
    is_complete: bool = Field(
        default=True,
        description="False when extraction degraded to a fallback"
    )
    errors: Optional[List[str]] = None
    warnings: Optional[List[str]] = None


class ExtractedText(BaseModel):
    """Result of a single extraction call."""

    content: str
    metadata: DocumentMetadata
    extraction_info: ExtractionInfo

    @property
    def success(self) -> bool:
        """Compatibility property: True for complete, non-degraded results."""
        return self.extraction_info.is_complete


class ExtractorInfo(BaseModel):
    """Capability descriptor of a registered extractor."""

    name: str
    supported_mime_types: List[str] = Field(default_factory=list)
    supported_extensions: List[str] = Field(default_factory=list)
