"""
Tests for the plain text extractor and content sniffing.
"""

import pytest

from blobtext.extractors.text import (
    PlainTextExtractor,
    clean_text,
    detect_file_type,
    detect_shebang,
    looks_like_csv,
)
from blobtext.models import ExtractionOptions


@pytest.fixture
def extractor():
    return PlainTextExtractor()


# =============================================================================
# Type Sniffing
# =============================================================================

class TestTypeDetection:
    """Tests for extension and content based type detection."""

    @pytest.mark.parametrize("first_line,expected", [
        ("#!/usr/bin/env python3", "python"),
        ("#!/usr/bin/python2.7", "python"),
        ("#!/bin/bash", "shell"),
        ("#!/bin/sh -e", "shell"),
        ("#!/usr/bin/env node", "javascript"),
        ("#!/usr/bin/perl -w", "perl"),
        ("#!/opt/custom/interp", "script"),
    ])
    def test_shebang(self, first_line, expected):
        assert detect_shebang(first_line + "\nbody\n") == expected

    def test_no_shebang(self):
        assert detect_shebang("print('hi')") is None

    def test_extension_first(self):
        assert detect_file_type("# looks like markdown", "server.log") == "log"
        assert detect_file_type("key=value", "app.ini") == "config"

    @pytest.mark.parametrize("text,expected", [
        ('{"a": 1, "b": [1, 2]}', "json"),
        ("[1, 2, 3]", "json"),
        ("<?xml version='1.0'?><root/>", "xml"),
        ("<!DOCTYPE html><html><body>x</body></html>", "html"),
        ("name,age,city\nann,30,oslo\nbob,41,rome", "csv"),
        ("# Heading\n\nSome text", "markdown"),
        ("Just some words.", "text"),
        ("{not json at all", "text"),
    ])
    def test_content_sniffing(self, text, expected):
        assert detect_file_type(text, None) == expected

    def test_csv_tolerance(self):
        assert looks_like_csv("a;b;c\n1;2\n3;4;5")
        assert not looks_like_csv("a,b,c,d,e\n1\n")
        assert not looks_like_csv("single line, with comma")


# =============================================================================
# Extraction
# =============================================================================

class TestPlainTextExtractor:
    """Tests for plain text extraction."""

    @pytest.mark.asyncio
    async def test_basic_metadata(self, extractor):
        result = await extractor.extract_text(b"Hello there\nsecond line here\n", "notes.txt")

        assert result.content == "Hello there\nsecond line here"
        assert result.metadata.file_type == "text"
        assert result.metadata.detected_type == "text"
        assert result.metadata.encoding == "utf-8"
        assert result.metadata.word_count == 5
        assert result.metadata.line_count == 3
        assert result.extraction_info.method == "plain-text"
        assert result.extraction_info.is_complete

    def test_clean_text(self):
        assert clean_text("line one   \n\n\n\n\nline two\t\n") == "line one\n\nline two"

    @pytest.mark.asyncio
    async def test_crlf_normalized(self, extractor):
        result = await extractor.extract_text(b"one\r\n\r\n\r\n\r\ntwo\r\n", "a.txt")
        assert result.content == "one\n\ntwo"

    @pytest.mark.asyncio
    async def test_preserve_formatting_keeps_layout(self, extractor):
        raw = b"  indented   line  \n\n\n\nend"
        result = await extractor.extract_text(raw, "a.txt", ExtractionOptions(preserve_formatting=True))
        assert result.content == raw.decode()

    @pytest.mark.asyncio
    async def test_generic_sections(self, extractor, structure_options):
        result = await extractor.extract_text(b"First para.\n\nSecond para.", "a.txt", structure_options)
        sections = result.metadata.structure.sections
        assert [s.title for s in sections] == ["Section 1", "Section 2"]
        assert sections[1].content == "Second para."

    @pytest.mark.asyncio
    async def test_markdown_sniffed_structure(self, extractor, structure_options):
        result = await extractor.extract_text(b"# Intro\n\nHello\n\n## Next\n\nMore", "README", structure_options)
        assert result.metadata.detected_type == "markdown"
        assert result.metadata.structure.headings == ["Intro", "Next"]

    @pytest.mark.asyncio
    async def test_shebang_script_structure(self, extractor, structure_options):
        script = b"#!/usr/bin/env python3\nimport os\n\ndef main():\n    pass\n"
        result = await extractor.extract_text(script, "run", structure_options)
        assert result.metadata.detected_type == "python"
        assert result.metadata.structure.headings == ["main"]

    @pytest.mark.asyncio
    async def test_language(self, extractor):
        text = b"The report is ready and the team will review it with the client this week."
        result = await extractor.extract_text(text, "a.txt")
        assert result.metadata.language == "en"

    @pytest.mark.asyncio
    async def test_latin1_warning(self, extractor):
        result = await extractor.extract_text("Déjà vu, naïve café".encode("latin-1"), "a.txt")
        assert result.extraction_info.is_complete
        assert any("not valid UTF-8" in w for w in result.extraction_info.warnings)

    @pytest.mark.asyncio
    async def test_binary_rejected_by_validation(self, extractor):
        assert await extractor.validate_file(b"ok text", "a.txt") is True
        assert await extractor.validate_file(b"PK\x03\x04\x00\x00\x00" * 50, "a.txt") is False

    @pytest.mark.asyncio
    async def test_binary_extraction_degrades(self, extractor):
        result = await extractor.extract_text(b"abc\x00\x01\x02\x03def", "a.txt")
        assert result.extraction_info.is_complete is False
        assert "Content appears to be binary" in result.extraction_info.warnings

    @pytest.mark.asyncio
    async def test_empty_file(self, extractor):
        result = await extractor.extract_text(b"", "empty.txt")
        assert result.content == ""
        assert result.metadata.line_count == 0
        assert result.metadata.file_size == 0
