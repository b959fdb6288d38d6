"""
Tests for the Markdown extractor.
"""

import pytest

from blobtext.extractors.markdown import (
    MarkdownExtractor,
    find_headings,
    parse_markdown_structure,
    strip_markdown,
)
from blobtext.models import ExtractionOptions

SAMPLE = """# Guide

Some **bold** and *italic* text with a [link](https://example.com) and `code`.

![Logo](logo.png)

```python
# not a heading
print("hi")
```

- first item
- second item

1. step one

> quoted words

| a | b |
|---|---|
| 1 | 2 |
"""


@pytest.fixture
def extractor():
    return MarkdownExtractor()


class TestHeadings:
    """Tests for heading detection and sections."""

    def test_title_sub_scenario(self):
        structure = parse_markdown_structure("# Title\n\nBody text\n\n## Sub\n\nMore")

        assert structure.headings == ["Title", "Sub"]
        assert [(s.title, s.level, s.content) for s in structure.sections] == [
            ("Title", 1, "Body text"),
            ("Sub", 2, "More"),
        ]

    def test_setext_headings(self):
        structure = parse_markdown_structure("Main\n====\n\nIntro\n\nPart\n----\n\nDetails")

        assert structure.headings == ["Main", "Part"]
        assert [s.level for s in structure.sections] == [1, 2]
        assert structure.sections[0].content == "Intro"
        assert structure.sections[1].content == "Details"

    def test_headings_in_fences_ignored(self):
        headings = find_headings(["# Real", "```", "# Fake", "```", "~~~", "## Also fake", "~~~"])
        assert [title for _, _, title, _ in headings] == ["Real"]

    def test_closing_hashes_removed(self):
        structure = parse_markdown_structure("## Heading ##\ntext")
        assert structure.headings == ["Heading"]
        assert structure.sections[0].level == 2

    def test_list_item_not_setext(self):
        assert parse_markdown_structure("- item\n---\n").headings == []

    def test_no_headings(self):
        structure = parse_markdown_structure("just text")
        assert structure.headings == []
        assert structure.sections == []


class TestStripMarkdown:
    """Tests for syntax removal."""

    def test_strip(self):
        text = strip_markdown(SAMPLE)

        assert text.startswith("Guide\n\nSome bold and italic text with a link and code.")
        assert "[Image: Logo]" in text
        assert "[code block]" in text
        assert "print" not in text
        assert "first item\nsecond item" in text
        assert "step one" in text and "1." not in text
        assert "quoted words" in text and ">" not in text
        assert "**" not in text and "https://" not in text

    def test_image_without_alt(self):
        assert strip_markdown("![](pic.png)") == "[Image]"

    def test_snake_case_untouched(self):
        assert strip_markdown("call my_func_name now") == "call my_func_name now"


class TestMarkdownExtractor:
    """Tests for Markdown extraction."""

    @pytest.mark.asyncio
    async def test_metadata(self, extractor):
        result = await extractor.extract_text(SAMPLE.encode(), "guide.md")
        metadata = result.metadata

        assert metadata.file_type == "markdown"
        assert metadata.heading_count == 1
        assert metadata.code_block_count == 1
        assert metadata.link_count == 1
        assert metadata.image_count == 1
        assert metadata.has_tables is True
        assert metadata.structure is None

    @pytest.mark.asyncio
    async def test_preserve_formatting(self, extractor):
        result = await extractor.extract_text(
            SAMPLE.encode(), "guide.md", ExtractionOptions(preserve_formatting=True)
        )
        assert result.content == SAMPLE

    @pytest.mark.asyncio
    async def test_structure(self, extractor, structure_options):
        result = await extractor.extract_text(
            b"# Title\n\nBody text\n\n## Sub\n\nMore", "doc.md", structure_options
        )
        assert result.content == "Title\n\nBody text\n\nSub\n\nMore"
        assert result.metadata.structure.headings == ["Title", "Sub"]
