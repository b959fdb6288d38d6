"""
Tests for the source code extractor.
"""

import re

import pytest

from blobtext.extractors.source_code import (
    SourceCodeExtractor,
    analyze_code,
    declared_name,
    clean_code,
    language_for,
)
from blobtext.models import ExtractionOptions

PYTHON_SOURCE = '''"""Module docstring."""
import os
from pathlib import Path

# A comment


class Loader:
    def load(self, path):
        return Path(path).read_text()


async def main():
    pass
'''

JAVA_SOURCE = """package demo;

import java.util.List;

/*
 * Block comment
 */
public class Greeter {
    private final String name;

    public Greeter(String name) {
        this.name = name;
    }

    public String greet(List<String> others) {
        if (others.isEmpty()) {
            return "Hi " + name;
        } else if (others.size() > 1) {
            return "Hi all";
        }
        return "Hi";
    }
}
"""


@pytest.fixture
def extractor():
    return SourceCodeExtractor()


class TestAnalysis:
    """Tests for declaration detection and line counting."""

    def test_python(self):
        analysis = analyze_code(PYTHON_SOURCE, "python")

        assert analysis.classes == ["Loader"]
        assert analysis.functions == ["load", "main"]
        assert analysis.imports == ["os", "pathlib"]
        assert analysis.comment_lines == 1
        assert analysis.blank_lines == 6
        assert analysis.line_count == 15

    def test_sections_levels(self):
        analysis = analyze_code(PYTHON_SOURCE, "python")
        assert [(s.title, s.level) for s in analysis.sections] == [
            ("class Loader", 1),
            ("function load", 2),
            ("function main", 2),
        ]
        assert analysis.sections[0].content == "class Loader:"

    def test_java(self):
        analysis = analyze_code(JAVA_SOURCE, "java")

        assert analysis.classes == ["Greeter"]
        assert analysis.functions == ["Greeter", "greet"]
        assert analysis.imports == ["java.util.List"]
        assert analysis.comment_lines == 3

    def test_javascript(self):
        source = (
            "import React from 'react';\n"
            "const api = require('./api');\n"
            "export default function App() {}\n"
            "const handler = async (event) => {};\n"
            "class Store {}\n"
        )
        analysis = analyze_code(source, "javascript")

        assert analysis.functions == ["App", "handler"]
        assert analysis.classes == ["Store"]
        assert analysis.imports == ["react", "./api"]

    def test_go(self):
        source = 'package main\n\nimport "fmt"\n\ntype Server struct {\n}\n\nfunc (s *Server) Run() {\n}\n'
        analysis = analyze_code(source, "go")

        assert analysis.functions == ["Run"]
        assert analysis.classes == ["Server"]
        assert analysis.imports == ["fmt"]

    def test_declared_name(self):
        assert declared_name(re.match(r"def\s+(\w+)", "def load")) == "load"
        assert declared_name(re.match(r"(?:(\w+)\s*=\s*)?lambda", "lambda")) == "1"
        assert declared_name(re.match(r"(async\s+)?(fn)?\s*main", "main")) == "2"

    def test_unknown_language(self):
        analysis = analyze_code("some text\n# note\n", "text")
        assert analysis.functions == []
        assert analysis.comment_lines == 1


class TestHelpers:
    """Tests for cleaning and language lookup."""

    def test_clean_code(self):
        assert clean_code("if x:\n\treturn  1\n\n\n\n\nend") == "if x:\n return 1\n\nend"

    def test_language_for(self):
        assert language_for("app.PY") == "python"
        assert language_for("lib.rs") == "rust"
        assert language_for("Makefile") == "text"


class TestSourceCodeExtractor:
    """Tests for source code extraction."""

    @pytest.mark.asyncio
    async def test_metadata(self, extractor):
        result = await extractor.extract_text(PYTHON_SOURCE.encode(), "loader.py")
        metadata = result.metadata

        assert metadata.file_type == "code"
        assert metadata.programming_language == "python"
        assert metadata.function_count == 2
        assert metadata.class_count == 1
        assert metadata.import_count == 2
        assert metadata.functions == ["load", "main"]

    @pytest.mark.asyncio
    async def test_structure(self, extractor, structure_options):
        result = await extractor.extract_text(PYTHON_SOURCE.encode(), "loader.py", structure_options)
        structure = result.metadata.structure

        assert structure.headings == ["Loader", "load", "main"]
        assert structure.classes == ["Loader"]
        assert len(structure.sections) == 3

    @pytest.mark.asyncio
    async def test_cleaning_only_without_preserve(self, extractor):
        source = b"def f():\n\treturn  1\n"
        cleaned = await extractor.extract_text(source, "f.py")
        preserved = await extractor.extract_text(source, "f.py", ExtractionOptions(preserve_formatting=True))

        assert cleaned.content == "def f():\n return 1\n"
        assert preserved.content == source.decode()
