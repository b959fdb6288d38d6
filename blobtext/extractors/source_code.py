"""
Source code extractor.

Language comes from the file extension. A single pass over the lines counts
code/comment/blank lines and collects function, class and import
declarations with per-language regular expressions.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Pattern, Tuple

from ..models import DocumentStructure, ExtractedText, Section
from . import TextExtractor, get_extension
from .encoding import decode_bytes

EXTENSION_LANGUAGES: Dict[str, str] = {
    ".py": "python", ".pyw": "python", ".pyi": "python",
    ".js": "javascript", ".jsx": "javascript", ".mjs": "javascript", ".cjs": "javascript",
    ".ts": "typescript", ".tsx": "typescript",
    ".java": "java",
    ".kt": "kotlin", ".kts": "kotlin",
    ".scala": "scala",
    ".cs": "csharp",
    ".c": "c", ".h": "c",
    ".cpp": "cpp", ".cc": "cpp", ".cxx": "cpp", ".hpp": "cpp", ".hh": "cpp",
    ".go": "go",
    ".rs": "rust",
    ".rb": "ruby",
    ".php": "php",
    ".swift": "swift",
    ".sh": "shell", ".bash": "shell", ".zsh": "shell",
    ".sql": "sql",
    ".lua": "lua",
    ".pl": "perl", ".pm": "perl",
    ".r": "r",
    ".css": "css", ".scss": "css", ".less": "css",
    ".yaml": "yaml", ".yml": "yaml",
    ".toml": "toml",
    ".xml": "xml",
}

_HASH = ("#",)
_C_STYLE = ("//", "/*", "*", "*/")

COMMENT_PREFIXES: Dict[str, Tuple[str, ...]] = {
    "python": _HASH, "ruby": _HASH, "shell": _HASH, "perl": _HASH, "r": _HASH,
    "yaml": _HASH, "toml": _HASH,
    "javascript": _C_STYLE, "typescript": _C_STYLE, "java": _C_STYLE, "kotlin": _C_STYLE,
    "scala": _C_STYLE, "csharp": _C_STYLE, "c": _C_STYLE, "cpp": _C_STYLE, "go": _C_STYLE,
    "rust": _C_STYLE, "swift": _C_STYLE, "css": ("/*", "*", "*/"),
    "php": ("//", "#", "/*", "*", "*/"),
    "sql": ("--", "/*", "*", "*/"),
    "lua": ("--",),
    "xml": ("<!--",),
}

# Languages whose /* ... */ comments may span lines
BLOCK_COMMENT_LANGUAGES = frozenset({
    "javascript", "typescript", "java", "kotlin", "scala", "csharp", "c", "cpp",
    "go", "rust", "swift", "css", "php", "sql",
})

_NOT_KEYWORD = r"(?!(?:if|else|for|foreach|while|switch|return|new|catch|throw|using|lock)\b)"
_JAVA_MODIFIERS = r"(?:(?:public|private|protected|internal|static|final|abstract|synchronized|override|virtual|async|sealed|partial|open)\s+)*"

# language -> (function patterns, class patterns, import patterns)
DECLARATION_PATTERNS: Dict[str, Tuple[List[str], List[str], List[str]]] = {
    "python": (
        [r"^\s*(?:async\s+)?def\s+(\w+)"],
        [r"^\s*class\s+(\w+)"],
        [r"^\s*import\s+([\w.]+)", r"^\s*from\s+([\w.]+)\s+import\b"],
    ),
    "javascript": (
        [
            r"^\s*(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*(\w+)",
            r"^\s*(?:export\s+)?(?:const|let|var)\s+(\w+)\s*=\s*(?:async\s+)?(?:function\b|\([^)]*\)\s*=>|\w+\s*=>)",
        ],
        [r"^\s*(?:export\s+)?(?:default\s+)?class\s+(\w+)"],
        [r"^\s*import\s+(?:.+?\s+from\s+)?['\"]([^'\"]+)['\"]", r"require\(\s*['\"]([^'\"]+)['\"]\s*\)"],
    ),
    "typescript": (
        [
            r"^\s*(?:export\s+)?(?:default\s+)?(?:async\s+)?function\s*\*?\s*(\w+)",
            r"^\s*(?:export\s+)?(?:const|let|var)\s+(\w+)\s*(?::[^=]+)?=\s*(?:async\s+)?(?:function\b|\([^)]*\)\s*(?::[^=]+)?=>|\w+\s*=>)",
        ],
        [r"^\s*(?:export\s+)?(?:default\s+)?(?:abstract\s+)?(?:class|interface|enum|type)\s+(\w+)"],
        [r"^\s*import\s+(?:.+?\s+from\s+)?['\"]([^'\"]+)['\"]"],
    ),
    "java": (
        [r"^\s*" + _NOT_KEYWORD + _JAVA_MODIFIERS + r"(?:<[^>]+>\s+)?[\w<>\[\],.?]+\s+(\w+)\s*\([^;]*$"],
        [r"^\s*" + _JAVA_MODIFIERS + r"(?:class|interface|enum|record)\s+(\w+)"],
        [r"^\s*import\s+(?:static\s+)?([\w.*]+)\s*;"],
    ),
    "kotlin": (
        [r"^\s*" + _JAVA_MODIFIERS + r"fun\s+(?:<[^>]+>\s*)?(?:\w+\.)?(\w+)"],
        [r"^\s*" + _JAVA_MODIFIERS + r"(?:data\s+|enum\s+)?(?:class|interface|object)\s+(\w+)"],
        [r"^\s*import\s+([\w.*]+)"],
    ),
    "scala": (
        [r"^\s*(?:override\s+)?(?:private\s+|protected\s+)?def\s+(\w+)"],
        [r"^\s*(?:case\s+)?(?:abstract\s+)?(?:class|object|trait)\s+(\w+)"],
        [r"^\s*import\s+([\w.{}, _]+)"],
    ),
    "csharp": (
        [r"^\s*" + _NOT_KEYWORD + _JAVA_MODIFIERS + r"[\w<>\[\],.?]+\s+(\w+)\s*\([^;]*$"],
        [r"^\s*" + _JAVA_MODIFIERS + r"(?:class|interface|struct|enum|record)\s+(\w+)"],
        [r"^\s*using\s+(?:static\s+)?([\w.]+)\s*;"],
    ),
    "c": (
        [r"^(?!\s*(?:if|while|for|switch|return|else)\b)[\w\*\s]+?\b(\w+)\s*\([^;]*\)\s*\{?\s*$"],
        [r"^\s*(?:typedef\s+)?(?:struct|union|enum)\s+(\w+)"],
        [r"^\s*#\s*include\s*[<\"]([^>\"]+)[>\"]"],
    ),
    "cpp": (
        [r"^(?!\s*(?:if|while|for|switch|return|else)\b)[\w\*&:<>\s]+?\b(\w+)\s*\([^;]*\)\s*(?:const\s*)?\{?\s*$"],
        [r"^\s*(?:template\s*<[^>]*>\s*)?(?:class|struct|union|enum(?:\s+class)?)\s+(\w+)"],
        [r"^\s*#\s*include\s*[<\"]([^>\"]+)[>\"]"],
    ),
    "go": (
        [r"^func\s+(?:\([^)]*\)\s*)?(\w+)"],
        [r"^type\s+(\w+)\s+(?:struct|interface)\b"],
        [r"^\s*import\s+(?:\w+\s+)?\"([^\"]+)\"", r"^\s+(?:\w+\s+)?\"([^\"]+)\"\s*$"],
    ),
    "rust": (
        [r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:const\s+)?(?:async\s+)?(?:unsafe\s+)?fn\s+(\w+)"],
        [r"^\s*(?:pub(?:\([^)]*\))?\s+)?(?:struct|enum|trait|type|union)\s+(\w+)"],
        [r"^\s*(?:pub\s+)?use\s+([\w:]+)"],
    ),
    "ruby": (
        [r"^\s*def\s+(?:self\.)?(\w+[?!=]?)"],
        [r"^\s*(?:class|module)\s+([\w:]+)"],
        [r"^\s*require(?:_relative)?\s*\(?\s*['\"]([^'\"]+)['\"]"],
    ),
    "php": (
        [r"^\s*(?:(?:public|private|protected|static|abstract|final)\s+)*function\s+&?\s*(\w+)"],
        [r"^\s*(?:abstract\s+|final\s+)?(?:class|interface|trait|enum)\s+(\w+)"],
        [r"^\s*use\s+([\w\\]+)", r"^\s*(?:require|include)(?:_once)?\s*\(?\s*['\"]([^'\"]+)['\"]"],
    ),
    "swift": (
        [r"^\s*(?:(?:public|private|internal|fileprivate|open|static|override|mutating)\s+)*func\s+(\w+)"],
        [r"^\s*(?:(?:public|private|internal|fileprivate|open|final)\s+)*(?:class|struct|protocol|enum|extension)\s+(\w+)"],
        [r"^\s*import\s+(\w+)"],
    ),
    "shell": (
        [r"^\s*function\s+([\w-]+)", r"^\s*([\w-]+)\s*\(\)\s*\{?"],
        [],
        [r"^\s*(?:source|\.)\s+(\S+)"],
    ),
    "sql": (
        [r"(?i)^\s*create\s+(?:or\s+replace\s+)?(?:function|procedure)\s+([\w.\"]+)"],
        [r"(?i)^\s*create\s+(?:or\s+replace\s+)?(?:table|view)\s+(?:if\s+not\s+exists\s+)?([\w.\"]+)"],
        [],
    ),
    "lua": (
        [r"^\s*(?:local\s+)?function\s+([\w.:]+)", r"^\s*(?:local\s+)?(\w+)\s*=\s*function\b"],
        [],
        [r"require\s*\(?\s*['\"]([^'\"]+)['\"]"],
    ),
    "perl": (
        [r"^\s*sub\s+(\w+)"],
        [r"^\s*package\s+([\w:]+)"],
        [r"^\s*(?:use|require)\s+([\w:]+)"],
    ),
    "r": (
        [r"^\s*(\w[\w.]*)\s*(?:<-|=)\s*function\b"],
        [r"^\s*setRefClass\(\s*['\"](\w+)['\"]"],
        [r"^\s*(?:library|require)\(\s*['\"]?(\w+)['\"]?\s*\)"],
    ),
}

_COMPILED: Dict[str, Tuple[List[Pattern], List[Pattern], List[Pattern]]] = {
    language: tuple([re.compile(p) for p in group] for group in groups)  # type: ignore[misc]
    for language, groups in DECLARATION_PATTERNS.items()
}

_MULTI_SPACE_RE = re.compile(r" {2,}")
_EXCESS_BLANK_LINES_RE = re.compile(r"\n(?:[ \t]*\n){3,}")


@dataclass
class CodeAnalysis:
    """Counters and declarations collected by analyze_code."""
    language: str
    line_count: int = 0
    code_lines: int = 0
    comment_lines: int = 0
    blank_lines: int = 0
    functions: List[str] = field(default_factory=list)
    classes: List[str] = field(default_factory=list)
    imports: List[str] = field(default_factory=list)
    sections: List[Section] = field(default_factory=list)


def declared_name(match: "re.Match") -> str:
    """First capturing group that fired; the number of groups if none did."""
    for group in match.groups():
        if group:
            return group
    return str(len(match.groups()))


def _is_comment(stripped: str, prefixes: Tuple[str, ...]) -> bool:
    return any(stripped.startswith(prefix) for prefix in prefixes)


def analyze_code(text: str, language: str) -> CodeAnalysis:
    """Single pass over the lines: counts plus function/class/import declarations."""
    analysis = CodeAnalysis(language=language)
    prefixes = COMMENT_PREFIXES.get(language, _HASH)
    functions, classes, imports = _COMPILED.get(language, ([], [], []))
    track_blocks = language in BLOCK_COMMENT_LANGUAGES
    in_block = False

    lines = text.split("\n")
    analysis.line_count = len(lines)
    for line in lines:
        stripped = line.strip()
        if not stripped:
            analysis.blank_lines += 1
            continue

        if in_block:
            analysis.comment_lines += 1
            if "*/" in stripped:
                in_block = False
            continue

        if _is_comment(stripped, prefixes):
            analysis.comment_lines += 1
            if track_blocks and stripped.startswith("/*") and "*/" not in stripped[2:]:
                in_block = True
            continue

        analysis.code_lines += 1

        for pattern in classes:
            match = pattern.search(line)
            if match:
                name = declared_name(match)
                analysis.classes.append(name)
                analysis.sections.append(Section(title=f"class {name}", content=stripped, level=1))
                break
        else:
            for pattern in functions:
                match = pattern.search(line)
                if match:
                    name = declared_name(match)
                    analysis.functions.append(name)
                    analysis.sections.append(Section(title=f"function {name}", content=stripped, level=2))
                    break

        for pattern in imports:
            match = pattern.search(line)
            if match:
                analysis.imports.append(declared_name(match))
                break

    return analysis


def clean_code(text: str) -> str:
    """Tabs to 4 spaces, runs of spaces to one, 3+ blank lines to one."""
    text = text.replace("\t", "    ")
    text = _MULTI_SPACE_RE.sub(" ", text)
    return _EXCESS_BLANK_LINES_RE.sub("\n\n", text)


def language_for(file_name: Optional[str]) -> str:
    return EXTENSION_LANGUAGES.get(get_extension(file_name) or "", "text")


class SourceCodeExtractor(TextExtractor):
    """Source code extractor with declaration analysis."""

    MIME_TYPES = frozenset({
        "text/x-python", "text/x-python-script", "application/x-python-code",
        "text/javascript", "application/javascript", "application/x-javascript",
        "application/typescript", "text/typescript",
        "text/x-java-source", "text/x-java", "text/x-kotlin", "text/x-scala",
        "text/x-csharp", "text/x-c", "text/x-csrc", "text/x-chdr",
        "text/x-c++", "text/x-c++src", "text/x-c++hdr",
        "text/x-go", "text/x-rust", "text/x-ruby", "application/x-ruby",
        "text/x-php", "application/x-httpd-php", "text/x-swift",
        "text/x-shellscript", "application/x-sh",
        "application/sql", "text/x-sql", "text/x-lua", "text/x-perl", "text/x-r",
        "text/css", "text/x-scss",
        "text/yaml", "application/x-yaml", "application/yaml", "application/toml",
        "text/xml", "application/xml",
    })
    EXTENSIONS = frozenset(EXTENSION_LANGUAGES)

    BASE_PROCESSING_MS = 10.0
    PROCESSING_MS_PER_KB = 2.0

    @property
    def name(self) -> str:
        """Return the name of this extractor."""
        return "source-code"

    def _validate(self, buffer: bytes, file_name: str) -> bool:
        return super()._validate(buffer, file_name) and b"\x00" not in buffer[:self.binary_sample_size]

    def _extract(self, buffer, file_name, options, started) -> ExtractedText:
        decoded = decode_bytes(buffer, options.encoding)
        raw = decoded.text.replace("\r\n", "\n")
        language = language_for(file_name)

        warnings = []
        if decoded.fallback:
            warnings.append(f"Content is not valid UTF-8; decoded as {decoded.encoding}")
        if language == "text":
            warnings.append("Unknown source extension; declarations not analyzed")

        analysis = analyze_code(raw, language)
        content = raw if options.preserve_formatting else clean_code(raw)

        structure = None
        if options.extract_structure:
            structure = DocumentStructure(
                headings=[section.title.split(" ", 1)[1] for section in analysis.sections],
                sections=analysis.sections,
                functions=analysis.functions,
                classes=analysis.classes,
                imports=analysis.imports,
            )

        return self._build_result(
            content=content,
            file_type="code",
            buffer=buffer,
            options=options,
            started=started,
            structure=structure,
            warnings=warnings,
            encoding=decoded.encoding,
            programming_language=language,
            line_count=analysis.line_count,
            code_lines=analysis.code_lines,
            comment_lines=analysis.comment_lines,
            blank_lines=analysis.blank_lines,
            function_count=len(analysis.functions),
            class_count=len(analysis.classes),
            import_count=len(analysis.imports),
            functions=analysis.functions,
            classes=analysis.classes,
            imports=analysis.imports,
        )
