"""
Byte-level text salvage for documents whose structure could not be parsed.

Best-effort only: decodes as UTF-8 with replacement, drops control
characters and keeps long printable runs as pseudo-paragraphs.
"""

import re
from typing import Iterable, List, Optional, Pattern

MIN_RUN_LENGTH = 8

_CONTROL_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\ufffd]")
_RUN_SPLIT_RE = re.compile(r"[\x00-\x1f\x7f-\x9f\ufffd]+")
_LETTERS_RE = re.compile(r"[^\W\d_]{3,}", re.UNICODE)
_SPACES_RE = re.compile(r"[ \t]+")


def strip_control_chars(text: str) -> str:
    """Replace control characters (except tab/newline/CR) with spaces."""
    return _CONTROL_RE.sub(" ", text)


def printable_runs(
    buffer: bytes,
    min_length: int = MIN_RUN_LENGTH,
    exclude: Optional[Pattern] = None,
) -> List[str]:
    """Printable runs of at least min_length characters that contain a word."""
    text = buffer.decode("utf-8", errors="replace")
    runs = []
    for run in _RUN_SPLIT_RE.split(text):
        run = _SPACES_RE.sub(" ", run).strip()
        if len(run) < min_length or not _LETTERS_RE.search(run):
            continue
        if exclude is not None and exclude.search(run):
            continue
        runs.append(run)
    return runs


def join_paragraphs(paragraphs: Iterable[str]) -> str:
    return "\n\n".join(p for p in paragraphs if p)


def salvage_text(
    buffer: bytes,
    min_length: int = MIN_RUN_LENGTH,
    exclude: Optional[Pattern] = None,
) -> str:
    """Recover readable text from an arbitrary buffer; empty string if none."""
    return join_paragraphs(printable_runs(buffer, min_length, exclude))
