"""
Shared fixtures: in-memory DOCX and PDF documents.
"""

import io
import zipfile
from typing import List

import pytest
from docx import Document

from blobtext.config import BlobtextSettings
from blobtext.models import ExtractionOptions

WORD_NAMESPACE = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"


def build_pdf(text: str = "Hello World", title: str = "Quarterly Report", author: str = "Jane Doe") -> bytes:
    """Single-page PDF with one uncompressed text-showing operator."""
    stream = f"BT /F1 12 Tf 72 720 Td ({text}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
        f"<< /Title ({title}) /Author ({author}) >>".encode("latin-1"),
    ]

    out = io.BytesIO()
    out.write(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(out.tell())
        out.write(b"%d 0 obj\n" % number + body + b"\nendobj\n")

    xref_offset = out.tell()
    out.write(b"xref\n0 %d\n" % (len(objects) + 1))
    out.write(b"0000000000 65535 f \n")
    for offset in offsets:
        out.write(b"%010d 00000 n \n" % offset)
    out.write(
        b"trailer\n<< /Size %d /Root 1 0 R /Info 6 0 R >>\nstartxref\n%d\n%%%%EOF\n"
        % (len(objects) + 1, xref_offset)
    )
    return out.getvalue()


def build_document_xml_only(paragraphs: List[str]) -> bytes:
    """ZIP holding just word/document.xml: unreadable by python-docx, scrapeable by regex."""
    body = "".join(
        f"<w:p><w:r><w:t xml:space=\"preserve\">{text}</w:t></w:r></w:p>"
        for text in paragraphs
    )
    xml = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<w:document xmlns:w="{WORD_NAMESPACE}"><w:body>{body}</w:body></w:document>'
    )
    out = io.BytesIO()
    with zipfile.ZipFile(out, "w") as archive:
        archive.writestr("word/document.xml", xml)
    return out.getvalue()


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def settings():
    """Default configuration, independent of any config files on disk."""
    return BlobtextSettings()


@pytest.fixture
def structure_options():
    return ExtractionOptions(extract_structure=True)


@pytest.fixture
def docx_bytes():
    """Report with headings, a list item, a table and core properties."""
    document = Document()
    document.core_properties.title = "Quarterly Report"
    document.core_properties.author = "Jane Doe"
    document.add_heading("Overview", level=1)
    document.add_paragraph("This is the first paragraph of the report and it has some words.")
    document.add_paragraph("First action item", style="List Bullet")
    document.add_heading("Details", level=2)
    document.add_paragraph("Details paragraph text.")
    table = document.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Name"
    table.cell(0, 1).text = "Value"
    table.cell(1, 0).text = "alpha"
    table.cell(1, 1).text = "1"

    out = io.BytesIO()
    document.save(out)
    return out.getvalue()


@pytest.fixture
def pdf_bytes():
    return build_pdf()


@pytest.fixture
def make_pdf():
    return build_pdf


@pytest.fixture
def make_xml_only_docx():
    return build_document_xml_only
