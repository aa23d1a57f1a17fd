"""
Shared fixtures: WordprocessingML snippets, DOCX packages and the sample court tables.
"""
import sys
from io import BytesIO
from pathlib import Path

import pytest
from docx import Document
from pypdf import PdfWriter
from pypdf.generic import ArrayObject, DictionaryObject, FloatObject, NameObject, NumberObject, TextStringObject

_root = Path(__file__).resolve().parent.parent
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from docfill.jurisdiction import CourtTables, JurisdictionResolver

W_NS = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
DATA_DIR = _root / "data"


def make_part_xml(*paragraphs) -> bytes:
    """Each paragraph is a list of run texts; every text becomes its own <w:r><w:t>."""
    body = []
    for runs in paragraphs:
        r = "".join(f'<w:r><w:t xml:space="preserve">{text}</w:t></w:r>' for text in runs)
        body.append(f"<w:p>{r}</w:p>")
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        f'<w:document xmlns:w="{W_NS}"><w:body>{"".join(body)}</w:body></w:document>'
    ).encode("utf-8")


def make_docx(*paragraphs) -> bytes:
    """A real DOCX package (python-docx) with one paragraph per list of run texts."""
    doc = Document()
    for runs in paragraphs:
        p = doc.add_paragraph()
        for text in runs:
            p.add_run(text)
    buf = BytesIO()
    doc.save(buf)
    return buf.getvalue()


def docx_text(docx_bytes: bytes) -> list[str]:
    return [p.text for p in Document(BytesIO(docx_bytes)).paragraphs]


@pytest.fixture
def court_tables():
    """Sample tables loaded from data/."""
    return CourtTables(DATA_DIR / "Jurisdiction_Rules.csv", DATA_DIR / "Court_Info.csv")


@pytest.fixture
def resolver(court_tables):
    return JurisdictionResolver(court_tables)


def pdf_widget(name, ft, flags=0, states=None, options=None):
    annot = DictionaryObject({
        NameObject("/Type"): NameObject("/Annot"),
        NameObject("/Subtype"): NameObject("/Widget"),
        NameObject("/T"): TextStringObject(name),
        NameObject("/FT"): NameObject(ft),
        NameObject("/Rect"): ArrayObject([FloatObject(0), FloatObject(0), FloatObject(100), FloatObject(20)]),
    })
    if flags:
        annot[NameObject("/Ff")] = NumberObject(flags)
    if states:
        normal = DictionaryObject({NameObject(s): DictionaryObject() for s in states})
        annot[NameObject("/AP")] = DictionaryObject({NameObject("/N"): normal})
    if options:
        annot[NameObject("/Opt")] = ArrayObject([TextStringObject(o) for o in options])
    return annot


def make_form_pdf(*annots) -> bytes:
    """One-page PDF whose AcroForm holds the given widget annotations."""
    writer = PdfWriter()
    page = writer.add_blank_page(width=612, height=792)
    refs = ArrayObject([writer._add_object(a) for a in annots])
    page[NameObject("/Annots")] = refs
    writer.root_object[NameObject("/AcroForm")] = DictionaryObject({NameObject("/Fields"): ArrayObject(refs)})
    out = BytesIO()
    writer.write(out)
    return out.getvalue()


