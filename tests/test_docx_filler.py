"""
Tests for DOCX package filling.
"""
import zipfile
from io import BytesIO

import pytest

from docfill.docx_filler import DocxFiller, fill_docx, read_package, write_package
from docfill.errors import TemplateError

from conftest import docx_text, make_docx


@pytest.fixture
def template():
    return make_docx(
        ['Plaintiff: "', "[PLAINTIFF", "_NAME]", '"'],
        ['Defendant: “[DEFENDANT_NAME]”'],
        ["[PROPOSED] JUDGMENT"],
    )


class TestDocxFiller:
    """scan() and fill() on real packages."""

    def test_scan(self, template):
        assert DocxFiller().scan(template) == ["DEFENDANT_NAME", "PLAINTIFF_NAME"]

    def test_fill_split_variable(self, template):
        result = DocxFiller().fill(template, {"[PLAINTIFF_NAME]": "Jane Smith", "DEFENDANT_NAME": "John Doe"})
        text = docx_text(result.docx)
        assert "Plaintiff: Jane Smith" in text
        assert "Defendant: John Doe" in text
        assert "[PROPOSED] JUDGMENT" in text
        assert result.replaced == 2
        assert result.variables == ["DEFENDANT_NAME", "PLAINTIFF_NAME"]
        assert result.unresolved == ["PROPOSED"]

    def test_missing_value_keeps_bare_token(self, template):
        result = fill_docx(template, {"PLAINTIFF_NAME": "Jane Smith"})
        text = docx_text(result.docx)
        assert "Defendant: [DEFENDANT_NAME]" in text
        assert "DEFENDANT_NAME" in result.unresolved

    def test_checkbox_and_multiline(self):
        template = make_docx(['"[IS_LIMITED]" Limited'], ['"[VAR_CREDITOR1_NAME]"'])
        result = fill_docx(template, {"IS_LIMITED": True, "VAR_CREDITOR1_NAME": "Acme\n1 Main St."})
        text = docx_text(result.docx)
        assert "☑ Limited" in text
        assert "Acme\n1 Main St." in text

    def test_not_a_zip(self):
        with pytest.raises(TemplateError):
            DocxFiller().fill(b"not a docx", {})
        with pytest.raises(TemplateError):
            DocxFiller().scan(b"not a docx")


class TestPackageIO:
    """Zip entries survive a fill."""

    def test_entries_kept_in_order(self, template):
        result = fill_docx(template, {"PLAINTIFF_NAME": "x"})
        with zipfile.ZipFile(BytesIO(template)) as before, zipfile.ZipFile(BytesIO(result.docx)) as after:
            assert before.namelist() == after.namelist()
            assert before.read("[Content_Types].xml") == after.read("[Content_Types].xml")

    def test_round_trip_untouched(self, template):
        infos, contents = read_package(template)
        out = write_package(infos, contents)
        _, again = read_package(out)
        assert again == contents
