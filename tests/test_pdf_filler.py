"""
Tests for AcroForm filling.
"""
from io import BytesIO

import pytest
from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError
from pypdf.generic import BooleanObject, DictionaryObject, NameObject

from docfill.errors import TemplateError
from docfill.pdf_filler import (
    CLEARED,
    FF_PUSHBUTTON,
    FF_RADIO,
    FILLED,
    SKIPPED,
    FieldKind,
    FormWidget,
    PdfFormFiller,
    apply_value,
    fill_field,
    match_field,
    probe_kind,
)

from conftest import make_form_pdf, pdf_widget


@pytest.fixture
def form_pdf():
    return make_form_pdf(
        pdf_widget("[PLAINTIFF_NAME]", "/Tx"),
        pdf_widget("[IS_LIMITED]", "/Btn", states=["/Yes", "/Off"]),
        pdf_widget("[IS_UNLIMITED]", "/Btn", states=["/On", "/Off"]),
        pdf_widget("[STATE]", "/Ch", options=["CA", "NV"]),
    )


class TestProbeKind:
    """Field kind from the field dictionary."""

    def test_kinds(self):
        assert probe_kind(pdf_widget("a", "/Tx")) == FieldKind.TEXT
        assert probe_kind(pdf_widget("a", "/Btn")) == FieldKind.BOOLEAN
        assert probe_kind(pdf_widget("a", "/Btn", flags=FF_RADIO)) == FieldKind.CHOICE
        assert probe_kind(pdf_widget("a", "/Btn", flags=FF_PUSHBUTTON)) == FieldKind.UNSUPPORTED
        assert probe_kind(pdf_widget("a", "/Ch")) == FieldKind.CHOICE
        assert probe_kind(pdf_widget("a", "/Sig")) == FieldKind.UNSUPPORTED


class TestMatchField:
    """Key to field matching order."""

    @pytest.fixture
    def widgets(self):
        return [
            FormWidget("form1.PlaintiffName", FieldKind.TEXT, DictionaryObject()),
            FormWidget("form1.DefendantName", FieldKind.TEXT, DictionaryObject()),
        ]

    def test_exact_short_name(self, widgets):
        assert match_field("PlaintiffName", widgets).name == "form1.PlaintiffName"

    def test_case_insensitive(self, widgets):
        assert match_field("defendantname", widgets).name == "form1.DefendantName"

    def test_partial(self, widgets):
        assert match_field("Name", widgets).name == "form1.PlaintiffName"
        assert match_field("defendant", widgets).name == "form1.DefendantName"

    def test_no_match(self, widgets):
        assert match_field("Zip", widgets) is None
        assert match_field("", widgets) is None


class TestApplyValue:
    """Per-kind writes."""

    def test_text(self):
        annot = pdf_widget("t", "/Tx", flags=1 << 25)
        w = FormWidget("t", FieldKind.TEXT, annot, widgets=[annot])
        res = apply_value("t", w, 42)
        assert res.status == FILLED
        assert annot["/V"] == "42"
        assert int(annot["/Ff"]) & (1 << 25) == 0

    def test_checkbox_cleared(self):
        annot = pdf_widget("c", "/Btn", states=["/Yes", "/Off"])
        w = FormWidget("c", FieldKind.BOOLEAN, annot, widgets=[annot])
        assert apply_value("c", w, "false").status == CLEARED
        assert annot["/AS"] == "/Off"
        assert apply_value("c", w, "1").status == FILLED
        assert annot["/V"] == "/Yes"

    def test_choice_outside_options_skipped(self):
        annot = pdf_widget("s", "/Ch", options=["CA", "NV"])
        w = FormWidget("s", FieldKind.CHOICE, annot, widgets=[annot], options=["CA", "NV"])
        res = apply_value("s", w, "TX")
        assert res.status == SKIPPED
        assert "/V" not in annot

    def test_unsupported_skipped(self):
        annot = pdf_widget("b", "/Btn", flags=FF_PUSHBUTTON)
        w = FormWidget("b", FieldKind.UNSUPPORTED, annot, widgets=[annot])
        res = apply_value("b", w, "x")
        assert res.status == SKIPPED
        assert res.to_dict()["reason"] == "unsupported field type"


class TestPdfFormFiller:
    """Whole-document fills."""

    def test_fill(self, form_pdf):
        data = {
            "[PLAINTIFF_NAME]": "Jane Smith",
            "[IS_LIMITED]": True,
            "[IS_UNLIMITED]": False,
            "[STATE]": "NV",
            "[NOT_ON_FORM]": "x",
        }
        out, report = PdfFormFiller().fill(form_pdf, data)
        fields = PdfReader(BytesIO(out)).get_fields()
        assert fields["[PLAINTIFF_NAME]"]["/V"] == "Jane Smith"
        assert fields["[IS_LIMITED]"]["/V"] == "/Yes"
        assert fields["[IS_UNLIMITED]"]["/V"] == "/Off"
        assert fields["[STATE]"]["/V"] == "NV"
        assert report.total_fields == 4
        assert report.filled_count == 3
        assert report.unmatched == ["[NOT_ON_FORM]"]
        assert report.to_dict()["unmatchedKeys"] == ["[NOT_ON_FORM]"]

    def test_one_bad_field_does_not_stop_others(self, form_pdf):
        _, report = PdfFormFiller().fill(form_pdf, {"[STATE]": "TX", "[PLAINTIFF_NAME]": "Jane"})
        assert [r.status for r in report.results] == [SKIPPED, FILLED]

    def test_field_names(self, form_pdf):
        names = PdfFormFiller().field_names(form_pdf)
        assert {"name": "[STATE]", "type": "choice"} in names

    def test_rejects_non_pdf(self):
        with pytest.raises(TemplateError, match="valid PDF"):
            PdfFormFiller().fill(b"PK\x03\x04", {})

    def test_rejects_pdf_without_form(self):
        writer = PdfWriter()
        writer.add_blank_page(width=100, height=100)
        buf = BytesIO()
        writer.write(buf)
        with pytest.raises(TemplateError, match="form fields"):
            PdfFormFiller().fill(buf.getvalue(), {"a": "b"})

    def test_report_lists_available_fields(self, form_pdf):
        _, report = PdfFormFiller().fill(form_pdf, {"[PLAINTIFF_NAME]": "Jane"})
        out = report.to_dict()
        assert out["totalFields"] == 4
        assert out["availableFields"] == [
            {"name": "[PLAINTIFF_NAME]", "type": "text"},
            {"name": "[IS_LIMITED]", "type": "boolean"},
            {"name": "[IS_UNLIMITED]", "type": "boolean"},
            {"name": "[STATE]", "type": "choice"},
        ]
        assert out["availableFields"] == PdfFormFiller().field_names(form_pdf)

    def test_sets_need_appearances(self, form_pdf):
        out, _ = PdfFormFiller().fill(form_pdf, {"[PLAINTIFF_NAME]": "Jane"})
        acro_form = PdfReader(BytesIO(out)).trailer["/Root"]["/AcroForm"]
        assert acro_form["/NeedAppearances"] == BooleanObject(True)

    def test_write_error_skips_only_that_field(self, form_pdf, monkeypatch):
        from docfill import pdf_filler

        real_apply = pdf_filler.apply_value

        def apply_or_fail(key, widget, value):
            if key == "[STATE]":
                raise PdfReadError("broken widget")
            return real_apply(key, widget, value)

        monkeypatch.setattr(pdf_filler, "apply_value", apply_or_fail)
        out, report = PdfFormFiller().fill(form_pdf, {"[STATE]": "CA", "[PLAINTIFF_NAME]": "Jane"})
        assert [r.status for r in report.results] == [SKIPPED, FILLED]
        assert "broken widget" in report.results[0].reason
        assert report.to_dict()["skippedFields"] == 1
        assert PdfReader(BytesIO(out)).get_fields()["[PLAINTIFF_NAME]"]["/V"] == "Jane"

    def test_password_protected_pdf_rejected(self, form_pdf):
        writer = PdfWriter(clone_from=PdfReader(BytesIO(form_pdf)))
        writer.encrypt(user_password="secret", owner_password="owner", algorithm="RC4-128")
        buf = BytesIO()
        writer.write(buf)
        with pytest.raises(TemplateError, match="password protected") as exc:
            PdfFormFiller().fill(buf.getvalue(), {"[PLAINTIFF_NAME]": "Jane"})
        assert exc.value.status_code == 400


class TestFillField:
    """Per-field error isolation."""

    def test_malformed_field_is_skipped(self):
        annot = pdf_widget("t", "/Tx")
        annot[NameObject("/Ff")] = NameObject("/NotANumber")
        w = FormWidget("t", FieldKind.TEXT, annot, widgets=[annot])
        res = fill_field("t", w, "x")
        assert res.status == SKIPPED
        assert res.reason.startswith("could not write value")
        assert "/V" not in annot

    def test_malformed_flags_probe_as_zero(self):
        annot = pdf_widget("b", "/Btn")
        annot[NameObject("/Ff")] = NameObject("/NotANumber")
        assert probe_kind(annot) == FieldKind.BOOLEAN
