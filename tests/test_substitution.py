"""
Tests for [NAME] substitution over repaired XML.
"""
from docfill.substitution import (
    CHECKBOX_CHECKED,
    CHECKBOX_UNCHECKED,
    TemplateSubstitutionEngine,
    _paragraph_groups,
    render_value,
    substitute_fields,
)
from docfill.text_map import W_BR, W_P, W_T
from docfill.xml_repair import parse_part

from conftest import make_part_xml


def _paragraph_texts(xml) -> list[str]:
    root = parse_part(xml)
    return ["".join(t.text or "" for t in p.iter(W_T)) for p in root.iter(W_P)]


class TestRenderValue:
    """Value to text."""

    def test_values(self):
        assert render_value(None) is None
        assert render_value(True) == CHECKBOX_CHECKED
        assert render_value(False) == CHECKBOX_UNCHECKED
        assert render_value(["a", "b"]) == "a, b"
        assert render_value(3) == "3"
        assert render_value("") == ""


class TestTemplateSubstitutionEngine:
    """render()."""

    def test_token_split_across_runs(self):
        xml = make_part_xml(["Hello [PLAIN", "TIFF_NAME]!"])
        result = TemplateSubstitutionEngine().render(xml, {"PLAINTIFF_NAME": "Jane"})
        assert result.replaced == 1
        assert _paragraph_texts(result.xml) == ["Hello Jane!"]

    def test_missing_value_left_literal(self):
        xml = make_part_xml(["[A] and [MISSING]"])
        result = substitute_fields(xml, {"A": "x"})
        assert _paragraph_texts(result.xml) == ["x and [MISSING]"]
        assert result.unresolved == ["MISSING"]

    def test_nothing_replaced_returns_same_object(self):
        xml = make_part_xml(["[PROPOSED]"])
        result = substitute_fields(xml, {})
        assert result.xml is xml
        assert result.replaced == 0

    def test_lowercase_token_uses_upper_key(self):
        result = substitute_fields(make_part_xml(["[name]"]), {"NAME": "Bob"})
        assert _paragraph_texts(result.xml) == ["Bob"]

    def test_booleans_render_as_checkboxes(self):
        result = substitute_fields(make_part_xml(["[IS_A] [IS_B]"]), {"IS_A": True, "IS_B": False})
        assert _paragraph_texts(result.xml) == [f"{CHECKBOX_CHECKED} {CHECKBOX_UNCHECKED}"]

    def test_multiline_value_becomes_line_breaks(self):
        result = substitute_fields(make_part_xml(["To: [ADDR]."]), {"ADDR": "Jane\n1 Main St."})
        root = parse_part(result.xml)
        assert len(list(root.iter(W_BR))) == 1
        assert [t.text for t in root.iter(W_T)] == ["To: Jane", "1 Main St.."]

    def test_tokens_do_not_span_paragraphs(self):
        xml = make_part_xml(["[NA"], ["ME]"])
        result = substitute_fields(xml, {"NAME": "x"})
        assert result.replaced == 0

    def test_repeated_tokens_all_replaced(self):
        result = substitute_fields(make_part_xml(["[A]-[A]", "[A]"]), {"A": "z"})
        assert result.replaced == 3
        assert _paragraph_texts(result.xml) == ["z-zz"]

    def test_many_paragraphs_keep_their_own_runs(self):
        paragraphs = [[f"[N{i}", "]"] for i in range(500)]
        fields = {f"N{i}": f"v{i}" for i in range(500)}
        result = substitute_fields(make_part_xml(*paragraphs), fields)
        assert result.replaced == 500
        assert _paragraph_texts(result.xml) == [f"v{i}" for i in range(500)]


class TestParagraphGroups:
    """Grouping <w:t> nodes by paragraph."""

    def test_groups_follow_document_order(self):
        root = parse_part(make_part_xml(["a", "b"], ["c"], [], ["d", "e", "f"]))
        groups = _paragraph_groups(root)
        assert [[t.text for t in g] for g in groups] == [["a", "b"], ["c"], ["d", "e", "f"]]
