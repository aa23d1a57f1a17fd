"""
Flat [NAME] substitution over repaired DOCX XML.

Tokens are looked up per paragraph on the text map, so a [NAME] token that Word
split across runs is still replaced. There are no loops or conditionals: every
token with a value is replaced, every token without one is left as literal text.
"""
import logging
import re
from dataclasses import dataclass, field

from docfill.text_map import W_BR, W_P, W_T, build_text_map_from_nodes, set_node_text
from docfill.xml_repair import parse_part, serialize_part

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"\[([A-Za-z][A-Za-z0-9_]*)\]")

CHECKBOX_CHECKED = "☑"
CHECKBOX_UNCHECKED = "☐"


@dataclass
class SubstitutionResult:
    xml: bytes | str
    replaced: int = 0
    unresolved: list[str] = field(default_factory=list)


def render_value(value) -> str | None:
    """
    Text for one field value: booleans become checkbox glyphs, lists are comma-joined,
    None means "no value" (the token stays in place).
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return CHECKBOX_CHECKED if value else CHECKBOX_UNCHECKED
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def _paragraph_groups(root) -> list[list]:
    """<w:t> nodes grouped by their nearest enclosing <w:p>, in document order."""
    # Keyed by the element: the dict holds a reference, so lxml keeps the same proxy
    groups: dict = {}
    for node in root.iter(W_T):
        paragraph = next(node.iterancestors(W_P), None)
        groups.setdefault(paragraph, []).append(node)
    return list(groups.values())


def _expand_line_breaks(node) -> None:
    """Split a <w:t> holding newlines into <w:t>, <w:br/>, <w:t>, ... siblings in the same run."""
    lines = (node.text or "").split("\n")
    set_node_text(node, lines[0])
    anchor = node
    for line in lines[1:]:
        br = node.makeelement(W_BR, {})
        anchor.addnext(br)
        t = node.makeelement(W_T, {})
        set_node_text(t, line)
        br.addnext(t)
        anchor = t


class TemplateSubstitutionEngine:
    """Replaces [NAME] tokens in one XML part with values from a field mapping."""

    def lookup(self, fields: dict, name: str):
        if name in fields:
            return fields[name]
        return fields.get(name.upper())

    def render(self, xml: bytes | str, fields: dict) -> SubstitutionResult:
        """
        fields: unbracketed name -> value (see normalize_field_keys).
        Returns the new XML, the number of tokens replaced and the names left unresolved.
        """
        root = parse_part(xml)
        replaced = 0
        unresolved = set()
        multiline = []

        for nodes in _paragraph_groups(root):
            full_text, text_map = build_text_map_from_nodes(nodes)
            matches = list(TOKEN_PATTERN.finditer(full_text))
            # Right to left so earlier offsets stay valid
            for m in reversed(matches):
                name = m.group(1)
                text = render_value(self.lookup(fields, name))
                if text is None:
                    unresolved.add(name)
                    continue
                touched = text_map.replace_span(m.start(), m.end(), text)
                replaced += 1
                if "\n" in text and touched:
                    multiline.append(touched[0].node)

        for node in dict.fromkeys(multiline):
            _expand_line_breaks(node)

        if unresolved:
            logger.debug("Left %d tokens unresolved: %s", len(unresolved), ", ".join(sorted(unresolved)))
        if not replaced:
            return SubstitutionResult(xml=xml, replaced=0, unresolved=sorted(unresolved))
        return SubstitutionResult(
            xml=serialize_part(root, as_text=isinstance(xml, str)),
            replaced=replaced,
            unresolved=sorted(unresolved),
        )


def substitute_fields(xml: bytes | str, fields: dict) -> SubstitutionResult:
    """Backward-compatible: delegates to TemplateSubstitutionEngine().render."""
    return TemplateSubstitutionEngine().render(xml, fields)
