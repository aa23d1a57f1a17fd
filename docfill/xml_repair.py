"""
Repair DOCX XML so quoted variables become plain [VAR] tokens.

Word splits variables across multiple <w:t> nodes, so the quotes around "[VAR]"
can sit in different elements than the brackets. The repair works on the text map:

  1. parse the part and build the map of all <w:t> nodes
  2. find "[VAR]" in the concatenated text (one immutable snapshot)
  3. plan the quote deletions, highest index first
  4. delete each quote from the exact node that holds it
  5. serialize the DOM back to XML

Only quoted variables are touched:
  "[VAR_NAME]" -> [VAR_NAME]
  [PROPOSED]   -> [PROPOSED]  (no quotes, left as literal text)
"""
import logging
from dataclasses import dataclass, field

from lxml import etree

from docfill.text_map import build_text_map
from docfill.variable_matcher import VariableMatch, find_quoted_variables

logger = logging.getLogger(__name__)

DOCX_TEXT_PARTS = (
    "word/document.xml",
    "word/header1.xml",
    "word/header2.xml",
    "word/header3.xml",
    "word/footer1.xml",
    "word/footer2.xml",
    "word/footer3.xml",
)

_PARSER = etree.XMLParser(resolve_entities=False, remove_blank_text=False, huge_tree=True)


@dataclass
class RepairResult:
    xml: bytes | str
    variables: list[str] = field(default_factory=list)
    changed: bool = False


def parse_part(xml: bytes | str):
    """Parse a document part. str input is encoded first so an encoding declaration is accepted."""
    data = xml.encode("utf-8") if isinstance(xml, str) else xml
    return etree.fromstring(data, _PARSER)


def serialize_part(root, as_text: bool = False) -> bytes | str:
    tree = root.getroottree()
    standalone = tree.docinfo.standalone
    kwargs = {"xml_declaration": True, "encoding": "UTF-8"}
    if standalone is not None:
        kwargs["standalone"] = standalone
    out = etree.tostring(tree, **kwargs)
    return out.decode("utf-8") if as_text else out


def plan_quote_deletions(matches: list[VariableMatch]) -> list[int]:
    """
    Order the quote indices so every deletion happens before any deletion at a lower index.
    Matches are sorted by close index, then open index, both descending; for each match
    the close quote goes before the open quote.
    """
    ordered = sorted(matches, key=lambda m: (m.close_index, m.open_index), reverse=True)
    plan = []
    for m in ordered:
        plan.append(m.close_index)
        plan.append(m.open_index)
    return plan


def repair_xml_content(xml: bytes | str) -> RepairResult:
    """
    Strip the quotes around every quoted variable in one XML part.
    A part without quoted variables is returned as-is (same object).
    """
    root = parse_part(xml)
    full_text, text_map = build_text_map(root)
    matches = find_quoted_variables(full_text)
    if not matches:
        return RepairResult(xml=xml, variables=[], changed=False)

    variables = sorted({m.name for m in matches})
    logger.debug("Found %d quoted variables: %s", len(matches), ", ".join(m.name for m in matches))

    for index in plan_quote_deletions(matches):
        found = text_map.find_run_at(index)
        if found is None:
            continue
        _run, offset = found
        logger.debug("Removing quote at index %d (local offset %d)", index, offset)
        text_map.delete_char(index)

    return RepairResult(
        xml=serialize_part(root, as_text=isinstance(xml, str)),
        variables=variables,
        changed=True,
    )


def scan_xml_for_variables(xml: bytes | str) -> list[str]:
    """Quoted variable names in one part, without modifying it."""
    root = parse_part(xml)
    full_text, _ = build_text_map(root)
    return sorted({m.name for m in find_quoted_variables(full_text)})


class XmlRepairPipeline:
    """
    Runs the quote repair over the body, header and footer parts of a DOCX package.
    Parts are addressed by fixed names; a part missing from the package is skipped.
    """

    def __init__(self, part_names: tuple[str, ...] = DOCX_TEXT_PARTS):
        self._part_names = part_names

    @property
    def part_names(self) -> tuple[str, ...]:
        return self._part_names

    def repair_parts(self, parts: dict[str, bytes]) -> tuple[dict[str, bytes], list[str]]:
        """
        parts: part name -> XML bytes (any extra entries are ignored).
        Returns (changed parts only, sorted unique variable names across all parts).
        """
        changed = {}
        all_vars = set()
        for name in self._part_names:
            content = parts.get(name)
            if content is None:
                continue
            result = repair_xml_content(content)
            all_vars.update(result.variables)
            if result.changed:
                logger.info("Repaired %s (%d vars: %s)", name, len(result.variables), ", ".join(result.variables))
                changed[name] = result.xml
        logger.info("Total quoted variables processed: %d", len(all_vars))
        return changed, sorted(all_vars)

    def scan_parts(self, parts: dict[str, bytes]) -> list[str]:
        found = set()
        for name in self._part_names:
            content = parts.get(name)
            if content is None:
                continue
            variables = scan_xml_for_variables(content)
            if variables:
                logger.info("%s: found %d vars: %s", name, len(variables), ", ".join(variables))
            found.update(variables)
        return sorted(found)


def repair_docx_parts(parts: dict[str, bytes]) -> tuple[dict[str, bytes], list[str]]:
    """Backward-compatible: delegates to XmlRepairPipeline().repair_parts."""
    return XmlRepairPipeline().repair_parts(parts)
