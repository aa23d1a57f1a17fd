"""
Text map over WordprocessingML text runs.

Word splits what the user sees as one word across several <w:t> elements. The map
concatenates every <w:t> in document order into one logical string and records the
[start, end) range each element contributes, so a character index found in the
logical string can be traced back to the exact element that holds it.

Mutations (delete_char, replace_span) edit the element text in place and then
re-partition the offsets, so the runs always cover the logical text without gaps.
"""
from dataclasses import dataclass, field

from docx.oxml.ns import qn

W_T = qn("w:t")
W_P = qn("w:p")
W_BR = qn("w:br")
XML_SPACE = "{http://www.w3.org/XML/1998/namespace}space"


def set_node_text(node, text: str) -> None:
    """Set <w:t> text, marking it xml:space="preserve" when edge whitespace would otherwise be dropped."""
    node.text = text
    if text and (text[0].isspace() or text[-1].isspace()):
        node.set(XML_SPACE, "preserve")


@dataclass
class TextRun:
    """One <w:t> element and its slice of the logical text."""

    node: object
    text: str
    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start

    def contains(self, index: int) -> bool:
        return self.start <= index < self.end


@dataclass
class TextMap:
    runs: list[TextRun] = field(default_factory=list)

    @property
    def text(self) -> str:
        """Current logical text (reflects mutations, unlike the snapshot returned by build_text_map)."""
        return "".join(r.text for r in self.runs)

    def _repartition(self) -> None:
        pos = 0
        for run in self.runs:
            run.start = pos
            pos += len(run.text)
            run.end = pos

    def find_run_at(self, index: int) -> tuple[TextRun, int] | None:
        """Return (run, local_offset) for the run containing index, or None when out of range."""
        for run in self.runs:
            if run.contains(index):
                return run, index - run.start
        return None

    def delete_char(self, index: int) -> bool:
        """
        Remove exactly one character at the logical index from the run that holds it.
        Only indices below the deleted one stay valid afterwards, so callers delete in
        descending index order.
        """
        found = self.find_run_at(index)
        if found is None:
            return False
        run, offset = found
        new_text = run.text[:offset] + run.text[offset + 1:]
        set_node_text(run.node, new_text)
        run.text = new_text
        self._repartition()
        return True

    def replace_span(self, start: int, end: int, replacement: str = "") -> list[TextRun]:
        """
        Replace logical text [start, end) with replacement. The first run touched by the
        span receives the replacement; every other touched run just loses the covered
        characters, so formatting outside the span is untouched. Returns the touched runs.
        """
        touched = []
        if start >= end:
            return touched
        for run in self.runs:
            if run.end <= start or run.start >= end:
                continue
            lo = max(start, run.start) - run.start
            hi = min(end, run.end) - run.start
            if not touched:
                new_text = run.text[:lo] + replacement + run.text[hi:]
            else:
                new_text = run.text[:lo] + run.text[hi:]
            set_node_text(run.node, new_text)
            run.text = new_text
            touched.append(run)
        self._repartition()
        return touched


def build_text_map_from_nodes(nodes) -> tuple[str, TextMap]:
    """Build (full_text, TextMap) over an explicit sequence of <w:t> elements."""
    runs = []
    parts = []
    pos = 0
    for node in nodes:
        text = node.text or ""
        runs.append(TextRun(node=node, text=text, start=pos, end=pos + len(text)))
        parts.append(text)
        pos += len(text)
    return "".join(parts), TextMap(runs)


def build_text_map(root) -> tuple[str, TextMap]:
    """
    Build the logical text and position map for every <w:t> under root (document order).
    An element without text runs yields ("", TextMap()).
    """
    if root is None:
        return "", TextMap()
    return build_text_map_from_nodes(root.iter(W_T))
