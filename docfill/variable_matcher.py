"""
Find quoted variable tokens ("[VAR_NAME]") in the logical text of a document part.

Only quoted tokens are fillable. Plain bracket text such as [PROPOSED] is an
instruction to the reader and is left alone.
"""
import re
from dataclasses import dataclass

QUOTE_CHARS = '"“”'

# (open quote) [ (name) ] (close quote); open and close glyphs need not match
QUOTED_VARIABLE_PATTERN = re.compile(
    r'(["“”])(\[)([A-Za-z][A-Za-z0-9_]*)(\])(["“”])'
)


@dataclass(frozen=True)
class VariableMatch:
    name: str
    open_quote: str
    open_index: int
    close_quote: str
    close_index: int
    full_match: str

    @property
    def span(self) -> tuple[int, int]:
        return self.open_index, self.close_index + 1


def find_quoted_variables(full_text: str) -> list[VariableMatch]:
    """All quoted variables left to right, non-overlapping, with the index of each quote character."""
    matches = []
    for m in QUOTED_VARIABLE_PATTERN.finditer(full_text or ""):
        open_quote, open_bracket, name, close_bracket, close_quote = m.groups()
        open_index = m.start()
        close_index = open_index + len(open_quote) + len(open_bracket) + len(name) + len(close_bracket)
        matches.append(
            VariableMatch(
                name=name.upper(),
                open_quote=open_quote,
                open_index=open_index,
                close_quote=close_quote,
                close_index=close_index,
                full_match=m.group(0),
            )
        )
    return matches


def scan_variables(full_text: str) -> list[str]:
    """Sorted unique variable names found in full_text."""
    return sorted({m.name for m in find_quoted_variables(full_text)})
