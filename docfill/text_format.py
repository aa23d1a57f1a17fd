"""
Text helpers used by the derived-field rules: title casing, address abbreviations,
entity suffixes, amounts and counts.
"""
import re

SMALL_WORDS = ("of", "the", "and", "a", "an", "in", "on", "at", "to", "for", "with")
ACRONYMS = ("LLP", "LLC", "PC", "USA", "INC", "LTD", "CORP")

# Applied in this order, whole word, case-insensitive
ADDRESS_ABBREVIATIONS = (
    ("Court", "Ct."),
    ("Suite", "Ste."),
    ("Street", "St."),
    ("Avenue", "Ave."),
    ("Boulevard", "Blvd."),
    ("Floor", "Fl."),
    ("Drive", "Dr."),
    ("Road", "Rd."),
    ("Lane", "Ln."),
    ("Circle", "Cir."),
    ("Parkway", "Pkwy."),
)

STREET_SUFFIXES = ("St", "Dr", "Ter", "Pl", "Blvd", "Ave", "Rd", "Ln", "Ct", "Cir", "Pkwy", "Way")

LEGAL_ENTITY_SUFFIX = re.compile(
    r",\s*(an individual|a corporation|a limited liability company|an LLC|a partnership"
    r"|a sole proprietorship|etc\.?)$",
    re.IGNORECASE,
)

NUMBER_WORDS = {
    1: "ONE", 2: "TWO", 3: "THREE", 4: "FOUR", 5: "FIVE",
    6: "SIX", 7: "SEVEN", 8: "EIGHT", 9: "NINE", 10: "TEN",
}

_LEADING_FLOAT = re.compile(r"\d+\.?\d*|\.\d+")
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def to_title_case(value: str) -> str:
    """
    Lower-case everything, capitalize each word except small words after the first,
    then force known acronyms (compared without punctuation, e.g. "L.L.P.") to upper case.
    """
    if not value or not isinstance(value, str):
        return value
    words = re.split(r"\s+", value.lower())
    titled = []
    for i, word in enumerate(words):
        if i > 0 and word in SMALL_WORDS:
            titled.append(word)
        else:
            titled.append(word[:1].upper() + word[1:])
    out = []
    for word in titled:
        clean = re.sub(r"[^a-zA-Z0-9]", "", word).upper()
        out.append(clean if clean in ACRONYMS else word)
    return " ".join(out)


def standardize_address(address: str) -> str:
    if not address or not isinstance(address, str):
        return address
    for word, abbrev in ADDRESS_ABBREVIATIONS:
        address = re.sub(rf"\b{word}\b", abbrev, address, flags=re.IGNORECASE)
    return address


def add_street_suffix_periods(address: str) -> str:
    """'123 Main St' -> '123 Main St.'; suffixes already followed by a period are left alone."""
    if not address:
        return address
    for suffix in STREET_SUFFIXES:
        address = re.sub(rf"\b{suffix}(?!\.)\b", suffix + ".", address, flags=re.IGNORECASE)
    return address


def strip_entity_suffix(name: str) -> str:
    """'ACME Corp, a corporation' -> 'ACME Corp'."""
    return LEGAL_ENTITY_SUFFIX.sub("", name or "").strip()


def last_four_digits(value) -> str:
    if not value:
        return ""
    digits = re.sub(r"\D", "", str(value))
    return digits[-4:]


def parse_amount(value) -> float | None:
    """
    Strip everything except digits and dots, then read the longest leading number.
    '$35,000.00' -> 35000.0; '' or 'n/a' -> None.
    """
    if value is None or isinstance(value, bool):
        return None
    cleaned = re.sub(r"[^0-9.]", "", str(value))
    m = _LEADING_FLOAT.match(cleaned)
    if not m:
        return None
    return float(m.group(0))


def parse_leading_int(value) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    m = _LEADING_INT.match(str(value))
    return int(m.group(1)) if m else None


def format_count(value):
    """3 -> '3 (THREE)' for 1..10; anything else is returned unchanged."""
    n = parse_leading_int(value)
    if n is None or n not in NUMBER_WORDS:
        return value
    return f"{n} ({NUMBER_WORDS[n]})"


def split_court_address(address: str) -> tuple[str, str]:
    """
    Split '111 N Hill St, Room 1, Los Angeles, CA 90012' into
    ('111 N Hill St, Room 1', 'Los Angeles, CA 90012'): the last two comma segments
    are city and state-zip. Two segments split in half; one segment is all street.
    """
    parts = [p.strip() for p in (address or "").split(",")]
    if len(parts) >= 3:
        return ", ".join(parts[:-2]), f"{parts[-2]}, {parts[-1]}"
    if len(parts) == 2:
        return parts[0], parts[1]
    return address, ""


def same_text(a: str, b: str) -> bool:
    return (a or "").strip().lower() == (b or "").strip().lower()
