"""
Court / venue resolution from debtor postal code and demand amount.

The rule table maps (postal code, case type) to one or more courts. With several
rows for the same key the table either carries a mandatory geographic Condition
(split) or offers an optional venue choice with a default. The resolver never
raises for a miss; it returns NotFound or NeedsSelection and the caller re-invokes
with a selection once the user picks one.
"""
import csv
import logging
import re
import threading
from dataclasses import dataclass
from pathlib import Path

from docfill.errors import CourtDataError
from docfill.text_format import parse_amount

logger = logging.getLogger(__name__)

LIMITED = "Limited"
UNLIMITED = "Unlimited"
LIMITED_CASE_THRESHOLD = 35000

SPLIT = "split"
CHOICE = "choice"

# CSV header aliases: first one present wins
_RULE_COLUMNS = {
    "postal_code": ("ZipCode", "PostalCode", "Zip"),
    "case_type": ("CaseType",),
    "court_name": ("CourtName", "Courthouse"),
    "condition": ("Condition",),
    "is_default": ("Is_Default", "IsDefault"),
}
_COURT_COLUMNS = {
    "name": ("Courthouse", "CourtName"),
    "address": ("Address",),
    "district": ("District",),
}


@dataclass(frozen=True)
class JurisdictionRule:
    postal_code: str
    case_type: str
    court_name: str
    condition: str = ""
    is_default: bool = False


@dataclass(frozen=True)
class CourtInfo:
    name: str
    address: str = ""
    district: str = ""


@dataclass(frozen=True)
class Resolved:
    court_name: str
    address: str
    district: str
    case_type: str

    def to_dict(self) -> dict:
        return {
            "success": True,
            "courtName": self.court_name,
            "courtAddress": self.address,
            "courtDistrict": self.district,
            "caseType": self.case_type.lower(),
        }


@dataclass(frozen=True)
class NeedsSelection:
    kind: str
    options: tuple[str, ...]
    case_type: str
    default_option: str | None = None

    def to_dict(self) -> dict:
        out = {
            "success": False,
            "needsSelection": True,
            "type": self.kind,
            "options": list(self.options),
            "caseType": self.case_type.lower(),
        }
        if self.kind == CHOICE:
            out["defaultOption"] = self.default_option
        return out


@dataclass(frozen=True)
class NotFound:
    reason: str
    case_type: str

    def to_dict(self) -> dict:
        return {"success": False, "error": self.reason, "caseType": self.case_type.lower()}


ResolutionResult = Resolved | NeedsSelection | NotFound


def classify_case_type(amount) -> str:
    """
    Limited when the amount parses to 0 < x <= 35000, else Unlimited.
    A missing, zero or unparsable amount defaults to Unlimited here, unlike the
    IS_LIMITED / IS_UNLIMITED flags, which leave both false in that case.
    """
    value = parse_amount(amount) if amount else None
    if value is not None and 0 < value <= LIMITED_CASE_THRESHOLD:
        return LIMITED
    return UNLIMITED


def normalize_court_name(name: str) -> str:
    return re.sub(r"\s+", " ", (name or "").strip().lower())


def _pick(row: dict, aliases: tuple[str, ...]) -> str:
    for column in aliases:
        if column in row and row[column] is not None:
            return str(row[column]).strip()
    return ""


def _read_csv(path: Path) -> list[dict]:
    with open(path, newline="", encoding="utf-8-sig") as f:
        return [dict(row) for row in csv.DictReader(f)]


def rules_from_rows(rows: list[dict]) -> list[JurisdictionRule]:
    rules = []
    for row in rows:
        rules.append(
            JurisdictionRule(
                postal_code=_pick(row, _RULE_COLUMNS["postal_code"]),
                case_type=_pick(row, _RULE_COLUMNS["case_type"]),
                court_name=_pick(row, _RULE_COLUMNS["court_name"]),
                condition=_pick(row, _RULE_COLUMNS["condition"]),
                is_default=_pick(row, _RULE_COLUMNS["is_default"]).lower() == "true",
            )
        )
    return rules


def courts_from_rows(rows: list[dict]) -> list[CourtInfo]:
    return [
        CourtInfo(
            name=_pick(row, _COURT_COLUMNS["name"]),
            address=_pick(row, _COURT_COLUMNS["address"]),
            district=_pick(row, _COURT_COLUMNS["district"]),
        )
        for row in rows
    ]


class CourtTables:
    """
    Jurisdiction rules and court info, loaded once on first use and read-only after.
    Concurrent first calls to ensure_loaded() coalesce into a single load.
    """

    def __init__(self, rules_path: Path | str | None = None, court_info_path: Path | str | None = None):
        self._rules_path = Path(rules_path) if rules_path else None
        self._court_info_path = Path(court_info_path) if court_info_path else None
        self._rules: tuple[JurisdictionRule, ...] | None = None
        self._courts: tuple[CourtInfo, ...] | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_rows(cls, rules: list, courts: list) -> "CourtTables":
        """Build already-loaded tables from JurisdictionRule/CourtInfo objects or raw CSV-style dicts."""
        tables = cls()
        tables._rules = tuple(rules_from_rows(rules) if rules and isinstance(rules[0], dict) else rules)
        tables._courts = tuple(courts_from_rows(courts) if courts and isinstance(courts[0], dict) else courts)
        return tables

    @property
    def loaded(self) -> bool:
        return self._rules is not None and self._courts is not None

    def ensure_loaded(self) -> None:
        if self.loaded:
            return
        with self._lock:
            if self.loaded:
                return
            if self._rules_path is None or self._court_info_path is None:
                raise CourtDataError("Court table paths are not configured")
            try:
                rules = tuple(rules_from_rows(_read_csv(self._rules_path)))
                courts = tuple(courts_from_rows(_read_csv(self._court_info_path)))
            except (OSError, csv.Error, UnicodeDecodeError) as e:
                raise CourtDataError(f"Failed to load court tables: {e}") from e
            logger.info("Loaded %d jurisdiction rules and %d courts", len(rules), len(courts))
            self._courts = courts
            self._rules = rules

    @property
    def rules(self) -> tuple[JurisdictionRule, ...]:
        self.ensure_loaded()
        return self._rules

    @property
    def courts(self) -> tuple[CourtInfo, ...]:
        self.ensure_loaded()
        return self._courts

    def find_court(self, court_name: str) -> CourtInfo | None:
        key = normalize_court_name(court_name)
        for court in self.courts:
            if normalize_court_name(court.name) == key:
                return court
        return None


_tables: CourtTables | None = None
_tables_lock = threading.Lock()


def get_court_tables() -> CourtTables:
    """Process-wide tables backed by the configured CSV files."""
    global _tables
    if _tables is None:
        with _tables_lock:
            if _tables is None:
                from docfill.config import Config
                cfg = Config()
                _tables = CourtTables(cfg.JURISDICTION_RULES_PATH, cfg.COURT_INFO_PATH)
    return _tables


class JurisdictionResolver:
    """
    Start -> classify case type -> filter rows -> NotFound | Resolved | NeedsSelection.
    One call is terminal; there is no retry or backtracking.
    """

    def __init__(self, tables: CourtTables | None = None):
        self._tables = tables

    @property
    def tables(self) -> CourtTables:
        if self._tables is None:
            self._tables = get_court_tables()
        return self._tables

    def _resolve_row(self, row: JurisdictionRule, postal_code: str, case_type: str) -> ResolutionResult:
        name = row.court_name
        if not name.strip() or name.strip().lower() == "nan":
            return NotFound(f"No court assigned for ZIP code {postal_code} ({case_type} cases)", case_type)
        court = self.tables.find_court(name)
        return Resolved(
            court_name=name,
            address=court.address if court else "",
            district=court.district if court else "",
            case_type=case_type,
        )

    def resolve(self, postal_code, amount=None, selection: str | None = None) -> ResolutionResult:
        postal_code = str(postal_code or "").strip()
        selection = (selection or "").strip() or None
        case_type = classify_case_type(amount)

        matches = [r for r in self.tables.rules if r.postal_code == postal_code and r.case_type == case_type]

        if not matches:
            logger.info("ZIP code %s not found for %s cases", postal_code, case_type)
            return NotFound(f"ZIP code {postal_code} not found in court database for {case_type} cases", case_type)

        if len(matches) == 1:
            return self._resolve_row(matches[0], postal_code, case_type)

        if any(r.condition for r in matches):
            # Geographic split: a selection is mandatory
            if selection:
                for row in matches:
                    if row.condition == selection:
                        return self._resolve_row(row, postal_code, case_type)
            options = tuple(dict.fromkeys(r.condition for r in matches if r.condition))
            logger.info("ZIP code %s requires a split selection from %s", postal_code, list(options))
            return NeedsSelection(kind=SPLIT, options=options, case_type=case_type)

        # Venue choice: optional, with a default
        if selection:
            for row in matches:
                if row.court_name == selection:
                    return self._resolve_row(row, postal_code, case_type)
        options = tuple(r.court_name for r in matches)
        default = next((r.court_name for r in matches if r.is_default), options[0])
        logger.info("ZIP code %s offers a venue choice from %s", postal_code, list(options))
        return NeedsSelection(kind=CHOICE, options=options, case_type=case_type, default_option=default)


def determine_court(postal_code, amount=None, selection: str | None = None) -> ResolutionResult:
    """Backward-compatible: delegates to JurisdictionResolver().resolve."""
    return JurisdictionResolver().resolve(postal_code, amount, selection)
