"""
Derived field rules.

Computes the synthesized fields the templates use (composite names, address
blocks, checkbox flags, court fields) from the raw extracted fields. Rules run in
a fixed order and each one reads only raw fields or fields written by an earlier
rule, so the order in RULES is part of the behaviour.
"""
import logging
import re

from docfill.errors import CourtDataError
from docfill.fields import FieldSet, load_field_payload, sanitize_all_values
from docfill.jurisdiction import LIMITED_CASE_THRESHOLD, JurisdictionResolver, NeedsSelection, Resolved
from docfill.text_format import (
    add_street_suffix_periods,
    format_count,
    last_four_digits,
    parse_amount,
    same_text,
    split_court_address,
    standardize_address,
    strip_entity_suffix,
    to_title_case,
)

logger = logging.getLogger(__name__)

LIMITED_LABEL = "Limited Civil Case"
UNLIMITED_LABEL = "Unlimited Civil Case"
MAILING_SAME_AS_STREET = "Same as street address"
ASSIGNEE_CUES = ("assignee", "successor", "buyer")
MAX_ATTORNEYS = 10

BREACH_OF_CONTRACT_FLAGS = {
    "IS_BREACH_OF_CONTRACT_06": True,
    "IS_NOT_COMPLEX": True,
    "IS_COMPLEX": False,
    "IS_MONETARY": True,
    "IS_NON_MONETARY": False,
    "IS_NOT_CLASS_ACTION": True,
    "IS_CLASS_ACTION": False,
    "IS_REASON5": True,
}


def _strip_trailing_comma(value: str) -> str:
    return re.sub(r",\s*$", "", value).strip()


def _city_state_zip(city: str, state: str, zip_code: str) -> str:
    return f"{city}, {state} {zip_code}"


class DerivedFieldPipeline:
    """
    Runs the derivation rules over one request's field dict.

    The dict is mutated in place (and returned). Keys may be "[NAME]" or "NAME";
    reads accept either spelling and writes go back to the spelling already present.
    """

    RULES = (
        "coalesce_nulls",
        "last_four_identifiers",
        "debtor_address",
        "firm_name",
        "attorney_names",
        "firm_city_state_zip",
        "unknown_identifier_flags",
        "attorney_with_address",
        "attorneys_with_sbn",
        "attorney_emails",
        "firm_full_address",
        "defendant_identity",
        "defendant_address_blocks",
        "monetary_classification",
        "jurisdiction",
        "court_mailing_address",
        "plaintiff",
        "court_county",
        "case_name",
        "breach_of_contract",
        "number_of_causes",
        "judgment_creditor",
        "stay_of_enforcement",
        "certified_abstract",
        "case_number_mirror",
    )

    def __init__(self, resolver: JurisdictionResolver | None = None):
        self._resolver = resolver

    @property
    def resolver(self) -> JurisdictionResolver:
        if self._resolver is None:
            self._resolver = JurisdictionResolver()
        return self._resolver

    def run(self, data: dict) -> dict:
        fields = FieldSet(data)
        for name in self.RULES:
            getattr(self, name)(fields)
        return data

    # --- cleanup ---

    def coalesce_nulls(self, f: FieldSet) -> None:
        for key, value in list(f.data.items()):
            if value is None or value == "null":
                f.data[key] = ""

    def last_four_identifiers(self, f: FieldSet) -> None:
        for name in ("DEBTOR1_DL_LAST4", "DEBTOR1_SS_LAST4", "DEBTOR2_DL_LAST4", "DEBTOR2_SS_LAST4"):
            if f.get(name):
                f.set(name, last_four_digits(f.get(name)))

    def debtor_address(self, f: FieldSet) -> None:
        address = f.text("DEBTOR1_ADDRESS")
        if address:
            f.set("DEBTOR1_ADDRESS", to_title_case(_strip_trailing_comma(address)))
        city = f.text("DEBTOR1_CITY")
        if city:
            f.set("DEBTOR1_CITY", to_title_case(city))

    # --- firm and attorneys ---

    def firm_name(self, f: FieldSet) -> None:
        firm = to_title_case(f.text("FIRM_NAME"))
        if firm:
            f.set("FIRM_NAME", firm)
            f.set("VAR_FIRM_FULL_NAME", firm)
            f.set("VAR_FIRM_FULL_NAME_CAPITAL", firm.upper())

    def attorney_names(self, f: FieldSet) -> None:
        atty = f.text("ATTY_NAME")
        if atty:
            sbn = f.text("ATTY_SBN")
            f.set("VAR_ATTY1_NAME", f"{atty}, SBN: {sbn}" if sbn else atty)
        atty2 = f.text("ATTY_NAME2")
        if atty2:
            sbn2 = f.text("ATTY_SBN2")
            f.set("VAR_ATTY2_NAME", f"{atty2}, SBN: {sbn2}" if sbn2 else atty2)
            f.set("VAR_CAPITAL_ATTY_NAME2", atty2.upper())

    def firm_city_state_zip(self, f: FieldSet) -> None:
        city, state, zip_code = f.text("FIRM_CITY"), f.text("FIRM_STATE"), f.text("FIRM_ZIP")
        if city and state and zip_code:
            f.set("VAR_CITY_STATE_ZIP", _city_state_zip(city, state, zip_code))

    def unknown_identifier_flags(self, f: FieldSet) -> None:
        if not f.text("DEBTOR1_DL_LAST4").strip():
            f.set("IS_DEBTOR1_DL_UNKNOWN", True)
        if not f.text("DEBTOR1_SS_LAST4").strip():
            f.set("IS_DEBTOR1_SS_UNKNOWN", True)

    def attorney_with_address(self, f: FieldSet) -> None:
        """Associate name (SBN and digits removed) + ', Esq.', firm, address line, phone; space-joined."""
        atty2 = f.text("ATTY_NAME2")
        firm = to_title_case(f.text("FIRM_NAME"))
        address, city = f.text("FIRM_ADDRESS"), f.text("FIRM_CITY")
        if not (atty2 or firm or address or city):
            return

        parts = []
        if atty2:
            clean = atty2
            if "SBN" in clean:
                clean = clean[: clean.index("SBN")].strip()
            clean = _strip_trailing_comma(re.sub(r"\d+", "", clean))
            parts.append(f"{clean}, Esq.")
        if firm:
            parts.append(firm)
        formatted = standardize_address(address)
        if formatted or city:
            parts.append(f"{formatted}, {_city_state_zip(city, f.text('FIRM_STATE'), f.text('FIRM_ZIP'))}")
        phone = f.text("FIRM_PHONE")
        if phone:
            parts.append(phone)

        line = " ".join(parts)
        if line:
            f.set("VAR_ATTY_NAME_WITH_ADDRESS", line)

    def attorneys_with_sbn(self, f: FieldSet) -> None:
        attorneys = []
        for i in range(1, MAX_ATTORNEYS + 1):
            suffix = "" if i == 1 else str(i)
            name = f.text(f"ATTY_NAME{suffix}")
            if not name:
                continue
            sbn = f.text(f"ATTY_SBN{suffix}")
            attorneys.append(f"{name}, Esq., SBN {sbn}" if sbn else name)
            if i == 2:
                f.set("VAR_ATTY_NAME2", f"{name}, Esq.")
        if attorneys:
            f.set("VAR_ATTY_WITH_SBN", "; ".join(attorneys))

    def attorney_emails(self, f: FieldSet) -> None:
        emails = [e for e in (f.text("ATTY_EMAIL"), f.text("ATTY_EMAIL2")) if e]
        if emails:
            f.set("VAR_ATTY_EMAIL", ", ".join(emails))

    def firm_full_address(self, f: FieldSet) -> None:
        firm = to_title_case(f.text("FIRM_NAME"))
        address, city = f.text("FIRM_ADDRESS"), f.text("FIRM_CITY")
        if not (firm or address or city):
            return
        state, zip_code = f.text("FIRM_STATE"), f.text("FIRM_ZIP")
        address_parts = [p for p in (standardize_address(address), city) if p]
        state_zip = " ".join(p for p in (state, zip_code) if p)
        if state_zip:
            address_parts.append(state_zip)
        address_line = ", ".join(address_parts)

        full = " ".join(p for p in (firm, address_line) if p)
        if full:
            f.set("VAR_FIRM_FULL_ADDR", full)
        if address_line:
            f.set("VAR_FIRM_FULL_ADDR_NO_FIRM", address_line)

    # --- defendant ---

    def defendant_identity(self, f: FieldSet) -> None:
        defendant = f.text("DEFENDANT_NAME")
        if not defendant:
            return
        clean = strip_entity_suffix(defendant)
        f.set("VAR_DEFENDANT_WITH_DOES", f"{clean}, an individual; and DOES 1 through 10, inclusive")
        f.set("VAR_DEFENDANT_NAME", clean)
        f.set("VAR_DEFENDANT_NAME_ET_AL", f"{clean}, et al.")
        f.set("VAR_DEFENDANT_INDIVIDUAL", f"{clean}, an individual")
        f.set("DEFENDANT_NAME_P2", f"{clean}, et al.")

    def defendant_address_blocks(self, f: FieldSet) -> None:
        defendant = f.text("DEFENDANT_NAME")
        if not defendant:
            return
        address = f.text("DEBTOR1_ADDRESS")
        last_line = _city_state_zip(f.text("DEBTOR1_CITY"), f.text("DEBTOR1_STATE"), f.text("DEBTOR1_ZIP"))
        f.set("VAR_DEFENDANT_NAME_WITH_ADDRESS", f"{defendant}, an individual\n{address}\n{last_line}")
        f.set("VAR_DEFENDANT_NAME_WITH_ADDRESS_NO_INDIVIDUAL", f"{defendant}\n{address}\n{last_line}")
        service = (f"{defendant},", f"{add_street_suffix_periods(address)},", last_line)
        f.set("VAR_DEFENDANT_SERVICE_ADDRESS", " ".join(service))

    # --- case type and court ---

    @staticmethod
    def _demand_amount(f: FieldSet) -> str:
        return f.text("DEMAND_AMOUNT") or f.text("JUDGMENT_TOTAL_AMOUNT")

    def monetary_classification(self, f: FieldSet) -> None:
        """
        Amount <= LIMITED_CASE_THRESHOLD (including 0) is Limited. A missing or unparsable amount
        leaves both flags false and the label empty; the court resolver defaults
        to Unlimited in that case instead.
        """
        amount = parse_amount(self._demand_amount(f))
        if amount is None:
            f.set("IS_LIMITED", False)
            f.set("IS_UNLIMITED", False)
            f.set("VAR_UNLIMITED_OR_LIMITED", "")
        elif amount <= LIMITED_CASE_THRESHOLD:
            f.set("IS_LIMITED", True)
            f.set("IS_UNLIMITED", False)
            f.set("VAR_UNLIMITED_OR_LIMITED", LIMITED_LABEL)
        else:
            f.set("IS_UNLIMITED", True)
            f.set("IS_LIMITED", False)
            f.set("VAR_UNLIMITED_OR_LIMITED", UNLIMITED_LABEL)

    def jurisdiction(self, f: FieldSet) -> None:
        postal_code = f.text("DEBTOR1_ZIP")
        if not postal_code:
            return
        selection = f.text("COURT_CITY_SELECTION") or None
        try:
            result = self.resolver.resolve(postal_code, self._demand_amount(f), selection)
        except CourtDataError:
            logger.exception("Could not load court tables; skipping court fields")
            return

        if isinstance(result, Resolved):
            f.set("VAR_COURTHOUSE", result.court_name)
            f.set("COURT_BRANCH_NAME", result.court_name)
            if result.address:
                street, city_zip = split_court_address(result.address)
                f.set("VAR_COURT_INFO", result.address)
                f.set("COURT_DISTRICT", result.district)
                f.set("COURT_STREET_ADDRESS", street)
                f.set("COURT_MAILING_ADDRESS", street)
                f.set("COURT_CITY_ZIP", city_zip)
        elif isinstance(result, NeedsSelection):
            f.set("NEED_COURT_SELECTION", True)
            f.set("COURT_OPTIONS", list(result.options))
            f.set("COURT_SELECTION_TYPE", result.kind)
            if result.default_option:
                f.set("COURT_DEFAULT_OPTION", result.default_option)
        else:
            f.set("ZIP_NOT_FOUND", True)

    def court_mailing_address(self, f: FieldSet) -> None:
        mailing = f.text("COURT_MAILING_ADDRESS")
        if not mailing.strip() or same_text(mailing, f.text("COURT_STREET_ADDRESS")):
            f.set("COURT_MAILING_ADDRESS", MAILING_SAME_AS_STREET)

    # --- plaintiff and case ---

    def plaintiff(self, f: FieldSet) -> None:
        plaintiff = f.text("PLAINTIFF_NAME")
        if not plaintiff:
            return
        f.set("VAR_PLAINTIFF_NAME", f"Plaintiff, {to_title_case(plaintiff)}")
        last_line = _city_state_zip(f.text("CREDITOR_CITY"), f.text("CREDITOR_STATE"), f.text("CREDITOR_ZIP"))
        f.set("VAR_CREDITOR1_NAME", f"{plaintiff}\n{f.text('CREDITOR_ADDRESS')}\n{last_line}")

    def court_county(self, f: FieldSet) -> None:
        county = f.text("COURT_COUNTY")
        if county:
            f.set("VAR_COURT_COUNTY", county.upper())

    def case_name(self, f: FieldSet) -> None:
        plaintiff, defendant = f.text("PLAINTIFF_NAME"), f.text("DEFENDANT_NAME")
        if not (plaintiff and defendant):
            return
        name = f"{to_title_case(plaintiff)} v. {to_title_case(strip_entity_suffix(defendant))}, et al."
        for key in ("VAR_CASE_NAME", "CASE_NAME2", "CASE_NAME3", "CASE_NAME4", "CASE_NAME5"):
            f.set(key, name)

    def breach_of_contract(self, f: FieldSet) -> None:
        raw = f.get("RAW_IS_BREACH_OF_CONTRACT")
        if raw is True or str(raw).lower() == "true":
            for key, value in BREACH_OF_CONTRACT_FLAGS.items():
                f.set(key, value)

    def number_of_causes(self, f: FieldSet) -> None:
        raw = f.get("NUMBER_OF_CAUSES")
        if raw:
            f.set("NUMBER_OF_CAUSES", format_count(raw))

    def judgment_creditor(self, f: FieldSet) -> None:
        names = f"{f.text('PLAINTIFF_NAME')} {f.text('CREDITOR1_NAME')}".lower()
        is_creditor = not any(cue in names for cue in ASSIGNEE_CUES)
        f.set("IS_JUDGMENT_CREDITOR", is_creditor)
        f.set("IS_JUDGMENT_CREDITOR2", is_creditor)
        f.set("IS_ASSIGNEE_OF_RECORD", not is_creditor)
        f.set("IS_ASSIGNEE_OF_RECORD2", not is_creditor)

    def stay_of_enforcement(self, f: FieldSet) -> None:
        stay_date = f.text("STAY_DATE") or f.text("STAY_ENFORCEMENT_DATE")
        f.set("IS_STAY_ORDERED", not stay_date.strip())

    def certified_abstract(self, f: FieldSet) -> None:
        f.set("IS_CERTIFIED_ABSTRACT", True)

    def case_number_mirror(self, f: FieldSet) -> None:
        case_number = f.get("CASE_NUMBER")
        if case_number:
            f.set("CASE_NUMBER_P2", case_number)


def derive_fields(data: dict, resolver: JurisdictionResolver | None = None) -> dict:
    """Backward-compatible: delegates to DerivedFieldPipeline(resolver).run."""
    return DerivedFieldPipeline(resolver).run(data)


def prepare_field_data(json_data, resolver: JurisdictionResolver | None = None) -> dict:
    """Request body -> sanitized, derived field dict. Malformed JSON is rejected before any rule runs."""
    data = sanitize_all_values(load_field_payload(json_data))
    return DerivedFieldPipeline(resolver).run(data)
