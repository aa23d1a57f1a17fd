"""
Tests for court lookup from postal code and amount.
"""
import threading

import pytest

from docfill.errors import CourtDataError
from docfill.jurisdiction import (
    CHOICE,
    LIMITED,
    SPLIT,
    UNLIMITED,
    CourtInfo,
    CourtTables,
    JurisdictionResolver,
    JurisdictionRule,
    NeedsSelection,
    NotFound,
    Resolved,
    classify_case_type,
)


class TestClassifyCaseType:
    """Limited / Unlimited threshold."""

    @pytest.mark.parametrize("amount", ["1", "35000", "$35,000.00", 12000])
    def test_limited(self, amount):
        assert classify_case_type(amount) == LIMITED

    @pytest.mark.parametrize("amount", ["35000.01", "1000000", None, "", "0", "n/a"])
    def test_unlimited(self, amount):
        assert classify_case_type(amount) == UNLIMITED


class TestCourtTables:
    """Loading and lookup."""

    def test_loads_sample_csv_once(self, court_tables):
        assert not court_tables.loaded
        rules = court_tables.rules
        assert court_tables.loaded
        assert court_tables.rules is rules
        assert any(r.postal_code == "90001" for r in rules)

    def test_concurrent_first_load(self, court_tables):
        seen = []
        threads = [threading.Thread(target=lambda: seen.append(court_tables.rules)) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(seen) == 8
        assert all(r is seen[0] for r in seen)

    def test_bom_and_header_aliases(self, tmp_path):
        rules = tmp_path / "rules.csv"
        courts = tmp_path / "courts.csv"
        rules.write_text("\ufeffPostalCode,CaseType,CourtName,Condition,IsDefault\n10001,Limited,Main Court,,TRUE\n", encoding="utf-8")
        courts.write_text("CourtName,Address,District\nMain Court,\"1 A St, Town, CA 90000\",North\n", encoding="utf-8")
        tables = CourtTables(rules, courts)
        assert tables.rules == (JurisdictionRule("10001", "Limited", "Main Court", "", True),)
        assert tables.find_court("  main   COURT ") == CourtInfo("Main Court", "1 A St, Town, CA 90000", "North")

    def test_missing_files_raise(self, tmp_path):
        tables = CourtTables(tmp_path / "nope.csv", tmp_path / "nope2.csv")
        with pytest.raises(CourtDataError, match="Failed to load court tables") as exc:
            tables.ensure_loaded()
        assert isinstance(exc.value.__cause__, FileNotFoundError)
        assert exc.value.status_code == 500

    def test_malformed_csv_raises(self, tmp_path):
        rules = tmp_path / "rules.csv"
        courts = tmp_path / "courts.csv"
        # one field past the csv module's default field size limit
        rules.write_text("ZipCode,CaseType,CourtName\n90001,Limited," + "x" * 200_000 + "\n", encoding="utf-8")
        courts.write_text("CourtName,Address,District\n", encoding="utf-8")
        tables = CourtTables(rules, courts)
        with pytest.raises(CourtDataError):
            tables.ensure_loaded()
        assert not tables.loaded

    def test_unconfigured_paths_raise(self):
        with pytest.raises(CourtDataError, match="not configured"):
            CourtTables().ensure_loaded()

    def test_from_rows(self):
        tables = CourtTables.from_rows(
            [{"ZipCode": "1", "CaseType": "Limited", "CourtName": "A"}],
            [CourtInfo("A", "addr", "dist")],
        )
        assert tables.loaded
        assert tables.rules[0].court_name == "A"
        assert tables.find_court("a").district == "dist"


class TestJurisdictionResolver:
    """resolve() outcomes against the sample tables."""

    def test_single_row_resolves(self, resolver):
        result = resolver.resolve("90001", "50000")
        assert result == Resolved(
            court_name="Stanley Mosk Courthouse",
            address="111 North Hill Street, Los Angeles, CA 90012",
            district="Central District",
            case_type=UNLIMITED,
        )

    def test_split_requires_selection(self, resolver):
        result = resolver.resolve("90001", "10000")
        assert isinstance(result, NeedsSelection)
        assert result.kind == SPLIT
        assert result.options == ("North of Firestone Blvd", "South of Firestone Blvd")
        assert "defaultOption" not in result.to_dict()

    def test_split_with_selection(self, resolver):
        result = resolver.resolve("90001", "10000", "South of Firestone Blvd")
        assert isinstance(result, Resolved)
        assert result.court_name == "Inglewood Courthouse"
        assert result.district == "Southwest District"

    def test_split_with_unknown_selection_asks_again(self, resolver):
        result = resolver.resolve("90001", "10000", "East")
        assert isinstance(result, NeedsSelection)

    def test_choice_offers_default(self, resolver):
        result = resolver.resolve("90012", "2000")
        assert isinstance(result, NeedsSelection)
        assert result.kind == CHOICE
        assert result.default_option == "Stanley Mosk Courthouse"
        assert result.to_dict()["defaultOption"] == "Stanley Mosk Courthouse"
        assert result.to_dict()["caseType"] == "limited"

    def test_choice_with_selection(self, resolver):
        result = resolver.resolve("90012", "2000", "Metropolitan Courthouse")
        assert isinstance(result, Resolved)
        assert result.court_name == "Metropolitan Courthouse"

    def test_unknown_zip(self, resolver):
        result = resolver.resolve("99999", "100")
        assert isinstance(result, NotFound)
        assert result.reason == "ZIP code 99999 not found in court database for Limited cases"

    def test_blank_court_name_is_not_found(self, resolver):
        result = resolver.resolve("91101", "100000")
        assert isinstance(result, NotFound)
        assert result.reason.startswith("No court assigned for ZIP code 91101")

    def test_missing_amount_is_unlimited(self, resolver):
        assert resolver.resolve("90210").case_type == UNLIMITED

    def test_resolved_to_dict(self, resolver):
        out = resolver.resolve("90210", "5000").to_dict()
        assert out == {
            "success": True,
            "courtName": "Santa Monica Courthouse",
            "courtAddress": "1725 Main Street, Santa Monica, CA 90401",
            "courtDistrict": "West District",
            "caseType": "limited",
        }
