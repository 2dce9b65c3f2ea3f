"""Tests for per-input-file option overrides."""

from __future__ import annotations

import re
from pathlib import Path

import pytest

from csv2ledger.errors import ConfigError
from csv2ledger.models import FileOverrideRule, Options
from csv2ledger.overrides import resolve


def _filename_rule(pattern: str, **overrides) -> FileOverrideRule:
    return FileOverrideRule(overrides=overrides, filename=re.compile(pattern))


def _header_rule(pattern: str, **overrides) -> FileOverrideRule:
    return FileOverrideRule(overrides=overrides, header=re.compile(pattern))


@pytest.fixture
def visa_csv(tmp_path: Path) -> Path:
    path = tmp_path / "visa-2008.csv"
    path.write_text(
        "Account: 4111-XXXX-1234\nDate,Desc,Amount\n2008/08/08,Exxon,20\n",
        encoding="utf-8",
    )
    return path


class TestResolve:
    def test_filename_rule_applies(self, visa_csv: Path):
        rules = [_filename_rule("visa", default_source="Liabilities:VISA", negate=True)]
        options = resolve(visa_csv, rules, Options())

        assert options.default_source == "Liabilities:VISA"
        assert options.negate is True

    def test_header_rule_applies(self, visa_csv: Path):
        rules = [_header_rule(r"^Account: 4111", default_source="Liabilities:VISA")]
        assert resolve(visa_csv, rules, Options()).default_source == "Liabilities:VISA"

    def test_only_first_matching_rule_applies(self, visa_csv: Path):
        rules = [
            _filename_rule("visa", default_source="Liabilities:VISA"),
            _header_rule("Account", default_source="Assets:Other", cleared=True),
        ]
        options = resolve(visa_csv, rules, Options())

        assert options.default_source == "Liabilities:VISA"
        assert options.cleared is False

    def test_skips_non_matching_rules(self, visa_csv: Path):
        rules = [
            _filename_rule("mastercard", default_source="Liabilities:MC"),
            _header_rule("Account: 4111", default_source="Liabilities:VISA"),
        ]
        assert resolve(visa_csv, rules, Options()).default_source == "Liabilities:VISA"

    def test_no_match_returns_options_unchanged(self, visa_csv: Path):
        options = Options()
        rules = [_filename_rule("checking"), _header_rule("Routing")]
        assert resolve(visa_csv, rules, options) is options

    def test_does_not_mutate_input_options(self, visa_csv: Path):
        options = Options()
        resolve(visa_csv, [_filename_rule("visa", negate=True)], options)
        assert options.negate is False

    def test_filename_rule_does_not_open_file(self, tmp_path: Path):
        missing = tmp_path / "visa-missing.csv"
        options = resolve(missing, [_filename_rule("visa", negate=True)], Options())
        assert options.negate is True

    def test_filename_matched_as_typed(self, visa_csv: Path, monkeypatch):
        monkeypatch.chdir(visa_csv.parent)
        rules = [_filename_rule(r"^\./visa", default_source="Liabilities:VISA")]

        assert resolve("./visa-2008.csv", rules, Options()).default_source == "Liabilities:VISA"
        assert resolve("visa-2008.csv", rules, Options()).default_source == "Assets:Unknown"

    def test_header_rule_ignores_byte_order_mark(self, tmp_path: Path):
        path = tmp_path / "bank.csv"
        path.write_bytes(b"\xef\xbb\xbfAccount: 4111\n2008/08/08,Exxon,20\n")
        rules = [_header_rule(r"^Account: 4111", default_source="Liabilities:VISA")]

        assert resolve(path, rules, Options()).default_source == "Liabilities:VISA"

    def test_header_scan_tolerates_latin1(self, tmp_path: Path):
        path = tmp_path / "bank.csv"
        path.write_bytes(b"Caf\xe9 account 4111\n")
        rules = [_header_rule("account 4111", negate=True)]

        assert resolve(path, rules, Options()).negate is True

    def test_header_scan_of_missing_file_is_fatal(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="Failed to open"):
            resolve(tmp_path / "absent.csv", [_header_rule("Account")], Options())

    def test_overrides_replace_layout(self, visa_csv: Path):
        rules = [
            _header_rule(
                "Account: 4111",
                csv_fields=("Date", "Desc", "Amount"),
                date_field="Date",
                desc_field="Desc",
                amount_field="Amount",
                check_field="",
            )
        ]
        options = resolve(visa_csv, rules, Options())
        assert options.csv_fields == ("Date", "Desc", "Amount")
        assert options.check_field == ""
