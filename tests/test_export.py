"""Tests for csv2ledger.export: entry rendering, appending, and the summary."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from csv2ledger.errors import ConfigError
from csv2ledger.export import (
    append_entry,
    format_files,
    format_metadata,
    print_summary,
    render,
)
from csv2ledger.models import DEFAULT_TEMPLATE, RunResult, Transaction, content_hashes

LINE = "2008/08/08,2134,Exxon,20"


def _make_txn(**overrides) -> Transaction:
    content_hash, content_hash_alt = content_hashes(LINE)
    values = dict(
        date=date(2008, 8, 8),
        cleared="",
        check_num="(2134) ",
        description="Exxon",
        amount=Decimal("20"),
        csv=LINE,
        content_hash=content_hash,
        content_hash_alt=content_hash_alt,
        source="Assets:Checking",
    )
    values.update(overrides)
    return Transaction(**values)


class TestRenderDefaultTemplate:
    def test_full_entry(self):
        txn = _make_txn()
        expected = (
            "2008/08/08 (2134) Exxon\n"
            f"\tAssets:Checking\t{'+20.00':>30}\n"
            "\tExpense:Unknown\n"
            "\t; Category: Unknown\n"
            f"\t(CSV2Ledger:MD5Sum)   ; MD5Sum: {txn.content_hash}\n"
            f"\t(CSV2Ledger:CSV)      ; CSV: {LINE}\n"
            "\n"
        )
        assert render(txn, DEFAULT_TEMPLATE) == expected

    def test_cleared_without_check(self):
        text = render(_make_txn(cleared="* ", check_num=""), DEFAULT_TEMPLATE)
        assert text.startswith("2008/08/08 * Exxon\n")

    def test_negative_amount(self):
        text = render(_make_txn(amount=Decimal("-1500.00")), DEFAULT_TEMPLATE)
        assert f"{'-1500.00':>30}" in text

    def test_files_on_header_line(self):
        text = render(_make_txn(files=["2008/20080808_Exxon_20_00.pdf"]), DEFAULT_TEMPLATE)
        assert text.splitlines()[0] == (
            "2008/08/08 (2134) Exxon <<file:2008/20080808_Exxon_20_00.pdf>>"
        )

    def test_metadata_lines_before_hash(self):
        txn = _make_txn(metadata=(("Import", "2008-08"), ("Bank", "CU")))
        lines = render(txn, DEFAULT_TEMPLATE).splitlines()
        assert lines[4:6] == ["\t; Import: 2008-08", "\t; Bank: CU"]
        assert lines[6].startswith("\t(CSV2Ledger:MD5Sum)")

    def test_hash_is_of_raw_line(self):
        text = render(_make_txn(description="EXXON MOBIL"), DEFAULT_TEMPLATE)
        assert content_hashes(LINE)[0] in text


class TestRenderCustomTemplate:
    def test_custom_fields(self):
        template = "{date}|{description}|{amount}|{content_hash_alt}\n"
        txn = _make_txn()
        assert render(txn, template) == f"2008/08/08|Exxon|20|{txn.content_hash_alt}\n"

    def test_unknown_field(self):
        with pytest.raises(ConfigError, match="unknown field"):
            render(_make_txn(), "{date} {payee}\n")

    def test_malformed_template(self):
        with pytest.raises(ConfigError, match="Invalid template"):
            render(_make_txn(), "{date\n")


class TestFormatHelpers:
    def test_no_files(self):
        assert format_files([]) == ""

    def test_several_files(self):
        assert format_files(["a.pdf", "b.jpg"]) == " <<file:a.pdf,file:b.jpg>>"

    def test_no_metadata(self):
        assert format_metadata(()) == ""


class TestAppendEntry:
    def test_creates_and_appends(self, tmp_path: Path):
        output = tmp_path / "out" / "ledger.dat"
        append_entry(output, "first\n")
        append_entry(output, "second\n")
        assert output.read_text(encoding="utf-8") == "first\nsecond\n"

    def test_keeps_existing_content(self, tmp_path: Path):
        output = tmp_path / "ledger.dat"
        output.write_text("; opening balances\n", encoding="utf-8")
        append_entry(output, "entry\n")
        assert output.read_text(encoding="utf-8") == "; opening balances\nentry\n"


class TestPrintSummary:
    def test_counts(self, capsys):
        result = RunResult(
            total=5, duplicates=2, non_matching=1, matched_files=1,
            output_path=Path("ledger.dat"),
        )
        print_summary(result)
        out = capsys.readouterr().out.splitlines()

        assert out[0] == "*** Imported 3 / Skipped 2 / Total 5"
        assert out[1] == "*** Files Matched 1 of Imported 3"
        assert out[2] == "*** Ignored 1 non-record line(s)"
        assert out[3] == "*** Output: ledger.dat"

    def test_no_ignored_line_when_zero(self, capsys):
        print_summary(RunResult(total=1))
        out = capsys.readouterr().out
        assert "Ignored" not in out
        assert "*** Imported 1 / Skipped 0 / Total 1" in out
