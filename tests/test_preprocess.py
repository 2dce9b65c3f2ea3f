"""Tests for csv2ledger.preprocess."""

from __future__ import annotations

import re

from csv2ledger.models import PreprocessRule
from csv2ledger.preprocess import apply


def _rule(match: str, replace: str, search: str | None = None, count: int = 1) -> PreprocessRule:
    compiled = re.compile(match)
    return PreprocessRule(
        match=compiled,
        search=re.compile(search) if search is not None else compiled,
        replace=replace,
        count=count,
    )


class TestApply:
    def test_no_rules_is_identity(self):
        assert apply("2008/08/08,,Exxon,20", []) == "2008/08/08,,Exxon,20"

    def test_matching_rule_substitutes(self):
        rules = [_rule("AMZN Mktp", "Amazon", search=r"AMZN Mktp US\*\w+")]
        line = "2008/08/08,,AMZN Mktp US*2K4L,19.99"
        assert apply(line, rules) == "2008/08/08,,Amazon,19.99"

    def test_match_gates_substitution(self):
        # The search pattern would hit, but the gate does not match.
        rules = [_rule("SHELL", "Gas", search="Exxon")]
        assert apply("2008/08/08,,Exxon,20", rules) == "2008/08/08,,Exxon,20"

    def test_rules_are_cumulative(self):
        rules = [
            _rule("Exxon", "EXXON MOBIL"),
            _rule("MOBIL", "MOBIL 1234", search="MOBIL$|MOBIL(?=,)"),
        ]
        assert apply("2008/08/08,,Exxon,20", rules) == "2008/08/08,,EXXON MOBIL 1234,20"

    def test_later_rule_sees_earlier_output_for_gate(self):
        rules = [
            _rule("Exxon", "Shell"),
            _rule("Exxon", "NEVER"),
        ]
        assert apply("2008/08/08,,Exxon,20", rules) == "2008/08/08,,Shell,20"

    def test_back_references(self):
        rules = [_rule(r"^(\d{2})/(\d{2})/(\d{4})", r"\3/\1/\2")]
        assert apply("08/07/2008,,Exxon,20", rules) == "2008/08/07,,Exxon,20"

    def test_named_group_back_reference(self):
        rules = [_rule(r"(?P<vendor>SAFEWAY) STORE \d+", r"\g<vendor>")]
        assert apply("2008/08/09,,SAFEWAY STORE 1234,54.10", rules) == "2008/08/09,,SAFEWAY,54.10"

    def test_count_one_replaces_first_only(self):
        rules = [_rule(";", ",")]
        assert apply("a;b;c", rules) == "a,b;c"

    def test_count_zero_replaces_all(self):
        rules = [_rule(";", ",", count=0)]
        assert apply("a;b;c", rules) == "a,b,c"
