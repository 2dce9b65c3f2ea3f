"""Shared pytest fixtures for csv2ledger tests.

Provides reusable fixtures for:
- make_options: builds Options for the four-column ``Date,CheckNum,Desc,Amount``
  layout used throughout the tests, writing output under tmp_path.
- input_csv: writes an input CSV file and returns its path.
- write_toml: writes a dict as a TOML file (rule tables, options files).
- receipts_dir: an empty directory for receipt files.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
import tomli_w

from csv2ledger.models import Options

FIELDS = ("Date", "CheckNum", "Desc", "Amount")

EXXON_LINE = "2008/08/08,2134,Exxon,20"

SAMPLE_CSV = """\
Date,CheckNum,Desc,Amount
2008/08/08,2134,Exxon,20
2008/08/09,,SAFEWAY STORE 1234,54.10
2008/08/11,,PAYROLL ACME CORP,-1500.00
"""


@pytest.fixture
def make_options(tmp_path: Path) -> Callable[..., Options]:
    """Factory for Options using the test field layout.

    Output goes to ``tmp_path/out``.  Keyword arguments override any field.
    """

    def _make(**overrides) -> Options:
        values = {
            "csv_fields": FIELDS,
            "date_field": "Date",
            "check_field": "CheckNum",
            "desc_field": "Desc",
            "amount_field": "Amount",
            "default_source": "Assets:Checking",
            "output_dir": str(tmp_path / "out"),
            "output_file": "ledger.dat",
            "cache_file": "ledger.cache",
        }
        values.update(overrides)
        return Options(**values)

    return _make


@pytest.fixture
def input_csv(tmp_path: Path) -> Callable[..., Path]:
    """Factory writing CSV text to ``tmp_path/<name>`` (default: SAMPLE_CSV)."""

    def _write(text: str = SAMPLE_CSV, name: str = "bank.csv") -> Path:
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def write_toml(tmp_path: Path) -> Callable[[str, dict], Path]:
    """Factory writing a dict as TOML to ``tmp_path/<name>``."""

    def _write(name: str, data: dict) -> Path:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(tomli_w.dumps(data), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def receipts_dir(tmp_path: Path) -> Path:
    """Empty directory to place receipt files in."""
    path = tmp_path / "receipts"
    path.mkdir()
    return path
