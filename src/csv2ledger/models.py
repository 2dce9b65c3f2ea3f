"""Core data models for csv2ledger.

This module defines the dataclasses and hashing helpers used throughout the
conversion pipeline. It has zero internal imports -- everything depends on
it, but it depends on nothing within the package.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass, field, fields, replace
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

# Sentinels returned by the account classifier when nothing matched, and
# applied again by the defaulting pass when a matching rule left them empty.
UNKNOWN_DESTINATION = "Expense:Unknown"
UNKNOWN_CATEGORY = "Unknown"

CLEARED_MARKER = "* "

# Input files are read as UTF-8, dropping a leading byte-order mark.  Bytes
# that are not valid UTF-8 (Latin-1 exports, say) survive as lone surrogates
# and are written back out, and hashed, as the original bytes.
INPUT_ENCODING = "utf-8-sig"
BYTE_ERRORS = "surrogateescape"

DEFAULT_RECORD_RE = r"^\s*\d{1,4}[/-]\d{1,2}[/-]\d{1,4}"

DEFAULT_CSV_FIELDS = (
    "Posted Date",
    "Check Number",
    "Description",
    "Transaction Amount",
    "Principal Amount",
    "Interest Amount",
    "Balance",
    "Fee Amount",
)

DEFAULT_TEMPLATE = (
    "{date} {cleared}{check_num}{description}{files}\n"
    "\t{source}\t{formatted_amount:>30}\n"
    "\t{destination}\n"
    "\t; Category: {category}\n"
    "{metadata}"
    "\t(CSV2Ledger:MD5Sum)   ; MD5Sum: {content_hash}\n"
    "\t(CSV2Ledger:CSV)      ; CSV: {csv}\n"
    "\n"
)


def content_hashes(raw_line: str) -> tuple[str, str]:
    """Return the duplicate-detection hashes for a raw input line.

    The first digest covers the bytes of the line as read (line terminator
    removed), including any bytes that were not valid UTF-8.  The second
    covers the same line with a trailing carriage return, which is how
    lines from CRLF files were hashed by older releases; both must be
    checked so previously imported records keep matching.

    Args:
        raw_line: The untouched input line, before any preprocessing.

    Returns:
        ``(content_hash, content_hash_alt)`` as lowercase MD5 hex digests.
    """
    primary = hashlib.md5(raw_line.encode("utf-8", BYTE_ERRORS)).hexdigest()
    alt = hashlib.md5((raw_line + "\r").encode("utf-8", BYTE_ERRORS)).hexdigest()
    return primary, alt


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PreprocessRule:
    """A rewrite applied to a raw record line before it is split.

    Attributes:
        match: Gate pattern.  The substitution only runs if this matches
            the current line.
        search: Pattern the substitution replaces.  Usually the same
            object as *match*.
        replace: Replacement template; supports ``\\1`` and ``\\g<name>``
            back-references.
        count: Maximum number of replacements; ``0`` replaces every
            occurrence.
    """

    match: re.Pattern
    search: re.Pattern
    replace: str
    count: int = 1


@dataclass(frozen=True)
class AccountRule:
    """Maps a matching record line to source/destination accounts.

    Fields left out of the rule table stay ``None``; the classifier returns
    them verbatim and the defaulting pass fills them in later.
    """

    match: re.Pattern
    source: str | None = None
    destination: str | None = None
    category: str | None = None


@dataclass(frozen=True)
class FileOverrideRule:
    """Selects an alternate option set for a particular input file.

    Exactly one of *filename* (tested against the input path) or *header*
    (tested against each line of the input file) is set.

    Attributes:
        overrides: Option name to value, applied over the current options
            when the rule matches.
        filename: Pattern searched in the input file path.
        header: Pattern searched in each line of the input file.
    """

    overrides: dict[str, Any]
    filename: re.Pattern | None = None
    header: re.Pattern | None = None


@dataclass(frozen=True)
class Classification:
    """Accounts and category chosen for one record."""

    source: str | None
    destination: str | None
    category: str | None


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Options:
    """Effective settings for one conversion run.

    Built once through the precedence chain in ``config.build_options`` and
    never mutated afterwards.  Optional paths use an empty string for
    "not set" so the whole value can be written back out as TOML.

    Attributes:
        record_re: Lines that do not match this pattern are skipped.
        csv_fields: Column labels, by position.
        date_field: Label of the date column.
        check_field: Label of the check-number column.
        desc_field: Label of the description column.
        amount_field: Label of the amount column.
        default_source: Source account used when classification yields none.
        cleared: Mark every entry cleared.
        negate: Flip the sign of every amount.
        detect_dups: Skip records already present in the output or cache.
        find_files: Attach receipt files found under *find_dir*.
        find_dir: Root of the receipt search.
        fuzzy_days: Receipt dates may differ from the transaction date by
            up to this many days.
        input_file: CSV file to convert.
        output_file: Ledger file entries are appended to, relative to
            *output_dir*.
        output_dir: Base directory for *output_file* and *cache_file*.
        cache_file: Append-only hash cache for cross-run duplicate
            detection; empty disables it.
        metadata: ``(key, value)`` pairs attached to every entry.
        template: Python format string used to render each entry.
        file_match_file: TOML table of per-file option overrides.
        preprocess_file: TOML table of preprocess rules.
        account_match_file: TOML table of account rules.
    """

    record_re: str = DEFAULT_RECORD_RE
    csv_fields: tuple[str, ...] = DEFAULT_CSV_FIELDS
    date_field: str = "Posted Date"
    check_field: str = "Check Number"
    desc_field: str = "Description"
    amount_field: str = "Transaction Amount"
    default_source: str = "Assets:Unknown"
    cleared: bool = False
    negate: bool = False
    detect_dups: bool = False
    find_files: bool = False
    find_dir: str = "."
    fuzzy_days: int = 0
    input_file: str = ""
    output_file: str = "CSV2Ledger.dat"
    output_dir: str = "."
    cache_file: str = "CSV2Ledger.cache"
    metadata: tuple[tuple[str, str], ...] = ()
    template: str = DEFAULT_TEMPLATE
    file_match_file: str = ""
    preprocess_file: str = ""
    account_match_file: str = ""

    @classmethod
    def field_names(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    def with_overrides(self, overrides: dict[str, Any]) -> Options:
        """Return a copy with *overrides* applied; ``self`` is unchanged."""
        return replace(self, **overrides)

    @property
    def cleared_marker(self) -> str:
        return CLEARED_MARKER if self.cleared else ""

    @property
    def sign(self) -> Decimal:
        return Decimal(-1) if self.negate else Decimal(1)

    @property
    def output_path(self) -> Path:
        return Path(self.output_dir) / self.output_file

    @property
    def cache_path(self) -> Path | None:
        if not self.cache_file:
            return None
        return Path(self.output_dir) / self.cache_file


# ---------------------------------------------------------------------------
# Transactions and results
# ---------------------------------------------------------------------------


@dataclass
class Transaction:
    """One ledger entry built from one input record.

    Fields are filled in pipeline order: the parser sets the record fields
    and hashes, classification sets the accounts, the receipt stage sets
    *files*.  Nothing changes after rendering.

    Attributes:
        date: Transaction date; rendered as ``YYYY/MM/DD``.
        cleared: Cleared marker, constant for the run.
        check_num: Rendered check number: empty, or ``"(1234) "``.
        description: Free text description.
        amount: Signed amount, negate flag already applied.
        csv: The untouched input line.
        content_hash: MD5 of *csv*.
        content_hash_alt: MD5 of *csv* plus a trailing carriage return.
        source: Source account.
        destination: Destination account.
        category: Category label.
        metadata: Run-wide key/value pairs.
        files: Receipt paths relative to the search root.
    """

    date: date
    cleared: str
    check_num: str
    description: str
    amount: Decimal
    csv: str
    content_hash: str
    content_hash_alt: str
    source: str = ""
    destination: str = UNKNOWN_DESTINATION
    category: str = UNKNOWN_CATEGORY
    metadata: tuple[tuple[str, str], ...] = ()
    files: list[str] = field(default_factory=list)

    @property
    def formatted_amount(self) -> str:
        return f"{self.amount:+.2f}"


@dataclass
class RunResult:
    """Statistics for a completed conversion run.

    Attributes:
        total: Records that passed record recognition.
        duplicates: Records skipped because their hash was already known.
        non_matching: Lines that failed record recognition.
        matched_files: Imported records with at least one attached file.
        output_path: Ledger file the entries were appended to.
    """

    total: int = 0
    duplicates: int = 0
    non_matching: int = 0
    matched_files: int = 0
    output_path: Path | None = None

    @property
    def imported(self) -> int:
        return self.total - self.duplicates

    @property
    def skipped(self) -> int:
        return self.duplicates + self.non_matching
