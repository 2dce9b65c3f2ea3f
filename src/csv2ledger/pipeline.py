"""Pipeline orchestration for csv2ledger.

Converts one input file in a single sequential pass.  For each line:

1. **Recognize** -- lines not matching ``record_re`` (headers, comments,
   trailers) are counted and skipped.
2. **Preprocess** -- apply the preprocess rule table to the line.
3. **Parse** -- split the preprocessed line into labelled columns and build
   a :class:`~csv2ledger.models.Transaction`.  Content hashes are taken
   from the line as read.
4. **Classify** -- choose accounts from the account rule table, then fill
   in defaults.
5. **Deduplicate** -- skip the record if its hash is already in the output
   file or the hash cache (only with ``detect_dups``).
6. **Attach** -- look for a receipt file (only with ``find_files``).
7. **Render** -- append the entry to the output file and its hash to the
   cache.

Input is read as UTF-8 with any byte-order mark dropped.  Bytes that are
not valid UTF-8 pass through to the output and the hashes unchanged.

Any error is fatal; entries already appended stay on disk.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

from csv2ledger import preprocess, receipts
from csv2ledger.categorizer import classify, resolve_accounts
from csv2ledger.config import load_account_rules, load_preprocess_rules
from csv2ledger.dedup import DuplicateIndex, append_to_cache
from csv2ledger.errors import ConfigError
from csv2ledger.export import append_entry, render
from csv2ledger.models import (
    BYTE_ERRORS,
    INPUT_ENCODING,
    AccountRule,
    Options,
    PreprocessRule,
    RunResult,
)
from csv2ledger.parser import build_transaction

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def run(options: Options) -> RunResult:
    """Convert ``options.input_file`` and append entries to the output file.

    Args:
        options: Fully resolved options (see ``config.build_options``).

    Returns:
        A :class:`RunResult` with record, duplicate and attachment counts.

    Raises:
        ConfigError: If a required path is missing or a rule table or
            template is malformed.
        RecordLayoutError: If a record's column count does not match
            ``csv_fields``.
        RecordError: If a record's date or amount cannot be parsed.
        OSError: If any file cannot be read or written.
    """
    input_path = _check_paths(options)
    preprocess_rules, account_rules = load_rule_tables(options)

    output_path = options.output_path
    cache_path = options.cache_path
    record_re = re.compile(options.record_re)
    find_root = Path(options.find_dir)

    index: DuplicateIndex | None = None
    if options.detect_dups:
        index = DuplicateIndex(output_path, cache_path)
        logger.info("Duplicate detection on: %d hash(es) already imported", len(index))

    result = RunResult(output_path=output_path)
    logger.info("Converting %s -> %s", input_path, output_path)

    with open(input_path, encoding=INPUT_ENCODING, errors=BYTE_ERRORS) as f:
        for line_number, raw in enumerate(f, start=1):
            raw_line = raw.rstrip("\n")

            if not record_re.search(raw_line):
                result.non_matching += 1
                logger.debug("Line %d is not a record: %r", line_number, raw_line)
                continue
            result.total += 1

            line = preprocess.apply(raw_line, preprocess_rules)
            txn = build_transaction(raw_line, line, options, line_number)
            classification = classify(line, account_rules, options.default_source)
            resolve_accounts(txn, classification, options.default_source)

            if index is not None and index.is_duplicate(txn.content_hash, txn.content_hash_alt):
                result.duplicates += 1
                logger.warning("Skipping duplicate line %d: %s", line_number, txn.content_hash)
                continue

            if options.find_files:
                txn.files = receipts.attach(txn.date, txn.amount, find_root, options.fuzzy_days)
                if txn.files:
                    result.matched_files += 1

            append_entry(output_path, render(txn, options.template))
            if cache_path is not None:
                append_to_cache(cache_path, txn.content_hash)
            if index is not None:
                index.record(txn.content_hash)

    logger.info(
        "Imported %d of %d record(s); skipped %d line(s), %d of them duplicates",
        result.imported, result.total, result.skipped, result.duplicates,
    )
    return result


def load_rule_tables(options: Options) -> tuple[list[PreprocessRule], list[AccountRule]]:
    """Load the preprocess and account rule tables named in *options*.

    A table that is not configured is empty.
    """
    preprocess_rules: list[PreprocessRule] = []
    account_rules: list[AccountRule] = []
    if options.preprocess_file:
        preprocess_rules = load_preprocess_rules(Path(options.preprocess_file))
    if options.account_match_file:
        account_rules = load_account_rules(Path(options.account_match_file))
    return preprocess_rules, account_rules


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _check_paths(options: Options) -> Path:
    """Validate required paths before anything is read or written."""
    if not options.input_file:
        raise ConfigError("Specify an input file")
    if not options.output_file:
        raise ConfigError("Specify an output file")

    input_path = Path(options.input_file)
    if not input_path.is_file():
        raise ConfigError(f"Specify an existing file: {input_path} not found")

    if options.find_files and not Path(options.find_dir).is_dir():
        raise ConfigError(
            f"Specify an existing directory for files: {options.find_dir} not found"
        )
    return input_path
