"""Record parsing: turn one input line into a :class:`Transaction`.

Input files vary by bank, so nothing about the layout is hard-coded: the
column labels come from ``Options.csv_fields`` and the date, check number,
description and amount columns are picked out by label.

Sign convention:
    Amounts are taken as written.  With ``negate`` set, every amount is
    multiplied by -1 (for banks that report charges as positive numbers).

Dates are parsed with ``dateutil`` so that ``08/08/2008``, ``2008-08-08``
and ``Aug 8 2008`` all work without a per-bank format string.
"""

from __future__ import annotations

import csv
from datetime import date
from decimal import Decimal, InvalidOperation

from dateutil import parser as date_parser

from csv2ledger.errors import RecordError, RecordLayoutError
from csv2ledger.models import Options, Transaction, content_hashes


def split_fields(
    line: str,
    field_names: tuple[str, ...],
    line_number: int,
    source: str = "",
) -> dict[str, str]:
    """Split a delimited line and label its columns by position.

    Raises:
        RecordLayoutError: If the column count differs from the number of
            configured labels.
    """
    columns = next(csv.reader([line]), [])
    if len(columns) != len(field_names):
        raise RecordLayoutError(
            f"Field count did not match in {source or 'input'} line {line_number}: "
            f"got {len(columns)} column(s), expected {len(field_names)} "
            f"({', '.join(field_names)})"
        )
    return dict(zip(field_names, columns))


def parse_date(value: str, line_number: int) -> date:
    """Parse a record's date column.

    Raises:
        RecordError: If *value* is not a recognizable date.
    """
    try:
        return date_parser.parse(value.strip()).date()
    except (ValueError, OverflowError) as exc:
        raise RecordError(f"line {line_number}: invalid date {value!r}") from exc


def parse_amount(value: str, line_number: int) -> Decimal:
    """Parse a record's amount column.

    Currency symbols, thousands separators and surrounding whitespace are
    ignored; an amount in parentheses is negative.

    Raises:
        RecordError: If *value* is not a number.
    """
    text = value.strip().replace("$", "").replace(",", "")
    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]
    try:
        amount = Decimal(text)
    except InvalidOperation as exc:
        raise RecordError(f"line {line_number}: invalid amount {value!r}") from exc
    if not amount.is_finite():
        raise RecordError(f"line {line_number}: invalid amount {value!r}")
    return -amount if negative else amount


def format_check_num(value: str) -> str:
    """Render a check number as ``"(1234) "``, or ``""`` when there is none."""
    value = value.strip()
    if not value:
        return ""
    return f"({value}) "


def build_transaction(
    raw_line: str,
    line: str,
    options: Options,
    line_number: int,
) -> Transaction:
    """Build the Transaction for one recognized record.

    Args:
        raw_line: The line as read, used for the content hashes and the
            ``CSV`` comment.
        line: The preprocessed line, which is split into columns.
        options: Effective run options.
        line_number: 1-based line number, for error messages.

    Returns:
        A Transaction with record fields and hashes set; accounts are left
        for the classification stage.

    Raises:
        RecordLayoutError: On a column count mismatch.
        RecordError: On an unparsable date or amount.
    """
    record = split_fields(line, options.csv_fields, line_number, options.input_file)
    content_hash, content_hash_alt = content_hashes(raw_line)
    check_num = record.get(options.check_field, "") if options.check_field else ""

    return Transaction(
        date=parse_date(record[options.date_field], line_number),
        cleared=options.cleared_marker,
        check_num=format_check_num(check_num),
        description=record[options.desc_field].strip(),
        amount=parse_amount(record[options.amount_field], line_number) * options.sign,
        csv=raw_line,
        content_hash=content_hash,
        content_hash_alt=content_hash_alt,
        metadata=options.metadata,
    )
