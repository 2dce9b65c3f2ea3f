"""Exception types raised by csv2ledger.

Every failure described here is fatal for the run: the CLI reports it and
exits non-zero.  Per-record skips (unrecognized lines, duplicates) are not
exceptions; they are counted in :class:`~csv2ledger.models.RunResult`.
"""

from __future__ import annotations


class Csv2LedgerError(Exception):
    """Base class for all csv2ledger errors."""


class ConfigError(Csv2LedgerError):
    """Invalid options, rule tables, templates, or required paths."""


class RecordLayoutError(Csv2LedgerError):
    """A record's column count disagrees with the configured field layout.

    This aborts the whole run rather than skipping the line, since it means
    the field layout itself is wrong for the input file.
    """


class RecordError(Csv2LedgerError):
    """A record field (date or amount) could not be interpreted."""
