"""Per-input-file option overrides.

A file-match table lets one configuration serve several banks: each rule
recognizes an input file, either by its path or by a line inside it (an
account-number header, say), and supplies a complete alternate option set
for it.  Only the first rule that recognizes the file takes effect.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from csv2ledger.errors import ConfigError
from csv2ledger.models import BYTE_ERRORS, INPUT_ENCODING, FileOverrideRule, Options

logger = logging.getLogger(__name__)


def resolve(
    input_path: str | Path,
    rules: list[FileOverrideRule],
    options: Options,
) -> Options:
    """Apply the first rule in *rules* that recognizes *input_path*.

    Filename rules are searched against the path exactly as given, so
    pass the string the user typed (a leading ``./`` is kept).  Header rules
    read the input file and match if any of its lines matches.  Rules after
    the first satisfied one are not consulted.

    Args:
        input_path: The CSV file about to be converted.
        rules: File override rules in table order.
        options: Options in effect before the override.

    Returns:
        A new :class:`Options` with the matching rule's overrides applied,
        or *options* itself when no rule matches.

    Raises:
        ConfigError: If the input file cannot be read for a header scan.
    """
    for index, rule in enumerate(rules):
        if rule.filename is not None:
            if rule.filename.search(os.fspath(input_path)):
                logger.info(
                    "File rule %d matched filename %s; applying %s",
                    index, input_path, ", ".join(sorted(rule.overrides)),
                )
                return options.with_overrides(rule.overrides)
        elif rule.header is not None:
            if _file_has_line(input_path, rule):
                logger.info(
                    "File rule %d matched a header in %s; applying %s",
                    index, input_path, ", ".join(sorted(rule.overrides)),
                )
                return options.with_overrides(rule.overrides)
    return options


def _file_has_line(input_path: str | Path, rule: FileOverrideRule) -> bool:
    try:
        with open(input_path, encoding=INPUT_ENCODING, errors=BYTE_ERRORS) as f:
            return any(rule.header.search(line.rstrip("\n")) for line in f)
    except OSError as exc:
        raise ConfigError(f"Failed to open {input_path} for reading: {exc}") from exc
