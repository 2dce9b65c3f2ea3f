"""Options, rule-table loading, writing, and project initialization.

Reads TOML files using stdlib ``tomllib`` and writes them using
``tomli_w``.  Effective options are built once per run through a fixed
precedence chain:

1. built-in defaults (plus rule tables found in the working directory),
2. the ``[options]`` table of ``csv2ledger.toml``,
3. the first matching per-file override rule,
4. flags given explicitly on the command line.
"""

from __future__ import annotations

import logging
import re
import tomllib
from pathlib import Path
from typing import Any

import tomli_w

from csv2ledger.errors import ConfigError
from csv2ledger.models import (
    AccountRule,
    FileOverrideRule,
    Options,
    PreprocessRule,
)
from csv2ledger.overrides import resolve

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "csv2ledger.toml"

# Rule tables picked up from the working directory when not configured.
_DEFAULT_RULE_FILES = {
    "file_match_file": "files.toml",
    "preprocess_file": "preprocess.toml",
    "account_match_file": "accounts.toml",
}

_BOOL_OPTIONS = {"cleared", "negate", "detect_dups", "find_files"}
_INT_OPTIONS = {"fuzzy_days"}

# ---------------------------------------------------------------------------
# Sample file content written by ``initialize``
# ---------------------------------------------------------------------------

_SAMPLE_CONFIG = {
    "options": {
        "csv_fields": ["Date", "CheckNum", "Desc", "Amount"],
        "date_field": "Date",
        "check_field": "CheckNum",
        "desc_field": "Desc",
        "amount_field": "Amount",
        "default_source": "Assets:Checking",
        "detect_dups": True,
        "output_file": "ledger.dat",
    },
}

_SAMPLE_PREPROCESS = {
    "preprocess": [
        {
            "match": "AMZN Mktp US",
            "search": "AMZN Mktp US\\*\\w+",
            "replace": "Amazon",
        },
        {
            "match": "^(\\d{2})/(\\d{2})/(\\d{4})",
            "replace": "\\3/\\1/\\2",
        },
    ],
}

_SAMPLE_ACCOUNTS = {
    "account": [
        {
            "match": "(?i)exxon|shell oil",
            "destination": "Expenses:Auto:Gas",
            "category": "Auto",
        },
        {
            "match": "(?i)payroll",
            "source": "Income:Salary",
            "destination": "Assets:Checking",
            "category": "Income",
        },
    ],
}

_SAMPLE_FILES = {
    "file": [
        {
            "filename": "(?i)visa.*\\.csv$",
            "options": {
                "csv_fields": ["Date", "Desc", "Amount"],
                "check_field": "",
                "default_source": "Liabilities:VISA",
                "negate": True,
            },
        },
    ],
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def build_options(
    explicit: dict[str, Any] | None = None,
    config_path: Path | None = None,
    root: Path | None = None,
) -> Options:
    """Build the effective :class:`Options` for a run.

    Args:
        explicit: Options given explicitly on the command line.  These win
            over every other source.
        config_path: Options file to read.  Defaults to
            ``csv2ledger.toml`` in *root* when that file exists.
        root: Directory searched for the options file and default rule
            tables.  Defaults to the current working directory.

    Returns:
        The resolved, validated options.

    Raises:
        ConfigError: If any layer is malformed or the result is unusable.
    """
    root = Path.cwd() if root is None else Path(root)
    explicit = coerce_overrides(explicit or {}, "command line")

    options = Options(**_discover_rule_files(root))

    if config_path is None and (root / CONFIG_FILENAME).is_file():
        config_path = root / CONFIG_FILENAME
    if config_path is not None:
        options = options.with_overrides(load_options_file(Path(config_path)))

    # The input path and file-match table may themselves come from the
    # command line, so look them up with explicit flags applied.
    located = options.with_overrides(explicit)
    if located.file_match_file and located.input_file:
        file_rules = load_file_rules(Path(located.file_match_file))
        options = resolve(located.input_file, file_rules, options)

    options = options.with_overrides(explicit)
    validate_options(options)
    return options


def load_options_file(path: Path) -> dict[str, Any]:
    """Read the ``[options]`` table of an options file.

    Raises:
        FileNotFoundError: If *path* does not exist.
        ConfigError: If the file is not valid TOML or names unknown options.
    """
    data = _read_toml(path)
    table = data.get("options", {})
    if not isinstance(table, dict):
        raise ConfigError(f"{path}: [options] must be a table")
    return coerce_overrides(table, str(path))


def load_preprocess_rules(path: Path) -> list[PreprocessRule]:
    """Load ``[[preprocess]]`` entries from *path*, preserving file order."""
    rules: list[PreprocessRule] = []
    for index, entry in enumerate(_read_rule_entries(path, "preprocess")):
        where = f"{path}: preprocess rule {index}"
        flags = re.IGNORECASE if entry.get("ignore_case", False) else 0
        match = _compile(_require_str(entry, "match", where), flags, where)
        search = match
        if "search" in entry:
            search = _compile(_require_str(entry, "search", where), flags, where)
        replace = _require_str(entry, "replace", where)
        try:
            # Surface bad back-references at load time, not mid-run.
            search.sub(replace, "")
        except re.error as exc:
            raise ConfigError(f"{where}: invalid replacement {replace!r}: {exc}") from exc
        count = 0 if entry.get("global", False) else 1
        rules.append(PreprocessRule(match=match, search=search, replace=replace, count=count))
    logger.debug("Loaded %d preprocess rule(s) from %s", len(rules), path)
    return rules


def load_account_rules(path: Path) -> list[AccountRule]:
    """Load ``[[account]]`` entries from *path*, preserving file order.

    Missing ``source``/``destination``/``category`` keys stay ``None``.
    """
    rules: list[AccountRule] = []
    for index, entry in enumerate(_read_rule_entries(path, "account")):
        where = f"{path}: account rule {index}"
        flags = re.IGNORECASE if entry.get("ignore_case", False) else 0
        match = _compile(_require_str(entry, "match", where), flags, where)
        values: dict[str, str | None] = {}
        for key in ("source", "destination", "category"):
            value = entry.get(key)
            if value is not None and not isinstance(value, str):
                raise ConfigError(f"{where}: {key} must be a string")
            values[key] = value
        rules.append(AccountRule(match=match, **values))
    logger.debug("Loaded %d account rule(s) from %s", len(rules), path)
    return rules


def load_file_rules(path: Path) -> list[FileOverrideRule]:
    """Load ``[[file]]`` entries from *path*, preserving file order.

    Each entry has exactly one of ``filename`` or ``header`` plus an
    ``options`` table of overrides.
    """
    rules: list[FileOverrideRule] = []
    for index, entry in enumerate(_read_rule_entries(path, "file")):
        where = f"{path}: file rule {index}"
        has_filename = "filename" in entry
        has_header = "header" in entry
        if has_filename == has_header:
            raise ConfigError(f"{where}: give exactly one of 'filename' or 'header'")
        overrides = entry.get("options", {})
        if not isinstance(overrides, dict):
            raise ConfigError(f"{where}: options must be a table")
        overrides = coerce_overrides(overrides, where)
        if has_filename:
            filename = _compile(_require_str(entry, "filename", where), 0, where)
            rules.append(FileOverrideRule(overrides=overrides, filename=filename))
        else:
            header = _compile(_require_str(entry, "header", where), 0, where)
            rules.append(FileOverrideRule(overrides=overrides, header=header))
    logger.debug("Loaded %d file rule(s) from %s", len(rules), path)
    return rules


def coerce_overrides(values: dict[str, Any], source: str) -> dict[str, Any]:
    """Validate option overrides and convert them to :class:`Options` types.

    ``csv_fields`` accepts a list or a comma-delimited string; ``metadata``
    accepts a table or a list of ``(key, value)`` pairs.

    Args:
        values: Raw option values keyed by option name.
        source: Where the values came from, for error messages.

    Raises:
        ConfigError: On unknown option names or values of the wrong type.
    """
    known = set(Options.field_names())
    result: dict[str, Any] = {}
    for name, value in values.items():
        if name not in known:
            raise ConfigError(f"{source}: unknown option {name!r}")
        if name == "csv_fields":
            if isinstance(value, str):
                value = value.split(",")
            if not isinstance(value, (list, tuple)) or not all(
                isinstance(v, str) for v in value
            ):
                raise ConfigError(f"{source}: csv_fields must be a list of labels")
            result[name] = tuple(value)
        elif name == "metadata":
            pairs = value.items() if isinstance(value, dict) else value
            try:
                result[name] = tuple((str(k), str(v)) for k, v in pairs)
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"{source}: metadata must be a table of strings") from exc
        elif name in _BOOL_OPTIONS:
            if not isinstance(value, bool):
                raise ConfigError(f"{source}: {name} must be true or false")
            result[name] = value
        elif name in _INT_OPTIONS:
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{source}: {name} must be an integer")
            result[name] = value
        else:
            if not isinstance(value, str):
                raise ConfigError(f"{source}: {name} must be a string")
            result[name] = value
    return result


def validate_options(options: Options) -> None:
    """Check cross-field consistency of *options*.

    Raises:
        ConfigError: If the record pattern is invalid, a configured field
            label is not part of ``csv_fields``, or ``fuzzy_days`` is
            negative.
    """
    try:
        re.compile(options.record_re)
    except re.error as exc:
        raise ConfigError(f"Invalid record pattern {options.record_re!r}: {exc}") from exc

    for name in ("date_field", "desc_field", "amount_field"):
        label = getattr(options, name)
        if label not in options.csv_fields:
            raise ConfigError(
                f"{name} {label!r} is not one of the CSV fields: {', '.join(options.csv_fields)}"
            )
    # The check number column is optional.
    if options.check_field and options.check_field not in options.csv_fields:
        raise ConfigError(
            f"check_field {options.check_field!r} is not one of the CSV fields: "
            f"{', '.join(options.csv_fields)}"
        )

    if options.fuzzy_days < 0:
        raise ConfigError(f"fuzzy_days must not be negative, got {options.fuzzy_days}")


def dump_options(options: Options) -> str:
    """Serialize *options* as an ``[options]`` TOML table."""
    table: dict[str, Any] = {}
    for name in Options.field_names():
        value = getattr(options, name)
        if name == "csv_fields":
            value = list(value)
        elif name == "metadata":
            value = dict(value)
        table[name] = value
    return tomli_w.dumps({"options": table})


def initialize(target_dir: Path) -> list[Path]:
    """Write sample options and rule-table files into *target_dir*.

    Idempotent: existing files are **not** overwritten.

    Returns:
        The files that were written.
    """
    target_dir = Path(target_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    samples = [
        (CONFIG_FILENAME, _SAMPLE_CONFIG),
        (_DEFAULT_RULE_FILES["preprocess_file"], _SAMPLE_PREPROCESS),
        (_DEFAULT_RULE_FILES["account_match_file"], _SAMPLE_ACCOUNTS),
        (_DEFAULT_RULE_FILES["file_match_file"], _SAMPLE_FILES),
    ]
    for filename, content in samples:
        path = target_dir / filename
        if _write_if_missing(path, tomli_w.dumps(content)):
            written.append(path)
    return written


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _discover_rule_files(root: Path) -> dict[str, str]:
    """Default rule-table paths for tables that exist in *root*."""
    found: dict[str, str] = {}
    for option, filename in _DEFAULT_RULE_FILES.items():
        path = root / filename
        if path.is_file():
            found[option] = str(path)
    return found


def _read_toml(path: Path) -> dict:
    """Read and parse a TOML file."""
    with open(path, "rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"{path}: {exc}") from exc


def _read_rule_entries(path: Path, key: str) -> list[dict]:
    """Return the array of tables stored under *key* in *path*."""
    entries = _read_toml(path).get(key, [])
    if not isinstance(entries, list) or not all(isinstance(e, dict) for e in entries):
        raise ConfigError(f"{path}: '{key}' must be an array of tables ([[{key}]])")
    return entries


def _require_str(entry: dict, key: str, where: str) -> str:
    value = entry.get(key)
    if not isinstance(value, str):
        raise ConfigError(f"{where}: missing or non-string '{key}'")
    return value


def _compile(pattern: str, flags: int, where: str) -> re.Pattern:
    try:
        return re.compile(pattern, flags)
    except re.error as exc:
        raise ConfigError(f"{where}: invalid pattern {pattern!r}: {exc}") from exc


def _write_if_missing(path: Path, content: str) -> bool:
    """Write *content* to *path* only if the file does not already exist."""
    if path.exists():
        return False
    path.write_text(content, encoding="utf-8")
    return True
