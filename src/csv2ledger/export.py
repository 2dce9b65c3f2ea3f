"""Ledger entry rendering, output appending, and the run summary.

- :func:`render` fills the entry template with a transaction's fields.
- :func:`append_entry` appends rendered text to the ledger output file.
- :func:`print_summary` prints the import counts to stdout.

Templates are Python format strings.  Available fields: ``date``,
``cleared``, ``check_num``, ``description``, ``amount``,
``formatted_amount``, ``source``, ``destination``, ``category``,
``files``, ``metadata``, ``content_hash``, ``content_hash_alt`` and
``csv``.
"""

from __future__ import annotations

from pathlib import Path

from csv2ledger.errors import ConfigError
from csv2ledger.models import BYTE_ERRORS, RunResult, Transaction


def template_fields(txn: Transaction) -> dict[str, object]:
    """Return the mapping a template is rendered against."""
    return {
        "date": txn.date.strftime("%Y/%m/%d"),
        "cleared": txn.cleared,
        "check_num": txn.check_num,
        "description": txn.description,
        "amount": txn.amount,
        "formatted_amount": txn.formatted_amount,
        "source": txn.source,
        "destination": txn.destination,
        "category": txn.category,
        "files": format_files(txn.files),
        "metadata": format_metadata(txn.metadata),
        "content_hash": txn.content_hash,
        "content_hash_alt": txn.content_hash_alt,
        "csv": txn.csv,
    }


def format_files(files: list[str]) -> str:
    """Render attachments in Ledger's ``<<file:...>>`` note syntax."""
    if not files:
        return ""
    return " <<" + ",".join(f"file:{path}" for path in files) + ">>"


def format_metadata(metadata: tuple[tuple[str, str], ...]) -> str:
    """Render metadata pairs as indented ``; key: value`` comment lines."""
    return "".join(f"\t; {key}: {value}\n" for key, value in metadata)


def render(txn: Transaction, template: str) -> str:
    """Render *txn* with *template*.

    Raises:
        ConfigError: If the template names an unknown field or is not a
            valid format string.
    """
    try:
        return template.format_map(template_fields(txn))
    except KeyError as exc:
        raise ConfigError(f"Template references unknown field {exc}") from exc
    except (ValueError, IndexError, AttributeError) as exc:
        raise ConfigError(f"Invalid template: {exc}") from exc


def append_entry(output_path: Path, text: str) -> None:
    """Append a rendered entry to the ledger file, creating it if needed."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "a", encoding="utf-8", errors=BYTE_ERRORS) as f:
        f.write(text)


def print_summary(result: RunResult) -> None:
    """Print import totals in the classic CSV2Ledger format."""
    print(
        f"*** Imported {result.imported} / Skipped {result.duplicates} / "
        f"Total {result.total}"
    )
    print(f"*** Files Matched {result.matched_files} of Imported {result.imported}")
    if result.non_matching:
        print(f"*** Ignored {result.non_matching} non-record line(s)")
    if result.output_path is not None:
        print(f"*** Output: {result.output_path}")
