"""Click CLI entry point for the csv2ledger command.

Handles argument parsing, option resolution, and error display.  All
conversion logic is delegated to ``config`` and ``pipeline``.

Short flags follow the classic CSV2Ledger script, so existing shell
aliases keep working.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click
from click.core import ParameterSource

from csv2ledger import __version__
from csv2ledger.errors import Csv2LedgerError

# Click parameter name -> Options field.
_OPTION_PARAMS = {
    "input_file": "input_file",
    "output_file": "output_file",
    "output_dir": "output_dir",
    "record_re": "record_re",
    "csv_fields": "csv_fields",
    "date_field": "date_field",
    "check_field": "check_field",
    "desc_field": "desc_field",
    "amount_field": "amount_field",
    "default_source": "default_source",
    "cleared": "cleared",
    "negate": "negate",
    "detect_dups": "detect_dups",
    "find_files": "find_files",
    "find_dir": "find_dir",
    "fuzzy_days": "fuzzy_days",
    "file_match_file": "file_match_file",
    "preprocess_file": "preprocess_file",
    "account_match_file": "account_match_file",
    "cache_file": "cache_file",
    "metadata": "metadata",
    "template_file": "template",
}


def _configure_logging(verbose: bool, debug: bool) -> None:
    """Set up logging based on verbosity flags."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        force=True,
    )


def _parse_metadata(values: tuple[str, ...]) -> tuple[tuple[str, str], ...]:
    """Parse repeated ``key=value`` metadata flags."""
    pairs = []
    for value in values:
        key, sep, val = value.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(
                f"{value!r} is not in key=value form", param_hint="'-M' / '--metadata'"
            )
        pairs.append((key.strip(), val.strip()))
    return tuple(pairs)


def _explicit_options(ctx: click.Context) -> dict:
    """Collect the conversion options that were given on the command line.

    Flags left at their defaults are not included, so they do not mask
    values from the options file or a per-file override.
    """
    explicit = {}
    for param, option in _OPTION_PARAMS.items():
        if ctx.get_parameter_source(param) != ParameterSource.COMMANDLINE:
            continue
        value = ctx.params[param]
        if param == "metadata":
            value = _parse_metadata(value)
        elif param == "template_file":
            value = Path(value).read_text(encoding="utf-8")
        explicit[option] = value
    return explicit


def _conversion_options(func):
    """Attach the conversion flags shared by ``convert`` and ``show-options``."""
    decorators = [
        click.option("-i", "--input", "input_file", type=click.Path(), help="Input CSV file."),
        click.option("-o", "--output", "output_file", type=click.Path(), help="Output ledger file."),
        click.option("-D", "--output-dir", "output_dir", type=click.Path(), help="Base directory for output files."),
        click.option("-r", "--record-re", "record_re", help="Record matching regexp."),
        click.option("-c", "--fields", "csv_fields", help='Field label list, "label,label,...".'),
        click.option("-d", "--date-field", "date_field", help="Date field label."),
        click.option("-n", "--check-field", "check_field", help="Check number field label."),
        click.option("-t", "--desc-field", "desc_field", help="Description field label."),
        click.option("-a", "--amount-field", "amount_field", help="Amount field label."),
        click.option("-s", "--default-source", "default_source", help="Default source account."),
        click.option("-x", "--cleared", "cleared", is_flag=True, help="Mark transactions cleared."),
        click.option("-g", "--negate", "negate", is_flag=True, help="Negate the transaction amount."),
        click.option("-z", "--detect-dups", "detect_dups", is_flag=True, help="Turn on duplicate detection."),
        click.option("-X", "--find-files", "find_files", is_flag=True, help="Turn on receipt file location."),
        click.option("-G", "--find-dir", "find_dir", type=click.Path(), help="Source directory for the file search."),
        click.option("-F", "--fuzzy-days", "fuzzy_days", type=click.IntRange(min=0), help="Days of date slack when matching files."),
        click.option("-f", "--file-match", "file_match_file", type=click.Path(), help="File matching table (TOML)."),
        click.option("-p", "--preprocess", "preprocess_file", type=click.Path(), help="Preprocess table (TOML)."),
        click.option("-m", "--account-match", "account_match_file", type=click.Path(), help="Account matching table (TOML)."),
        click.option("-C", "--cache-file", "cache_file", help="Hash cache file; empty string disables it."),
        click.option("-M", "--metadata", "metadata", multiple=True, help="key=value metadata for every entry (repeatable)."),
        click.option("-T", "--template-file", "template_file", type=click.Path(exists=True, dir_okay=False), help="Entry template file."),
        click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False), help="Options file (default: ./csv2ledger.toml)."),
    ]

    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def _resolve_options(ctx: click.Context, config_path: str | None):
    """Build effective options, exiting with a message on failure."""
    from csv2ledger.config import build_options

    try:
        explicit = _explicit_options(ctx)
        return build_options(
            explicit=explicit,
            config_path=Path(config_path) if config_path else None,
        )
    except (Csv2LedgerError, OSError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="csv2ledger")
def cli() -> None:
    """Convert bank CSV exports into Ledger entries."""


@cli.command()
@_conversion_options
@click.option("--verbose", is_flag=True, default=False, help="Detailed progress output.")
@click.option("--debug", is_flag=True, default=False, help="Developer-level diagnostics.")
@click.pass_context
def convert(ctx: click.Context, config_path: str | None, verbose: bool, debug: bool, **_: object) -> None:
    """Convert an input CSV file, appending entries to the output file."""
    _configure_logging(verbose, debug)
    options = _resolve_options(ctx, config_path)

    from csv2ledger.export import print_summary
    from csv2ledger.pipeline import run

    try:
        result = run(options)
    except (Csv2LedgerError, OSError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    print_summary(result)


@cli.command("show-options")
@_conversion_options
@click.pass_context
def show_options(ctx: click.Context, config_path: str | None, **_: object) -> None:
    """Print the effective options, after every override, as TOML."""
    options = _resolve_options(ctx, config_path)

    from csv2ledger.config import dump_options

    click.echo(dump_options(options), nl=False)


@cli.command()
@click.option(
    "--dir", "target_dir", default=".", type=click.Path(), help="Directory to initialize."
)
def init(target_dir: str) -> None:
    """Write sample options and rule-table files."""
    from csv2ledger.config import initialize

    target = Path(target_dir).resolve()

    try:
        written = initialize(target)
    except OSError as exc:
        click.echo(f"Error initializing project: {exc}", err=True)
        sys.exit(1)

    for path in written:
        click.echo(f"Wrote {path}")
    click.echo(f"Initialized csv2ledger project in {target}")
