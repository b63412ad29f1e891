"""CLI for the ``financisto_ledger`` package.

A Typer-based console interface around :func:`financisto_ledger.api.from_any_file`.
Environment variables (notably ``FINANCISTO_LEDGER_LOG_LEVEL``) are loaded
from a local ``.env`` using ``python-dotenv`` before converting. Output goes
to stdout as one combined document, or to three files in an output
directory.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from typer.models import OptionInfo

from .api import ConversionResult, from_any_file
from .logging_setup import configure_logging, get_logger
from .options import DEFAULT_OPTIONS

_log = get_logger("financisto_ledger.cli")

DEFINITIONS_FILE = "definitions.ledger"
PRICEDB_FILE = "prices.db"
LEDGER_FILE = "financisto.ledger"


# ---- Output writers ----------------------------------------------------------


def combined_text(result: ConversionResult) -> str:
    """Join all present sections, each followed by a newline."""

    text = ""
    for section in (result.definitions, result.pricedb, result.ledger):
        if section:
            text += f"{section}\n"
    return text


def write_to_directory(result: ConversionResult, output_dir: Path) -> list[Path]:
    """Write sections as separate files; the ledger includes the others.

    Returns the paths that were written.
    """

    output_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []

    if result.definitions:
        path = output_dir / DEFINITIONS_FILE
        path.write_text(result.definitions, encoding="utf-8")
        written.append(path)

    if result.pricedb:
        path = output_dir / PRICEDB_FILE
        path.write_text(result.pricedb, encoding="utf-8")
        written.append(path)

    if result.ledger:
        text = ""
        if result.definitions:
            text += f"include {DEFINITIONS_FILE}\n\n"
        if result.pricedb:
            text += f"include {PRICEDB_FILE}\n\n"
        text += result.ledger + "\n"
        path = output_dir / LEDGER_FILE
        path.write_text(text, encoding="utf-8")
        written.append(path)

    return written


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Financisto backup to ledger file format converter.",
)


def _toggle(name: str, help: str) -> OptionInfo:
    """Paired --flag/--no-flag option; ``None`` keeps the default."""

    return typer.Option(
        None,
        f"--{name}/--no-{name}",
        help=f"{help} [default: {DEFAULT_OPTIONS[name]}]",
    )


@app.command()
def convert_cmd(
    filename: Annotated[
        Path, typer.Argument(help="Financisto backup file (.backup, .gz or plain text).")
    ],
    output_dir: Annotated[
        Path | None,
        typer.Argument(
            help=(
                "Directory to save files to. Will create prices.db, definitions.ledger "
                "and financisto.ledger in the directory."
            ),
        ),
    ] = None,
    *,
    unknown_expense: str | None = typer.Option(
        None,
        help=f"Account for unspecified expenses. [default: {DEFAULT_OPTIONS['unknown_expense']}]",
    ),
    unknown_payee: str | None = typer.Option(
        None, help=f"Default payee where unspecified. [default: {DEFAULT_OPTIONS['unknown_payee']}]"
    ),
    account_prefix: str | None = typer.Option(
        None,
        help=(
            "Account prefix to use if the account name is not hierarchical. "
            f"[default: {DEFAULT_OPTIONS['account_prefix']}]"
        ),
    ),
    timezone: str | None = typer.Option(
        None, help="IANA time zone for transaction dates (default: local time)."
    ),
    transactions: bool | None = _toggle("transactions", "Convert transactions."),
    accounts: bool | None = _toggle("accounts", "Add 'account ...' definitions."),
    currencies: bool | None = _toggle("currencies", "Add 'commodity ...' definitions."),
    payees: bool | None = _toggle("payees", "Add 'payee ...' definitions."),
    pricedb: bool | None = _toggle("pricedb", "Add 'P ...' exchange rates."),
    projects: bool | None = _toggle("projects", "Add Projects to postings as tags."),
    locations: bool | None = _toggle("locations", "Add Locations to postings as tags."),
    lonlats: bool | None = _toggle("lonlats", "Add longitude and latitude to postings as tags."),
    simplify: bool | None = _toggle(
        "simplify", "Simplify the file where possible to ease readability."
    ),
    debug: bool | None = _toggle("debug", "Add debug information to postings."),
    log_level: str | None = typer.Option(
        None, help="Logging level (falls back to FINANCISTO_LEDGER_LOG_LEVEL, then INFO)."
    ),
) -> None:
    """Convert a Financisto backup into ledger files."""

    # Load environment from .env in CWD (override=False to keep existing env)
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)

    options = {
        "unknown_expense": unknown_expense,
        "unknown_payee": unknown_payee,
        "account_prefix": account_prefix,
        "timezone": timezone,
        "transactions": transactions,
        "accounts": accounts,
        "currencies": currencies,
        "payees": payees,
        "pricedb": pricedb,
        "projects": projects,
        "locations": locations,
        "lonlats": lonlats,
        "simplify": simplify,
        "debug": debug,
    }

    try:
        result = from_any_file(filename, options)
        if output_dir is not None:
            for path in write_to_directory(result, output_dir):
                _log.info("wrote %s", path)
        else:
            typer.echo(combined_text(result))
    except (ValueError, OSError) as e:  # ConversionError is a ValueError
        print(f"Failed to parse file: {e}", file=sys.stderr)
        raise typer.Exit(1) from e


def main() -> None:
    """Console-script entry point."""

    app()


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    main()
