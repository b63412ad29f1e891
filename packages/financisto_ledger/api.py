"""Public API: parse a Financisto backup and convert it to ledger text.

The pipeline is strictly sequential; each stage relies on the previous one::

    tokenize -> normalize -> name accounts -> name categories
             -> collect splits -> currency formats -> render/assemble

:func:`parse_backup` runs the parsing stages and returns a :class:`Book`;
:func:`convert` renders a book into a :class:`ConversionResult`. The
``from_*`` helpers combine both and accept plain option mappings.
"""

from __future__ import annotations

import gzip
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date
from os import PathLike
from pathlib import Path
from typing import Any

from .currency import CurrencyFormats, build_currency_formats
from .entities import (
    ACCOUNT,
    CATEGORY,
    CURRENCY,
    EXCHANGE_RATE,
    PAYEE,
    TRANSACTION,
    Entity,
    EntityStore,
)
from .hierarchy import collect_split_transactions, name_accounts, name_categories
from .logging_setup import get_logger
from .normalize import normalize_entities
from .options import ConverterOptions
from .render import (
    VALUE_TAG_PREAMBLE,
    merge_by_time,
    render_account,
    render_category,
    render_currency,
    render_exchange_rate,
    render_payee,
    render_transaction,
)
from .tokenizer import tokenize

_log = get_logger("financisto_ledger.api")

type OptionsLike = ConverterOptions | Mapping[str, Any] | None

# Suffixes of gzip-compressed backups as written by the app.
COMPRESSED_SUFFIXES = (".gz", ".backup")


@dataclass(frozen=True, slots=True)
class Book:
    """A parsed backup: linked entities, their options and currency formats."""

    store: EntityStore
    options: ConverterOptions
    formats: CurrencyFormats


@dataclass(frozen=True, slots=True)
class ConversionResult:
    """Rendered output sections.

    A field is ``None`` when its section was not requested, and a (possibly
    empty) string when it was.
    """

    definitions: str | None = None
    pricedb: str | None = None
    ledger: str | None = None


def resolve_options(options: OptionsLike = None) -> ConverterOptions:
    if isinstance(options, ConverterOptions):
        return options
    return ConverterOptions.from_mapping(options)


def parse_backup(text: str | bytes, options: OptionsLike = None) -> Book:
    """Run the parsing stages over decompressed backup text."""

    opts = resolve_options(options)
    store = tokenize(text)
    for required in (ACCOUNT, CATEGORY, CURRENCY, TRANSACTION):
        store.require(required)

    normalize_entities(store, opts.tzinfo)
    name_accounts(store, opts.account_prefix)
    name_categories(store)
    collect_split_transactions(store)
    formats = build_currency_formats(store)
    return Book(store=store, options=opts, formats=formats)


def _by(field: str) -> Callable[[Entity], tuple[str, str]]:
    """Sort key approximating a locale-aware, case-insensitive comparison."""

    def key(entity: Entity) -> tuple[str, str]:
        value = str(entity.get(field, ""))
        return value.casefold(), value

    return key


def _definitions(book: Book, today: date) -> str | None:
    store, opts = book.store, book.options
    parts: list[str] = []

    if opts.currencies:
        for currency in sorted(store.require(CURRENCY), key=_by("name")):
            parts.append(render_currency(currency, book.formats) + "\n")

    if opts.accounts:
        for account in sorted(store.require(ACCOUNT), key=_by("title")):
            parts.append(render_account(account, today) + "\n")
        for category in sorted(store.require(CATEGORY), key=_by("name")):
            parts.append(render_category(category) + "\n")
        parts.append("\n")

    if opts.payees:
        for payee in sorted(store.items_of(PAYEE), key=_by("title")):
            parts.append(render_payee(payee))
        parts.append("\n")

    if opts.locations:
        parts.append("tag Location\n")
    if opts.lonlats:
        parts.append("tag LonLat\n")
    if opts.projects:
        parts.append("tag Project\n")

    requested = (
        opts.currencies,
        opts.accounts,
        opts.payees,
        opts.locations,
        opts.lonlats,
        opts.projects,
    )
    return "".join(parts) if any(requested) else None


def convert(book: Book, *, today: date | None = None) -> ConversionResult:
    """Render the sections enabled in ``book.options``.

    ``today`` bounds the posting dates of inactive accounts; it defaults to
    the current date.

    Raises
    ------
    ValidationError
        When a transaction cannot be expressed as postings.
    """

    store, opts = book.store, book.options

    pricedb: str | None = None
    if opts.pricedb:
        pricedb = merge_by_time(
            render_exchange_rate(rate, book.formats) for rate in store.items_of(EXCHANGE_RATE)
        )

    definitions = _definitions(book, today or date.today())

    if opts.budgets:
        _log.warning("budget conversion is not supported; ignoring the budgets option")

    ledger: str | None = None
    if opts.transactions:
        rendered = []
        for transaction in store.require(TRANSACTION):
            chunk = render_transaction(transaction, store, opts, book.formats)
            if chunk is not None:
                rendered.append(chunk)
        _log.debug("rendered %d top-level transactions", len(rendered))
        ledger = VALUE_TAG_PREAMBLE + merge_by_time(rendered)

    return ConversionResult(definitions=definitions, pricedb=pricedb, ledger=ledger)


# ---------------------------------------------------------------------------
# Convenience entry points
# ---------------------------------------------------------------------------


def from_string(text: str | bytes, options: OptionsLike = None) -> ConversionResult:
    """Convert decompressed backup text."""

    return convert(parse_backup(text, options))


def load_backup_text(path: str | PathLike[str]) -> str:
    """Read a backup file, gunzipping it when its suffix says so."""

    p = Path(path)
    if p.suffix.lower() in COMPRESSED_SUFFIXES:
        with gzip.open(p, "rt", encoding="utf-8") as f:
            return f.read()
    return p.read_text(encoding="utf-8")


def from_file(path: str | PathLike[str], options: OptionsLike = None) -> ConversionResult:
    """Convert an uncompressed backup file."""

    return from_string(Path(path).read_text(encoding="utf-8"), options)


def from_backup(path: str | PathLike[str], options: OptionsLike = None) -> ConversionResult:
    """Convert a gzip-compressed ``.backup`` file."""

    with gzip.open(Path(path), "rt", encoding="utf-8") as f:
        return from_string(f.read(), options)


def from_any_file(path: str | PathLike[str], options: OptionsLike = None) -> ConversionResult:
    """Convert a backup file, compressed or not, chosen by file suffix."""

    return from_string(load_backup_text(path), options)


__all__ = [
    "COMPRESSED_SUFFIXES",
    "Book",
    "ConversionResult",
    "convert",
    "from_any_file",
    "from_backup",
    "from_file",
    "from_string",
    "load_backup_text",
    "parse_backup",
    "resolve_options",
]
